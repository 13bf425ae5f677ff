"""
Watch package: fetching, soft-error classification, retries and content transformation.
"""
from services.watch.classifier import SoftErrorClassifier
from services.watch.fetcher import WatchFetcher
from services.watch.retry import RetryController
from services.watch.transformer import ContentTransformer

__all__ = [
    "SoftErrorClassifier",
    "WatchFetcher",
    "RetryController",
    "ContentTransformer",
]
