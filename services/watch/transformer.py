"""
ContentTransformer normalizes a raw response body into a comparable artifact.

Stages run in a fixed order, each enabled by the target configuration:
1. structural extraction (pattern / body / selector / pass-through)
2. structured-data reshaping (jq / feed / html2text / none)
3. regex replace rules, in configured order
4. blank line collapsing
5. per-line whitespace trimming
"""
import json
import re
from typing import Any, List

import feedparser
import jq
import soupsieve
from bs4 import BeautifulSoup, Doctype

from core import constants
from core.exceptions import (
    InvalidResponseException,
    PatternCompileException,
    TransformException,
)
from core.logger import get_logger
from core.utils import truncate_bytes
from models.fetch import ClassifiedFailure, FetchResult
from models.target import (
    BodyExtraction,
    FeedReshape,
    HTMLToText,
    JQReshape,
    PatternExtraction,
    SelectorExtraction,
    Target,
)

logger = get_logger(__name__)

EMPTY_LINE_RE = re.compile(r"\n\s*\n", re.DOTALL)
TRIM_WHITESPACE_RE = re.compile(r"^\s+|\s+$", re.MULTILINE)


def remove_empty_lines(text: str) -> str:
    """Collapses runs of blank or whitespace-only lines into a single newline."""
    return EMPTY_LINE_RE.sub("\n", text)


def trim_whitespace(text: str) -> str:
    """Removes leading and trailing whitespace from every line."""
    return TRIM_WHITESPACE_RE.sub("", text)


def _excerpt(text: str) -> str:
    return truncate_bytes(text.encode("utf-8"), constants.BODY_EXCERPT_LENGTH).decode(
        "utf-8", errors="ignore"
    )


def _find_body(soup: BeautifulSoup):
    """Returns <body>, building one from the document content when the markup has none."""
    if soup.body is not None:
        return soup.body

    # html.parser does not synthesize the implied <body> of a fragment
    root = soup.html or soup
    body = soup.new_tag("body")
    for node in list(root.contents):
        if isinstance(node, Doctype) or getattr(node, "name", None) == "head":
            continue
        body.append(node.extract())
    return body


def _compile(pattern: str, kind: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternCompileException(
            f"could not compile {kind} pattern {pattern!r}: {e}", {"pattern": pattern}
        )


class ContentTransformer:
    """Pure transformation chain from raw bytes to normalized bytes."""

    def transform(self, result: FetchResult, target: Target) -> bytes:
        """
        Runs all enabled stages over the fetched body.

        Raises:
            InvalidResponseException: The extraction pattern or selector did not match
            PatternCompileException: A pattern or jq program is invalid
            TransformException: The body could not be processed by a stage
        """
        text = result.body.decode("utf-8", errors="replace")

        text = self.extract(text, target, result)
        text = self.reshape(text, target)

        for rule in target.replaces:
            logger.debug(
                f"[TRANSFORM] Replacing {rule.pattern!r} with {rule.replace_with!r}",
                context={"name": target.name},
            )
            text = _compile(rule.pattern, "replace").sub(rule.replace_with, text)

        if target.remove_empty_lines:
            text = remove_empty_lines(text)

        if target.trim_whitespace:
            text = trim_whitespace(text)

        return text.encode("utf-8")

    # ------------------------------------------------------------------
    # Stage 1: structural extraction
    # ------------------------------------------------------------------

    def extract(self, text: str, target: Target, result: FetchResult) -> str:
        extraction = target.extraction

        if isinstance(extraction, PatternExtraction):
            match = _compile(extraction.pattern, "extraction").search(text)
            if match is None or match.re.groups < 1:
                logger.error(
                    f"[TRANSFORM] Pattern did not match: {extraction.pattern!r}",
                    context={"name": target.name},
                )
                raise self._no_match(
                    f"pattern {extraction.pattern!r} did not match {_excerpt(text)}", result, target
                )
            return match.group(1) or ""

        if isinstance(extraction, BodyExtraction):
            return str(_find_body(BeautifulSoup(text, "html.parser")))

        if isinstance(extraction, SelectorExtraction):
            soup = BeautifulSoup(text, "html.parser")
            try:
                node = soup.select_one(extraction.selector)
            except soupsieve.SelectorSyntaxError as e:
                raise PatternCompileException(
                    f"invalid selector {extraction.selector!r}: {e}",
                    {"selector": extraction.selector},
                )
            if node is None:
                raise self._no_match(
                    f"selector {extraction.selector!r} did not match {_excerpt(text)}", result, target
                )
            return str(node).strip()

        return text

    @staticmethod
    def _no_match(message: str, result: FetchResult, target: Target) -> InvalidResponseException:
        return InvalidResponseException(
            ClassifiedFailure.from_result(message, result),
            {"name": target.name, "url": target.url},
        )

    # ------------------------------------------------------------------
    # Stage 2: structured-data reshaping
    # ------------------------------------------------------------------

    def reshape(self, text: str, target: Target) -> str:
        reshape = target.reshape

        if isinstance(reshape, JQReshape):
            return self.run_jq(text, reshape.query)

        if isinstance(reshape, FeedReshape):
            return self.flatten_feed(text)

        if isinstance(reshape, HTMLToText):
            return self.html_to_text(text)

        return text

    def run_jq(self, text: str, query: str) -> str:
        """Runs a jq program and returns all results as an indented JSON array."""
        try:
            program = jq.compile(query)
        except ValueError as e:
            raise PatternCompileException(f"invalid jq query {query!r}: {e}", {"query": query})

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise TransformException(
                f"supplied a jq query but the body is no valid json: {e}. Body: {_excerpt(text)}"
            )

        try:
            results: List[Any] = program.input_value(data).all()
        except ValueError as e:
            raise TransformException(
                f"error while running jq query: {e}. Body: {_excerpt(text)}"
            )

        return json.dumps(results, indent=2, sort_keys=True, ensure_ascii=False)

    def flatten_feed(self, text: str) -> str:
        """Flattens an RSS/Atom feed into a deterministic labeled text block."""
        parsed = feedparser.parse(text.encode("utf-8"))
        if parsed.bozo and not parsed.feed and not parsed.entries:
            raise TransformException(f"could not parse rss feed: {parsed.get('bozo_exception')}")

        feed = parsed.feed
        lines = [
            f"Title: {feed.get('title', '')}",
            f"Link: {feed.get('link', '')}",
            f"Description: {feed.get('description', '')}",
            f"Published: {feed.get('published', '')}",
        ]
        for entry in parsed.entries:
            lines.extend(
                [
                    "",
                    "Item:",
                    f"Title: {entry.get('title', '')}",
                    f"Link: {entry.get('link', '')}",
                    f"Description: {entry.get('description', '')}",
                ]
            )
        return "\n".join(lines) + "\n"

    def html_to_text(self, text: str) -> str:
        """Converts HTML to plain text with all script and style tags removed."""
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        return soup.get_text()

