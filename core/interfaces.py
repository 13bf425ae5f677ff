"""
Protocol-based interfaces for Dependency Injection.
These interfaces define contracts for collaborators of the watch pipeline,
enabling easier testing and extensibility.
"""
from typing import List, Protocol, Tuple, runtime_checkable

import aiohttp

from models.artifact import StoredArtifact
from models.diff import Diff, DiffMetadata
from models.fetch import ClassifiedFailure
from models.target import Target


@runtime_checkable
class IArtifactRepository(Protocol):
    """Interface for the per-target artifact store."""

    def get_artifact(self, name: str, url: str) -> StoredArtifact:
        """Returns the stored artifact. Raises ArtifactNotFoundException if none exists."""
        ...

    def insert_artifact(self, name: str, url: str, content: bytes) -> int:
        """Stores the first artifact of a target and returns its ID."""
        ...

    def update_artifact(self, artifact_id: int, content: bytes) -> None:
        """Replaces the stored artifact and refreshes its last fetch time."""
        ...

    def prepare(self, targets: List[Target]) -> Tuple[List[Target], int]:
        """Purges artifacts of removed targets. Returns (new targets, deleted count)."""
        ...


@runtime_checkable
class INotificationService(Protocol):
    """Interface for change and failure reporting."""

    async def notify_change(
        self,
        session: aiohttp.ClientSession,
        target: Target,
        diff: Diff,
        metadata: DiffMetadata,
    ) -> None:
        """Reports a detected change."""
        ...

    async def notify_failure(
        self,
        session: aiohttp.ClientSession,
        target: Target,
        failure: ClassifiedFailure,
    ) -> None:
        """Reports a target that could not be resolved this cycle."""
        ...
