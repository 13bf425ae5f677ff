from typing import List, Optional, Set, Tuple

from supabase import Client

from core.constants import WATCHES_TABLE
from core.database import Database
from core.exceptions import ArtifactNotFoundException, QueryException
from core.logger import get_logger
from core.utils import get_utc_now, parse_timestamp
from models.artifact import StoredArtifact
from models.target import Target

logger = get_logger(__name__)


class ArtifactRepository:
    """
    Supabase-backed store of the last normalized artifact per target.

    Rows live in the `watches` table, keyed by (name, url). Content is
    stored as UTF-8 text.
    """

    def __init__(self, client: Optional[Client] = None):
        self.db: Client = client or Database.get_client()

    def get_artifact(self, name: str, url: str) -> StoredArtifact:
        """
        Returns the stored artifact for a target.

        Raises:
            ArtifactNotFoundException: If the target was never stored
            QueryException: If the query fails
        """
        try:
            response = (
                self.db.table(WATCHES_TABLE)
                .select("id, last_fetch, last_content")
                .eq("name", name)
                .eq("url", url)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch artifact for {name}: {e}")
            raise QueryException(f"could not fetch artifact: {e}", {"name": name}) from e

        if not response.data:
            raise ArtifactNotFoundException(f"no artifact stored for {name}", {"url": url})

        row = response.data[0]
        return StoredArtifact(
            id=row["id"],
            last_fetch=parse_timestamp(row["last_fetch"]),
            content=(row.get("last_content") or "").encode("utf-8"),
        )

    def insert_artifact(self, name: str, url: str, content: bytes) -> int:
        """Stores the first artifact of a target. Returns the new row ID."""
        data = {
            "name": name,
            "url": url,
            "last_content": content.decode("utf-8"),
            "last_fetch": get_utc_now().isoformat(),
        }
        try:
            response = self.db.table(WATCHES_TABLE).insert(data).execute()
        except Exception as e:
            logger.error(f"Failed to insert artifact for {name}: {e}")
            raise QueryException(f"could not insert artifact: {e}", {"name": name}) from e

        if not response.data:
            raise QueryException("insert returned no data", {"name": name})
        return response.data[0]["id"]

    def update_artifact(self, artifact_id: int, content: bytes) -> None:
        """Replaces the stored content and refreshes last_fetch."""
        data = {
            "last_content": content.decode("utf-8"),
            "last_fetch": get_utc_now().isoformat(),
        }
        try:
            self.db.table(WATCHES_TABLE).update(data).eq("id", artifact_id).execute()
        except Exception as e:
            logger.error(f"Failed to update artifact {artifact_id}: {e}")
            raise QueryException(f"could not update artifact: {e}", {"id": artifact_id}) from e

    def prepare(self, targets: List[Target]) -> Tuple[List[Target], int]:
        """
        Reconciles stored rows with the configured targets.

        Rows whose (name, url) is no longer configured are deleted.

        Returns:
            (targets without a stored row, number of deleted rows)
        """
        try:
            response = self.db.table(WATCHES_TABLE).select("id, name, url").execute()
        except Exception as e:
            raise QueryException(f"could not list watches: {e}") from e

        stored = {(row["name"], row["url"]): row["id"] for row in response.data or []}
        configured: Set[Tuple[str, str]] = {target.identity for target in targets}

        new_targets = [target for target in targets if target.identity not in stored]

        deleted = 0
        for identity, row_id in stored.items():
            if identity in configured:
                continue
            try:
                self.db.table(WATCHES_TABLE).delete().eq("id", row_id).execute()
            except Exception as e:
                raise QueryException(f"could not delete watch {row_id}: {e}") from e
            logger.info(f"[DB] Purged watch {identity[0]} ({identity[1]})")
            deleted += 1

        return new_targets, deleted
