from datetime import datetime

from pydantic import BaseModel


class StoredArtifact(BaseModel):
    """The last normalized content persisted for a target."""

    id: int
    last_fetch: datetime
    content: bytes
