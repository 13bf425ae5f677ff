from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class LineMode(str, Enum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    DELETED = "deleted"
    METADATA = "metadata"


class DiffLine(BaseModel):
    content: str
    mode: LineMode


class Diff(BaseModel):
    lines: List[DiffLine] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.lines

    def count(self, mode: LineMode) -> int:
        return sum(1 for line in self.lines if line.mode == mode)


class DiffMetadata(BaseModel):
    name: str
    url: str
    description: str = ""
    request_duration: float = 0.0  # Seconds
    status_code: int = 0
    body_length: int = 0
    last_fetch: datetime
