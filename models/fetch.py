from typing import Dict

from pydantic import BaseModel, Field


class FetchResult(BaseModel):
    """The outcome of a single HTTP attempt. Never persisted."""

    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    duration: float = 0.0  # Seconds
    body: bytes = b""


class ClassifiedFailure(BaseModel):
    """Why a target could not be resolved this cycle."""

    message: str
    status_code: int = 0
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    duration: float = 0.0

    @classmethod
    def from_result(cls, message: str, result: "FetchResult" = None) -> "ClassifiedFailure":
        if result is None:
            return cls(message=message)
        return cls(
            message=message,
            status_code=result.status_code,
            headers=result.headers,
            body=result.body,
            duration=result.duration,
        )
