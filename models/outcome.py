from typing import Literal, Union

from pydantic import BaseModel

from models.diff import Diff, DiffMetadata
from models.fetch import ClassifiedFailure


class NoChange(BaseModel):
    kind: Literal["no_change"] = "no_change"


class Changed(BaseModel):
    kind: Literal["changed"] = "changed"
    diff: Diff
    metadata: DiffMetadata


class NewTarget(BaseModel):
    kind: Literal["new_target"] = "new_target"
    artifact: bytes


class RecoverableFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    failure: ClassifiedFailure
    notify: bool = True  # False when the status code is configured as ignorable


class TransportTimeout(BaseModel):
    kind: Literal["timeout"] = "timeout"


CycleOutcome = Union[NoChange, Changed, NewTarget, RecoverableFailure, TransportTimeout]
