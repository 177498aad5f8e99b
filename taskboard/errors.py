from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Violation:
    field: str
    rule: str
    message: str

    def as_dict(self) -> dict:
        return {"field": self.field, "rule": self.rule, "message": self.message}


class TaskboardError(Exception):
    """Base class for failures translated to HTTP responses."""


class ValidationFailed(TaskboardError):
    """The payload broke one or more field rules. Nothing was written."""

    def __init__(self, violations: Sequence[Violation]) -> None:
        self.violations = list(violations)
        fields = ", ".join(v.field for v in self.violations)
        super().__init__(f"validation failed: {fields}")


class NotFound(TaskboardError):
    def __init__(self, entity: str, entity_id: object = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class StorageFailure(TaskboardError):
    """A driver or query level error, e.g. a constraint violation."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(str(cause))


class TransactionAborted(StorageFailure):
    """A failure between BEGIN and COMMIT. All writes were rolled back."""
