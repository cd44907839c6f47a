"""
Errors and diagnostics for the deduction engine.

Exceptions are only raised for bad configuration or an input document of the
wrong shape. Problems with the game data itself (unknown players, conflicting
facts) never stop a run; they are collected as Diagnostic records on the
result.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ClueDeductionError(Exception):
    """Base class for errors raised by this package."""


class CatalogError(ClueDeductionError):
    """The card catalog is empty, inconsistent or unreadable."""


class SheetInputError(ClueDeductionError):
    """An input document is missing required keys or has the wrong type."""


class DiagnosticKind(Enum):
    INVALID_REFERENCE = "invalid_reference"
    MALFORMED_SUGGESTION = "malformed_suggestion"
    MALFORMED_OVERRIDE = "malformed_override"
    CONTRADICTION = "contradiction"
    NOT_CONVERGED = "not_converged"
    SOLUTION_ANOMALY = "solution_anomaly"


@dataclass(frozen=True)
class Diagnostic:
    """A caller-data warning collected while processing a sheet."""
    kind: DiagnosticKind
    message: str
    # Position of the offending suggestion in the input, when there is one
    suggestion_index: Optional[int] = None

    def __str__(self) -> str:
        where = f" (suggestion #{self.suggestion_index + 1})" if self.suggestion_index is not None else ""
        return f"[{self.kind.value}]{where} {self.message}"

    def as_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "suggestion_index": self.suggestion_index,
        }
