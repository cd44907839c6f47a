"""Conservative deduction engine for the board game Clue (Cluedo)."""

from clue_deduction.cards import (
    CardCatalog,
    CardCategory,
    catalog_from_dict,
    load_catalog,
    standard_catalog,
)
from clue_deduction.config import EngineSettings
from clue_deduction.engine import (
    DeductionEngine,
    DeductionResult,
    Solution,
    process,
    process_sheet,
)
from clue_deduction.errors import (
    CatalogError,
    ClueDeductionError,
    Diagnostic,
    DiagnosticKind,
    SheetInputError,
)
from clue_deduction.sheet import CandidateSet, CellState, DetectiveSheet
from clue_deduction.suggestions import (
    AllPassed,
    Revealed,
    RevealedUnknown,
    SuggestionEvent,
    suggestion_from_dict,
)

__all__ = [
    "AllPassed",
    "CandidateSet",
    "CardCatalog",
    "CardCategory",
    "CatalogError",
    "CellState",
    "ClueDeductionError",
    "DeductionEngine",
    "DeductionResult",
    "DetectiveSheet",
    "Diagnostic",
    "DiagnosticKind",
    "EngineSettings",
    "Revealed",
    "RevealedUnknown",
    "SheetInputError",
    "Solution",
    "SuggestionEvent",
    "catalog_from_dict",
    "load_catalog",
    "process",
    "process_sheet",
    "standard_catalog",
    "suggestion_from_dict",
]
