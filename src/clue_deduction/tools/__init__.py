from clue_deduction.tools.sheet_tools import (
    get_deduction_log,
    get_sheet_solution,
    get_valid_cards,
    process_detective_sheet,
)

__all__ = [
    "get_deduction_log",
    "get_sheet_solution",
    "get_valid_cards",
    "process_detective_sheet",
]
