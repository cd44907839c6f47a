"""
CrewAI Tools for the Clue deduction engine.

These let an agent hand its observations to the deterministic engine and
read back certain deductions, instead of trying to reason about card
locations from conversation history.

Every tool takes the detective sheet as a JSON string:

    {"players": ["Alice", "Bob", "Carol"],
     "suggestions": [{"suggester": "Alice",
                      "cards": ["Miss Scarlet", "Knife", "Kitchen"],
                      "passers": [],
                      "revealer": "Bob",
                      "revealedCard": "Knife"}],
     "manualOverrides": {"Rope": {"Alice": "has"}}}
"""

import json
import logging

from crewai.tools import tool

from clue_deduction.config import EngineSettings, catalog_from_env
from clue_deduction.engine import DeductionResult, process_sheet
from clue_deduction.errors import ClueDeductionError
from clue_deduction.report import format_log, format_result, format_solution

logger = logging.getLogger(__name__)


def _run_sheet(sheet_json: str) -> DeductionResult:
    """
    Parse the sheet JSON and run the engine.

    Raises:
        ClueDeductionError: if the sheet or card catalog is malformed
    """
    try:
        data = json.loads(sheet_json)
    except (TypeError, json.JSONDecodeError) as e:
        raise ClueDeductionError(f"sheet is not valid JSON ({e})") from e
    return process_sheet(data, catalog=catalog_from_env(), settings=EngineSettings.from_env())


@tool("Process Detective Sheet")
def process_detective_sheet(sheet_json: str) -> str:
    """
    Run every certain deduction over your observations and show the grid.
    Use this after recording a new suggestion to see what you now know.

    Args:
        sheet_json: JSON with "players", "suggestions" and optional "manualOverrides"

    Returns:
        The deduction grid, the proven solution, open candidate sets and any data warnings
    """
    try:
        result = _run_sheet(sheet_json)
    except ClueDeductionError as e:
        logger.warning("Process Detective Sheet failed: %s", e)
        return f"Error: {e}"
    return format_result(result)


@tool("Get Sheet Solution")
def get_sheet_solution(sheet_json: str) -> str:
    """
    Check which envelope cards are proven. Only accuse when all three are confirmed!

    Args:
        sheet_json: JSON with "players", "suggestions" and optional "manualOverrides"

    Returns:
        Each solution slot as confirmed or unknown, and whether you can accuse
    """
    try:
        result = _run_sheet(sheet_json)
    except ClueDeductionError as e:
        logger.warning("Get Sheet Solution failed: %s", e)
        return f"Error: {e}"
    return format_solution(result)


@tool("Get Deduction Log")
def get_deduction_log(sheet_json: str) -> str:
    """
    Explain how the engine reached its conclusions, one step per line.

    Args:
        sheet_json: JSON with "players", "suggestions" and optional "manualOverrides"

    Returns:
        Ordered list of every cell update and why it was made
    """
    try:
        result = _run_sheet(sheet_json)
    except ClueDeductionError as e:
        logger.warning("Get Deduction Log failed: %s", e)
        return f"Error: {e}"
    return format_log(result)


@tool("Get Valid Cards")
def get_valid_cards() -> str:
    """
    Get every card name the engine knows, by category. Use these exact names
    in suggestions and overrides.

    Returns:
        Lists of all valid card names
    """
    try:
        catalog = catalog_from_env()
    except ClueDeductionError as e:
        return f"Error: {e}"

    output = "Valid Cards:\n"
    for category in catalog:
        output += f"\n{category.name.upper()} ({category.slot}): {', '.join(category.cards)}\n"
    return output
