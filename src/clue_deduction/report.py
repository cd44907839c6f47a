"""
Text rendering of deduction results, for the CLI and agent tools.
"""

from clue_deduction.engine import DeductionResult
from clue_deduction.sheet import CellState


def format_grid(result: DeductionResult) -> str:
    """
    Get the full grid showing all deductions.

    Returns:
        Formatted grid of all card states, grouped by category
    """
    output = "=== DETECTIVE SHEET GRID ===\n\n"

    header = "Card".ljust(20)
    for player in result.players:
        header += player[:8].center(10)
    output += header + "\n"
    output += "=" * len(header) + "\n"

    for category in result.catalog:
        output += f"\n--- {category.name.upper()} ---\n"
        for card in category.cards:
            row = card.ljust(20)
            for player in result.players:
                row += result.grid[card][player].value.center(10)
            if result.solution.slots.get(category.slot) == card:
                row += "  <- SOLUTION"
            output += row + "\n"

    output += (
        f"\nLegend: {CellState.HAS.value}=Has  {CellState.DOES_NOT_HAVE.value}=Doesn't have  "
        f"{CellState.MAYBE.value}=Maybe  {CellState.UNKNOWN.value}=Unknown\n"
    )
    return output


def format_solution(result: DeductionResult) -> str:
    """
    Get what is proven about the envelope.

    Returns:
        One line per solution slot, plus whether an accusation is safe
    """
    output = "=== SOLUTION ===\n\n"
    for slot, card in result.solution.slots.items():
        if card:
            output += f"{slot.upper()}: *** {card} *** (CONFIRMED!)\n"
        elif slot in result.solution.anomalies:
            output += f"{slot.upper()}: conflicting - {', '.join(result.solution.anomalies[slot])}\n"
        else:
            output += f"{slot.upper()}: unknown\n"

    if result.solution.is_complete():
        slots = result.solution.slots
        output += "\n🎯 YOU CAN MAKE AN ACCUSATION!"
        output += f"\n   -> Accuse: {' / '.join(slots[s] for s in slots)}"
    else:
        missing = [slot for slot, card in result.solution.slots.items() if card is None]
        output += f"\nNot enough information yet ({', '.join(missing)} still open)."
    return output


def format_candidate_sets(result: DeductionResult) -> str:
    if not result.candidate_sets:
        return "No open candidate sets."

    output = "=== OPEN CANDIDATE SETS ===\n"
    for player, sets in result.candidate_sets.items():
        output += f"\n{player} holds at least one of:\n"
        for candidate_set in sets:
            output += f"  #{candidate_set.id}: {', '.join(candidate_set.cards)}\n"
    return output


def format_diagnostics(result: DeductionResult) -> str:
    if not result.diagnostics:
        return "No data problems found."

    output = "=== DATA WARNINGS ===\n\n"
    for diagnostic in result.diagnostics:
        output += f"⚠️ {diagnostic}\n"
    return output


def format_log(result: DeductionResult) -> str:
    if not result.log:
        return "No deductions made yet."

    output = "=== DEDUCTION LOG ===\n\n"
    for i, line in enumerate(result.log, 1):
        output += f"{i}. {line}\n"
    return output


def format_result(result: DeductionResult) -> str:
    """Grid, solution, open sets and any warnings, in that order."""
    parts = [format_grid(result), format_solution(result), format_candidate_sets(result)]
    if result.diagnostics:
        parts.append(format_diagnostics(result))
    return "\n\n".join(parts)
