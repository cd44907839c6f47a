"""
Input validation for the deduction engine.

The engine assumes well-formed suggestions over known players and cards.
These checks run before anything touches the grid; entries that fail are
dropped and reported on the sheet instead of raising.
"""

import logging
from typing import Iterable, Mapping, Optional

from clue_deduction.cards import CardCatalog
from clue_deduction.errors import DiagnosticKind, SheetInputError
from clue_deduction.sheet import CellState, DetectiveSheet
from clue_deduction.suggestions import SuggestionEvent, suggestion_from_dict

logger = logging.getLogger(__name__)


def unique_players(players: Iterable[str]) -> tuple[list[str], list[str]]:
    """
    Collapse duplicate player names, keeping first occurrences.

    Returns:
        (players in order, duplicate names that were dropped)
    """
    if not isinstance(players, (list, tuple)):
        raise SheetInputError(
            f"'players' must be a list of names, got {type(players).__name__}"
        )

    kept, duplicates = [], []
    for player in players:
        if not isinstance(player, str):
            raise SheetInputError(f"Player names must be strings, got {player!r}")
        if player in kept:
            duplicates.append(player)
        else:
            kept.append(player)
    return kept, duplicates


def coerce_suggestions(suggestions: Iterable) -> list[SuggestionEvent]:
    """Accept SuggestionEvents or dicts in the sheet JSON format."""
    events = []
    for i, suggestion in enumerate(suggestions):
        if isinstance(suggestion, SuggestionEvent):
            events.append(suggestion)
            continue
        try:
            events.append(suggestion_from_dict(suggestion))
        except SheetInputError as e:
            raise SheetInputError(f"Suggestion #{i + 1}: {e}") from e
    return events


def check_suggestion(
    suggestion: SuggestionEvent,
    catalog: CardCatalog,
    players: Iterable[str],
) -> tuple[list[str], list[str]]:
    """
    Check one suggestion's shape and references.

    Returns:
        (shape problems, reference problems); both empty for a good suggestion
    """
    known = set(players)
    shape, references = [], []

    if len(suggestion.cards) != 3:
        shape.append(f"expected 3 cards, got {len(suggestion.cards)}")
    if len(set(suggestion.cards)) != len(suggestion.cards):
        shape.append("a card is proposed more than once")

    unknown_cards = [c for c in suggestion.cards if c not in catalog]
    if unknown_cards:
        shape.append(f"unknown card(s): {', '.join(unknown_cards)}")
    elif len(catalog.categories) == 3 and len(suggestion.cards) == 3:
        slots = {catalog.slot_of(c) for c in suggestion.cards}
        if len(slots) != 3:
            shape.append("cards must be one " + "/".join(catalog.slots))

    revealer = suggestion.revealer
    revealed = suggestion.revealed_card
    if revealed is not None and revealed not in suggestion.cards:
        shape.append(f"revealed card '{revealed}' was not proposed")
    if revealer is not None:
        if revealer not in known:
            references.append(f"unknown revealer '{revealer}'")
        if revealer in suggestion.passers:
            shape.append(f"revealer '{revealer}' is also listed as passing")
        if revealer == suggestion.suggester:
            shape.append(f"suggester '{revealer}' cannot reveal to themselves")

    return shape, references


def accept_suggestions(
    sheet: DetectiveSheet,
    suggestions: list[SuggestionEvent],
) -> list[tuple[int, SuggestionEvent]]:
    """
    Filter suggestions down to the ones the engine can safely ingest.

    Malformed suggestions and ones with an unknown revealer are dropped.
    Unknown passers are removed from an otherwise good suggestion. An
    unknown suggester is reported but kept.

    Returns:
        (input index, suggestion) pairs, in input order
    """
    known = set(sheet.players)
    accepted = []

    for index, suggestion in enumerate(suggestions):
        shape, references = check_suggestion(suggestion, sheet.catalog, sheet.players)

        if shape:
            sheet.report(DiagnosticKind.MALFORMED_SUGGESTION,
                         "Ignored: " + "; ".join(shape), index)
            continue
        if references:
            sheet.report(DiagnosticKind.INVALID_REFERENCE,
                         "Ignored: " + "; ".join(references), index)
            continue

        if suggestion.suggester not in known:
            sheet.report(DiagnosticKind.INVALID_REFERENCE,
                         f"Unknown suggester '{suggestion.suggester}'", index)

        stray = [p for p in suggestion.passers if p not in known]
        if stray:
            sheet.report(DiagnosticKind.INVALID_REFERENCE,
                         f"Ignoring unknown passer(s): {', '.join(stray)}", index)
            suggestion = SuggestionEvent(
                suggester=suggestion.suggester,
                cards=suggestion.cards,
                outcome=suggestion.outcome,
                passers=tuple(p for p in suggestion.passers if p in known),
            )

        accepted.append((index, suggestion))

    if len(accepted) != len(suggestions):
        logger.info("Accepted %d of %d suggestions", len(accepted), len(suggestions))
    return accepted


def apply_overrides(sheet: DetectiveSheet, overrides: Optional[Mapping]) -> int:
    """
    Apply manual overrides (card -> player -> state) to the sheet.

    Entries for unknown cards or players, and states that can't be parsed,
    are skipped and reported.

    Returns:
        Number of cells changed
    """
    if not overrides:
        return 0
    if not isinstance(overrides, Mapping):
        raise SheetInputError("'manualOverrides' must map card -> player -> state")

    changed = 0
    for card, player_states in overrides.items():
        if card not in sheet.catalog:
            sheet.report(DiagnosticKind.INVALID_REFERENCE,
                         f"Override for unknown card '{card}' ignored")
            continue
        if not isinstance(player_states, Mapping):
            sheet.report(DiagnosticKind.MALFORMED_OVERRIDE,
                         f"Override for '{card}' must map player -> state")
            continue

        for player, raw_state in player_states.items():
            if player not in sheet.players:
                sheet.report(DiagnosticKind.INVALID_REFERENCE,
                             f"Override for unknown player '{player}' on '{card}' ignored")
                continue
            try:
                state = CellState.parse(raw_state)
            except ValueError as e:
                sheet.report(DiagnosticKind.MALFORMED_OVERRIDE, f"'{card}'/{player}: {e}")
                continue
            if sheet.override(card, player, state):
                changed += 1

    return changed


def check_unique_holders(sheet: DetectiveSheet) -> list[str]:
    """Report cards that more than one player is recorded as holding."""
    conflicted = []
    for card in sheet.cards:
        holders = sheet.players_in_state(card, CellState.HAS)
        if len(holders) > 1:
            conflicted.append(card)
            sheet.report(DiagnosticKind.CONTRADICTION,
                         f"'{card}' is held by more than one player: {', '.join(holders)}")
    return conflicted
