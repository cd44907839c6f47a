"""
Deduction Engine - turns a suggestion history into certain knowledge.

One run goes:

    validate input -> fresh sheet -> manual overrides -> ingest suggestions
    (once, in order) -> eliminate to a fixed point -> prune candidate sets
    -> derive the solution

The engine only makes deductions it is certain of. In particular it never
assumes a card is held by someone just because nobody else can hold it:
that card might be in the envelope, unless some suggestion showed it is
in circulation.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from clue_deduction.cards import CardCatalog, standard_catalog
from clue_deduction.config import EngineSettings
from clue_deduction.errors import Diagnostic, DiagnosticKind, SheetInputError
from clue_deduction.sheet import CandidateSet, CellState, DetectiveSheet, SheetCounters
from clue_deduction.suggestions import (
    AllPassed,
    Revealed,
    RevealedUnknown,
    SuggestionEvent,
)
from clue_deduction.validation import (
    accept_suggestions,
    apply_overrides,
    check_unique_holders,
    coerce_suggestions,
    unique_players,
)

logger = logging.getLogger(__name__)


@dataclass
class Solution:
    """The envelope as far as we can prove it: slot -> card, or None."""
    slots: dict[str, Optional[str]]
    # Slots where contradictory data left more than one card qualifying
    anomalies: dict[str, list[str]] = field(default_factory=dict)

    def __getitem__(self, slot: str) -> Optional[str]:
        return self.slots[slot]

    @property
    def person(self) -> Optional[str]:
        return self.slots.get("person")

    @property
    def weapon(self) -> Optional[str]:
        return self.slots.get("weapon")

    @property
    def room(self) -> Optional[str]:
        return self.slots.get("room")

    def is_complete(self) -> bool:
        """True when every slot is known, i.e. an accusation is safe."""
        return all(card is not None for card in self.slots.values())

    def as_dict(self) -> dict:
        return dict(self.slots)


@dataclass
class DeductionResult:
    """Everything one engine run worked out."""
    players: tuple[str, ...]
    grid: dict[str, dict[str, CellState]]
    candidate_sets: dict[str, list[CandidateSet]]
    solution: Solution
    diagnostics: list[Diagnostic]
    passes: int
    converged: bool
    log: list[str]
    catalog: CardCatalog
    counters: SheetCounters

    def state(self, card: str, player: str) -> CellState:
        return self.grid[card][player]

    def holder_of(self, card: str) -> Optional[str]:
        """The single player known to hold `card`, if any."""
        holders = [p for p, s in self.grid[card].items() if s == CellState.HAS]
        return holders[0] if len(holders) == 1 else None

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    def as_dict(self) -> dict:
        """JSON-ready form; cells use the sheet JSON integer codes."""
        return {
            "grid": {
                card: {player: state.code for player, state in row.items()}
                for card, row in self.grid.items()
            },
            "candidateSets": {
                player: [s.as_dict() for s in sets]
                for player, sets in self.candidate_sets.items()
            },
            "solution": self.solution.as_dict(),
            "diagnostics": [d.as_dict() for d in self.diagnostics],
            "passes": self.passes,
            "converged": self.converged,
        }


@dataclass(frozen=True)
class PendingChange:
    """A cell update a rule wants to make, applied after the rule's scan."""
    card: str
    player: str
    state: CellState
    reason: str
    # The cell must still be in one of these states when the change is applied
    requires: tuple[CellState, ...]
    prune: bool = False


# ----------------------------------------------------------------------
# Elimination rules
#
# Each rule scans a snapshot and returns the changes it wants; nothing is
# written until apply_changes runs.
# ----------------------------------------------------------------------

def unique_holder_changes(sheet: DetectiveSheet) -> list[PendingChange]:
    """Rule 1: a card held by exactly one player is held by nobody else."""
    cells = sheet.snapshot()
    changes = []
    for card in sheet.cards:
        holders = [p for p in sheet.players if cells[(card, p)] == CellState.HAS]
        if len(holders) != 1:
            continue
        for player in sheet.players:
            if player != holders[0] and cells[(card, player)] != CellState.DOES_NOT_HAVE:
                changes.append(PendingChange(
                    card, player, CellState.DOES_NOT_HAVE,
                    f"{holders[0]} holds it",
                    requires=(CellState.UNKNOWN, CellState.MAYBE),
                    prune=True,
                ))
    return changes


def suggestion_exclusion_changes(
    sheet: DetectiveSheet,
    suggestions: Iterable[SuggestionEvent],
) -> list[PendingChange]:
    """
    Rule 2: once the revealer of an unseen card is known to hold exactly
    one of the proposed cards, the other MAYBE cards are ruled out.
    """
    cells = sheet.snapshot()
    changes = []
    for suggestion in suggestions:
        if not isinstance(suggestion.outcome, RevealedUnknown):
            continue
        revealer = suggestion.outcome.revealer
        held = [c for c in suggestion.cards if cells[(c, revealer)] == CellState.HAS]
        if len(held) != 1:
            continue
        for card in suggestion.cards:
            if card != held[0] and cells[(card, revealer)] == CellState.MAYBE:
                changes.append(PendingChange(
                    card, revealer, CellState.DOES_NOT_HAVE,
                    f"showed '{held[0]}' for {suggestion.suggester}'s suggestion",
                    requires=(CellState.MAYBE,),
                    prune=True,
                ))
    return changes


def singleton_set_changes(sheet: DetectiveSheet) -> list[PendingChange]:
    """Rule 3: a candidate set with one MAYBE card left is resolved."""
    cells = sheet.snapshot()
    changes = []
    for player in sheet.players:
        for candidate_set in sheet.candidate_sets[player]:
            possible = [c for c in candidate_set.cards if cells[(c, player)] == CellState.MAYBE]
            if len(possible) == 1:
                changes.append(PendingChange(
                    possible[0], player, CellState.HAS,
                    f"last card left in set #{candidate_set.id}",
                    requires=(CellState.MAYBE,),
                ))
    return changes


def last_holder_changes(sheet: DetectiveSheet, evidence: set[str]) -> list[PendingChange]:
    """
    Rule 4: if only one player could hold a card and the card is known to
    be in circulation, that player holds it.

    Without evidence the card stays open: it may be in the envelope.
    """
    cells = sheet.snapshot()
    changes = []
    for card in sheet.cards:
        if card not in evidence:
            continue
        states = [cells[(card, p)] for p in sheet.players]
        if CellState.HAS in states or CellState.MAYBE in states:
            continue
        unknown = [p for p in sheet.players if cells[(card, p)] == CellState.UNKNOWN]
        if len(unknown) == 1:
            changes.append(PendingChange(
                card, unknown[0], CellState.HAS,
                "only possible holder of a card in circulation",
                requires=(CellState.UNKNOWN,),
            ))
    return changes


def circulation_evidence(suggestions: Iterable[SuggestionEvent]) -> set[str]:
    """Cards some suggestion showed to be held by a player."""
    evidence = set()
    for suggestion in suggestions:
        if suggestion.revealed_card:
            evidence.add(suggestion.revealed_card)
        if not suggestion.all_passed:
            evidence.update(suggestion.cards)
    return evidence


def apply_changes(sheet: DetectiveSheet, changes: Iterable[PendingChange]) -> bool:
    """
    Apply a rule's pending changes, skipping any whose cell has moved on.

    Returns:
        True if any cell changed
    """
    changed = False
    for change in changes:
        if sheet.state(change.card, change.player) not in change.requires:
            continue
        if sheet.mark(change.card, change.player, change.state, change.reason):
            changed = True
        if change.prune:
            sheet.remove_card_from_sets(change.card, change.player)
    return changed


def derive_solution(sheet: DetectiveSheet) -> Solution:
    """
    Read the solution off the grid.

    A card fills its slot only if every player is known not to hold it.
    """
    slots, anomalies = {}, {}
    for category in sheet.catalog:
        candidates = []
        if sheet.players:
            candidates = [
                card for card in category.cards
                if all(s == CellState.DOES_NOT_HAVE for s in sheet.row(card).values())
            ]
        if len(candidates) == 1:
            slots[category.slot] = candidates[0]
        else:
            slots[category.slot] = None
            if candidates:
                anomalies[category.slot] = candidates
                sheet.report(
                    DiagnosticKind.SOLUTION_ANOMALY,
                    f"No player holds any of {', '.join(candidates)}; "
                    f"only one {category.slot} can be in the envelope",
                )
    return Solution(slots=slots, anomalies=anomalies)


class DeductionEngine:
    """
    Conservative Clue deduction engine.

    The engine holds only its catalog and settings; every process() call
    works on a fresh sheet, so one engine can serve many games.
    """

    def __init__(
        self,
        catalog: Optional[CardCatalog] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.catalog = catalog or standard_catalog()
        self.settings = settings or EngineSettings()

    def process(
        self,
        players: Iterable[str],
        suggestions: Iterable = (),
        manual_overrides: Optional[Mapping] = None,
    ) -> DeductionResult:
        """
        Work out everything certain from a game's history.

        Args:
            players: Player names, in table order
            suggestions: SuggestionEvents, or dicts in the sheet format
            manual_overrides: card -> player -> state facts to assert first

        Returns:
            The DeductionResult for this history
        """
        players, duplicates = unique_players(players)
        events = coerce_suggestions(suggestions)

        sheet = DetectiveSheet(self.catalog, players)
        for name in duplicates:
            sheet.report(DiagnosticKind.INVALID_REFERENCE,
                         f"Player '{name}' listed more than once")

        apply_overrides(sheet, manual_overrides)
        check_unique_holders(sheet)

        accepted = [s for _, s in accept_suggestions(sheet, events)]
        for suggestion in accepted:
            self.ingest(sheet, suggestion)

        passes, converged = self.eliminate(sheet, accepted)
        sheet.prune_candidate_sets()
        solution = derive_solution(sheet)

        counters = sheet.counters
        logger.info(
            "Processed %d suggestion(s) for %d player(s) in %d pass(es): solution %s",
            len(accepted), len(players), passes, solution.as_dict(),
        )
        logger.info(
            "%d cell write(s), %d candidate set(s) created, %d resolved, %d contradiction(s)",
            counters.writes, counters.sets_created, counters.sets_resolved,
            counters.contradictions,
        )

        return DeductionResult(
            players=sheet.players,
            grid=sheet.grid(),
            candidate_sets=sheet.open_candidate_sets(),
            solution=solution,
            diagnostics=list(sheet.diagnostics),
            passes=passes,
            converged=converged,
            log=list(sheet.event_log),
            catalog=self.catalog,
            counters=counters,
        )

    def ingest(self, sheet: DetectiveSheet, suggestion: SuggestionEvent):
        """Record what one suggestion tells us."""
        cards = suggestion.cards
        suggester = suggestion.suggester
        outcome = suggestion.outcome
        logger.debug("Ingesting: %s", suggestion.describe())

        # Passing proves a player holds none of the three cards
        for passer in suggestion.passers:
            for card in cards:
                if sheet.state(card, passer) == CellState.UNKNOWN:
                    sheet.mark(card, passer, CellState.DOES_NOT_HAVE,
                               f"passed on {suggester}'s suggestion")

        if isinstance(outcome, AllPassed):
            # Nothing is inferred about the suggester's own hand
            for card in cards:
                for player in sheet.players:
                    if player != suggester and sheet.state(card, player) == CellState.UNKNOWN:
                        sheet.mark(card, player, CellState.DOES_NOT_HAVE,
                                   f"nobody disproved {suggester}'s suggestion")

        elif isinstance(outcome, Revealed):
            sheet.force_has(outcome.card, outcome.revealer, f"showed it to {suggester}")
            if not self.settings.strict_reveals:
                for card in cards:
                    if card != outcome.card and sheet.state(card, outcome.revealer) == CellState.UNKNOWN:
                        sheet.mark(card, outcome.revealer, CellState.DOES_NOT_HAVE,
                                   f"showed '{outcome.card}' instead")

        elif isinstance(outcome, RevealedUnknown):
            revealer = outcome.revealer
            eligible = [
                c for c in cards
                if sheet.state(c, revealer) not in (CellState.DOES_NOT_HAVE, CellState.HAS)
            ]
            if eligible:
                sheet.add_candidate_set(revealer, eligible, suggestion)
                for card in eligible:
                    if sheet.state(card, revealer) == CellState.UNKNOWN:
                        sheet.mark(card, revealer, CellState.MAYBE,
                                   f"showed one of {'/'.join(eligible)}")
            elif not any(sheet.state(c, revealer) == CellState.HAS for c in cards):
                sheet.report(
                    DiagnosticKind.CONTRADICTION,
                    f"{revealer} showed a card for {suggester}'s suggestion "
                    f"but is known to hold none of {'/'.join(cards)}",
                )

    def eliminate(self, sheet: DetectiveSheet, suggestions: list[SuggestionEvent]) -> tuple[int, bool]:
        """
        Run the four rules until a full pass changes nothing.

        Returns:
            (passes run, whether a fixed point was reached)
        """
        evidence = circulation_evidence(suggestions)
        passes = 0

        while passes < self.settings.max_passes:
            passes += 1
            changed = apply_changes(sheet, unique_holder_changes(sheet))
            changed |= apply_changes(sheet, suggestion_exclusion_changes(sheet, suggestions))
            changed |= apply_changes(sheet, singleton_set_changes(sheet))
            changed |= apply_changes(sheet, last_holder_changes(sheet, evidence))
            if not changed:
                return passes, True

        sheet.report(
            DiagnosticKind.NOT_CONVERGED,
            f"Still changing after {passes} passes; the result may be incomplete",
        )
        return passes, False


def process(
    players: Iterable[str],
    suggestions: Iterable = (),
    manual_overrides: Optional[Mapping] = None,
    catalog: Optional[CardCatalog] = None,
    settings: Optional[EngineSettings] = None,
) -> DeductionResult:
    """Run a one-off DeductionEngine over a game's history."""
    return DeductionEngine(catalog, settings).process(players, suggestions, manual_overrides)


def process_sheet(
    data: Mapping,
    catalog: Optional[CardCatalog] = None,
    settings: Optional[EngineSettings] = None,
) -> DeductionResult:
    """
    Run the engine over a whole sheet document:

        {"players": [...], "suggestions": [...], "manualOverrides": {...}}
    """
    if not isinstance(data, Mapping):
        raise SheetInputError(f"Sheet must be an object, got {type(data).__name__}")
    if "players" not in data:
        raise SheetInputError("Sheet is missing 'players'")

    suggestions = data.get("suggestions") or []
    if not isinstance(suggestions, (list, tuple)):
        raise SheetInputError("'suggestions' must be a list")
    overrides = data.get("manualOverrides", data.get("manual_overrides"))

    return process(data["players"], suggestions, overrides, catalog, settings)
