"""
Detective Sheet - the belief grid behind every deduction.

The sheet holds one cell per (card, player) pair plus each player's
candidate sets ("this player holds at least one of these cards"). It is
built fresh for every engine run and thrown away afterwards.

Cells only ever move toward more information:

    UNKNOWN -> MAYBE -> HAS
    UNKNOWN -> MAYBE -> DOES_NOT_HAVE
    UNKNOWN ---------> HAS | DOES_NOT_HAVE

HAS and DOES_NOT_HAVE are terminal. Manual overrides and directly observed
reveals are the only writes allowed to replace a terminal state, and both
leave a CONTRADICTION diagnostic behind when they do.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from clue_deduction.cards import CardCatalog
from clue_deduction.errors import Diagnostic, DiagnosticKind
from clue_deduction.suggestions import SuggestionEvent

logger = logging.getLogger(__name__)


class CellState(Enum):
    """What we know about one player holding one card."""
    UNKNOWN = "?"        # No information
    HAS = "✓"            # Confirmed they hold the card
    DOES_NOT_HAVE = "✗"  # Confirmed they don't hold the card
    MAYBE = "~"          # Part of an open candidate set

    @property
    def code(self) -> int:
        """Integer code used by the sheet JSON format."""
        return _STATE_CODES[self]

    @property
    def is_terminal(self) -> bool:
        return self in (CellState.HAS, CellState.DOES_NOT_HAVE)

    @classmethod
    def parse(cls, value) -> "CellState":
        """
        Parse a state from a member, integer code, name or symbol.

        Raises:
            ValueError: if the value can't be read as a state
        """
        if isinstance(value, cls):
            return value
        # bool is an int subclass; True/False are not states
        if isinstance(value, int) and not isinstance(value, bool):
            for state, code in _STATE_CODES.items():
                if code == value:
                    return state
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_").replace(" ", "_")
            if key in _STATE_ALIASES:
                return _STATE_ALIASES[key]
            for state in cls:
                if value.strip() == state.value:
                    return state
        raise ValueError(f"Not a cell state: {value!r}")


_STATE_CODES = {
    CellState.UNKNOWN: 0,
    CellState.HAS: 1,
    CellState.DOES_NOT_HAVE: -1,
    CellState.MAYBE: 2,
}

_STATE_ALIASES = {
    "UNKNOWN": CellState.UNKNOWN,
    "HAS": CellState.HAS,
    "DOES_NOT_HAVE": CellState.DOES_NOT_HAVE,
    "DOESNT_HAVE": CellState.DOES_NOT_HAVE,
    "NOT_HAS": CellState.DOES_NOT_HAVE,
    "MAYBE": CellState.MAYBE,
}


@dataclass
class CandidateSet:
    """A disjunctive constraint: `player` holds at least one of `cards`."""
    id: int
    player: str
    cards: list[str]
    suggestion: Optional[SuggestionEvent] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "player": self.player,
            "cards": list(self.cards),
            "suggestion": self.suggestion.as_dict() if self.suggestion else None,
        }


@dataclass
class SheetCounters:
    """Per-sheet bookkeeping, mostly useful when debugging a stuck run."""
    writes: int = 0
    sets_created: int = 0
    sets_resolved: int = 0
    contradictions: int = 0


class DetectiveSheet:
    """
    Belief grid over which player holds which card.

    Grid structure:
    - Rows: every card in the catalog, in catalog order
    - Columns: every player, in the order supplied

    Stored as a flat table keyed by (card, player); every pair is present
    from construction on.
    """

    def __init__(self, catalog: CardCatalog, players: Iterable[str]):
        self.catalog = catalog
        self.players: tuple[str, ...] = tuple(players)
        self.cards: tuple[str, ...] = catalog.all_cards()
        self._cells: dict[tuple[str, str], CellState] = {
            (card, player): CellState.UNKNOWN
            for card in self.cards
            for player in self.players
        }
        self.candidate_sets: dict[str, list[CandidateSet]] = {p: [] for p in self.players}
        self.diagnostics: list[Diagnostic] = []
        self.event_log: list[str] = []
        self.counters = SheetCounters()
        self._next_set_id = 1

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def state(self, card: str, player: str) -> CellState:
        return self._cells[(card, player)]

    def row(self, card: str) -> dict[str, CellState]:
        """Get every player's state for one card."""
        return {player: self._cells[(card, player)] for player in self.players}

    def players_in_state(self, card: str, *states: CellState) -> list[str]:
        return [p for p in self.players if self._cells[(card, p)] in states]

    def snapshot(self) -> dict[tuple[str, str], CellState]:
        """Copy of the grid for rules that read first and write later."""
        return dict(self._cells)

    def grid(self) -> dict[str, dict[str, CellState]]:
        """The grid as card -> player -> state, in catalog and player order."""
        return {card: self.row(card) for card in self.cards}

    # ------------------------------------------------------------------
    # Cell updates
    # ------------------------------------------------------------------

    def override(self, card: str, player: str, state: CellState) -> bool:
        """
        Write a caller-asserted fact, bypassing the transition rules.

        Returns:
            True if the cell changed
        """
        current = self._cells[(card, player)]
        if current == state:
            return False
        if current.is_terminal and state.is_terminal:
            self.report(
                DiagnosticKind.CONTRADICTION,
                f"Override sets {player} {state.name} for '{card}', "
                f"replacing {current.name}",
            )
        self._set(card, player, state, "override")
        return True

    def mark(self, card: str, player: str, state: CellState, reason: str = "") -> bool:
        """
        Move a cell to `state` if that adds information.

        Marking HAS also resolves the player's candidate sets that contain
        the card (see resolve_sets).

        Returns:
            True if the cell changed
        """
        current = self._cells[(card, player)]
        if current == state or state == CellState.UNKNOWN:
            return False
        if current.is_terminal:
            self.report(
                DiagnosticKind.CONTRADICTION,
                f"Cannot mark {player} {state.name} for '{card}': "
                f"already {current.name} ({reason or 'deduction'})",
            )
            return False
        self._set(card, player, state, reason)
        if state == CellState.HAS:
            self.resolve_sets(player, card)
        return True

    def force_has(self, card: str, player: str, reason: str = "") -> bool:
        """
        Mark HAS from a direct observation, even over DOES_NOT_HAVE.

        Returns:
            True if the cell changed
        """
        current = self._cells[(card, player)]
        if current == CellState.HAS:
            return False
        if current == CellState.DOES_NOT_HAVE:
            self.report(
                DiagnosticKind.CONTRADICTION,
                f"{player} was seen showing '{card}' but was marked as not having it",
            )
        self._set(card, player, CellState.HAS, reason)
        self.resolve_sets(player, card)
        return True

    def _set(self, card: str, player: str, state: CellState, reason: str):
        self._cells[(card, player)] = state
        self.counters.writes += 1
        line = f"{player} {_VERBS[state]} '{card}'"
        if reason:
            line += f" ({reason})"
        self.event_log.append(line)
        logger.debug("DEDUCED: %s", line)

    # ------------------------------------------------------------------
    # Candidate sets
    # ------------------------------------------------------------------

    def add_candidate_set(
        self,
        player: str,
        cards: Iterable[str],
        suggestion: Optional[SuggestionEvent] = None,
    ) -> CandidateSet:
        """Record that `player` holds at least one of `cards`."""
        candidate_set = CandidateSet(
            id=self._next_set_id,
            player=player,
            cards=list(cards),
            suggestion=suggestion,
        )
        self._next_set_id += 1
        self.counters.sets_created += 1
        self.candidate_sets[player].append(candidate_set)
        logger.debug("Candidate set #%d: %s holds one of %s",
                     candidate_set.id, player, candidate_set.cards)
        return candidate_set

    def remove_card_from_sets(self, card: str, player: str):
        """Drop `card` from every candidate set of `player`."""
        for candidate_set in self.candidate_sets.get(player, []):
            if card in candidate_set.cards:
                candidate_set.cards.remove(card)

    def resolve_sets(self, player: str, definite_card: str):
        """
        Clean up after `player` is known to hold `definite_card`.

        Every set containing the card is satisfied: its other MAYBE cards
        become DOES_NOT_HAVE and the set is deleted.
        """
        sets = self.candidate_sets.get(player, [])
        resolved = [s for s in sets if definite_card in s.cards]
        if not resolved:
            return

        self.candidate_sets[player] = [s for s in sets if definite_card not in s.cards]
        self.counters.sets_resolved += len(resolved)
        for candidate_set in resolved:
            for card in candidate_set.cards:
                if card != definite_card and self._cells[(card, player)] == CellState.MAYBE:
                    self.mark(card, player, CellState.DOES_NOT_HAVE,
                              f"set #{candidate_set.id} resolved by '{definite_card}'")

    def prune_candidate_sets(self):
        """
        Final cleanup: sets keep only cards still MAYBE for their player,
        and empty sets are dropped.
        """
        for player in self.players:
            kept = []
            for candidate_set in self.candidate_sets[player]:
                had_cards = bool(candidate_set.cards)
                candidate_set.cards = [
                    card for card in candidate_set.cards
                    if self._cells[(card, player)] == CellState.MAYBE
                ]
                if candidate_set.cards:
                    kept.append(candidate_set)
                elif had_cards:
                    self.report(
                        DiagnosticKind.CONTRADICTION,
                        f"{player} must hold one of candidate set #{candidate_set.id}, "
                        f"but every card in it has been ruled out",
                    )
            self.candidate_sets[player] = kept

    def open_candidate_sets(self) -> dict[str, list[CandidateSet]]:
        """Players with at least one open candidate set."""
        return {p: list(sets) for p, sets in self.candidate_sets.items() if sets}

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def report(self, kind: DiagnosticKind, message: str, suggestion_index: Optional[int] = None):
        diagnostic = Diagnostic(kind=kind, message=message, suggestion_index=suggestion_index)
        if kind == DiagnosticKind.CONTRADICTION:
            self.counters.contradictions += 1
        self.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic)


_VERBS = {
    CellState.UNKNOWN: "is unknown for",
    CellState.HAS: "HAS",
    CellState.DOES_NOT_HAVE: "does NOT have",
    CellState.MAYBE: "MAYBE has",
}
