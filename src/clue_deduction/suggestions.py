"""
Suggestion records - the observed game events the engine ingests.

A suggestion is immutable once recorded: who suggested, the three proposed
cards, who passed, and how it ended (everyone passed, a known card was shown,
or a card was shown to someone else so we only know *that* one was shown).
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from clue_deduction.errors import SheetInputError

# Value of "revealer" in the sheet JSON format when nobody showed a card
PASS_MARKER = "pass"


@dataclass(frozen=True)
class AllPassed:
    """Nobody could disprove the suggestion."""


@dataclass(frozen=True)
class Revealed:
    """`revealer` showed `card`, and we saw which card it was."""
    revealer: str
    card: str


@dataclass(frozen=True)
class RevealedUnknown:
    """`revealer` showed one of the proposed cards, but we didn't see which."""
    revealer: str


Outcome = Union[AllPassed, Revealed, RevealedUnknown]


@dataclass(frozen=True)
class SuggestionEvent:
    """One suggestion as observed at the table."""
    suggester: str
    cards: tuple[str, ...]
    outcome: Outcome = field(default_factory=AllPassed)
    passers: tuple[str, ...] = ()

    def __post_init__(self):
        # Accept lists from callers but keep the record hashable
        object.__setattr__(self, "cards", tuple(self.cards))
        object.__setattr__(self, "passers", tuple(self.passers))

    @property
    def revealer(self) -> Optional[str]:
        if isinstance(self.outcome, (Revealed, RevealedUnknown)):
            return self.outcome.revealer
        return None

    @property
    def revealed_card(self) -> Optional[str]:
        if isinstance(self.outcome, Revealed):
            return self.outcome.card
        return None

    @property
    def all_passed(self) -> bool:
        return isinstance(self.outcome, AllPassed)

    def describe(self) -> str:
        """One-line human summary, used in logs and rendered output."""
        text = f"{self.suggester} suggested {'/'.join(self.cards)}"
        if isinstance(self.outcome, Revealed):
            text += f" -> {self.outcome.revealer} showed '{self.outcome.card}'"
        elif isinstance(self.outcome, RevealedUnknown):
            text += f" -> {self.outcome.revealer} showed a card"
        else:
            text += " -> NOT DISPROVED"
        if self.passers:
            text += f" (passed: {', '.join(self.passers)})"
        return text

    def as_dict(self) -> dict:
        """Serialize back to the sheet JSON format."""
        data = {
            "suggester": self.suggester,
            "cards": list(self.cards),
            "passers": list(self.passers),
            "revealer": self.revealer or PASS_MARKER,
        }
        if self.revealed_card:
            data["revealedCard"] = self.revealed_card
        return data


def suggestion_from_dict(data: Mapping) -> SuggestionEvent:
    """
    Build a SuggestionEvent from the sheet JSON format.

    Args:
        data: {"suggester": ..., "cards": [...], "passers": [...],
               "revealer": "pass" | player, "revealedCard": card | None}

    Returns:
        The parsed SuggestionEvent

    Raises:
        SheetInputError: if required keys are missing or have the wrong type
    """
    if not isinstance(data, Mapping):
        raise SheetInputError(f"Suggestion must be an object, got {type(data).__name__}")

    for key in ("suggester", "cards"):
        if key not in data:
            raise SheetInputError(f"Suggestion is missing '{key}'")

    cards = data["cards"]
    if not isinstance(cards, (list, tuple)):
        raise SheetInputError("Suggestion 'cards' must be a list")

    passers = data.get("passers") or []
    if not isinstance(passers, (list, tuple)):
        raise SheetInputError("Suggestion 'passers' must be a list")

    revealer = data.get("revealer")
    revealed_card = data.get("revealedCard", data.get("revealed_card"))

    if not isinstance(data["suggester"], str):
        raise SheetInputError("Suggestion 'suggester' must be a player name")
    for name, values in (("cards", cards), ("passers", passers)):
        if not all(isinstance(value, str) for value in values):
            raise SheetInputError(f"Suggestion '{name}' must only hold strings")
    if revealer is not None and not isinstance(revealer, str):
        raise SheetInputError("Suggestion 'revealer' must be a player name or 'pass'")
    if revealed_card is not None and not isinstance(revealed_card, str):
        raise SheetInputError("Suggestion 'revealedCard' must be a card name")

    if revealer is None or revealer == PASS_MARKER:
        outcome = AllPassed()
    elif revealed_card:
        outcome = Revealed(revealer=revealer, card=revealed_card)
    else:
        outcome = RevealedUnknown(revealer=revealer)

    return SuggestionEvent(
        suggester=data["suggester"],
        cards=tuple(cards),
        outcome=outcome,
        passers=tuple(passers),
    )
