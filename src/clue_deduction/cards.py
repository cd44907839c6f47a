"""
Card Catalog - the universe of Clue cards the engine reasons about.

The catalog is a plain immutable value handed to the engine at construction
time, so house rules and expansions (extra rooms, renamed suspects) can run
side by side with the classic game.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Optional, Union

from clue_deduction.errors import CatalogError


@dataclass(frozen=True)
class CardCategory:
    """One category of cards, e.g. the suspects."""
    name: str            # 'people', 'weapons', 'rooms'
    slot: str            # solution key: 'person', 'weapon', 'room'
    cards: tuple[str, ...]

    def __contains__(self, card: str) -> bool:
        return card in self.cards

    def __len__(self) -> int:
        return len(self.cards)


@dataclass(frozen=True)
class CardCatalog:
    """
    Ordered, immutable collection of card categories.

    Card order is catalog order: categories first to last, cards within a
    category as given. Every iteration in the engine follows this order.
    """
    categories: tuple[CardCategory, ...]

    def __post_init__(self):
        if not self.categories:
            raise CatalogError("A card catalog needs at least one category")

        seen_slots = set()
        seen_cards = {}
        for category in self.categories:
            if category.slot in seen_slots:
                raise CatalogError(f"Duplicate solution slot '{category.slot}'")
            seen_slots.add(category.slot)
            if not category.cards:
                raise CatalogError(f"Category '{category.name}' has no cards")
            for card in category.cards:
                if card in seen_cards:
                    raise CatalogError(
                        f"Card '{card}' appears in both '{seen_cards[card]}' "
                        f"and '{category.name}'"
                    )
                seen_cards[card] = category.name

    def __contains__(self, card: str) -> bool:
        return any(card in category for category in self.categories)

    def __iter__(self) -> Iterator[CardCategory]:
        return iter(self.categories)

    def __len__(self) -> int:
        return sum(len(category) for category in self.categories)

    @property
    def slots(self) -> tuple[str, ...]:
        return tuple(category.slot for category in self.categories)

    def all_cards(self) -> tuple[str, ...]:
        """All cards in catalog order."""
        return tuple(card for category in self.categories for card in category.cards)

    def category_of(self, card: str) -> Optional[CardCategory]:
        """Get the category a card belongs to, or None for an unknown card."""
        for category in self.categories:
            if card in category:
                return category
        return None

    def slot_of(self, card: str) -> Optional[str]:
        category = self.category_of(card)
        return category.slot if category else None

    def cards_in(self, slot: str) -> tuple[str, ...]:
        """Get the cards whose solution slot is `slot`."""
        for category in self.categories:
            if category.slot == slot:
                return category.cards
        raise KeyError(slot)


# Default slot names for the category keys used by the sheet JSON format
DEFAULT_SLOTS = {
    "people": "person",
    "suspects": "person",
    "weapons": "weapon",
    "rooms": "room",
}


def standard_catalog() -> CardCatalog:
    """Build the classic Cluedo catalog: 6 suspects, 6 weapons, 9 rooms."""
    return CardCatalog(categories=(
        CardCategory("people", "person", (
            "Miss Scarlet", "Colonel Mustard", "Mrs. White",
            "Mr. Green", "Mrs. Peacock", "Professor Plum",
        )),
        CardCategory("weapons", "weapon", (
            "Candlestick", "Knife", "Lead Pipe",
            "Revolver", "Rope", "Wrench",
        )),
        CardCategory("rooms", "room", (
            "Kitchen", "Ballroom", "Conservatory", "Dining Room",
            "Billiard Room", "Library", "Lounge", "Hall", "Study",
        )),
    ))


def catalog_from_dict(data: Mapping) -> CardCatalog:
    """
    Build a catalog from a mapping.

    Each value is either a list of card names (the slot is then taken from
    DEFAULT_SLOTS, falling back to the category name) or a mapping with
    "slot" and "cards" keys:

        {"people": ["Miss Scarlet", ...],
         "gadgets": {"slot": "gadget", "cards": ["Laser", ...]}}
    """
    if not isinstance(data, Mapping) or not data:
        raise CatalogError("Catalog data must be a non-empty mapping")

    categories = []
    for name, entry in data.items():
        if isinstance(entry, Mapping):
            slot = entry.get("slot") or DEFAULT_SLOTS.get(name, name)
            cards = entry.get("cards")
        else:
            slot = DEFAULT_SLOTS.get(name, name)
            cards = entry
        if not isinstance(cards, (list, tuple)) or not all(isinstance(c, str) for c in cards):
            raise CatalogError(f"Category '{name}' must list its cards as strings")
        categories.append(CardCategory(name, slot, tuple(cards)))

    return CardCatalog(categories=tuple(categories))


def load_catalog(path: Union[str, Path]) -> CardCatalog:
    """Load a catalog from a JSON file (see catalog_from_dict for the shape)."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise CatalogError(f"Could not read card catalog '{path}': {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Card catalog '{path}' is not valid JSON: {e}") from e
    return catalog_from_dict(data)
