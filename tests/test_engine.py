"""
Tests for the Deduction Engine
Covers suggestion ingestion, the four elimination rules, cleanup and
solution derivation.
"""

import pytest
from clue_deduction.cards import catalog_from_dict, standard_catalog
from clue_deduction.config import EngineSettings
from clue_deduction.engine import (
    DeductionEngine,
    circulation_evidence,
    last_holder_changes,
    process,
    process_sheet,
    singleton_set_changes,
    unique_holder_changes,
)
from clue_deduction.errors import DiagnosticKind, SheetInputError
from clue_deduction.sheet import CellState, DetectiveSheet
from clue_deduction.suggestions import (
    AllPassed,
    Revealed,
    RevealedUnknown,
    SuggestionEvent,
)

HAS = CellState.HAS
NOT = CellState.DOES_NOT_HAVE
MAYBE = CellState.MAYBE
UNKNOWN = CellState.UNKNOWN

PLAYERS = ["A", "B", "C"]


def suggestion(suggester, cards, outcome=None, passers=()):
    return SuggestionEvent(
        suggester=suggester,
        cards=tuple(cards),
        outcome=outcome or AllPassed(),
        passers=tuple(passers),
    )


def rule1_history():
    """B showed one of Plum/Wrench/Hall; C is later seen holding Plum and Wrench."""
    return [
        suggestion("A", ["Professor Plum", "Wrench", "Hall"], RevealedUnknown("B")),
        suggestion("A", ["Professor Plum", "Rope", "Study"], Revealed("C", "Professor Plum")),
        suggestion("A", ["Miss Scarlet", "Wrench", "Kitchen"], Revealed("C", "Wrench")),
    ]


class TestSuggestionIngestion:
    """Test how single suggestions update the grid."""

    def test_known_reveal(self):
        """The shown card is held; the other two are marked absent for the revealer."""
        result = process(PLAYERS, [
            suggestion("A", ["Miss Scarlet", "Knife", "Kitchen"], Revealed("B", "Knife")),
        ])

        assert result.state("Knife", "B") == HAS
        assert result.state("Miss Scarlet", "B") == NOT
        assert result.state("Kitchen", "B") == NOT

    def test_known_reveal_excludes_other_players(self):
        """Rule 1 follows a known reveal: nobody else holds the card."""
        result = process(PLAYERS, [
            suggestion("A", ["Miss Scarlet", "Knife", "Kitchen"], Revealed("B", "Knife")),
        ])

        assert result.state("Knife", "A") == NOT
        assert result.state("Knife", "C") == NOT
        assert result.holder_of("Knife") == "B"

    def test_all_passed_leaves_suggester_alone(self):
        """Nobody disproving marks everyone but the suggester."""
        result = process(PLAYERS, [
            suggestion("A", ["Colonel Mustard", "Rope", "Library"]),
        ])

        for card in ["Colonel Mustard", "Rope", "Library"]:
            assert result.state(card, "B") == NOT
            assert result.state(card, "C") == NOT
            assert result.state(card, "A") == UNKNOWN

    def test_passers_do_not_have_cards(self):
        """Each passer is marked as holding none of the three cards."""
        result = process(PLAYERS, [
            suggestion("A", ["Mrs. White", "Candlestick", "Lounge"],
                       RevealedUnknown("C"), passers=["B"]),
        ])

        for card in ["Mrs. White", "Candlestick", "Lounge"]:
            assert result.state(card, "B") == NOT
            assert result.state(card, "C") == MAYBE

    def test_unknown_reveal_creates_candidate_set(self):
        """An unseen card becomes a candidate set of the revealer."""
        result = process(PLAYERS, [
            suggestion("A", ["Mrs. White", "Candlestick", "Lounge"], RevealedUnknown("C")),
        ])

        sets = result.candidate_sets["C"]
        assert len(sets) == 1
        assert sets[0].cards == ["Mrs. White", "Candlestick", "Lounge"]
        assert sets[0].player == "C"
        assert sets[0].suggestion.suggester == "A"

    def test_unknown_reveal_skips_known_cards(self):
        """Cards already decided for the revealer are not eligible."""
        result = process(
            PLAYERS,
            [suggestion("A", ["Mrs. White", "Candlestick", "Lounge"], RevealedUnknown("C"))],
            {"Lounge": {"C": "does_not_have"}},
        )

        assert result.candidate_sets["C"][0].cards == ["Mrs. White", "Candlestick"]
        assert result.state("Lounge", "C") == NOT

    def test_passes_do_not_overwrite_known_states(self):
        """A pass never replaces an existing state."""
        result = process(
            PLAYERS,
            [suggestion("A", ["Mr. Green", "Revolver", "Study"], RevealedUnknown("C"),
                        passers=["B"])],
            {"Mr. Green": {"B": "has"}},
        )

        assert result.state("Mr. Green", "B") == HAS

    def test_strict_reveals_keeps_other_cards_open(self):
        """In strict mode a shown card says nothing about the other two."""
        settings = EngineSettings(strict_reveals=True)
        result = process(PLAYERS, [
            suggestion("A", ["Miss Scarlet", "Knife", "Kitchen"], Revealed("B", "Knife")),
        ], settings=settings)

        assert result.state("Knife", "B") == HAS
        assert result.state("Miss Scarlet", "B") == UNKNOWN
        assert result.state("Kitchen", "B") == UNKNOWN

    def test_reveal_over_absent_cell_is_contradiction(self):
        """A card seen in hand wins over an earlier 'does not have', with a warning."""
        result = process(
            PLAYERS,
            [suggestion("A", ["Miss Scarlet", "Knife", "Kitchen"], Revealed("B", "Knife"))],
            {"Knife": {"B": -1}},
        )

        assert result.state("Knife", "B") == HAS
        assert result.diagnostics_of(DiagnosticKind.CONTRADICTION)

    def test_unknown_reveal_with_nothing_eligible(self):
        """Showing a card while known to hold none of them is reported."""
        result = process(
            PLAYERS,
            [suggestion("A", ["Miss Scarlet", "Knife", "Kitchen"], RevealedUnknown("B"))],
            {"Miss Scarlet": {"B": -1}, "Knife": {"B": -1}, "Kitchen": {"B": -1}},
        )

        assert "B" not in result.candidate_sets
        assert result.diagnostics_of(DiagnosticKind.CONTRADICTION)


class TestEliminationRules:
    """Test the fixed-point elimination rules."""

    def test_unique_holder_excludes_others(self):
        """Rule 1: a card held by one player is not held by anyone else."""
        result = process(PLAYERS, [], {"Rope": {"A": "has"}})

        assert result.state("Rope", "B") == NOT
        assert result.state("Rope", "C") == NOT

    def test_unique_holder_pending_changes(self):
        """Rule 1 proposes changes without writing them."""
        sheet = DetectiveSheet(standard_catalog(), PLAYERS)
        sheet.override("Rope", "A", HAS)

        changes = unique_holder_changes(sheet)

        assert {(c.card, c.player) for c in changes} == {("Rope", "B"), ("Rope", "C")}
        assert sheet.state("Rope", "B") == UNKNOWN

    def test_two_holders_is_contradiction(self):
        """Two players holding one card is reported, not reconciled."""
        result = process(PLAYERS, [], {"Rope": {"A": "has", "B": "has"}})

        assert result.state("Rope", "C") == UNKNOWN
        assert result.diagnostics_of(DiagnosticKind.CONTRADICTION)

    def test_suggestion_local_exclusion(self):
        """Rule 2: holding one proposed card rules out the other MAYBE cards."""
        result = process(
            PLAYERS,
            [suggestion("A", ["Miss Scarlet", "Knife", "Kitchen"], RevealedUnknown("B"))],
            {"Knife": {"B": "has"}},
        )

        assert result.state("Miss Scarlet", "B") == NOT
        assert result.state("Kitchen", "B") == NOT
        assert "B" not in result.candidate_sets
        assert not result.diagnostics_of(DiagnosticKind.CONTRADICTION)

    def test_singleton_set_from_overrides(self):
        """Rule 3: with two cards ruled out, the third must be held."""
        result = process(
            PLAYERS,
            [suggestion("A", ["Professor Plum", "Wrench", "Hall"], RevealedUnknown("B"))],
            {"Professor Plum": {"B": "does_not_have"}, "Wrench": {"B": "does_not_have"}},
        )

        assert result.state("Hall", "B") == HAS
        assert result.state("Hall", "A") == NOT
        assert result.state("Hall", "C") == NOT
        assert "B" not in result.candidate_sets

    def test_singleton_set_after_unique_holder(self):
        """Rule 3 fires once Rule 1 removes the other cards from the set."""
        result = process(PLAYERS, rule1_history())

        assert result.state("Professor Plum", "B") == NOT
        assert result.state("Wrench", "B") == NOT
        assert result.state("Hall", "B") == HAS

    def test_singleton_set_pending_changes(self):
        """Rule 3 targets the one remaining MAYBE card."""
        sheet = DetectiveSheet(standard_catalog(), PLAYERS)
        sheet.add_candidate_set("B", ["Knife", "Rope"])
        sheet.mark("Knife", "B", MAYBE)
        sheet.mark("Rope", "B", MAYBE)
        sheet.mark("Rope", "B", NOT)

        changes = singleton_set_changes(sheet)

        assert [(c.card, c.player, c.state) for c in changes] == [("Knife", "B", HAS)]

    def test_last_holder_needs_evidence(self):
        """Rule 4 never fires for a card no suggestion put in circulation."""
        result = process(PLAYERS, [], {"Knife": {"A": "does_not_have", "B": "does_not_have"}})

        assert result.state("Knife", "C") == UNKNOWN
        assert result.solution.weapon is None

    def test_last_holder_with_evidence(self):
        """Rule 4: the only possible holder of a card in circulation holds it."""
        result = process(
            PLAYERS,
            [suggestion("A", ["Professor Plum", "Rope", "Study"], Revealed("B", "Rope"))],
            {"Professor Plum": {"A": "does_not_have"}},
        )

        assert result.state("Professor Plum", "B") == NOT
        assert result.state("Professor Plum", "C") == HAS
        assert result.solution.person is None

    def test_last_holder_revealed_card_evidence(self):
        """A card that was shown counts as evidence for Rule 4."""
        sheet = DetectiveSheet(standard_catalog(), PLAYERS)
        sheet.mark("Knife", "A", NOT)
        sheet.mark("Knife", "B", NOT)
        evidence = circulation_evidence([
            suggestion("A", ["Miss Scarlet", "Knife", "Kitchen"], Revealed("C", "Knife")),
        ])

        changes = last_holder_changes(sheet, evidence)

        assert [(c.card, c.player, c.state) for c in changes] == [("Knife", "C", HAS)]
        assert last_holder_changes(sheet, set()) == []

    def test_all_passed_is_not_evidence(self):
        """A suggestion nobody disproved doesn't put its cards in circulation."""
        evidence = circulation_evidence([suggestion("A", ["Colonel Mustard", "Rope", "Library"])])

        assert evidence == set()


class TestSolution:
    """Test solution derivation."""

    def test_card_absent_everywhere_is_solution(self):
        """A card nobody holds fills its slot."""
        result = process(PLAYERS, [], {
            "Knife": {"A": "does_not_have", "B": "does_not_have", "C": "does_not_have"},
        })

        assert result.solution.weapon == "Knife"
        assert result.solution.person is None
        assert not result.solution.is_complete()

    def test_full_solution(self):
        """With every category settled the accusation is complete."""
        catalog = standard_catalog()
        overrides = {}
        for category in catalog:
            overrides[category.cards[0]] = {"A": -1, "B": -1}
            for card in category.cards[1:]:
                overrides[card] = {"A": 1}

        result = process(["A", "B"], [], overrides)

        assert result.solution.as_dict() == {
            "person": "Miss Scarlet",
            "weapon": "Candlestick",
            "room": "Kitchen",
        }
        assert result.solution.is_complete()

    def test_contradictory_solution_is_anomaly(self):
        """Two cards qualifying for one slot leaves it open and warns."""
        result = process(PLAYERS, [], {
            "Knife": {"A": -1, "B": -1, "C": -1},
            "Rope": {"A": -1, "B": -1, "C": -1},
        })

        assert result.solution.weapon is None
        assert result.solution.anomalies == {"weapon": ["Knife", "Rope"]}
        assert result.diagnostics_of(DiagnosticKind.SOLUTION_ANOMALY)

    def test_no_players_no_solution(self):
        """Without players nothing is proven."""
        result = process([], [])

        assert result.solution.as_dict() == {"person": None, "weapon": None, "room": None}

    def test_custom_catalog(self):
        """The engine works with any category sizes."""
        catalog = catalog_from_dict({
            "people": ["P1", "P2"],
            "weapons": ["W1", "W2"],
            "rooms": ["R1", "R2", "R3"],
        })
        engine = DeductionEngine(catalog=catalog)

        result = engine.process(
            ["A", "B"],
            [suggestion("A", ["P1", "W1", "R1"])],
            {"P1": {"A": "does_not_have"}},
        )

        assert result.solution.person == "P1"
        assert result.solution.weapon is None
        assert list(result.grid) == ["P1", "P2", "W1", "W2", "R1", "R2", "R3"]


class TestProperties:
    """Test invariants that hold for any history."""

    def history(self):
        return rule1_history() + [
            suggestion("B", ["Mrs. Peacock", "Lead Pipe", "Ballroom"], RevealedUnknown("C")),
            suggestion("C", ["Mrs. Peacock", "Candlestick", "Ballroom"],
                       RevealedUnknown("A"), passers=["B"]),
            suggestion("B", ["Colonel Mustard", "Revolver", "Conservatory"]),
        ]

    def test_monotonic_across_passes(self):
        """Terminal cells are never lost or changed from one pass to the next."""
        full = process(PLAYERS, self.history())
        previous = None
        for passes in range(1, full.passes + 1):
            result = process(PLAYERS, self.history(), settings=EngineSettings(max_passes=passes))
            terminal = {
                (card, player): state
                for card, row in result.grid.items()
                for player, state in row.items()
                if state.is_terminal
            }
            if previous is not None:
                for cell, state in previous.items():
                    assert terminal[cell] == state
            previous = terminal

    def test_deterministic(self):
        """Two runs over the same input agree exactly."""
        first = process(PLAYERS, self.history())
        second = process(PLAYERS, self.history())

        assert first.as_dict() == second.as_dict()

    def test_no_false_solution(self):
        """A solution card is never held by anyone."""
        result = process(PLAYERS, self.history(), {"Kitchen": {"A": -1, "B": -1}})
        for card in result.solution.slots.values():
            if card is not None:
                assert HAS not in result.grid[card].values()

    def test_candidate_sets_only_hold_maybe_cards(self):
        """After cleanup every open set lists only MAYBE cards."""
        result = process(PLAYERS, self.history())

        for player, sets in result.candidate_sets.items():
            for candidate_set in sets:
                assert candidate_set.cards
                for card in candidate_set.cards:
                    assert result.state(card, player) == MAYBE

    def test_candidate_set_ids_are_sequential(self):
        """Set ids come from a per-run counter."""
        first = process(PLAYERS, self.history())
        second = process(PLAYERS, self.history())

        ids = [s.id for sets in first.candidate_sets.values() for s in sets]
        # Set #1 (B's) was resolved; C's and A's sets are still open
        assert sorted(ids) == [2, 3]
        assert ids == [s.id for sets in second.candidate_sets.values() for s in sets]

    def test_pass_cap(self):
        """Hitting the pass cap returns a usable, flagged result."""
        result = process(PLAYERS, rule1_history(), settings=EngineSettings(max_passes=1))

        assert result.passes == 1
        assert not result.converged
        assert result.diagnostics_of(DiagnosticKind.NOT_CONVERGED)

    def test_converges(self):
        """A sound history reaches a fixed point well under the cap."""
        result = process(PLAYERS, self.history())

        assert result.converged
        assert 1 <= result.passes < 100
        assert not result.diagnostics_of(DiagnosticKind.NOT_CONVERGED)


class TestSheetInput:
    """Test the sheet JSON document format."""

    def test_dict_suggestions(self):
        """Suggestions can be given in the sheet JSON shape."""
        result = process(PLAYERS, [
            {"suggester": "A", "cards": ["Miss Scarlet", "Knife", "Kitchen"],
             "passers": [], "revealer": "B", "revealedCard": "Knife"},
            {"suggester": "A", "cards": ["Colonel Mustard", "Rope", "Library"],
             "revealer": "pass"},
        ])

        assert result.state("Knife", "B") == HAS
        assert result.state("Rope", "C") == NOT
        assert result.state("Rope", "A") == UNKNOWN

    def test_process_sheet(self):
        """A whole sheet document runs through process_sheet."""
        result = process_sheet({
            "players": PLAYERS,
            "suggestions": [
                {"suggester": "A", "cards": ["Professor Plum", "Wrench", "Hall"], "revealer": "B"},
            ],
            "manualOverrides": {"Professor Plum": {"B": -1}, "Wrench": {"B": -1}},
        })

        assert result.state("Hall", "B") == HAS

    def test_process_sheet_requires_players(self):
        """A sheet without players is rejected."""
        with pytest.raises(SheetInputError):
            process_sheet({"suggestions": []})

    def test_as_dict_uses_integer_codes(self):
        """The JSON form keeps the sheet JSON cell codes."""
        result = process(PLAYERS, [
            suggestion("A", ["Miss Scarlet", "Knife", "Kitchen"], Revealed("B", "Knife")),
        ])
        data = result.as_dict()

        assert data["grid"]["Knife"] == {"A": -1, "B": 1, "C": -1}
        assert data["grid"]["Rope"]["A"] == 0
        assert data["solution"] == {"person": None, "weapon": None, "room": None}
        assert data["converged"] is True

    @pytest.mark.parametrize("players", [None, 5, "ABC", ["A", 7]])
    def test_process_sheet_rejects_bad_players(self, players):
        """Players that aren't a list of names are an input error."""
        with pytest.raises(SheetInputError, match="[Pp]layer"):
            process_sheet({"players": players, "suggestions": []})

    @pytest.mark.parametrize("field,value", [
        ("passers", [["B"]]),
        ("cards", ["Miss Scarlet", ["Knife"], "Kitchen"]),
        ("suggester", ["A"]),
        ("revealer", {"name": "B"}),
        ("revealedCard", 3),
    ])
    def test_process_sheet_rejects_non_string_names(self, field, value):
        """Names inside a suggestion must be strings."""
        entry = {"suggester": "A", "cards": ["Miss Scarlet", "Knife", "Kitchen"],
                 "passers": [], "revealer": "B", "revealedCard": "Knife"}
        entry[field] = value

        with pytest.raises(SheetInputError, match="Suggestion #1"):
            process_sheet({"players": PLAYERS, "suggestions": [entry]})


class TestCounters:
    """Test the bookkeeping counters on a result."""

    def test_counters_are_reported(self):
        """Writes, created and resolved sets, and contradictions are counted."""
        result = process(PLAYERS, [
            suggestion("A", ["Mr. Green", "Revolver", "Lounge"], RevealedUnknown("B")),
            suggestion("C", ["Mr. Green", "Rope", "Hall"], Revealed("B", "Mr. Green")),
        ], {"Knife": {"A": "has"}})

        assert result.counters.sets_created == 1
        assert result.counters.sets_resolved == 1
        assert result.counters.writes == len(result.log)
        assert result.counters.contradictions == 0

    def test_contradictions_are_counted(self):
        """Each contradiction diagnostic bumps the counter."""
        result = process(PLAYERS, [], {"Knife": {"A": "has", "B": "has"}})

        assert result.counters.contradictions == len(
            result.diagnostics_of(DiagnosticKind.CONTRADICTION)
        )
        assert result.counters.contradictions >= 1
