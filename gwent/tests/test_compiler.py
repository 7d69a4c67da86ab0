"""
Tests for the card compiler.

Tests:
- Compiling the sample card file
- Status, omission of broken blocks and idempotence
- Card header validation and Power folding
- Diagnostic rendering
- Unreadable files
"""

import pytest

from ..card_schema.card import CardType, Faction, Range, SuperPower, UnitKind
from ..compiler import (
    CardCompiler,
    CardFileError,
    CompilationStatus,
    DiagnosticStage,
    SUCCESS_MESSAGE,
    compile_cards,
    compile_source,
)

DRAW = """
effect {
    Name: "Draw",
    Action: (targets, context) => { context.Hand.Add(context.Deck.Pop()); }
}
"""


def unit_card(name: str, power: str = "1", extra: str = "") -> str:
    return (
        f'card {{ Type: "Plata", Name: "{name}", Faction: "Gryffindor", '
        f'Power: {power}, Range: ["Melee"]{extra} }}\n'
    )


def messages(source: str) -> list[str]:
    return [d.message for d in compile_source(source).diagnostics]


class TestSampleFile:
    """The sample file compiles cleanly."""

    def test_status(self, compiled):
        assert compiled.status == CompilationStatus.SUCCESS
        assert compiled.success
        assert compiled.diagnostics == []
        assert compiled.message == SUCCESS_MESSAGE

    def test_cards(self, compiled):
        assert [c.name for c in compiled.cards] == ["Beluga", "Basilisco", "Niebla"]
        assert compiled.effects == ["Damage", "Draw", "ReturnToDeck"]

    def test_card_definition(self, compiled):
        beluga = compiled.card("Beluga")
        assert beluga.card_type == CardType.GOLD
        assert beluga.faction == Faction.GRYFFINDOR
        assert beluga.power == 10
        assert beluga.ranges == (Range.MELEE, Range.RANGED)
        assert beluga.unit_kind == UnitKind.GOLDEN
        assert [a.effect_name for a in beluga.activations] == ["Damage", "Draw"]
        assert beluga.activations[0].effect is not None

    def test_defaults(self, compiled):
        niebla = compiled.card("Niebla")
        assert niebla.power == 0
        assert niebla.ranges == ()
        assert niebla.super_power == SuperPower.WEATHER
        assert niebla.description == "Compiled card of type Clima"
        assert compiled.card("Basilisco").description == "A silver unit"

    def test_compile_cards_convenience(self, cards_path):
        assert compile_cards(cards_path).status == CompilationStatus.SUCCESS


class TestStatus:
    """Broken blocks are omitted; the rest of the file still compiles."""

    def test_one_malformed_block(self):
        source = (
            unit_card("A")
            + 'card { Type: "Plata" Name: "B" }\n'
            + unit_card("C")
        )
        result = compile_source(source)
        assert [c.name for c in result.cards] == ["A", "C"]
        assert result.status == CompilationStatus.PARTIAL
        assert len(result.diagnostics) == 1

    def test_semantic_error_omits_card(self):
        result = compile_source(unit_card("A") + unit_card("B", power='"high"'))
        assert [c.name for c in result.cards] == ["A"]
        assert [d.message for d in result.diagnostics] == ["'Power' must be Int, got String"]

    def test_out_of_range_literal(self):
        result = compile_source(unit_card("A") + unit_card("B", power="9" * 5000))
        assert [c.name for c in result.cards] == ["A"]
        [diagnostic] = [d for d in result.diagnostics if d.stage == DiagnosticStage.SYNTAX]
        assert diagnostic.message == f"Integer literal {'9' * 20}... is out of range"

    def test_largest_literal(self):
        result = compile_source(unit_card("A", power="2147483647"))
        assert result.cards[0].power == 2147483647
        assert "Integer literal 2147483648 is out of range" in messages(unit_card("B", power="2147483648"))

    def test_non_ascii_digit(self):
        result = compile_source(unit_card("A") + unit_card("B", power="\u00b2"))
        assert [c.name for c in result.cards] == ["A"]
        assert result.diagnostics[0].stage == DiagnosticStage.LEXICAL
        assert result.diagnostics[0].message == "Unrecognized character '\u00b2'"

    def test_failed(self):
        result = compile_source('card { Name: "A" }')
        assert result.status == CompilationStatus.FAILED
        assert result.cards == []

    def test_empty_file(self):
        result = compile_source("   // nothing here\n")
        assert result.status == CompilationStatus.SUCCESS
        assert result.cards == []

    def test_lexical_error_in_block(self):
        result = compile_source('card { Type: "Plata", $ Name: "A", Faction: "Gryffindor", Power: 1, Range: ["Melee"] }')
        assert [d.stage for d in result.diagnostics] == [DiagnosticStage.LEXICAL]
        assert result.cards == []

    def test_idempotent(self):
        source = DRAW + unit_card("A", extra=', OnActivation: [{ Effect: "Nope" }]') + unit_card("B")
        compiler = CardCompiler()
        first = compiler.compile_source(source)
        second = compiler.compile_source(source)
        assert [str(d) for d in first.diagnostics] == [str(d) for d in second.diagnostics]
        assert [c.name for c in first.cards] == [c.name for c in second.cards] == ["B"]


class TestEffects:
    """Effect registration."""

    def test_effect_declared_after_card(self):
        result = compile_source(unit_card("A", extra=', OnActivation: [{ Effect: "Draw" }]') + DRAW)
        assert result.status == CompilationStatus.SUCCESS

    def test_broken_effect_reported_once_per_use(self):
        source = """
            effect { Name: "Bad", Action: (targets, context) => { x = 1 + "a"; } }
        """ + unit_card("A", extra=', OnActivation: [{ Effect: "Bad" }]')
        assert messages(source) == [
            "Operand type mismatch for operator '+': expected Int, got Int and String",
            "Effect 'Bad' has errors and cannot be activated",
        ]

    def test_duplicate_effect(self):
        result = compile_source(DRAW + DRAW)
        assert [d.message for d in result.diagnostics] == ["Effect 'Draw' is declared more than once"]

    def test_duplicate_card(self):
        result = compile_source(unit_card("A", power="1") + unit_card("A", power="2"))
        assert [d.message for d in result.diagnostics] == ["Card 'A' is declared more than once"]
        assert [c.power for c in result.cards] == [1]


class TestHeaderValidation:
    """Card header rules."""

    def test_unknown_type(self):
        assert messages('card { Type: "Bronce", Name: "X", Faction: "Gryffindor" }') == [
            "Card 'X' has unknown Type 'Bronce', expected one of Oro, Plata, Clima, Aumento, Lider, Despeje"
        ]

    def test_unknown_faction(self):
        assert messages('card { Type: "Lider", Name: "X", Faction: "Hufflepuff" }') == [
            "Card 'X' has unknown Faction 'Hufflepuff', expected one of Gryffindor, Slytherin"
        ]

    def test_missing_fields(self):
        assert messages('card { Type: "Lider" }') == [
            "Card is missing 'Name'",
            "Card '<unnamed>' is missing 'Faction'",
        ]

    def test_unit_needs_power_and_range(self):
        assert messages('card { Type: "Oro", Name: "X", Faction: "Gryffindor" }') == [
            "Card 'X' of type Oro requires at least one 'Range'",
            "Card 'X' of type Oro requires 'Power'",
        ]

    def test_ranges(self):
        assert messages(
            'card { Type: "Aumento", Name: "X", Faction: "Slytherin", Power: 1, Range: ["Melee", "Air", "Melee"] }'
        ) == [
            "Card 'X' has unknown Range 'Air', expected Melee, Ranged or Siege",
            "Card 'X' lists Range 'Melee' twice",
        ]

    def test_leader_without_power(self):
        result = compile_source('card { Type: "Lider", Name: "X", Faction: "Slytherin" }')
        assert result.success
        assert result.cards[0].power == 0

    def test_placeholder_field_reported_once(self):
        """A malformed Power is a syntax error only; no follow-up about Power."""
        result = compile_source(
            'card { Type: "Oro", Name: "X", Faction: "Gryffindor", Power: (1 + , Range: ["Melee"] }\n'
            + unit_card("Y")
        )
        assert [d.stage for d in result.diagnostics] == [DiagnosticStage.SYNTAX]
        assert [c.name for c in result.cards] == ["Y"]


class TestPowerFolding:
    """Power is constant-folded by the expression evaluator."""

    @pytest.mark.parametrize("expression,value", [
        ("1 + 2 * 3", 7),
        ("10 - 4 - 3", 3),
        ("2 ^ 3 ^ 2", 64),
        ("-7 / 2", -3),
        ("(1 + 2) * 3", 9),
    ])
    def test_value(self, expression, value):
        result = compile_source(unit_card("X", power=expression))
        assert result.success, result.message
        assert result.cards[0].power == value

    def test_division_by_zero(self):
        assert messages(unit_card("X", power="1 / 0")) == ["'Power' cannot be evaluated: Division by zero"]

    @pytest.mark.parametrize("expression", ["2147483647 + 1", "2 ^ 31", "7 ^ 30000000"])
    def test_integer_overflow(self, expression):
        assert messages(unit_card("X", power=expression)) == ["'Power' cannot be evaluated: Integer overflow"]

    def test_context_not_available(self):
        assert messages(unit_card("X", power="Hand.Pop().Power")) == [
            "'Hand' can only be used inside an effect action"
        ]


class TestRendering:
    """Diagnostics render one per line with their position."""

    def test_format(self):
        result = compile_source('card {\n  Type: "Bronce", Name: "X", Faction: "Gryffindor"\n}')
        assert result.message == (
            "2:3: Card 'X' has unknown Type 'Bronce', expected one of "
            "Oro, Plata, Clima, Aumento, Lider, Despeje"
        )

    def test_multiple_lines(self):
        result = compile_source('junk\ncard { Type: "Lider" }')
        assert len(result.message.splitlines()) == len(result.diagnostics) == 3


class TestFiles:
    """Only an unreadable file is fatal."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(CardFileError) as excinfo:
            CardCompiler().compile(tmp_path / "missing.txt")
        assert "missing.txt" in str(excinfo.value)

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "cards.txt"
        path.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(CardFileError):
            CardCompiler().compile(path)

    def test_source_path_recorded(self, compiled, cards_path):
        assert compiled.source_path == str(cards_path)
