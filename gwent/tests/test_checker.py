"""
Tests for the type checker.

Tests:
- Kind annotation of expressions
- Operator, member, call and assignment rules
- Conditions and loops
- Activation, argument and selector rules
- No cascading errors after a mismatch
"""

import pytest

from ..card_schema.effect_dsl import (
    Binary,
    Identifier,
    Increment,
    KeywordRef,
    Lambda,
    Literal,
    MemberAccess,
    Unary,
    walk,
)
from ..card_schema.types import ValueKind
from ..compiler import compile_source
from ..compiler.checker import Checker
from ..compiler.diagnostics import DiagnosticSink, DiagnosticStage
from ..compiler.lexer import tokenize
from ..compiler.parser import Parser

EXPRESSION_NODES = (Literal, Identifier, KeywordRef, Unary, Increment, Binary, MemberAccess, Lambda)

EFFECTS = """
effect {
    Name: "Damage",
    Params: { Amount: Number },
    Action: (targets, context) => {
        for target in targets { target.Power -= Amount; };
    }
}

effect {
    Name: "Draw",
    Action: (targets, context) => { context.Hand.Add(context.Deck.Pop()); }
}
"""


def effect_source(body: str, params: str = "") -> str:
    return f'effect {{ Name: "E", {params} Action: (targets, context) => {{ {body} }} }}'


def body_messages(body: str, params: str = "") -> list[str]:
    result = compile_source(effect_source(body, params))
    return [d.message for d in result.diagnostics]


def card_source(activation: str) -> str:
    return EFFECTS + (
        'card { Type: "Plata", Name: "C", Faction: "Slytherin", Power: 1, '
        f'Range: ["Melee"], OnActivation: [ {activation} ] }}'
    )


def card_messages(activation: str) -> list[str]:
    result = compile_source(card_source(activation))
    return [d.message for d in result.diagnostics]


def checked_effect(body: str):
    sink = DiagnosticSink()
    effect = Parser(tokenize(effect_source(body), sink), sink).parse().effects[0]
    Checker(sink, {effect.name: effect}).check_effect(effect)
    return effect, sink


class TestAnnotation:
    """Every expression node receives a kind."""

    def test_member_chain_kind(self):
        """Field.Find(p).Pop().Power is Int."""
        effect, sink = checked_effect("y = Field.Find((c) => c.Power > 2).Pop().Power;")
        assert not sink.has_errors
        assignment = effect.body[0]
        assert assignment.value.kind == ValueKind.INT
        assert assignment.target.kind == ValueKind.INT
        find = assignment.value.receiver.receiver
        assert find.kind == ValueKind.CARD_COLLECTION
        assert find.args[0].kind == ValueKind.PREDICATE

    def test_all_expressions_annotated(self):
        effect, sink = checked_effect("""
            total = 0;
            for c in Board.Find((u) => u.Owner == TriggerPlayer) {
                total += c.Power;
                c.Power++;
            };
            label = "total" @@ total @ "!";
            if (not (total > 3) or total == 0) Hand.Shuffle();
        """)
        assert [d.message for d in sink] == ["Operand type mismatch for operator '@@': expected String, got String and Int"]
        kinds = [node.kind for node in walk(effect.body) if isinstance(node, EXPRESSION_NODES)]
        assert kinds
        assert ValueKind.UNASSIGNED not in kinds

    def test_context_parameter_names(self):
        """The Action's own parameter names are in scope."""
        sink = DiagnosticSink()
        source = 'effect { Name: "E", Action: (units, ctx) => { units.Shuffle(); ctx.Hand.Shuffle(); } }'
        effect = Parser(tokenize(source, sink), sink).parse().effects[0]
        Checker(sink, {}).check_effect(effect)
        assert not sink.has_errors


class TestExpressions:
    """Operator and member rules."""

    def test_operand_mismatch(self):
        assert body_messages('x = 1 + "a";') == [
            "Operand type mismatch for operator '+': expected Int, got Int and String"
        ]

    def test_no_cascade(self):
        """The mismatched sum is still Int, so `* 2` and the assignment are fine."""
        messages = body_messages('x = (1 + "a") * 2; y = x - 1;')
        assert len(messages) == 1

    def test_equality_needs_matching_kinds(self):
        assert body_messages('b = 1 == "a";') == [
            "Operand type mismatch for operator '==': expected operands of the same type, got Int and String"
        ]

    def test_not_needs_bool(self):
        assert body_messages("b = not 1;") == [
            "Operand type mismatch for operator 'not': expected Bool, got Int"
        ]

    def test_undefined_variable(self):
        assert body_messages("x = y + 1;") == ["Undefined variable 'y'"]

    def test_no_such_member(self):
        """Hand.Pop().Push() calls a collection method on a Card."""
        assert body_messages("Hand.Pop().Push();") == ["No such member 'Push' for type Card"]

    def test_method_without_call(self):
        assert body_messages("c = Hand.Pop;") == ["'Pop' is a method and must be called"]

    def test_property_called(self):
        assert body_messages("h = context.Hand();") == ["'Hand' is a property and cannot be called"]

    def test_arity(self):
        assert body_messages("Hand.Push();") == ["'Push' takes 1 argument(s), got 0"]

    def test_argument_kind(self):
        assert body_messages("Hand.Push(1);") == ["Argument of 'Push' must be Card, got Int"]

    def test_player_argument(self):
        assert body_messages("h = context.HandOfPlayer(context.TriggerPlayer);") == []
        assert body_messages('h = context.HandOfPlayer("me");') == [
            "Argument of 'HandOfPlayer' must be Player, got String"
        ]

    def test_predicate_must_be_bool(self):
        assert body_messages("f = Hand.Find((c) => c.Power);") == ["Predicate must be Bool, got Int"]

    def test_params_in_scope(self):
        assert body_messages("x = Amount + 1; s = Label @ \"!\";", "Params: { Amount: Number, Label: String },") == []


class TestStatements:
    """Assignment, conditions and loops."""

    def test_reassign_other_kind(self):
        assert body_messages('x = 1; x = "s";') == ["Cannot assign String to variable 'x' of type Int"]

    def test_assign_void(self):
        assert body_messages("x = Hand.Shuffle();") == ["Cannot assign a Void value"]

    def test_assign_read_only_member(self):
        assert body_messages("context.Hand = Deck;") == ["Member 'Hand' cannot be assigned"]

    def test_assign_power(self):
        assert body_messages("c = Hand.Pop(); c.Power = c.Power * 2;") == []

    def test_compound_assignment_needs_int(self):
        assert body_messages('c = Hand.Pop(); c.Power += "a";') == [
            "Operand type mismatch for operator '+=': expected Int, got Int and String"
        ]

    def test_condition_must_be_bool(self):
        assert body_messages("if (1) { }") == ["Condition must be Bool, got Int"]
        assert body_messages("while (Hand) { }") == ["Condition must be Bool, got CardCollection"]

    def test_for_needs_collection(self):
        assert body_messages("for c in 3 { }") == ["Loop source must be CardCollection, got Int"]

    def test_loop_variable_is_card(self):
        assert body_messages("for c in Hand { c.Power = 0; };") == []

    def test_block_scope(self):
        """A variable first assigned inside a branch is not visible after it."""
        assert body_messages("if (true) { x = 1; } y = x;") == ["Undefined variable 'x'"]


class TestActivations:
    """Card activations against declared effects."""

    def test_valid_activation(self):
        assert card_messages('{ Effect: { Name: "Damage", Amount: 2 }, Selector: { Source: "otherField" } }') == []

    def test_unknown_effect(self):
        assert card_messages('{ Effect: "Nope" }') == ["Unknown effect 'Nope'"]

    def test_missing_argument(self):
        assert card_messages('{ Effect: "Damage" }') == [
            "Effect 'Damage' requires parameter 'Amount' of type Int"
        ]

    def test_wrong_argument_kind(self):
        assert card_messages('{ Effect: { Name: "Damage", Amount: "five" } }') == [
            "Parameter 'Amount' of effect 'Damage' expects Int, got String"
        ]

    def test_unknown_argument(self):
        assert card_messages('{ Effect: { Name: "Draw", Extra: 1 } }') == [
            "Effect 'Draw' has no parameter 'Extra'"
        ]

    def test_constant_argument_expression(self):
        assert card_messages('{ Effect: { Name: "Damage", Amount: 2 * 3 } }') == []

    def test_parent_only_in_post_action(self):
        assert card_messages('{ Effect: "Draw", Selector: { Source: "parent" } }') == [
            "Source 'parent' is only valid inside a PostAction"
        ]
        assert card_messages(
            '{ Effect: "Draw", Selector: { Source: "hand" }, PostAction: { Type: "Draw", Selector: { Source: "parent" } } }'
        ) == []

    def test_unknown_source(self):
        messages = card_messages('{ Effect: "Draw", Selector: { Source: "sky" } }')
        assert len(messages) == 1
        assert messages[0].startswith("Unknown selector source 'sky'")

    def test_single_must_be_bool(self):
        assert card_messages('{ Effect: "Draw", Selector: { Source: "hand", Single: 1 } }') == [
            "'Single' must be Bool, got Int"
        ]

    def test_context_not_available_in_selector(self):
        messages = card_messages(
            '{ Effect: "Draw", Selector: { Source: "hand", Predicate: (u) => Hand.Pop().Power > 1 } }'
        )
        assert messages == ["'Hand' can only be used inside an effect action"]

    def test_errors_are_semantic(self):
        result = compile_source(card_source('{ Effect: "Nope" }'))
        assert {d.stage for d in result.diagnostics} == {DiagnosticStage.SEMANTIC}
        assert result.cards == []

    @pytest.mark.parametrize("post_key", ["Type", "Effect"])
    def test_post_action_effect_key(self, post_key):
        activation = f'{{ Effect: "Draw", PostAction: {{ {post_key}: "Draw" }} }}'
        assert card_messages(activation) == []
