"""
Type Checker - Annotates every expression with its ValueKind.

The checker never raises. Each rule violation is reported to the sink and
the node still receives the kind it was expected to have, so enclosing
expressions keep checking without a cascade of follow-up errors.
"""

from __future__ import annotations
from typing import Callable

from ..card_schema.tokens import TokenType
from ..card_schema.types import (
    KEYWORD_KINDS,
    OPERATOR_TYPES,
    ValueKind,
    compatible,
    lookup_member,
)
from ..card_schema.effect_dsl import (
    SELECTOR_SOURCES,
    Activation,
    Assignment,
    Binary,
    CardBlock,
    EffectDeclaration,
    Expression,
    ExpressionStatement,
    ForEach,
    Identifier,
    If,
    Increment,
    KeywordRef,
    Lambda,
    Literal,
    MemberAccess,
    Selector,
    Statement,
    Unary,
    While,
)
from .diagnostics import DiagnosticSink


class Scope:
    """
    Lexically nested variable kinds.

    has_context is true inside effect actions, where bare context
    properties such as `Hand` refer to the implicit game context.
    """

    def __init__(self, parent: Scope | None = None, has_context: bool = False):
        self.parent = parent
        self.has_context = has_context or (parent is not None and parent.has_context)
        self.names: dict[str, ValueKind] = {}

    def lookup(self, name: str) -> ValueKind | None:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.names:
                return scope.names[name]
            scope = scope.parent
        return None

    def declare(self, name: str, kind: ValueKind):
        self.names[name] = kind

    def child(self) -> Scope:
        return Scope(parent=self)


def _symbol(operator: TokenType) -> str:
    return operator.value


class Checker:
    """
    Checks effect declarations and card activations.

    Usage:
        checker = Checker(sink, effects_by_name)
        checker.check_effect(effect)
        checker.check_activation(activation)
    """

    def __init__(self, sink: DiagnosticSink, effects: dict[str, EffectDeclaration] | None = None):
        self.sink = sink
        self.effects = effects if effects is not None else {}

    # =========================================================================
    # Declarations
    # =========================================================================

    def check_effect(self, effect: EffectDeclaration):
        scope = Scope(has_context=True)
        scope.declare(effect.targets_name, ValueKind.CARD_COLLECTION)
        scope.declare(effect.context_name, ValueKind.CONTEXT)
        for param in effect.params:
            if param.name in scope.names:
                self.sink.semantic(
                    f"Parameter '{param.name}' of effect '{effect.name}' is declared twice",
                    param.position,
                )
            scope.declare(param.name, param.param_kind)
        self.check_statements(effect.body, scope)
        effect.kind = ValueKind.VOID

    def check_card(self, card: CardBlock):
        """Check the scripted parts of a card: its Power expression and activations."""
        if card.power is not None and "power" not in card.placeholders:
            self._expect_kind(card.power, Scope(), ValueKind.INT, "'Power'")
        for activation in card.activations:
            self.check_activation(activation)
        card.kind = ValueKind.VOID

    def check_activation(self, activation: Activation, in_post_action: bool = False):
        effect = self.effects.get(activation.effect_name)
        if effect is None:
            if activation.effect_name:
                self.sink.semantic(f"Unknown effect '{activation.effect_name}'", activation.position)
            for argument in activation.arguments.values():
                self.check_expression(argument, Scope())
        else:
            activation.effect = effect
            if effect.has_errors:
                self.sink.semantic(
                    f"Effect '{effect.name}' has errors and cannot be activated",
                    activation.position,
                )
            self._check_arguments(activation, effect)

        if activation.selector is not None:
            self.check_selector(activation.selector, in_post_action)
        if activation.post_action is not None:
            self.check_activation(activation.post_action, in_post_action=True)
        activation.kind = ValueKind.VOID

    def _check_arguments(self, activation: Activation, effect: EffectDeclaration):
        for param in effect.params:
            if param.name not in activation.arguments:
                self.sink.semantic(
                    f"Effect '{effect.name}' requires parameter '{param.name}' of type {param.param_kind}",
                    activation.position,
                )
        for name, argument in activation.arguments.items():
            kind = self.check_expression(argument, Scope())
            param = effect.param(name)
            if param is None:
                self.sink.semantic(
                    f"Effect '{effect.name}' has no parameter '{name}'",
                    getattr(argument, "position", activation.position),
                )
            elif not compatible(kind, param.param_kind):
                self.sink.semantic(
                    f"Parameter '{name}' of effect '{effect.name}' expects {param.param_kind}, got {kind}",
                    getattr(argument, "position", activation.position),
                )

    def check_selector(self, selector: Selector, in_post_action: bool = False):
        if selector.source not in SELECTOR_SOURCES:
            self.sink.semantic(
                f"Unknown selector source '{selector.source}', expected one of "
                + ", ".join(SELECTOR_SOURCES),
                selector.position,
            )
        elif selector.source == "parent" and not in_post_action:
            self.sink.semantic("Source 'parent' is only valid inside a PostAction", selector.position)

        if selector.single is not None:
            self._expect_kind(selector.single, Scope(), ValueKind.BOOL, "'Single'")
        if selector.predicate is not None:
            self.check_expression(selector.predicate, Scope())
        selector.kind = ValueKind.VOID

    # =========================================================================
    # Statements
    # =========================================================================

    def check_statements(self, statements: list[Statement], scope: Scope):
        for statement in statements:
            self.check_statement(statement, scope)

    def check_statement(self, statement: Statement, scope: Scope):
        handlers: dict[type, Callable[[Statement, Scope], None]] = {
            ExpressionStatement: self._check_expression_statement,
            Assignment: self._check_assignment,
            If: self._check_if,
            While: self._check_while,
            ForEach: self._check_for_each,
        }
        handlers[type(statement)](statement, scope)
        statement.kind = ValueKind.VOID

    def _check_expression_statement(self, statement: ExpressionStatement, scope: Scope):
        self.check_expression(statement.expression, scope)

    def _check_assignment(self, statement: Assignment, scope: Scope):
        value_kind = self.check_expression(statement.value, scope)
        target = statement.target

        if statement.operator != TokenType.ASSIGN:
            signature = OPERATOR_TYPES[statement.operator]
            target_kind = self._check_assignable(target, scope)
            if not compatible(target_kind, signature.operand) or not compatible(value_kind, signature.operand):
                self.sink.semantic(
                    f"Operand type mismatch for operator '{_symbol(statement.operator)}': "
                    f"expected {signature.operand}, got {target_kind} and {value_kind}",
                    statement.position,
                )
            return

        if value_kind == ValueKind.VOID:
            self.sink.semantic("Cannot assign a Void value", statement.position)
            value_kind = ValueKind.UNASSIGNED

        if isinstance(target, Identifier):
            declared = scope.lookup(target.name)
            if declared is None:
                scope.declare(target.name, value_kind)
                target.kind = value_kind
            else:
                target.kind = declared
                if not compatible(value_kind, declared):
                    self.sink.semantic(
                        f"Cannot assign {value_kind} to variable '{target.name}' of type {declared}",
                        statement.position,
                    )
            return

        target_kind = self._check_assignable(target, scope)
        if not compatible(value_kind, target_kind):
            self.sink.semantic(
                f"Cannot assign {value_kind} to a member of type {target_kind}",
                statement.position,
            )

    def _check_assignable(self, target: Expression, scope: Scope) -> ValueKind:
        """Kind of an assignment target, reporting targets that cannot be written."""
        kind = self.check_expression(target, scope)
        if isinstance(target, Identifier):
            return kind
        if isinstance(target, MemberAccess) and target.args is None:
            signature = lookup_member(target.receiver.kind, target.member)
            if signature is None or signature.assignable or target.receiver.kind == ValueKind.UNASSIGNED:
                return kind
            self.sink.semantic(f"Member '{target.member.value}' cannot be assigned", target.position)
            return kind
        self.sink.semantic("Invalid assignment target", getattr(target, "position", None))
        return kind

    def _check_if(self, statement: If, scope: Scope):
        self._expect_kind(statement.condition, scope, ValueKind.BOOL, "Condition")
        self.check_statements(statement.then_body, scope.child())
        self.check_statements(statement.else_body, scope.child())

    def _check_while(self, statement: While, scope: Scope):
        self._expect_kind(statement.condition, scope, ValueKind.BOOL, "Condition")
        self.check_statements(statement.body, scope.child())

    def _check_for_each(self, statement: ForEach, scope: Scope):
        self._expect_kind(statement.iterable, scope, ValueKind.CARD_COLLECTION, "Loop source")
        body_scope = scope.child()
        body_scope.declare(statement.variable, ValueKind.CARD)
        self.check_statements(statement.body, body_scope)

    # =========================================================================
    # Expressions
    # =========================================================================

    def check_expression(self, expression: Expression, scope: Scope) -> ValueKind:
        """Check expression, store its kind on the node and return it."""
        handlers: dict[type, Callable[[Expression, Scope], ValueKind]] = {
            Literal: self._check_literal,
            Identifier: self._check_identifier,
            KeywordRef: self._check_keyword,
            Unary: self._check_unary,
            Increment: self._check_increment,
            Binary: self._check_binary,
            MemberAccess: self._check_member,
            Lambda: self._check_lambda,
        }
        kind = handlers[type(expression)](expression, scope)
        expression.kind = kind
        return kind

    def _expect_kind(self, expression: Expression, scope: Scope, expected: ValueKind, what: str):
        kind = self.check_expression(expression, scope)
        if not compatible(kind, expected):
            self.sink.semantic(
                f"{what} must be {expected}, got {kind}",
                getattr(expression, "position", None),
            )

    def _check_literal(self, literal: Literal, scope: Scope) -> ValueKind:
        # bool before int: True is an int in Python
        if isinstance(literal.value, bool):
            return ValueKind.BOOL
        if isinstance(literal.value, int):
            return ValueKind.INT
        return ValueKind.STRING

    def _check_identifier(self, identifier: Identifier, scope: Scope) -> ValueKind:
        kind = scope.lookup(identifier.name)
        if kind is None:
            self.sink.semantic(f"Undefined variable '{identifier.name}'", identifier.position)
            return ValueKind.UNASSIGNED
        return kind

    def _check_keyword(self, keyword: KeywordRef, scope: Scope) -> ValueKind:
        if not scope.has_context:
            self.sink.semantic(
                f"'{keyword.keyword.value}' can only be used inside an effect action",
                keyword.position,
            )
        return KEYWORD_KINDS[keyword.keyword]

    def _check_unary(self, unary: Unary, scope: Scope) -> ValueKind:
        signature = OPERATOR_TYPES[unary.operator]
        kind = self.check_expression(unary.operand, scope)
        if not compatible(kind, signature.operand):
            self.sink.semantic(
                f"Operand type mismatch for operator '{_symbol(unary.operator)}': "
                f"expected {signature.operand}, got {kind}",
                unary.position,
            )
        return signature.result

    def _check_increment(self, increment: Increment, scope: Scope) -> ValueKind:
        signature = OPERATOR_TYPES[increment.operator]
        if isinstance(increment.target, Identifier) and scope.lookup(increment.target.name) is None:
            self.check_expression(increment.target, scope)
            return signature.result
        kind = self._check_assignable(increment.target, scope)
        if not compatible(kind, signature.operand):
            self.sink.semantic(
                f"Operand type mismatch for operator '{_symbol(increment.operator)}': "
                f"expected {signature.operand}, got {kind}",
                increment.position,
            )
        return signature.result

    def _check_binary(self, binary: Binary, scope: Scope) -> ValueKind:
        signature = OPERATOR_TYPES[binary.operator]
        left = self.check_expression(binary.left, scope)
        right = self.check_expression(binary.right, scope)

        if signature.operand is None:
            ok = compatible(left, right) and ValueKind.VOID not in (left, right)
            expected = "operands of the same type"
        else:
            ok = compatible(left, signature.operand) and compatible(right, signature.operand)
            expected = str(signature.operand)

        if not ok:
            self.sink.semantic(
                f"Operand type mismatch for operator '{_symbol(binary.operator)}': "
                f"expected {expected}, got {left} and {right}",
                binary.position,
            )
        return signature.result

    def _check_member(self, access: MemberAccess, scope: Scope) -> ValueKind:
        receiver = self.check_expression(access.receiver, scope)
        declared = KEYWORD_KINDS[access.member]
        member_name = access.member.value

        if receiver == ValueKind.UNASSIGNED:
            for argument in access.args or []:
                self.check_expression(argument, scope)
            return declared

        signature = lookup_member(receiver, access.member)
        if signature is None:
            self.sink.semantic(f"No such member '{member_name}' for type {receiver}", access.position)
            for argument in access.args or []:
                self.check_expression(argument, scope)
            return declared

        if signature.is_method and access.args is None:
            self.sink.semantic(f"'{member_name}' is a method and must be called", access.position)
            return signature.result
        if not signature.is_method:
            if access.args is not None:
                self.sink.semantic(f"'{member_name}' is a property and cannot be called", access.position)
                for argument in access.args:
                    self.check_expression(argument, scope)
            return signature.result

        if len(access.args) != len(signature.params):
            self.sink.semantic(
                f"'{member_name}' takes {len(signature.params)} argument(s), got {len(access.args)}",
                access.position,
            )
        for argument, expected in zip(access.args, signature.params):
            kind = self.check_expression(argument, scope)
            if not compatible(kind, expected):
                self.sink.semantic(
                    f"Argument of '{member_name}' must be {expected}, got {kind}",
                    getattr(argument, "position", access.position),
                )
        for argument in access.args[len(signature.params):]:
            self.check_expression(argument, scope)
        return signature.result

    def _check_lambda(self, predicate: Lambda, scope: Scope) -> ValueKind:
        body_scope = scope.child()
        body_scope.declare(predicate.parameter, ValueKind.CARD)
        self._expect_kind(predicate.body, body_scope, ValueKind.BOOL, "Predicate")
        return ValueKind.PREDICATE
