"""
Parser - Builds effect declarations and card blocks from tokens.

Expressions use precedence climbing over the PRECEDENCE table; member
chains (`Field.Find(p).Pop().Power`) are parsed left to right above
every operator tier.

Error recovery happens at three levels:
- Block: an error that escapes a `card`/`effect` block skips to the next
  top-level declaration; the rest of the file still parses.
- Header field: a malformed field value is reported, skipped up to the
  next `,`/`}` and replaced by a placeholder.
- Statement: a malformed statement inside an effect body is reported and
  skipped up to the next `;`/`}`.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable

from ..card_schema.tokens import SourcePosition, Token, TokenType
from ..card_schema.types import (
    BINARY_OPERATORS,
    IMPLICIT_CONTEXT_MEMBERS,
    INT_MAX,
    MEMBER_TOKENS,
    PARAM_KINDS,
    PRECEDENCE,
)
from ..card_schema.effect_dsl import (
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
    ParamDeclaration,
    Selector,
    Statement,
    Unary,
    While,
)
from .diagnostics import DiagnosticSink, DiagnosticStage

_OPENERS = {TokenType.LBRACE, TokenType.LPAREN, TokenType.LBRACKET}
_CLOSERS = {TokenType.RBRACE, TokenType.RPAREN, TokenType.RBRACKET}
_DECLARATIONS = {TokenType.CARD_DECL, TokenType.EFFECT_DECL}
_ASSIGNMENT_OPERATORS = {TokenType.ASSIGN, TokenType.PLUS_EQUAL, TokenType.MINUS_EQUAL}


class ParseError(Exception):
    """Unrecoverable problem inside the construct being parsed."""

    def __init__(self, message: str, position: SourcePosition):
        self.message = message
        self.position = position
        super().__init__(message)


@dataclass
class ParsedFile:
    """Every declaration found in a file, in source order."""
    effects: list[EffectDeclaration] = field(default_factory=list)
    cards: list[CardBlock] = field(default_factory=list)
    # card blocks dropped because the parser could not finish them
    abandoned_cards: int = 0


class Parser:
    """
    Recursive-descent parser over a token list.

    Usage:
        parsed = Parser(tokens, sink).parse()
    """

    def __init__(self, tokens: list[Token], sink: DiagnosticSink):
        self.tokens = tokens
        self.sink = sink
        self.pos = 0

    # =========================================================================
    # Token helpers
    # =========================================================================

    @property
    def current(self) -> Token:
        return self.peek(0)

    def peek(self, offset: int) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def check(self, *types: TokenType) -> bool:
        return self.current.type in types

    def advance(self) -> Token:
        token = self.current
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def match(self, *types: TokenType) -> Token | None:
        if self.check(*types):
            return self.advance()
        return None

    def expect(self, token_type: TokenType, what: str | None = None) -> Token:
        if self.check(token_type):
            return self.advance()
        wanted = what or f"'{token_type.value}'"
        raise ParseError(f"Expected {wanted} but found {self.current}", self.current.position)

    def _skip_to(self, stops: set[TokenType]):
        """
        Skip tokens until one of stops appears outside any nested
        bracket, or a closer would leave the current nesting level.
        Top-level declarations always stop the skip. The stop token
        itself is not consumed.
        """
        depth = 0
        while not self.check(TokenType.EOF, *_DECLARATIONS):
            token_type = self.current.type
            if depth == 0 and token_type in stops:
                return
            if token_type in _OPENERS:
                depth += 1
            elif token_type in _CLOSERS:
                if depth == 0:
                    return
                depth -= 1
            self.advance()

    def _report(self, error: ParseError):
        self.sink.syntax(error.message, error.position)

    # =========================================================================
    # File and blocks
    # =========================================================================

    def parse(self) -> ParsedFile:
        parsed = ParsedFile()
        while not self.check(TokenType.EOF):
            if self.check(TokenType.EFFECT_DECL):
                parsed.effects.append(self._parse_block(self._parse_effect, EffectDeclaration))
            elif self.check(TokenType.CARD_DECL):
                block = self._parse_block(self._parse_card, CardBlock)
                if block is None:
                    parsed.abandoned_cards += 1
                else:
                    parsed.cards.append(block)
            else:
                self.sink.syntax(
                    f"Expected 'card' or 'effect' but found {self.current}",
                    self.current.position,
                )
                self._synchronize()
        parsed.effects = [e for e in parsed.effects if e is not None]
        return parsed

    def _parse_block(self, parse_body: Callable, node_type: type):
        """
        Parse one top-level declaration.

        Effects that fail part way are kept (flagged) so cards using them
        do not get a second, misleading "unknown effect" error. Card
        blocks that fail part way are dropped.
        """
        start = self.advance()
        mark = self.sink.mark()
        node = node_type(position=start.position)
        try:
            parse_body(node)
        except ParseError as error:
            self._report(error)
            self._synchronize()
            node.has_errors = True
            if isinstance(node, EffectDeclaration):
                node.body = []
                return node if node.name else None
            return None

        end = self.peek(-1).position if self.pos > 0 else start.position
        node.has_errors = (
            len(self.sink) > mark
            or self._lexical_errors_between(start.position, end)
        )
        return node

    def _synchronize(self):
        """Skip to the next top-level `card` or `effect` keyword."""
        while not self.check(TokenType.EOF, *_DECLARATIONS):
            self.advance()

    def _lexical_errors_between(self, start: SourcePosition, end: SourcePosition) -> bool:
        span = ((start.line, start.column), (end.line, end.column))
        return any(
            d.stage == DiagnosticStage.LEXICAL
            and d.position is not None
            and span[0] <= (d.position.line, d.position.column) <= span[1]
            for d in self.sink
        )

    def _parse_fields(
        self,
        owner: str,
        handlers: dict[TokenType, Callable[[Token], None]],
        on_error: Callable[[Token], None] | None = None,
    ):
        """
        Parse `{ Field: value, ... }`, dispatching each field to its handler.

        A handler that raises ParseError loses only its own field: the
        error is reported, the value skipped and on_error records a
        placeholder.
        """
        self.expect(TokenType.LBRACE)
        seen: set[TokenType] = set()
        while not self.check(TokenType.RBRACE):
            name = self.advance()
            handler = handlers.get(name.type)
            if handler is None:
                self.sink.syntax(f"Unknown field {name} in {owner}", name.position)
                self.match(TokenType.COLON)
                self._skip_to({TokenType.COMMA, TokenType.RBRACE})
            else:
                if name.type in seen:
                    self.sink.syntax(f"Duplicate field {name} in {owner}", name.position)
                seen.add(name.type)
                value_start = self.pos
                try:
                    self.expect(TokenType.COLON)
                    handler(name)
                except ParseError as error:
                    self._report(error)
                    failed_at = self.pos
                    # Skip the whole value from its start so nested brackets
                    # balance; an unbalanced value runs off the block, so skip
                    # from the error instead.
                    self.pos = value_start
                    self._skip_to({TokenType.COMMA, TokenType.RBRACE})
                    if self.check(TokenType.EOF, *_DECLARATIONS):
                        self.pos = failed_at
                        self._skip_to({TokenType.COMMA, TokenType.RBRACE})
                    if on_error:
                        on_error(name)

            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RBRACE, f"',' or '}}' to close {owner}")

    def _string(self, what: str) -> str:
        return self.expect(TokenType.STRING, what).lexeme

    # =========================================================================
    # Effect declarations
    # =========================================================================

    def _parse_effect(self, effect: EffectDeclaration):
        has_action = False

        def name(_):
            effect.name = self._string("effect name string")

        def params(_):
            effect.params = self._parse_params()

        def action(_):
            nonlocal has_action
            self.expect(TokenType.LPAREN)
            effect.targets_name = self.expect(TokenType.IDENTIFIER, "targets parameter name").lexeme
            self.expect(TokenType.COMMA)
            effect.context_name = self.expect(TokenType.IDENTIFIER, "context parameter name").lexeme
            self.expect(TokenType.RPAREN)
            self.expect(TokenType.ARROW)
            effect.body = self._parse_body()
            has_action = True

        self._parse_fields("effect", {
            TokenType.NAME: name,
            TokenType.PARAMS: params,
            TokenType.ACTION: action,
        })

        if not effect.name:
            self.sink.syntax("Effect declaration is missing 'Name'", effect.position)
        if not has_action:
            self.sink.syntax(
                f"Effect '{effect.name or '?'}' is missing 'Action'", effect.position
            )

    def _parse_params(self) -> list[ParamDeclaration]:
        params: list[ParamDeclaration] = []
        self.expect(TokenType.LBRACE)
        while not self.check(TokenType.RBRACE):
            name = self.expect(TokenType.IDENTIFIER, "parameter name")
            self.expect(TokenType.COLON)
            type_token = self.advance()
            kind = PARAM_KINDS.get(type_token.type)
            if kind is None:
                raise ParseError(
                    f"Unknown parameter type {type_token}, expected Number, String or Bool",
                    type_token.position,
                )
            params.append(ParamDeclaration(name=name.lexeme, param_kind=kind, position=name.position))
            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RBRACE)
        return params

    # =========================================================================
    # Card blocks
    # =========================================================================

    def _parse_card(self, card: CardBlock):
        def text_field(attribute: str, what: str):
            def handler(token: Token):
                card.field_positions[attribute] = token.position
                setattr(card, attribute, self._string(what))
            return handler

        def power(token: Token):
            card.field_positions["power"] = token.position
            card.power = self.parse_expression()

        def ranges(token: Token):
            card.field_positions["ranges"] = token.position
            card.ranges = self._parse_string_list()

        def activations(token: Token):
            card.field_positions["activations"] = token.position
            card.activations = self._parse_activation_list()

        fields = {
            TokenType.NAME: "name",
            TokenType.TYPE: "card_type",
            TokenType.FACTION: "faction",
            TokenType.POWER: "power",
            TokenType.RANGE: "ranges",
            TokenType.DESCRIPTION: "description",
            TokenType.ON_ACTIVATION: "activations",
        }

        def placeholder(token: Token):
            attribute = fields[token.type]
            card.field_positions[attribute] = token.position
            card.placeholders.add(attribute)
            defaults = {"power": Literal(value=0), "ranges": [], "activations": []}
            setattr(card, attribute, defaults.get(attribute, ""))

        self._parse_fields("card", {
            TokenType.NAME: text_field("name", "card name string"),
            TokenType.TYPE: text_field("card_type", "card type string"),
            TokenType.FACTION: text_field("faction", "faction string"),
            TokenType.DESCRIPTION: text_field("description", "description string"),
            TokenType.POWER: power,
            TokenType.RANGE: ranges,
            TokenType.ON_ACTIVATION: activations,
        }, on_error=placeholder)

    def _parse_string_list(self) -> list[str]:
        items: list[str] = []
        self.expect(TokenType.LBRACKET)
        while not self.check(TokenType.RBRACKET):
            items.append(self._string("range name string"))
            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RBRACKET)
        return items

    def _parse_activation_list(self) -> list[Activation]:
        activations: list[Activation] = []
        self.expect(TokenType.LBRACKET)
        while not self.check(TokenType.RBRACKET):
            activations.append(self._parse_activation(post_action=False))
            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RBRACKET)
        return activations

    def _parse_activation(self, post_action: bool) -> Activation:
        activation = Activation(position=self.current.position)

        def effect(_):
            if self.check(TokenType.STRING):
                activation.effect_name = self.advance().lexeme
            else:
                self._parse_effect_call(activation)

        def selector(_):
            activation.selector = self._parse_selector()

        def post(_):
            activation.post_action = self._parse_activation(post_action=True)

        handlers = {
            TokenType.EFFECT: effect,
            TokenType.SELECTOR: selector,
            TokenType.POST_ACTION: post,
        }
        if post_action:
            handlers[TokenType.TYPE] = effect

        self._parse_fields("post action" if post_action else "activation", handlers)
        if not activation.effect_name:
            self.sink.syntax("Activation does not name an effect", activation.position)
        return activation

    def _parse_effect_call(self, activation: Activation):
        """`{ Name: "Damage", Amount: 5 }`"""
        self.expect(TokenType.LBRACE)
        while not self.check(TokenType.RBRACE):
            key = self.advance()
            self.expect(TokenType.COLON)
            if key.type == TokenType.NAME:
                activation.effect_name = self._string("effect name string")
            elif key.type == TokenType.IDENTIFIER:
                if key.lexeme in activation.arguments:
                    self.sink.syntax(f"Argument '{key.lexeme}' given twice", key.position)
                activation.arguments[key.lexeme] = self.parse_expression()
            else:
                raise ParseError(f"Expected argument name but found {key}", key.position)
            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RBRACE)

    def _parse_selector(self) -> Selector:
        selector = Selector(position=self.current.position)

        def source(_):
            selector.source = self._string("source string")

        def single(_):
            selector.single = self.parse_expression()

        def predicate(_):
            if not self._at_lambda():
                raise ParseError(
                    f"Expected predicate '(name) => condition' but found {self.current}",
                    self.current.position,
                )
            selector.predicate = self._parse_lambda()

        self._parse_fields("selector", {
            TokenType.SOURCE: source,
            TokenType.SINGLE: single,
            TokenType.PREDICATE: predicate,
        })
        return selector

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_body(self) -> list[Statement]:
        """A braced statement list, or a single statement."""
        if not self.match(TokenType.LBRACE):
            return [self.parse_statement()]

        statements: list[Statement] = []
        while not self.check(TokenType.RBRACE, TokenType.EOF):
            start = self.pos
            try:
                statements.append(self.parse_statement())
            except ParseError as error:
                self._report(error)
                self._skip_to({TokenType.SEMICOLON, TokenType.RBRACE})
                self.match(TokenType.SEMICOLON)
                if self.pos == start:
                    self.advance()
        self.expect(TokenType.RBRACE, "'}' to close block")
        return statements

    def parse_statement(self) -> Statement:
        token = self.current

        if self.match(TokenType.FOR):
            variable = self.expect(TokenType.IDENTIFIER, "loop variable name")
            self.expect(TokenType.IN)
            iterable = self.parse_expression()
            body = self._parse_body()
            self.match(TokenType.SEMICOLON)
            return ForEach(variable=variable.lexeme, iterable=iterable, body=body, position=token.position)

        if self.match(TokenType.WHILE):
            condition = self._parse_condition()
            body = self._parse_body()
            self.match(TokenType.SEMICOLON)
            return While(condition=condition, body=body, position=token.position)

        if self.match(TokenType.IF):
            condition = self._parse_condition()
            then_body = self._parse_body()
            else_body: list[Statement] = []
            if self.match(TokenType.ELSE):
                else_body = self._parse_body()
            self.match(TokenType.SEMICOLON)
            return If(condition=condition, then_body=then_body, else_body=else_body, position=token.position)

        expression = self.parse_expression()
        operator = self.match(*_ASSIGNMENT_OPERATORS)
        if operator:
            value = self.parse_expression()
            statement: Statement = Assignment(
                target=expression, operator=operator.type, value=value, position=operator.position,
            )
        else:
            statement = ExpressionStatement(expression=expression, position=token.position)
        self.expect(TokenType.SEMICOLON, "';' after statement")
        return statement

    def _parse_condition(self) -> Expression:
        self.expect(TokenType.LPAREN)
        condition = self.parse_expression()
        self.expect(TokenType.RPAREN)
        return condition

    # =========================================================================
    # Expressions
    # =========================================================================

    def parse_expression(self, min_precedence: int = 1) -> Expression:
        """
        Precedence climbing. Operators of equal precedence continue the
        loop instead of recursing, which makes them left-associative.
        """
        left = self._parse_unary()
        while self.current.type in BINARY_OPERATORS:
            operator = self.current
            precedence = PRECEDENCE[operator.type]
            if precedence < min_precedence:
                break
            self.advance()
            right = self.parse_expression(precedence + 1)
            left = Binary(operator=operator.type, left=left, right=right, position=operator.position)
        return left

    def _parse_unary(self) -> Expression:
        token = self.current
        if self.match(TokenType.NOT, TokenType.MINUS):
            return Unary(operator=token.type, operand=self._parse_unary(), position=token.position)
        if self.match(TokenType.INCREMENT, TokenType.DECREMENT):
            return Increment(
                operator=token.type, target=self._parse_unary(), prefix=True, position=token.position,
            )
        return self._parse_postfix()

    def _parse_postfix(self) -> Expression:
        expression = self._parse_primary()
        while self.check(TokenType.POINT):
            self.advance()
            member = self.advance()
            if member.type not in MEMBER_TOKENS:
                raise ParseError(f"Expected a member name after '.' but found {member}", member.position)
            args = self._parse_arguments() if self.check(TokenType.LPAREN) else None
            expression = MemberAccess(
                receiver=expression, member=member.type, args=args, position=member.position,
            )

        token = self.current
        if self.match(TokenType.INCREMENT, TokenType.DECREMENT):
            expression = Increment(
                operator=token.type, target=expression, prefix=False, position=token.position,
            )
        return expression

    def _parse_arguments(self) -> list[Expression]:
        args: list[Expression] = []
        self.expect(TokenType.LPAREN)
        while not self.check(TokenType.RPAREN):
            args.append(self.parse_expression())
            if not self.match(TokenType.COMMA):
                break
        self.expect(TokenType.RPAREN, "')' to close argument list")
        return args

    def _at_lambda(self) -> bool:
        return (
            self.check(TokenType.LPAREN)
            and self.peek(1).type == TokenType.IDENTIFIER
            and self.peek(2).type == TokenType.RPAREN
            and self.peek(3).type == TokenType.ARROW
        )

    def _parse_lambda(self) -> Lambda:
        start = self.expect(TokenType.LPAREN)
        parameter = self.expect(TokenType.IDENTIFIER).lexeme
        self.expect(TokenType.RPAREN)
        self.expect(TokenType.ARROW)
        return Lambda(parameter=parameter, body=self.parse_expression(), position=start.position)

    def _parse_primary(self) -> Expression:
        token = self.current

        if self._at_lambda():
            return self._parse_lambda()

        if self.match(TokenType.NUMBER):
            return Literal(value=self._int_value(token), position=token.position)
        if self.match(TokenType.STRING):
            return Literal(value=token.lexeme, position=token.position)
        if self.match(TokenType.TRUE, TokenType.FALSE):
            return Literal(value=token.type == TokenType.TRUE, position=token.position)
        if self.match(TokenType.IDENTIFIER):
            return Identifier(name=token.lexeme, position=token.position)
        if token.type in IMPLICIT_CONTEXT_MEMBERS:
            self.advance()
            return KeywordRef(keyword=token.type, position=token.position)
        if self.match(TokenType.LPAREN):
            expression = self.parse_expression()
            self.expect(TokenType.RPAREN, "')'")
            return expression

        raise ParseError(f"Unexpected {token} in expression", token.position)

    def _int_value(self, token: Token) -> int:
        digits = token.lexeme.lstrip("0") or "0"
        # Compare lengths first so a huge literal is never converted
        if len(digits) > len(str(INT_MAX)) or int(digits) > INT_MAX:
            shown = digits if len(digits) <= 20 else digits[:20] + "..."
            raise ParseError(f"Integer literal {shown} is out of range", token.position)
        return int(digits)


def parse(tokens: list[Token], sink: DiagnosticSink) -> ParsedFile:
    """Convenience wrapper around Parser."""
    return Parser(tokens, sink).parse()
