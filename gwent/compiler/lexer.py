"""
Lexer - Turns card-file text into tokens.

Whitespace, `//` line comments and `/* */` block comments are skipped.
Problems (stray characters, unterminated strings or comments) are
reported to the sink and scanning carries on, so later parts of the file
still produce tokens.
"""

from __future__ import annotations

from ..card_schema.tokens import KEYWORDS, SYMBOLS, SourcePosition, Token, TokenType
from .diagnostics import DiagnosticSink


def _is_digit(char: str) -> bool:
    # ASCII only: str.isdigit also accepts superscripts and other numerals
    return "0" <= char <= "9"


class Lexer:
    """
    Scans a source string once, producing a token list ending in EOF.

    Usage:
        tokens = Lexer(text, sink).tokenize()
    """

    def __init__(self, source: str, sink: DiagnosticSink):
        self.source = source
        self.sink = sink
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        while self.pos < len(self.source):
            char = self.source[self.pos]

            if char in " \t\r\n":
                self._advance()
            elif self.source.startswith("//", self.pos):
                self._skip_line_comment()
            elif self.source.startswith("/*", self.pos):
                self._skip_block_comment()
            elif char == '"':
                self._scan_string()
            elif _is_digit(char):
                self._scan_number()
            elif char.isalpha() or char == "_":
                self._scan_word()
            elif not self._scan_symbol():
                self.sink.lexical(f"Unrecognized character '{char}'", self._position())
                self._advance()

        self.tokens.append(Token(TokenType.EOF, "", self._position()))
        return self.tokens

    def _position(self) -> SourcePosition:
        return SourcePosition(self.line, self.column)

    def _advance(self, count: int = 1):
        for _ in range(count):
            if self.pos >= len(self.source):
                return
            if self.source[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _emit(self, token_type: TokenType, lexeme: str, start: SourcePosition):
        self.tokens.append(Token(token_type, lexeme, start))

    def _skip_line_comment(self):
        while self.pos < len(self.source) and self.source[self.pos] != "\n":
            self._advance()

    def _skip_block_comment(self):
        start = self._position()
        end = self.source.find("*/", self.pos + 2)
        if end == -1:
            self.sink.lexical("Unterminated block comment", start)
            self._advance(len(self.source) - self.pos)
            return
        self._advance(end + 2 - self.pos)

    def _scan_string(self):
        start = self._position()
        self._advance()  # opening quote
        chars: list[str] = []
        while self.pos < len(self.source):
            char = self.source[self.pos]
            if char == '"':
                self._advance()
                self._emit(TokenType.STRING, "".join(chars), start)
                return
            if char == "\n":
                break
            if char == "\\" and self.pos + 1 < len(self.source):
                escaped = self.source[self.pos + 1]
                chars.append({"n": "\n", "t": "\t"}.get(escaped, escaped))
                self._advance(2)
                continue
            chars.append(char)
            self._advance()

        # Still emitted so the parser sees a value where one was meant.
        self.sink.lexical("Unterminated string literal", start)
        self._emit(TokenType.STRING, "".join(chars), start)

    def _scan_number(self):
        start = self._position()
        begin = self.pos
        while self.pos < len(self.source) and _is_digit(self.source[self.pos]):
            self._advance()
        self._emit(TokenType.NUMBER, self.source[begin:self.pos], start)

    def _scan_word(self):
        start = self._position()
        begin = self.pos
        while self.pos < len(self.source) and (
            self.source[self.pos].isalnum() or self.source[self.pos] == "_"
        ):
            self._advance()
        word = self.source[begin:self.pos]
        self._emit(KEYWORDS.get(word, TokenType.IDENTIFIER), word, start)

    def _scan_symbol(self) -> bool:
        for text, token_type in SYMBOLS:
            if self.source.startswith(text, self.pos):
                start = self._position()
                self._advance(len(text))
                self._emit(token_type, text, start)
                return True
        return False


def tokenize(source: str, sink: DiagnosticSink | None = None) -> list[Token]:
    """Convenience wrapper: tokenize source, reporting into sink."""
    return Lexer(source, sink if sink is not None else DiagnosticSink()).tokenize()
