"""
Diagnostics - Error collection for one compile session (or one effect
execution).

Lexer, parser and checker report into a DiagnosticSink instead of raising,
so a single pass yields every problem in the file. The owner of the sink
(the compiler or the executor) creates it, passes it down and reads it
when the work is done.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from ..card_schema.tokens import SourcePosition

SUCCESS_MESSAGE = "Compilation succeeded"


class GwentError(Exception):
    """Base class for fatal errors surfaced to callers."""


class CardFileError(GwentError):
    """Raised when a card file cannot be opened or read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read card file '{path}': {reason}")


class RuntimeFault(GwentError):
    """
    Raised while an effect runs (empty pop, division by zero, ...).

    The executor catches it per effect and turns it into a runtime
    diagnostic; it never escapes EffectExecutor.execute.
    """

    def __init__(self, message: str, position: SourcePosition | None = None):
        self.message = message
        self.position = position
        super().__init__(message)


class DiagnosticStage(Enum):
    """Which phase produced a diagnostic."""
    LEXICAL = "lexical"
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    RUNTIME = "runtime"


@dataclass(frozen=True)
class Diagnostic:
    """A single reported problem. Renders as one line of text."""
    message: str
    position: SourcePosition | None = None
    stage: DiagnosticStage = DiagnosticStage.SEMANTIC

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.position}: {self.message}"


@dataclass
class DiagnosticSink:
    """
    Ordered list of diagnostics.

    Usage:
        sink = DiagnosticSink()
        tokens = tokenize(text, sink)
        ...
        if sink.has_errors:
            print(sink.render())
    """
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def report(
        self,
        stage: DiagnosticStage,
        message: str,
        position: SourcePosition | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(message=message, position=position, stage=stage)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def lexical(self, message: str, position: SourcePosition | None = None) -> Diagnostic:
        return self.report(DiagnosticStage.LEXICAL, message, position)

    def syntax(self, message: str, position: SourcePosition | None = None) -> Diagnostic:
        return self.report(DiagnosticStage.SYNTAX, message, position)

    def semantic(self, message: str, position: SourcePosition | None = None) -> Diagnostic:
        return self.report(DiagnosticStage.SEMANTIC, message, position)

    def runtime(self, message: str, position: SourcePosition | None = None) -> Diagnostic:
        return self.report(DiagnosticStage.RUNTIME, message, position)

    @property
    def has_errors(self) -> bool:
        return bool(self.diagnostics)

    def mark(self) -> int:
        """Current length, to later ask whether anything was reported since."""
        return len(self.diagnostics)

    def since(self, mark: int) -> list[Diagnostic]:
        return self.diagnostics[mark:]

    def render(self) -> str:
        """One diagnostic per line, or the success message when empty."""
        return render_diagnostics(self.diagnostics)

    def clear(self):
        self.diagnostics.clear()

    def drain(self) -> list[Diagnostic]:
        """Return every diagnostic and empty the sink."""
        drained = list(self.diagnostics)
        self.diagnostics.clear()
        return drained

    def __len__(self) -> int:
        return len(self.diagnostics)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.diagnostics)


def render_diagnostics(diagnostics: list[Diagnostic]) -> str:
    """Render a finished diagnostic list the same way a sink does."""
    if not diagnostics:
        return SUCCESS_MESSAGE
    return "\n".join(str(d) for d in diagnostics)
