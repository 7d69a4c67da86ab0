"""
Card Compiler - Compiles a card file into CardDefinitions.

The compiler:
1. Reads the card file (the only step that can fail fatally)
2. Lexes and parses it, recovering from errors block by block
3. Registers every effect, then type checks effect bodies
4. Validates each card block against the registered effects
5. Returns every compiled card together with every diagnostic

Each compilation owns a fresh CompileSession, so compiling the same text
twice gives identical results.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import logging

from ..card_schema.card import CardDefinition
from ..card_schema.effect_dsl import EffectDeclaration
from .checker import Checker
from .diagnostics import CardFileError, Diagnostic, DiagnosticSink, render_diagnostics
from .lexer import tokenize
from .parser import ParsedFile, Parser
from .validation import validate_card

logger = logging.getLogger(__name__)


class CompilationStatus(Enum):
    """Status of compilation."""
    SUCCESS = "success"
    PARTIAL = "partial"  # Some cards compiled, some blocks had errors
    FAILED = "failed"


@dataclass
class CompilationResult:
    """
    Result of compiling a card file.
    """
    status: CompilationStatus
    cards: list[CardDefinition] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    # Names of effects that compiled cleanly
    effects: list[str] = field(default_factory=list)

    source_path: str | None = None

    @property
    def success(self) -> bool:
        return self.status == CompilationStatus.SUCCESS

    @property
    def message(self) -> str:
        """Every diagnostic on its own line, or the success message."""
        return render_diagnostics(self.diagnostics)

    def card(self, name: str) -> CardDefinition | None:
        for card in self.cards:
            if card.name == name:
                return card
        return None


@dataclass
class CompileSession:
    """Per-compilation state: the diagnostic sink and the effect registry."""
    sink: DiagnosticSink = field(default_factory=DiagnosticSink)
    effects: dict[str, EffectDeclaration] = field(default_factory=dict)
    card_names: set[str] = field(default_factory=set)


@dataclass
class CardCompiler:
    """
    Compiles card files.

    Usage:
        compiler = CardCompiler()
        result = compiler.compile("cards.txt")
        if result.status == CompilationStatus.SUCCESS:
            cards = result.cards
        else:
            print(result.message)
    """
    encoding: str = "utf-8"

    def compile(self, path: str | Path) -> CompilationResult:
        """
        Compile the card file at path.

        Raises:
            CardFileError: the file cannot be opened or decoded
        """
        try:
            text = Path(path).read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Cannot read card file %s: %s", path, e)
            raise CardFileError(str(path), str(e)) from e
        return self.compile_source(text, source_path=str(path))

    def compile_source(self, text: str, source_path: str | None = None) -> CompilationResult:
        """Compile card-file text that is already in memory."""
        session = CompileSession()
        sink = session.sink

        tokens = tokenize(text, sink)
        parsed = Parser(tokens, sink).parse()
        logger.debug(
            "Parsed %d effect(s) and %d card block(s), %d block(s) abandoned",
            len(parsed.effects), len(parsed.cards), parsed.abandoned_cards,
        )

        checker = Checker(sink, session.effects)
        self._register_effects(parsed, session)
        for effect in session.effects.values():
            mark = sink.mark()
            checker.check_effect(effect)
            if sink.since(mark):
                effect.has_errors = True

        cards = self._compile_cards(parsed, session, checker)

        diagnostics = list(sink)
        if not diagnostics:
            status = CompilationStatus.SUCCESS
        elif cards:
            status = CompilationStatus.PARTIAL
        else:
            status = CompilationStatus.FAILED

        logger.info(
            "Compiled %s: %d card(s), %d diagnostic(s), status %s",
            source_path or "<source>", len(cards), len(diagnostics), status.value,
        )
        return CompilationResult(
            status=status,
            cards=cards,
            diagnostics=diagnostics,
            effects=[name for name, effect in session.effects.items() if not effect.has_errors],
            source_path=source_path,
        )

    def _register_effects(self, parsed: ParsedFile, session: CompileSession):
        """Register effects before any card is checked, so order in the file does not matter."""
        for effect in parsed.effects:
            if effect.name in session.effects:
                session.sink.semantic(f"Effect '{effect.name}' is declared more than once", effect.position)
                continue
            session.effects[effect.name] = effect

    def _compile_cards(
        self,
        parsed: ParsedFile,
        session: CompileSession,
        checker: Checker,
    ) -> list[CardDefinition]:
        cards: list[CardDefinition] = []
        for block in parsed.cards:
            duplicate = bool(block.name) and block.name in session.card_names
            if duplicate:
                session.sink.semantic(f"Card '{block.name}' is declared more than once", block.position)
            elif block.name:
                session.card_names.add(block.name)

            definition = validate_card(block, checker)
            if definition is None or duplicate:
                continue
            logger.debug("Compiled card %s (%s)", definition.name, definition.card_type.value)
            cards.append(definition)
        return cards


def compile_cards(path: str | Path) -> CompilationResult:
    """
    Convenience function to compile a card file.
    """
    return CardCompiler().compile(path)


def compile_source(text: str) -> CompilationResult:
    """
    Convenience function to compile card-file text.
    """
    return CardCompiler().compile_source(text)
