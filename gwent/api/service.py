"""
API Service - Business logic layer between the API and the compiler.

The service:
1. Runs the compiler on submitted text or a server-side file
2. Converts compilation results into response schemas

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import logging

from .. import config
from ..card_schema.card import CardDefinition
from ..compiler import CardCompiler, CompilationResult, Diagnostic
from ..compiler.diagnostics import GwentError
from .schemas import (
    CardInfo,
    CompilationStatus,
    CompileFileRequest,
    CompileRequest,
    CompileResponse,
    DiagnosticInfo,
    DiagnosticStage,
)

logger = logging.getLogger(__name__)


class PathNotAllowedError(GwentError):
    """Raised when a requested card file lies outside the card directory."""

    def __init__(self, path: str, card_dir: str):
        self.path = path
        self.card_dir = card_dir
        super().__init__(f"Card file '{path}' is outside the card directory")


@dataclass
class CompilerService:
    """
    Compiler service for API clients.

    Usage:
        service = CompilerService()
        response = service.compile_source(CompileRequest(source=text))

    compile_file only reads files under card_dir. It raises
    PathNotAllowedError for anything else and CardFileError when the file
    cannot be read; the app turns both into an ErrorResponse.
    """
    compiler: CardCompiler = field(default_factory=CardCompiler)
    card_dir: str = field(default_factory=lambda: config.GWENT_CARD_DIR)

    def compile_source(self, request: CompileRequest) -> CompileResponse:
        return self._to_response(self.compiler.compile_source(request.source))

    def compile_file(self, request: CompileFileRequest) -> CompileResponse:
        base = Path(self.card_dir).resolve()
        # Relative paths are taken from the card directory; symlinks and .. are resolved first
        target = (base / request.path).resolve()
        if not target.is_relative_to(base):
            logger.warning("Refused card file %s outside %s", request.path, base)
            raise PathNotAllowedError(request.path, str(base))
        logger.info("Compiling card file %s", target)
        return self._to_response(self.compiler.compile(str(target)))

    def _to_response(self, result: CompilationResult) -> CompileResponse:
        return CompileResponse(
            success=result.success,
            status=CompilationStatus(result.status.value),
            cards=[self._card_info(card) for card in result.cards],
            diagnostics=[self._diagnostic_info(d) for d in result.diagnostics],
            message=result.message,
            card_count=len(result.cards),
        )

    def _card_info(self, card: CardDefinition) -> CardInfo:
        return CardInfo(
            name=card.name,
            card_type=card.card_type.value,
            faction=card.faction.value,
            power=card.power,
            ranges=[r.value for r in card.ranges],
            zones=[str(zone) for zone in card.zones],
            unit_kind=card.unit_kind.value,
            super_power=card.super_power.value,
            description=card.description,
            effects=[activation.effect_name for activation in card.activations],
        )

    def _diagnostic_info(self, diagnostic: Diagnostic) -> DiagnosticInfo:
        position = diagnostic.position
        return DiagnosticInfo(
            message=diagnostic.message,
            stage=DiagnosticStage(diagnostic.stage.value),
            line=position.line if position else None,
            column=position.column if position else None,
            text=str(diagnostic),
        )
