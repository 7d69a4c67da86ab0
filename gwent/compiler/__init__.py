"""
Compiler - Compiles card files into CardDefinitions.

The compiler:
1. Lexes the card file into tokens
2. Parses effects and card blocks, recovering from syntax errors
3. Type checks effect bodies and card activations
4. Validates card headers into immutable CardDefinitions

Every problem is collected as a Diagnostic; only an unreadable file
raises (CardFileError).
"""

from .diagnostics import (
    Diagnostic,
    DiagnosticSink,
    DiagnosticStage,
    GwentError,
    CardFileError,
    RuntimeFault,
    SUCCESS_MESSAGE,
)
from .lexer import Lexer, tokenize
from .parser import Parser, ParsedFile, parse
from .checker import Checker, Scope
from .compiler import (
    CardCompiler,
    CompilationResult,
    CompilationStatus,
    compile_cards,
    compile_source,
)

__all__ = [
    "Diagnostic",
    "DiagnosticSink",
    "DiagnosticStage",
    "GwentError",
    "CardFileError",
    "RuntimeFault",
    "SUCCESS_MESSAGE",
    "Lexer",
    "tokenize",
    "Parser",
    "ParsedFile",
    "parse",
    "Checker",
    "Scope",
    "CardCompiler",
    "CompilationResult",
    "CompilationStatus",
    "compile_cards",
    "compile_source",
]
