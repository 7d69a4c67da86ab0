"""
API Module - HTTP interface to the card compiler.

Exposes the compiler via a REST API:
1. Compile card-file text sent in the request
2. Compile a card file readable by the server
3. Health check

Business logic lives in CompilerService; create_app wires it to FastAPI.
"""

from .schemas import (
    # Requests
    CompileRequest,
    CompileFileRequest,
    # Responses
    CompileResponse,
    ErrorResponse,
    HealthResponse,
    # Shared
    CardInfo,
    DiagnosticInfo,
    # Enums
    CompilationStatus,
    ErrorCode,
)
from .service import CompilerService
from .app import create_app

__all__ = [
    # Requests
    "CompileRequest",
    "CompileFileRequest",
    # Responses
    "CompileResponse",
    "ErrorResponse",
    "HealthResponse",
    # Shared
    "CardInfo",
    "DiagnosticInfo",
    # Enums
    "CompilationStatus",
    "ErrorCode",
    # Service
    "CompilerService",
    "create_app",
]
