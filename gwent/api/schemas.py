"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between API clients and the compiler.

Error Codes:
- FILE_NOT_READABLE: The requested card file could not be opened or decoded
- VALIDATION_ERROR: The request body is malformed
- INTERNAL_ERROR: Unexpected server failure
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class CompilationStatus(str, Enum):
    """Card file compilation status."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class DiagnosticStage(str, Enum):
    """Phase that reported a diagnostic."""
    LEXICAL = "lexical"
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    RUNTIME = "runtime"


class ErrorCode(str, Enum):
    """Structured error codes."""
    FILE_NOT_READABLE = "FILE_NOT_READABLE"
    PATH_NOT_ALLOWED = "PATH_NOT_ALLOWED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class CardInfo(BaseModel):
    """A compiled card."""
    name: str
    card_type: str = Field(description="Oro, Plata, Clima, Aumento, Lider or Despeje")
    faction: str
    power: int = 0
    ranges: list[str] = Field(default_factory=list)
    zones: list[str] = Field(default_factory=list, description="Board zones, e.g. unit:Melee")
    unit_kind: str = "none"
    super_power: str = "none"
    description: str = ""
    effects: list[str] = Field(default_factory=list, description="Effects run on activation, in order")

    model_config = {"from_attributes": True}


class DiagnosticInfo(BaseModel):
    """One reported problem."""
    message: str
    stage: DiagnosticStage
    line: Optional[int] = None
    column: Optional[int] = None
    text: str = Field(description="Rendered form, '<line>:<column>: <message>'")


# =============================================================================
# Request Models
# =============================================================================

class CompileRequest(BaseModel):
    """Request to compile card-file text."""
    source: str = Field(..., description="Full card-file text to compile")


class CompileFileRequest(BaseModel):
    """Request to compile a card file on the server."""
    path: str = Field(..., description="Path of the card file")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class CompileResponse(BaseModel):
    """Response from compiling a card file."""
    success: bool
    status: CompilationStatus
    cards: list[CardInfo] = Field(default_factory=list)
    diagnostics: list[DiagnosticInfo] = Field(default_factory=list)
    message: str = Field(description="Every diagnostic on its own line, or 'Compilation succeeded'")
    card_count: int = 0
    api_version: str = "v1"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
