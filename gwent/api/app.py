"""
FastAPI Application - REST API for the card compiler.

Endpoints:
    GET    /api/v1/health               Health check
    POST   /api/v1/compile              Compile card-file text
    POST   /api/v1/compile/file         Compile a card file on the server

Compilation always answers 200 with the diagnostics in the body. A card
file outside GWENT_CARD_DIR or one that cannot be read, a malformed
request, and an unexpected failure produce an ErrorResponse.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional
import logging

from .. import __version__, config

logger = logging.getLogger(__name__)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional CompilerService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Request
        from fastapi.encoders import jsonable_encoder
        from fastapi.exceptions import RequestValidationError
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from ..compiler import CardFileError
    from .service import CompilerService, PathNotAllowedError
    from .schemas import (
        # Request models
        CompileRequest,
        CompileFileRequest,
        # Response models
        CompileResponse,
        ErrorResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="Gwent Card Compiler API",
        description="""
Compiles Gwent card-script files into card definitions.

## Diagnostics

A compile request always returns the full list of diagnostics found in
the file (lexical, syntax and semantic), one per problem, together with
every card that compiled cleanly.

## Error Codes

| Code | Description |
|------|-------------|
| `FILE_NOT_READABLE` | Card file could not be opened or decoded |
| `PATH_NOT_ALLOWED` | Card file lies outside the served card directory |
| `VALIDATION_ERROR` | Request body is malformed |
| `INTERNAL_ERROR` | Unexpected server failure |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or CompilerService()

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return make_error_response(
            ErrorCode.VALIDATION_ERROR,
            "Invalid request",
            status_code=422,
            details={"errors": jsonable_encoder(exc.errors())},
        )

    def internal_error(e: Exception) -> JSONResponse:
        logger.exception("Compilation failed unexpectedly")
        return make_error_response(ErrorCode.INTERNAL_ERROR, f"Internal error: {e}", status_code=500)

    # =========================================================================
    # Compile Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/compile",
        response_model=CompileResponse,
        tags=["Cards"],
        summary="Compile card-file text",
    )
    async def compile_source(request: CompileRequest) -> CompileResponse:
        """
        Compile card-file text.

        `message` holds the rendered diagnostics, one per line, or
        `Compilation succeeded`.
        """
        try:
            return api_service.compile_source(request)
        except Exception as e:
            return internal_error(e)

    @app.post(
        "/api/v1/compile/file",
        response_model=CompileResponse,
        responses={
            403: {"model": ErrorResponse, "description": "Card file outside the card directory"},
            404: {"model": ErrorResponse, "description": "Card file not readable"},
        },
        tags=["Cards"],
        summary="Compile a card file on the server",
    )
    async def compile_file(request: CompileFileRequest):
        """Compile the card file at `path`."""
        try:
            return api_service.compile_file(request)
        except PathNotAllowedError as e:
            return make_error_response(
                ErrorCode.PATH_NOT_ALLOWED,
                str(e),
                status_code=403,
                details={"path": e.path},
            )
        except CardFileError as e:
            return make_error_response(
                ErrorCode.FILE_NOT_READABLE,
                str(e),
                status_code=404,
                details={"path": e.path, "reason": e.reason},
            )
        except Exception as e:
            return internal_error(e)

    # =========================================================================
    # System Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="gwent-compiler",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Gwent Card Compiler API",
            "version": __version__,
            "environment": config.GWENT_ENV,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app
