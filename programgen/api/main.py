"""
FastAPI Application

Main entry point for the program generation web API.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from programgen.api.routes import programs
from programgen.config import get_settings
from programgen.database import SqlProgramRepository
from programgen.exceptions import (
    GenerationTimeoutError,
    PersistenceError,
    PipelineStageError,
    ProgramGenerationError,
)
from programgen.llm_client import ModelClient
from programgen.logging_config import setup_logging
from programgen.orchestrator import ProgramOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared model client and repository; close the client on shutdown."""
    settings = get_settings()
    setup_logging(settings)

    client = ModelClient.from_settings(settings)
    repository = SqlProgramRepository.from_url(settings.DATABASE_URL)
    app.state.orchestrator = ProgramOrchestrator(client, repository, settings)
    logger.info("Program generation API started (%s)", settings.ENVIRONMENT)
    try:
        yield
    finally:
        await client.aclose()


# Initialize FastAPI app
app = FastAPI(
    title="Coaching Program Generator API",
    description="Multi-agent generation of validated, multi-week training programs",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS configuration - allow the coaching dashboard to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(programs.router, prefix="/api", tags=["Programs"])


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint - API information."""
    return {
        "name": "Coaching Program Generator API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "program-generator-api"}


def _error_status(exc: ProgramGenerationError) -> int:
    if isinstance(exc, GenerationTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, PipelineStageError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(ProgramGenerationError)
async def generation_exception_handler(request: Request, exc: ProgramGenerationError):
    """Map pipeline failures to gateway-style status codes."""
    if isinstance(exc, PersistenceError):
        logger.error("Program could not be saved: %s", exc.message)
    return JSONResponse(
        status_code=_error_status(exc),
        content={"error": type(exc).__name__, "message": exc.message, "stage": exc.stage},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent error format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "message": str(exc.detail), "stage": None},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": str(exc),
            "stage": None,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "programgen.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
