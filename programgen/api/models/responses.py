"""
API Response Models

Pydantic models for API responses.
"""

from typing import Optional

from pydantic import BaseModel, Field

from programgen.plan_schemas import TokenUsage, ValidationResult


class GenerateProgramResponse(BaseModel):
    """Response for POST /api/programs/generate."""

    program_id: str = Field(..., description="Id of the persisted program")
    passed: bool = Field(..., description="Whether the final validation passed")
    needs_review: bool = Field(
        ..., description="True when the program was saved with blocking issues and needs manual correction"
    )
    validation: ValidationResult = Field(..., description="Final merged validation result")
    token_usage: TokenUsage = Field(..., description="Tokens spent per agent")
    duration_ms: int = Field(..., description="Wall-clock duration of the run")
    retries: int = Field(..., description="Pipeline-level restarts")


class ErrorResponse(BaseModel):
    """Body returned for failed generations."""

    error: str = Field(..., description="Error class")
    message: str = Field(..., description="Human-readable message")
    stage: Optional[str] = Field(None, description="Pipeline stage that failed")
