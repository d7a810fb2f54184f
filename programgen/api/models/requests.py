"""
API Request Models

Pydantic models for API request validation.
"""

from pydantic import BaseModel, Field

from programgen.schemas import IntakeRequest


class GenerateProgramRequest(BaseModel):
    """Request model for AI program generation."""

    intake: IntakeRequest = Field(..., description="Client, goals and program parameters")
    requested_by: str = Field(..., min_length=1, description="Coach or admin user id requesting the program")
