"""
Program Generation API Routes

Endpoint for generating a training program from an intake request.
"""

from fastapi import APIRouter, Depends, Request

from programgen.api.models.requests import GenerateProgramRequest
from programgen.api.models.responses import ErrorResponse, GenerateProgramResponse
from programgen.orchestrator import ProgramOrchestrator

router = APIRouter()


def get_orchestrator(request: Request) -> ProgramOrchestrator:
    """Orchestrator created by the application lifespan."""
    return request.app.state.orchestrator


@router.post(
    "/programs/generate",
    response_model=GenerateProgramResponse,
    responses={
        502: {"model": ErrorResponse, "description": "A pipeline stage failed"},
        504: {"model": ErrorResponse, "description": "Generation timed out"},
    },
)
async def generate_program(
    request: GenerateProgramRequest,
    orchestrator: ProgramOrchestrator = Depends(get_orchestrator),
) -> GenerateProgramResponse:
    """
    Generate, validate and save a multi-week training program.

    Runs the four-agent pipeline:
    - Profile analysis (volume targets, constraints, session structure)
    - Program architecture (weeks, days, exercise slots)
    - Exercise selection from the pre-filtered catalog
    - Validation, with one restart from architecture on blocking issues

    A program that still has blocking issues after the restart is saved
    anyway and returned with needs_review set.

    Args:
        request: GenerateProgramRequest with the intake and requesting user

    Returns:
        GenerateProgramResponse with program id, validation and token usage

    Raises:
        GenerationTimeoutError: Mapped to 504 by the application
        PipelineStageError: Mapped to 502 by the application
    """
    result = await orchestrator.generate(request.intake, request.requested_by)

    return GenerateProgramResponse(
        program_id=result.program_id,
        passed=result.validation.passed,
        needs_review=result.validation.has_errors,
        validation=result.validation,
        token_usage=result.token_usage,
        duration_ms=result.duration_ms,
        retries=result.retries,
    )
