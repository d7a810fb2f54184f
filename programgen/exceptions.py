"""
Exception classes for program generation.

Every failure that leaves the pipeline carries the name of the stage it
came from so operators can tell where a generation broke.
"""

from typing import Optional


class ProgramGenerationError(Exception):
    """
    Base class for all pipeline failures.

    Attributes:
        stage: Pipeline stage the failure came from
        tokens_used: Tokens billed by the failed call itself
        token_usage: Per-agent totals for the whole run, set by the orchestrator
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.tokens_used = 0
        self.token_usage = None

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class StructuredOutputError(ProgramGenerationError):
    """Model output could not be parsed or failed schema validation. Never retried."""

    def __init__(self, message: str, raw_output: Optional[str] = None):
        super().__init__(message, stage="model_call")
        self.raw_output = raw_output


class PipelineStageError(ProgramGenerationError):
    """A pipeline stage failed; wraps the underlying cause."""

    def __init__(self, stage: str, message: str):
        super().__init__(message, stage=stage)


class GenerationTimeoutError(ProgramGenerationError):
    """Generation exceeded its wall-clock bound. Nothing was persisted."""

    def __init__(self, timeout_seconds: float, stage: Optional[str] = None):
        super().__init__(
            f"Program generation did not finish within {timeout_seconds:.0f}s",
            stage=stage,
        )
        self.timeout_seconds = timeout_seconds


class PersistenceError(ProgramGenerationError):
    """Writing the finished program failed; the transaction was rolled back."""

    def __init__(self, message: str):
        super().__init__(message, stage="persist")
