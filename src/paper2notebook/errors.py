"""Error taxonomy shared by the pipeline and its HTTP boundary."""

from __future__ import annotations

__all__ = [
    "PipelineError",
    "ValidationError",
    "GenerationError",
    "PublicationError",
    "CacheUnavailableError",
]


class PipelineError(RuntimeError):
    """Base error for every failure surfaced by the pipeline."""

    client_fault = False


class ValidationError(PipelineError):
    """Raised when the paper text is missing, malformed or too short."""

    client_fault = True


class GenerationError(PipelineError):
    """Raised when a generation stage fails or returns invalid data."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage} stage failed: {message}")
        self.stage = stage
        self.detail = message


class PublicationError(PipelineError):
    """Raised when the generated notebook cannot be published."""

    stage = "publish"


class CacheUnavailableError(PipelineError):
    """Raised by cache stores that cannot be read from or written to."""
