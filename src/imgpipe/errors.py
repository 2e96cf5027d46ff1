from __future__ import annotations
from typing import Optional


class PipelineError(Exception):
    """
    Base class for everything the pipeline raises on purpose.
    Context (stage name/index, source image) is filled in as the error
    travels up, so the final message says where it happened.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        stage_index: Optional[int] = None,
        source: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.stage_index = stage_index
        self.source = source

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(str(self.source))
        if self.stage_index is not None and self.stage:
            parts.append(f"stage {self.stage_index} ({self.stage})")
        elif self.stage:
            parts.append(self.stage)
        if parts:
            return f"{': '.join(parts)}: {self.message}"
        return self.message


class ConfigurationError(PipelineError):
    """Bad pipeline description: unknown stage, bad key, unset kernel..."""


class DimensionError(PipelineError):
    """Stage parameters don't fit the image being processed."""


class OutOfBoundsError(DimensionError):
    def __init__(self, message: str, *, axis: str, coordinate: int, limit: int, **context) -> None:
        super().__init__(message, **context)
        self.axis = axis
        self.coordinate = coordinate
        self.limit = limit


class DegenerateRangeError(PipelineError):
    """Normalisation asked to stretch a zero-width intensity range."""


class PipelineIOError(PipelineError, OSError):
    """Missing pipe file, unreadable image, unwritable output."""
