from __future__ import annotations
import logging
import os
from typing import Callable, Iterable, Iterator, Optional, Tuple

from .errors import PipelineError
from .image import Image
from .loader import load_pipeline, parse_pipeline
from .stages import Stage, apply_stage

logger = logging.getLogger(__name__)

# on_stage(index, stage, before, after); index is 1-based
StageHook = Callable[[int, Stage, Image, Image], None]


class Pipeline:
    """Ordered, immutable sequence of stages applied first-to-last."""

    def __init__(self, stages: Iterable[Stage] = ()) -> None:
        self.stages: Tuple[Stage, ...] = tuple(stages)
        for stage in self.stages:
            stage.validate()

    @classmethod
    def from_text(cls, text: str) -> "Pipeline":
        return cls(parse_pipeline(text))

    @classmethod
    def from_file(cls, path: str | os.PathLike) -> "Pipeline":
        return cls(load_pipeline(path))

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self.stages)

    def __repr__(self) -> str:
        return f"Pipeline({list(self.stages)!r})"

    def describe(self) -> str:
        return "\n".join(f"{i}: {s.describe()}" for i, s in enumerate(self.stages, start=1))

    def run(self, image: Image, on_stage: Optional[StageHook] = None) -> Image:
        """
        Fold `image` through every stage. With no stages the source image is
        returned as-is. A failing stage aborts the run; the error is tagged
        with the stage index before it propagates.
        """
        current = image
        for index, stage in enumerate(self.stages, start=1):
            try:
                result = apply_stage(stage, current)
            except PipelineError as exc:
                exc.stage = exc.stage or stage.name
                exc.stage_index = index
                raise
            logger.debug("%d: %s %s -> %s", index, stage.name, current.size, result.size)
            if on_stage is not None:
                on_stage(index, stage, current, result)
            current = result
        return current
