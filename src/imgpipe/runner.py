from __future__ import annotations
import logging
import os
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .errors import DegenerateRangeError, DimensionError, PipelineError, PipelineIOError
from .helpers import RunConfig, ensure_dir, list_images, load_image_rgba, save_image_rgba
from .image import Image
from .pipeline import Pipeline, StageHook
from .stages import Stage

logger = logging.getLogger(__name__)

# errors that fail one image but not the batch
RECOVERABLE = (DimensionError, DegenerateRangeError, PipelineIOError)


@dataclass
class BatchReport:
    outputs: List[Path] = field(default_factory=list)
    failures: List[Tuple[Path, PipelineError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def total(self) -> int:
        return len(self.outputs) + len(self.failures)


class BatchRunner:
    """End-to-end orchestration for single images or folders."""

    def __init__(self, pipeline: Pipeline, config: Optional[RunConfig] = None) -> None:
        self.pipeline = pipeline
        self.config = config or RunConfig()
        if self.config.jobs < 1:
            raise ValueError("jobs must be >= 1")

    def _stage_hook(self, name: str, stage_dir: Optional[Path]) -> StageHook:
        level = logging.INFO if self.config.verbose else logging.DEBUG

        def hook(index: int, stage: Stage, before: Image, after: Image) -> None:
            logger.log(level, "[%s] %d: %s | input %s -> output %s",
                       name, index, stage.describe(), before.size, after.size)
            if stage_dir is None:
                return
            if after.is_empty:
                logger.warning("[%s] stage %d produced an empty image; not saved", name, index)
                return
            save_image_rgba(after, stage_dir / f"{index:02d}_{stage.name}.png")

        return hook

    def run_image(self, image: Image, name: str, stage_dir: Optional[Path] = None) -> Image:
        try:
            return self.pipeline.run(image, on_stage=self._stage_hook(name, stage_dir))
        except PipelineError as e:
            e.source = e.source or name
            raise

    def process_image(
        self,
        path: str | os.PathLike,
        output_path: str | os.PathLike,
        name: Optional[str] = None,
    ) -> Path:
        """
        Decode `path`, run the pipeline, encode to `output_path`.
        Intermediates go to `<name>_stages/` beside the output (name defaults to the input stem).
        """
        path, output_path = Path(path), Path(output_path)
        image = load_image_rgba(path)
        stage_dir = output_path.parent / f"{name or path.stem}_stages" if self.config.save_all else None

        result = self.run_image(image, str(path), stage_dir)
        save_image_rgba(result, output_path)
        logger.info("%s -> %s (%s -> %s)", path.name, output_path, image.size, result.size)
        return output_path

    def process_dir(self, dir_path: str | os.PathLike, output_dir: str | os.PathLike) -> BatchReport:
        """
        Every image in `dir_path` -> `<output_dir>/<stem>.png`. Inputs sharing a
        stem (a.png, a.tif) get `<stem>_<ext>.png` instead. A failing image is
        logged and recorded; the rest of the batch still runs.
        """
        paths = list_images(dir_path, self.config.extensions)
        report = BatchReport()
        if not paths:
            logger.warning("No images found in %s", dir_path)
            return report

        out_dir = Path(output_dir)
        ensure_dir(out_dir)
        logger.info("Found %d images in %s", len(paths), dir_path)

        names = output_names(paths)

        def one(p: Path) -> Path:
            return self.process_image(p, out_dir / f"{names[p]}.png", name=names[p])

        if self.config.jobs > 1:
            with ThreadPoolExecutor(max_workers=self.config.jobs, thread_name_prefix="imgpipe") as pool:
                futures = [(p, pool.submit(one, p)) for p in paths]
                for p, fut in futures:
                    self._record(report, p, fut.result)
        else:
            for p in paths:
                self._record(report, p, lambda p=p: one(p))

        logger.info("Done: %d/%d images written to %s", len(report.outputs), report.total, out_dir)
        return report

    @staticmethod
    def _record(report: BatchReport, path: Path, produce: Callable[[], Path]) -> None:
        try:
            out = produce()
        except RECOVERABLE as e:
            logger.error("[FAIL] %s", e)
            report.failures.append((path, e))
        else:
            report.outputs.append(out)


def output_names(paths: List[Path]) -> Dict[Path, str]:
    """Output base names, unique ignoring case; clashing stems get their extension appended."""
    counts = Counter(p.stem.casefold() for p in paths)
    names: Dict[Path, str] = {p: p.stem for p in paths if counts[p.stem.casefold()] == 1}
    used = {name.casefold() for name in names.values()}
    for p in paths:
        if p in names:
            continue
        base = f"{p.stem}_{p.suffix.lstrip('.').lower()}"
        name, n = base, 1
        while name.casefold() in used:
            n += 1
            name = f"{base}_{n}"
        used.add(name.casefold())
        names[p] = name
        logger.warning("%s shares its name with another input; writing it as %s.png", p.name, name)
    return names
