from __future__ import annotations
import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .errors import ConfigurationError, PipelineError
from .helpers import RunConfig, configure_logging, list_images, load_image_rgba
from .image import Image
from .pipeline import Pipeline
from .runner import RECOVERABLE, BatchRunner

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="imgpipe",
        description="Apply a pipeline of pixel transformations to images",
    )
    p.add_argument("--pipe", type=str, required=True, help="Path to the pipeline text file")

    g_in = p.add_argument_group("I/O").add_mutually_exclusive_group(required=True)
    g_in.add_argument("--image", type=str, help="Path to a single image")
    g_in.add_argument("--dir", type=str, help="Path to a directory of images")
    p.add_argument("--output", type=str, required=True,
                   help="Output file, or directory (required to be a directory with --dir)")

    g_run = p.add_argument_group("Run")
    g_run.add_argument("--save_all", action="store_true", help="Save every intermediate stage output")
    g_run.add_argument("--verbose", action="store_true", help="Log every stage with its image sizes")
    g_run.add_argument("--show", action="store_true", help="Display the stages of the first image")
    g_run.add_argument("--jobs", type=int, default=1, help="Images processed concurrently (with --dir)")
    return p


def _single_output(image_path: Path, output: Path) -> Path:
    # an existing directory, or a path without a suffix, receives <stem>.png
    if output.is_dir() or not output.suffix:
        return output / f"{image_path.stem}.png"
    return output


def _preview(pipeline: Pipeline, path: Path) -> None:
    from .viz import Visualizer  # matplotlib only when asked for

    source = load_image_rgba(path)
    frames: List[Tuple[str, Image]] = []
    pipeline.run(source, on_stage=lambda i, stage, before, after: frames.append((f"{i}: {stage.name}", after)))
    Visualizer().show_stages(source, frames)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_argparser()
    args = parser.parse_args(argv)
    if args.jobs < 1:
        parser.error("--jobs must be >= 1")

    configure_logging(args.verbose)
    config = RunConfig(save_all=args.save_all, verbose=args.verbose, show=args.show, jobs=args.jobs)

    # configuration problems stop the run before any image is touched
    try:
        pipeline = Pipeline.from_file(args.pipe)
    except PipelineError as e:
        logger.error("Invalid pipeline: %s", e)
        return EXIT_CONFIG
    logger.info("Loaded %d stage(s) from %s", len(pipeline), args.pipe)
    if args.verbose and len(pipeline):
        for line in pipeline.describe().splitlines():
            logger.info("  %s", line)

    runner = BatchRunner(pipeline, config)
    output = Path(args.output)

    try:
        if args.image:
            image_path = Path(args.image)
            try:
                runner.process_image(image_path, _single_output(image_path, output))
            except RECOVERABLE as e:
                logger.error("[FAIL] %s", e)
                return EXIT_FAILED
            first = image_path
        else:
            if output.exists() and not output.is_dir():
                parser.error("--output must be a directory when --dir is used")
            report = runner.process_dir(args.dir, output)
            if report.total == 0:
                return EXIT_FAILED
            if not report.ok:
                logger.error("%d of %d images failed", len(report.failures), report.total)
                return EXIT_FAILED
            first = list_images(args.dir, config.extensions)[0]
    except ConfigurationError as e:
        logger.error("Invalid pipeline: %s", e)
        return EXIT_CONFIG
    except PipelineError as e:
        logger.error("%s", e)
        return EXIT_FAILED

    if config.show:
        _preview(pipeline, first)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
