from .errors import (
    PipelineError, ConfigurationError, DimensionError, OutOfBoundsError,
    DegenerateRangeError, PipelineIOError,
)
from .image import Image
from .kernels import Kernel, KERNELS
from .stages import Greyscale, Crop, Resize, Normalise, Convolve, Stage, apply_stage
from .loader import parse_line, parse_pipeline, load_pipeline
from .pipeline import Pipeline
from .helpers import RunConfig, configure_logging, ensure_dir, load_image_rgba, save_image_rgba, list_images
from .runner import BatchRunner, BatchReport

__all__ = [
    "PipelineError", "ConfigurationError", "DimensionError", "OutOfBoundsError",
    "DegenerateRangeError", "PipelineIOError",
    "Image", "Kernel", "KERNELS",
    "Greyscale", "Crop", "Resize", "Normalise", "Convolve", "Stage", "apply_stage",
    "parse_line", "parse_pipeline", "load_pipeline",
    "Pipeline",
    "RunConfig", "configure_logging", "ensure_dir", "load_image_rgba", "save_image_rgba", "list_images",
    "BatchRunner", "BatchReport",
]
