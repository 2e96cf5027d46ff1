"""
Pixel transformation stages.

The stage set is closed: Greyscale, Crop, Resize, Normalise, Convolve. Each is
a frozen dataclass holding only its parameters; `apply_stage` is the single
evaluation entry point and always returns a freshly allocated Image.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Optional, Union

import cv2
import numpy as np

from .errors import ConfigurationError, DegenerateRangeError, DimensionError, PipelineError
from .image import Image, interior_window, require_region
from .kernels import KERNELS, Kernel, get_kernel

logger = logging.getLogger(__name__)

FLAT_POLICIES = ("keep", "zero", "error")

# largest image a stage may allocate (1 GiB of RGBA)
MAX_OUTPUT_PIXELS = 1 << 28

INTERPOLATIONS: Dict[str, int] = {
    "nearest": cv2.INTER_NEAREST,
    "linear": cv2.INTER_LINEAR,
    "area": cv2.INTER_AREA,
    "cubic": cv2.INTER_CUBIC,
}


class _StageBase:
    name: ClassVar[str]
    action: ClassVar[str]

    def validate(self) -> None:
        """Raise ConfigurationError if the parameters can never be evaluated."""

    def params(self) -> str:
        return ""

    def describe(self) -> str:
        p = self.params()
        return f"{self.action} ({p})" if p else self.action

    def _invalid(self, message: str) -> ConfigurationError:
        return ConfigurationError(message, stage=self.name)


def _is_int(v: Any) -> bool:
    return isinstance(v, (int, np.integer)) and not isinstance(v, bool)


@dataclass(frozen=True)
class Greyscale(_StageBase):
    name: ClassVar[str] = "greyscale"
    action: ClassVar[str] = "Greyscaling image"


@dataclass(frozen=True)
class Crop(_StageBase):
    x: int
    y: int
    width: int
    height: int

    name: ClassVar[str] = "crop"
    action: ClassVar[str] = "Cropping image"

    def validate(self) -> None:
        for field_name in ("x", "y", "width", "height"):
            v = getattr(self, field_name)
            if not _is_int(v) or v < 0:
                raise self._invalid(f"{field_name} must be a non-negative integer, got {v!r}")

    def params(self) -> str:
        return f"origin={self.x}x{self.y} size={self.width}x{self.height}"


@dataclass(frozen=True)
class Resize(_StageBase):
    width_scale: float
    height_scale: float
    interpolation: str = "linear"

    name: ClassVar[str] = "resize"
    action: ClassVar[str] = "Resizing image"

    def validate(self) -> None:
        for field_name in ("width_scale", "height_scale"):
            v = getattr(self, field_name)
            if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v) or v <= 0:
                raise self._invalid(f"{field_name} must be a positive number, got {v!r}")
        if self.interpolation not in INTERPOLATIONS:
            raise self._invalid(
                f"unknown interpolation {self.interpolation!r}; expected one of {', '.join(INTERPOLATIONS)}"
            )

    def params(self) -> str:
        return f"scale={self.width_scale}x{self.height_scale} interp={self.interpolation}"

    def output_size(self, width: int, height: int) -> tuple:
        # truncation, not rounding
        return int(self.width_scale * width), int(self.height_scale * height)


@dataclass(frozen=True)
class Normalise(_StageBase):
    include_zero: bool
    flat: str = "keep"   # policy when old_max == old_min: 'keep' | 'zero' | 'error'

    name: ClassVar[str] = "normalise"
    action: ClassVar[str] = "Normalising image"

    def validate(self) -> None:
        if not isinstance(self.include_zero, bool):
            raise self._invalid(f"include_zero must be a bool, got {self.include_zero!r}")
        if self.flat not in FLAT_POLICIES:
            raise self._invalid(f"unknown flat policy {self.flat!r}; expected one of {', '.join(FLAT_POLICIES)}")

    def params(self) -> str:
        return f"zero={'yes' if self.include_zero else 'no'} flat={self.flat}"


@dataclass(frozen=True)
class Convolve(_StageBase):
    kernel: str

    name: ClassVar[str] = "convolve"
    action: ClassVar[str] = "Convolving image"

    @property
    def weights(self) -> Optional[Kernel]:
        """The preset for `kernel`, or None when the name is unknown (unset)."""
        return get_kernel(self.kernel)

    def validate(self) -> None:
        if self.weights is None:
            raise self._invalid(f"unknown kernel {self.kernel!r}; expected one of {', '.join(KERNELS)}")

    def params(self) -> str:
        return f"kernel={self.kernel}"


Stage = Union[Greyscale, Crop, Resize, Normalise, Convolve]
STAGE_TYPES = (Greyscale, Crop, Resize, Normalise, Convolve)


# Algorithms

def luminance(pixels: np.ndarray) -> np.ndarray:
    """HxW uint8 intensity of RGBA pixels (OpenCV's BT.601 weights)."""
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        return np.zeros(pixels.shape[:2], np.uint8)
    return cv2.cvtColor(np.ascontiguousarray(pixels), cv2.COLOR_RGBA2GRAY)


def _greyscale(stage: Greyscale, image: Image) -> Image:
    out = image.pixels.copy()
    out[..., :3] = luminance(image.pixels)[..., None]
    return Image(out)


def _crop(stage: Crop, image: Image) -> Image:
    require_region(image, stage.x, stage.y, stage.width, stage.height)
    region = image.pixels[stage.y:stage.y + stage.height, stage.x:stage.x + stage.width]
    return Image(region.copy())


def _resize(stage: Resize, image: Image) -> Image:
    new_w, new_h = stage.output_size(image.width, image.height)
    if new_w == 0 or new_h == 0:
        return Image.blank(new_w, new_h)
    if new_w * new_h > MAX_OUTPUT_PIXELS:
        raise DimensionError(
            f"resizing {image.size} would give {new_w}x{new_h}, over the {MAX_OUTPUT_PIXELS} pixel limit",
            stage=stage.name,
        )
    try:
        out = cv2.resize(image.pixels, (new_w, new_h), interpolation=INTERPOLATIONS[stage.interpolation])
    except cv2.error as e:
        raise DimensionError(f"cannot resize {image.size} to {new_w}x{new_h}: {e}", stage=stage.name) from e
    return Image(np.ascontiguousarray(out))


def _normalise(stage: Normalise, image: Image) -> Image:
    out = image.pixels.copy()
    out[..., 3] = 255
    if image.is_empty:
        return Image(out)

    # bounds come from a grey copy; the colour image is what gets stretched
    gray = luminance(image.pixels)
    values = gray.ravel() if stage.include_zero else gray[gray > 0]
    if values.size == 0:
        return _flat_range(stage, out, "no non-zero intensities")
    old_min, old_max = int(values.min()), int(values.max())
    logger.debug("normalise: intensity range [%d, %d]", old_min, old_max)
    if old_max == old_min:
        return _flat_range(stage, out, f"every intensity is {old_min}")

    rgb = image.pixels[..., :3].astype(np.float64)
    stretched = np.trunc((rgb - old_min) * 255.0 / (old_max - old_min))
    out[..., :3] = np.clip(stretched, 0, 255).astype(np.uint8)
    return Image(out)


def _flat_range(stage: Normalise, out: np.ndarray, reason: str) -> Image:
    if stage.flat == "error":
        raise DegenerateRangeError(f"cannot stretch a flat intensity range ({reason})", stage=stage.name)
    logger.warning("normalise: flat intensity range (%s), policy '%s'", reason, stage.flat)
    if stage.flat == "zero":
        out[..., :3] = 0
    return Image(out)


def _convolve(stage: Convolve, image: Image) -> Image:
    kernel = stage.weights
    if kernel is None:
        raise ConfigurationError(f"kernel {stage.kernel!r} is not set", stage=stage.name)

    k, r = kernel.size, kernel.radius
    # small inputs grow to the kernel size, the extra area stays blank
    out = Image.blank(max(image.width, k), max(image.height, k))
    window = interior_window(image.width, image.height, r, r)
    if window is None:
        return out

    rows, cols = window
    ih, iw = image.height - 2 * r, image.width - 2 * r
    src = image.pixels[..., :3].astype(np.float64)
    acc = np.zeros((ih, iw, 3), np.float64)
    w = kernel.weights
    for dx in range(k):
        for dy in range(k):
            acc += w[dx, dy] * src[dy:dy + ih, dx:dx + iw]

    # truncate toward zero, then wrap into a byte
    out.pixels[rows, cols, :3] = (np.trunc(acc).astype(np.int64) & 0xFF).astype(np.uint8)
    out.pixels[rows, cols, 3] = 255
    return out


_ALGORITHMS: Dict[type, Callable[[Any, Image], Image]] = {
    Greyscale: _greyscale,
    Crop: _crop,
    Resize: _resize,
    Normalise: _normalise,
    Convolve: _convolve,
}


def apply_stage(stage: Stage, image: Image) -> Image:
    """Evaluate one stage on `image`, returning a new Image."""
    try:
        algorithm = _ALGORITHMS[type(stage)]
    except KeyError:
        raise ConfigurationError(f"not a pipeline stage: {stage!r}") from None
    try:
        return algorithm(stage, image)
    except PipelineError as exc:
        if exc.stage is None:
            exc.stage = stage.name
        raise
