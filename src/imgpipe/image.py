from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from .errors import OutOfBoundsError

Rgba = Tuple[int, int, int, int]


@dataclass
class Image:
    """
    RGBA pixel buffer (+ optional source path for bookkeeping).
    pixels: shape (H, W, 4), dtype uint8, RGBA order. Indexing is (x, y) at the
    API level and [y, x] on the array.
    """
    pixels: np.ndarray
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"expected (H, W, 4) pixels, got shape {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"expected uint8 pixels, got {self.pixels.dtype}")

    @classmethod
    def blank(cls, width: int, height: int) -> "Image":
        """All channels zero (black, fully transparent)."""
        if width < 0 or height < 0:
            raise ValueError(f"negative image size {width}x{height}")
        return cls(np.zeros((height, width, 4), np.uint8))

    @classmethod
    def from_array(cls, arr: np.ndarray, path: Optional[Path] = None) -> "Image":
        """Accepts HxW grey, HxWx3 RGB or HxWx4 RGBA uint8 arrays."""
        a = np.asarray(arr)
        if a.dtype != np.uint8:
            raise ValueError(f"expected uint8 array, got {a.dtype}")
        if a.ndim == 2:
            a = np.repeat(a[:, :, None], 3, axis=2)
        if a.ndim != 3 or a.shape[2] not in (3, 4):
            raise ValueError(f"unsupported array shape {a.shape}")
        if a.shape[2] == 3:
            alpha = np.full(a.shape[:2] + (1,), 255, np.uint8)
            a = np.concatenate([a, alpha], axis=2)
        return cls(np.ascontiguousarray(a), path=path)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def copy(self) -> "Image":
        return Image(self.pixels.copy(), path=self.path)

    def _check(self, x: int, y: int) -> None:
        if not 0 <= x < self.width:
            raise OutOfBoundsError(
                f"x={x} outside image of width {self.width}", axis="x", coordinate=x, limit=self.width
            )
        if not 0 <= y < self.height:
            raise OutOfBoundsError(
                f"y={y} outside image of height {self.height}", axis="y", coordinate=y, limit=self.height
            )

    def get_pixel(self, x: int, y: int) -> Rgba:
        self._check(x, y)
        r, g, b, a = (int(v) for v in self.pixels[y, x])
        return r, g, b, a

    def set_pixel(self, x: int, y: int, rgba: Rgba) -> None:
        self._check(x, y)
        self.pixels[y, x] = rgba

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Image):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))


# Neighbourhood / boundary helpers shared by the spatial stages

def require_region(image: Image, x: int, y: int, width: int, height: int) -> None:
    """Raise OutOfBoundsError naming the first coordinate past the image edge."""
    if x + width > image.width:
        last = x + width - 1
        raise OutOfBoundsError(
            f"region x range [{x}, {x + width}) exceeds image width {image.width} (x={last})",
            axis="x", coordinate=last, limit=image.width,
        )
    if y + height > image.height:
        last = y + height - 1
        raise OutOfBoundsError(
            f"region y range [{y}, {y + height}) exceeds image height {image.height} (y={last})",
            axis="y", coordinate=last, limit=image.height,
        )


def interior_window(width: int, height: int, rx: int, ry: int) -> Optional[Tuple[slice, slice]]:
    """
    (rows, cols) slices of the pixels whose (2*rx+1)x(2*ry+1) neighbourhood
    lies fully inside a width x height image; None when there are none.
    """
    if width - 2 * rx <= 0 or height - 2 * ry <= 0:
        return None
    return slice(ry, height - ry), slice(rx, width - rx)
