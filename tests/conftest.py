"""Shared fixtures: small in-memory images."""

from __future__ import annotations

from typing import Callable, Tuple

import numpy as np
import pytest

from imgpipe.image import Image

SolidFactory = Callable[[int, int, Tuple[int, int, int, int]], Image]


def _solid(width: int, height: int, rgba: Tuple[int, int, int, int]) -> Image:
    px = np.empty((height, width, 4), np.uint8)
    px[...] = rgba
    return Image(px)


@pytest.fixture()
def make_solid() -> SolidFactory:
    return _solid


@pytest.fixture()
def red_4x4() -> Image:
    return _solid(4, 4, (255, 0, 0, 255))


@pytest.fixture()
def noisy() -> Image:
    """9 wide, 12 high, random RGBA."""
    rng = np.random.default_rng(1234)
    return Image(rng.integers(0, 256, size=(12, 9, 4), dtype=np.uint8))


@pytest.fixture()
def grey_ramp() -> Image:
    """256x1 grey ramp 0..255, opaque."""
    values = np.arange(256, dtype=np.uint8)
    px = np.empty((1, 256, 4), np.uint8)
    px[0, :, 0] = px[0, :, 1] = px[0, :, 2] = values
    px[0, :, 3] = 255
    return Image(px)
