from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

import logging
import os

import cv2
import numpy as np

from .errors import PipelineIOError
from .image import Image

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp")


# Run configuration

@dataclass
class RunConfig:
    save_all: bool = False      # write every intermediate stage output
    verbose: bool = False       # per-stage sizes at INFO instead of DEBUG
    show: bool = False          # matplotlib preview of the first image
    jobs: int = 1               # images processed concurrently
    extensions: Tuple[str, ...] = IMAGE_EXTENSIONS


# Logging

LOG_FORMAT = "%(asctime)s - %(name)-20s - %(levelname)-8s - %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Console logging for the CLI; a handler already installed is left alone."""
    logging.basicConfig(format=LOG_FORMAT, datefmt="%H:%M:%S")
    logging.getLogger().setLevel(logging.INFO)
    # third-party DEBUG chatter (matplotlib) stays off
    logging.getLogger("imgpipe").setLevel(logging.DEBUG if verbose else logging.INFO)


# I/O & filesystem helpers

def ensure_dir(path: str | os.PathLike) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def load_image_rgba(path: str | os.PathLike) -> Image:
    """Load an image as RGBA uint8. Grey, BGR and BGRA files are converted."""
    arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if arr is None:
        raise PipelineIOError("could not read image", source=str(path))
    if arr.dtype != np.uint8:
        # 16-bit PNG/TIFF
        arr = (arr >> 8).astype(np.uint8) if arr.dtype == np.uint16 else arr.astype(np.uint8)
    if arr.ndim == 2:
        rgba = cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
    elif arr.shape[2] == 3:
        rgba = cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
    else:
        rgba = cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
    return Image(np.ascontiguousarray(rgba), path=Path(path))


def save_image_rgba(image: Image, path: str | os.PathLike) -> Path:
    """Write `image` losslessly; the parent directory is created if needed."""
    p = Path(path)
    if image.is_empty:
        raise PipelineIOError(f"cannot encode an empty {image.size} image", source=str(p))
    # JPEG/BMP have no alpha channel
    code = cv2.COLOR_RGBA2BGR if p.suffix.lower() in (".jpg", ".jpeg", ".bmp") else cv2.COLOR_RGBA2BGRA
    try:
        ensure_dir(p.parent)
        ok = cv2.imwrite(str(p), cv2.cvtColor(image.pixels, code))
    except (OSError, cv2.error) as e:
        raise PipelineIOError(f"could not write image: {e}", source=str(p)) from e
    if not ok:
        raise PipelineIOError("could not write image", source=str(p))
    return p


def list_images(
    dir_path: str | os.PathLike,
    extensions: Tuple[str, ...] = IMAGE_EXTENSIONS,
) -> List[Path]:
    p = Path(dir_path)
    if not p.is_dir():
        raise PipelineIOError("not a directory", source=str(p))
    return [
        fp for fp in sorted(p.iterdir())
        if fp.is_file() and fp.suffix.lower() in extensions
    ]
