"""
Pipeline description files: one stage per line.

    # comments and blank lines are ignored
    crop origin=10x20 size=100x50
    greyscale
    resize scale=0.5x0.5 interp=area
    normalise zero=no flat=keep
    convolve kernel=blur
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Tuple

from .errors import ConfigurationError, PipelineIOError
from .stages import Convolve, Crop, Greyscale, Normalise, Resize, Stage

logger = logging.getLogger(__name__)

_YES_NO = {"yes": True, "no": False}


def _pair(key: str, value: str, cast: Callable[[str], object]) -> Tuple:
    parts = value.lower().split("x")
    if len(parts) != 2 or not all(parts):
        raise ConfigurationError(f"{key}={value!r} is not a pair like 10x20")
    try:
        return cast(parts[0]), cast(parts[1])
    except ValueError:
        raise ConfigurationError(f"{key}={value!r} has a malformed number") from None


def _choice(key: str, value: str, choices) -> str:
    if value not in choices:
        raise ConfigurationError(f"{key}={value!r}; expected one of {', '.join(choices)}")
    return value


def _take(params: Dict[str, str], stage: str, required: Tuple[str, ...], optional: Tuple[str, ...] = ()) -> Dict[str, str]:
    missing = [k for k in required if k not in params]
    if missing:
        raise ConfigurationError(f"{stage} is missing {', '.join(k + '=' for k in missing)}")
    unknown = sorted(set(params) - set(required) - set(optional))
    if unknown:
        raise ConfigurationError(f"{stage} does not accept {', '.join(unknown)}")
    return params


def _build_greyscale(params: Mapping[str, str]) -> Stage:
    _take(dict(params), "greyscale", ())
    return Greyscale()


def _build_crop(params: Mapping[str, str]) -> Stage:
    p = _take(dict(params), "crop", ("origin", "size"))
    x, y = _pair("origin", p["origin"], int)
    w, h = _pair("size", p["size"], int)
    return Crop(x, y, w, h)


def _build_resize(params: Mapping[str, str]) -> Stage:
    p = _take(dict(params), "resize", ("scale",), ("interp",))
    sw, sh = _pair("scale", p["scale"], float)
    return Resize(sw, sh, interpolation=p.get("interp", "linear"))


def _build_normalise(params: Mapping[str, str]) -> Stage:
    p = _take(dict(params), "normalise", ("zero",), ("flat",))
    include_zero = _YES_NO[_choice("zero", p["zero"].lower(), tuple(_YES_NO))]
    return Normalise(include_zero, flat=p.get("flat", "keep"))


def _build_convolve(params: Mapping[str, str]) -> Stage:
    p = _take(dict(params), "convolve", ("kernel",))
    return Convolve(p["kernel"])


BUILDERS: Dict[str, Callable[[Mapping[str, str]], Stage]] = {
    "greyscale": _build_greyscale,
    "grayscale": _build_greyscale,
    "crop": _build_crop,
    "resize": _build_resize,
    "normalise": _build_normalise,
    "normalize": _build_normalise,
    "convolve": _build_convolve,
}


def parse_line(line: str) -> Stage:
    """Build and validate a single stage from `name key=value ...`."""
    tokens = line.split()
    if not tokens:
        raise ConfigurationError("empty stage line")
    name, rest = tokens[0].lower(), tokens[1:]
    builder = BUILDERS.get(name)
    if builder is None:
        raise ConfigurationError(f"unknown stage {tokens[0]!r}; expected one of {', '.join(sorted(set(BUILDERS)))}")

    params: Dict[str, str] = {}
    for tok in rest:
        key, sep, value = tok.partition("=")
        if not sep or not key or not value:
            raise ConfigurationError(f"expected key=value, got {tok!r}")
        key = key.lower()
        if key in params:
            raise ConfigurationError(f"duplicate key {key!r}")
        params[key] = value

    stage = builder(params)
    stage.validate()
    return stage


def parse_pipeline(text: str) -> List[Stage]:
    stages: List[Stage] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        try:
            stages.append(parse_line(line))
        except ConfigurationError as e:
            raise ConfigurationError(f"line {lineno}: {e}") from None
    return stages


def load_pipeline(path: str | os.PathLike) -> List[Stage]:
    """Read and parse a pipeline file. Raises PipelineIOError / ConfigurationError."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"pipeline file is not UTF-8 text (byte {e.start})", source=str(p)) from e
    except OSError as e:
        raise PipelineIOError(f"could not read pipeline file: {e.strerror or e}", source=str(p)) from e
    try:
        stages = parse_pipeline(text)
    except ConfigurationError as e:
        e.source = str(p)
        raise
    if not stages:
        logger.warning("%s: pipeline has no stages, images will pass through unchanged", p)
    return stages
