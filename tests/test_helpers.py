"""Tests for image codec and filesystem helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np
import pytest

from imgpipe.errors import PipelineIOError
from imgpipe.helpers import configure_logging, list_images, load_image_rgba, save_image_rgba
from imgpipe.image import Image


class TestCodec:
    def test_png_keeps_rgba_bytes(self, tmp_path: Path, noisy: Image) -> None:
        path = save_image_rgba(noisy, tmp_path / "nested" / "out.png")
        loaded = load_image_rgba(path)
        assert loaded == noisy
        assert loaded.path == path

    def test_bgr_file_loads_as_opaque_rgb(self, tmp_path: Path) -> None:
        bgr = np.zeros((2, 3, 3), np.uint8)
        bgr[..., 0] = 30  # blue
        bgr[..., 2] = 200  # red
        cv2.imwrite(str(tmp_path / "c.png"), bgr)
        img = load_image_rgba(tmp_path / "c.png")
        assert img.size == "3x2"
        assert img.get_pixel(1, 1) == (200, 0, 30, 255)

    def test_grey_file(self, tmp_path: Path) -> None:
        cv2.imwrite(str(tmp_path / "g.png"), np.full((4, 4), 77, np.uint8))
        assert load_image_rgba(tmp_path / "g.png").get_pixel(3, 3) == (77, 77, 77, 255)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(PipelineIOError, match="missing.png"):
            load_image_rgba(tmp_path / "missing.png")

    def test_not_an_image(self, tmp_path: Path) -> None:
        (tmp_path / "fake.png").write_text("hello")
        with pytest.raises(PipelineIOError):
            load_image_rgba(tmp_path / "fake.png")

    def test_empty_image_cannot_be_saved(self, tmp_path: Path) -> None:
        with pytest.raises(PipelineIOError, match="empty"):
            save_image_rgba(Image.blank(0, 3), tmp_path / "e.png")

    def test_jpeg_drops_alpha(self, tmp_path: Path, red_4x4: Image) -> None:
        path = save_image_rgba(red_4x4, tmp_path / "r.jpg")
        back = load_image_rgba(path)
        assert back.size == "4x4"
        assert (back.pixels[..., 3] == 255).all()
        assert (back.pixels[..., 0] > 240).all()
        assert (back.pixels[..., 1:3] < 15).all()


class TestFilesystem:
    def test_list_images_sorted_and_filtered(self, tmp_path: Path) -> None:
        for name in ("b.png", "a.PNG", "c.tif", "notes.txt"):
            (tmp_path / name).write_bytes(b"")
        (tmp_path / "sub.png").mkdir()
        assert [p.name for p in list_images(tmp_path)] == ["a.PNG", "b.png", "c.tif"]

    def test_list_images_custom_extensions(self, tmp_path: Path) -> None:
        (tmp_path / "a.png").write_bytes(b"")
        (tmp_path / "b.jpg").write_bytes(b"")
        assert [p.name for p in list_images(tmp_path, (".jpg",))] == ["b.jpg"]

    def test_list_images_requires_directory(self, tmp_path: Path) -> None:
        with pytest.raises(PipelineIOError):
            list_images(tmp_path / "absent")


class TestLogging:
    def test_verbose_enables_debug_for_package_only(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("imgpipe").level == logging.DEBUG
        assert logging.getLogger().level == logging.INFO
        configure_logging(verbose=False)
        assert logging.getLogger("imgpipe").level == logging.INFO
