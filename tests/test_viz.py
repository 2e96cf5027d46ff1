"""Tests for the matplotlib stage previews."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from imgpipe.image import Image  # noqa: E402
from imgpipe.viz import Visualizer  # noqa: E402


class TestVisualizer:
    def test_input_then_stage_titles(self, noisy: Image) -> None:
        frames = [("1: crop", Image.blank(3, 2)), ("2: greyscale", noisy)]
        fig = Visualizer().stage_figure(noisy, frames)
        assert [ax.get_title() for ax in fig.axes] == ["Input (9x12)", "1: crop (3x2)", "2: greyscale (9x12)"]
        plt.close(fig)

    def test_empty_outputs_skipped(self, noisy: Image) -> None:
        frames = [("1: crop", Image.blank(0, 0)), ("2: greyscale", noisy)]
        fig = Visualizer().show_stages(noisy, frames, show=False)
        assert [ax.get_title() for ax in fig.axes] == ["Input (9x12)", "2: greyscale (9x12)"]
        plt.close(fig)

    def test_wraps_into_rows(self, noisy: Image) -> None:
        frames = [(f"{i}: greyscale", noisy) for i in range(1, 5)]
        fig = Visualizer(max_columns=2).stage_figure(noisy, frames)
        assert len(fig.axes) == 5  # 3x2 grid, unused cell removed
        plt.close(fig)

    def test_nothing_to_show(self) -> None:
        with pytest.raises(ValueError):
            Visualizer().stage_figure(Image.blank(0, 0), [])

    def test_bad_column_count(self) -> None:
        with pytest.raises(ValueError):
            Visualizer(max_columns=0)
