from __future__ import annotations
from typing import List, Tuple

import matplotlib.pyplot as plt

from .image import Image


class Visualizer:
    """Stage previews for --show. Library code never opens windows on its own."""

    def __init__(self, panel_size: float = 4.0, max_columns: int = 4) -> None:
        if max_columns < 1:
            raise ValueError("max_columns must be >= 1")
        self.panel_size = panel_size
        self.max_columns = max_columns

    def stage_figure(self, source: Image, stages: List[Tuple[str, Image]]) -> plt.Figure:
        """
        Grid of the source image followed by each stage output, titled with
        the stage label and its size. Empty outputs have nothing to draw and
        are left out.
        """
        frames = [("Input", source)] + [(t, img) for t, img in stages if not img.is_empty]
        if source.is_empty:
            frames = frames[1:]
        if not frames:
            raise ValueError("nothing to show")

        cols = min(len(frames), self.max_columns)
        rows = -(-len(frames) // cols)
        fig, axes = plt.subplots(
            rows, cols, squeeze=False,
            figsize=(self.panel_size * cols, self.panel_size * rows),
        )
        flat = axes.ravel()
        for ax, (title, img) in zip(flat, frames):
            ax.imshow(img.pixels, interpolation="nearest")
            ax.set_title(f"{title} ({img.size})")
            ax.axis("off")
        for ax in flat[len(frames):]:
            fig.delaxes(ax)
        fig.tight_layout()
        return fig

    def show_stages(self, source: Image, stages: List[Tuple[str, Image]], show: bool = True) -> plt.Figure:
        fig = self.stage_figure(source, stages)
        if show:
            plt.show()
        return fig
