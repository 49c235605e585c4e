"""Replay draw commands onto a matplotlib Agg canvas and encode as PNG."""

from __future__ import annotations

import io
from typing import Iterable

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from .rendering import CanvasSize, DrawCommand, FillRect, Line, StrokeRect, Text

_POINTS_PER_INCH = 72.0


def paint_png(commands: Iterable[DrawCommand], canvas: CanvasSize, dpi: int = 100) -> bytes:
    """Return PNG bytes of ``canvas`` pixels with every command painted in order."""

    if canvas.width <= 0 or canvas.height <= 0:
        raise ValueError("canvas must have a positive area")
    px_to_pt = _POINTS_PER_INCH / dpi

    fig = plt.figure(figsize=(canvas.width / dpi, canvas.height / dpi), dpi=dpi)
    try:
        ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
        ax.set_xlim(0, canvas.width)
        ax.set_ylim(canvas.height, 0)
        ax.axis("off")

        for zorder, command in enumerate(commands):
            if isinstance(command, FillRect):
                ax.add_patch(
                    Rectangle(
                        (command.x, command.y),
                        command.width,
                        command.height,
                        facecolor=command.color,
                        edgecolor="none",
                        zorder=zorder,
                    )
                )
            elif isinstance(command, StrokeRect):
                ax.add_patch(
                    Rectangle(
                        (command.x, command.y),
                        command.width,
                        command.height,
                        fill=False,
                        edgecolor=command.color,
                        linewidth=command.line_width * px_to_pt,
                        zorder=zorder,
                    )
                )
            elif isinstance(command, Line):
                ax.plot(
                    [command.x1, command.x2],
                    [command.y1, command.y2],
                    color=command.color,
                    linewidth=command.line_width * px_to_pt,
                    solid_capstyle="butt",
                    zorder=zorder,
                )
            elif isinstance(command, Text):
                ax.text(
                    command.x,
                    command.y,
                    command.text,
                    color=command.color,
                    fontsize=command.size * px_to_pt,
                    fontweight="bold" if command.bold else "normal",
                    ha=command.align,
                    va="baseline",
                    zorder=zorder,
                )
            else:
                raise TypeError(f"unsupported draw command {type(command).__name__}")

        buf = io.BytesIO()
        fig.savefig(buf, format="png", dpi=dpi)
    finally:
        plt.close(fig)
    return buf.getvalue()


__all__ = ["paint_png"]
