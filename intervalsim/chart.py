from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

NORMALIZE_MODES = ("column", "whole")


def normalize_columns(grid: np.ndarray) -> np.ndarray:
    """Scale each column so its largest value becomes 1."""
    values = np.asarray(grid, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return values / np.nanmax(values, axis=0, keepdims=True)


def normalize_whole(grid: np.ndarray) -> np.ndarray:
    """Scale the whole chart so its largest value becomes 1."""
    values = np.asarray(grid, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return values / np.nanmax(values)


def normalize(grid: np.ndarray, mode: str = "column") -> np.ndarray:
    if mode == "column":
        return normalize_columns(grid)
    if mode == "whole":
        return normalize_whole(grid)
    raise ValueError(
        f"Unknown normalize mode '{mode}'. Expected one of {NORMALIZE_MODES}."
    )


def upscale_bilinear(grid: np.ndarray, magnify: int) -> np.ndarray:
    """Magnify a 2-D grid by an integer factor with bilinear interpolation.

    Output samples sit at the centers of the magnified pixels and are clamped to
    the source edges.
    """
    if magnify < 1:
        raise ValueError("magnify must be >= 1.")
    values = np.asarray(grid, dtype=np.float64)
    if magnify == 1:
        return values.copy()
    height, width = values.shape
    ys = np.clip((np.arange(height * magnify) + 0.5) / magnify - 0.5, 0, height - 1)
    xs = np.clip((np.arange(width * magnify) + 0.5) / magnify - 0.5, 0, width - 1)
    y0 = np.floor(ys).astype(int)
    x0 = np.floor(xs).astype(int)
    y1 = np.minimum(y0 + 1, height - 1)
    x1 = np.minimum(x0 + 1, width - 1)
    wy = (ys - y0)[:, None]
    wx = (xs - x0)[None, :]
    top = values[y0][:, x0] * (1.0 - wx) + values[y0][:, x1] * wx
    bottom = values[y1][:, x0] * (1.0 - wx) + values[y1][:, x1] * wx
    return top * (1.0 - wy) + bottom * wy


def to_rgba(grid: np.ndarray) -> np.ndarray:
    """Greyscale 8-bit RGBA buffer of shape (height, width, 4).

    Values are expected in [0, 1]; nan is drawn black.
    """
    values = np.nan_to_num(
        np.asarray(grid, dtype=np.float64), nan=0.0, posinf=1.0, neginf=0.0
    )
    grey = np.clip(values * 255.0, 0.0, 255.0).astype(np.uint8)
    image = np.empty(grey.shape + (4,), dtype=np.uint8)
    image[..., 0] = grey
    image[..., 1] = grey
    image[..., 2] = grey
    image[..., 3] = 255
    return image


def render_chart(
    grid: np.ndarray, *, normalize_mode: str = "column", magnify: int = 1
) -> np.ndarray:
    return to_rgba(upscale_bilinear(normalize(grid, normalize_mode), magnify))


def write_chart(
    path: Path,
    grid: np.ndarray,
    *,
    normalize_mode: str = "column",
    magnify: int = 1,
) -> np.ndarray:
    """Render `grid` and write it to `path` as a PNG. Returns the RGBA buffer."""
    image = render_chart(grid, normalize_mode=normalize_mode, magnify=magnify)
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.imsave(path, image)
    return image
