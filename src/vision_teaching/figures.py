# figures.py – matplotlib renderings of the tutorial results
#
# Everything builds on matplotlib.figure.Figure directly (no pyplot state),
# so figures can be made inside the Flask app and in tests without a display.

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Mapping, Sequence, Tuple

import numpy as np
from matplotlib.figure import Figure
from mpl_toolkits.mplot3d.art3d import Poly3DCollection

from .chromaticity import DICHROMATS
from .cones import CONE_NAMES, normalize_columns, normalize_rows

log = logging.getLogger(__name__)

# --- style -------------------------------------------------------------------
LINE_WIDTH = 2.0
MARKER_SIZE = 8
LABEL_FONT = 14
TITLE_FONT = 16
SUBPLOT_SHRINK = 4
CURVE_COLORS = ("r", "g", "b")
WAVELENGTH_TICKS = np.arange(350, 751, 50)


def plot_cmfs(
    wls: np.ndarray,
    T: np.ndarray,
    title: str,
    ylabel: str,
    ylim: Tuple[float, float],
    fit: np.ndarray | None = None,
) -> Figure:
    """Three spectral curves, optionally with a dotted black fit on top."""
    fig = Figure(figsize=(7, 6))
    ax = fig.add_subplot()
    for row, color in zip(T, CURVE_COLORS):
        ax.plot(wls, row, color=color, linewidth=LINE_WIDTH)
    if fit is not None:
        for row in fit:
            ax.plot(wls, row, "k:", linewidth=LINE_WIDTH - 1)
    ax.set_xlim(WAVELENGTH_TICKS[0], WAVELENGTH_TICKS[-1])
    ax.set_xticks(WAVELENGTH_TICKS)
    ax.set_ylim(*ylim)
    ax.set_xlabel("Wavelength (nm)", fontsize=LABEL_FONT)
    ax.set_ylabel(ylabel, fontsize=LABEL_FONT)
    ax.set_title(title, fontsize=TITLE_FONT)
    return fig


def plot_chromaticity_panels(
    locus_1nm: np.ndarray,
    locus_10nm: np.ndarray,
    isolating_chrom: np.ndarray,
    lines_by_dichromat: Mapping[str, Sequence[np.ndarray]],
) -> Figure:
    """
    Spectrum locus in the rg chromaticity diagram, one panel per dichromat,
    with that dichromat's confusion lines and the chromaticity of the
    missing cone's isolating direction.
    """
    fig = Figure(figsize=(12, 6))
    axes = fig.subplots(1, 3)
    for ax, d in zip(axes, DICHROMATS):
        ax.plot(locus_1nm[0], locus_1nm[1], "k", linewidth=LINE_WIDTH - 1)
        ax.plot(
            locus_10nm[0],
            locus_10nm[1],
            "ko",
            markerfacecolor="k",
            markersize=MARKER_SIZE - SUBPLOT_SHRINK - 2,
        )
        # Outside the locus: negative power, not physically realisable.
        ax.plot(
            isolating_chrom[0, d.cone],
            isolating_chrom[1, d.cone],
            d.color + "o",
            markerfacecolor=d.color,
            markersize=MARKER_SIZE - SUBPLOT_SHRINK,
        )
        for line in lines_by_dichromat.get(d.name, ()):
            ax.plot(line[0], line[1], d.color, linewidth=1)
        ax.set_xlim(-2, 2)
        ax.set_ylim(-1, 3)
        ax.set_xticks(np.arange(-2, 2.01, 0.5))
        ax.set_yticks(np.arange(-1, 3.01, 0.5))
        ax.set_xlabel("r", fontsize=LABEL_FONT - SUBPLOT_SHRINK)
        ax.set_ylabel("g", fontsize=LABEL_FONT - SUBPLOT_SHRINK)
        ax.set_title(d.title, fontsize=TITLE_FONT - SUBPLOT_SHRINK)
        ax.set_aspect("equal", adjustable="box")
    fig.tight_layout()
    return fig


def _segment(v: np.ndarray) -> Tuple[list, list, list]:
    # symmetric about the origin
    return [-v[0], v[0]], [-v[1], v[1]], [-v[2], v[2]]


def plot_isolating_vectors(
    isolating_dirs: np.ndarray, response_vectors: np.ndarray, cone: int = 0
) -> Figure:
    """
    One cone's isolating direction (solid) against the response vectors of
    the other two classes (dotted) and the plane they span, plus the cone's
    own response vector.
    """
    iso = normalize_columns(isolating_dirs)[:, cone]
    resp = normalize_rows(response_vectors)
    others = [k for k in range(3) if k != cone]

    fig = Figure(figsize=(7, 7))
    ax = fig.add_subplot(projection="3d")
    ax.plot([0], [0], [0], "ko", markerfacecolor="k", markersize=12)
    ax.plot(*_segment(iso), CURVE_COLORS[cone], linewidth=LINE_WIDTH + 1)
    for k in others:
        ax.plot(*_segment(resp[k]), CURVE_COLORS[k] + ":", linewidth=LINE_WIDTH + 1)

    a, b = resp[others[0]], resp[others[1]]
    plane = np.array([-a - b, -a + b, a + b, a - b])
    ax.add_collection3d(
        Poly3DCollection([plane], facecolor=(0, 0.25, 0.25), edgecolor="none", alpha=0.25)
    )
    ax.plot(*_segment(resp[cone]), CURVE_COLORS[cone] + ":", linewidth=LINE_WIDTH + 1)

    for setter in (ax.set_xlim, ax.set_ylim, ax.set_zlim):
        setter(-1, 1)
    for setter in (ax.set_xticks, ax.set_yticks, ax.set_zticks):
        setter([-1, 0, 1])
    ax.set_xlabel("R", fontsize=LABEL_FONT)
    ax.set_ylabel("G", fontsize=LABEL_FONT)
    ax.set_zlabel("B", fontsize=LABEL_FONT)
    ax.set_title(
        f"{CONE_NAMES[cone]} Cone Isolating and Response Vectors", fontsize=TITLE_FONT
    )
    ax.invert_xaxis()
    ax.invert_yaxis()
    ax.view_init(elev=34, azim=-51)
    return fig


# --- output ------------------------------------------------------------------
def figure_png(fig: Figure, dpi: int = 100) -> bytes:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=dpi)
    return buf.getvalue()


def save_figures(
    figures: Mapping[str, Figure], directory: str | Path, fmt: str = "png"
) -> list[Path]:
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for name, fig in figures.items():
        path = out_dir / f"{name}.{fmt}"
        fig.savefig(path, format=fmt)
        log.info("wrote %s", path)
        paths.append(path)
    return paths


__all__ = [
    "figure_png",
    "plot_chromaticity_panels",
    "plot_cmfs",
    "plot_isolating_vectors",
    "save_figures",
]
