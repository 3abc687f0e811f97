from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
from colour import XYZ_to_xyY

log = logging.getLogger(__name__)


def chromaticity(T: np.ndarray) -> np.ndarray:
    """
    Normalise tristimulus columns by their sum.

    Returns a 3×N array whose rows are the first two normalised values and
    the unnormalised second value.  For XYZ this is the familiar xyY; the
    conversion does not care which tristimulus system it is handed, so for
    Stiles & Burch RGB the first two rows are the rg chromaticity.
    """
    T = np.asarray(T, dtype=np.float64)
    if T.ndim == 1:
        return np.asarray(XYZ_to_xyY(T), dtype=np.float64)
    if T.shape[0] != 3:
        raise ValueError(f"expected tristimulus values in 3 rows, got {T.shape}")
    return np.asarray(XYZ_to_xyY(T.T), dtype=np.float64).T


# --- dichromats --------------------------------------------------------------
@dataclass(frozen=True)
class Dichromat:
    name: str
    cone: int  # index of the missing cone class
    color: str
    # Hand tuned so the lines reach the isolating chromaticity.  The lines
    # run the same way for either sign; the deutan projection is cleaner
    # with a negative factor.
    length_factor: float

    @property
    def title(self) -> str:
        return self.name.capitalize()


DICHROMATS = (
    Dichromat("protan", 0, "r", 2.0),
    Dichromat("deutan", 1, "g", -3.0),
    Dichromat("tritan", 2, "b", 30.0),
)


def get_dichromat(name: str) -> Dichromat:
    key = (name or "").strip().lower()
    for d in DICHROMATS:
        if d.name == key:
            return d
    raise ValueError(
        f"unknown dichromat '{name}', expected one of {[d.name for d in DICHROMATS]}"
    )


def confusion_line(
    start: np.ndarray,
    direction: np.ndarray,
    length_factor: float,
    n_points: int = 100,
) -> np.ndarray:
    """Tristimulus points (3×n) from ``start`` along ``direction``."""
    if n_points < 2:
        raise ValueError("n_points must be ≥ 2")
    start = np.asarray(start, dtype=np.float64).reshape(3, 1)
    direction = np.asarray(direction, dtype=np.float64).reshape(3, 1)
    weights = length_factor * np.arange(n_points) / (n_points - 1)
    return start + direction * weights[None, :]


def confusion_lines(
    T_locus: np.ndarray,
    isolating_dirs: np.ndarray,
    dichromat: Dichromat,
    n_points: int = 100,
) -> List[np.ndarray]:
    """
    Chromaticities of confusion lines starting at each spectrum locus point.

    Adding more and more of the missing cone's isolating stimulus swamps
    the starting tristimulus values, so all lines converge on the
    chromaticity of that isolating direction.
    """
    T_locus = np.asarray(T_locus, dtype=np.float64)
    direction = np.asarray(isolating_dirs, dtype=np.float64)[:, dichromat.cone]
    lines = [
        chromaticity(confusion_line(T_locus[:, i], direction, dichromat.length_factor, n_points))
        for i in range(T_locus.shape[1])
    ]
    log.debug("%s: %d confusion lines of %d points", dichromat.name, len(lines), n_points)
    return lines


__all__ = [
    "DICHROMATS",
    "Dichromat",
    "chromaticity",
    "confusion_line",
    "confusion_lines",
    "get_dichromat",
]
