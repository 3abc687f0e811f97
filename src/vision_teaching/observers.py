# observers.py – wavelength sampling and CIE/CVRL observer data
#   - "S" triples (start, step, count) as a small frozen dataclass
#   - Stiles & Burch 10° RGB CMFs and Stockman & Sharpe 10° fundamentals,
#     loaded from colour-science and resampled with its interpolators
#   - monochromatic primary basis for the Stiles & Burch primaries

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from colour.colorimetry import MSDS_CMFS, SpectralShape

log = logging.getLogger(__name__)

# --- constants ---------------------------------------------------------------
STILES_BURCH_10 = "Stiles & Burch 1959 10 Degree RGB CMFs"
STOCKMAN_SHARPE_10 = "Stockman & Sharpe 10 Degree Cone Fundamentals"

# Stiles & Burch 10° primaries (nm)
PRIMARY_WAVELENGTHS = (645.16, 526.32, 444.44)


@dataclass(frozen=True)
class Sampling:
    """Evenly spaced wavelength grid: ``start + step * arange(count)``."""

    start: float
    step: float
    count: int

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ValueError(f"step must be > 0, got {self.step}")
        if self.count < 1:
            raise ValueError(f"count must be ≥ 1, got {self.count}")

    @property
    def end(self) -> float:
        return self.start + self.step * (self.count - 1)

    def wavelengths(self) -> np.ndarray:
        return self.start + self.step * np.arange(self.count, dtype=np.float64)

    def shape(self) -> SpectralShape:
        return SpectralShape(self.start, self.end, self.step)

    @classmethod
    def from_wavelengths(cls, wls: Sequence[float]) -> "Sampling":
        wls = np.asarray(wls, dtype=np.float64)
        if wls.size == 1:
            return cls(float(wls[0]), 1.0, 1)
        steps = np.diff(wls)
        if not np.allclose(steps, steps[0]):
            raise ValueError("wavelengths must be evenly spaced")
        return cls(float(wls[0]), float(steps[0]), int(wls.size))


# 390…750 nm, which covers the plots
S_1NM = Sampling(390, 1, 361)
S_10NM = Sampling(390, 10, 37)


# --- data loading ------------------------------------------------------------
def load_observer(name: str, sampling: Sampling) -> np.ndarray:
    """Return the named colour-matching functions as a 3×N array on ``sampling``."""
    try:
        msds = MSDS_CMFS[name]
    except KeyError:
        raise KeyError(
            f"unknown observer '{name}', available: {sorted(MSDS_CMFS.keys())}"
        ) from None
    T = msds.copy().align(sampling.shape()).values.T  # 3×N
    log.debug("loaded %s at %s (%d samples)", name, sampling, T.shape[1])
    return np.ascontiguousarray(T, dtype=np.float64)


def stiles_burch_10(sampling: Sampling = S_1NM) -> np.ndarray:
    return load_observer(STILES_BURCH_10, sampling)


def stockman_sharpe_10(sampling: Sampling = S_1NM) -> np.ndarray:
    return load_observer(STOCKMAN_SHARPE_10, sampling)


# --- primaries ---------------------------------------------------------------
def monochromatic_primaries(
    sampling: Sampling, wavelengths: Sequence[float] = PRIMARY_WAVELENGTHS
) -> np.ndarray:
    """
    N×k basis whose columns are monochromatic lights at the grid wavelength
    nearest each primary.  Rounding the Stiles & Burch primaries to the
    nearest nm is good to about a percent in the cone checks.
    """
    wls = sampling.wavelengths()
    B = np.zeros((wls.size, len(wavelengths)))
    for i, wl in enumerate(wavelengths):
        idx = int(np.argmin(np.abs(wls - wl)))
        if abs(wls[idx] - wl) > sampling.step / 2:
            raise ValueError(
                f"primary {wl} nm outside sampled range {sampling.start}–{sampling.end} nm"
            )
        B[idx, i] = 1.0
    return B


__all__ = [
    "PRIMARY_WAVELENGTHS",
    "STILES_BURCH_10",
    "STOCKMAN_SHARPE_10",
    "S_10NM",
    "S_1NM",
    "Sampling",
    "load_observer",
    "monochromatic_primaries",
    "stiles_burch_10",
    "stockman_sharpe_10",
]
