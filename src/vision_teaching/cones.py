# cones.py – linear relation between colour-matching functions and cones
#   - least-squares 3×3 transform from CMFs to cone fundamentals
#   - cone isolating tristimulus directions (columns of M⁻¹)
#   - cone response (sensitivity) vectors in tristimulus space (rows of M)
#   - numerical checks against the fundamentals themselves

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

import numpy as np

log = logging.getLogger(__name__)

CONE_NAMES = ("L", "M", "S")


class ConeCheckError(ValueError):
    """A numerical consistency check on cone quantities failed."""


@dataclass(frozen=True, eq=False)
class ConeTransform:
    cmf_to_cones: np.ndarray  # 3×3, cones = M @ tristimulus

    @property
    def cones_to_cmf(self) -> np.ndarray:
        return np.linalg.inv(self.cmf_to_cones)

    def apply(self, T_cmf: np.ndarray) -> np.ndarray:
        return self.cmf_to_cones @ np.asarray(T_cmf, dtype=np.float64)

    def isolating_directions(self) -> np.ndarray:
        # Stimuli live in columns: transform the unit cone excitations.
        return self.cones_to_cmf @ np.eye(3)

    def response_vectors(self) -> np.ndarray:
        # Sensitivities live in rows: u @ M.
        return np.eye(3) @ self.cmf_to_cones

    def consistency(self) -> np.ndarray:
        return self.response_vectors() @ self.isolating_directions()


def fit_cmf_to_cones(T_cmf: np.ndarray, T_cones: np.ndarray) -> ConeTransform:
    """
    Regress cone fundamentals on colour-matching functions.

    Both inputs are 3×N with wavelength along the columns.  Solves
    ``T_cmf.T @ X = T_cones.T`` in the least-squares sense and returns
    ``M = X.T`` so that ``M @ T_cmf ≈ T_cones``.
    """
    T_cmf = np.asarray(T_cmf, dtype=np.float64)
    T_cones = np.asarray(T_cones, dtype=np.float64)
    if T_cmf.ndim != 2 or T_cmf.shape[0] != 3 or T_cmf.shape != T_cones.shape:
        raise ValueError(
            f"expected two 3×N arrays of equal shape, got {T_cmf.shape} and {T_cones.shape}"
        )
    X, residuals, rank, _ = np.linalg.lstsq(T_cmf.T, T_cones.T, rcond=None)
    if rank < 3:
        log.warning("CMF matrix is rank deficient (rank %d)", rank)
    log.debug("CMF→cones regression residuals: %s", residuals)
    return ConeTransform(X.T)


def isolating_spectra(basis: np.ndarray, transform: ConeTransform) -> np.ndarray:
    """Spectra (N×3) of the cone isolating directions.  May have negative power."""
    return np.asarray(basis, dtype=np.float64) @ transform.isolating_directions()


def check_isolating_spectra(
    T_cones: np.ndarray, spectra: np.ndarray, tolerance: float = 0.01
) -> np.ndarray:
    lms = np.asarray(T_cones, dtype=np.float64) @ spectra
    deviation = float(np.max(np.abs(lms - np.eye(3))))
    log.info("Cone isolating spectra deviate from identity by %.4f", deviation)
    if deviation > tolerance:
        raise ConeCheckError("Cone isolating spectra LMS check fails")
    return lms


def check_response_vectors(
    T_cones: np.ndarray,
    basis: np.ndarray,
    transform: ConeTransform,
    n: int = 100,
    tolerance: float = 0.01,
    rng: np.random.Generator | None = None,
) -> float:
    """
    Compare cone excitations of random primary mixtures computed directly
    from the fundamentals and from the tristimulus response vectors.
    """
    rng = rng if rng is not None else np.random.default_rng()
    tristim = rng.random((3, n))
    spectra = np.asarray(basis, dtype=np.float64) @ tristim
    direct = np.asarray(T_cones, dtype=np.float64) @ spectra
    via_tristim = transform.response_vectors() @ tristim
    deviation = float(np.max(np.abs(direct - via_tristim)))
    log.info("Cone response vectors deviate by %.4f", deviation)
    if deviation > tolerance:
        raise ConeCheckError("Cone response vector check fails")
    return deviation


# --- geometry ----------------------------------------------------------------
def normalize_rows(A: np.ndarray) -> np.ndarray:
    A = np.asarray(A, dtype=np.float64)
    return A / np.linalg.norm(A, axis=1, keepdims=True)


def normalize_columns(A: np.ndarray) -> np.ndarray:
    A = np.asarray(A, dtype=np.float64)
    return A / np.linalg.norm(A, axis=0, keepdims=True)


def angle_degrees(u: np.ndarray, v: np.ndarray) -> float:
    u = np.ravel(u) / np.linalg.norm(u)
    v = np.ravel(v) / np.linalg.norm(v)
    return float(np.degrees(np.arccos(np.clip(u @ v, -1.0, 1.0))))


def orthogonality_report(transform: ConeTransform, cone: int = 0) -> Dict[str, float]:
    """
    Angles between one cone's isolating direction and every response vector.

    The isolating direction is orthogonal to the other two classes'
    response vectors and not to its own.
    """
    iso = normalize_columns(transform.isolating_directions())[:, cone]
    resp = normalize_rows(transform.response_vectors())
    c = CONE_NAMES[cone]
    return {c + CONE_NAMES[k]: angle_degrees(iso, resp[k]) for k in range(3)}


__all__ = [
    "CONE_NAMES",
    "ConeCheckError",
    "ConeTransform",
    "angle_degrees",
    "check_isolating_spectra",
    "check_response_vectors",
    "fit_cmf_to_cones",
    "isolating_spectra",
    "normalize_columns",
    "normalize_rows",
    "orthogonality_report",
]
