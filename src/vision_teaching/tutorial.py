"""Colour-matching functions, cone fundamentals and cone isolating stimuli.

Walks through the connection between the Stiles & Burch 10° colour-matching
functions and the Stockman & Sharpe 10° cone fundamentals:

1. the fundamentals are a linear transformation of the CMFs (found here by
   regression, since both are known);
2. inverting that transformation gives the tristimulus directions that
   isolate each cone class, checked by rebuilding their spectra from the
   monochromatic primaries;
3. the response (sensitivity) vectors are the rows of the transformation;
   stimuli transform from the left in columns, sensitivities from the right
   in rows;
4. in the rg chromaticity diagram each dichromat's confusion lines converge
   on the chromaticity of the missing cone's isolating direction.

Usage
-----
$ python -m vision_teaching.tutorial --output figures
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

import numpy as np
from matplotlib.figure import Figure

from .chromaticity import DICHROMATS, chromaticity, confusion_lines
from .cones import (
    ConeCheckError,
    ConeTransform,
    check_isolating_spectra,
    check_response_vectors,
    fit_cmf_to_cones,
    isolating_spectra,
    orthogonality_report,
)
from .figures import (
    plot_chromaticity_panels,
    plot_cmfs,
    plot_isolating_vectors,
    save_figures,
)
from .observers import (
    PRIMARY_WAVELENGTHS,
    S_10NM,
    S_1NM,
    Sampling,
    monochromatic_primaries,
    stiles_burch_10,
    stockman_sharpe_10,
)

log = logging.getLogger(__name__)


@dataclass
class TutorialConfig:
    sampling: Sampling = S_1NM
    coarse_sampling: Sampling = S_10NM
    primaries: Sequence[float] = PRIMARY_WAVELENGTHS
    tolerance: float = 0.01
    n_random: int = 100
    n_confusion_points: int = 100
    seed: int | None = None


@dataclass
class TutorialResult:
    wls: np.ndarray
    T_cmf: np.ndarray
    T_cmf_coarse: np.ndarray
    T_cones: np.ndarray
    transform: ConeTransform
    T_cones_fit: np.ndarray
    basis: np.ndarray
    isolating_dirs: np.ndarray
    isolating_spectra: np.ndarray
    isolating_lms: np.ndarray
    response_vectors: np.ndarray
    response_deviation: float
    locus_chrom: np.ndarray
    locus_chrom_coarse: np.ndarray
    isolating_chrom: np.ndarray
    confusion: Dict[str, List[np.ndarray]] = field(default_factory=dict)
    angles: Dict[str, float] = field(default_factory=dict)


def run_tutorial(config: TutorialConfig | None = None) -> TutorialResult:
    cfg = config or TutorialConfig()

    T_cmf = stiles_burch_10(cfg.sampling)
    T_cmf_coarse = stiles_burch_10(cfg.coarse_sampling)
    T_cones = stockman_sharpe_10(cfg.sampling)

    # Fundamentals from CMFs.  The fit is excellent because the Stockman &
    # Sharpe 10° fundamentals were built from these CMFs.
    transform = fit_cmf_to_cones(T_cmf, T_cones)
    T_cones_fit = transform.apply(T_cmf)
    log.info("CMF→cones transform:\n%s", np.array2string(transform.cmf_to_cones, precision=4))

    basis = monochromatic_primaries(cfg.sampling, cfg.primaries)
    iso_dirs = transform.isolating_directions()
    iso_spectra = isolating_spectra(basis, transform)
    iso_lms = check_isolating_spectra(T_cones, iso_spectra, cfg.tolerance)

    rng = np.random.default_rng(cfg.seed)
    deviation = check_response_vectors(
        T_cones, basis, transform, n=cfg.n_random, tolerance=cfg.tolerance, rng=rng
    )
    log.info("Response vectors × isolating directions:\n%s", transform.consistency())

    confusion = {
        d.name: confusion_lines(T_cmf_coarse, iso_dirs, d, cfg.n_confusion_points)
        for d in DICHROMATS
    }

    angles = orthogonality_report(transform, cone=0)
    for key, other in (("LM", "M"), ("LS", "S"), ("LL", "L")):
        log.info(
            "Angle between L cone isolating and %s cone sensitivity vectors: %0.0f degrees",
            other,
            angles[key],
        )

    return TutorialResult(
        wls=cfg.sampling.wavelengths(),
        T_cmf=T_cmf,
        T_cmf_coarse=T_cmf_coarse,
        T_cones=T_cones,
        transform=transform,
        T_cones_fit=T_cones_fit,
        basis=basis,
        isolating_dirs=iso_dirs,
        isolating_spectra=iso_spectra,
        isolating_lms=iso_lms,
        response_vectors=transform.response_vectors(),
        response_deviation=deviation,
        locus_chrom=chromaticity(T_cmf),
        locus_chrom_coarse=chromaticity(T_cmf_coarse),
        isolating_chrom=chromaticity(iso_dirs),
        confusion=confusion,
        angles=angles,
    )


FIGURE_NAMES = ("stiles_burch_10", "stockman_sharpe_10", "chromaticity", "isolating_vectors")


def build_figures(
    result: TutorialResult, names: Sequence[str] = FIGURE_NAMES
) -> Dict[str, Figure]:
    builders: Dict[str, Callable[[], Figure]] = {
        "stiles_burch_10": lambda: plot_cmfs(
            result.wls,
            result.T_cmf,
            title="Stiles-Burch 10-degree CMFs",
            ylabel="CMF (energy units)",
            ylim=(-1, 4),
        ),
        "stockman_sharpe_10": lambda: plot_cmfs(
            result.wls,
            result.T_cones,
            title="Stockman-Sharpe 10-degree Cone Fundamentals",
            ylabel="Cone Fundamental (energy units)",
            ylim=(0, 1),
            fit=result.T_cones_fit,
        ),
        "chromaticity": lambda: plot_chromaticity_panels(
            result.locus_chrom,
            result.locus_chrom_coarse,
            result.isolating_chrom,
            result.confusion,
        ),
        "isolating_vectors": lambda: plot_isolating_vectors(
            result.isolating_dirs, result.response_vectors, cone=0
        ),
    }
    unknown = set(names) - set(builders)
    if unknown:
        raise KeyError(f"unknown figures: {sorted(unknown)}")
    return {name: builders[name]() for name in names}


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--output", "-o", default="figures", help="directory for figures")
    parser.add_argument("--format", default="png", help="figure file format")
    parser.add_argument("--seed", type=int, default=None, help="seed for the random check")
    parser.add_argument(
        "--tolerance", type=float, default=TutorialConfig.tolerance, help="check tolerance"
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    try:
        result = run_tutorial(TutorialConfig(tolerance=args.tolerance, seed=args.seed))
    except ConeCheckError:
        log.exception("Tutorial check failed")
        return 1
    save_figures(build_figures(result), args.output, fmt=args.format)
    return 0


if __name__ == "__main__":
    sys.exit(main())
