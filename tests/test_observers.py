import numpy as np
import pytest

from vision_teaching.observers import (
    S_10NM,
    S_1NM,
    Sampling,
    load_observer,
    monochromatic_primaries,
    stiles_burch_10,
    stockman_sharpe_10,
)


def test_sampling_grid():
    wls = S_1NM.wavelengths()
    assert wls.size == 361
    assert wls[0] == 390 and wls[-1] == 750
    assert S_10NM.end == 750
    assert np.allclose(np.diff(S_10NM.wavelengths()), 10)


def test_sampling_from_wavelengths():
    s = Sampling.from_wavelengths([400, 405, 410, 415])
    assert s == Sampling(400, 5, 4)
    with pytest.raises(ValueError):
        Sampling.from_wavelengths([400, 405, 411])


def test_sampling_validation():
    with pytest.raises(ValueError):
        Sampling(390, 0, 10)
    with pytest.raises(ValueError):
        Sampling(390, 1, 0)


def test_primaries_round_to_nearest_nm():
    B = monochromatic_primaries(S_1NM)
    assert B.shape == (361, 3)
    assert np.allclose(B.sum(axis=0), 1.0)
    wls = S_1NM.wavelengths()
    assert [wls[np.argmax(B[:, k])] for k in range(3)] == [645, 526, 444]


def test_primary_outside_range():
    with pytest.raises(ValueError, match="outside"):
        monochromatic_primaries(Sampling(500, 1, 50))


def test_load_observers():
    T_cmf = stiles_burch_10(S_10NM)
    T_cones = stockman_sharpe_10(S_1NM)
    assert T_cmf.shape == (3, 37)
    assert T_cones.shape == (3, 361)
    # peak-normalised fundamentals
    assert np.allclose(T_cones.max(axis=1), 1.0, atol=0.02)
    # the red CMF has a negative lobe
    assert T_cmf[0].min() < 0


def test_unknown_observer():
    with pytest.raises(KeyError, match="unknown observer"):
        load_observer("No Such Observer", S_10NM)
