import numpy as np
import pytest

from vision_teaching.stimuli import (
    DriftingBars,
    GaborGrating,
    LoomingCircles,
    ScreenGeometry,
    Stimulus,
    StimulusError,
    circle_diameters,
    frames_per_step,
    gabor_image,
    install,
)

GEOM = ScreenGeometry(800, 600)


def test_geometry_divisibility():
    with pytest.raises(StimulusError, match="multiple of 4"):
        ScreenGeometry(802, 600)
    with pytest.raises(StimulusError):
        ScreenGeometry(800, 601)
    assert GEOM.max_circle_size == 395


def test_frames_per_step():
    assert frames_per_step(60, 0.25, 120) == 2
    assert frames_per_step(60, 0.5, 1) == 120
    assert frames_per_step(60, 100, 10) == 1


def test_bar_height_must_divide_rows():
    assert DriftingBars("b", sf_cycles_image=2).bar_height(GEOM) == 150
    with pytest.raises(StimulusError, match="evenly divide"):
        DriftingBars("b", sf_cycles_image=7).bar_height(GEOM)


def test_bar_layout_tiles_the_screen():
    spec = DriftingBars("b", sf_cycles_image=2, n_phases=4)
    h = spec.bar_height(GEOM)
    phases = spec.phases(GEOM)
    assert np.allclose(phases, np.linspace(0, 2 * h, 4))
    layout = spec.layout(GEOM)
    assert len(layout) == 4
    first = layout[0]
    assert [cc for cc, _, _ in first] == [0, 1, 2]
    for _, dark_y, light_y in first:
        assert light_y - dark_y == pytest.approx(h)
    # cycle 1 at phase 0 starts at the bottom edge
    assert first[1][1] - h / 2 == pytest.approx(-GEOM.rows / 2)
    assert first[2][1] - first[1][1] == pytest.approx(2 * h)
    # the whole layout shifts with the phase
    assert layout[1][0][1] - first[0][1] == pytest.approx(phases[1])


def test_single_phase():
    assert np.array_equal(DriftingBars("b").phases(GEOM), [0.0])


def test_looming_areas_mirror_each_other():
    spec = LoomingCircles("c", n_sizes=240)
    left, right = spec.areas(GEOM)
    half = GEOM.rows * GEOM.cols / 4
    assert left.size == right.size == 240
    assert left[0] == pytest.approx(half) and right[0] == pytest.approx(half)
    assert np.allclose(left + right, 2 * half)
    dl, dr = spec.diameters(GEOM)
    assert dl.max() <= GEOM.max_circle_size + 1e-9
    assert np.allclose(circle_diameters(np.pi), 2.0)


def test_looming_single_size():
    left, right = LoomingCircles("c").areas(GEOM)
    assert left.tolist() == right.tolist() == [GEOM.rows * GEOM.cols / 4]


def test_looming_validation():
    with pytest.raises(StimulusError, match="multiple of 4"):
        LoomingCircles("c", n_sizes=6)
    with pytest.raises(StimulusError, match="Min area"):
        LoomingCircles("c", n_sizes=4).areas(ScreenGeometry(4, 2))


def test_stimulus_validation():
    with pytest.raises(StimulusError):
        DriftingBars("b", tf_hz=0)
    with pytest.raises(StimulusError):
        DriftingBars("b", contrast=1.5)
    with pytest.raises(StimulusError):
        LoomingCircles("c", reverse_prob=-0.1)


def test_positional_construction():
    bars = DriftingBars("B", 4, 0.5, 8, 0.9, 0.1)
    assert (bars.sf_cycles_image, bars.tf_hz, bars.n_phases) == (4, 0.5, 8)
    assert (bars.contrast, bars.reverse_prob) == (0.9, 0.1)

    circles = LoomingCircles("C", 0.25, 240)
    assert (circles.tf_hz, circles.n_sizes, circles.contrast) == (0.25, 240, 1.0)
    circles = LoomingCircles("C", 0.5, 4, 0.7, 0.2)
    assert (circles.contrast, circles.reverse_prob) == (0.7, 0.2)

    gabor = GaborGrating("G", 3, 0.5, 6, 0.8, True, 0.25, 45.0, 0.3)
    assert (gabor.sf_cycles_image, gabor.tf_hz, gabor.n_phases, gabor.contrast) == (3, 0.5, 6, 0.8)
    assert (gabor.sine, gabor.sigma, gabor.theta, gabor.reverse_prob) == (True, 0.25, 45.0, 0.3)


def test_gabor_image():
    img = gabor_image(20, 40, 1.0, 2, 0, 0, 0.5)
    assert img.shape == (20, 40, 3)
    assert img.min() >= 0 and img.max() <= 1
    assert np.array_equal(img[..., 0], img[..., 2])
    flat = gabor_image(20, 40, 0.0, 2, 0, 0, np.inf)
    assert np.allclose(flat, 0.5)
    with pytest.raises(StimulusError):
        gabor_image(21, 40, 1.0, 2, 0, 0, 0.5)


def test_gabor_square_wave():
    spec = GaborGrating("g", sf_cycles_image=2, n_phases=4, contrast=0.8, sigma=np.inf)
    frame = spec.frame(ScreenGeometry(40, 20), 90)
    assert set(np.unique(frame.round(6))) <= {0.2, 0.5, 0.8}


def test_install_drifting_bars(make_window):
    win = make_window((800, 600))
    anim = install(DriftingBars("Bars", n_phases=3), win, GEOM)
    assert len(win) == 1 + 3 * 3 * 2
    assert anim.n_steps == 3
    assert not win.enabled_objects()
    assert "BarsSquare" in win and "BarsB0_1" in win and "BarsW2_3" in win
    assert win["BarsB1_1"].rgb == (0.0, 0.0, 0.0)
    assert win["BarsW1_1"].rgb == (1.0, 1.0, 1.0)


def test_install_looming(make_window):
    win = make_window((800, 600))
    anim = install(LoomingCircles("Circles", n_sizes=8), win, GEOM)
    assert anim.n_steps == 8
    assert win["CirclesL1"].center == (-200.0, 0)
    assert win["CirclesR1"].center == (200.0, 0)
    assert win["CirclesL1"].kind == "oval"


def test_install_gabor(make_window):
    geom = ScreenGeometry(40, 20)
    win = make_window((40, 20))
    anim = install(GaborGrating("G", n_phases=4), win, geom)
    assert anim.n_steps == 4
    assert win["G1"].image.shape == (20, 40, 3)


def test_install_unknown_type(make_window):
    with pytest.raises(StimulusError, match="Unknown stimulus type"):
        install(Stimulus("x"), make_window((800, 600)), GEOM)


def test_animator_steps_and_wraps(make_window):
    win = make_window((800, 600))
    anim = install(LoomingCircles("C", n_sizes=4), win, GEOM)
    rng = np.random.default_rng(0)
    anim.begin()
    assert [o.name for o in win.enabled_objects()] == ["CSquare"]
    shown = [anim.advance(rng) for _ in range(6)]
    assert shown == [0, 1, 2, 3, 0, 1]
    assert sorted(o.name for o in win.enabled_objects()) == ["CL2", "CR2", "CSquare"]
    anim.clear()
    assert not win.enabled_objects()


def test_animator_reverses(make_window):
    win = make_window((800, 600))
    anim = install(LoomingCircles("C", n_sizes=4, reverse_prob=1.0), win, GEOM)
    rng = np.random.default_rng(0)
    anim.begin()
    shown = [anim.advance(rng) for _ in range(4)]
    assert shown == [0, 1, 0, 1]
    # begin() starts over going forwards
    anim.clear()
    anim.begin()
    assert anim.advance(rng) == 0
