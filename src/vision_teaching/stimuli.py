# stimuli.py – drifting gratings and looming circles as toggled primitives
#   - every frame of an animation is pre-built as named, disabled objects
#   - an Animator flips one group of objects on and the previous one off
#   - scene coordinates: origin at the centre of the screen, y up

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .window import SceneWindow

log = logging.getLogger(__name__)

RGB = Tuple[float, float, float]


class StimulusError(ValueError):
    """Invalid stimulus parameters or screen geometry."""


def gray(level: float) -> RGB:
    return (float(level), float(level), float(level))


@dataclass(frozen=True)
class ScreenGeometry:
    cols: int
    rows: int

    def __post_init__(self) -> None:
        if self.cols % 4 != 0 or self.rows % 2 != 0:
            raise StimulusError(
                "Col size must be a multiple of 4, and row size a multiple of 2"
                f" (got {self.cols}×{self.rows})"
            )

    @property
    def max_circle_size(self) -> float:
        # two circles side by side, with a small margin
        return min(self.cols / 2, self.rows) - 5


def frames_per_step(frame_rate: float, tf_hz: float, n_steps: int) -> int:
    """Frames each animation step is held for one cycle to take 1/tf_hz s."""
    return max(1, int(round((frame_rate / tf_hz) / n_steps)))


# --- animation ---------------------------------------------------------------
class Animator:
    """Steps through pre-built groups of scene objects, one group per step."""

    def __init__(
        self,
        window: SceneWindow,
        spec: "Stimulus",
        square: str,
        groups: Sequence[Sequence[str]],
    ) -> None:
        if not groups:
            raise StimulusError(f"{spec.name}: no animation steps")
        self.window = window
        self.spec = spec
        self.square = square
        self.groups = [list(g) for g in groups]
        self.reset()

    @property
    def n_steps(self) -> int:
        return len(self.groups)

    def reset(self) -> None:
        self.current = 0
        self.previous = self.n_steps - 1
        self.direction = 1

    def begin(self) -> None:
        self.reset()
        self.window.enable_object(self.square)

    def show(self, step: int) -> None:
        for name in self.groups[self.previous]:
            self.window.disable_object(name)
        for name in self.groups[step]:
            self.window.enable_object(name)
        self.previous = step

    def advance(self, rng: np.random.Generator) -> int:
        """Show the current step, move on by one and maybe reverse.  Returns the step shown."""
        shown = self.current
        self.show(shown)
        self.current = (self.current + self.direction) % self.n_steps
        if rng.random() < self.spec.reverse_prob:
            self.direction = -self.direction
        return shown

    def clear(self) -> None:
        self.window.disable_object(self.square)
        for name in self.groups[self.previous]:
            self.window.disable_object(name)


# --- stimulus definitions ----------------------------------------------------
@dataclass(frozen=True)
class Stimulus:
    """Base of the stimulus types.  Subclasses declare ``tf_hz``, ``contrast`` and ``reverse_prob`` as fields."""

    name: str

    unit = "step"
    tf_hz = 0.25
    contrast = 1.0
    reverse_prob = 0.0

    def __post_init__(self) -> None:
        if self.tf_hz <= 0:
            raise StimulusError(f"{self.name}: tf_hz must be > 0")
        if not 0.0 <= self.contrast <= 1.0:
            raise StimulusError(f"{self.name}: contrast must be in [0, 1]")
        if not 0.0 <= self.reverse_prob <= 1.0:
            raise StimulusError(f"{self.name}: reverse_prob must be in [0, 1]")

    @property
    def square_name(self) -> str:
        return f"{self.name}Square"

    def add_square(self, window: SceneWindow, geom: ScreenGeometry) -> str:
        window.add_rectangle(
            (0, 0), (geom.cols, geom.rows), gray(self.contrast), name=self.square_name
        )
        window.disable_object(self.square_name)
        return self.square_name

    def build(self, window: SceneWindow, geom: ScreenGeometry) -> Animator:
        raise StimulusError(f"Unknown stimulus type specified: {type(self).__name__}")


@dataclass(frozen=True)
class DriftingBars(Stimulus):
    sf_cycles_image: int = 2
    tf_hz: float = 0.25
    n_phases: int = 1
    contrast: float = 1.0
    reverse_prob: float = 0.0

    unit = "phase"

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.sf_cycles_image < 1 or self.n_phases < 1:
            raise StimulusError(f"{self.name}: sf_cycles_image and n_phases must be ≥ 1")

    def bar_height(self, geom: ScreenGeometry) -> float:
        if geom.rows % (2 * self.sf_cycles_image) != 0:
            raise StimulusError(
                f"Two times cycles/image must evenly divide row size"
                f" (rows {geom.rows}, cycles/image {self.sf_cycles_image})"
            )
        return geom.rows / (2 * self.sf_cycles_image)

    def phases(self, geom: ScreenGeometry) -> np.ndarray:
        if self.n_phases == 1:
            return np.zeros(1)
        return np.linspace(0.0, 2 * self.bar_height(geom), self.n_phases)

    def layout(self, geom: ScreenGeometry) -> List[List[Tuple[int, float, float]]]:
        """Per phase, ``(cycle, dark_y, light_y)`` bar centres for cycles 0..sf."""
        h = self.bar_height(geom)
        out = []
        for phase in self.phases(geom):
            bars = []
            for cc in range(self.sf_cycles_image + 1):
                dark_y = 2 * (cc - 1) * h + phase - geom.rows / 2 + h / 2
                bars.append((cc, dark_y, dark_y + h))
            out.append(bars)
        return out

    def build(self, window: SceneWindow, geom: ScreenGeometry) -> Animator:
        h = self.bar_height(geom)
        square = self.add_square(window, geom)
        dark, light = gray(1 - self.contrast), gray(self.contrast)
        groups = []
        for ii, bars in enumerate(self.layout(geom), start=1):
            group = []
            for cc, dark_y, light_y in bars:
                for tag, y, rgb in (("B", dark_y, dark), ("W", light_y, light)):
                    obj = f"{self.name}{tag}{cc}_{ii}"
                    window.add_rectangle((0, y), (geom.cols, h), rgb, name=obj)
                    window.disable_object(obj)
                    group.append(obj)
            groups.append(group)
        return Animator(window, self, square, groups)


def gabor_image(
    rows: int,
    cols: int,
    contrast: float,
    sf: float,
    theta: float,
    phase: float,
    sigma: float,
) -> np.ndarray:
    """
    Gabor patch as a rows×cols×3 image in [0, 1].

    sf is in cycles/image (relative to the row size), theta in degrees
    clockwise from the positive x axis (0 = horizontal bars), phase in
    degrees (0 = sine phase at the centre) and sigma the Gaussian standard
    deviation as a fraction of the row size (``inf`` for no window).
    """
    if rows % 2 != 0 or cols % 2 != 0:
        raise StimulusError("row/col sizes must be even integers")
    x, y = np.meshgrid(np.arange(cols), np.arange(rows))
    dx, dy = x - cols / 2, y - rows / 2

    a, b = np.cos(np.radians(theta)), np.sin(np.radians(theta))
    wave = np.sin((2 * np.pi / rows) * sf * (b * dx - a * dy) + np.radians(phase))

    var = 2 * (sigma * rows) ** 2
    window = np.exp(-(dx**2) / var - (dy**2) / var)

    g = 0.5 + 0.5 * contrast * (window * wave)
    return np.repeat(g[:, :, None], 3, axis=2)


@dataclass(frozen=True)
class GaborGrating(Stimulus):
    sf_cycles_image: float = 2.0
    tf_hz: float = 0.25
    n_phases: int = 8
    contrast: float = 1.0
    sine: bool = False
    sigma: float = 0.5
    theta: float = 0.0
    reverse_prob: float = 0.0

    unit = "phase"

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.n_phases < 1:
            raise StimulusError(f"{self.name}: n_phases must be ≥ 1")
        if self.sigma <= 0:
            raise StimulusError(f"{self.name}: sigma must be > 0")

    def frame(self, geom: ScreenGeometry, phase: float) -> np.ndarray:
        img = gabor_image(
            geom.rows, geom.cols, self.contrast, self.sf_cycles_image, self.theta, phase, self.sigma
        )
        if not self.sine:
            out = img.copy()
            out[img > 0.5] = self.contrast
            out[img < 0.5] = 1 - self.contrast
            img = out
        return img

    def build(self, window: SceneWindow, geom: ScreenGeometry) -> Animator:
        square = self.add_square(window, geom)
        phases = np.linspace(0.0, 360.0, self.n_phases, endpoint=False)
        groups = []
        for ii, phase in enumerate(phases, start=1):
            obj = f"{self.name}{ii}"
            window.add_image((0, 0), (geom.cols, geom.rows), self.frame(geom, phase), name=obj)
            window.disable_object(obj)
            groups.append([obj])
        return Animator(window, self, square, groups)


@dataclass(frozen=True)
class LoomingCircles(Stimulus):
    tf_hz: float = 0.25
    n_sizes: int = 1
    contrast: float = 1.0
    reverse_prob: float = 0.0

    unit = "size"

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.n_sizes != 1 and (self.n_sizes < 4 or self.n_sizes % 4 != 0):
            raise StimulusError(f"{self.name}: n_sizes must be 1 or a multiple of 4")

    def areas(self, geom: ScreenGeometry) -> Tuple[np.ndarray, np.ndarray]:
        """
        Circle areas, equally spaced, for the left and right circles.  The
        left one grows then shrinks through the half area; the right one
        does the opposite.
        """
        half = geom.rows * geom.cols / 4
        max_area = 2 * half
        if 2 * np.sqrt(max_area / np.pi) > geom.max_circle_size:
            max_area = np.pi * (geom.max_circle_size / 2) ** 2
        min_area = half - (max_area - half)
        if min_area <= 0:
            raise StimulusError("Min area too small, logic error")

        if self.n_sizes == 1:
            return np.array([half]), np.array([half])
        q, m = self.n_sizes // 4, self.n_sizes // 2
        left = np.concatenate(
            [np.linspace(half, max_area, q), np.linspace(max_area, min_area, m), np.linspace(min_area, half, q)]
        )
        right = np.concatenate(
            [np.linspace(half, min_area, q), np.linspace(min_area, max_area, m), np.linspace(max_area, half, q)]
        )
        return left, right

    def diameters(self, geom: ScreenGeometry) -> Tuple[np.ndarray, np.ndarray]:
        left, right = self.areas(geom)
        return circle_diameters(left), circle_diameters(right)

    def build(self, window: SceneWindow, geom: ScreenGeometry) -> Animator:
        square = self.add_square(window, geom)
        dark = gray(1 - self.contrast)
        left, right = self.diameters(geom)
        x = geom.cols / 4
        groups = []
        for ii, (dl, dr) in enumerate(zip(left, right), start=1):
            group = []
            for tag, cx, d in (("L", -x, dl), ("R", x, dr)):
                obj = f"{self.name}{tag}{ii}"
                window.add_oval((cx, 0), (d, d), dark, name=obj)
                window.disable_object(obj)
                group.append(obj)
            groups.append(group)
        return Animator(window, self, square, groups)


def circle_diameters(areas: np.ndarray) -> np.ndarray:
    return 2 * np.sqrt(np.asarray(areas, dtype=np.float64) / np.pi)


def install(spec: Stimulus, window: SceneWindow, geom: ScreenGeometry) -> Animator:
    """Add every frame of ``spec`` to ``window`` (all disabled)."""
    anim = spec.build(window, geom)
    log.info("Initialized %s (%s, %d %ss)", spec.name, type(spec).__name__, anim.n_steps, spec.unit)
    return anim


__all__ = [
    "Animator",
    "DriftingBars",
    "GaborGrating",
    "LoomingCircles",
    "ScreenGeometry",
    "Stimulus",
    "StimulusError",
    "circle_diameters",
    "frames_per_step",
    "gabor_image",
    "gray",
    "install",
]
