"""Cycle drifting-grating and looming-circle stimuli in a window.

Each stimulus in the schedule is shown for its duration (or until the
space bar is hit) with a timed draw loop; ``q`` quits the whole session.
Draw times and presentation start/finish times are saved as JSON.

Usage
-----
$ python -m vision_teaching.session --windowed --size 800x600 --repeats 1
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import sys
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .stimuli import (
    Animator,
    DriftingBars,
    LoomingCircles,
    ScreenGeometry,
    Stimulus,
    StimulusError,
    frames_per_step,
    install,
)
from .window import PygameWindow, SceneWindow, describe_displays, parse_rgb

log = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class SessionConfig:
    # Set these to False for development/debugging.
    full_screen: bool = True
    regular_timing: bool = True
    hide_cursor: bool = False
    wait_until_start: bool = False
    start_time: str = "15:45"  # HH:MM, local time
    background: str = "white"
    cycle: Tuple[int, ...] = (1, 2, 3, 4)  # 1-based indices into the stimulus list
    durations_secs: Tuple[float, ...] = (10, 10, 10, 10)
    repeats: int = 3
    data_dir: str = "data"
    frame_rate: Optional[float] = None  # window's refresh rate when None
    seed: Optional[int] = None


def default_stimuli(reverse_prob: float = 0.0) -> List[Stimulus]:
    return [
        DriftingBars("BackgroundBars", tf_hz=0.5, sf_cycles_image=2, n_phases=1, reverse_prob=reverse_prob),
        DriftingBars("Bars", tf_hz=0.25, sf_cycles_image=2, n_phases=120, reverse_prob=reverse_prob),
        LoomingCircles("BackgroundCircles", tf_hz=0.25, n_sizes=1, reverse_prob=reverse_prob),
        LoomingCircles("Circles", tf_hz=0.25, n_sizes=240, reverse_prob=reverse_prob),
    ]


@dataclass
class SessionRecord:
    shown: List[int] = field(default_factory=list)
    start_times: List[float] = field(default_factory=list)
    finish_times: List[float] = field(default_factory=list)
    draw_times: List[List[float]] = field(default_factory=list)
    quit: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


def _parse_hhmm(value: str):
    return datetime.strptime(value, "%H:%M").time()


def wait_for_start(
    window: SceneWindow,
    start_time: str,
    now: Callable[[], datetime] = datetime.now,
    poll_secs: float = 0.01,
) -> bool:
    """Block until the time of day reaches ``start_time``; space overrides.  True if overridden."""
    start = _parse_hhmm(start_time)
    log.info("Waiting until %s, hit space to override ...", start_time)
    while now().time().replace(second=0, microsecond=0) < start:
        if window.poll_key() == " ":
            log.info("start overridden")
            return True
        time.sleep(poll_secs)
    log.info("done waiting")
    return False


def _check_schedule(stimuli: Sequence[Stimulus], config: SessionConfig) -> None:
    if not config.cycle:
        raise StimulusError("empty stimulus cycle")
    if len(config.durations_secs) != len(config.cycle):
        raise StimulusError(
            f"{len(config.cycle)} stimuli in the cycle but {len(config.durations_secs)} durations"
        )
    bad = [i for i in config.cycle if not 1 <= i <= len(stimuli)]
    if bad:
        raise StimulusError(f"cycle refers to unknown stimuli {bad} (have {len(stimuli)})")
    if config.repeats < 1:
        raise StimulusError("repeats must be ≥ 1")


def present(
    window: SceneWindow,
    anim: Animator,
    duration: float,
    frame_rate: float,
    *,
    regular_timing: bool = True,
    clock: Clock = time.perf_counter,
    rng: np.random.Generator,
) -> Tuple[float, List[float], Optional[str]]:
    """
    Run one presentation.  Returns its start time, the draw times and the
    key that ended it early (``"q"`` or ``" "``), if any.
    """
    spec = anim.spec
    frames = frames_per_step(frame_rate, spec.tf_hz, anim.n_steps)
    log.info(
        "Running at %d frames per %s, frame rate %d Hz, %0.2f cycles/sec",
        frames,
        spec.unit,
        frame_rate,
        frame_rate / (anim.n_steps * frames),
    )

    draws: List[float] = []
    ended_by: Optional[str] = None
    start = clock()
    finish = start + duration if regular_timing else math.inf

    anim.begin()
    which_frame = 1
    while clock() < finish:
        if which_frame == 1:
            anim.advance(rng)
        window.draw()
        draws.append(clock())
        which_frame = which_frame % frames + 1

        key = window.poll_key()
        if key in ("q", " "):
            ended_by = key
            break
    anim.clear()
    return start, draws, ended_by


def run_session(
    window: SceneWindow,
    stimuli: Sequence[Stimulus],
    config: SessionConfig | None = None,
    *,
    clock: Clock = time.perf_counter,
    now: Callable[[], datetime] = datetime.now,
) -> SessionRecord:
    cfg = config or SessionConfig()
    _check_schedule(stimuli, cfg)
    geom = ScreenGeometry(*window.size)
    frame_rate = float(cfg.frame_rate or window.refresh_rate)
    rng = np.random.default_rng(cfg.seed)
    record = SessionRecord()

    try:
        window.open()
        window.background = parse_rgb(cfg.background)
        window.draw()

        animators: Dict[int, Animator] = {}
        for idx in sorted(set(cfg.cycle)):
            log.info("Initializing stimulus type %d", idx)
            animators[idx] = install(stimuli[idx - 1], window, geom)

        if cfg.hide_cursor:
            window.set_cursor_visible(False)
        if cfg.wait_until_start:
            wait_for_start(window, cfg.start_time, now)
        log.info("Starting stimulus cycling")

        n_stim = len(cfg.cycle)
        for rr in range(cfg.repeats * n_stim):
            which = rr % n_stim
            idx = cfg.cycle[which]
            start, draws, ended_by = present(
                window,
                animators[idx],
                cfg.durations_secs[which],
                frame_rate,
                regular_timing=cfg.regular_timing,
                clock=clock,
                rng=rng,
            )
            record.shown.append(idx)
            record.start_times.append(start)
            record.draw_times.append(draws)
            record.finish_times.append(clock())
            if ended_by == "q":
                log.info("quit requested")
                record.quit = True
                break
    finally:
        window.set_cursor_visible(True)
        window.close()

    return record


def save_record(
    record: SessionRecord,
    config: SessionConfig,
    path: str | Path | None = None,
    *,
    stimuli: Sequence[Stimulus] = (),
) -> Path:
    out = Path(path) if path is not None else Path(config.data_dir) / "theData_Temp.json"
    out.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "saved": datetime.now().isoformat(timespec="seconds"),
        "config": asdict(config),
        "stimuli": [dict(type=type(s).__name__, **asdict(s)) for s in stimuli],
        "record": record.to_dict(),
    }
    out.write_text(json.dumps(payload, indent=2))
    log.info("saved session data to %s", out)
    return out


def _parse_size(value: str) -> Tuple[int, int]:
    try:
        w, h = (int(v) for v in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"size must look like 800x600, got '{value}'")
    return w, h


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--windowed", action="store_true", help="do not go full screen")
    parser.add_argument("--size", type=_parse_size, help="window size WxH (default: last display)")
    parser.add_argument("--frame-rate", type=float, default=None)
    parser.add_argument("--free-running", action="store_true", help="ignore durations; space advances")
    parser.add_argument("--hide-cursor", action="store_true")
    parser.add_argument("--wait", metavar="HH:MM", help="wait until this time of day")
    parser.add_argument("--repeats", type=int, default=3)
    parser.add_argument("--reverse-prob", type=float, default=0.0)
    parser.add_argument("--background", default="white")
    parser.add_argument("--data-dir", default="data")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    config = SessionConfig(
        full_screen=not args.windowed,
        regular_timing=not args.free_running,
        hide_cursor=args.hide_cursor,
        wait_until_start=args.wait is not None,
        start_time=args.wait or SessionConfig.start_time,
        background=args.background,
        repeats=args.repeats,
        data_dir=args.data_dir,
        frame_rate=args.frame_rate,
        seed=args.seed,
    )
    # The last attached display is the stimulus display.
    displays = describe_displays()
    target = displays[-1]
    size = args.size or target.size
    window = PygameWindow(
        size,
        display=len(displays) - 1,
        full_screen=config.full_screen,
        refresh_rate=target.refresh_rate,
    )
    stimuli = default_stimuli(args.reverse_prob)
    try:
        record = run_session(window, stimuli, config)
    except StimulusError:
        log.exception("Stimulus setup failed")
        return 1
    save_record(record, config, stimuli=stimuli)
    return 0


if __name__ == "__main__":
    sys.exit(main())
