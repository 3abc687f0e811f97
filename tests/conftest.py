from collections import deque

import pytest

from vision_teaching.window import SceneWindow


class RecordingWindow(SceneWindow):
    """Keeps the enabled object names of every draw; keys come from a script."""

    def __init__(self, size=(80, 60), keys=(), fail_on_draw=None):
        super().__init__(size)
        self.frames = []
        self.keys = deque(keys)
        self.fail_on_draw = fail_on_draw
        self.cursor_visible = True
        self.opened = 0
        self.closed = 0

    def open(self):
        self.opened += 1
        super().open()

    def close(self):
        self.closed += 1
        super().close()

    def _render(self, objects):
        if self.fail_on_draw is not None and len(self.frames) >= self.fail_on_draw:
            raise RuntimeError("display lost")
        self.frames.append([o.name for o in objects])

    def poll_key(self):
        return self.keys.popleft() if self.keys else None

    def set_cursor_visible(self, visible):
        self.cursor_visible = visible


class FakeClock:
    def __init__(self, step=0.05):
        self.t = 0.0
        self.step = step

    def __call__(self):
        self.t += self.step
        return self.t


@pytest.fixture
def make_window():
    return RecordingWindow


@pytest.fixture
def clock():
    return FakeClock()
