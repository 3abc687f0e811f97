import numpy as np
import pygame
import pytest

from vision_teaching.window import (
    DisplayInfo,
    PygameWindow,
    SceneWindow,
    describe_displays,
    parse_rgb,
)


def test_parse_rgb():
    assert parse_rgb("white") == (1.0, 1.0, 1.0)
    assert parse_rgb("#ff0000") == (1.0, 0.0, 0.0)
    assert parse_rgb([0.5, 2.0, -1.0]) == (0.5, 1.0, 0.0)
    with pytest.raises(ValueError):
        parse_rgb([1.0, 1.0])


def test_registry():
    win = SceneWindow((40, 20))
    win.add_rectangle((0, 0), (10, 10), (1, 1, 1), name="a")
    win.add_oval((5, 0), (4, 4), "black", name="b")
    assert len(win) == 2 and "a" in win
    assert [o.name for o in win.enabled_objects()] == ["a", "b"]

    win.disable_object("a")
    assert [o.name for o in win.enabled_objects()] == ["b"]
    win.enable_object("a")
    assert [o.name for o in win.enabled_objects()] == ["a", "b"]

    with pytest.raises(ValueError, match="duplicate"):
        win.add_oval((0, 0), (1, 1), (0, 0, 0), name="a")
    with pytest.raises(KeyError):
        win.enable_object("missing")
    with pytest.raises(ValueError):
        win.add_image((0, 0), (4, 4), np.zeros((4, 4)), name="img")


def test_draw_requires_open_window():
    with pytest.raises(RuntimeError):
        SceneWindow((40, 20)).draw()


def test_headless_window_draws_nothing():
    with SceneWindow((40, 20)) as win:
        win.add_rectangle((0, 0), (10, 10), "black", name="a")
        win.draw()
        assert win.poll_key() is None
    assert not win.is_open


@pytest.fixture
def dummy_video(monkeypatch):
    monkeypatch.setenv("SDL_VIDEODRIVER", "dummy")
    monkeypatch.setenv("SDL_AUDIODRIVER", "dummy")


def test_scene_to_pixels():
    win = PygameWindow((40, 20))
    obj = win.add_rectangle((0, 5), (10, 10), (0, 0, 0), name="r")
    assert tuple(win.to_pixels(obj)) == (15, 0, 10, 10)
    obj = win.add_rectangle((-10, -5), (20, 10), (0, 0, 0), name="s")
    assert tuple(win.to_pixels(obj)) == (0, 10, 20, 10)


def test_pygame_rendering(dummy_video):
    with PygameWindow((40, 20)) as win:
        win.background = parse_rgb("white")
        win.add_rectangle((-10, 0), (20, 20), (0, 0, 0), name="left")
        win.add_oval((10, 0), (20, 20), (1, 0, 0), name="right")
        win.draw()
        assert tuple(win.screen.get_at((5, 10)))[:3] == (0, 0, 0)
        assert tuple(win.screen.get_at((30, 10)))[:3] == (255, 0, 0)
        # corner of the oval's bounding box stays background
        assert tuple(win.screen.get_at((39, 0)))[:3] == (255, 255, 255)

        win.disable_object("left")
        win.draw()
        assert tuple(win.screen.get_at((5, 10)))[:3] == (255, 255, 255)
    assert not win.is_open


def test_pygame_image(dummy_video):
    img = np.zeros((20, 40, 3))
    img[:, 20:, 1] = 1.0
    with PygameWindow((40, 20)) as win:
        win.add_image((0, 0), (40, 20), img, name="img")
        win.draw()
        assert tuple(win.screen.get_at((5, 5)))[:3] == (0, 0, 0)
        assert tuple(win.screen.get_at((30, 5)))[:3] == (0, 255, 0)


def test_pygame_keys(dummy_video):
    with PygameWindow((40, 20)) as win:
        assert win.poll_key() is None
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_SPACE, unicode=" "))
        pygame.event.post(pygame.event.Event(pygame.QUIT))
        assert win.poll_key() == " "
        assert win.poll_key() == "q"
        assert win.poll_key() is None


def test_describe_displays(dummy_video):
    try:
        displays = describe_displays()
    finally:
        pygame.display.quit()
    assert len(displays) >= 1
    for info in displays:
        assert isinstance(info, DisplayInfo)
        assert info.size[0] > 0 and info.size[1] > 0
        assert info.refresh_rate == 60.0


def test_pygame_cursor(dummy_video):
    win = PygameWindow((40, 20))
    win.set_cursor_visible(False)  # not open yet: ignored
    with win:
        win.set_cursor_visible(False)
        assert not pygame.mouse.get_visible()
        win.set_cursor_visible(True)
        assert pygame.mouse.get_visible()
