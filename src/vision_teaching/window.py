# window.py – a window holding named scene objects that can be toggled
#
# SceneWindow keeps the registry (add / enable / disable, insertion-ordered
# drawing); PygameWindow renders it.  Scene coordinates have their origin at
# the centre of the window with y pointing up.

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pygame
from coloraide import Color

log = logging.getLogger(__name__)

RGB = Tuple[float, float, float]
Point = Tuple[float, float]


def parse_rgb(value: str | Sequence[float]) -> RGB:
    """CSS colour string (``"white"``, ``"#ff0000"``, ...) or RGB triple → RGB in [0, 1]."""
    if isinstance(value, str):
        coords = Color(value).convert("srgb").coords()
    else:
        coords = [float(v) for v in value]
        if len(coords) != 3:
            raise ValueError(f"expected 3 RGB components, got {len(coords)}")
    r, g, b = (min(1.0, max(0.0, float(c))) for c in coords)
    return (r, g, b)


@dataclass
class SceneObject:
    name: str
    kind: str
    center: Point
    size: Tuple[float, float]
    rgb: RGB = (0.0, 0.0, 0.0)
    image: Optional[np.ndarray] = None
    enabled: bool = True


@dataclass(frozen=True)
class DisplayInfo:
    size: Tuple[int, int]
    refresh_rate: float = 60.0


class SceneWindow:
    """
    Headless window: keeps the scene registry and open/draw state but
    renders nothing.  Backends override ``_render``.
    """

    def __init__(self, size: Tuple[int, int]) -> None:
        self.size = (int(size[0]), int(size[1]))
        self.background: RGB = (0.0, 0.0, 0.0)
        self.refresh_rate = 60.0
        self.is_open = False
        self._objects: Dict[str, SceneObject] = {}

    # ---- registry ----

    def _add(self, obj: SceneObject) -> SceneObject:
        if obj.name in self._objects:
            raise ValueError(f"duplicate scene object name '{obj.name}'")
        self._objects[obj.name] = obj
        return obj

    def add_rectangle(self, center: Point, size, rgb, *, name: str) -> SceneObject:
        return self._add(SceneObject(name, "rectangle", tuple(center), tuple(size), parse_rgb(rgb)))

    def add_oval(self, center: Point, size, rgb, *, name: str) -> SceneObject:
        return self._add(SceneObject(name, "oval", tuple(center), tuple(size), parse_rgb(rgb)))

    def add_image(self, center: Point, size, image: np.ndarray, *, name: str) -> SceneObject:
        image = np.asarray(image, dtype=np.float64)
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"image must be rows×cols×3, got {image.shape}")
        return self._add(SceneObject(name, "image", tuple(center), tuple(size), image=image))

    def __getitem__(self, name: str) -> SceneObject:
        try:
            return self._objects[name]
        except KeyError:
            raise KeyError(f"no scene object named '{name}'") from None

    def __contains__(self, name: str) -> bool:
        return name in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def enable_object(self, name: str) -> None:
        self[name].enabled = True

    def disable_object(self, name: str) -> None:
        self[name].enabled = False

    def enabled_objects(self) -> List[SceneObject]:
        return [o for o in self._objects.values() if o.enabled]

    # ---- lifecycle ----

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def draw(self) -> None:
        if not self.is_open:
            raise RuntimeError("window is not open")
        self._render(self.enabled_objects())

    def _render(self, objects: List[SceneObject]) -> None:
        pass

    def poll_key(self) -> Optional[str]:
        return None

    def set_cursor_visible(self, visible: bool) -> None:
        pass

    def __enter__(self) -> "SceneWindow":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


# --- pygame backend ----------------------------------------------------------
def describe_displays() -> List[DisplayInfo]:
    """Desktop sizes of attached displays.  The refresh rate is nominal."""
    pygame.display.init()
    return [DisplayInfo((int(w), int(h))) for w, h in pygame.display.get_desktop_sizes()]


def _to_u8(rgb: RGB) -> Tuple[int, int, int]:
    r, g, b = (int(round(255 * c)) for c in rgb)
    return (r, g, b)


class PygameWindow(SceneWindow):
    def __init__(
        self,
        size: Tuple[int, int],
        *,
        display: int = 0,
        full_screen: bool = False,
        refresh_rate: float = 60.0,
        caption: str = "vision-teaching",
    ) -> None:
        super().__init__(size)
        self.display = display
        self.full_screen = full_screen
        self.refresh_rate = float(refresh_rate)
        self.caption = caption
        self.screen: Optional[pygame.Surface] = None
        self._surfaces: Dict[str, pygame.Surface] = {}
        self._keys: Deque[str] = deque()

    def open(self) -> None:
        pygame.init()
        flags = pygame.FULLSCREEN if self.full_screen else 0
        self.screen = pygame.display.set_mode(self.size, flags, display=self.display)
        pygame.display.set_caption(self.caption)
        log.info("opened %dx%d window on display %d", *self.size, self.display)
        super().open()

    def close(self) -> None:
        if self.is_open:
            pygame.display.quit()
            pygame.quit()
            self.screen = None
        self._surfaces.clear()
        super().close()

    def to_pixels(self, obj: SceneObject) -> pygame.Rect:
        w, h = obj.size
        left = self.size[0] / 2 + obj.center[0] - w / 2
        top = self.size[1] / 2 - obj.center[1] - h / 2
        return pygame.Rect(int(round(left)), int(round(top)), int(round(w)), int(round(h)))

    def _surface(self, obj: SceneObject, rect: pygame.Rect) -> pygame.Surface:
        surf = self._surfaces.get(obj.name)
        if surf is None:
            u8 = np.round(np.clip(obj.image, 0.0, 1.0) * 255.0).astype(np.uint8)
            surf = pygame.surfarray.make_surface(u8.transpose(1, 0, 2))
            if surf.get_size() != rect.size:
                surf = pygame.transform.scale(surf, rect.size)
            self._surfaces[obj.name] = surf
        return surf

    def _render(self, objects: List[SceneObject]) -> None:
        self.screen.fill(_to_u8(self.background))
        for obj in objects:
            rect = self.to_pixels(obj)
            if obj.kind == "rectangle":
                pygame.draw.rect(self.screen, _to_u8(obj.rgb), rect)
            elif obj.kind == "oval":
                pygame.draw.ellipse(self.screen, _to_u8(obj.rgb), rect)
            else:
                self.screen.blit(self._surface(obj, rect), rect)
        pygame.display.flip()

    def poll_key(self) -> Optional[str]:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._keys.append("q")
            elif event.type == pygame.KEYDOWN and event.unicode:
                self._keys.append(event.unicode)
        return self._keys.popleft() if self._keys else None

    def set_cursor_visible(self, visible: bool) -> None:
        if self.is_open:
            pygame.mouse.set_visible(visible)


__all__ = [
    "DisplayInfo",
    "PygameWindow",
    "SceneObject",
    "SceneWindow",
    "describe_displays",
    "parse_rgb",
]
