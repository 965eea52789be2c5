"""Viewer settings state: point size, lighting, FPS display, key handling and file choice."""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Iterable

import numpy as np

from pointview.camera import SPEED, Camera, CameraMovement
from pointview.pointcloud import PointCloudError

logger = logging.getLogger(__name__)

DEFAULT_POINT_SIZE = 5.0
MIN_POINT_SIZE = 1.0
MAX_POINT_SIZE = 100.0
POINT_SIZE_STEP = 1.0

MIN_CAMERA_SPEED = 1.0
MAX_CAMERA_SPEED = 25.0
CAMERA_SPEED_STEP = 0.1

FPS_HISTORY_MAX = 60
MIN_DELTA_TIME = 0.0001

POINT_CLOUD_EXTENSIONS = (".pts", ".ply")

CONTROLS_HELP = (
    "W,A,S,D: Move camera",
    "Q/E: Increase/Decrease point size",
    "Up/Down: Increase/Decrease camera speed",
    "Mouse: Look around (when locked)",
    "SPACEBAR: Unlock mouse",
    "Load File: Choose a new model",
    "ESC: Exit",
)


class Key(Enum):
    """Keys the viewer reacts to."""

    ESCAPE = auto()
    SPACE = auto()
    W = auto()
    S = auto()
    A = auto()
    D = auto()
    Q = auto()
    E = auto()
    UP = auto()
    DOWN = auto()


class InputAction(Enum):
    """Window-level actions requested by key presses."""

    CLOSE_WINDOW = auto()
    UNLOCK_MOUSE = auto()


_MOVEMENT_KEYS = {
    Key.W: CameraMovement.FORWARD,
    Key.S: CameraMovement.BACKWARD,
    Key.A: CameraMovement.LEFT,
    Key.D: CameraMovement.RIGHT,
}


def _instant_fps(delta_time: float) -> float:
    return 1.0 / (delta_time if delta_time > 0 else MIN_DELTA_TIME)


class FpsCounter:
    """Frames-per-second average over a fixed number of recent frames."""

    def __init__(self, history_max=FPS_HISTORY_MAX):
        if history_max < 1:
            raise ValueError("history_max must be at least 1")
        self.history: deque[float] = deque(maxlen=int(history_max))

    def add(self, delta_time) -> float:
        """Record a frame's duration and return its instantaneous FPS."""
        fps = _instant_fps(delta_time)
        self.history.append(fps)
        return fps

    @property
    def average(self) -> float:
        return sum(self.history) / len(self.history) if self.history else 0.0

    def label(self) -> str:
        """Return the averaged FPS as display text."""
        return f"FPS AVG ({len(self.history)} frames): {self.average:.2f}"


class Menu:
    """State behind the viewer's control panel."""

    def __init__(self):
        self.point_size = DEFAULT_POINT_SIZE
        self.light_color = np.array([1.0, 1.0, 1.0])
        self.light_pos = np.array([10.0, 10.0, 10.0])
        self.light_dir = np.array([0.0, -1.0, 0.0])
        self.lighting_enabled = True
        self.lighting_follow = True
        self.open_file_dialog = False
        self.selected_file: str | None = None
        self.use_fps_average = True
        self.fps = FpsCounter(FPS_HISTORY_MAX)

    def process_input(
        self, pressed: Iterable[Key], camera: Camera, delta_time
    ) -> set[InputAction]:
        """Apply the held keys to the camera and settings; return window actions."""
        keys = set(pressed)
        actions: set[InputAction] = set()
        if Key.ESCAPE in keys:
            actions.add(InputAction.CLOSE_WINDOW)
        if Key.SPACE in keys:
            actions.add(InputAction.UNLOCK_MOUSE)
        for key, movement in _MOVEMENT_KEYS.items():
            if key in keys:
                camera.process_keyboard(movement, delta_time)
        if Key.Q in keys and self.point_size < MAX_POINT_SIZE:
            self.point_size += POINT_SIZE_STEP
        if Key.E in keys and self.point_size > MIN_POINT_SIZE:
            self.point_size -= POINT_SIZE_STEP
        if Key.UP in keys and camera.movement_speed < MAX_CAMERA_SPEED:
            camera.movement_speed += CAMERA_SPEED_STEP
        if Key.DOWN in keys and camera.movement_speed > MIN_CAMERA_SPEED:
            camera.movement_speed -= CAMERA_SPEED_STEP
        return actions

    def reset(self, camera: Camera) -> None:
        """Restore the point size, camera speed and FPS averaging to defaults."""
        self.point_size = DEFAULT_POINT_SIZE
        camera.movement_speed = SPEED
        self.use_fps_average = True

    def sync_light(self, camera: Camera) -> None:
        """Move the light to the camera when the light follows it."""
        if self.lighting_follow:
            self.light_pos = np.array(camera.position, dtype=np.float64)

    def fps_label(self, delta_time) -> str:
        """Return the FPS text for a frame, averaged when averaging is on."""
        if self.use_fps_average:
            self.fps.add(delta_time)
            return self.fps.label()
        return f"FPS: {_instant_fps(delta_time):.2f}"

    def choose_file(self, path, load: Callable[[str], object]) -> bool:
        """Select a file, close the chooser and load it; return whether it loaded."""
        self.selected_file = str(path)
        self.open_file_dialog = False
        try:
            load(self.selected_file)
        except PointCloudError as exc:
            logger.error("Failed to load file: %s (%s)", self.selected_file, exc)
            return False
        return True


def list_point_cloud_files(directory) -> list[Path]:
    """Return the .pts and .ply regular files directly inside ``directory``."""
    folder = Path(directory)
    if not folder.is_dir():
        raise FileNotFoundError(f"Resources folder not found: {folder}")
    return sorted(
        entry
        for entry in folder.iterdir()
        if entry.is_file() and entry.suffix in POINT_CLOUD_EXTENSIONS
    )