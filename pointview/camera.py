"""A fly-through camera driven by Euler angles, plus view and projection matrices."""

from __future__ import annotations

import math
from enum import Enum, auto
from typing import Iterable

import numpy as np

YAW = -90.0
PITCH = 0.0
SPEED = 2.5
SENSITIVITY = 0.1
ZOOM = 45.0

MAX_PITCH = 89.0
MIN_ZOOM = 1.0
MAX_ZOOM = 45.0


class CameraMovement(Enum):
    """Directions the camera can be moved in with the keyboard."""

    FORWARD = auto()
    BACKWARD = auto()
    LEFT = auto()
    RIGHT = auto()


def _vec3(values: Iterable[float]) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64).reshape(3)
    return vector.copy()


def _normalize(vector: np.ndarray) -> np.ndarray:
    return vector / np.linalg.norm(vector)


def look_at(eye, center, up) -> np.ndarray:
    """Return a right-handed view matrix looking from ``eye`` towards ``center``."""
    eye = _vec3(eye)
    forward = _normalize(_vec3(center) - eye)
    side = _normalize(np.cross(forward, _vec3(up)))
    upward = np.cross(side, forward)
    matrix = np.identity(4)
    matrix[0, :3] = side
    matrix[1, :3] = upward
    matrix[2, :3] = -forward
    matrix[0, 3] = -np.dot(side, eye)
    matrix[1, 3] = -np.dot(upward, eye)
    matrix[2, 3] = np.dot(forward, eye)
    return matrix


def perspective(fovy, aspect, near, far) -> np.ndarray:
    """Return a right-handed perspective projection with depth mapped to [-1, 1].

    ``fovy`` is the vertical field of view in radians.
    """
    tan_half = math.tan(fovy / 2.0)
    matrix = np.zeros((4, 4))
    matrix[0, 0] = 1.0 / (aspect * tan_half)
    matrix[1, 1] = 1.0 / tan_half
    matrix[2, 2] = -(far + near) / (far - near)
    matrix[2, 3] = -(2.0 * far * near) / (far - near)
    matrix[3, 2] = -1.0
    return matrix


class Camera:
    """A camera that moves freely and looks around by yaw and pitch in degrees."""

    def __init__(self, position=(0.0, 0.0, 3.0), up=(0.0, 1.0, 0.0), yaw=YAW, pitch=PITCH):
        self.position = _vec3(position)
        self.world_up = _vec3(up)
        self.yaw = float(yaw)
        self.pitch = float(pitch)
        self.movement_speed = SPEED
        self.mouse_sensitivity = SENSITIVITY
        self.zoom = ZOOM
        self.front = np.array([0.0, 0.0, -1.0])
        self.right = np.zeros(3)
        self.up = np.zeros(3)
        self._update_vectors()

    def view_matrix(self) -> np.ndarray:
        """Return the view matrix for the camera's current position and orientation."""
        return look_at(self.position, self.position + self.front, self.up)

    def process_keyboard(self, direction: CameraMovement, delta_time: float) -> None:
        """Move the camera in ``direction`` for ``delta_time`` seconds."""
        velocity = self.movement_speed * delta_time
        if direction is CameraMovement.FORWARD:
            self.position = self.position + self.front * velocity
        elif direction is CameraMovement.BACKWARD:
            self.position = self.position - self.front * velocity
        elif direction is CameraMovement.LEFT:
            self.position = self.position - self.right * velocity
        elif direction is CameraMovement.RIGHT:
            self.position = self.position + self.right * velocity
        self._update_vectors()

    def process_mouse_movement(self, xoffset, yoffset, constrain_pitch=True) -> None:
        """Turn the camera by a mouse offset, scaled by the mouse sensitivity."""
        self.yaw += xoffset * self.mouse_sensitivity
        self.pitch += yoffset * self.mouse_sensitivity
        if constrain_pitch:
            self.pitch = min(max(self.pitch, -MAX_PITCH), MAX_PITCH)
        self._update_vectors()

    def process_mouse_scroll(self, yoffset) -> None:
        """Zoom by narrowing or widening the field of view, kept within limits."""
        self.zoom = min(max(self.zoom - yoffset, MIN_ZOOM), MAX_ZOOM)

    def _update_vectors(self) -> None:
        yaw = math.radians(self.yaw)
        pitch = math.radians(self.pitch)
        front = np.array(
            [
                math.cos(yaw) * math.cos(pitch),
                math.sin(pitch),
                math.sin(yaw) * math.cos(pitch),
            ]
        )
        self.front = _normalize(front)
        self.right = _normalize(np.cross(self.front, self.world_up))
        self.up = _normalize(np.cross(self.right, self.front))