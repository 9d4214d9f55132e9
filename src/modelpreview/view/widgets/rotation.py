"""
Per-frame motion state for the displayed model.
"""
from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class RotationTransform:
    """
    Accumulated Y-axis rotation of the model actor.

    The angle is applied to the actor's transform only; vertex data is never touched.
    """
    speed: float = 0.0  # rad/s
    angle: float = 0.0  # rad

    def advance(self, delta: float) -> float:
        """Add delta * speed to the angle. Negative speeds rotate backwards."""
        self.angle += delta * self.speed
        return self.angle

    def reset(self) -> None:
        self.angle = 0.0

    @property
    def degrees(self) -> float:
        return math.degrees(self.angle)


@dataclass(frozen=True)
class FloatPose:
    tilt: tuple[float, float, float]  # degrees about x, y, z
    lift: float  # scene units along y


@dataclass
class FloatMotion:
    """
    Idle bob and tilt of the demo model.

    A slow sine drives a small lift (at most 0.1 * float_intensity) and a tilt
    of at most 1/8 rad * rotation_intensity about each axis.
    """
    speed: float = 2.0
    rotation_intensity: float = 0.5
    float_intensity: float = 0.5

    def pose(self, time: float) -> FloatPose:
        phase = time / 4.0 * self.speed
        s = math.sin(phase)
        tilt = (
            math.degrees(math.cos(phase) / 8.0 * self.rotation_intensity),
            math.degrees(s / 8.0 * self.rotation_intensity),
            math.degrees(s / 20.0 * self.rotation_intensity),
        )
        return FloatPose(tilt=tilt, lift=s / 10.0 * self.float_intensity)
