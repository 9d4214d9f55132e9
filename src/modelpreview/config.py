"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths, global constants
and the user-facing display configuration.

Why is this file needed?
------------------------
1. Abstraction: It prevents hardcoded paths and magic numbers (target size,
   frame interval, default colors) scattered throughout the code.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find bundled sample assets when the app is frozen into an .exe.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory.
    DEFAULT_TARGET_SIZE (float): Largest extent of a normalized model in scene units.
    ModelProps: Display configuration of the current model.
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        # PyInstaller temp folder
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # Development mode: resolve relative to this file
    # config.py is in src/modelpreview/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


# Global Constants
ASSETS_PATH: str = get_resource_path("assets")
SAMPLE_POINT_CLOUD_PATH: str = os.path.join(ASSETS_PATH, "sample_point_cloud.ply")
SAMPLE_MESH_PATH: str = os.path.join(ASSETS_PATH, "sample_tetrahedron.ply")

DEFAULT_TARGET_SIZE: float = 2.0  # scene units

FRAME_INTERVAL_MS: int = 16  # ~60 FPS animation tick
POINT_SIZE_PX: float = 3.0  # screen pixels, multiplied by the user scale
SURFACE_COLOR: str = "#bdbdbd"  # surfaces without vertex colors
SURFACE_METALNESS: float = 0.6
SURFACE_ROUGHNESS: float = 0.4
DEMO_METALNESS: float = 0.8
DEMO_ROUGHNESS: float = 0.3
DISTORT_ROUGHNESS: float = 0.2


@dataclass
class ModelProps:
    """
    Display configuration for the current model.

    Only 'scale' and 'rotation_speed' interact with the normalized geometry;
    the rest select the material.
    """
    url: Optional[str] = None
    scale: float = 1.0  # user display multiplier
    rotation_speed: float = 0.0  # rad/s, negative spins the other way
    color: str = "orange"  # base material color
    enable_distort: bool = False  # alternate wobbling material
    distort: float = 0.4  # distortion magnitude
    speed: float = 2.0  # distortion animation speed

    def validated(self) -> ModelProps:
        """Return a copy with out-of-range values replaced by defaults."""
        props = self
        if not props.scale > 0:
            logger.warning(f"Invalid display scale {props.scale!r}, using 1.0")
            props = replace(props, scale=1.0)
        if props.distort < 0:
            logger.warning(f"Negative distortion {props.distort!r}, using 0.0")
            props = replace(props, distort=0.0)
        return props
