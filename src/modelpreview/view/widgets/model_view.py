"""
3D Model View (PyVista Wrapper)
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import numpy.typing as npt
import pyvista as pv
from PySide6.QtCore import QElapsedTimer, QTimer
from PySide6.QtWidgets import QVBoxLayout, QWidget
from pyvistaqt import QtInteractor

from modelpreview.config import (
    DEMO_METALNESS,
    DEMO_ROUGHNESS,
    DISTORT_ROUGHNESS,
    FRAME_INTERVAL_MS,
    POINT_SIZE_PX,
    SURFACE_COLOR,
    SURFACE_METALNESS,
    SURFACE_ROUGHNESS,
    ModelProps,
)
from modelpreview.controller.loader import SceneAsset
from modelpreview.model.geometry import RenderMode
from modelpreview.model.normalization import effective_scale
from modelpreview.model.pipeline import NormalizationResult
from modelpreview.view.widgets.render_utils import COLOR_ARRAY, RenderUtils
from modelpreview.view.widgets.rotation import FloatMotion, RotationTransform

logger = logging.getLogger(__name__)


class ModelViewWidget(QWidget):
    """
    Draws the current NormalizationResult (or packaged scene) and animates it.

    The actor's transform carries scale, scene offset and rotation; the
    geometry itself stays as the pipeline produced it.
    """
    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.layout_box: QVBoxLayout = QVBoxLayout(self)
        self.layout_box.setContentsMargins(0, 0, 0, 0)

        self.plotter: QtInteractor = QtInteractor(self)
        self.layout_box.addWidget(self.plotter)
        self._init_plotter()

        # --- State ---
        self.props: ModelProps = ModelProps()
        self.rotation = RotationTransform()
        self.float_motion = FloatMotion()
        self._actor: Optional[pv.Actor] = None
        self._display_mesh: Optional[pv.PolyData] = None
        self._result: Optional[NormalizationResult] = None
        self._scene: Optional[SceneAsset] = None
        self._is_demo: bool = False

        # Distortion cache
        self._base_points: Optional[npt.NDArray[np.float64]] = None
        self._directions: Optional[npt.NDArray[np.float64]] = None
        self._anim_time: float = 0.0

        # --- Frame loop ---
        self._clock = QElapsedTimer()
        self._clock.start()
        self._frame_timer = QTimer(self)
        self._frame_timer.setInterval(FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._on_frame)
        self._frame_timer.start()

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def show_result(self, result: Optional[NormalizationResult], is_demo: bool = False) -> None:
        """Replace the displayed model. None clears the view."""
        if result is None:
            if self._result is not None:
                self.clear()
            return

        self._remove_actor()
        self._result = result
        self._scene = None
        self._is_demo = is_demo
        self._display_mesh = RenderUtils.to_polydata(result)

        if result.render_mode is RenderMode.POINT_CLOUD:
            self._actor = self._add_point_cloud(self._display_mesh, result.has_vertex_colors)
        elif result.render_mode is RenderMode.SURFACE:
            self._actor = self._add_surface(self._display_mesh, result.has_vertex_colors)
        else:
            raise ValueError(f"Unhandled render mode: {result.render_mode}")

        if RenderUtils.supports_distortion(result, is_demo):
            self._base_points = np.array(self._display_mesh.points, copy=True)
            self._directions = RenderUtils.displacement_directions(result.buffer)

        self.rotation.reset()
        self._apply_transform()
        self.plotter.reset_camera()
        self.plotter.render()

    def show_scene(self, scene: Optional[SceneAsset]) -> None:
        """Display a packaged scene, centered by its bounds. None clears it."""
        if scene is None:
            if self._scene is not None:
                self.clear()
            return

        self._remove_actor()
        self._scene = scene
        self._result = None
        self._actor = self.plotter.add_mesh(scene.dataset, smooth_shading=True, show_scalar_bar=False)

        self.rotation.reset()
        self._apply_transform()
        self.plotter.reset_camera()
        self.plotter.render()

    def clear(self) -> None:
        self._remove_actor()
        self._result = None
        self._scene = None
        self.plotter.render()

    def set_props(self, props: ModelProps) -> None:
        """Apply new display settings. Rebuilds the actor if the material changed."""
        rebuild = props.color != self.props.color or props.enable_distort != self.props.enable_distort
        # Point sprites are sized in pixels, so they follow the user scale separately
        if self._result is not None and self._result.render_mode is RenderMode.POINT_CLOUD:
            rebuild = rebuild or props.scale != self.props.scale

        self.props = props.validated()
        self.rotation.speed = self.props.rotation_speed

        if rebuild and self._result is not None:
            angle = self.rotation.angle
            self.show_result(self._result, is_demo=self._is_demo)
            self.rotation.angle = angle

        if not self.props.enable_distort:
            self._restore_points()

        self._apply_transform()
        self.plotter.render()

    def close_plotter(self) -> None:
        self._frame_timer.stop()
        self.plotter.close()

    # ------------------------------------------------------------------------------
    # Internal: Actors
    # ------------------------------------------------------------------------------

    def _init_plotter(self) -> None:
        self.plotter.set_background("#0f172a")
        self.plotter.enable_anti_aliasing()
        self.plotter.add_axes()

    def _add_point_cloud(self, mesh: pv.PolyData, has_colors: bool) -> pv.Actor:
        kwargs = dict(
            style="points",
            point_size=max(1.0, POINT_SIZE_PX * self.props.scale),
            render_points_as_spheres=True,
            show_scalar_bar=False,
        )
        if has_colors:
            return self.plotter.add_mesh(mesh, scalars=COLOR_ARRAY, rgb=True, **kwargs)
        return self.plotter.add_mesh(mesh, color=SURFACE_COLOR, **kwargs)

    def _add_surface(self, mesh: pv.PolyData, has_colors: bool) -> pv.Actor:
        if self._is_demo:
            roughness = DISTORT_ROUGHNESS if self.props.enable_distort else DEMO_ROUGHNESS
            metallic = DEMO_METALNESS
        else:
            roughness = SURFACE_ROUGHNESS
            metallic = SURFACE_METALNESS

        kwargs = dict(
            pbr=True,
            metallic=metallic,
            roughness=roughness,
            smooth_shading=True,
            show_scalar_bar=False,
        )
        if has_colors:
            return self.plotter.add_mesh(mesh, scalars=COLOR_ARRAY, rgb=True, **kwargs)

        color = self.props.color if self._is_demo else SURFACE_COLOR
        return self.plotter.add_mesh(mesh, color=color, **kwargs)

    def _remove_actor(self) -> None:
        if self._actor is not None:
            self.plotter.remove_actor(self._actor)
        self._actor = None
        self._display_mesh = None
        self._base_points = None
        self._directions = None

    def _restore_points(self) -> None:
        if self._display_mesh is not None and self._base_points is not None:
            self._display_mesh.points = self._base_points.copy()

    # ------------------------------------------------------------------------------
    # Internal: Transform & animation
    # ------------------------------------------------------------------------------

    def _apply_transform(self) -> None:
        if self._actor is None:
            return

        if self._scene is not None:
            # Rotate about the scene center, then move that center to the origin
            self._actor.origin = self._scene.bounds.center
            self._actor.position = self._scene.offset
            scale = self.props.scale
        elif self._result is not None:
            scale = effective_scale(self._result.scale_factor, self.props.scale)
        else:
            return

        self._actor.scale = (scale, scale, scale)
        self._update_pose()

    def _update_pose(self) -> None:
        """Spin about Y; the demo model additionally floats."""
        if self._is_demo and self._scene is None:
            pose = self.float_motion.pose(self._anim_time)
            tilt_x, tilt_y, tilt_z = pose.tilt
            self._actor.position = (0.0, pose.lift, 0.0)
            self._actor.orientation = (tilt_x, self.rotation.degrees + tilt_y, tilt_z)
        else:
            self._actor.orientation = (0.0, self.rotation.degrees, 0.0)

    def _on_frame(self) -> None:
        delta = self._clock.restart() / 1000.0
        if self._actor is None:
            return
        self._anim_time += delta

        needs_render = self._is_demo
        if self.rotation.speed != 0.0:
            self.rotation.advance(delta)
            needs_render = True
        if needs_render:
            self._update_pose()

        if self.props.enable_distort and self._base_points is not None:
            self._display_mesh.points = RenderUtils.distort_points(
                self._base_points,
                self._directions,
                self.props.distort,
                self._anim_time,
                self.props.speed,
            )
            needs_render = True

        if needs_render:
            self.plotter.render()
