"""
Geometry Normalization Pipeline
===============================
Runs the normalization steps once per loaded asset and tracks which load is current.

Why is this file needed?
------------------------
1. Ordering: bounding volume -> scale + recenter -> classification -> normals.
   Scale and recenter both read the bounding volume; normal synthesis is gated
   by the classification.
2. Robustness: malformed attribute data must never take down the render loop.
   Bad optional attributes are dropped, failing steps fall back to the raw
   buffer with identity scale, and every decision is recorded as a diagnostic.
3. Last request wins: each load request gets a ticket. Completions carrying a
   superseded ticket are discarded, so a slow old load can never overwrite a
   newer one.

Classes:
    PipelineState: EMPTY / LOADING / NORMALIZING / READY / FAILED.
    LoadTicket: Identifies one load request.
    NormalizationResult: What the presentation layer draws.
    GeometryNormalizationPipeline: The state machine.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from modelpreview.config import DEFAULT_TARGET_SIZE
from modelpreview.model.exceptions import NormalizationStepError
from modelpreview.model.geometry import BoundingVolume, RenderMode, VertexBuffer
from modelpreview.model.normalization import (
    RecenterStrategy,
    auto_fit_scale,
    classify_topology,
    compute_bounding_volume,
    recenter,
    synthesize_normals,
)

logger = logging.getLogger(__name__)

# Errors a step may raise on bad data. Anything else is a programming error and propagates.
STEP_ERRORS = (NormalizationStepError, ValueError, IndexError, TypeError, FloatingPointError)


class PipelineState(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    NORMALIZING = "normalizing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadTicket:
    """Handle for one load request."""
    id: int
    source: Optional[str] = None


@dataclass(frozen=True)
class NormalizationResult:
    """
    The normalized geometry plus everything needed to draw it.

    Attributes:
        buffer: Recentered positions, normals populated where derivable.
            Read-only for consumers.
        scale_factor: Auto-fit scale (> 0). Multiply with the user display scale.
        render_mode: POINT_CLOUD or SURFACE.
        has_vertex_colors: True if buffer.colors is present and valid.
        bounds: Bounding volume measured before recentering (None on fallback
            if it could not be computed).
        fallback: True if normalization failed and the raw buffer is shown.
        diagnostics: Human-readable notes about degenerate or malformed input.
    """
    buffer: VertexBuffer
    scale_factor: float
    render_mode: RenderMode
    has_vertex_colors: bool
    bounds: Optional[BoundingVolume] = None
    fallback: bool = False
    diagnostics: tuple[str, ...] = ()


class GeometryNormalizationPipeline:
    """
    State machine around the normalization steps.

    Typical use from a loader callback::

        ticket = pipeline.request_load("scan.ply")
        ...  # decode asynchronously
        result = pipeline.complete_load(ticket, buffer)  # None if superseded
    """

    def __init__(
        self,
        target_size: float = DEFAULT_TARGET_SIZE,
        recenter_strategy: RecenterStrategy = RecenterStrategy.AUTO
    ) -> None:
        if target_size <= 0:
            raise ValueError(f"target_size must be positive, got {target_size}")
        self.target_size = target_size
        self.recenter_strategy = recenter_strategy

        self._state: PipelineState = PipelineState.EMPTY
        self._result: Optional[NormalizationResult] = None
        self._ticket: Optional[LoadTicket] = None
        self._ticket_ids = itertools.count(1)
        self._last_error: Optional[str] = None

    # --- PROPERTIES ---

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def result(self) -> Optional[NormalizationResult]:
        """The current result. Only set in READY."""
        return self._result

    @property
    def current_ticket(self) -> Optional[LoadTicket]:
        return self._ticket

    @property
    def last_error(self) -> Optional[str]:
        """Reason of the last FAILED transition."""
        return self._last_error

    # --- STATE TRANSITIONS ---

    def request_load(self, source: Optional[str] = None) -> LoadTicket:
        """
        Start a new load. Discards the current result and supersedes any
        pending request.
        """
        ticket = LoadTicket(id=next(self._ticket_ids), source=source)
        if self._ticket is not None and self._state in (PipelineState.LOADING, PipelineState.NORMALIZING):
            logger.info(f"Load #{self._ticket.id} superseded by #{ticket.id} ({source}).")
        self._ticket = ticket
        self._result = None
        self._last_error = None
        self._set_state(PipelineState.LOADING)
        return ticket

    def is_current(self, ticket: LoadTicket) -> bool:
        return self._ticket is not None and ticket.id == self._ticket.id

    def complete_load(
        self,
        ticket: LoadTicket,
        buffer: Optional[VertexBuffer]
    ) -> Optional[NormalizationResult]:
        """
        Deliver a decoded buffer for a load request.

        Args:
            ticket: The ticket returned by request_load().
            buffer: Decoded vertex data, or None if the loader produced nothing.

        Returns:
            The new result, or None if the ticket was superseded or the load failed.
        """
        if not self.is_current(ticket):
            logger.debug(f"Discarding stale result of load #{ticket.id}.")
            return None

        if buffer is None:
            self.fail_load(ticket, "loader produced no vertex buffer")
            return None

        if buffer.positions.ndim != 2 or buffer.positions.shape[1] != 3:
            self.fail_load(ticket, f"positions must have shape (N, 3), got {buffer.positions.shape}")
            return None

        self._set_state(PipelineState.NORMALIZING)
        result = self.normalize(buffer)

        self._result = result
        self._set_state(PipelineState.READY)
        logger.info(
            f"Load #{ticket.id} ready: {buffer.vertex_count} vertices, "
            f"{result.render_mode.value}, scale={result.scale_factor:.6g}"
            + (" (fallback)" if result.fallback else "")
        )
        return result

    def fail_load(self, ticket: LoadTicket, reason: str) -> None:
        """Mark the load as failed. Stale tickets are ignored."""
        if not self.is_current(ticket):
            logger.debug(f"Ignoring failure of stale load #{ticket.id}: {reason}")
            return
        logger.error(f"Load #{ticket.id} ({ticket.source}) failed: {reason}")
        self._result = None
        self._last_error = reason
        self._set_state(PipelineState.FAILED)

    def load(self, buffer: Optional[VertexBuffer], source: Optional[str] = None) -> Optional[NormalizationResult]:
        """Synchronous request + complete, for buffers that are already decoded."""
        ticket = self.request_load(source)
        return self.complete_load(ticket, buffer)

    def clear(self) -> None:
        """Drop everything and go back to EMPTY."""
        self._ticket = None
        self._result = None
        self._last_error = None
        self._set_state(PipelineState.EMPTY)

    def _set_state(self, state: PipelineState) -> None:
        if state is not self._state:
            logger.debug(f"Pipeline state: {self._state.value} -> {state.value}")
        self._state = state

    # --- NORMALIZATION ---

    def normalize(self, buffer: VertexBuffer) -> NormalizationResult:
        """
        Run all normalization steps on a copy of the buffer.

        Never raises for bad input data; see module docstring.
        """
        diagnostics: list[str] = []
        working = self._drop_invalid_attributes(buffer.copy(), diagnostics)
        bounds: Optional[BoundingVolume] = None

        try:
            # 1. Bounding volume
            bounds = compute_bounding_volume(working)
            if bounds.is_empty:
                self._note_degenerate(diagnostics, "buffer has no vertices")
            elif bounds.is_degenerate:
                self._note_degenerate(diagnostics, f"zero-extent bounding volume, size={bounds.size.tolist()}")

            # 2. Scale and recenter, both from the same bounding volume
            scale = auto_fit_scale(bounds, self.target_size)
            working = recenter(working, bounds.center, strategy=self.recenter_strategy, inplace=True)

            # 3. Topology
            render_mode = classify_topology(working)
            if render_mode is RenderMode.SURFACE and not working.indices_valid():
                raise NormalizationStepError(
                    "topology", "; ".join(working.validate()) or "invalid triangle indices"
                )

            # 4. Normals (surfaces only)
            if render_mode is RenderMode.SURFACE:
                working = synthesize_normals(working, inplace=True)

        except STEP_ERRORS as e:
            diagnostics.append(f"normalization failed: {e}")
            logger.warning(f"Normalization failed, showing raw geometry: {e}")
            return self._fallback_result(buffer, bounds, diagnostics)

        return NormalizationResult(
            buffer=working,
            scale_factor=scale,
            render_mode=render_mode,
            has_vertex_colors=working.colors_valid(),
            bounds=bounds,
            fallback=False,
            diagnostics=tuple(diagnostics),
        )

    @staticmethod
    def _note_degenerate(diagnostics: list[str], message: str) -> None:
        # Degenerate input is expected (single points, flat scans); not worth a warning
        logger.debug(f"Degenerate geometry: {message}")
        diagnostics.append(f"degenerate: {message}")

    @staticmethod
    def _drop_invalid_attributes(buffer: VertexBuffer, diagnostics: list[str]) -> VertexBuffer:
        """Remove colors/normals whose length does not match the positions."""
        if buffer.has_colors and not buffer.colors_valid():
            msg = f"dropped colors: shape {buffer.colors.shape} does not match {buffer.vertex_count} vertices"
            logger.warning(msg)
            diagnostics.append(msg)
            buffer.colors = None

        if buffer.has_normals and not buffer.normals_valid():
            msg = f"dropped normals: shape {buffer.normals.shape} does not match {buffer.vertex_count} vertices"
            logger.warning(msg)
            diagnostics.append(msg)
            buffer.normals = None

        return buffer

    def _fallback_result(
        self,
        original: VertexBuffer,
        bounds: Optional[BoundingVolume],
        diagnostics: list[str]
    ) -> NormalizationResult:
        """
        Raw geometry with identity scale. Attributes that cannot be drawn safely
        (mismatched colors/normals, out-of-range indices) are removed.
        """
        raw = self._drop_invalid_attributes(original.copy(), [])
        if raw.has_indices and not raw.indices_valid():
            diagnostics.append("dropped invalid indices, drawing as point cloud")
            raw.indices = None

        return NormalizationResult(
            buffer=raw,
            scale_factor=1.0,
            render_mode=classify_topology(raw),
            has_vertex_colors=raw.colors_valid(),
            bounds=bounds,
            fallback=True,
            diagnostics=tuple(diagnostics),
        )
