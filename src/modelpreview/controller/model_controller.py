"""
Model Controller
================
Connects load requests, background decoding and the normalization pipeline.

Why is this file needed?
------------------------
The pipeline (model layer) knows nothing about threads or Qt. This class
starts a LoadWorker per request, hands finished buffers to the pipeline on
the GUI thread, and re-publishes the outcome as Qt Signals for the view.
Completions from superseded requests are dropped here and in the pipeline.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from modelpreview.controller.loader import SceneAsset
from modelpreview.controller.workers import LoadKind, LoadWorker
from modelpreview.model.geometry import VertexBuffer
from modelpreview.model.pipeline import GeometryNormalizationPipeline, LoadTicket, PipelineState
from modelpreview.model.procedural import torus_knot

logger = logging.getLogger(__name__)

SCENE_EXTENSIONS = (".glb", ".gltf", ".vtm", ".3ds")


def is_scene_source(source: str) -> bool:
    """Packaged scene formats are centered as a whole instead of normalized."""
    return source.lower().split("?", 1)[0].endswith(SCENE_EXTENSIONS)


class ModelController(QObject):
    state_changed = Signal(object)  # PipelineState
    result_changed = Signal(object)  # NormalizationResult (None when cleared/failed)
    scene_changed = Signal(object)  # SceneAsset (None when cleared)
    error_occurred = Signal(str)
    progress_changed = Signal(int)  # percent of the current load

    def __init__(self, pipeline: Optional[GeometryNormalizationPipeline] = None) -> None:
        super().__init__()
        self.pipeline = pipeline or GeometryNormalizationPipeline()
        self._workers: dict[int, LoadWorker] = {}
        self.is_demo: bool = False

    # --- PUBLIC API ---

    def load(self, source: str) -> LoadTicket:
        """Load raw vertex data or a packaged scene, chosen by extension."""
        kind = LoadKind.SCENE if is_scene_source(source) else LoadKind.VERTEX_BUFFER
        return self._start(source, kind)

    def load_model(self, source: str) -> LoadTicket:
        return self._start(source, LoadKind.VERTEX_BUFFER)

    def load_scene(self, source: str) -> LoadTicket:
        return self._start(source, LoadKind.SCENE)

    def load_buffer(self, buffer: VertexBuffer, source: str = "<memory>") -> None:
        """Normalize an already decoded buffer synchronously."""
        self.is_demo = False
        self._publish(self.pipeline.load(buffer, source))

    def load_demo(self) -> None:
        """Show the procedural torus knot."""
        self.pipeline.load(torus_knot(), source="<demo>")
        self.is_demo = True
        self._publish(self.pipeline.result)

    def clear(self) -> None:
        self.pipeline.clear()
        self.is_demo = False
        self.state_changed.emit(self.pipeline.state)
        self.result_changed.emit(None)
        self.scene_changed.emit(None)

    def shutdown(self) -> None:
        """Wait for running workers; call before the application exits."""
        for worker in list(self._workers.values()):
            worker.wait()
        self._workers.clear()

    # --- INTERNAL ---

    def _start(self, source: str, kind: LoadKind) -> LoadTicket:
        ticket = self.pipeline.request_load(source)
        self.state_changed.emit(self.pipeline.state)

        worker = LoadWorker(ticket, kind)
        worker.loaded.connect(self._on_loaded)
        worker.failed.connect(self._on_failed)
        worker.progress.connect(self._on_progress)
        worker.finished.connect(lambda t=ticket: self._on_worker_finished(t))
        self._workers[ticket.id] = worker
        worker.start()
        return ticket

    def _on_loaded(self, ticket: LoadTicket, payload: object) -> None:
        if not self.pipeline.is_current(ticket):
            logger.debug(f"Dropping result of superseded load #{ticket.id}.")
            return

        self.is_demo = False
        if isinstance(payload, SceneAsset):
            # Scenes bypass normalization; the raw pipeline has nothing to show
            self.pipeline.clear()
            self.state_changed.emit(self.pipeline.state)
            self.result_changed.emit(None)
            self.scene_changed.emit(payload)
            return

        self._publish(self.pipeline.complete_load(ticket, payload))

    def _on_progress(self, ticket: LoadTicket, percent: int) -> None:
        if self.pipeline.is_current(ticket):
            self.progress_changed.emit(percent)

    def _on_failed(self, ticket: LoadTicket, message: str) -> None:
        if not self.pipeline.is_current(ticket):
            return
        self.pipeline.fail_load(ticket, message)
        self.state_changed.emit(self.pipeline.state)
        self.result_changed.emit(None)
        self.scene_changed.emit(None)
        self.error_occurred.emit(message)

    def _publish(self, result) -> None:
        self.state_changed.emit(self.pipeline.state)
        if self.pipeline.state is PipelineState.FAILED:
            self.result_changed.emit(None)
            self.scene_changed.emit(None)
            self.error_occurred.emit(self.pipeline.last_error or "load failed")
            return
        self.scene_changed.emit(None)
        self.result_changed.emit(result)

    def _on_worker_finished(self, ticket: LoadTicket) -> None:
        worker = self._workers.pop(ticket.id, None)
        if worker is not None:
            worker.deleteLater()
