"""
Background Workers (Threading)
==============================
This module contains QThread subclasses for handling asset decoding.

Why is this file needed?
------------------------
1. Responsiveness: Parsing a multi-million point PLY on the main thread
   freezes the GUI and the rotation animation. Decoding runs here instead.
2. Signals: Results travel back to the GUI thread through Qt Signals, tagged
   with the load ticket so superseded loads can be recognised and dropped.

Classes:
    LoadWorker: Decodes one source into a VertexBuffer or a SceneAsset.
"""
from __future__ import annotations

import logging
from enum import Enum

from PySide6.QtCore import QThread, Signal

from modelpreview.controller.loader import AssetLoader
from modelpreview.model.exceptions import AssetDecodeError
from modelpreview.model.pipeline import LoadTicket

logger = logging.getLogger(__name__)


class LoadKind(Enum):
    VERTEX_BUFFER = "vertex_buffer"  # raw point / polygon data, normalized afterwards
    SCENE = "scene"  # packaged scene, centered only


class LoadWorker(QThread):
    # Signals carry (LoadTicket, payload)
    loaded = Signal(object, object)
    failed = Signal(object, str)
    progress = Signal(object, int)

    def __init__(self, ticket: LoadTicket, kind: LoadKind = LoadKind.VERTEX_BUFFER) -> None:
        super().__init__()
        self.ticket = ticket
        self.kind = kind

    def run(self) -> None:
        try:
            logger.info(f"Decoding load #{self.ticket.id} ({self.kind.value}): {self.ticket.source}")

            if self.kind is LoadKind.SCENE:
                payload = AssetLoader.load_scene(self.ticket.source, self._report_progress)
            else:
                payload = AssetLoader.load_vertex_buffer(self.ticket.source, self._report_progress)

            self.loaded.emit(self.ticket, payload)

        except AssetDecodeError as e:
            logger.error(f"Error in LoadWorker: {e}")
            self.failed.emit(self.ticket, str(e))
        except Exception as e:
            # Anything escaping here would kill the thread silently
            logger.exception(f"Unexpected error in LoadWorker: {e}")
            self.failed.emit(self.ticket, str(e))

    def _report_progress(self, percent: int) -> None:
        self.progress.emit(self.ticket, percent)
