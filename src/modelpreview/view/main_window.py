"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar, the control panel and the 3D view.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects global actions (like File -> Open) and controller
   signals to the panel and the view.
"""
from __future__ import annotations

import os
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox, QSplitter

from modelpreview.config import ModelProps
from modelpreview.controller.loader import AssetLoader
from modelpreview.controller.model_controller import ModelController
from modelpreview.view.panels.model_panel import ModelControlPanel
from modelpreview.view.widgets.model_view import ModelViewWidget

VISIBLE_APP_NAME = "Model Preview"

MODEL_FILE_FILTER = "Point clouds & meshes (*.ply *.obj *.stl *.vtk *.vtp);;All Files (*)"
SCENE_FILE_FILTER = "Scenes (*.glb *.gltf *.vtm);;All Files (*)"


class MainWindow(QMainWindow):
    def __init__(self, controller: ModelController, props: Optional[ModelProps] = None) -> None:
        super().__init__()
        self.controller = controller
        self.props: ModelProps = (props or ModelProps()).validated()

        self.update_window_title()
        self.resize(1400, 900)

        # --- SPLITTER (CONTENT AREA) ---
        splitter = QSplitter(Qt.Horizontal)
        self.setCentralWidget(splitter)

        # --- LEFT SIDE: Control Panel ---
        self.panel = ModelControlPanel(self.props)
        splitter.addWidget(self.panel)

        # --- RIGHT SIDE: 3D Visualization ---
        self.visualizer = ModelViewWidget()
        self.visualizer.set_props(self.props)
        splitter.addWidget(self.visualizer)

        # Set initial proportions (1 part sidebar : 4 parts 3D view)
        splitter.setSizes([300, 1100])

        # --- SIGNAL CONNECTIONS ---
        # 1. Panel -> Actions
        self.panel.props_changed.connect(self.on_props_changed)
        self.panel.open_model_requested.connect(self.on_file_open_model)
        self.panel.open_scene_requested.connect(self.on_file_open_scene)
        self.panel.demo_requested.connect(self.on_demo)
        self.panel.clear_requested.connect(self.controller.clear)

        # 2. Controller -> Panel
        self.controller.state_changed.connect(self.panel.on_state_changed)
        self.controller.result_changed.connect(self.panel.on_result_changed)
        self.controller.scene_changed.connect(self.panel.on_scene_changed)
        self.controller.error_occurred.connect(self.panel.on_error)
        self.controller.progress_changed.connect(self.panel.on_progress)

        # 3. Controller -> View
        self.controller.result_changed.connect(self.on_result_changed)
        self.controller.scene_changed.connect(self.visualizer.show_scene)
        self.controller.error_occurred.connect(self.show_error)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

    def _create_actions(self) -> None:
        self.act_open = QAction("Open Model...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open_model)

        self.act_open_scene = QAction("Open Scene...", self)
        self.act_open_scene.setShortcut("Ctrl+Shift+O")
        self.act_open_scene.triggered.connect(self.on_file_open_scene)

        self.act_demo = QAction("Demo Model", self)
        self.act_demo.triggered.connect(self.on_demo)

        self.act_clear = QAction("Clear", self)
        self.act_clear.triggered.connect(self.controller.clear)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        file_menu.addAction(self.act_open)
        file_menu.addAction(self.act_open_scene)
        file_menu.addAction(self.act_demo)
        file_menu.addSeparator()
        file_menu.addAction(self.act_clear)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

    # --- HELPER METHODS ---

    def update_window_title(self) -> None:
        source = self.props.url or "No model"
        self.setWindowTitle(f"{VISIBLE_APP_NAME} - [{os.path.basename(source)}]")

    def open_source(self, source: str) -> None:
        """Load a file or URL, picking raw vs. scene handling by extension."""
        self.props.url = source
        self.update_window_title()
        self.controller.load(source)

    # --- SLOTS ---

    def on_props_changed(self, props: ModelProps) -> None:
        props.url = self.props.url
        self.props = props
        self.visualizer.set_props(props)

    def on_result_changed(self, result) -> None:
        self.visualizer.show_result(result, is_demo=self.controller.is_demo)

    def on_demo(self) -> None:
        self.props.url = None
        self.update_window_title()
        self.controller.load_demo()

    def on_file_open_model(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(self, "Open Model", "", MODEL_FILE_FILTER)
        if fname:
            self.props.url = fname
            self.update_window_title()
            self.controller.load_model(fname)

    def on_file_open_scene(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(self, "Open Scene", "", SCENE_FILE_FILTER)
        if fname:
            self.props.url = fname
            self.update_window_title()
            self.controller.load_scene(fname)

    def closeEvent(self, event, /) -> None:
        """Stop background loads and the render loop before closing."""
        self.controller.shutdown()

        # Clean up downloaded files if any
        AssetLoader.cleanup_temp_files()

        if self.visualizer is not None:
            self.visualizer.close_plotter()

        event.accept()

    def show_error(self, message: str) -> None:
        QMessageBox.critical(self, "Load Error", message)
