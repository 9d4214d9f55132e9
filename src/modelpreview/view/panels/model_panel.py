"""
Model Display Control Panel
"""
from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QCheckBox, QComboBox, QDoubleSpinBox, QFormLayout, QGroupBox, QLabel, QProgressBar, QPushButton,
    QVBoxLayout, QWidget
)

from modelpreview.config import ModelProps
from modelpreview.model.geometry import RenderMode
from modelpreview.model.pipeline import NormalizationResult, PipelineState

COLOR_CHOICES = ["orange", "hotpink", "royalblue", "lightgreen", "white"]


class ModelControlPanel(QWidget):
    # Emitted with a new ModelProps whenever a display setting changes
    props_changed = Signal(object)
    open_model_requested = Signal()
    open_scene_requested = Signal()
    demo_requested = Signal()
    clear_requested = Signal()

    def __init__(self, props: ModelProps) -> None:
        super().__init__()
        self.props = props

        layout = QVBoxLayout(self)

        # --- Source Group ---
        grp_src = QGroupBox("Model")
        l_src = QVBoxLayout(grp_src)

        self.btn_open = QPushButton("Open point cloud / mesh...")
        self.btn_open.setMinimumHeight(32)
        self.btn_open.clicked.connect(self.open_model_requested.emit)
        l_src.addWidget(self.btn_open)

        self.btn_scene = QPushButton("Open scene (glTF)...")
        self.btn_scene.clicked.connect(self.open_scene_requested.emit)
        l_src.addWidget(self.btn_scene)

        self.btn_demo = QPushButton("Demo model")
        self.btn_demo.clicked.connect(self.demo_requested.emit)
        l_src.addWidget(self.btn_demo)

        self.btn_clear = QPushButton("Clear")
        self.btn_clear.clicked.connect(self.clear_requested.emit)
        l_src.addWidget(self.btn_clear)

        layout.addWidget(grp_src)

        # --- Display Group ---
        grp = QGroupBox("Display")
        form = QFormLayout(grp)

        self.spin_scale = QDoubleSpinBox()
        self.spin_scale.setRange(0.01, 100.0)
        self.spin_scale.setSingleStep(0.1)
        self.spin_scale.setValue(props.scale)
        self.spin_scale.valueChanged.connect(self.on_props_edited)
        form.addRow("Scale:", self.spin_scale)

        self.spin_rotation = QDoubleSpinBox()
        self.spin_rotation.setRange(-10.0, 10.0)
        self.spin_rotation.setSingleStep(0.1)
        self.spin_rotation.setValue(props.rotation_speed)
        self.spin_rotation.setSuffix(" rad/s")
        self.spin_rotation.valueChanged.connect(self.on_props_edited)
        form.addRow("Rotation speed:", self.spin_rotation)

        self.cmb_color = QComboBox()
        self.cmb_color.addItems(COLOR_CHOICES)
        if props.color not in COLOR_CHOICES:
            self.cmb_color.addItem(props.color)
        self.cmb_color.setCurrentText(props.color)
        self.cmb_color.currentTextChanged.connect(self.on_props_edited)
        form.addRow("Color:", self.cmb_color)

        self.chk_distort = QCheckBox("")
        self.chk_distort.setChecked(props.enable_distort)
        self.chk_distort.toggled.connect(self.on_distort_toggled)
        form.addRow("Distort material:", self.chk_distort)

        self.spin_distort = QDoubleSpinBox()
        self.spin_distort.setRange(0.0, 1.0)
        self.spin_distort.setSingleStep(0.05)
        self.spin_distort.setValue(props.distort)
        self.spin_distort.valueChanged.connect(self.on_props_edited)
        form.addRow("Distortion:", self.spin_distort)

        self.spin_speed = QDoubleSpinBox()
        self.spin_speed.setRange(0.0, 10.0)
        self.spin_speed.setSingleStep(0.5)
        self.spin_speed.setValue(props.speed)
        self.spin_speed.valueChanged.connect(self.on_props_edited)
        form.addRow("Distortion speed:", self.spin_speed)

        self._sync_distort_enabled()
        layout.addWidget(grp)

        # --- Status ---
        self.progress = QProgressBar()
        self.progress.setRange(0, 0)  # indeterminate spinner
        self.progress.setVisible(False)
        layout.addWidget(self.progress)

        self.lbl_status = QLabel("Status: No model loaded.")
        self.lbl_status.setAlignment(Qt.AlignCenter)
        self.lbl_status.setStyleSheet("color: gray;")
        layout.addWidget(self.lbl_status)

        self.lbl_info = QLabel("")
        self.lbl_info.setAlignment(Qt.AlignCenter)
        self.lbl_info.setWordWrap(True)
        layout.addWidget(self.lbl_info)

        layout.addStretch()

    # --- SLOTS ---

    def on_distort_toggled(self, checked: bool) -> None:
        self._sync_distort_enabled()
        self.on_props_edited()

    def on_props_edited(self, *_) -> None:
        self.props = ModelProps(
            url=self.props.url,
            scale=self.spin_scale.value(),
            rotation_speed=self.spin_rotation.value(),
            color=self.cmb_color.currentText(),
            enable_distort=self.chk_distort.isChecked(),
            distort=self.spin_distort.value(),
            speed=self.spin_speed.value(),
        )
        self.props_changed.emit(self.props)

    def on_state_changed(self, state: PipelineState) -> None:
        self.progress.setVisible(state in (PipelineState.LOADING, PipelineState.NORMALIZING))

        if state is PipelineState.LOADING:
            self.progress.setRange(0, 0)
            self._set_status_styled("Status: Loading...", "gray")
            self.lbl_info.setText("")
        elif state is PipelineState.READY:
            self._set_status_styled("Status: Ready ✓", "green", bold=True)
        elif state is PipelineState.FAILED:
            self._set_status_styled("Status: Load failed", "red", bold=True)
        elif state is PipelineState.EMPTY:
            self._set_status_styled("Status: No model loaded.", "gray")

    def on_progress(self, percent: int) -> None:
        """Switch the bar from spinner to percentage once the loader reports progress."""
        if self.progress.maximum() == 0:
            self.progress.setRange(0, 100)
        self.progress.setValue(percent)
        self.lbl_status.setText(f"Status: Loading... {percent}%")

    def on_result_changed(self, result: NormalizationResult | None) -> None:
        if result is None:
            return
        lines = [
            f"Vertices: {result.buffer.vertex_count}",
            f"Mode: {'point cloud' if result.render_mode is RenderMode.POINT_CLOUD else 'surface'}",
            f"Auto scale: {result.scale_factor:.4g}",
            f"Vertex colors: {'yes' if result.has_vertex_colors else 'no'}",
        ]
        if result.fallback:
            self._set_status_styled("Status: Shown without normalization", "orange", bold=True)
        lines.extend(result.diagnostics)
        self.lbl_info.setText("\n".join(lines))

    def on_scene_changed(self, scene) -> None:
        if scene is not None:
            self._set_status_styled("Status: Scene loaded ✓", "green", bold=True)
            self.lbl_info.setText(f"Points: {scene.dataset.n_points}")

    def on_error(self, message: str) -> None:
        self.lbl_info.setText(message)

    # --- HELPERS ---

    def _sync_distort_enabled(self) -> None:
        enabled = self.chk_distort.isChecked()
        self.spin_distort.setEnabled(enabled)
        self.spin_speed.setEnabled(enabled)

    def _set_status_styled(self, text: str, color: str, bold: bool = False) -> None:
        self.lbl_status.setText(text)
        weight = "bold" if bold else "normal"
        self.lbl_status.setStyleSheet(f"color: {color}; font-weight: {weight};")
