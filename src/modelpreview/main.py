"""
Application Initialization
==========================
This module parses the command line, constructs the MVC objects and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Configures logging from the command-line flags.
2. Instantiates the normalization pipeline and its controller.
3. Instantiates the Main Window (View), passing the controller in.
4. Prevents circular import errors by being the orchestrator.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from modelpreview.config import DEFAULT_TARGET_SIZE, ModelProps
from modelpreview.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modelpreview",
        description="Interactive viewer for point clouds, meshes and glTF scenes.",
    )
    parser.add_argument("source", nargs="?", default=None, help="File path or URL of the model to open")
    parser.add_argument("--demo", action="store_true", help="Show the procedural demo model")
    parser.add_argument("--scale", type=float, default=1.0, help="Display scale multiplier")
    parser.add_argument("--rotation-speed", type=float, default=0.0, help="Rotation speed in rad/s")
    parser.add_argument("--color", default="orange", help="Base material color of the demo model")
    parser.add_argument("--distort", type=float, default=None,
                        help="Enable the distorted material with this magnitude")
    parser.add_argument("--target-size", type=float, default=DEFAULT_TARGET_SIZE,
                        help="Largest extent of a normalized model in scene units")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    return parser


def props_from_args(args: argparse.Namespace) -> ModelProps:
    props = ModelProps(
        url=args.source,
        scale=args.scale,
        rotation_speed=args.rotation_speed,
        color=args.color,
    )
    if args.distort is not None:
        props.enable_distort = True
        props.distort = args.distort
    return props.validated()


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO, log_file=args.log_file)

    # Qt imports are deferred so --help works without a display
    from PySide6.QtWidgets import QApplication

    from modelpreview.controller.model_controller import ModelController
    from modelpreview.model.pipeline import GeometryNormalizationPipeline
    from modelpreview.view.main_window import MainWindow, VISIBLE_APP_NAME

    # 2. Create the Qt Application
    app = QApplication(sys.argv[:1])
    app.setApplicationName(VISIBLE_APP_NAME)

    # 3. Initialize the pipeline and controller
    pipeline = GeometryNormalizationPipeline(target_size=args.target_size)
    controller = ModelController(pipeline)

    # 4. Initialize the Main Window
    props = props_from_args(args)
    window = MainWindow(controller, props)
    window.show()

    if args.source:
        window.open_source(args.source)
    elif args.demo:
        window.on_demo()

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
