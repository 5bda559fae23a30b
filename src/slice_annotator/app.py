"""Application entry point helpers."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from PyQt5.QtWidgets import QApplication, QFileDialog

from slice_annotator.config import AnnotatorConfig
from slice_annotator.gui import SliceAnnotatorWindow
from slice_annotator.session import open_session

LOGGER = logging.getLogger(__name__)


def _prompt_for_folder(config: AnnotatorConfig) -> Optional[Path]:
    selected = QFileDialog.getExistingDirectory(
        None,
        "Select folder containing image sections",
        str(config.search_root),
    )
    return Path(selected) if selected else None


def launch_app(
    config: AnnotatorConfig,
    folder: Optional[Path] = None,
    *,
    resume: Optional[Path] = None,
    argv: Optional[list[str]] = None,
) -> int:
    """Launch the Qt application.

    Configuration and slice discovery errors propagate before any window is
    shown.
    """

    app = QApplication(argv or sys.argv)
    if folder is None:
        folder = _prompt_for_folder(config)
        if folder is None:
            LOGGER.info("No folder selected. Exited.")
            return 0

    session = open_session(config, folder, resume=resume)
    window = SliceAnnotatorWindow(session)
    window.resize(960, 640)
    window.show()
    return app.exec_()
