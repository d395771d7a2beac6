"""Qt dialogs for loading and saving the Action Unit configuration.

Provides the ``confirm``/``alert`` channels the configuration store asks
for, plus the file-picker variants of load and save.
"""

import logging
from typing import Optional

from PySide6.QtWidgets import QFileDialog, QMessageBox, QWidget

from faceex.constants import SAVE_FILE_NAME
from faceex.coordination.session import FaceExSession
from faceex.core.schema import ValidationMessage

logger = logging.getLogger(__name__)

_JSON_FILTER = "JSON (*.json)"


def confirm_invalid_config(errors: list[ValidationMessage], parent: Optional[QWidget] = None) -> bool:
    """Ask whether a configuration that failed validation should be loaded anyway."""
    box = QMessageBox(parent)
    box.setIcon(QMessageBox.Icon.Warning)
    box.setWindowTitle("Invalid Configuration")
    box.setText(f"The configuration has {len(errors)} problem(s). Load it anyway?")
    box.setDetailedText("\n".join(str(e) for e in errors))
    box.setStandardButtons(QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No)
    box.setDefaultButton(QMessageBox.StandardButton.No)
    return box.exec() == QMessageBox.StandardButton.Yes


def show_alert(message: str, parent: Optional[QWidget] = None) -> None:
    QMessageBox.warning(parent, "FaceEx", message)


def attach_dialogs(session: FaceExSession, parent: Optional[QWidget] = None) -> None:
    """Route the session's confirm and alert channels through message boxes."""
    session.confirm = lambda errors: confirm_invalid_config(errors, parent)
    session.alert = lambda message: show_alert(message, parent)


def load_config_dialog(session: FaceExSession, parent: Optional[QWidget] = None) -> bool:
    path, _ = QFileDialog.getOpenFileName(parent, "Load Configuration", "", _JSON_FILTER)
    if not path:
        return False
    ok = session.load_config(path)
    if ok:
        logger.info("Loaded configuration from %s", path)
    return ok


def save_config_dialog(session: FaceExSession, parent: Optional[QWidget] = None) -> bool:
    path, _ = QFileDialog.getSaveFileName(parent, "Save Configuration", SAVE_FILE_NAME, _JSON_FILTER)
    if not path:
        return False
    if session.save_config(path) is None:
        show_alert("\n".join(str(e) for e in session.errors()), parent)
        return False
    return True
