"""
UnderMine Mod Manager - modal prompts (PySide6)
"""

from __future__ import annotations

import sys

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import QApplication, QMessageBox

_ICONS = {
    "question": QMessageBox.Question,
    "info": QMessageBox.Information,
    "error": QMessageBox.Critical,
}


def ensure_app() -> QApplication:
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
        app.setStyle("Fusion")
    return app


class QtChoiceDialog:
    """Shows a message box with one button per option."""

    def __init__(self, parent=None):
        ensure_app()
        self._parent = parent

    def show_choice_dialog(
        self, kind: str, title: str, text: str, options: list[str]
    ) -> int:
        box = QMessageBox(self._parent)
        box.setIcon(_ICONS.get(kind, QMessageBox.NoIcon))
        box.setWindowTitle(title)
        box.setText(text)
        buttons = [box.addButton(label, QMessageBox.AcceptRole) for label in options]

        # Closing the box without a choice keeps asking.
        while True:
            box.exec()
            clicked = box.clickedButton()
            if clicked in buttons:
                return buttons.index(clicked)

    def open_url(self, url: str):
        if not QDesktopServices.openUrl(QUrl(url)):
            raise OSError(f"No application available to open {url}")
