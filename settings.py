"""Persisted settings, stored with QSettings like the rest of the app."""

from __future__ import annotations

from dataclasses import dataclass

from PySide6.QtCore import QSettings

DEFAULT_ORG = "UnderMineModManager"
DEFAULT_APP = "UnderMineModManager"

_KEYS = ("staging_dir", "game_path", "patcher_exe", "downloads_dir")


@dataclass
class Settings:
    staging_dir: str = ""
    game_path: str = ""  # empty means "ask Steam"
    patcher_exe: str = ""
    downloads_dir: str = ""

    def with_overrides(self, **overrides: str | None) -> "Settings":
        values = {key: getattr(self, key) for key in _KEYS}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return Settings(**values)


def open_store(org: str = DEFAULT_ORG, app: str = DEFAULT_APP) -> QSettings:
    return QSettings(org, app)


def load_settings(store: QSettings) -> Settings:
    return Settings(**{key: store.value(key, "", type=str) for key in _KEYS})


def save_settings(store: QSettings, settings: Settings):
    for key in _KEYS:
        store.setValue(key, getattr(settings, key))
    store.sync()
