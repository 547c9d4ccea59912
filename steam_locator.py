"""Locate Steam games through the libraries listed in libraryfolders.vdf."""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Iterable, Optional

from errors import GameNotFound

_log = logging.getLogger(__name__)

_PATH_RE = re.compile(r'"path"\s*"([^"]+)"')
_INSTALLDIR_RE = re.compile(r'"installdir"\s*"([^"]+)"')


def default_steam_roots() -> list[Path]:
    if sys.platform == "win32":
        return [
            Path(os.environ.get("PROGRAMFILES(X86)", r"C:\Program Files (x86)")) / "Steam",
            Path(os.environ.get("PROGRAMFILES", r"C:\Program Files")) / "Steam",
        ]
    return [
        Path("~/.steam/steam").expanduser(),
        Path("~/.local/share/Steam").expanduser(),
        Path("~/.var/app/com.valvesoftware.Steam/.local/share/Steam").expanduser(),
    ]


def library_folders(steam_root: Path) -> list[Path]:
    """Return every Steam library registered under ``steam_root``.

    The root itself is always a library, even when libraryfolders.vdf is
    missing or unreadable.
    """
    libraries = [steam_root]
    for vdf in (
        steam_root / "steamapps" / "libraryfolders.vdf",
        steam_root / "config" / "libraryfolders.vdf",
    ):
        if not vdf.is_file():
            continue
        try:
            content = vdf.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            _log.warning("Could not read %s: %s", vdf, exc)
            continue
        for match in _PATH_RE.finditer(content):
            library = Path(match.group(1).replace("\\\\", "\\"))
            if library not in libraries:
                libraries.append(library)
        break
    return libraries


def find_in_library(library: Path, app_id: str) -> Optional[Path]:
    steamapps = library / "steamapps"
    acf = steamapps / f"appmanifest_{app_id}.acf"
    if not acf.is_file():
        return None
    match = _INSTALLDIR_RE.search(acf.read_text(encoding="utf-8", errors="replace"))
    if not match:
        _log.warning("%s has no installdir entry", acf)
        return None
    game_path = steamapps / "common" / match.group(1)
    return game_path if game_path.is_dir() else None


def find_by_app_id(app_id: str, steam_roots: Iterable[Path] | None = None) -> Path:
    """Return the install folder of Steam app ``app_id``.

    Raises ``GameNotFound`` if no library has it installed.
    """
    roots = list(steam_roots) if steam_roots is not None else default_steam_roots()
    for root in roots:
        if not root.is_dir():
            continue
        for library in library_folders(root):
            game_path = find_in_library(library, app_id)
            if game_path is not None:
                _log.info("Found Steam app %s at %s", app_id, game_path)
                return game_path
    raise GameNotFound(app_id)
