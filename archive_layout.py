"""
Classification of UnderMine mod archives from their file listing.

Two packaging conventions are recognized:

    manifest mods                 root-folder mods
    -------------                 ----------------
    CoolMod/mod.json              SomeMod/UnderMine_Data/Managed/x.dll
    CoolMod/CoolMod.dll           SomeMod/Mods/Extra/y.dll
                                  SomeMod/Readme.txt

Root-folder mods replace (part of) the game's own ``UnderMine_Data`` folder
and never ship a mod.json of their own at that level. Any archive that
contains an ``UnderMine_Data`` directory is a root-folder mod, so the two
conventions never overlap.

Archive paths use ``/`` separators; callers normalize backslashes first.
"""

from __future__ import annotations

import posixpath

from manifest_schema import MANIFEST_FILENAME

GAME_ID = "undermine"
CONTENT_DIR = "UnderMine_Data"
MODS_DIR = "Mods"
ROOT_PATTERN = "/" + CONTENT_DIR + "/"

# Prepended to every path before matching ROOT_PATTERN so that a content
# folder sitting at the top of the archive still has a leading separator.
_WRAPPER_DIR = "fakeDir"


def normalize_names(names: list[str]) -> list[str]:
    return [name.replace("\\", "/") for name in names]


def is_directory_entry(name: str) -> bool:
    return name.endswith("/")


def has_extension(name: str) -> bool:
    if is_directory_entry(name):
        return False
    return posixpath.splitext(name)[1] != ""


def is_manifest_file(name: str) -> bool:
    return posixpath.basename(name).lower() == MANIFEST_FILENAME


def directory_entries(files: list[str]) -> list[str]:
    """Return every directory of the listing as a ``/``-terminated path.

    Explicit directory entries are kept and the parents implied by every
    entry are added, in first-seen order. Archive tools disagree on whether
    directories are listed at all, so classification must not depend on it.
    """
    seen: set[str] = set()
    dirs: list[str] = []
    for name in files:
        parts = name.rstrip("/").split("/")
        if not is_directory_entry(name):
            parts = parts[:-1]
        for i in range(1, len(parts) + 1):
            entry = "/".join(parts[:i]) + "/"
            if entry not in seen:
                seen.add(entry)
                dirs.append(entry)
    return dirs


def _nested(name: str) -> str:
    return posixpath.join(_WRAPPER_DIR, name)


def find_content_dir(files: list[str]) -> str | None:
    """Return the first directory entry that is an ``UnderMine_Data`` folder."""
    for entry in directory_entries(files):
        if _nested(entry).endswith(ROOT_PATTERN):
            return entry
    return None


def is_root_package(files: list[str], game_id: str) -> bool:
    return game_id == GAME_ID and find_content_dir(files) is not None


def is_manifest_package(files: list[str], game_id: str) -> bool:
    if game_id != GAME_ID:
        return False
    if not any(is_manifest_file(name) for name in files):
        return False
    return find_content_dir(files) is None
