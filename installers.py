"""
UnderMine installers: turn an archive listing into copy instructions.

Each installer is a ``(test, install)`` pair registered with the host. The
host calls ``test`` with the archive's file list and, for the first installer
that reports ``supported``, calls ``install`` with the same list and the
folder the archive was extracted to. ``install`` never touches the disk except
to read a mod.json; the host performs the copies.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, Optional

from archive_layout import (
    find_content_dir,
    has_extension,
    is_manifest_file,
    is_manifest_package,
    is_root_package,
    ROOT_PATTERN,
)
from errors import ModManagerError
from manifest_schema import fallback_mod_name, read_mod_name

_log = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class CopyInstruction:
    """Copy ``source`` (inside the archive) to ``destination`` (relative to
    the staged mod folder, or to the game folder for root deployments)."""

    source: str
    destination: str
    type: Literal["copy"] = "copy"


@dataclass(frozen=True)
class SupportedResult:
    supported: bool


@dataclass(frozen=True)
class InstallResult:
    instructions: list[CopyInstruction] = field(default_factory=list)


@dataclass
class ManifestDescriptor:
    """One mod inside a manifest-based archive."""

    manifest_file: str
    root_folder: str  # "." when mod.json sits at the archive root
    manifest_index: int  # offset of mod.json's base name inside manifest_file
    mod_files: list[str] = field(default_factory=list)


# ── Manifest-based mods ───────────────────────────────────────────────


def _belongs_to(name: str, root_folder: str) -> bool:
    return root_folder == "." or root_folder in name


def describe_manifests(files: list[str]) -> list[ManifestDescriptor]:
    """Return one descriptor per mod.json in the listing.

    An archive may bundle several mods, each with its own mod.json.
    """
    descriptors = []
    for manifest_file in files:
        if not is_manifest_file(manifest_file):
            continue
        root_folder = posixpath.dirname(manifest_file) or "."
        manifest_index = len(manifest_file) - len(posixpath.basename(manifest_file))
        mod_files = [
            name
            for name in files
            if has_extension(name) and _belongs_to(name, root_folder)
        ]
        descriptors.append(
            ManifestDescriptor(
                manifest_file=manifest_file,
                root_folder=root_folder,
                manifest_index=manifest_index,
                mod_files=mod_files,
            )
        )
    return descriptors


def resolve_mod_name(destination_path: str | Path, mod: ManifestDescriptor) -> str:
    """Pick the folder name a mod is staged under.

    A mod packed inside its own folder is named after that folder. A mod at
    the archive root is named after the manifest's ``Name``, or after the
    destination folder if the manifest is unusable.
    """
    if mod.root_folder != ".":
        return posixpath.basename(mod.root_folder)
    try:
        return read_mod_name(destination_path, mod.manifest_file)
    except ModManagerError as exc:
        _log.error(
            "Unable to parse mod.json file %s: %s",
            Path(destination_path) / mod.manifest_file,
            exc,
        )
        return fallback_mod_name(destination_path)


def build_manifest_instructions(
    files: list[str],
    destination_path: str | Path,
    progress: Optional[ProgressCallback] = None,
) -> list[CopyInstruction]:
    mods = describe_manifests(files)
    instructions: list[CopyInstruction] = []
    for done, mod in enumerate(mods, start=1):
        mod_name = resolve_mod_name(destination_path, mod)
        for name in mod.mod_files:
            instructions.append(
                CopyInstruction(
                    source=name,
                    destination=posixpath.join(mod_name, name[mod.manifest_index:]),
                )
            )
        if progress is not None:
            progress(done / len(mods))
    return instructions


def test_supported(files: list[str], game_id: str) -> SupportedResult:
    return SupportedResult(supported=is_manifest_package(files, game_id))


def install(
    files: list[str],
    destination_path: str | Path,
    game_id: str,
    progress: Optional[ProgressCallback] = None,
) -> InstallResult:
    instructions = build_manifest_instructions(files, destination_path, progress)
    _log.info("Manifest installer produced %d instruction(s)", len(instructions))
    return InstallResult(instructions=instructions)


# ── Root-folder mods ──────────────────────────────────────────────────
#
#   SomeMod.7z
#     SomeMod/UnderMine_Data/...   -> UnderMine_Data/...
#     SomeMod/Mods/...             -> Mods/...
#     SomeMod/Readme.txt           -> not deployed


def build_root_instructions(files: list[str]) -> list[CopyInstruction]:
    content_dir = find_content_dir(files)
    if content_dir is None:
        return []

    # just past the marker's leading separator; 0 when the marker is at the top
    idx = content_dir.find(ROOT_PATTERN) + 1
    root_dir = posixpath.basename(content_dir[:idx].rstrip("/"))

    return [
        CopyInstruction(source=name, destination=name[idx:])
        for name in files
        if has_extension(name)
        and root_dir in name
        and posixpath.splitext(name)[1].lower() != ".txt"
    ]


def test_root_folder(files: list[str], game_id: str) -> SupportedResult:
    return SupportedResult(supported=is_root_package(files, game_id))


def install_root_folder(
    files: list[str],
    destination_path: str | Path,
    game_id: str,
    progress: Optional[ProgressCallback] = None,
) -> InstallResult:
    instructions = build_root_instructions(files)
    if progress is not None:
        progress(1.0)
    _log.info("Root-folder installer produced %d instruction(s)", len(instructions))
    return InstallResult(instructions=instructions)
