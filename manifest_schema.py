"""
Manifest schema for UnderMine mods.

Every UnderMod mod ships a ``mod.json`` next to its assemblies. Authors write
it by hand, so the file is decoded leniently: comments, trailing commas,
single-quoted strings and a leading byte-order mark are all accepted.

Example:

    {
        // shown in the mod list
        "Name": "Cool Mod!",
        "Version": "1.0.2",
        "Author": "someone",
    }

Only ``Name`` is used by the manager. It becomes the folder name of the mod
inside the staging directory once every character outside ``[A-Za-z0-9]`` is
dropped.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

import json5
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from errors import DataInvalid, ManifestParseError

MANIFEST_FILENAME = "mod.json"
INSTALLING_SUFFIX = ".installing"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")

_log = logging.getLogger(__name__)


class ModManifest(BaseModel):
    """Parsed contents of a mod.json file.

    Unknown keys are kept so the model never rejects a manifest written for a
    newer UnderMod release.
    """

    model_config = ConfigDict(extra="allow")

    Name: str | None = None

    @field_validator("Name", mode="before")
    @classmethod
    def _name_must_be_text(cls, v):
        if v is not None and not isinstance(v, str):
            raise ValueError(f"Name must be a string, got {type(v).__name__}")
        return v


def decode_manifest(data: bytes | str) -> ModManifest:
    """Decode raw mod.json content into a ModManifest.

    Raises ``ManifestParseError`` for undecodable bytes, syntax errors
    (including nesting too deep for the parser), a top-level value that is not
    an object, or a ``Name`` of the wrong type.
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ManifestParseError(f"mod.json is not valid UTF-8: {exc}") from exc
    else:
        text = data.lstrip("\ufeff")

    try:
        raw = json5.loads(text)
    except (ValueError, RecursionError) as exc:
        raise ManifestParseError(f"Invalid mod.json syntax: {exc}") from exc

    if not isinstance(raw, dict):
        raise ManifestParseError("mod.json is not a JSON object")

    try:
        return ModManifest.model_validate(raw)
    except ValidationError as exc:
        raise ManifestParseError(f"Invalid mod.json contents: {exc}") from exc


def sanitize_mod_name(name: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("", name)


def fallback_mod_name(destination_path: str | Path) -> str:
    """Name a mod after the folder it is being installed into."""
    base = os.path.basename(os.path.normpath(str(destination_path)))
    if base.endswith(INSTALLING_SUFFIX):
        base = base[: -len(INSTALLING_SUFFIX)]
    return base


def read_mod_name(destination_path: str | Path, manifest_file: str) -> str:
    """Read the sanitized ``Name`` of the manifest extracted at
    ``destination_path / manifest_file``.

    Raises ``ManifestParseError`` if the file cannot be read or decoded and
    ``DataInvalid`` if it has no usable ``Name``.
    """
    manifest_path = Path(destination_path) / manifest_file
    try:
        data = manifest_path.read_bytes()
    except OSError as exc:
        raise ManifestParseError(f"Unable to read {manifest_path}: {exc}") from exc

    manifest = decode_manifest(data)
    if manifest.Name is None:
        raise DataInvalid(f"Invalid mod.json file: {manifest_path} has no Name")

    name = sanitize_mod_name(manifest.Name)
    if not name:
        raise DataInvalid(
            f"Invalid mod.json file: Name {manifest.Name!r} has no usable characters"
        )
    return name
