"""
The ``undermine-root`` mod type: mods deployed straight into the game folder.

Three packaging patterns have to come out right:

  1. Replacement mod with an ``UnderMine_Data`` folder and no mod.json.
     Needs no UnderMod; deployed to the game root.
  2. Replacement mod with ``UnderMine_Data`` plus one or more UnderMod mods
     in a ``Mods`` folder beside it:

         archive.zip
           UnderMine_Data/
           Mods/
           Mods/SomeUnderModMod/mod.json

     Deployed to the game root as a whole.
  3. A regular UnderMod mod that happens to carry an ``UnderMine_Data``
     folder inside its own directory. Deployed to the regular mod folder.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Iterable, Optional

from archive_layout import CONTENT_DIR, GAME_ID, MODS_DIR
from host import HostContext
from installers import CopyInstruction
from manifest_schema import MANIFEST_FILENAME

ROOT_MOD_TYPE_ID = "undermine-root"
ROOT_MOD_TYPE_PRIORITY = 25

_log = logging.getLogger(__name__)


def is_root_mod_type(game_id: str) -> bool:
    return game_id == GAME_ID


def get_root_deploy_path(context: HostContext) -> Optional[str]:
    path = context.discovered_path(GAME_ID)
    if path is None:
        _log.error("UnderMine was not discovered")
    return path


def classify_deployment(instructions: Iterable[CopyInstruction]) -> bool:
    """Return True if the instructions should deploy to the game root."""
    copies = [instr for instr in instructions if instr.type == "copy"]

    has_manifest = any(
        posixpath.basename(instr.destination).lower() == MANIFEST_FILENAME
        for instr in copies
    )
    has_mods_folder = any(
        instr.destination.startswith(MODS_DIR + "/") for instr in copies
    )
    has_content_folder = any(
        instr.destination.startswith(CONTENT_DIR + "/") for instr in copies
    )

    if has_manifest:
        return has_content_folder and has_mods_folder
    return has_content_folder
