"""Registers the UnderMine game, installers and mod type with a host."""

from __future__ import annotations

from functools import partial
from pathlib import Path

import installers
from game_adapter import UnderMineGame
from host import ExtensionRegistry, HostContext
from mod_types import (
    ROOT_MOD_TYPE_ID,
    ROOT_MOD_TYPE_PRIORITY,
    classify_deployment,
    get_root_deploy_path,
    is_root_mod_type,
)

MANIFEST_INSTALLER_ID = "undermine-installer"
ROOT_INSTALLER_ID = "undermine-root"
INSTALLER_PRIORITY = 50


def register(
    context: HostContext,
    registry: ExtensionRegistry,
    patcher_exe: str | Path | None = None,
) -> UnderMineGame:
    game = UnderMineGame(context, patcher_exe=patcher_exe)
    registry.register_game(game)
    # Same priority for both: registration order decides, manifest mods first.
    registry.register_installer(
        MANIFEST_INSTALLER_ID,
        INSTALLER_PRIORITY,
        installers.test_supported,
        installers.install,
    )
    registry.register_installer(
        ROOT_INSTALLER_ID,
        INSTALLER_PRIORITY,
        installers.test_root_folder,
        installers.install_root_folder,
    )
    registry.register_mod_type(
        ROOT_MOD_TYPE_ID,
        ROOT_MOD_TYPE_PRIORITY,
        is_root_mod_type,
        partial(get_root_deploy_path, context),
        classify_deployment,
    )
    return game
