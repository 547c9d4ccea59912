"""
UnderMine game adapter: discovery, paths, and the one-time patch setup.

Setup runs every time the game is activated:

    AWAITING_CONSENT --(backup exists / "Enable Mods")--> PATCHING
    AWAITING_CONSENT --("Cancel")--> CANCELED  (raises UserCanceled)
    PATCHING --> CHECKING_COMPANION_MOD --> DONE

The patch is re-applied on every activation so game updates do not silently
drop it. Only the first activation asks for consent; afterwards the backup
left by the patcher is the record that the user agreed.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from archive_layout import CONTENT_DIR, GAME_ID, MODS_DIR
from errors import GameNotFound, UserCanceled
from host import DiscoveryResult, HostContext
from patcher import HOOK_ASSEMBLY, HOOK_ENTRYPOINT, backup_path_for, run_patcher

_log = logging.getLogger(__name__)

STEAM_APP_ID = "656350"
EXECUTABLE = "UnderMine.exe"

UNDERMOD_DLL = Path(CONTENT_DIR) / "Managed" / "VortexMods" / "UnderMod" / "UnderMod.dll"
UNDERMOD_OPT_OUT_FILE = "vortex-no-undermod-prompt.txt"
UNDERMOD_URL = "https://www.nexusmods.com/undermine/mods/1"
OPT_OUT_TEXT = "Vortex created this file to store your preference regarding UnderMod."

PATCH_PROMPT_TITLE = "Patch Game Files to Enable Mods?"
PATCH_PROMPT_TEXT = (
    "For UnderMine to support mods (including the modding API, UnderMod itself), "
    "the game files need to be patched. The patch is maintained for you "
    "automatically if the game is updated or otherwise modified, each time you "
    "manage the game. Would you like to continue?"
)
UNDERMOD_PROMPT_TITLE = "Action required"
UNDERMOD_PROMPT_TEXT = (
    "Most UnderMine mods require UnderMod (a modding API for UnderMine) to run. "
    "UnderMod can be downloaded from Nexus Mods."
)


class SetupState(Enum):
    AWAITING_CONSENT = "awaiting_consent"
    PATCHING = "patching"
    CHECKING_COMPANION_MOD = "checking_companion_mod"
    DONE = "done"
    CANCELED = "canceled"


class PatchConsent(Enum):
    CANCEL = "Cancel"
    ENABLE_MODS = "Enable Mods"


class UnderModChoice(Enum):
    OPT_OUT = "I Do Not Want To Install UnderMod"
    REMIND_LATER = "Remind Me Later"
    GET_UNDERMOD = "Get UnderMod"


def _ask(context: HostContext, choices: type[Enum], title: str, text: str):
    options = list(choices)
    index = context.show_choice_dialog(
        "question", title, text, [option.value for option in options]
    )
    return options[index]


class UnderMineGame:
    """Everything the host needs to know to manage UnderMine."""

    id = GAME_ID
    name = "UnderMine"
    logo = "gameart.png"
    required_files = ["UnderMine.exe", "UnderMine_Data/Managed/UnderMine.dll"]
    details = {"steamAppId": int(STEAM_APP_ID)}
    environment = {"SteamAPPId": STEAM_APP_ID}
    merge_mods = True
    requires_cleanup = True
    launcher = "steam"

    def __init__(self, context: HostContext, patcher_exe: str | Path | None = None):
        self.context = context
        self.patcher_exe = patcher_exe
        self.state: Optional[SetupState] = None

    # ── Host API ──────────────────────────────────────────────────────

    def query_path(self) -> Optional[str]:
        try:
            return str(self.context.find_game_install_path(STEAM_APP_ID))
        except GameNotFound as exc:
            _log.info("UnderMine not found: %s", exc)
            return None

    def executable(self) -> str:
        return EXECUTABLE

    def query_mod_path(self) -> str:
        return MODS_DIR

    def setup(self, discovery: DiscoveryResult):
        """Patch the game and offer UnderMod. Raises ``UserCanceled`` if the
        user refuses the patch."""
        game_path = Path(discovery.path)
        self.state = SetupState.AWAITING_CONSENT

        while self.state is not SetupState.DONE:
            if self.state is SetupState.AWAITING_CONSENT:
                self.state = self._await_consent(game_path)
            elif self.state is SetupState.PATCHING:
                self._patch(game_path)
                self.state = SetupState.CHECKING_COMPANION_MOD
            elif self.state is SetupState.CHECKING_COMPANION_MOD:
                self._check_undermod(game_path)
                self.state = SetupState.DONE
            elif self.state is SetupState.CANCELED:
                raise UserCanceled("Patching UnderMine was declined")

    def remove_patch(self, game_path: str | Path) -> bool:
        """Restore the unpatched assembly from the patcher's backup."""
        assembly = Path(game_path) / HOOK_ASSEMBLY
        if not backup_path_for(assembly).exists():
            _log.info("UnderMine is not patched, nothing to remove")
            return True
        success, output = run_patcher(
            self.patcher_exe, assembly, HOOK_ENTRYPOINT, remove=True
        )
        if not success:
            _log.error("Failed to remove the UnderMine patch: %s", output)
        return success

    # ── Setup steps ───────────────────────────────────────────────────

    def _await_consent(self, game_path: Path) -> SetupState:
        if backup_path_for(game_path / HOOK_ASSEMBLY).exists():
            # patched before, so consent was already given
            return SetupState.PATCHING

        choice = _ask(self.context, PatchConsent, PATCH_PROMPT_TITLE, PATCH_PROMPT_TEXT)
        if choice is PatchConsent.ENABLE_MODS:
            return SetupState.PATCHING
        return SetupState.CANCELED

    def _patch(self, game_path: Path):
        success, output = run_patcher(
            self.patcher_exe, game_path / HOOK_ASSEMBLY, HOOK_ENTRYPOINT
        )
        if not success:
            _log.error("Failed to patch UnderMine: %s", output)

    def _check_undermod(self, game_path: Path):
        if (game_path / UNDERMOD_DLL).exists():
            return
        opt_out_file = game_path / UNDERMOD_OPT_OUT_FILE
        if opt_out_file.exists():
            return

        choice = _ask(
            self.context, UnderModChoice, UNDERMOD_PROMPT_TITLE, UNDERMOD_PROMPT_TEXT
        )
        if choice is UnderModChoice.OPT_OUT:
            self._undermod_opt_out(opt_out_file)
        elif choice is UnderModChoice.GET_UNDERMOD:
            try:
                self.context.open_url(UNDERMOD_URL)
            except OSError as exc:
                _log.warning("Could not open %s: %s", UNDERMOD_URL, exc)

    @staticmethod
    def _undermod_opt_out(opt_out_file: Path):
        opt_out_file.write_text(OPT_OUT_TEXT, encoding="utf-8")
        _log.info("Recorded UnderMod opt-out in %s", opt_out_file)
