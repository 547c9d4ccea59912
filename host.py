"""
Contract between the game extension and the mod-management host.

The extension never reaches for global state: whatever it needs from the host
comes in through a ``HostContext``, and everything it offers is handed to an
``ExtensionRegistry``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

if TYPE_CHECKING:
    from installers import CopyInstruction, InstallResult, SupportedResult

_log = logging.getLogger(__name__)

DialogKind = str  # "question", "info", "error"

TestFunc = Callable[[list[str], str], "SupportedResult"]
InstallFunc = Callable[..., "InstallResult"]


@dataclass(frozen=True)
class DiscoveryResult:
    """Where the host found a game."""

    path: Path


class HostContext(Protocol):
    def find_game_install_path(self, app_id: str) -> str:
        """Return the install folder of a store app; raise GameNotFound otherwise."""
        ...

    def show_choice_dialog(
        self, kind: DialogKind, title: str, text: str, options: list[str]
    ) -> int:
        """Block until the user picks one of ``options``; return its index."""
        ...

    def open_url(self, url: str) -> None:
        ...

    def discovered_path(self, game_id: str) -> Optional[str]:
        ...


@dataclass
class InstallerEntry:
    id: str
    priority: int
    test: TestFunc
    install: InstallFunc


@dataclass
class ModTypeEntry:
    id: str
    priority: int
    is_applicable: Callable[[str], bool]
    get_root_path: Callable[[], Optional[str]]
    classify: Callable[[list["CopyInstruction"]], bool]


@dataclass
class ExtensionRegistry:
    """Everything an extension registered, in registration order."""

    games: list[Any] = field(default_factory=list)
    installers: list[InstallerEntry] = field(default_factory=list)
    mod_types: list[ModTypeEntry] = field(default_factory=list)

    def register_game(self, game: Any):
        self.games.append(game)

    def register_installer(
        self, installer_id: str, priority: int, test: TestFunc, install: InstallFunc
    ):
        self.installers.append(InstallerEntry(installer_id, priority, test, install))

    def register_mod_type(
        self,
        mod_type_id: str,
        priority: int,
        is_applicable: Callable[[str], bool],
        get_root_path: Callable[[], Optional[str]],
        classify: Callable[[list["CopyInstruction"]], bool],
    ):
        self.mod_types.append(
            ModTypeEntry(mod_type_id, priority, is_applicable, get_root_path, classify)
        )

    # Lower priority values are tried first; ties keep registration order.

    def find_installer(self, files: list[str], game_id: str) -> Optional[InstallerEntry]:
        for entry in sorted(self.installers, key=lambda e: e.priority):
            if entry.test(files, game_id).supported:
                _log.debug("Installer %s accepts the archive", entry.id)
                return entry
        return None

    def find_mod_type(
        self, game_id: str, instructions: list["CopyInstruction"]
    ) -> Optional[ModTypeEntry]:
        for entry in sorted(self.mod_types, key=lambda e: e.priority):
            if entry.is_applicable(game_id) and entry.classify(instructions):
                return entry
        return None
