"""
Exceptions raised by the UnderMine mod manager.

Negative archive classification is not an error: the installer test functions
simply report ``supported=False`` and the host moves on to the next installer.
"""

from __future__ import annotations


class ModManagerError(Exception):
    """Base exception for all mod manager errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class UserCanceled(ModManagerError):
    """The user declined an operation that needs their consent."""

    def __init__(self, message: str = "Canceled by user") -> None:
        super().__init__(message)


class DataInvalid(ModManagerError):
    """Data was readable but lacks a required value."""


class ManifestParseError(ModManagerError):
    """A mod.json file could not be read or decoded."""


class GameNotFound(ModManagerError):
    """The game is not installed in any known store library."""

    def __init__(self, app_id: str) -> None:
        super().__init__(
            f"Steam app {app_id} is not installed",
            "Install the game through Steam or pass --game-path",
        )
        self.app_id = app_id


class ArchiveError(ModManagerError):
    """An archive could not be listed or extracted."""


class NoInstallerError(ModManagerError):
    """No registered installer accepts an archive."""
