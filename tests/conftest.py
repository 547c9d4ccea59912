"""
Shared fixtures and helpers for the UnderMine Mod Manager test suite.
"""

import zipfile
from pathlib import Path

import pytest

from errors import GameNotFound
from host import ExtensionRegistry


def make_zip(path: Path, members: dict[str, str | bytes]) -> Path:
    """Write a zip with the given {archive_path: content} members."""
    with zipfile.ZipFile(path, "w") as zf:
        for member, data in members.items():
            zf.writestr(member, data)
    return path


class FakeHost:
    """HostContext that answers prompts from a script and records them."""

    def __init__(self, game_path: Path | None = None, answers: list[str] | None = None):
        self.game_path = game_path
        self.answers = list(answers or [])
        self.prompts: list[tuple[str, list[str]]] = []
        self.opened_urls: list[str] = []
        self.discovered: dict[str, str] = {}

    def find_game_install_path(self, app_id: str) -> str:
        if self.game_path is None:
            raise GameNotFound(app_id)
        return str(self.game_path)

    def show_choice_dialog(self, kind, title, text, options):
        self.prompts.append((title, options))
        answer = self.answers.pop(0)
        return options.index(answer)

    def open_url(self, url: str):
        self.opened_urls.append(url)

    def discovered_path(self, game_id: str):
        return self.discovered.get(game_id)


@pytest.fixture
def game_dir(tmp_path):
    """A minimal UnderMine install."""
    game = tmp_path / "UnderMine"
    managed = game / "UnderMine_Data" / "Managed"
    managed.mkdir(parents=True)
    (game / "UnderMine.exe").write_bytes(b"exe")
    (managed / "UnderMine.dll").write_bytes(b"original assembly")
    return game


@pytest.fixture
def staging_dir(tmp_path):
    staging = tmp_path / "staging"
    staging.mkdir()
    return staging


@pytest.fixture
def registry():
    return ExtensionRegistry()


@pytest.fixture
def mock_patcher(monkeypatch):
    """Make run_patcher succeed without an external executable."""
    monkeypatch.setenv("UNDERMINE_MM_MOCK_PATCHER", "1")
