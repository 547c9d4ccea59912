"""
Tests for the UnderMine game adapter and its setup flow.
"""

from unittest.mock import patch

import pytest

from errors import UserCanceled
from game_adapter import (
    PATCH_PROMPT_TITLE,
    UNDERMOD_DLL,
    UNDERMOD_OPT_OUT_FILE,
    UNDERMOD_PROMPT_TITLE,
    UNDERMOD_URL,
    SetupState,
    UnderMineGame,
)
from host import DiscoveryResult
from patcher import HOOK_ASSEMBLY, backup_path_for
from tests.conftest import FakeHost


def prompt_titles(host):
    return [title for title, _ in host.prompts]


def install_undermod(game_dir):
    dll = game_dir / UNDERMOD_DLL
    dll.parent.mkdir(parents=True)
    dll.write_bytes(b"undermod")


# ── host API ─────────────────────────────────────────────────────────────────

def test_static_game_info():
    game = UnderMineGame(FakeHost())
    assert game.executable() == "UnderMine.exe"
    assert game.query_mod_path() == "Mods"
    assert game.id == "undermine"
    assert game.environment == {"SteamAPPId": "656350"}


def test_query_path(game_dir):
    assert UnderMineGame(FakeHost(game_path=game_dir)).query_path() == str(game_dir)


def test_query_path_not_installed():
    assert UnderMineGame(FakeHost()).query_path() is None


# ── setup ────────────────────────────────────────────────────────────────────

def test_first_setup_asks_for_consent_and_patches(game_dir, mock_patcher):
    install_undermod(game_dir)
    host = FakeHost(answers=["Enable Mods"])
    game = UnderMineGame(host)

    game.setup(DiscoveryResult(path=game_dir))

    assert prompt_titles(host) == [PATCH_PROMPT_TITLE]
    assert backup_path_for(game_dir / HOOK_ASSEMBLY).exists()
    assert game.state is SetupState.DONE


def test_cancel_raises_and_does_not_patch(game_dir):
    host = FakeHost(answers=["Cancel"])
    game = UnderMineGame(host)

    with patch("game_adapter.run_patcher") as run:
        with pytest.raises(UserCanceled):
            game.setup(DiscoveryResult(path=game_dir))

    run.assert_not_called()
    assert game.state is SetupState.CANCELED


def test_patched_game_skips_consent(game_dir):
    install_undermod(game_dir)
    backup_path_for(game_dir / HOOK_ASSEMBLY).write_bytes(b"backup")
    host = FakeHost()

    with patch("game_adapter.run_patcher", return_value=(True, "ok")) as run:
        UnderMineGame(host, patcher_exe="patcher.exe").setup(
            DiscoveryResult(path=game_dir)
        )

    assert host.prompts == []
    run.assert_called_once()
    assert run.call_args.args[0] == "patcher.exe"
    assert run.call_args.args[1] == game_dir / HOOK_ASSEMBLY


def test_setup_is_repeatable(game_dir, mock_patcher):
    install_undermod(game_dir)
    host = FakeHost(answers=["Enable Mods"])
    game = UnderMineGame(host)

    game.setup(DiscoveryResult(path=game_dir))
    game.setup(DiscoveryResult(path=game_dir))

    assert prompt_titles(host) == [PATCH_PROMPT_TITLE]


def test_patch_failure_does_not_fail_setup(game_dir):
    install_undermod(game_dir)
    host = FakeHost(answers=["Enable Mods"])

    with patch("game_adapter.run_patcher", return_value=(False, "boom")):
        UnderMineGame(host).setup(DiscoveryResult(path=game_dir))


def test_undermod_opt_out_is_remembered(game_dir, mock_patcher):
    host = FakeHost(answers=["Enable Mods", "I Do Not Want To Install UnderMod"])
    game = UnderMineGame(host)

    game.setup(DiscoveryResult(path=game_dir))
    assert (game_dir / UNDERMOD_OPT_OUT_FILE).read_text(encoding="utf-8")

    game.setup(DiscoveryResult(path=game_dir))
    assert prompt_titles(host) == [PATCH_PROMPT_TITLE, UNDERMOD_PROMPT_TITLE]


def test_remind_me_later_asks_again(game_dir, mock_patcher):
    host = FakeHost(answers=["Enable Mods", "Remind Me Later", "Remind Me Later"])
    game = UnderMineGame(host)

    game.setup(DiscoveryResult(path=game_dir))
    game.setup(DiscoveryResult(path=game_dir))

    assert prompt_titles(host) == [
        PATCH_PROMPT_TITLE,
        UNDERMOD_PROMPT_TITLE,
        UNDERMOD_PROMPT_TITLE,
    ]
    assert not (game_dir / UNDERMOD_OPT_OUT_FILE).exists()


def test_get_undermod_opens_download_page(game_dir, mock_patcher):
    host = FakeHost(answers=["Enable Mods", "Get UnderMod"])
    UnderMineGame(host).setup(DiscoveryResult(path=game_dir))
    assert host.opened_urls == [UNDERMOD_URL]


def test_get_undermod_ignores_browser_failure(game_dir, mock_patcher):
    host = FakeHost(answers=["Enable Mods", "Get UnderMod"])

    def refuse(url):
        raise OSError("no browser")

    host.open_url = refuse
    UnderMineGame(host).setup(DiscoveryResult(path=game_dir))


def test_undermod_prompt_offers_three_choices(game_dir, mock_patcher):
    host = FakeHost(answers=["Enable Mods", "Remind Me Later"])
    UnderMineGame(host).setup(DiscoveryResult(path=game_dir))
    assert host.prompts[1][1] == [
        "I Do Not Want To Install UnderMod",
        "Remind Me Later",
        "Get UnderMod",
    ]


# ── remove patch ─────────────────────────────────────────────────────────────

def test_remove_patch_restores_assembly(game_dir, mock_patcher):
    install_undermod(game_dir)
    game = UnderMineGame(FakeHost(answers=["Enable Mods"]))
    game.setup(DiscoveryResult(path=game_dir))
    (game_dir / HOOK_ASSEMBLY).write_bytes(b"patched assembly")

    assert game.remove_patch(game_dir)
    assert (game_dir / HOOK_ASSEMBLY).read_bytes() == b"original assembly"
    assert not backup_path_for(game_dir / HOOK_ASSEMBLY).exists()


def test_remove_patch_passes_remove_flag(game_dir):
    backup_path_for(game_dir / HOOK_ASSEMBLY).write_bytes(b"backup")
    game = UnderMineGame(FakeHost(), patcher_exe="patcher.exe")

    with patch("game_adapter.run_patcher", return_value=(False, "boom")) as run:
        assert not game.remove_patch(game_dir)

    assert run.call_args.kwargs == {"remove": True}


def test_remove_patch_on_unpatched_game(game_dir):
    with patch("game_adapter.run_patcher") as run:
        assert UnderMineGame(FakeHost()).remove_patch(game_dir)
    run.assert_not_called()
