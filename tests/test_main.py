"""
Tests for the command-line entry point.
"""

import logging

from main import FILE_HANDLER_NAME, parse_args, setup_logging


def test_parse_install_command():
    args = parse_args(["--staging-dir", "/mods", "install", "Cool.zip", "--deploy"])
    assert args.command == "install"
    assert args.archive == "Cool.zip"
    assert args.deploy
    assert args.staging_dir == "/mods"
    assert args.settings_org == "UnderMineModManager"


def test_parse_setup_command():
    args = parse_args(["--mock-patcher", "setup"])
    assert args.command == "setup"
    assert args.mock_patcher


def test_setup_logging_writes_to_appdata(tmp_path, monkeypatch):
    monkeypatch.setenv("APPDATA", str(tmp_path))
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        logger, log_dir = setup_logging()
        logger.info("hello")
        for handler in root.handlers:
            handler.flush()
        assert log_dir == tmp_path / "UnderMineModManager"
        assert "hello" in (log_dir / "undermine_modmanager.log").read_text(encoding="utf-8")
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)


def test_setup_logging_twice_keeps_one_file_handler(tmp_path, monkeypatch):
    monkeypatch.setenv("APPDATA", str(tmp_path))
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging()
        setup_logging()
        names = [h.get_name() for h in root.handlers if h not in before]
        assert names == [FILE_HANDLER_NAME]
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)


def test_parse_unpatch_command():
    assert parse_args(["unpatch"]).command == "unpatch"
