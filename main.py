#!/usr/bin/env python3
"""UnderMine Mod Manager - Entry Point"""

import argparse
import faulthandler
import logging
import os
import sys
import tempfile
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

from errors import ModManagerError, UserCanceled

LOGGER_NAME = "undermine_modmanager"
FILE_HANDLER_NAME = "undermine_modmanager.file"
CONSOLE_HANDLER_NAME = "undermine_modmanager.console"


def _replace_handler(logger: logging.Logger, handler: logging.Handler, name: str):
    for old in logger.handlers[:]:
        if old.get_name() == name:
            logger.removeHandler(old)
            old.close()
    handler.set_name(name)
    logger.addHandler(handler)


def setup_logging(verbose: bool = False) -> tuple[logging.Logger, Path]:
    log_dir = Path(os.environ.get("APPDATA", "~")).expanduser() / "UnderMineModManager"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "undermine_modmanager.log"

    handler = RotatingFileHandler(
        log_file,
        maxBytes=1 * 1024 * 1024,  # 1 MB
        backupCount=2,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))

    # Library modules log under their own names; route them to the same file.
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    _replace_handler(root, handler, FILE_HANDLER_NAME)

    if verbose:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter("%(levelname)s - %(name)s - %(message)s"))
        _replace_handler(root, console, CONSOLE_HANDLER_NAME)

    return logging.getLogger(LOGGER_NAME), log_dir


def install_crash_handler(logger: logging.Logger, log_dir: Path):
    def handle_exception(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        logger.critical(
            "Unhandled exception:\n%s",
            "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
        )

    sys.excepthook = handle_exception

    # faulthandler can't use logging after a hard crash, so it gets its own file
    crash_file = log_dir / "crash.log"
    faulthandler.enable(open(crash_file, "w"), all_threads=True)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="UnderMine Mod Manager")
    parser.add_argument("--staging-dir")
    parser.add_argument("--game-path")
    parser.add_argument("--patcher")
    parser.add_argument("--downloads-dir")
    parser.add_argument("--settings-org", default="UnderMineModManager")
    parser.add_argument("--settings-app", default="UnderMineModManager")
    parser.add_argument("--no-persist-settings", action="store_true")
    parser.add_argument("--mock-patcher", action="store_true")
    parser.add_argument("--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("setup", help="Patch the game and check for UnderMod")
    sub.add_parser("unpatch", help="Restore the unpatched game assembly")
    sub.add_parser("scan", help="List mod archives in the downloads folder")
    inspect = sub.add_parser("inspect", help="Show the copy instructions for an archive")
    inspect.add_argument("archive")
    install = sub.add_parser("install", help="Stage an archive, optionally deploying it")
    install.add_argument("archive")
    install.add_argument("--deploy", action="store_true")
    return parser.parse_args(argv)


def build_manager(args: argparse.Namespace, logger: logging.Logger):
    from dialogs import QtChoiceDialog
    from extension import register
    from host import ExtensionRegistry
    from mod_manager import LocalHost, ModManager
    from settings import load_settings, open_store, save_settings

    store = open_store(args.settings_org, args.settings_app)
    settings = load_settings(store).with_overrides(
        staging_dir=args.staging_dir,
        game_path=args.game_path,
        patcher_exe=args.patcher,
        downloads_dir=args.downloads_dir,
    )
    if not args.no_persist_settings:
        save_settings(store, settings)

    if not settings.staging_dir:
        raise ModManagerError(
            "Staging directory not configured", "Pass --staging-dir once to store it"
        )

    host = LocalHost(QtChoiceDialog(), game_path=settings.game_path or None)
    registry = ExtensionRegistry()
    register(host, registry, patcher_exe=settings.patcher_exe or None)
    return ModManager(
        settings.staging_dir,
        host,
        registry,
        downloads_dir=settings.downloads_dir or None,
        log_callback=logger.info,
    )


def run(args: argparse.Namespace, logger: logging.Logger) -> int:
    manager = build_manager(args, logger)

    if args.command == "setup":
        manager.activate()
    elif args.command == "unpatch":
        manager.unpatch()
    elif args.command == "scan":
        for scan in manager.scan_archives():
            print(f"{scan.filepath.name}\t{scan.installer_id or '-'}")
    elif args.command == "inspect":
        with tempfile.TemporaryDirectory() as tmpdir:
            archive = Path(args.archive)
            dest = Path(tmpdir) / (archive.stem + ".installing")
            installer_id, instructions = manager.plan_install(archive, dest)
        print(f"installer: {installer_id}")
        for instr in instructions:
            print(f"{instr.source} -> {instr.destination}")
    elif args.command == "install":
        staged = manager.install_archive(args.archive)
        print(f"Staged {staged.name} at {staged.path} (mod type {staged.mod_type})")
        if args.deploy:
            manager.activate()
            manager.deploy(staged)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.mock_patcher:
        os.environ["UNDERMINE_MM_MOCK_PATCHER"] = "1"

    logger, log_dir = setup_logging(verbose=args.verbose)
    install_crash_handler(logger, log_dir)
    logger.info("Starting UnderMine Mod Manager")

    try:
        return run(args, logger)
    except UserCanceled as exc:
        logger.info("%s", exc)
        print(exc, file=sys.stderr)
        return 2
    except ModManagerError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
