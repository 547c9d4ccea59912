"""
UnderMine Mod Manager - Local host

Plays the host's part for the UnderMine extension when run on its own:
discovers the game, runs setup, reads archives, asks the registered installers
for copy instructions, stages the result and deploys it.
"""

from __future__ import annotations

import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

import py7zr
import rarfile

from archive_layout import GAME_ID, directory_entries, normalize_names
from errors import ArchiveError, GameNotFound, ModManagerError, NoInstallerError
from game_adapter import STEAM_APP_ID
from host import DiscoveryResult, ExtensionRegistry
from installers import CopyInstruction
from manifest_schema import INSTALLING_SUFFIX
from steam_locator import find_by_app_id

SUPPORTED_EXTENSIONS = {".zip", ".7z", ".rar"}
DEFAULT_MOD_TYPE = "default"


@dataclass
class ArchiveScan:
    """An archive in the downloads folder and the installer that claims it."""

    filepath: Path
    name: str
    installer_id: str | None = None


@dataclass
class StagedMod:
    """A mod unpacked into the staging folder."""

    name: str
    path: Path
    installer_id: str
    mod_type: str
    instructions: list[CopyInstruction] = field(default_factory=list)


class LocalHost:
    """HostContext backed by a prompt provider and the local Steam install."""

    def __init__(
        self,
        prompt,
        game_path: str | Path | None = None,
        steam_roots: Iterable[Path] | None = None,
    ):
        self._prompt = prompt
        self._game_path = Path(game_path) if game_path else None
        self._steam_roots = list(steam_roots) if steam_roots is not None else None
        self.discovered: dict[str, str] = {}

    def find_game_install_path(self, app_id: str) -> str:
        if self._game_path is not None:
            if not self._game_path.is_dir():
                raise GameNotFound(app_id)
            return str(self._game_path)
        return str(find_by_app_id(app_id, self._steam_roots))

    def show_choice_dialog(
        self, kind: str, title: str, text: str, options: list[str]
    ) -> int:
        return self._prompt.show_choice_dialog(kind, title, text, options)

    def open_url(self, url: str):
        self._prompt.open_url(url)

    def discovered_path(self, game_id: str) -> Optional[str]:
        return self.discovered.get(game_id)


class ModManager:
    """
    Local mod manager controller.

    Workflow:
        1. activate() to discover the game and run its setup
        2. scan_archives() / install_archive() to stage mods
        3. deploy() to copy a staged mod where the game loads it
    """

    def __init__(
        self,
        staging_dir: str | Path,
        host: LocalHost,
        registry: ExtensionRegistry,
        downloads_dir: str | Path | None = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self.staging_dir = Path(staging_dir)
        self.downloads_dir = Path(downloads_dir) if downloads_dir else None
        self.host = host
        self.registry = registry
        self._log_cb = log_callback or print

    @property
    def game(self):
        for game in self.registry.games:
            if game.id == GAME_ID:
                return game
        raise LookupError(f"No game registered with id {GAME_ID!r}")

    # ── Logging ───────────────────────────────────────────────────────

    def log(self, msg: str):
        self._log_cb(msg)

    # ── Discovery / Setup ─────────────────────────────────────────────

    def discover(self) -> Path:
        path = self.host.discovered_path(GAME_ID) or self.game.query_path()
        if path is None:
            raise GameNotFound(STEAM_APP_ID)
        self.host.discovered[GAME_ID] = str(path)
        return Path(path)

    def activate(self) -> Path:
        """Discover the game and run its setup. Propagates UserCanceled."""
        game_path = self.discover()
        self.log(f"Activating {self.game.name} at {game_path}")
        self.game.setup(DiscoveryResult(path=game_path))
        self.log("Setup complete")
        return game_path

    def unpatch(self) -> Path:
        """Restore the game's original assembly."""
        game_path = self.discover()
        if not self.game.remove_patch(game_path):
            raise ModManagerError(
                "Could not remove the UnderMine patch",
                "Check the patcher output in the log file",
            )
        self.log("Patch removed")
        return game_path

    # ── Archive Content Listing ───────────────────────────────────────

    @staticmethod
    def list_archive_entries(filepath: Path) -> list[str]:
        """List an archive with ``/`` separators, directories included."""
        ext = filepath.suffix.lower()
        try:
            if ext == ".zip":
                with zipfile.ZipFile(filepath, "r") as zf:
                    names = zf.namelist()
            elif ext == ".7z":
                with py7zr.SevenZipFile(filepath, "r") as sz:
                    names = [
                        info.filename + ("/" if info.is_directory else "")
                        for info in sz.list()
                    ]
            elif ext == ".rar":
                with rarfile.RarFile(filepath, "r") as rf:
                    names = [
                        info.filename + ("/" if info.is_dir() else "")
                        for info in rf.infolist()
                    ]
            else:
                raise ArchiveError(f"Unsupported archive format: {ext}")
        except (OSError, zipfile.BadZipFile, py7zr.Bad7zFile, rarfile.Error) as exc:
            raise ArchiveError(f"Could not read {filepath.name}: {exc}") from exc

        names = normalize_names(names)
        # normalizing may double a trailing separator
        names = [n[:-1] if n.endswith("//") else n for n in names]
        listed = set(names)
        return names + [d for d in directory_entries(names) if d not in listed]

    @staticmethod
    def _extract_archive(filepath: Path, dest: Path):
        ext = filepath.suffix.lower()
        try:
            if ext == ".zip":
                with zipfile.ZipFile(filepath, "r") as zf:
                    zf.extractall(dest)
            elif ext == ".7z":
                with py7zr.SevenZipFile(filepath, "r") as sz:
                    sz.extractall(dest)
            elif ext == ".rar":
                with rarfile.RarFile(filepath, "r") as rf:
                    rf.extractall(dest)
            else:
                raise ArchiveError(f"Unsupported archive format: {ext}")
        except (OSError, zipfile.BadZipFile, py7zr.Bad7zFile, rarfile.Error) as exc:
            raise ArchiveError(f"Extraction of {filepath.name} failed: {exc}") from exc

    # ── Archive Scanning ──────────────────────────────────────────────

    def scan_archives(self) -> list[ArchiveScan]:
        scans: list[ArchiveScan] = []
        if self.downloads_dir is None or not self.downloads_dir.exists():
            self.log(f"Downloads directory does not exist: {self.downloads_dir}")
            return scans

        for f in sorted(self.downloads_dir.iterdir()):
            if not f.is_file() or f.suffix.lower() not in SUPPORTED_EXTENSIONS:
                continue
            try:
                files = self.list_archive_entries(f)
            except ArchiveError as e:
                self.log(f"  Error scanning {f.name}: {e}")
                continue
            entry = self.registry.find_installer(files, GAME_ID)
            scan = ArchiveScan(
                filepath=f, name=f.stem, installer_id=entry.id if entry else None
            )
            scans.append(scan)
            if entry is None:
                self.log(f"  {f.name}: not an UnderMine mod, skipping")
            else:
                self.log(f"  {f.name}: {entry.id}")

        self.log(f"Scan complete: {len(scans)} archive(s)")
        return scans

    # ── Install ───────────────────────────────────────────────────────

    def plan_install(
        self, filepath: Path, destination: Path
    ) -> tuple[str, list[CopyInstruction]]:
        """Extract ``filepath`` into ``destination`` and return the id of the
        installer that claimed it with its instructions."""
        files = self.list_archive_entries(filepath)
        entry = self.registry.find_installer(files, GAME_ID)
        if entry is None:
            raise NoInstallerError(
                f"{filepath.name} is not a supported UnderMine mod archive",
                "Mods need a mod.json or an UnderMine_Data folder",
            )

        if destination.exists():
            shutil.rmtree(destination)
        destination.mkdir(parents=True)
        self._extract_archive(filepath, destination)

        def progress(fraction: float):
            self.log(f"  {entry.id}: {fraction:.0%}")

        result = entry.install(files, destination, GAME_ID, progress)
        return entry.id, result.instructions

    def install_archive(self, filepath: str | Path) -> StagedMod:
        filepath = Path(filepath)
        name = filepath.stem
        self.log(f"Installing {filepath.name}...")

        work_dir = self.staging_dir / (name + INSTALLING_SUFFIX)
        mod_dir = self.staging_dir / name
        try:
            installer_id, instructions = self.plan_install(filepath, work_dir)

            if mod_dir.exists():
                shutil.rmtree(mod_dir)
            mod_dir.mkdir(parents=True)
            for instr in instructions:
                src = work_dir / instr.source
                dst = mod_dir / instr.destination
                if not src.is_file():
                    self.log(f"  WARNING: Expected file not found after extraction: {src}")
                    continue
                dst.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dst)
                self.log(f"  Copied: {instr.destination}")
        finally:
            if work_dir.exists():
                shutil.rmtree(work_dir)

        mod_type = self.registry.find_mod_type(GAME_ID, instructions)
        staged = StagedMod(
            name=name,
            path=mod_dir,
            installer_id=installer_id,
            mod_type=mod_type.id if mod_type else DEFAULT_MOD_TYPE,
            instructions=instructions,
        )
        self.log(
            f"  Staged '{name}' ({len(instructions)} file(s), mod type {staged.mod_type})"
        )
        return staged

    # ── Deploy ────────────────────────────────────────────────────────

    def deployment_target(self, staged: StagedMod) -> Path:
        for mod_type in self.registry.mod_types:
            if mod_type.id == staged.mod_type:
                root = mod_type.get_root_path()
                if root is None:
                    raise GameNotFound(STEAM_APP_ID)
                return Path(root)
        return self.discover() / self.game.query_mod_path()

    def deploy(self, staged: StagedMod) -> list[Path]:
        target = self.deployment_target(staged)
        deployed = []
        for src in sorted(staged.path.rglob("*")):
            if not src.is_file():
                continue
            dst = target / src.relative_to(staged.path)
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst)
            deployed.append(dst)
        self.log(f"Deployed '{staged.name}' to {target} ({len(deployed)} file(s))")
        return deployed
