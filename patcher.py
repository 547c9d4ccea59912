"""
Runs the external assembly patcher that lets UnderMine load mod code.

The patcher injects a call to the mod loader at ``HOOK_ENTRYPOINT`` inside
``UnderMine.dll`` and leaves a backup of the original assembly next to it.
That backup doubles as the proof that the user agreed to patching once.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path

_log = logging.getLogger(__name__)

HOOK_ASSEMBLY = Path("UnderMine_Data") / "Managed" / "UnderMine.dll"
HOOK_ENTRYPOINT = "Thor.Game::Awake"
BACKUP_SUFFIX = "_vortex_assembly_backup"
PATCHER_TIMEOUT = 300
MOCK_ENV_VAR = "UNDERMINE_MM_MOCK_PATCHER"


def backup_path_for(assembly_path: Path) -> Path:
    return assembly_path.with_name(assembly_path.name + BACKUP_SUFFIX)


def _mock_patch(assembly_path: Path, remove: bool) -> tuple[bool, str]:
    backup = backup_path_for(assembly_path)
    if remove:
        if backup.exists():
            shutil.copy2(backup, assembly_path)
            backup.unlink()
        return True, "mock patcher removed patch"
    if not assembly_path.exists():
        return False, f"assembly not found at {assembly_path}"
    if not backup.exists():
        shutil.copy2(assembly_path, backup)
        _log.info("Created mock backup: %s", backup.name)
    return True, "mock patcher"


def run_patcher(
    patcher_exe: str | Path | None,
    assembly_path: str | Path,
    entry_point: str = HOOK_ENTRYPOINT,
    *,
    remove: bool = False,
) -> tuple[bool, str]:
    """Patch (or, with ``remove``, restore) ``assembly_path``.

    Returns ``(success, output)``; failures are reported, never raised.
    """
    assembly_path = Path(assembly_path)

    if os.environ.get(MOCK_ENV_VAR) == "1":
        _log.info("Running mock patcher")
        return _mock_patch(assembly_path, remove)

    if not patcher_exe:
        return False, "no patcher executable configured"
    patcher_exe = Path(patcher_exe)
    if not patcher_exe.exists():
        return False, f"patcher not found at {patcher_exe}"

    cmd = [str(patcher_exe), "--assembly", str(assembly_path), "--entry", entry_point]
    if remove:
        cmd.append("--remove")

    _log.info("Running patcher: %s", " ".join(cmd))
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(assembly_path.parent),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
        stdout, _ = proc.communicate(timeout=PATCHER_TIMEOUT)
    except subprocess.TimeoutExpired:
        proc.kill()
        return False, f"patcher timed out after {PATCHER_TIMEOUT} seconds"
    except OSError as exc:
        return False, f"Error running patcher: {exc}"

    _log.info("  patcher exited with code %d", proc.returncode)
    if stdout:
        for line in stdout.strip().split("\n")[-10:]:
            _log.info("  [patcher] %s", line)
    return proc.returncode == 0, stdout or ""
