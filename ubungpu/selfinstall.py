from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional, TextIO

from .config import Settings
from .install_log import DIR_MODE, InstallLog
from .pipeline import SetupError

BIN_MODE = 0o755


LAUNCHER = "#!{python}\nfrom ubungpu.main import entrypoint\n\nraise SystemExit(entrypoint())\n"


def _source_script(settings: Settings) -> Path:
    return Path(settings.script_path or sys.argv[0]).resolve()


def _script_text(source: Path) -> str:
    """The program to install: the entry script itself, or a launcher for `python -m`."""
    text = source.read_text(encoding="utf-8")
    if source.name == "__main__.py" or not text.startswith("#!"):
        return LAUNCHER.format(python=sys.executable)
    return text


def install_self(settings: Settings, *, out: Optional[TextIO] = None) -> Path:
    """Copy the running entry script to the system bin dir and create the log dir.

    The new binary is staged next to the target and renamed over it, so
    reinstalling from the installed path never loses the original.
    """

    p = settings.palette
    target = Path(settings.installed_binary)
    staged = target.with_name(f".{target.name}.new")
    print(p.paint(f"Installing {settings.name} v{settings.version}...", "green"), file=out)

    try:
        staged.write_text(_script_text(_source_script(settings)), encoding="utf-8")
    except OSError as e:
        staged.unlink(missing_ok=True)
        raise SetupError(f"Failed to copy script to {settings.bin_dir}: {e}") from e

    try:
        os.chmod(staged, BIN_MODE)
        os.replace(staged, target)
    except OSError as e:
        staged.unlink(missing_ok=True)
        raise SetupError(f"Failed to set script permissions: {e}") from e

    log_dir = Path(settings.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(log_dir, DIR_MODE)
    except OSError as e:
        raise SetupError(f"Failed to create log directory {log_dir}: {e}") from e

    print(file=out)
    print(p.paint(f"{settings.name} v{settings.version} has been installed successfully.", "purple"), file=out)
    print(f"\nTo see available commands, run: {p.paint(f'{settings.name} help', 'blue')}", file=out)
    return target


def delete_logs(settings: Settings, install_log: InstallLog, *, out: Optional[TextIO] = None) -> bool:
    p = settings.palette
    print(p.paint("Deleting logs...", "yellow"), file=out)
    try:
        removed = install_log.purge()
    except OSError as e:
        raise SetupError(f"Failed to delete log directory: {install_log.log_dir}: {e}") from e

    if removed:
        print(p.paint(f"Successfully deleted log directory: {install_log.log_dir}", "green"), file=out)
    else:
        print(p.paint(f"Log directory does not exist: {install_log.log_dir}", "yellow"), file=out)
    return removed


def uninstall_self(settings: Settings, install_log: InstallLog, *, out: Optional[TextIO] = None) -> None:
    p = settings.palette
    print(p.paint(f"Uninstalling {settings.name}...", "green"), file=out)

    target = Path(settings.installed_binary)
    try:
        target.unlink(missing_ok=True)
    except OSError as e:
        raise SetupError(f"Failed to remove script from {settings.bin_dir}: {e}") from e

    delete_logs(settings, install_log, out=out)
    print(p.paint("Uninstallation completed successfully.", "green"), file=out)
