from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Mapping, Optional

from .command import CommandRunner


def is_root() -> bool:
    return os.geteuid() == 0


def kernel_release() -> str:
    return platform.release()


def is_ubuntu(os_release_path: str = "/etc/os-release") -> bool:
    try:
        return "Ubuntu" in Path(os_release_path).read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return False


def distro_release(runner: CommandRunner) -> str:
    """Release number as reported by lsb_release (e.g. '22.04'), or '' if unknown."""
    r = runner.run(["lsb_release", "-rs"])
    return r.stdout.strip() if r.ok else ""


def invoking_user(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """The non-root user behind sudo, if any."""
    env = os.environ if environ is None else environ
    user = (env.get("SUDO_USER") or "").strip()
    if not user or user == "root":
        return None
    return user
