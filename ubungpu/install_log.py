from __future__ import annotations

import os
import shutil
import time
from collections import deque
from pathlib import Path
from typing import List, Optional

from .pipeline import SetupError

DIR_MODE = 0o755
FILE_MODE = 0o644


class InstallLog:
    """Append-only text log under a per-tool directory.

    Persistence is best-effort: record() writes only when the file already
    exists and is writable, and never raises. Creating the store is the job of
    setup(), which is a fatal step of the build.
    """

    def __init__(self, log_dir: str, filename: str = "install.log"):
        self.log_dir = Path(log_dir)
        self.path = self.log_dir / filename

    def exists(self) -> bool:
        return self.path.is_file()

    def writable(self) -> bool:
        return self.exists() and os.access(self.path, os.W_OK)

    def setup(self) -> None:
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
            os.chmod(self.log_dir, DIR_MODE)
            os.chmod(self.path, FILE_MODE)
        except OSError as e:
            raise SetupError(f"Failed to initialize log store at {self.path}: {e}") from e

    def record(self, level: str, message: str) -> None:
        if not self.writable():
            return
        stamp = time.strftime("%Y-%m-%d %H:%M:%S")
        prefix = "" if level == "INFO" else f"{level}: "
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(f"[{stamp}] {prefix}{message}\n")
        except OSError:
            pass

    def read_all(self) -> Optional[str]:
        if not self.exists():
            return None
        return self.path.read_text(encoding="utf-8", errors="replace")

    def read_tail(self, n: int) -> Optional[List[str]]:
        if not self.exists():
            return None
        if n <= 0:
            return []
        with self.path.open("r", encoding="utf-8", errors="replace") as f:
            return [ln.rstrip("\n") for ln in deque(f, maxlen=n)]

    def purge(self) -> bool:
        """Remove the whole store. Returns False if there was nothing to remove."""
        if not self.log_dir.exists():
            return False
        shutil.rmtree(self.log_dir)
        return True
