from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

# Shell convention for "command not found".
NOT_FOUND = 127


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    input_text: str | None = None,
    capture: bool = True,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command (DEBUG).
    - capture=False lets the child write straight to the terminal (apt progress).
    - A missing executable is reported as returncode 127 rather than raised.
    """

    argv_list = list(argv)
    logger.debug("CMD %s", _fmt_argv(argv_list))

    pipe = subprocess.PIPE if capture else None
    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=pipe,
            stderr=pipe,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError as e:
        result = CmdResult(argv=argv_list, returncode=NOT_FOUND, stdout="", stderr=str(e))
    else:
        result = CmdResult(
            argv=argv_list,
            returncode=p.returncode,
            stdout=p.stdout or "",
            stderr=p.stderr or "",
        )

    if result.stdout:
        logger.debug("STDOUT %s", result.stdout.strip())
    if result.stderr:
        logger.debug("STDERR %s", result.stderr.strip())

    if check and not result.ok:
        raise RuntimeError(f"Command failed ({result.returncode}): {_fmt_argv(argv_list)}\n{result.stderr}")

    return result


class CommandRunner:
    """The only way the rest of the package touches processes.

    Vendor setups and detectors take a runner so a scripted one can stand in
    for the host in tests.
    """

    def run(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
        capture: bool = True,
    ) -> CmdResult:
        return run_cmd(argv, check=False, env=env, input_text=input_text, capture=capture)

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def succeeds(self, argv: Sequence[str]) -> bool:
        return self.run(argv).ok
