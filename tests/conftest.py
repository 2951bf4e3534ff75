"""
pytest configuration: a scripted host standing in for the real system.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pytest

from ubungpu.config import Settings
from ubungpu.install_log import InstallLog
from ubungpu.lib.command import NOT_FOUND, CmdResult, CommandRunner

NVIDIA_LSPCI = (
    "00:02.0 VGA compatible controller: Intel Corporation UHD Graphics 630\n"
    "01:00.0 VGA compatible controller: NVIDIA Corporation GA102 [GeForce RTX 3090] (rev a1)\n"
    "01:00.1 Audio device: NVIDIA Corporation GA102 High Definition Audio Controller (rev a1)\n"
)
AMD_LSPCI = (
    "00:00.0 Host bridge: Advanced Micro Devices, Inc. [AMD] Starship/Matisse Root Complex\n"
    "0b:00.0 VGA compatible controller: Advanced Micro Devices, Inc. [AMD/ATI] Navi 31 [Radeon RX 7900 XTX]\n"
)
PLAIN_LSPCI = "00:02.0 VGA compatible controller: Intel Corporation UHD Graphics 630\n"

Response = Union[CmdResult, Callable[[List[str]], CmdResult]]


def result(argv: Sequence[str], returncode: int = 0, stdout: str = "", stderr: str = "") -> CmdResult:
    return CmdResult(argv=list(argv), returncode=returncode, stdout=stdout, stderr=stderr)


class FakeRunner(CommandRunner):
    """Answers commands from a table keyed by argv prefix; anything else is 'not found'."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.inputs: Dict[Tuple[str, ...], Optional[str]] = {}
        self.responses: Dict[Tuple[str, ...], Response] = {}
        self.paths: Dict[str, str] = {}

    def on(self, *argv: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses[tuple(argv)] = result(argv, returncode, stdout, stderr)

    def on_call(self, *argv: str, fn: Callable[[List[str]], CmdResult]) -> None:
        self.responses[tuple(argv)] = fn

    def tool(self, *names: str) -> None:
        for name in names:
            self.paths[name] = f"/usr/bin/{name}"

    def ran(self, *argv: str) -> bool:
        return any(c[: len(argv)] == list(argv) for c in self.calls)

    def run(self, argv, *, env=None, input_text=None, capture=True) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        self.inputs[tuple(argv)] = input_text
        return self.dispatch(argv)

    def dispatch(self, argv: List[str]) -> CmdResult:
        for n in range(len(argv), 0, -1):
            resp = self.responses.get(tuple(argv[:n]))
            if resp is None:
                continue
            return resp(argv) if callable(resp) else resp
        return result(argv, NOT_FOUND, stderr=f"{argv[0]}: not found")

    def which(self, name: str) -> Optional[str]:
        return self.paths.get(name)


class FakeHost(FakeRunner):
    """FakeRunner plus dpkg/apt state: installs succeed unless listed as failing."""

    def __init__(
        self,
        lspci: str = "",
        *,
        installed: Iterable[str] = (),
        failing: Iterable[str] = (),
        provides: Optional[Dict[str, Tuple[str, ...]]] = None,
        update_ok: bool = True,
    ):
        super().__init__()
        self.installed = set(installed)
        self.failing = set(failing)
        self.provides = provides or {}
        self.update_ok = update_ok
        self.install_calls: List[str] = []
        self.on("lspci", stdout=lspci)

    def dispatch(self, argv: List[str]) -> CmdResult:
        if argv[0] == "dpkg-query":
            pkg = argv[-1]
            if pkg in self.installed:
                return result(argv, 0, stdout="install ok installed")
            return result(argv, 1, stderr=f"dpkg-query: no packages found matching {pkg}")

        if argv[:3] == ["apt-get", "install", "-y"]:
            pkg = argv[3]
            self.install_calls.append(pkg)
            if pkg in self.failing:
                return result(argv, 100, stderr=f"E: Unable to locate package {pkg}")
            self.installed.add(pkg)
            self.tool(*self.provides.get(pkg, ()))
            return result(argv, 0)

        if argv == ["apt-get", "update"]:
            return result(argv, 0 if self.update_ok else 100)

        if argv[:2] == ["apt-get", "upgrade"]:
            return result(argv, 0)

        return super().dispatch(argv)


@pytest.fixture
def settings(tmp_path):
    os_release = tmp_path / "os-release"
    os_release.write_text('NAME="Ubuntu"\nVERSION_ID="22.04"\n', encoding="utf-8")
    return Settings(
        log_dir=str(tmp_path / "log" / "ubungpu"),
        bin_dir=str(tmp_path / "bin"),
        os_release_path=str(os_release),
        pace_seconds=0.0,
        color=False,
        rocm_keyring_path=str(tmp_path / "keyrings" / "rocm.gpg"),
        rocm_list_path=str(tmp_path / "sources.list.d" / "rocm.list"),
        rocm_profile_path=str(tmp_path / "profile.d" / "rocm.sh"),
    )


@pytest.fixture
def install_log(settings):
    return InstallLog(settings.log_dir)


@pytest.fixture(autouse=True)
def _detach_ubungpu_handlers():
    yield
    root = logging.getLogger()
    for h in getattr(root, "_ubungpu_handlers", []):
        root.removeHandler(h)
    setattr(root, "_ubungpu_handlers", [])


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("UBUNGPU_CONFIG", "PERFORM_UPGRADE", "NO_COLOR", "SUDO_USER"):
        monkeypatch.delenv(var, raising=False)
