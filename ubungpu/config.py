from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

DEFAULT_CONFIG_PATH = "/etc/ubungpu/config.yaml"


@dataclass(frozen=True)
class Palette:
    red: str = "\033[0;31m"
    green: str = "\033[0;32m"
    yellow: str = "\033[1;33m"
    blue: str = "\033[0;34m"
    purple: str = "\033[0;35m"
    reset: str = "\033[0m"

    @classmethod
    def plain(cls) -> "Palette":
        return cls(red="", green="", yellow="", blue="", purple="", reset="")

    def paint(self, text: str, color: str) -> str:
        return f"{getattr(self, color)}{text}{self.reset}"


@dataclass(frozen=True)
class Settings:
    name: str = "ubungpu"
    version: str = "0.2.0"
    repository: str = "https://github.com/mik-tf/ubungpu"

    log_dir: str = "/var/log/ubungpu"
    bin_dir: str = "/usr/local/bin"
    script_path: Optional[str] = None
    os_release_path: str = "/etc/os-release"

    perform_upgrade: bool = False
    pace_seconds: float = 1.0
    color: bool = True

    common_packages: Tuple[str, ...] = (
        "wget",
        "curl",
        "pciutils",
        "build-essential",
        "software-properties-common",
    )

    # ROCm
    rocm_key_url: str = "https://repo.radeon.com/rocm/rocm.gpg.key"
    rocm_repo_base: str = "https://repo.radeon.com/rocm/apt"
    rocm_keyring_path: str = "/etc/apt/keyrings/rocm.gpg"
    rocm_list_path: str = "/etc/apt/sources.list.d/rocm.list"
    rocm_profile_path: str = "/etc/profile.d/rocm.sh"
    rocm_channels: Mapping[str, str] = field(
        default_factory=lambda: {"20.04": "5.7", "22.04": "5.7"}
    )
    rocm_fallback_channel: str = "5.7"
    device_groups: Tuple[str, ...] = ("video", "render")

    @property
    def install_log(self) -> str:
        return str(Path(self.log_dir) / "install.log")

    @property
    def installed_binary(self) -> str:
        return str(Path(self.bin_dir) / self.name)

    @property
    def palette(self) -> Palette:
        return Palette() if self.color else Palette.plain()


_TUPLE_FIELDS = {"common_packages", "device_groups"}


def _coerce(raw: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    out: Dict[str, Any] = {}
    for key, value in raw.items():
        if key in _TUPLE_FIELDS:
            if not isinstance(value, list):
                raise ValueError(f"{key} must be a list")
            out[key] = tuple(str(v).strip() for v in value if str(v).strip())
        elif key == "rocm_channels":
            if not isinstance(value, dict):
                raise ValueError("rocm_channels must be a mapping of release -> channel")
            out[key] = {str(k): str(v) for k, v in value.items()}
        elif key == "pace_seconds":
            out[key] = float(value)
        elif key in {"perform_upgrade", "color"}:
            # YAML booleans only; bool("false") is True
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be true or false")
            out[key] = value
        elif key == "script_path":
            out[key] = None if value is None else str(value)
        else:
            out[key] = str(value)
    return out


def load_yaml_config(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("PyYAML is required to read the ubungpu config file") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")
    return raw


def load_settings(
    config_path: Optional[str] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> Settings:
    """Build the run's Settings once: defaults < YAML file < environment < overrides.

    An explicit config_path must exist; the implicit locations
    ($UBUNGPU_CONFIG, /etc/ubungpu/config.yaml) are only read when present.
    """

    env = os.environ if environ is None else environ
    settings = Settings()

    path = config_path or env.get("UBUNGPU_CONFIG")
    if path:
        settings = replace(settings, **_coerce(load_yaml_config(path)))
    elif Path(DEFAULT_CONFIG_PATH).exists():
        settings = replace(settings, **_coerce(load_yaml_config(DEFAULT_CONFIG_PATH)))

    if str(env.get("PERFORM_UPGRADE", "")).lower() == "true":
        settings = replace(settings, perform_upgrade=True)
    if env.get("NO_COLOR"):
        settings = replace(settings, color=False)

    if overrides:
        settings = replace(settings, **overrides)
    return settings
