import pytest

from ubungpu.config import Palette, Settings, load_settings


def test_defaults():
    s = Settings()
    assert s.name == "ubungpu"
    assert s.version == "0.2.0"
    assert s.install_log == "/var/log/ubungpu/install.log"
    assert s.installed_binary == "/usr/local/bin/ubungpu"
    assert s.rocm_channels["22.04"] == "5.7"
    assert s.perform_upgrade is False


def test_yaml_overlay(tmp_path):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "log_dir: /tmp/ubungpu-logs\n"
        "perform_upgrade: true\n"
        "pace_seconds: 0\n"
        "device_groups: [video]\n"
        "rocm_channels:\n"
        "  '24.04': '6.1'\n",
        encoding="utf-8",
    )

    s = load_settings(str(cfg), environ={})

    assert s.log_dir == "/tmp/ubungpu-logs"
    assert s.perform_upgrade is True
    assert s.pace_seconds == 0.0
    assert s.device_groups == ("video",)
    assert s.rocm_channels == {"24.04": "6.1"}


def test_config_from_environment_variable(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("bin_dir: /opt/bin\n", encoding="utf-8")

    s = load_settings(environ={"UBUNGPU_CONFIG": str(cfg)})
    assert s.installed_binary == "/opt/bin/ubungpu"


def test_environment_overrides(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("color: true\n", encoding="utf-8")

    s = load_settings(str(cfg), environ={"PERFORM_UPGRADE": "true", "NO_COLOR": "1"})

    assert s.perform_upgrade is True
    assert s.color is False
    assert s.palette == Palette.plain()


def test_keyword_overrides_win(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("pace_seconds: 2\n", encoding="utf-8")

    assert load_settings(str(cfg), environ={}, pace_seconds=0.0).pace_seconds == 0.0


def test_unknown_key_is_rejected(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("log_directory: /x\n", encoding="utf-8")

    with pytest.raises(ValueError, match="log_directory"):
        load_settings(str(cfg), environ={})


def test_non_mapping_document_is_rejected(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(str(cfg), environ={})


def test_explicit_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "nope.yaml"), environ={})


def test_palette_paint():
    assert Palette.plain().paint("x", "red") == "x"
    assert Palette().paint("x", "green") == "\033[0;32mx\033[0m"


@pytest.mark.parametrize("key", ["perform_upgrade", "color"])
def test_quoted_boolean_is_rejected(tmp_path, key):
    cfg = tmp_path / "c.yaml"
    cfg.write_text(f'{key}: "false"\n', encoding="utf-8")

    with pytest.raises(ValueError, match=f"{key} must be true or false"):
        load_settings(str(cfg), environ={})


def test_false_stays_false(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("perform_upgrade: false\ncolor: false\n", encoding="utf-8")

    s = load_settings(str(cfg), environ={})
    assert s.perform_upgrade is False
    assert s.color is False
