from conftest import FakeHost

from ubungpu.lib.pkg import AptInstaller, InstallStatus


def test_ensure_installed_is_idempotent():
    host = FakeHost()
    installer = AptInstaller(host)

    first = installer.ensure_installed("curl")
    second = installer.ensure_installed("curl")

    assert first.status is InstallStatus.INSTALLED
    assert second.status is InstallStatus.ALREADY_PRESENT
    assert second.ok
    assert host.install_calls == ["curl"]


def test_present_package_never_runs_apt():
    host = FakeHost(installed=["wget"])
    outcome = AptInstaller(host).ensure_installed("wget")

    assert outcome.status is InstallStatus.ALREADY_PRESENT
    assert host.install_calls == []
    assert not host.ran("apt-get")


def test_failed_install_reports_reason():
    host = FakeHost(failing=["rocm-dev"])
    outcome = AptInstaller(host).ensure_installed("rocm-dev")

    assert outcome.status is InstallStatus.FAILED
    assert not outcome.ok
    assert "rocm-dev" in outcome.reason


def test_update_and_upgrade():
    assert AptInstaller(FakeHost()).update() is True
    assert AptInstaller(FakeHost(update_ok=False)).update() is False
    assert AptInstaller(FakeHost()).upgrade() is True
