from conftest import AMD_LSPCI, NVIDIA_LSPCI, PLAIN_LSPCI, FakeRunner

from ubungpu.lib.hwdetect import VendorKind
from ubungpu.status import StatusReporter


def host(lspci):
    runner = FakeRunner()
    runner.on("lspci", stdout=lspci)
    return runner


def test_nvidia_status_without_driver(settings):
    runner = host(NVIDIA_LSPCI)
    text = StatusReporter(settings, runner).render()

    assert "===== GPU Information =====" in text
    assert "GPU Hardware Details:" in text
    assert "NVIDIA Corporation GA102" in text
    assert "Intel Corporation" not in text
    assert "NVIDIA drivers not loaded" in text
    assert "CUDA not installed" in text


def test_nvidia_status_with_live_tools(settings):
    runner = host(NVIDIA_LSPCI)
    runner.on("nvidia-smi", stdout="| NVIDIA-SMI 550.54.14   Driver Version: 550.54.14 |\n")
    runner.tool("nvcc")
    runner.on("nvcc", "--version", stdout="Cuda compilation tools, release 12.0, V12.0.140\n")

    text = StatusReporter(settings, runner).render()

    assert "Driver Version: 550.54.14" in text
    assert "release 12.0" in text


def test_amd_status_without_driver(settings):
    text = StatusReporter(settings, host(AMD_LSPCI)).render()

    assert "Radeon RX 7900 XTX" in text
    assert "AMDGPU drivers not loaded" in text
    assert "No OpenCL devices found" in text


def test_unknown_status_is_informational(settings):
    text = StatusReporter(settings, host(PLAIN_LSPCI)).render()
    assert "No supported GPU detected" in text


def test_status_never_mutates(settings):
    runner = host(NVIDIA_LSPCI)
    StatusReporter(settings, runner).render()

    assert not runner.ran("apt-get")
    assert not runner.ran("ubuntu-drivers")


def test_explicit_vendor_skips_detection(settings):
    runner = host(PLAIN_LSPCI)
    text = StatusReporter(settings, runner).render(VendorKind.UNKNOWN)

    assert "No supported GPU detected" in text
    assert ["lspci"] not in runner.calls


def test_banner(settings):
    assert StatusReporter(settings, FakeRunner()).banner() == "===== GPU Status (ubungpu v0.2.0) ====="
