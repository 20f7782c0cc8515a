"""Shared fixtures: a vendor INI file on disk and fakes for OS actions."""

from pathlib import Path

import pytest

from sysagent.common.config import AgentConfig, PlatformKind
from sysagent.common.exceptions import SystemControlError
from sysagent.services.system.metrics_collector import (
    DiskUsageEntry,
    NetworkUsageEntry,
    ProcessInfo,
    Stats,
)
from sysagent.services.vendor_config import ConfigFacade, VendorConfigHandle, encode_comment

SERIAL = "000000000306ADDC"


def vendor_ini_text(comment: str = "hello") -> str:
    return (
        "[systemsettings]\n"
        'host_name = "rio-1234"\n'
        f'Comment = "{encode_comment(comment)}"\n'
        "NoFPGAApp.enabled = false\n"
        "ConsoleOut.enabled = true\n"
        'NoApp.enabled = "False"\n'
        'SafeMode.enabled = "True"\n'
        "\n"
        "[eth0]\n"
        'dhcpenabled = "1"\n'
        'Mode = "TCPIP"\n'
        'ExtraKey = "x"\n'
        "\n"
    )


class FakeSystemControl:
    """Records OS actions instead of performing them"""

    def __init__(self, fail_hostname: bool = False, fail_reboot: bool = False):
        self.fail_hostname = fail_hostname
        self.fail_reboot = fail_reboot
        self.hostnames: list[str] = []
        self.times: list[tuple[int, int]] = []
        self.addresses: list[tuple[str, str]] = []
        self.reboots = 0

    def write_hostname(self, hostname: str) -> None:
        if self.fail_hostname:
            raise SystemControlError("read-only filesystem", action="hostname")
        self.hostnames.append(hostname)

    def get_time(self) -> tuple[int, int]:
        return 123456, 789

    def set_time(self, seconds: int, nanoseconds: int) -> None:
        self.times.append((seconds, nanoseconds))

    def reboot(self) -> None:
        if self.fail_reboot:
            raise SystemControlError("reboot not permitted", action="reboot")
        self.reboots += 1

    def add_ip_address(self, interface: str, ip: str) -> None:
        self.addresses.append((interface, ip))


class FakeMetrics:
    """Fixed telemetry"""

    def collect_stats(self) -> Stats:
        return Stats(
            cpu_speed=[1_000_000_000, 2_000_000_000],
            cpu_usage=[12.5, 50.0],
            memory_usage=20000,
            network_usage=[NetworkUsageEntry("eth0", 1000, 2000)],
            disk_usage=[DiskUsageEntry("/", 100000, 20000)],
        )

    def collect_processes(self) -> list[ProcessInfo]:
        return [ProcessInfo(pid=1, name="init", cpu_usage=0.1, memory_usage=1000)]

    def uptime_seconds(self) -> int:
        return 60

    def cpu_cores(self) -> int:
        return 2

    def total_memory(self) -> int:
        return 512 * 1024 * 1024


@pytest.fixture
def vendor_ini(tmp_path: Path) -> Path:
    path = tmp_path / "ni-rt.ini"
    path.write_text(vendor_ini_text(), encoding="utf-8")
    return path


@pytest.fixture
def system_control() -> FakeSystemControl:
    return FakeSystemControl()


@pytest.fixture
def facade(vendor_ini: Path, system_control: FakeSystemControl) -> ConfigFacade:
    return ConfigFacade(VendorConfigHandle.open(vendor_ini), system_control.write_hostname)


@pytest.fixture
def agent_config(tmp_path: Path, vendor_ini: Path) -> AgentConfig:
    """Config pointing every platform file into tmp_path"""
    config = AgentConfig()
    config.platform.kind = PlatformKind.VENDOR
    config.platform.vendor_config_path = str(vendor_ini)
    config.platform.hostname_path = str(tmp_path / "hostname")
    config.platform.os_release_path = str(tmp_path / "os-release")
    config.platform.machine_id_path = str(tmp_path / "machine-id")
    config.platform.image_metadata_path = str(tmp_path / "scs_imagemetadata.ini")
    config.platform.serial_path = str(tmp_path / "atomiczynq.config")

    (tmp_path / "scs_imagemetadata.ini").write_text(
        '[ImageMetadata]\nIMAGEVERSION = "2023_v3.1"\n', encoding="utf-8",
    )
    (tmp_path / "atomiczynq.config").write_text(
        f"[Board]\nSerial={SERIAL}\n", encoding="utf-8",
    )
    return config


@pytest.fixture
def fake_metrics() -> FakeMetrics:
    return FakeMetrics()
