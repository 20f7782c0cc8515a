"""
Platform Info Providers

Where hostname, OS version and machine identity come from depends on
the platform the agent runs on:

- GenericLinuxPlatform  - /etc/hostname, /etc/os-release, /etc/machine-id
- VendorEmbeddedPlatform - the vendor INI file, the vendor image metadata
  file and the board serial numbers; also owns the vendor config facade

detect_platform() picks one from the agent config at startup.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from sysagent import __version__
from sysagent.common.config import PlatformKind, PlatformSettings
from sysagent.common.exceptions import AgentError
from sysagent.common.logging_setup import get_service_logger
from sysagent.services.vendor_config import ConfigFacade, VendorConfigHandle, read_ini_field
from sysagent.services.vendor_config.facade import SYSTEM_SETTINGS_SECTION

from .metrics_collector import MetricsCollector
from .os_control import SystemControl

logger = get_service_logger("system.platform")

UNKNOWN = "Unknown"

_SERIAL_RE = re.compile(r"Serial=(.{16})")


@dataclass
class Summary:
    """Static facts about the machine"""
    hostname: str
    os: str
    agent_version: str
    webpage_version: str
    uuid: int
    cpu_cores: int
    total_memory: int

    def to_dict(self) -> dict:
        return {
            "hostname": self.hostname,
            "os": self.os,
            "agentVersion": self.agent_version,
            "webpageVersion": self.webpage_version,
            "uuid": self.uuid,
            "cpuCores": self.cpu_cores,
            "totalMemory": self.total_memory,
        }


def parse_serials(text: str) -> list[str]:
    """All 16 character serial numbers following 'Serial=' (one per line)"""
    serials = []
    for line in text.splitlines():
        match = _SERIAL_RE.search(line)
        if match:
            serials.append(match.group(1))
    return serials


def read_key_value(path: str | Path, key: str) -> str | None:
    """Value of a KEY=value line (quotes dropped), e.g. from os-release"""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            name, sep, value = line.strip().partition("=")
            if sep and name.strip() == key:
                return value.strip().replace('"', "")
    return None


class PlatformInfoProvider(ABC):
    """Capability interface for platform specific machine facts"""

    def __init__(self, settings: PlatformSettings, metrics: MetricsCollector):
        self.settings = settings
        self.metrics = metrics

    @abstractmethod
    def hostname(self) -> str:
        """Configured host name"""

    @abstractmethod
    def os_name(self) -> str:
        """Human readable OS / image version"""

    @abstractmethod
    def uuid(self) -> int:
        """Stable machine identifier as an integer"""

    def summary(self, webpage_version: str) -> Summary:
        """Collect the summary, substituting defaults for facts that fail"""
        return Summary(
            hostname=self._or_default("hostname", self.hostname, UNKNOWN),
            os=self._or_default("os", self.os_name, UNKNOWN),
            agent_version=__version__,
            webpage_version=webpage_version,
            uuid=self._or_default("uuid", self.uuid, 0),
            cpu_cores=self.metrics.cpu_cores(),
            total_memory=self.metrics.total_memory(),
        )

    def _or_default(self, name, getter, default):
        try:
            value = getter()
        except (OSError, ValueError, AgentError) as e:
            logger.warning(f"Cannot determine {name}: {e}", extra={"fact": name})
            return default
        if value is None:
            logger.warning(f"Cannot determine {name}: not found", extra={"fact": name})
            return default
        return value


class GenericLinuxPlatform(PlatformInfoProvider):
    """Any Linux host"""

    def hostname(self) -> str:
        with open(self.settings.hostname_path, "r", encoding="utf-8") as f:
            return f.read().rstrip("\n")

    def os_name(self) -> str | None:
        return read_key_value(self.settings.os_release_path, "PRETTY_NAME")

    def uuid(self) -> int:
        with open(self.settings.machine_id_path, "r", encoding="utf-8") as f:
            return int(f.read().strip(), 16)


class VendorEmbeddedPlatform(PlatformInfoProvider):
    """The vendor's embedded controller, configured through its INI file"""

    def __init__(
        self,
        settings: PlatformSettings,
        metrics: MetricsCollector,
        system_control: SystemControl,
        handle: VendorConfigHandle | None = None,
    ):
        super().__init__(settings, metrics)
        self.handle = handle or VendorConfigHandle.open(settings.vendor_config_path)
        self.facade = ConfigFacade(self.handle, system_control.write_hostname)

    def hostname(self) -> str | None:
        with self.handle.read() as store:
            value = store.get_value(SYSTEM_SETTINGS_SECTION, "host_name")
        return value.as_text()

    def os_name(self) -> str | None:
        value = read_ini_field(self.settings.image_metadata_path, "ImageMetadata", "IMAGEVERSION")
        return value.as_text()

    def serials(self) -> list[str]:
        with open(self.settings.serial_path, "r", encoding="utf-8") as f:
            return parse_serials(f.read())

    def serial(self) -> str:
        """Board serial for display, leading zeros removed"""
        serials = self.serials()
        if not serials:
            return ""
        return serials[-1].lstrip("0")

    def uuid(self) -> int | None:
        serials = self.serials()
        if not serials:
            return None
        return sum(int(serial, 16) for serial in serials)

    def identity(self) -> dict:
        """Board serial and image version, for the /rio snapshot"""
        return {
            "serial": self._or_default("serial", self.serial, ""),
            "image_version": self._or_default("image_version", self.os_name, UNKNOWN),
        }


def detect_platform(
    settings: PlatformSettings,
    metrics: MetricsCollector,
    system_control: SystemControl,
) -> PlatformInfoProvider:
    """
    Pick the platform provider.

    AUTO chooses the vendor platform when the vendor INI file exists.
    Opening the vendor INI may raise a VendorConfigError.
    """
    kind = settings.kind
    if kind is PlatformKind.AUTO:
        if Path(settings.vendor_config_path).exists():
            kind = PlatformKind.VENDOR
        else:
            kind = PlatformKind.GENERIC

    logger.info(f"Platform: {kind.value}", extra={"platform": kind.value})

    if kind is PlatformKind.VENDOR:
        return VendorEmbeddedPlatform(settings, metrics, system_control)
    return GenericLinuxPlatform(settings, metrics)
