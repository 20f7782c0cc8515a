"""
Configuration Dataclasses

Type-safe configuration structures for the agent.
Configuration is read from a YAML file; every field has a default so the
agent can start without one.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError


class PlatformKind(str, Enum):
    """Which platform info provider to use"""
    AUTO = "auto"
    GENERIC = "generic"
    VENDOR = "vendor"


@dataclass
class ServerSettings:
    """HTTP listener"""
    host: str = "127.0.0.1"
    port: int = 80


@dataclass
class PlatformSettings:
    """File locations used by the platform info providers"""
    kind: PlatformKind = PlatformKind.AUTO
    # Generic Linux
    hostname_path: str = "/etc/hostname"
    os_release_path: str = "/etc/os-release"
    machine_id_path: str = "/etc/machine-id"
    # Vendor embedded
    vendor_config_path: str = "/etc/natinst/share/ni-rt.ini"
    image_metadata_path: str = "/etc/natinst/share/scs_imagemetadata.ini"
    serial_path: str = "/var/lib/compactrio/atomiczynq.config"
    network_interface: str = "eth0"


@dataclass
class SystemSettings:
    """OS level actions"""
    reboot_command: list[str] = field(default_factory=lambda: ["reboot"])
    reboot_verification: str = "please"
    ip_command: str = "ip"
    prefix_length: int = 24


@dataclass
class WebpageSettings:
    """Pre-built, gzip compressed dashboard page"""
    path: str | None = None
    version: str = "0.0.0"


@dataclass
class LoggingSettings:
    """Log output"""
    level: str = "INFO"
    json_format: bool = True


@dataclass
class AgentConfig:
    """Complete agent configuration"""
    server: ServerSettings = field(default_factory=ServerSettings)
    platform: PlatformSettings = field(default_factory=PlatformSettings)
    system: SystemSettings = field(default_factory=SystemSettings)
    webpage: WebpageSettings = field(default_factory=WebpageSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def load_agent_config(data: dict) -> AgentConfig:
    """Load AgentConfig from dictionary (e.g., from YAML file)"""
    server_data = data.get("server", {})
    server = ServerSettings(
        host=server_data.get("host", "127.0.0.1"),
        port=int(server_data.get("port", 80)),
    )

    platform_data = data.get("platform", {})
    defaults = PlatformSettings()
    try:
        kind = PlatformKind(platform_data.get("kind", "auto"))
    except ValueError:
        raise ConfigError(f"Unknown platform kind: {platform_data.get('kind')!r}")

    platform = PlatformSettings(
        kind=kind,
        hostname_path=platform_data.get("hostname_path", defaults.hostname_path),
        os_release_path=platform_data.get("os_release_path", defaults.os_release_path),
        machine_id_path=platform_data.get("machine_id_path", defaults.machine_id_path),
        vendor_config_path=platform_data.get("vendor_config_path", defaults.vendor_config_path),
        image_metadata_path=platform_data.get("image_metadata_path", defaults.image_metadata_path),
        serial_path=platform_data.get("serial_path", defaults.serial_path),
        network_interface=platform_data.get("network_interface", defaults.network_interface),
    )

    system_data = data.get("system", {})
    reboot_command = system_data.get("reboot_command", ["reboot"])
    if isinstance(reboot_command, str):
        reboot_command = reboot_command.split()
    system = SystemSettings(
        reboot_command=list(reboot_command),
        reboot_verification=system_data.get("reboot_verification", "please"),
        ip_command=system_data.get("ip_command", "ip"),
        prefix_length=int(system_data.get("prefix_length", 24)),
    )

    webpage_data = data.get("webpage", {})
    webpage = WebpageSettings(
        path=webpage_data.get("path"),
        version=str(webpage_data.get("version", "0.0.0")),
    )

    logging_data = data.get("logging", {})
    logging_settings = LoggingSettings(
        level=logging_data.get("level", "INFO"),
        json_format=logging_data.get("json_format", True),
    )

    return AgentConfig(
        server=server,
        platform=platform,
        system=system,
        webpage=webpage,
        logging=logging_settings,
    )


def find_config_path() -> Path | None:
    """Find configuration file"""
    possible_paths = [
        Path("/etc/sysagent/config.yaml"),
        Path("/opt/sysagent/config.yaml"),
        Path(__file__).parent.parent.parent / "config.yaml",
    ]

    for path in possible_paths:
        if path.exists():
            return path

    return None


def load_config_file(config_path: str | Path | None = None) -> AgentConfig:
    """
    Load agent configuration from a YAML file.

    Args:
        config_path: Explicit path; searched for when None

    Returns:
        AgentConfig (defaults when no file is found)

    Raises:
        ConfigError: if an explicit file is missing or not valid YAML
    """
    if config_path is None:
        path = find_config_path()
        if path is None:
            return AgentConfig()
    else:
        path = Path(config_path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data: Any = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")

    return load_agent_config(data)
