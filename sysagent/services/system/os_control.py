"""
OS Control

Thin wrappers over the OS actions the HTTP layer exposes:
- Write the system hostname file
- Read/set the realtime clock
- Reboot
- Add an address to a network interface
"""

import subprocess
import time
from pathlib import Path

from sysagent.common.config import SystemSettings
from sysagent.common.exceptions import SystemControlError
from sysagent.common.logging_setup import get_service_logger

logger = get_service_logger("system.os_control")

NANOS_PER_SECOND = 1_000_000_000


class SystemControl:
    """OS actions, raising SystemControlError on failure"""

    def __init__(self, settings: SystemSettings, hostname_path: str = "/etc/hostname"):
        self.settings = settings
        self.hostname_path = Path(hostname_path)

    def write_hostname(self, hostname: str) -> None:
        """Replace the contents of the hostname file"""
        try:
            with open(self.hostname_path, "w", encoding="utf-8") as f:
                f.write(hostname)
        except OSError as e:
            raise SystemControlError(
                f"Cannot write {self.hostname_path}: {e}", action="hostname",
            )

        logger.info(f"Hostname set to {hostname!r}", extra={"hostname": hostname})

    def get_time(self) -> tuple[int, int]:
        """Realtime clock as (seconds, nanoseconds)"""
        return divmod(time.clock_gettime_ns(time.CLOCK_REALTIME), NANOS_PER_SECOND)

    def set_time(self, seconds: int, nanoseconds: int) -> None:
        """Set the realtime clock"""
        try:
            time.clock_settime_ns(
                time.CLOCK_REALTIME, seconds * NANOS_PER_SECOND + nanoseconds,
            )
        except OSError as e:
            raise SystemControlError(f"Cannot set clock: {e}", action="time")

        logger.info(
            f"Clock set to {seconds}.{nanoseconds:09d}",
            extra={"seconds": seconds, "nanoseconds": nanoseconds},
        )

    def reboot(self) -> None:
        """Run the configured reboot command"""
        logger.warning("Initiating system reboot")
        try:
            subprocess.run(self.settings.reboot_command, check=True, timeout=10)
        except subprocess.CalledProcessError as e:
            raise SystemControlError(f"Reboot failed: {e}", action="reboot")
        except subprocess.TimeoutExpired:
            raise SystemControlError("Reboot command timed out", action="reboot")
        except FileNotFoundError:
            raise SystemControlError(
                f"Reboot command not found: {self.settings.reboot_command[0]}",
                action="reboot",
            )

    def add_ip_address(self, interface: str, ip: str) -> None:
        """Add ip/prefix to an interface with the ip tool"""
        address = f"{ip}/{self.settings.prefix_length}"
        command = [self.settings.ip_command, "addr", "add", address, "dev", interface]

        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=10)
        except subprocess.TimeoutExpired:
            raise SystemControlError(f"Timeout adding {address} to {interface}", action="ip")
        except FileNotFoundError:
            raise SystemControlError(
                f"{self.settings.ip_command} not available", action="ip",
            )

        if result.returncode != 0:
            raise SystemControlError(
                f"Adding {address} to {interface} failed: {result.stderr.strip()}",
                action="ip",
            )

        logger.info(
            f"Added {address} to {interface}",
            extra={"interface": interface, "address": address},
        )
