"""
System Metrics Collector

Collects telemetry for the /stats and /processes routes:
- Per-CPU frequency and usage
- Memory in use
- Per-interface network counters
- Per-mount disk usage
- Per-process CPU and memory
- System uptime
"""

import time
from dataclasses import dataclass, field

import psutil

from sysagent.common.logging_setup import get_service_logger

logger = get_service_logger("system.metrics")

HZ_PER_MHZ = 1_000_000


@dataclass
class NetworkUsageEntry:
    """Bytes received/sent on one interface"""
    interface: str
    rx: int
    tx: int

    def to_dict(self) -> dict:
        return {"interface": self.interface, "rx": self.rx, "tx": self.tx}


@dataclass
class DiskUsageEntry:
    """Space on one mount point"""
    mount_point: str
    total: int
    used: int

    def to_dict(self) -> dict:
        return {"mount_point": self.mount_point, "total": self.total, "used": self.used}


@dataclass
class Stats:
    """Machine wide telemetry"""
    cpu_speed: list[int] = field(default_factory=list)
    cpu_usage: list[float] = field(default_factory=list)
    memory_usage: int = 0
    network_usage: list[NetworkUsageEntry] = field(default_factory=list)
    disk_usage: list[DiskUsageEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "cpuSpeed": self.cpu_speed,
            "cpuUsage": self.cpu_usage,
            "memoryUsage": self.memory_usage,
            "networkUsage": [entry.to_dict() for entry in self.network_usage],
            "diskUsage": [entry.to_dict() for entry in self.disk_usage],
        }


@dataclass
class ProcessInfo:
    """One running process"""
    pid: int
    name: str
    cpu_usage: float
    memory_usage: int

    def to_dict(self) -> dict:
        return {
            "pid": self.pid,
            "name": self.name,
            "cpuUsage": self.cpu_usage,
            "memoryUsage": self.memory_usage,
        }


class MetricsCollector:
    """Samples telemetry through psutil"""

    def collect_stats(self) -> Stats:
        """Collect current machine wide metrics"""
        return Stats(
            cpu_speed=self._get_cpu_speed(),
            cpu_usage=[float(pct) for pct in psutil.cpu_percent(percpu=True)],
            memory_usage=psutil.virtual_memory().used,
            network_usage=self._get_network_usage(),
            disk_usage=self._get_disk_usage(),
        )

    def _get_cpu_speed(self) -> list[int]:
        """Current frequency of each CPU in Hz"""
        try:
            frequencies = psutil.cpu_freq(percpu=True)
        except (AttributeError, NotImplementedError, OSError):
            frequencies = []

        if not frequencies:
            return [0] * (psutil.cpu_count() or 0)

        return [int(freq.current * HZ_PER_MHZ) for freq in frequencies]

    def _get_network_usage(self) -> list[NetworkUsageEntry]:
        counters = psutil.net_io_counters(pernic=True)
        return [
            NetworkUsageEntry(interface=name, rx=data.bytes_recv, tx=data.bytes_sent)
            for name, data in counters.items()
        ]

    def _get_disk_usage(self) -> list[DiskUsageEntry]:
        entries = []
        for partition in psutil.disk_partitions(all=False):
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except (PermissionError, OSError) as e:
                logger.debug(f"Skipping {partition.mountpoint}: {e}")
                continue
            entries.append(DiskUsageEntry(
                mount_point=partition.mountpoint,
                total=usage.total,
                used=usage.total - usage.free,
            ))
        return entries

    def collect_processes(self) -> list[ProcessInfo]:
        """
        Collect running processes.

        CPU usage is divided by the core count so it is a share of the
        whole machine. Processes using neither CPU nor memory are skipped.
        """
        cpu_count = psutil.cpu_count() or 1
        processes = []

        for proc in psutil.process_iter(["pid", "name", "cpu_percent", "memory_info"]):
            info = proc.info
            memory_info = info.get("memory_info")
            memory_usage = memory_info.rss if memory_info else 0
            cpu_usage = info.get("cpu_percent") or 0.0

            if memory_usage == 0 and cpu_usage == 0.0:
                continue

            processes.append(ProcessInfo(
                pid=info["pid"],
                name=info.get("name") or "",
                cpu_usage=cpu_usage / cpu_count,
                memory_usage=memory_usage,
            ))

        return processes

    def uptime_seconds(self) -> int:
        """Seconds since system boot"""
        return int(time.time() - psutil.boot_time())

    def total_memory(self) -> int:
        return psutil.virtual_memory().total

    def cpu_cores(self) -> int:
        return psutil.cpu_count() or 0
