"""Smoke tests for the psutil backed collector on the test host"""

from sysagent.services.system.metrics_collector import MetricsCollector, ProcessInfo


def test_collect_stats_shape():
    stats = MetricsCollector().collect_stats().to_dict()

    assert set(stats) == {"cpuSpeed", "cpuUsage", "memoryUsage", "networkUsage", "diskUsage"}
    assert len(stats["cpuUsage"]) >= 1
    assert stats["memoryUsage"] > 0
    for entry in stats["networkUsage"]:
        assert set(entry) == {"interface", "rx", "tx"}
    for entry in stats["diskUsage"]:
        assert entry["used"] <= entry["total"]


def test_collect_processes():
    processes = MetricsCollector().collect_processes()

    assert processes
    assert all(isinstance(p, ProcessInfo) for p in processes)
    assert set(processes[0].to_dict()) == {"pid", "name", "cpuUsage", "memoryUsage"}


def test_machine_facts():
    collector = MetricsCollector()

    assert collector.uptime_seconds() >= 0
    assert collector.cpu_cores() >= 1
    assert collector.total_memory() > 0
