"""
System Service - Telemetry and device control over HTTP

Responsibilities:
- Report CPU, memory, disk, network and process metrics
- Report the system summary from the platform info provider
- Get/set the clock, reboot, configure addresses
- Expose the vendor config fields on the vendor platform
"""

from .service import AgentService

__all__ = ["AgentService"]
