"""
Agent Service - HTTP API

Serves telemetry and device control routes:
- /stats, /processes, /system_summary, /uptime  - telemetry
- /time, /reboot, /set_ip                       - OS actions
- /rio, /set_dhcp, /nisysdetails/ping           - vendor platform only
- /health                                       - service health

Errors raised by the layers below are turned into HTTP statuses by
error_middleware.
"""

import asyncio
import json
import signal
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from aiohttp import web
from pydantic import BaseModel, Field, ValidationError

from sysagent.common.config import AgentConfig
from sysagent.common.exceptions import AgentError, BadRequestError, WriteError
from sysagent.common.logging_setup import get_service_logger
from sysagent.common.timespec import hex_to_timespec, timespec_to_hex

from .metrics_collector import MetricsCollector
from .os_control import SystemControl
from .platform_info import PlatformInfoProvider, VendorEmbeddedPlatform, detect_platform

logger = get_service_logger("system")

PING_RESPONSE = "SYSAGENT"


# ============================================
# SCHEMAS
# ============================================

class StaticIpRequest(BaseModel):
    """Static address request."""
    interface: str = Field(..., description="Interface name, e.g. 'eth0'")
    ip: str = Field(..., description="Address without prefix")
    gateway: str = Field(..., description="Default gateway")
    dns: Optional[str] = Field(None, description="DNS server; defaults to the gateway")


class DhcpRequest(BaseModel):
    """DHCP request."""
    ip: str = Field(..., description="Last known DHCP address")
    interface: Optional[str] = Field(None, description="Interface name")


# ============================================
# HELPERS
# ============================================

@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Map agent errors to JSON error responses"""
    try:
        return await handler(request)
    except BadRequestError as e:
        logger.warning(
            f"Bad request on {request.path}: {e.message}",
            extra={"path": request.path, "field": e.field},
        )
        return web.json_response(
            {"error": e.message, "field": e.field, "retry_safe": False}, status=400,
        )
    except WriteError as e:
        logger.error(f"Persist failed on {request.path}: {e.message}", extra={"path": request.path})
        return web.json_response(
            {"error": e.message, "retry_safe": True}, status=503,
        )
    except AgentError as e:
        logger.error(f"Request failed on {request.path}: {e.message}", extra={"path": request.path})
        return web.json_response(
            {"error": e.message, "retry_safe": e.retry_safe}, status=500,
        )


async def read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except json.JSONDecodeError as e:
        raise BadRequestError(f"Body is not valid JSON: {e}")


def validate_model(model: type[BaseModel], data: Any) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise BadRequestError(f"Invalid request: {e.errors(include_url=False)}")


class AgentService:
    """
    HTTP service for the agent.

    Collaborators can be injected for testing; by default they are
    built from the agent config.
    """

    def __init__(
        self,
        config: AgentConfig,
        platform: PlatformInfoProvider | None = None,
        metrics: MetricsCollector | None = None,
        system_control: SystemControl | None = None,
    ):
        self.config = config
        self.metrics = metrics or MetricsCollector()
        self.system_control = system_control or SystemControl(
            config.system, config.platform.hostname_path,
        )
        self.platform = platform or detect_platform(
            config.platform, self.metrics, self.system_control,
        )

        self._runner: web.AppRunner | None = None
        self._shutdown_event = asyncio.Event()
        self._start_time = datetime.now(timezone.utc)

    @property
    def vendor(self) -> VendorEmbeddedPlatform | None:
        if isinstance(self.platform, VendorEmbeddedPlatform):
            return self.platform
        return None

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all routes"""
        app = web.Application(middlewares=[error_middleware])
        app.router.add_get("/", self._root_handler)
        app.router.add_get("/health", self._health_handler)
        app.router.add_get("/stats", self._stats_handler)
        app.router.add_get("/processes", self._processes_handler)
        app.router.add_get("/system_summary", self._summary_handler)
        app.router.add_get("/time", self._get_time_handler)
        app.router.add_post("/time", self._set_time_handler)
        app.router.add_get("/uptime", self._uptime_handler)
        app.router.add_post("/reboot", self._reboot_handler)
        app.router.add_post("/set_ip", self._set_ip_handler)

        if self.vendor is not None:
            app.router.add_get("/rio", self._get_rio_handler)
            app.router.add_post("/rio", self._set_rio_handler)
            app.router.add_post("/set_dhcp", self._set_dhcp_handler)
            app.router.add_get("/nisysdetails/ping", self._ping_handler)

        return app

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start serving and wait for a shutdown signal"""
        logger.info("Starting agent service")

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.config.server.host, self.config.server.port)
        await site.start()

        logger.info(
            f"Agent listening on {self.config.server.host}:{self.config.server.port}",
            extra={"vendor_platform": self.vendor is not None},
        )

        self._setup_signal_handlers()
        await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Stop serving"""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        logger.info("Agent service stopped")

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown)

    def _handle_shutdown(self) -> None:
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    async def _root_handler(self, request: web.Request) -> web.Response:
        """Serve the pre-gzipped dashboard page"""
        page_path = self.config.webpage.path
        if not page_path or not Path(page_path).is_file():
            raise web.HTTPNotFound(text="No webpage configured")

        return web.Response(
            body=Path(page_path).read_bytes(),
            headers={"Content-Type": "text/html", "Content-Encoding": "gzip"},
        )

    async def _health_handler(self, request: web.Request) -> web.Response:
        uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()
        return web.json_response({
            "status": "healthy",
            "service": "sysagent",
            "uptime": int(uptime),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "platform": "vendor" if self.vendor is not None else "generic",
        })

    async def _stats_handler(self, request: web.Request) -> web.Response:
        return web.json_response(self.metrics.collect_stats().to_dict())

    async def _processes_handler(self, request: web.Request) -> web.Response:
        return web.json_response([p.to_dict() for p in self.metrics.collect_processes()])

    async def _summary_handler(self, request: web.Request) -> web.Response:
        summary = self.platform.summary(self.config.webpage.version)
        return web.json_response(summary.to_dict())

    async def _uptime_handler(self, request: web.Request) -> web.Response:
        return web.Response(text=timespec_to_hex(self.metrics.uptime_seconds(), 0))

    # ------------------------------------------------------------------
    # OS actions
    # ------------------------------------------------------------------

    async def _get_time_handler(self, request: web.Request) -> web.Response:
        seconds, nanoseconds = self.system_control.get_time()
        return web.Response(text=timespec_to_hex(seconds, nanoseconds))

    async def _set_time_handler(self, request: web.Request) -> web.Response:
        body = await request.text()
        try:
            seconds, nanoseconds = hex_to_timespec(body)
        except ValueError as e:
            raise BadRequestError(str(e))

        self.system_control.set_time(seconds, nanoseconds)
        return web.Response(text="Time set")

    async def _reboot_handler(self, request: web.Request) -> web.Response:
        verification = await request.text()
        if verification != self.config.system.reboot_verification:
            logger.warning("Reboot refused: wrong verification string")
            return web.Response(text="Verification string incorrect", status=403)

        self.system_control.reboot()
        return web.Response(text="Rebooting")

    async def _set_ip_handler(self, request: web.Request) -> web.Response:
        ip_request = validate_model(StaticIpRequest, await read_json(request))

        if self.vendor is not None:
            self.vendor.facade.write_static_ip(
                ip=ip_request.ip,
                gateway=ip_request.gateway,
                dns=ip_request.dns or ip_request.gateway,
                interface=ip_request.interface,
            )

        self.system_control.add_ip_address(ip_request.interface, ip_request.ip)
        return web.Response(text="Static IP set")

    # ------------------------------------------------------------------
    # Vendor platform
    # ------------------------------------------------------------------

    async def _get_rio_handler(self, request: web.Request) -> web.Response:
        vendor = self.vendor
        snapshot = vendor.facade.read_snapshot()
        snapshot.update(vendor.identity())
        return web.json_response(snapshot)

    async def _set_rio_handler(self, request: web.Request) -> web.Response:
        updates = await read_json(request)
        if not isinstance(updates, dict):
            raise BadRequestError("Body must be a JSON object")

        self.vendor.facade.apply_updates(updates)
        return web.Response(status=204)

    async def _set_dhcp_handler(self, request: web.Request) -> web.Response:
        dhcp_request = validate_model(DhcpRequest, await read_json(request))
        self.vendor.facade.write_dhcp(
            ip=dhcp_request.ip,
            interface=dhcp_request.interface or self.config.platform.network_interface,
        )
        return web.Response(text="DHCP set")

    async def _ping_handler(self, request: web.Request) -> web.Response:
        return web.Response(text=PING_RESPONSE)
