"""HTTP API server exposing discovered Tempo Disks as JSON things."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Optional

from aiohttp import web

from . import __version__
from .device import DeviceEntity
from .registry import DeviceRegistry

if TYPE_CHECKING:
    from .discovery import DiscoveryLoop

logger = logging.getLogger(__name__)


def build_health_payload(registry: DeviceRegistry, loop: Optional[DiscoveryLoop]) -> dict:
    """Build the GET /health payload."""
    output: dict = {
        "status": "ok",
        "version": __version__,
        "devices": len(registry),
    }
    if loop is not None:
        output["radio_state"] = loop.state.value
        output["scanning"] = loop.scanning
        output["packets_seen"] = loop.packets_seen
        output["packets_accepted"] = loop.packets_accepted
    return output


def build_thing_payload(entity: DeviceEntity) -> dict:
    """Thing description with the last seen time attached."""
    output = entity.as_thing_description()
    output["lastSeen"] = (
        entity.last_seen.strftime("%Y-%m-%d %H:%M:%S") if entity.last_seen else None
    )
    output["rssi"] = entity.rssi
    return output


class ApiServer:
    """aiohttp web server exposing devices and property values."""

    def __init__(
        self,
        registry: DeviceRegistry,
        port: int,
        loop: Optional[DiscoveryLoop] = None,
        host: str = "0.0.0.0",
    ) -> None:
        self._registry = registry
        self._port = port
        self._loop = loop
        self._host = host
        self._runner: Optional[web.AppRunner] = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/v1/health", self._handle_health)
        app.router.add_get("/api/v1/things", self._handle_things)
        app.router.add_get("/api/v1/things/{device_id}", self._handle_thing)
        app.router.add_get("/api/v1/things/{device_id}/properties", self._handle_properties)
        app.router.add_get(
            "/api/v1/things/{device_id}/properties/{name}",
            self._handle_property,
        )
        return app

    async def start(self) -> None:
        """Start the API server."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info("API server started on port %d", self._port)

    async def stop(self) -> None:
        """Stop the API server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("API server stopped")

    def _entity_or_404(self, request: web.Request) -> DeviceEntity:
        device_id = request.match_info["device_id"]
        entity = self._registry.get_by_device_id(device_id)
        if entity is None:
            raise web.HTTPNotFound(
                text=json.dumps({"error": f"unknown device {device_id}"}),
                content_type="application/json",
            )
        return entity

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response(build_health_payload(self._registry, self._loop))

    async def _handle_things(self, request: web.Request) -> web.Response:
        things = [build_thing_payload(entity) for entity in self._registry.get_all()]
        return web.json_response(things)

    async def _handle_thing(self, request: web.Request) -> web.Response:
        return web.json_response(build_thing_payload(self._entity_or_404(request)))

    async def _handle_properties(self, request: web.Request) -> web.Response:
        return web.json_response(self._entity_or_404(request).values())

    async def _handle_property(self, request: web.Request) -> web.Response:
        entity = self._entity_or_404(request)
        name = request.match_info["name"]
        prop = entity.get_property(name)
        if prop is None:
            return web.json_response({"error": f"unknown property {name}"}, status=404)
        return web.json_response({name: prop.value})
