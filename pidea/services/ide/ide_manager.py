import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from pidea.events.event import Event
from pidea.events.ide_events import active_ide_changed, active_ide_changed_event_type, ide_started, ide_stopped
from pidea.services.event_bus import EventBus
from pidea.services.ide.detector import IDEDetectorFactory
from pidea.services.ide.ide_types import (
    IDEError,
    IDENotFoundError,
    IDEType,
    get_definition,
    type_for_port,
)
from pidea.services.ide.starter import IDEStarterFactory
from pidea.settings import settings


logger = structlog.get_logger(__name__)

MANAGER_SOURCE = "ide_manager"


@dataclass
class DeliveredMessage:
    port: int
    content: str
    delivered_at: datetime


class IDEManager:
    """Tracks running IDEs by DevTools port and which one is active"""

    def __init__(
        self,
        detector_factory: IDEDetectorFactory,
        starter_factory: IDEStarterFactory,
        event_bus: EventBus | None = None,
        enabled_ide_types: list[str] | None = None,
    ) -> None:
        self.detector_factory = detector_factory
        self.starter_factory = starter_factory
        self._event_bus = event_bus
        self._enabled_ide_types = enabled_ide_types if enabled_ide_types is not None else settings.enabled_ide_types

        self.active_port: int | None = None
        self._ide_status: dict[int, str] = {}
        self._ide_types: dict[int, IDEType] = {}
        self._ide_workspaces: dict[int, str | None] = {}
        self._delivered: list[DeliveredMessage] = []
        self._initialized = False
        self._init_lock = asyncio.Lock()

        if self._event_bus is not None:
            self._event_bus.subscribe(active_ide_changed_event_type, self._on_active_ide_changed)

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def _on_active_ide_changed(self, event: Event) -> None:
        if event.metadata.get("source") == MANAGER_SOURCE:
            return
        port = event.content.get("port") if isinstance(event.content, dict) else None
        if port:
            logger.info("active ide set from event", port=port, source=event.metadata.get("source"))
            self._set_active(int(port))

    def _set_active(self, port: int) -> None:
        if self.active_port is not None and self.active_port in self._ide_status:
            self._ide_status[self.active_port] = "running"
        self.active_port = port
        self._ide_status[port] = "active"

    async def _publish(self, event: Event) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish_event(event)

    async def initialize(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            detected = await self.detector_factory.detect_all()
            for ide in detected:
                self._ide_status[ide.port] = ide.status
                self._ide_types[ide.port] = ide.ide_type
            if detected:
                self._set_active(detected[0].port)

            self._initialized = True
            logger.info("ide manager initialized", detected=len(detected), active_port=self.active_port)

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def get_available_ides(self) -> list[dict[str, Any]]:
        await self._ensure_initialized()

        merged: dict[int, dict[str, Any]] = {}
        for ide in await self.detector_factory.detect_all():
            self._ide_types.setdefault(ide.port, ide.ide_type)
            merged[ide.port] = {
                "port": ide.port,
                "ide_type": self._ide_types[ide.port].value,
                "status": "active" if ide.port == self.active_port else ide.status,
                "version": ide.version,
                "source": "detected",
            }

        for started in self.starter_factory.get_running_ides():
            entry = merged.get(started.port)
            if entry is None:
                entry = {
                    "port": started.port,
                    "ide_type": started.ide_type.value,
                    "status": self._ide_status.get(started.port, started.status),
                    "version": None,
                }
                merged[started.port] = entry
            entry["source"] = "started"

        for port, entry in merged.items():
            entry["active"] = port == self.active_port
            entry["workspace_path"] = self._ide_workspaces.get(port)

        return [merged[port] for port in sorted(merged)]

    async def start_new_ide(
        self,
        workspace_path: str | None = None,
        ide_type: str = IDEType.CURSOR.value,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        await self._ensure_initialized()

        definition = get_definition(ide_type)
        if definition.ide_type.value not in self._enabled_ide_types:
            raise IDEError(f"IDE type {definition.ide_type.value} is not enabled in configuration")

        # A just-launched IDE is not listening yet, so tracked ports are skipped too
        reserved = set(self._ide_status) | {ide.port for ide in self.starter_factory.get_running_ides()}
        port = await self.detector_factory.find_available_port(definition.ide_type, exclude=reserved)
        started = await self.starter_factory.start_ide(definition.ide_type, port, workspace_path, options)

        self._ide_status[port] = "starting"
        self._ide_types[port] = definition.ide_type
        self._ide_workspaces[port] = workspace_path

        await self._publish(ide_started(port, definition.ide_type.value, workspace_path))
        logger.info("ide started", port=port, ide_type=definition.ide_type.value, pid=started.pid)
        return started.to_dict()

    async def switch_to_ide(self, port: int) -> dict[str, Any]:
        await self._ensure_initialized()

        if port == self.active_port:
            return {"port": port, "previous_port": port, "already_active": True}

        if port not in self._ide_status:
            ide_type = type_for_port(port)
            detected = await self.detector_factory.get_detector(ide_type).probe(port) if ide_type else None
            if detected is None:
                raise IDENotFoundError(f"No IDE found on port {port}")
            self._ide_types[port] = detected.ide_type

        previous_port = self.active_port
        self._set_active(port)
        await self._publish(active_ide_changed(port, previous_port, source=MANAGER_SOURCE))
        logger.info("switched active ide", port=port, previous_port=previous_port)
        return {"port": port, "previous_port": previous_port, "already_active": False}

    async def stop_ide(self, port: int) -> bool:
        """Stop a started IDE and forget a tracked one. False when the port is unknown."""
        stopped = await self.starter_factory.stop_ide(port)
        if not stopped and port not in self._ide_status:
            return False

        ide_type = self._ide_types.pop(port, None)
        self._ide_status.pop(port, None)
        self._ide_workspaces.pop(port, None)

        if self.active_port == port:
            self.active_port = None
            remaining = sorted(self._ide_status)
            if remaining:
                self._set_active(remaining[0])

        await self._publish(ide_stopped(port, ide_type.value if ide_type else None))
        return True

    async def get_active_ide(self) -> dict[str, Any] | None:
        await self._ensure_initialized()
        if self.active_port is None:
            return None
        for ide in await self.get_available_ides():
            if ide["port"] == self.active_port:
                return ide
        ide_type = self._ide_types.get(self.active_port)
        return {
            "port": self.active_port,
            "ide_type": ide_type.value if ide_type else None,
            "status": "active",
            "version": None,
            "source": "event",
            "active": True,
            "workspace_path": self._ide_workspaces.get(self.active_port),
        }

    def get_active_port(self) -> int | None:
        return self.active_port

    def get_ide_type(self, port: int) -> str | None:
        ide_type = self._ide_types.get(port) or type_for_port(port)
        return ide_type.value if ide_type else None

    def get_status(self) -> dict[str, Any]:
        return {
            "initialized": self._initialized,
            "active_port": self.active_port,
            "total": len(self._ide_status),
            "ides": {
                port: {"status": status, "ide_type": self.get_ide_type(port)}
                for port, status in sorted(self._ide_status.items())
            },
        }

    async def send_message(self, message: str) -> bool:
        """Record a message as delivered to the active IDE. False when none is active."""
        if self.active_port is None:
            return False
        self._delivered.append(
            DeliveredMessage(port=self.active_port, content=message, delivered_at=datetime.now(timezone.utc))
        )
        logger.debug("message delivered to ide", port=self.active_port)
        return True

    def delivered_messages(self, port: int | None = None) -> list[DeliveredMessage]:
        return [m for m in self._delivered if port is None or m.port == port]

    async def shutdown(self) -> None:
        await self.starter_factory.stop_all()
        await self.detector_factory.aclose()
