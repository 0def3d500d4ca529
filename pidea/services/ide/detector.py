import asyncio
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx
import structlog

from pidea.services.ide.ide_types import (
    IDE_DEFINITIONS,
    IDEDefinition,
    IDEType,
    NoAvailablePortError,
    get_definition,
)
from pidea.settings import settings


logger = structlog.get_logger(__name__)

VERSION_PATTERN = re.compile(r"(Cursor|Code|VSCode|Windsurf)/(\d+\.\d+\.\d+)")

PortChecker = Callable[[str, int], Awaitable[bool]]


@dataclass
class DetectedIDE:
    port: int
    ide_type: IDEType
    status: str = "running"
    version: str | None = None
    source: str = "detected"
    workspace_path: str | None = None
    raw: dict = field(default_factory=dict)


def parse_version(payload: dict) -> str | None:
    for key in ("User-Agent", "Browser"):
        value = payload.get(key)
        if not isinstance(value, str):
            continue
        match = VERSION_PATTERN.search(value)
        if match:
            return match.group(2)
    return None


async def is_port_in_use(host: str, port: int) -> bool:
    """True when anything accepts a TCP connection on the port"""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=settings.ide_probe_timeout)
    except (OSError, asyncio.TimeoutError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


class IDEDetector:
    """Probes the DevTools endpoint of every port in one IDE type's range"""

    def __init__(self, definition: IDEDefinition, http_client: httpx.AsyncClient, host: str | None = None) -> None:
        self.definition = definition
        self._http_client = http_client
        self._host = host or settings.ide_host

    async def probe(self, port: int) -> DetectedIDE | None:
        url = f"http://{self._host}:{port}/json/version"
        try:
            response = await self._http_client.get(url, timeout=settings.ide_probe_timeout)
        except httpx.HTTPError:
            return None

        if response.status_code != 200:
            return None

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        return DetectedIDE(
            port=port,
            ide_type=self.definition.ide_type,
            version=parse_version(payload),
            raw=payload,
        )

    async def detect(self) -> list[DetectedIDE]:
        results = await asyncio.gather(*(self.probe(port) for port in self.definition.ports))
        found = [r for r in results if r is not None]
        if found:
            logger.debug("ides detected", ide_type=self.definition.ide_type.value, ports=[d.port for d in found])
        return found


class IDEDetectorFactory:
    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        port_checker: PortChecker | None = None,
        host: str | None = None,
    ) -> None:
        self._http_client = http_client or httpx.AsyncClient()
        self._port_checker = port_checker or is_port_in_use
        self._host = host or settings.ide_host
        self._detectors: dict[IDEType, IDEDetector] = {
            ide_type: IDEDetector(definition, self._http_client, self._host)
            for ide_type, definition in IDE_DEFINITIONS.items()
        }

    def get_detector(self, ide_type: str | IDEType) -> IDEDetector:
        return self._detectors[get_definition(ide_type).ide_type]

    async def detect(self, ide_type: str | IDEType) -> list[DetectedIDE]:
        return await self.get_detector(ide_type).detect()

    async def detect_all(self) -> list[DetectedIDE]:
        per_type = await asyncio.gather(*(d.detect() for d in self._detectors.values()))
        detected = [ide for found in per_type for ide in found]
        return sorted(detected, key=lambda ide: ide.port)

    async def find_available_port(self, ide_type: str | IDEType, exclude: set[int] | None = None) -> int:
        """First port in the type's range that is not excluded and has nothing listening"""
        definition = get_definition(ide_type)
        exclude = exclude or set()
        for port in definition.ports:
            if port in exclude:
                continue
            if not await self._port_checker(self._host, port):
                return port
        raise NoAvailablePortError(
            f"No free port for {definition.name} in range {definition.port_start}-{definition.port_end}"
        )

    async def aclose(self) -> None:
        await self._http_client.aclose()
