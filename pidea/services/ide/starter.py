import asyncio
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from pidea.services.ide.ide_types import IDEDefinition, IDEStartError, IDEType, IDE_DEFINITIONS, get_definition
from pidea.settings import settings


logger = structlog.get_logger(__name__)


@dataclass
class StartedIDE:
    port: int
    ide_type: IDEType
    pid: int | None
    workspace_path: str | None
    process: asyncio.subprocess.Process | None = field(default=None, repr=False)
    status: str = "starting"
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "port": self.port,
            "ide_type": self.ide_type.value,
            "pid": self.pid,
            "workspace_path": self.workspace_path,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
        }


class IDEStarter:
    """Launches one IDE type with remote debugging enabled"""

    def __init__(self, definition: IDEDefinition, user_data_dir: str | None = None) -> None:
        self.definition = definition
        self._user_data_dir = user_data_dir or settings.ide_user_data_dir
        self._processes: dict[int, StartedIDE] = {}

    def profile_dir(self, port: int) -> str:
        return os.path.join(self._user_data_dir, f"{self.definition.ide_type.value}-{port}")

    def build_command(self, port: int, workspace_path: str | None = None, options: dict[str, Any] | None = None) -> list[str]:
        options = options or {}
        command = [
            options.get("executable") or self.definition.startup_command,
            f"--remote-debugging-port={port}",
            f"--user-data-dir={self.profile_dir(port)}",
        ]
        command.extend(options.get("extra_args", []))
        if workspace_path:
            command.append(workspace_path)
        return command

    async def start(self, port: int, workspace_path: str | None = None, options: dict[str, Any] | None = None) -> StartedIDE:
        self._prune_exited()
        if port in self._processes:
            raise IDEStartError(f"An IDE is already running on port {port}")
        if not self.definition.owns_port(port):
            raise IDEStartError(
                f"Port {port} is outside the {self.definition.name} range "
                f"{self.definition.port_start}-{self.definition.port_end}"
            )

        command = self.build_command(port, workspace_path, options)
        os.makedirs(self.profile_dir(port), exist_ok=True)

        logger.info("starting ide", ide_type=self.definition.ide_type.value, port=port, command=command)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            raise IDEStartError(f"{self.definition.name} executable '{command[0]}' not found") from e
        except OSError as e:
            raise IDEStartError(f"Failed to start {self.definition.name}: {e}") from e

        started = StartedIDE(
            port=port,
            ide_type=self.definition.ide_type,
            pid=process.pid,
            workspace_path=workspace_path,
            process=process,
        )
        self._processes[port] = started
        return started

    async def stop(self, port: int, grace_period: float | None = None) -> bool:
        started = self._processes.pop(port, None)
        if started is None:
            return False

        process = started.process
        if process is None or process.returncode is not None:
            return True

        grace_period = settings.ide_stop_grace_period if grace_period is None else grace_period
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=grace_period)
        except asyncio.TimeoutError:
            logger.warning("ide did not exit in time, killing", port=port, pid=started.pid)
            process.kill()
            await process.wait()
        except ProcessLookupError:
            pass

        logger.info("ide stopped", port=port, pid=started.pid)
        return True

    def _prune_exited(self) -> None:
        for port, started in list(self._processes.items()):
            if started.process is not None and started.process.returncode is not None:
                logger.info("ide exited", port=port, pid=started.pid, returncode=started.process.returncode)
                del self._processes[port]

    def tracks(self, port: int) -> bool:
        return port in self._processes

    def get_running(self) -> list[StartedIDE]:
        return [s for s in self._processes.values() if s.process is None or s.process.returncode is None]

    def is_running(self, port: int) -> bool:
        return any(s.port == port for s in self.get_running())


class IDEStarterFactory:
    def __init__(self, user_data_dir: str | None = None) -> None:
        self._starters: dict[IDEType, IDEStarter] = {
            ide_type: IDEStarter(definition, user_data_dir)
            for ide_type, definition in IDE_DEFINITIONS.items()
        }

    def get_starter(self, ide_type: str | IDEType) -> IDEStarter:
        return self._starters[get_definition(ide_type).ide_type]

    async def start_ide(
        self,
        ide_type: str | IDEType,
        port: int,
        workspace_path: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> StartedIDE:
        return await self.get_starter(ide_type).start(port, workspace_path, options)

    async def stop_ide(self, port: int) -> bool:
        for starter in self._starters.values():
            if starter.tracks(port):
                return await starter.stop(port)
        return False

    async def stop_all(self) -> None:
        for ide in self.get_running_ides():
            await self.stop_ide(ide.port)

    def get_running_ides(self) -> list[StartedIDE]:
        running = [ide for starter in self._starters.values() for ide in starter.get_running()]
        return sorted(running, key=lambda ide: ide.port)
