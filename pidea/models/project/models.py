from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pidea.models.project.responses import ProjectInterfaceResponse, ProjectResponse


PROJECT_STATUSES = ("active", "archived", "deleted")
INTERFACE_TYPES = ("ide", "editor", "terminal", "browser")
INTERFACE_STATUSES = ("inactive", "active", "error")


@dataclass
class Project:
    id: str
    name: str
    workspace_path: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    type: str = "development"
    ide_type: str = "cursor"
    ide_port: int | None = None
    ide_status: str = "inactive"
    backend_port: int | None = None
    frontend_port: int | None = None
    database_port: int | None = None
    start_command: str | None = None
    build_command: str | None = None
    dev_command: str | None = None
    test_command: str | None = None
    framework: str | None = None
    language: str | None = None
    package_manager: str | None = None
    status: str = "active"
    priority: int = 0
    last_accessed: datetime | None = None
    access_count: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_response(self) -> ProjectResponse:
        return ProjectResponse(
            id=self.id,
            name=self.name,
            description=self.description,
            workspace_path=self.workspace_path,
            type=self.type,
            ide_type=self.ide_type,
            ide_port=self.ide_port,
            ide_status=self.ide_status,
            backend_port=self.backend_port,
            frontend_port=self.frontend_port,
            database_port=self.database_port,
            start_command=self.start_command,
            build_command=self.build_command,
            dev_command=self.dev_command,
            test_command=self.test_command,
            framework=self.framework,
            language=self.language,
            package_manager=self.package_manager,
            status=self.status,
            priority=self.priority,
            last_accessed=self.last_accessed,
            access_count=self.access_count,
            metadata=self.metadata,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass
class ProjectInterface:
    """An integration (IDE, editor, terminal, browser) attached to a project"""
    id: str
    project_id: str
    interface_type: str
    interface_id: str
    created_at: datetime
    updated_at: datetime
    name: str | None = None
    config: dict[str, Any] = field(default_factory=dict)
    status: str = "inactive"

    def to_response(self) -> ProjectInterfaceResponse:
        return ProjectInterfaceResponse(
            id=self.id,
            project_id=self.project_id,
            interface_type=self.interface_type,
            interface_id=self.interface_id,
            name=self.name,
            config=self.config,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
