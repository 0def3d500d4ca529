from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ProjectResponse(BaseModel):
    id: str
    name: str
    description: str | None
    workspace_path: str
    type: str
    ide_type: str
    ide_port: int | None
    ide_status: str
    backend_port: int | None
    frontend_port: int | None
    database_port: int | None
    start_command: str | None
    build_command: str | None
    dev_command: str | None
    test_command: str | None
    framework: str | None
    language: str | None
    package_manager: str | None
    status: str
    priority: int
    last_accessed: datetime | None
    access_count: int
    metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]


class ProjectInterfaceResponse(BaseModel):
    id: str
    project_id: str
    interface_type: str
    interface_id: str
    name: str | None
    config: dict[str, Any]
    status: str
    created_at: datetime
    updated_at: datetime


class ProjectInterfaceListResponse(BaseModel):
    interfaces: list[ProjectInterfaceResponse]
