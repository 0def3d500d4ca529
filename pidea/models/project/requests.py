from typing import Any

from pydantic import BaseModel, Field


class CreateProjectRequest(BaseModel):
    name: str = Field(..., min_length=1)
    workspace_path: str = Field(..., min_length=1, description="Absolute path of the workspace on disk")
    description: str | None = None
    type: str = "development"
    ide_type: str = "cursor"
    ide_port: int | None = None
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
    priority: int = Field(0, ge=0, le=10)
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateProjectRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    ide_type: str | None = None
    ide_port: int | None = None
    ide_status: str | None = None
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
    status: str | None = None
    priority: int | None = Field(None, ge=0, le=10)
    metadata: dict[str, Any] | None = None


class CreateProjectInterfaceRequest(BaseModel):
    interface_type: str = Field(..., description="One of: ide, editor, terminal, browser")
    interface_id: str = Field(..., min_length=1, description="Identifier of the interface instance, e.g. 'cursor-9222'")
    name: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)
