from datetime import datetime

from pydantic import BaseModel


class IDEResponse(BaseModel):
    port: int
    ide_type: str | None
    status: str
    version: str | None
    source: str
    active: bool
    workspace_path: str | None


class IDEListResponse(BaseModel):
    ides: list[IDEResponse]
    total: int
    active_port: int | None


class ActiveIDEResponse(BaseModel):
    ide: IDEResponse | None


class StartedIDEResponse(BaseModel):
    port: int
    ide_type: str
    pid: int | None
    workspace_path: str | None
    status: str
    started_at: datetime


class SwitchIDEResponse(BaseModel):
    port: int
    previous_port: int | None
    already_active: bool


class PortRangeResponse(BaseModel):
    start: int
    end: int


class IDETypeResponse(BaseModel):
    type: str
    name: str
    display_name: str
    description: str
    startup_command: str
    port_range: PortRangeResponse
    supported_features: list[str]


class IDETypeListResponse(BaseModel):
    types: list[IDETypeResponse]
