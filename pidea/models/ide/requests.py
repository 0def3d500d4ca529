from typing import Any

from pydantic import BaseModel, Field


class StartIDERequest(BaseModel):
    ide_type: str = Field("cursor", description="One of: cursor, vscode, windsurf")
    workspace_path: str | None = Field(None, description="Workspace folder to open")
    options: dict[str, Any] = Field(default_factory=dict)
