from typing import Any

from pydantic import BaseModel, Field


class ExecuteStepRequest(BaseModel):
    context: dict[str, Any] = Field(default_factory=dict, description="Values passed to the step executor")
    options: dict[str, Any] = Field(default_factory=dict)
