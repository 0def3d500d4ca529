from datetime import datetime
from typing import Any

from pydantic import BaseModel


class StepResponse(BaseModel):
    name: str
    category: str
    description: str | None
    type: str | None
    version: str
    dependencies: list[str]
    status: str
    execution_count: int
    last_executed: datetime | None


class StepRegistryStatsResponse(BaseModel):
    total_steps: int
    categories: int
    active_steps: int
    inactive_steps: int
    total_executions: int


class StepListResponse(BaseModel):
    stats: StepRegistryStatsResponse
    categories: list[str]
    steps: list[StepResponse]


class StepResultResponse(BaseModel):
    success: bool
    step: str
    result: Any = None
    error: str | None = None
    error_type: str | None = None
    duration_ms: int | None = None
    timestamp: datetime
    execution_mode: str
