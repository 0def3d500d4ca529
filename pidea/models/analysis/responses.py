from datetime import datetime
from typing import Any

from pydantic import BaseModel

from pidea.models.analysis.enums import AnalysisCategory, AnalysisStatus


class AnalysisResponse(BaseModel):
    id: str
    project_id: str
    analysis_type: AnalysisCategory
    status: AnalysisStatus
    result: dict[str, Any] | None
    error: str | None
    execution_time: int | None
    overall_score: float | None
    critical_issues_count: int
    warnings_count: int
    recommendations_count: int
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None


class AnalysisHistoryResponse(BaseModel):
    analyses: list[AnalysisResponse]


class AnalysisQueuedResponse(BaseModel):
    analysis_id: str
    project_id: str
    analysis_type: AnalysisCategory
    status: AnalysisStatus
    queue_size: int


class AnalysisCategoryResponse(BaseModel):
    name: str
    step: str
    description: str


class AnalysisCategoryListResponse(BaseModel):
    categories: list[AnalysisCategoryResponse]
