from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pidea.models.analysis.enums import AnalysisCategory, AnalysisStatus
from pidea.models.analysis.responses import AnalysisResponse


@dataclass
class Analysis:
    id: str
    project_id: str
    analysis_type: AnalysisCategory
    status: AnalysisStatus
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    execution_time: int | None = None
    overall_score: float | None = None
    critical_issues_count: int = 0
    warnings_count: int = 0
    recommendations_count: int = 0

    def to_response(self) -> AnalysisResponse:
        return AnalysisResponse(
            id=self.id,
            project_id=self.project_id,
            analysis_type=self.analysis_type,
            status=self.status,
            result=self.result,
            error=self.error,
            execution_time=self.execution_time,
            overall_score=self.overall_score,
            critical_issues_count=self.critical_issues_count,
            warnings_count=self.warnings_count,
            recommendations_count=self.recommendations_count,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )


@dataclass
class AnalysisOutcome:
    """Summary numbers extracted from an analysis step result"""
    result: dict[str, Any]
    overall_score: float | None
    critical_issues_count: int
    warnings_count: int
    recommendations_count: int

    @staticmethod
    def from_result(result: dict[str, Any]) -> "AnalysisOutcome":
        issues = result.get("issues") or []
        return AnalysisOutcome(
            result=result,
            overall_score=result.get("score"),
            critical_issues_count=sum(1 for i in issues if i.get("severity") == "critical"),
            warnings_count=sum(1 for i in issues if i.get("severity") == "warning"),
            recommendations_count=len(result.get("recommendations") or []),
        )
