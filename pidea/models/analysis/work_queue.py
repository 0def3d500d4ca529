from dataclasses import dataclass

from pidea.models.analysis.enums import AnalysisCategory
from pidea.models.analysis.models import Analysis
from pidea.models.project.models import Project


@dataclass
class AnalysisJob:
    """Represents a queued analysis run"""
    analysis_id: str
    project_id: str
    category: AnalysisCategory
    workspace_path: str

    @staticmethod
    def make_analysis_job(analysis: Analysis, project: Project) -> 'AnalysisJob':
        return AnalysisJob(
            analysis_id=analysis.id,
            project_id=project.id,
            category=analysis.analysis_type,
            workspace_path=project.workspace_path,
        )
