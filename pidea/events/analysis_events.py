from pidea.events.event import Event
from pidea.models.analysis.models import Analysis


def create_analysis_queued_event(analysis: Analysis) -> Event:
    """Create an event when an analysis is queued"""
    return Event(
        event_type="analysis.queued",
        content={
            "analysis_id": analysis.id,
            "project_id": analysis.project_id,
            "analysis_type": analysis.analysis_type.value,
        },
        metadata={"project_id": analysis.project_id},
    )


def create_analysis_completed_event(analysis: Analysis) -> Event:
    """Create an event when an analysis finishes successfully"""
    return Event(
        event_type="analysis.completed",
        content={
            "analysis_id": analysis.id,
            "project_id": analysis.project_id,
            "analysis_type": analysis.analysis_type.value,
            "overall_score": analysis.overall_score,
            "execution_time": analysis.execution_time,
        },
        metadata={"project_id": analysis.project_id},
    )


def create_analysis_failed_event(analysis_id: str, project_id: str, analysis_type: str, error: str) -> Event:
    """Create an event when an analysis fails"""
    return Event(
        event_type="analysis.failed",
        content={
            "analysis_id": analysis_id,
            "project_id": project_id,
            "analysis_type": analysis_type,
            "error": error,
        },
        metadata={"project_id": project_id},
    )
