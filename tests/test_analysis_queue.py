"""Tests for the analysis work queue."""

import asyncio

import pytest

from pidea.models.analysis.enums import AnalysisCategory, AnalysisStatus
from pidea.models.project.requests import CreateProjectRequest
from pidea.services.analysis_queue_service import AnalysisQueueService
from pidea.services.event_bus import ALL_EVENTS, EventBus
from pidea.services.project_service import ProjectService
from pidea.steps.step_registry import StepRegistry


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def published(event_bus) -> list:
    events = []
    event_bus.subscribe(ALL_EVENTS, events.append)
    return events


@pytest.fixture
def queue_service(analysis_repo, event_bus) -> AnalysisQueueService:
    step_registry = StepRegistry()
    step_registry.load_builtin_steps()
    return AnalysisQueueService(analysis_repo, step_registry, event_bus)


@pytest.fixture
def project_service(project_repo, interface_repo) -> ProjectService:
    return ProjectService(project_repo=project_repo, interface_repo=interface_repo)


class TestAnalysisQueueService:
    """Test queueing and running analyses."""

    @pytest.mark.asyncio
    async def test_enqueue_then_drain(self, queue_service, project_service, analysis_repo, workspace, published):
        project = project_service.create_project(CreateProjectRequest(name="demo", workspace_path=str(workspace)))

        analysis = await queue_service.enqueue(project, AnalysisCategory.CODE_QUALITY)

        assert analysis.status == AnalysisStatus.PENDING
        assert queue_service.queue_size() == 1
        assert published[-1].event_type == "analysis.queued"

        assert await queue_service.drain() == 1
        assert queue_service.queue_size() == 0

        stored = analysis_repo.get_analysis(analysis.id)
        assert stored.status == AnalysisStatus.COMPLETED
        assert stored.overall_score == 99
        assert stored.started_at is not None
        assert stored.result["files_analyzed"] == 2
        assert published[-1].event_type == "analysis.completed"

    @pytest.mark.asyncio
    async def test_failed_step_marks_analysis_failed(
        self, queue_service, project_service, analysis_repo, tmp_path, published
    ):
        missing = tmp_path / "removed-later"
        missing.mkdir()
        project = project_service.create_project(CreateProjectRequest(name="demo", workspace_path=str(missing)))
        missing.rmdir()

        await queue_service.enqueue(project, AnalysisCategory.STRUCTURE)
        await queue_service.drain()

        history = analysis_repo.list_history(project.id)
        assert history[0].status == AnalysisStatus.FAILED
        assert "does not exist" in history[0].error
        assert analysis_repo.find_latest(project.id, AnalysisCategory.STRUCTURE) is None
        assert published[-1].event_type == "analysis.failed"

    @pytest.mark.asyncio
    async def test_background_processing(self, queue_service, project_service, analysis_repo, workspace):
        project = project_service.create_project(CreateProjectRequest(name="demo", workspace_path=str(workspace)))
        queue_service.start_processing()
        try:
            analysis = await queue_service.enqueue(project, AnalysisCategory.TECH_STACK)

            for _ in range(100):
                if analysis_repo.find_latest(project.id, AnalysisCategory.TECH_STACK) is not None:
                    break
                await asyncio.sleep(0.02)
        finally:
            await queue_service.stop_processing()

        latest = analysis_repo.find_latest(project.id, AnalysisCategory.TECH_STACK)
        assert latest.id == analysis.id
        assert latest.result["frameworks"] == ["fastapi"]

    @pytest.mark.asyncio
    async def test_stop_keeps_unprocessed_jobs(self, queue_service, project_service, workspace):
        project = project_service.create_project(CreateProjectRequest(name="demo", workspace_path=str(workspace)))
        await queue_service.enqueue(project, AnalysisCategory.STRUCTURE)

        await queue_service.stop_processing()

        assert queue_service.queue_size() == 1
