import asyncio

import structlog

from pidea.db.analysis_repo import AnalysisRepo
from pidea.events.analysis_events import (
    create_analysis_completed_event,
    create_analysis_failed_event,
    create_analysis_queued_event,
)
from pidea.models.analysis.enums import AnalysisCategory
from pidea.models.analysis.models import Analysis, AnalysisOutcome
from pidea.models.analysis.work_queue import AnalysisJob
from pidea.models.project.models import Project
from pidea.services.event_bus import EventBus
from pidea.steps.step_registry import StepRegistry
from utils import new_id, not_none


logger = structlog.get_logger(__name__)


class AnalysisQueueService:
    """Service to run queued analysis jobs through their category's step"""

    def __init__(
        self,
        analysis_repo: AnalysisRepo,
        step_registry: StepRegistry,
        event_bus: EventBus,
    ) -> None:
        self.analysis_repo = analysis_repo
        self.step_registry = step_registry
        self.event_bus = event_bus
        self._queue: asyncio.Queue[AnalysisJob] | None = None
        self._pending: list[AnalysisJob] = []
        self._processing = False
        self._processing_task: asyncio.Task | None = None

    async def enqueue(self, project: Project, category: AnalysisCategory) -> Analysis:
        """Create a pending analysis record and queue it for processing"""
        analysis = self.analysis_repo.create_analysis(new_id(), project.id, category)
        job = AnalysisJob.make_analysis_job(analysis, project)

        if self._queue is not None:
            await self._queue.put(job)
        else:
            self._pending.append(job)

        await self.event_bus.publish_event(create_analysis_queued_event(analysis))
        logger.info("analysis queued", analysis_id=analysis.id, project_id=project.id, category=category.value)
        return analysis

    def queue_size(self) -> int:
        """Get the current size of the queue"""
        if self._queue is None:
            return len(self._pending)
        return self._queue.qsize()

    def start_processing(self) -> None:
        """Start processing analysis jobs in the background"""
        if self._processing:
            return

        self._queue = asyncio.Queue()
        for job in self._pending:
            self._queue.put_nowait(job)
        self._pending.clear()

        self._processing = True
        self._processing_task = asyncio.create_task(self._process_queue_loop())

    async def stop_processing(self) -> None:
        """Stop processing analysis jobs"""
        if not self._processing or not self._processing_task:
            return

        self._processing = False
        self._processing_task.cancel()
        try:
            await self._processing_task
        except asyncio.CancelledError:
            pass  # Expected on cancellation

        while self._queue is not None and not self._queue.empty():
            self._pending.append(self._queue.get_nowait())
        self._queue = None
        self._processing_task = None

    async def run_now(self, job: AnalysisJob) -> Analysis:
        """Process one job inline and return the stored analysis"""
        self.analysis_repo.mark_running(job.analysis_id)
        context = {
            "project_id": job.project_id,
            "analysis_id": job.analysis_id,
            "workspace_path": job.workspace_path,
        }

        step_result = await self.step_registry.execute_step(job.category.step_name, context)

        if step_result.success:
            outcome = AnalysisOutcome.from_result(step_result.result or {})
            self.analysis_repo.mark_completed(job.analysis_id, outcome, step_result.duration_ms or 0)
            analysis = not_none(self.analysis_repo.get_analysis(job.analysis_id), f"Analysis {job.analysis_id}")
            await self.event_bus.publish_event(create_analysis_completed_event(analysis))
            logger.info("analysis completed", analysis_id=job.analysis_id, score=outcome.overall_score)
            return analysis

        error = step_result.error or "Analysis step failed"
        self.analysis_repo.mark_failed(job.analysis_id, error)
        await self.event_bus.publish_event(
            create_analysis_failed_event(job.analysis_id, job.project_id, job.category.value, error)
        )
        logger.warning("analysis failed", analysis_id=job.analysis_id, error=error)
        return not_none(self.analysis_repo.get_analysis(job.analysis_id), f"Analysis {job.analysis_id}")

    async def drain(self) -> int:
        """Run every pending job inline. Used when the background loop is not running."""
        processed = 0
        while self._pending:
            await self.run_now(self._pending.pop(0))
            processed += 1
        return processed

    async def _process_queue_loop(self) -> None:
        """Main loop to process queued jobs"""
        while self._processing:
            try:
                job = await self._queue.get()

                try:
                    await self.run_now(job)
                except Exception as e:
                    logger.exception("error processing analysis job", analysis_id=job.analysis_id)
                    self.analysis_repo.mark_failed(job.analysis_id, str(e))
                    await self.event_bus.publish_event(
                        create_analysis_failed_event(job.analysis_id, job.project_id, job.category.value, str(e))
                    )

            except asyncio.CancelledError:
                logger.info("analysis queue processing loop cancelled")
                break
            except Exception:
                logger.exception("unexpected error in analysis queue processing")
                await asyncio.sleep(1)
