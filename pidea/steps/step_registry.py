import asyncio
import importlib
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import structlog

from pidea.steps.service_registry import ServiceRegistry


logger = structlog.get_logger(__name__)

STANDARD_CATEGORIES = (
    "analysis",
    "chat",
    "ide",
    "project",
    "git",
    "task",
    "generate",
    "refactoring",
    "testing",
    "documentation",
)
DEFAULT_CATEGORY = "task"
REQUIRED_CONFIG_FIELDS = ("name", "description", "type")

# Steps matching these must never run concurrently with others
CRITICAL_STEP_KEYWORDS = (
    "send_message",
    "create_chat",
    "task_execution",
    "workflow_execution",
    "analysis_execution",
    "refactoring",
    "testing",
    "deployment",
)
WORKFLOW_CONTEXT_KEYS = ("workflow_id", "task_id", "analysis_id")

CATEGORIES_DIR = os.path.join(os.path.dirname(__file__), "categories")

StepExecutor = Callable[["StepContext", dict[str, Any]], Awaitable[Any]]


class StepError(Exception):
    pass


class StepValidationError(StepError):
    pass


class StepNotFoundError(StepError):
    def __init__(self, name: str) -> None:
        super().__init__(f'Step "{name}" not found')
        self.name = name


def is_valid_category(category: str) -> bool:
    return category in STANDARD_CATEGORIES


def validate_step_config(config: Any) -> None:
    if not isinstance(config, dict):
        raise StepValidationError("Step configuration must be an object")
    for required in REQUIRED_CONFIG_FIELDS:
        if not config.get(required):
            raise StepValidationError(f'Step configuration must have a "{required}" property')


class StepContext(dict):
    """Context values for one step execution, with access to registered services"""

    def __init__(self, values: dict[str, Any] | None = None, service_registry: ServiceRegistry | None = None) -> None:
        super().__init__(values or {})
        self._service_registry = service_registry

    def get_service(self, name: str) -> Any:
        if self._service_registry is None:
            raise StepError(f'Service "{name}" not available, no service registry configured')
        return self._service_registry.get_service(name)


@dataclass
class RegisteredStep:
    name: str
    config: dict[str, Any]
    category: str
    executor: StepExecutor | None
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None
    status: str = "active"
    execution_count: int = 0
    last_executed: datetime | None = None
    last_duration: int | None = None
    last_error: str | None = None

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "type": "step",
            "category": self.category,
            "version": self.config.get("version", "1.0.0"),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "description": self.config.get("description"),
            "type": self.config.get("type"),
            "version": self.metadata["version"],
            "dependencies": list(self.config.get("dependencies", [])),
            "status": self.status,
            "execution_count": self.execution_count,
            "last_executed": self.last_executed.isoformat() if self.last_executed else None,
        }


@dataclass
class StepResult:
    success: bool
    step: str
    result: Any = None
    error: str | None = None
    error_type: str | None = None
    duration_ms: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    execution_mode: str = "individual"

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "step": self.step,
            "result": self.result,
            "error": self.error,
            "error_type": self.error_type,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat(),
            "execution_mode": self.execution_mode,
        }


@dataclass
class ResultBucket:
    successful: list[StepResult] = field(default_factory=list)
    failed: list[StepResult] = field(default_factory=list)

    def add(self, result: StepResult) -> None:
        (self.successful if result.success else self.failed).append(result)


@dataclass
class BatchResult:
    total: int
    execution_mode: str
    successful: list[StepResult] = field(default_factory=list)
    failed: list[StepResult] = field(default_factory=list)
    critical: ResultBucket = field(default_factory=ResultBucket)
    parallel: ResultBucket = field(default_factory=ResultBucket)
    classification: dict[str, Any] = field(default_factory=dict)
    duration_ms: int = 0

    def add(self, result: StepResult) -> None:
        (self.successful if result.success else self.failed).append(result)


class StepRegistry:
    def __init__(self, service_registry: ServiceRegistry | None = None) -> None:
        self._steps: dict[str, RegisteredStep] = {}
        self._categories: dict[str, set[str]] = {}
        self.service_registry = service_registry
        self._execution_stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> dict[str, int]:
        return {
            "total_executions": 0,
            "sequential_executions": 0,
            "parallel_executions": 0,
            "total_execution_time": 0,
            "average_execution_time": 0,
        }

    @staticmethod
    def _normalize_name(name: str) -> str:
        # "chat/get_chat_history_step" -> "get_chat_history_step"
        return name.rsplit("/", 1)[-1]

    def register_step(
        self,
        name: str,
        config: dict[str, Any],
        category: str | None = None,
        executor: StepExecutor | None = None,
    ) -> RegisteredStep:
        final_category = category or DEFAULT_CATEGORY
        if not is_valid_category(final_category):
            raise StepValidationError(
                f"Invalid category: {final_category}. Valid categories: {', '.join(STANDARD_CATEGORIES)}"
            )
        validate_step_config(config)

        step = RegisteredStep(
            name=name,
            config=dict(config),
            category=final_category,
            executor=executor if callable(executor) else None,
        )
        self._steps[name] = step
        self._categories.setdefault(final_category, set()).add(name)
        return step

    def get_step(self, name: str) -> RegisteredStep:
        step_name = self._normalize_name(name)
        step = self._steps.get(step_name)
        if step is None:
            raise StepNotFoundError(step_name)
        return step

    def has_step(self, name: str) -> bool:
        return self._normalize_name(name) in self._steps

    def get_steps_by_category(self, category: str) -> list[RegisteredStep]:
        return [self._steps[name] for name in sorted(self._categories.get(category, set()))]

    def get_all_steps(self) -> list[RegisteredStep]:
        return list(self._steps.values())

    def get_categories(self) -> list[str]:
        return list(self._categories)

    async def execute_step(
        self,
        name: str,
        context: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> StepResult:
        step_name = self._normalize_name(name)
        started = time.monotonic()
        step: RegisteredStep | None = None
        try:
            step = self.get_step(step_name)
            if step.status != "active":
                raise StepError(f'Step "{step.name}" is not active (status: {step.status})')
            if step.executor is None:
                raise StepError(f'No executor found for step "{step.name}"')

            step_context = StepContext(context, self.service_registry)
            logger.info("executing step", step=step.name)
            result = await step.executor(step_context, options or {})
            duration_ms = int((time.monotonic() - started) * 1000)

            step.execution_count += 1
            step.last_executed = datetime.now(timezone.utc)
            step.last_duration = duration_ms
            logger.info("step executed", step=step.name, duration_ms=duration_ms)
            return StepResult(success=True, step=step.name, result=result, duration_ms=duration_ms)
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.error("step execution failed", step=step_name, error=str(e))
            if step is not None:
                step.execution_count += 1
                step.last_executed = datetime.now(timezone.utc)
                step.last_duration = duration_ms
                step.last_error = str(e)
            return StepResult(
                success=False,
                step=step_name,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
            )

    def is_critical_step(self, name: str, context: dict[str, Any]) -> bool:
        lowered = name.lower()
        if "workflow" in lowered or any(keyword in lowered for keyword in CRITICAL_STEP_KEYWORDS):
            return True
        if any(context.get(key) for key in WORKFLOW_CONTEXT_KEYS):
            return True
        return context.get("execution_mode") == "workflow"

    def classify_steps(self, names: list[str], context: dict[str, Any]) -> tuple[list[str], list[str]]:
        critical, non_critical = [], []
        for name in names:
            (critical if self.is_critical_step(name, context) else non_critical).append(name)
        return critical, non_critical

    async def execute_steps(
        self,
        names: list[str],
        context: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> BatchResult:
        """Run critical steps one by one, then the rest concurrently"""
        context = context or {}
        options = options or {}
        started = time.monotonic()

        try:
            critical, non_critical = self.classify_steps(names, context)
        except Exception:
            logger.exception("step classification failed, falling back to sequential execution")
            return await self.execute_steps_sequential(names, context, options)

        batch = BatchResult(
            total=len(names),
            execution_mode="hybrid",
            classification={
                "critical_count": len(critical),
                "non_critical_count": len(non_critical),
                "parallelization_ratio": len(non_critical) / len(names) if names else 0.0,
            },
        )

        if critical:
            sequential = await self.execute_steps_sequential(critical, context, options)
            for result in sequential.successful + sequential.failed:
                batch.critical.add(result)
                batch.add(result)
            self._execution_stats["sequential_executions"] += len(critical)

        if non_critical:
            results = await asyncio.gather(*(self.execute_step(name, context, options) for name in non_critical))
            for result in results:
                result.execution_mode = "parallel"
                batch.parallel.add(result)
                batch.add(result)
            self._execution_stats["parallel_executions"] += len(non_critical)

        batch.duration_ms = int((time.monotonic() - started) * 1000)
        self._update_execution_statistics(batch.duration_ms)
        logger.info(
            "step batch completed",
            total=batch.total,
            successful=len(batch.successful),
            failed=len(batch.failed),
            duration_ms=batch.duration_ms,
        )
        return batch

    async def execute_steps_sequential(
        self,
        names: list[str],
        context: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> BatchResult:
        options = options or {}
        batch = BatchResult(total=len(names), execution_mode="sequential")
        for name in names:
            result = await self.execute_step(name, context, options)
            result.execution_mode = "sequential"
            batch.add(result)
            if not result.success and options.get("stop_on_error"):
                break
        return batch

    def _update_execution_statistics(self, duration_ms: int) -> None:
        stats = self._execution_stats
        stats["total_executions"] += 1
        stats["total_execution_time"] += duration_ms
        stats["average_execution_time"] = round(stats["total_execution_time"] / stats["total_executions"])

    def get_execution_statistics(self) -> dict[str, Any]:
        stats = dict(self._execution_stats)
        executed = stats["sequential_executions"] + stats["parallel_executions"]
        stats["parallelization_ratio"] = stats["parallel_executions"] / executed if executed else 0.0
        stats["sequential_ratio"] = stats["sequential_executions"] / executed if executed else 0.0
        return stats

    def reset_execution_statistics(self) -> None:
        self._execution_stats = self._empty_stats()
        logger.info("step execution statistics reset")

    def update_step(self, name: str, config_changes: dict[str, Any]) -> RegisteredStep:
        step = self.get_step(name)
        merged = {**step.config, **config_changes}
        validate_step_config(merged)
        step.config = merged
        step.updated_at = datetime.now(timezone.utc)
        return step

    def remove_step(self, name: str) -> bool:
        step = self.get_step(name)
        del self._steps[step.name]
        members = self._categories.get(step.category)
        if members is not None:
            members.discard(step.name)
            if not members:
                del self._categories[step.category]
        logger.info("step removed", step=step.name)
        return True

    def get_step_status(self, name: str) -> str:
        return self.get_step(name).status

    def set_step_status(self, name: str, status: str) -> RegisteredStep:
        step = self.get_step(name)
        step.status = status
        step.updated_at = datetime.now(timezone.utc)
        return step

    def get_step_stats(self, name: str) -> dict[str, Any]:
        step = self.get_step(name)
        return {
            "name": step.name,
            "category": step.category,
            "execution_count": step.execution_count,
            "last_executed": step.last_executed.isoformat() if step.last_executed else None,
            "last_duration": step.last_duration,
            "last_error": step.last_error,
            "status": step.status,
        }

    def get_stats(self) -> dict[str, int]:
        steps = self._steps.values()
        return {
            "total_steps": len(self._steps),
            "categories": len(self._categories),
            "active_steps": sum(1 for s in steps if s.status == "active"),
            "inactive_steps": sum(1 for s in steps if s.status == "inactive"),
            "total_executions": sum(s.execution_count for s in steps),
        }

    def load_builtin_steps(self) -> int:
        """Register every step module found under pidea/steps/categories/<category>/"""
        loaded = 0
        for category in sorted(os.listdir(CATEGORIES_DIR)):
            category_path = os.path.join(CATEGORIES_DIR, category)
            if not os.path.isdir(category_path) or category.startswith("_"):
                continue

            for file_name in sorted(os.listdir(category_path)):
                if not file_name.endswith(".py") or file_name.startswith("_"):
                    continue
                module_name = f"pidea.steps.categories.{category}.{file_name[:-3]}"
                try:
                    module = importlib.import_module(module_name)
                    config = getattr(module, "config", {})
                    step_name = config.get("name") or file_name[:-3]
                    self.register_step(step_name, config, category, getattr(module, "execute", None))
                    loaded += 1
                except (ImportError, StepError) as e:
                    logger.error("failed to load step", module=module_name, category=category, error=str(e))

        logger.info("builtin steps loaded", count=loaded, categories=len(self._categories))
        return loaded
