"""Tests for the step registry and its execution modes."""

from datetime import datetime

import pytest

from pidea.steps.service_registry import ServiceNotFoundError, ServiceRegistry
from pidea.steps.step_registry import (
    StepContext,
    StepError,
    StepNotFoundError,
    StepRegistry,
    StepValidationError,
)


def _config(name: str, **extra) -> dict:
    return {"name": name, "description": f"{name} description", "type": "test", **extra}


def _recording_step(calls: list, result=None, error: Exception | None = None):
    async def execute(context, options):
        calls.append(context.get("marker"))
        if error is not None:
            raise error
        return result

    return execute


class TestServiceRegistry:
    """Test name based service lookup."""

    def test_register_and_get(self):
        registry = ServiceRegistry()
        registry.register("event_bus", object())
        assert registry.has_service("event_bus")
        assert registry.names() == ["event_bus"]

    def test_missing_service(self):
        with pytest.raises(ServiceNotFoundError, match='Service "missing" not found'):
            ServiceRegistry().get_service("missing")

    def test_context_without_registry(self):
        with pytest.raises(StepError, match="no service registry"):
            StepContext({}).get_service("event_bus")


class TestRegistration:
    """Test step registration and lookup."""

    def test_config_must_be_mapping(self):
        with pytest.raises(StepValidationError, match="Step configuration must be an object"):
            StepRegistry().register_step("bad", None, "chat")

    @pytest.mark.parametrize("missing", ["name", "description", "type"])
    def test_required_config_fields(self, missing):
        config = _config("step")
        del config[missing]
        with pytest.raises(StepValidationError, match=f'must have a "{missing}" property'):
            StepRegistry().register_step("step", config, "chat")

    def test_invalid_category(self):
        with pytest.raises(StepValidationError, match="Invalid category: nonsense"):
            StepRegistry().register_step("step", _config("step"), "nonsense")

    def test_default_category(self):
        step = StepRegistry().register_step("step", _config("step"))
        assert step.category == "task"

    def test_category_prefix_is_stripped(self):
        registry = StepRegistry()
        registry.register_step("get_chat_history_step", _config("get_chat_history_step"), "chat")

        assert registry.get_step("chat/get_chat_history_step").name == "get_chat_history_step"
        assert registry.has_step("chat/get_chat_history_step")

    def test_unknown_step(self):
        with pytest.raises(StepNotFoundError, match='Step "ghost" not found'):
            StepRegistry().get_step("ghost")

    def test_categories_and_remove(self):
        registry = StepRegistry()
        registry.register_step("a", _config("a"), "chat")
        registry.register_step("b", _config("b"), "ide")

        assert sorted(registry.get_categories()) == ["chat", "ide"]
        assert [s.name for s in registry.get_steps_by_category("chat")] == ["a"]

        assert registry.remove_step("a")
        assert registry.get_categories() == ["ide"]

    def test_update_step_revalidates(self):
        registry = StepRegistry()
        registry.register_step("a", _config("a"), "chat")

        registry.update_step("a", {"version": "2.0.0"})
        assert registry.get_step("a").metadata["version"] == "2.0.0"

        with pytest.raises(StepValidationError):
            registry.update_step("a", {"description": None})


class TestExecution:
    """Test single step execution."""

    @pytest.mark.asyncio
    async def test_success_updates_stats(self):
        registry = StepRegistry()
        calls = []
        registry.register_step("a", _config("a"), "chat", _recording_step(calls, result={"ok": True}))

        result = await registry.execute_step("a", {"marker": 1})

        assert result.success
        assert result.result == {"ok": True}
        assert result.duration_ms is not None
        assert calls == [1]
        stats = registry.get_step_stats("a")
        assert stats["execution_count"] == 1
        assert datetime.fromisoformat(stats["last_executed"]) == registry.get_step("a").last_executed

    @pytest.mark.asyncio
    async def test_failure_is_returned_not_raised(self):
        registry = StepRegistry()
        registry.register_step("a", _config("a"), "chat", _recording_step([], error=ValueError("bad input")))

        result = await registry.execute_step("a")

        assert not result.success
        assert result.error == "bad input"
        assert result.error_type == "ValueError"
        assert registry.get_step_stats("a")["last_error"] == "bad input"

    @pytest.mark.asyncio
    async def test_unknown_step_result(self):
        result = await StepRegistry().execute_step("ghost")
        assert not result.success
        assert result.error_type == "StepNotFoundError"

    @pytest.mark.asyncio
    async def test_missing_executor(self):
        registry = StepRegistry()
        registry.register_step("a", _config("a"), "chat")

        result = await registry.execute_step("a")
        assert not result.success
        assert 'No executor found for step "a"' in result.error

    @pytest.mark.asyncio
    async def test_inactive_step_not_executed(self):
        registry = StepRegistry()
        calls = []
        registry.register_step("a", _config("a"), "chat", _recording_step(calls))
        registry.set_step_status("a", "inactive")

        result = await registry.execute_step("a")

        assert not result.success
        assert calls == []
        assert registry.get_stats()["inactive_steps"] == 1

    @pytest.mark.asyncio
    async def test_context_exposes_services(self):
        services = ServiceRegistry()
        services.register("greeting", "hello")
        registry = StepRegistry(services)

        async def execute(context, options):
            return context.get_service("greeting")

        registry.register_step("a", _config("a"), "chat", execute)
        result = await registry.execute_step("a")
        assert result.result == "hello"


class TestBatchExecution:
    """Test hybrid and sequential batch execution."""

    def test_classification(self):
        registry = StepRegistry()
        critical, non_critical = registry.classify_steps(
            ["send_message_step", "list_ides_step", "workflow_runner"], {}
        )
        assert critical == ["send_message_step", "workflow_runner"]
        assert non_critical == ["list_ides_step"]

    def test_workflow_context_makes_everything_critical(self):
        registry = StepRegistry()
        assert registry.is_critical_step("list_ides_step", {"workflow_id": "w1"})
        assert registry.is_critical_step("list_ides_step", {"execution_mode": "workflow"})
        assert not registry.is_critical_step("list_ides_step", {"workflow_id": None})

    @pytest.mark.asyncio
    async def test_hybrid_execution(self):
        registry = StepRegistry()
        calls = []
        registry.register_step("send_message_step", _config("send_message_step"), "chat", _recording_step(calls, 1))
        registry.register_step("list_ides_step", _config("list_ides_step"), "ide", _recording_step(calls, 2))
        registry.register_step("list_chats_step", _config("list_chats_step"), "chat", _recording_step(calls, 3))

        batch = await registry.execute_steps(["send_message_step", "list_ides_step", "list_chats_step"])

        assert batch.execution_mode == "hybrid"
        assert batch.total == 3
        assert len(batch.successful) == 3
        assert [r.step for r in batch.critical.successful] == ["send_message_step"]
        assert {r.step for r in batch.parallel.successful} == {"list_ides_step", "list_chats_step"}
        assert all(r.execution_mode == "parallel" for r in batch.parallel.successful)
        assert batch.classification["critical_count"] == 1

        stats = registry.get_execution_statistics()
        assert stats["sequential_executions"] == 1
        assert stats["parallel_executions"] == 2
        assert stats["total_executions"] == 1

        registry.reset_execution_statistics()
        assert registry.get_execution_statistics()["parallel_executions"] == 0

    @pytest.mark.asyncio
    async def test_sequential_stop_on_error(self):
        registry = StepRegistry()
        calls = []
        registry.register_step("a", _config("a"), "chat", _recording_step(calls, error=RuntimeError("x")))
        registry.register_step("b", _config("b"), "chat", _recording_step(calls))

        batch = await registry.execute_steps_sequential(["a", "b"], {}, {"stop_on_error": True})

        assert len(batch.failed) == 1
        assert batch.successful == []
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_sequential_continues_by_default(self):
        registry = StepRegistry()
        registry.register_step("a", _config("a"), "chat", _recording_step([], error=RuntimeError("x")))
        registry.register_step("b", _config("b"), "chat", _recording_step([]))

        batch = await registry.execute_steps_sequential(["a", "b"])

        assert [r.step for r in batch.failed] == ["a"]
        assert [r.step for r in batch.successful] == ["b"]


class TestBuiltinSteps:
    """Test loading the bundled step modules."""

    def test_load_builtin_steps(self):
        registry = StepRegistry()
        loaded = registry.load_builtin_steps()

        assert loaded == len(registry.get_all_steps())
        assert {"analysis", "chat", "ide"} <= set(registry.get_categories())
        for name in (
            "get_chat_history_step",
            "send_message_step",
            "create_chat_step",
            "list_chats_step",
            "list_ides_step",
            "switch_ide_step",
            "start_ide_step",
            "project_analysis_step",
            "manifest_analysis_step",
            "code_quality_analysis_step",
        ):
            assert registry.has_step(name), name
