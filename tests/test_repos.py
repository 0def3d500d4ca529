"""Tests for the sqlite repositories."""

from uuid import uuid4

import pytest

from pidea.models.analysis.enums import AnalysisCategory, AnalysisStatus
from pidea.models.analysis.models import AnalysisOutcome
from pidea.models.chat.models import ChatMessage, ChatSession
from pidea.models.project.requests import CreateProjectInterfaceRequest, CreateProjectRequest
from pidea.services.project_service import ProjectConflictError, ProjectService, ProjectValidationError


class TestChatRepo:
    """Test session and message persistence."""

    def test_create_and_get_session(self, chat_repo):
        session = ChatSession(project_id="p1", metadata={"origin": "test"})
        chat_repo.create_session(session)

        loaded = chat_repo.get_session(session.id)
        assert loaded is not None
        assert loaded.project_id == "p1"
        assert loaded.metadata == {"origin": "test"}

    def test_get_session_scoped_to_user(self, chat_repo):
        session = ChatSession(user_id="someone-else")
        chat_repo.create_session(session)
        assert chat_repo.get_session(session.id) is None

    def test_messages_keep_insertion_order(self, chat_repo):
        session = chat_repo.create_session(ChatSession())
        for content in ("first", "second", "third"):
            chat_repo.add_message(session.id, ChatMessage(content=content, sender="user"))

        assert [m.content for m in chat_repo.get_messages(session.id)] == ["first", "second", "third"]
        assert [m.content for m in chat_repo.get_messages(session.id, limit=1, offset=1)] == ["second"]
        assert [m.content for m in chat_repo.get_messages(session.id, offset=2)] == ["third"]
        assert chat_repo.count_messages(session.id) == 3

    def test_list_sessions_hides_archived(self, chat_repo):
        active = chat_repo.create_session(ChatSession())
        archived = chat_repo.create_session(ChatSession())
        chat_repo.update_session(archived.id, status="archived")

        assert [s.id for s in chat_repo.list_sessions()] == [active.id]
        assert {s.id for s in chat_repo.list_sessions(include_archived=True)} == {active.id, archived.id}

    def test_list_sessions_by_project(self, chat_repo):
        chat_repo.create_session(ChatSession(project_id="a"))
        chat_repo.create_session(ChatSession(project_id="b"))

        sessions = chat_repo.list_sessions(project_id="a")
        assert [s.project_id for s in sessions] == ["a"]

    def test_delete_session_removes_messages(self, chat_repo):
        session = chat_repo.create_session(ChatSession())
        chat_repo.add_message(session.id, ChatMessage(content="bye", sender="user"))

        assert chat_repo.delete_session(session.id)
        assert chat_repo.count_messages(session.id) == 0
        assert not chat_repo.delete_session(session.id)


class TestProjectService:
    """Test project CRUD and interfaces through the service."""

    def _service(self, project_repo, interface_repo) -> ProjectService:
        return ProjectService(project_repo=project_repo, interface_repo=interface_repo)

    def test_create_normalizes_workspace(self, project_repo, interface_repo, tmp_path):
        service = self._service(project_repo, interface_repo)
        project = service.create_project(
            CreateProjectRequest(name="demo", workspace_path=f"{tmp_path}/demo/../demo/")
        )
        assert project.workspace_path == str(tmp_path / "demo")

    def test_duplicate_workspace_conflicts(self, project_repo, interface_repo, tmp_path):
        service = self._service(project_repo, interface_repo)
        service.create_project(CreateProjectRequest(name="a", workspace_path=str(tmp_path)))

        with pytest.raises(ProjectConflictError):
            service.create_project(CreateProjectRequest(name="b", workspace_path=str(tmp_path)))

    def test_unknown_ide_type_rejected(self, project_repo, interface_repo, tmp_path):
        service = self._service(project_repo, interface_repo)
        with pytest.raises(ProjectValidationError, match="notepad"):
            service.create_project(
                CreateProjectRequest(name="a", workspace_path=str(tmp_path), ide_type="notepad")
            )

    def test_get_records_access(self, project_repo, interface_repo, tmp_path):
        service = self._service(project_repo, interface_repo)
        project = service.create_project(CreateProjectRequest(name="a", workspace_path=str(tmp_path)))

        service.get_project(project.id)
        service.get_project(project.id)

        stored = project_repo.get_project(project.id)
        assert stored.access_count == 2
        assert stored.last_accessed is not None

    def test_soft_delete_hides_project(self, project_repo, interface_repo, tmp_path):
        service = self._service(project_repo, interface_repo)
        project = service.create_project(CreateProjectRequest(name="a", workspace_path=str(tmp_path)))

        service.delete_project(project.id)

        assert project_repo.get_project(project.id) is None
        assert service.list_projects(include_archived=True) == []

    def test_interfaces(self, project_repo, interface_repo, tmp_path):
        service = self._service(project_repo, interface_repo)
        project = service.create_project(CreateProjectRequest(name="a", workspace_path=str(tmp_path)))

        service.add_interface(
            project.id,
            CreateProjectInterfaceRequest(interface_type="ide", interface_id="cursor-9222", config={"port": 9222}),
        )

        interfaces = service.list_interfaces(project.id)
        assert [i.interface_id for i in interfaces] == ["cursor-9222"]
        assert interfaces[0].config == {"port": 9222}

        service.remove_interface(project.id, "cursor-9222")
        assert service.list_interfaces(project.id) == []


class TestAnalysisRepo:
    """Test analysis lifecycle persistence."""

    def test_lifecycle(self, analysis_repo):
        analysis_id = str(uuid4())
        analysis_repo.create_analysis(analysis_id, "p1", AnalysisCategory.CODE_QUALITY)
        assert analysis_repo.find_latest("p1", AnalysisCategory.CODE_QUALITY) is None

        analysis_repo.mark_running(analysis_id)
        assert analysis_repo.get_analysis(analysis_id).status == AnalysisStatus.RUNNING

        outcome = AnalysisOutcome.from_result(
            {
                "score": 85,
                "issues": [{"severity": "critical"}, {"severity": "warning"}, {"severity": "info"}],
                "recommendations": ["a", "b"],
            }
        )
        analysis_repo.mark_completed(analysis_id, outcome, execution_time=12)

        latest = analysis_repo.find_latest("p1", AnalysisCategory.CODE_QUALITY)
        assert latest.id == analysis_id
        assert latest.status == AnalysisStatus.COMPLETED
        assert latest.overall_score == 85
        assert latest.critical_issues_count == 1
        assert latest.warnings_count == 1
        assert latest.recommendations_count == 2
        assert latest.result["score"] == 85

    def test_failed_is_not_latest(self, analysis_repo):
        analysis_id = str(uuid4())
        analysis_repo.create_analysis(analysis_id, "p1", AnalysisCategory.STRUCTURE)
        analysis_repo.mark_failed(analysis_id, "boom")

        assert analysis_repo.find_latest("p1", AnalysisCategory.STRUCTURE) is None
        history = analysis_repo.list_history("p1")
        assert [a.error for a in history] == ["boom"]
