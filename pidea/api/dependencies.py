from typing import Annotated

from fastapi import Depends, Request

from pidea.db.analysis_repo import AnalysisRepo
from pidea.db.chat_repo import ChatRepo
from pidea.db.database import Database
from pidea.db.project_interface_repo import ProjectInterfaceRepo
from pidea.db.project_repo import ProjectRepo
from pidea.request_context import RequestContext
from pidea.services.analysis_queue_service import AnalysisQueueService
from pidea.services.auth_service import AuthService
from pidea.services.chat_session_service import ChatSessionService
from pidea.services.event_bus import EventBus
from pidea.services.ide.detector import IDEDetectorFactory
from pidea.services.ide.ide_manager import IDEManager
from pidea.services.ide.starter import IDEStarterFactory
from pidea.services.project_service import ProjectService
from pidea.settings import settings
from pidea.steps.service_registry import ServiceRegistry
from pidea.steps.step_registry import StepRegistry

# Singleton instances
_database_instance = Database()
_chat_repo_instance = ChatRepo(_database_instance)
_project_repo_instance = ProjectRepo(_database_instance)
_project_interface_repo_instance = ProjectInterfaceRepo(_database_instance)
_analysis_repo_instance = AnalysisRepo(_database_instance)
_event_bus_instance = EventBus()
_auth_service_instance = AuthService(settings.api_key)
_chat_session_service_instance = ChatSessionService(_chat_repo_instance)
_project_service_instance = ProjectService(
    project_repo=_project_repo_instance,
    interface_repo=_project_interface_repo_instance,
)
_ide_manager_instance = IDEManager(
    detector_factory=IDEDetectorFactory(),
    starter_factory=IDEStarterFactory(),
    event_bus=_event_bus_instance,
)
_service_registry_instance = ServiceRegistry()
_step_registry_instance = StepRegistry(_service_registry_instance)
_analysis_queue_service_instance = AnalysisQueueService(
    analysis_repo=_analysis_repo_instance,
    step_registry=_step_registry_instance,
    event_bus=_event_bus_instance,
)

# Services reachable from steps through context.get_service(name)
_service_registry_instance.register("chat_session_service", _chat_session_service_instance)
_service_registry_instance.register("event_bus", _event_bus_instance)
_service_registry_instance.register("ide_manager", _ide_manager_instance)
_service_registry_instance.register("project_service", _project_service_instance)
_service_registry_instance.register("analysis_repo", _analysis_repo_instance)

_step_registry_instance.load_builtin_steps()


def get_database() -> Database:
    """Get the singleton Database instance"""
    return _database_instance


def get_analysis_repo() -> AnalysisRepo:
    """Get the singleton AnalysisRepo instance"""
    return _analysis_repo_instance


def get_event_bus() -> EventBus:
    """Get the singleton EventBus instance"""
    return _event_bus_instance


def get_auth_service() -> AuthService:
    """Get the singleton AuthService instance"""
    return _auth_service_instance


def get_chat_session_service() -> ChatSessionService:
    """Get the singleton ChatSessionService instance"""
    return _chat_session_service_instance


def get_project_service() -> ProjectService:
    """Get the singleton ProjectService instance"""
    return _project_service_instance


def get_ide_manager() -> IDEManager:
    """Get the singleton IDEManager instance"""
    return _ide_manager_instance


def get_service_registry() -> ServiceRegistry:
    """Get the singleton ServiceRegistry instance"""
    return _service_registry_instance


def get_step_registry() -> StepRegistry:
    """Get the singleton StepRegistry instance"""
    return _step_registry_instance


def get_analysis_queue_service() -> AnalysisQueueService:
    """Get the singleton AnalysisQueueService instance"""
    return _analysis_queue_service_instance


def get_auth_context(
    request: Request,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> RequestContext:
    """Authenticate request and return context. Requires the X-API-Key header."""
    return auth_service.authenticate(request)


# Type annotations for dependencies
AnalysisRepoDep = Annotated[AnalysisRepo, Depends(get_analysis_repo)]
ChatSessionServiceDep = Annotated[ChatSessionService, Depends(get_chat_session_service)]
EventBusDep = Annotated[EventBus, Depends(get_event_bus)]
ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]
IDEManagerDep = Annotated[IDEManager, Depends(get_ide_manager)]
StepRegistryDep = Annotated[StepRegistry, Depends(get_step_registry)]
AnalysisQueueServiceDep = Annotated[AnalysisQueueService, Depends(get_analysis_queue_service)]
AuthContextDep = Annotated[RequestContext, Depends(get_auth_context)]
