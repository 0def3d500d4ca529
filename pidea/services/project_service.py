import os

import structlog

from pidea.db.project_interface_repo import ProjectInterfaceRepo
from pidea.db.project_repo import ProjectRepo
from pidea.models.project.models import INTERFACE_TYPES, PROJECT_STATUSES, Project, ProjectInterface
from pidea.models.project.requests import (
    CreateProjectInterfaceRequest,
    CreateProjectRequest,
    UpdateProjectRequest,
)
from pidea.services.ide.ide_types import is_valid_ide_type
from utils import new_id, utc_now


logger = structlog.get_logger(__name__)


class ProjectError(Exception):
    pass


class ProjectNotFoundError(ProjectError):
    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class ProjectInterfaceNotFoundError(ProjectError):
    def __init__(self, project_id: str, interface_id: str) -> None:
        super().__init__(f"Interface {interface_id} not found on project {project_id}")


class ProjectConflictError(ProjectError):
    pass


class ProjectValidationError(ProjectError):
    pass


class ProjectService:
    def __init__(self, project_repo: ProjectRepo, interface_repo: ProjectInterfaceRepo) -> None:
        self._project_repo = project_repo
        self._interface_repo = interface_repo

    def create_project(self, request: CreateProjectRequest) -> Project:
        if not is_valid_ide_type(request.ide_type):
            raise ProjectValidationError(f"Unknown IDE type '{request.ide_type}'")

        workspace_path = os.path.normpath(request.workspace_path)
        if self._project_repo.get_project_by_workspace(workspace_path) is not None:
            raise ProjectConflictError(f"A project already exists for workspace {workspace_path}")

        now = utc_now()
        project = Project(
            id=new_id(),
            name=request.name,
            description=request.description,
            workspace_path=workspace_path,
            type=request.type,
            ide_type=request.ide_type,
            ide_port=request.ide_port,
            backend_port=request.backend_port,
            frontend_port=request.frontend_port,
            database_port=request.database_port,
            start_command=request.start_command,
            build_command=request.build_command,
            dev_command=request.dev_command,
            test_command=request.test_command,
            framework=request.framework,
            language=request.language,
            package_manager=request.package_manager,
            priority=request.priority,
            metadata=request.metadata,
            created_at=now,
            updated_at=now,
        )
        self._project_repo.create_project(project)
        logger.info("project created", project_id=project.id, workspace_path=workspace_path)
        return project

    def get_project(self, project_id: str) -> Project:
        project = self._project_repo.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        self._project_repo.touch(project_id)
        return project

    def list_projects(self, include_archived: bool = False) -> list[Project]:
        return self._project_repo.list_projects(include_archived)

    def update_project(self, project_id: str, request: UpdateProjectRequest) -> Project:
        if request.ide_type is not None and not is_valid_ide_type(request.ide_type):
            raise ProjectValidationError(f"Unknown IDE type '{request.ide_type}'")
        if request.status is not None and request.status not in PROJECT_STATUSES:
            raise ProjectValidationError(f"Unknown project status '{request.status}'")

        project = self._project_repo.update_project(project_id, request.model_dump(exclude_unset=True))
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def delete_project(self, project_id: str) -> None:
        if not self._project_repo.soft_delete_project(project_id):
            raise ProjectNotFoundError(project_id)
        logger.info("project deleted", project_id=project_id)

    def add_interface(self, project_id: str, request: CreateProjectInterfaceRequest) -> ProjectInterface:
        if self._project_repo.get_project(project_id) is None:
            raise ProjectNotFoundError(project_id)
        if request.interface_type not in INTERFACE_TYPES:
            raise ProjectValidationError(
                f"Unknown interface type '{request.interface_type}'. Valid types: {', '.join(INTERFACE_TYPES)}"
            )
        if self._interface_repo.get_interface(project_id, request.interface_id) is not None:
            raise ProjectConflictError(
                f"Interface {request.interface_id} is already attached to project {project_id}"
            )

        now = utc_now()
        interface = ProjectInterface(
            id=new_id(),
            project_id=project_id,
            interface_type=request.interface_type,
            interface_id=request.interface_id,
            name=request.name,
            config=request.config,
            created_at=now,
            updated_at=now,
        )
        return self._interface_repo.create_interface(interface)

    def list_interfaces(self, project_id: str) -> list[ProjectInterface]:
        if self._project_repo.get_project(project_id) is None:
            raise ProjectNotFoundError(project_id)
        return self._interface_repo.list_by_project(project_id)

    def remove_interface(self, project_id: str, interface_id: str) -> None:
        if not self._interface_repo.delete_interface(project_id, interface_id):
            raise ProjectInterfaceNotFoundError(project_id, interface_id)
