from fastapi import APIRouter, HTTPException, status

from pidea.api.dependencies import AuthContextDep, ProjectServiceDep
from pidea.models.project.requests import (
    CreateProjectInterfaceRequest,
    CreateProjectRequest,
    UpdateProjectRequest,
)
from pidea.models.project.responses import (
    ProjectInterfaceListResponse,
    ProjectInterfaceResponse,
    ProjectListResponse,
    ProjectResponse,
)
from pidea.services.project_service import (
    ProjectConflictError,
    ProjectError,
    ProjectInterfaceNotFoundError,
    ProjectNotFoundError,
    ProjectValidationError,
)

router = APIRouter(
    prefix="/api/projects",
    tags=["projects"],
)


def _http_error(e: ProjectError) -> HTTPException:
    if isinstance(e, (ProjectNotFoundError, ProjectInterfaceNotFoundError)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, ProjectConflictError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(e, ProjectValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=str(e))


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    context: AuthContextDep,
    project_service: ProjectServiceDep,
    include_archived: bool = False,
) -> ProjectListResponse:
    return ProjectListResponse(
        projects=[p.to_response() for p in project_service.list_projects(include_archived)],
    )


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request_body: CreateProjectRequest,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
) -> ProjectResponse:
    try:
        return project_service.create_project(request_body).to_response()
    except ProjectError as e:
        raise _http_error(e)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
) -> ProjectResponse:
    try:
        return project_service.get_project(project_id).to_response()
    except ProjectError as e:
        raise _http_error(e)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    request_body: UpdateProjectRequest,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
) -> ProjectResponse:
    try:
        return project_service.update_project(project_id, request_body).to_response()
    except ProjectError as e:
        raise _http_error(e)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
) -> None:
    try:
        project_service.delete_project(project_id)
    except ProjectError as e:
        raise _http_error(e)


@router.get("/{project_id}/interfaces", response_model=ProjectInterfaceListResponse)
async def list_interfaces(
    project_id: str,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
) -> ProjectInterfaceListResponse:
    try:
        interfaces = project_service.list_interfaces(project_id)
    except ProjectError as e:
        raise _http_error(e)
    return ProjectInterfaceListResponse(interfaces=[i.to_response() for i in interfaces])


@router.post(
    "/{project_id}/interfaces",
    response_model=ProjectInterfaceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_interface(
    project_id: str,
    request_body: CreateProjectInterfaceRequest,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
) -> ProjectInterfaceResponse:
    try:
        return project_service.add_interface(project_id, request_body).to_response()
    except ProjectError as e:
        raise _http_error(e)


@router.delete("/{project_id}/interfaces/{interface_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_interface(
    project_id: str,
    interface_id: str,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
) -> None:
    try:
        project_service.remove_interface(project_id, interface_id)
    except ProjectError as e:
        raise _http_error(e)
