import hashlib

from fastapi import APIRouter, Header, HTTPException, Response, status

from pidea.api.dependencies import (
    AnalysisQueueServiceDep,
    AnalysisRepoDep,
    AuthContextDep,
    ProjectServiceDep,
)
from pidea.models.analysis.enums import AnalysisCategory
from pidea.models.analysis.models import Analysis
from pidea.models.analysis.responses import (
    AnalysisCategoryListResponse,
    AnalysisCategoryResponse,
    AnalysisHistoryResponse,
    AnalysisQueuedResponse,
    AnalysisResponse,
)
from pidea.services.project_service import ProjectNotFoundError

router = APIRouter(
    prefix="/api",
    tags=["analysis"],
)


def _parse_category(category: str) -> AnalysisCategory:
    try:
        return AnalysisCategory(category)
    except ValueError:
        valid = ", ".join(c.value for c in AnalysisCategory)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown analysis category '{category}'. Valid categories: {valid}",
        )


def _etag(analysis: Analysis) -> str:
    completed = analysis.completed_at.isoformat() if analysis.completed_at else ""
    digest = hashlib.sha1(f"{analysis.id}:{completed}".encode()).hexdigest()
    return f'"{digest}"'


def _etag_matches(if_none_match: str | None, etag: str) -> bool:
    if not if_none_match:
        return False
    candidates = [c.strip().removeprefix("W/") for c in if_none_match.split(",")]
    return "*" in candidates or etag in candidates


@router.get("/analysis/categories", response_model=AnalysisCategoryListResponse)
async def list_categories(context: AuthContextDep) -> AnalysisCategoryListResponse:
    return AnalysisCategoryListResponse(
        categories=[
            AnalysisCategoryResponse(name=c.value, step=c.step_name, description=c.description)
            for c in AnalysisCategory
        ],
    )


@router.get("/projects/{project_id}/analysis/history", response_model=AnalysisHistoryResponse)
async def get_analysis_history(
    project_id: str,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
    analysis_repo: AnalysisRepoDep,
    limit: int = 50,
) -> AnalysisHistoryResponse:
    try:
        project_service.get_project(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return AnalysisHistoryResponse(
        analyses=[a.to_response() for a in analysis_repo.list_history(project_id, limit)],
    )


@router.post(
    "/projects/{project_id}/analysis/{category}",
    response_model=AnalysisQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def queue_analysis(
    project_id: str,
    category: str,
    context: AuthContextDep,
    project_service: ProjectServiceDep,
    analysis_queue_service: AnalysisQueueServiceDep,
) -> AnalysisQueuedResponse:
    analysis_category = _parse_category(category)
    try:
        project = project_service.get_project(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    analysis = await analysis_queue_service.enqueue(project, analysis_category)
    return AnalysisQueuedResponse(
        analysis_id=analysis.id,
        project_id=project.id,
        analysis_type=analysis.analysis_type,
        status=analysis.status,
        queue_size=analysis_queue_service.queue_size(),
    )


@router.get("/projects/{project_id}/analysis/{category}", response_model=AnalysisResponse)
async def get_latest_analysis(
    project_id: str,
    category: str,
    response: Response,
    context: AuthContextDep,
    analysis_repo: AnalysisRepoDep,
    if_none_match: str | None = Header(None),
) -> AnalysisResponse | Response:
    analysis_category = _parse_category(category)
    analysis = analysis_repo.find_latest(project_id, analysis_category)
    if analysis is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No completed {analysis_category.value} analysis for project {project_id}",
        )

    etag = _etag(analysis)
    if _etag_matches(if_none_match, etag):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": etag})

    response.headers["ETag"] = etag
    response.headers["Cache-Control"] = "private, max-age=0, must-revalidate"
    return analysis.to_response()
