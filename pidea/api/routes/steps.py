from fastapi import APIRouter, HTTPException, status

from pidea.api.dependencies import AuthContextDep, StepRegistryDep
from pidea.models.step.requests import ExecuteStepRequest
from pidea.models.step.responses import (
    StepListResponse,
    StepRegistryStatsResponse,
    StepResponse,
    StepResultResponse,
)

router = APIRouter(
    prefix="/api/steps",
    tags=["steps"],
)


@router.get("", response_model=StepListResponse)
async def list_steps(
    context: AuthContextDep,
    step_registry: StepRegistryDep,
    category: str | None = None,
) -> StepListResponse:
    steps = step_registry.get_steps_by_category(category) if category else step_registry.get_all_steps()
    return StepListResponse(
        stats=StepRegistryStatsResponse(**step_registry.get_stats()),
        categories=step_registry.get_categories(),
        steps=[StepResponse(**step.to_dict()) for step in steps],
    )


@router.post("/{step_name}/execute", response_model=StepResultResponse)
async def execute_step(
    step_name: str,
    request_body: ExecuteStepRequest,
    context: AuthContextDep,
    step_registry: StepRegistryDep,
) -> StepResultResponse:
    """
    Execute a registered step by name.

    The request context is merged with the authenticated user id. A failed step
    is returned with success=false rather than as an HTTP error, unless the step
    does not exist.
    """
    if not step_registry.has_step(step_name):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f'Step "{step_name}" not found',
        )

    step_context = {"user_id": context.user_id, **request_body.context}
    result = await step_registry.execute_step(step_name, step_context, request_body.options)
    return StepResultResponse(**result.to_dict())
