from typing import Any

from fastapi import HTTPException, status

from pidea.steps.step_registry import StepResult


_NOT_FOUND_ERRORS = {"ChatSessionNotFoundError", "IDENotFoundError", "StepNotFoundError", "ProjectNotFoundError"}
_BAD_REQUEST_ERRORS = {"StepValidationError", "ValueError", "UnknownIDETypeError", "IDEError"}
_CONFLICT_ERRORS = {"NoAvailablePortError"}


def status_for_failure(result: StepResult) -> int:
    if result.error_type in _NOT_FOUND_ERRORS:
        return status.HTTP_404_NOT_FOUND
    if result.error_type in _BAD_REQUEST_ERRORS:
        return status.HTTP_400_BAD_REQUEST
    if result.error_type in _CONFLICT_ERRORS:
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def unwrap_step_result(result: StepResult) -> Any:
    """Return the step's result, raising an HTTPException for a failed step"""
    if result.success:
        return result.result
    raise HTTPException(
        status_code=status_for_failure(result),
        detail=result.error or f"Step {result.step} failed",
    )
