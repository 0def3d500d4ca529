import asyncio
from typing import Any

import structlog

from pidea.services.analysis.code_quality import analyze_code_quality
from pidea.services.analysis.workspace_scanner import WorkspaceNotFoundError, resolve_workspace
from pidea.steps.step_registry import StepContext, StepValidationError


logger = structlog.get_logger(__name__)

config = {
    "name": "code_quality_analysis_step",
    "type": "analysis",
    "category": "analysis",
    "description": "Score source files for long files, long lines, large functions and TODO markers",
    "version": "1.0.0",
    "dependencies": [],
    "validation": {"required": ["workspace_path"], "optional": ["project_id"]},
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    try:
        root = resolve_workspace(context.get("workspace_path"))
    except WorkspaceNotFoundError as e:
        raise StepValidationError(str(e)) from e

    report = await asyncio.to_thread(analyze_code_quality, root)
    logger.info(
        "code quality analyzed",
        project_id=context.get("project_id"),
        files=report["files_analyzed"],
        score=report["score"],
    )
    return {"workspace_path": str(root), **report}
