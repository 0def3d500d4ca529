import asyncio
from typing import Any

import structlog

from pidea.services.analysis.workspace_scanner import WorkspaceNotFoundError, resolve_workspace, scan_structure
from pidea.steps.step_registry import StepContext, StepValidationError


logger = structlog.get_logger(__name__)

config = {
    "name": "project_analysis_step",
    "type": "analysis",
    "category": "analysis",
    "description": "Analyze workspace structure: files, lines, languages and depth",
    "version": "1.0.0",
    "dependencies": [],
    "validation": {"required": ["workspace_path"], "optional": ["project_id"]},
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    try:
        root = resolve_workspace(context.get("workspace_path"))
    except WorkspaceNotFoundError as e:
        raise StepValidationError(str(e)) from e

    structure = await asyncio.to_thread(scan_structure, root)
    logger.info(
        "project structure analyzed",
        project_id=context.get("project_id"),
        files=structure["total_files"],
        lines=structure["total_lines"],
    )

    recommendations = []
    if structure["max_depth"] > 8:
        recommendations.append(f"Directory nesting reaches depth {structure['max_depth']}; consider flattening")
    if structure["total_files"] == 0:
        recommendations.append("Workspace contains no files")

    return {
        "workspace_path": str(root),
        "structure": structure,
        "recommendations": recommendations,
    }
