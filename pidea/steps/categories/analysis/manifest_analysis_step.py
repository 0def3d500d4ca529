import asyncio
from typing import Any

from pidea.services.analysis.manifest_parser import analyze_tech_stack
from pidea.services.analysis.workspace_scanner import WorkspaceNotFoundError, resolve_workspace
from pidea.steps.step_registry import StepContext, StepValidationError


config = {
    "name": "manifest_analysis_step",
    "type": "analysis",
    "category": "analysis",
    "description": "Detect dependencies, frameworks and package manager from project manifests",
    "version": "1.0.0",
    "dependencies": [],
    "validation": {"required": ["workspace_path"], "optional": ["project_id"]},
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    try:
        root = resolve_workspace(context.get("workspace_path"))
    except WorkspaceNotFoundError as e:
        raise StepValidationError(str(e)) from e

    tech_stack = await asyncio.to_thread(analyze_tech_stack, root)
    return {"workspace_path": str(root), **tech_stack}
