from typing import Any

from pidea.services.ide.ide_types import all_types, is_valid_ide_type
from pidea.steps.step_registry import StepContext, StepValidationError


config = {
    "name": "start_ide_step",
    "type": "ide",
    "category": "ide",
    "description": "Start a new IDE instance on a free debugging port",
    "version": "1.0.0",
    "dependencies": ["ide_manager"],
    "validation": {"required": ["ide_type"], "optional": ["workspace_path", "options"]},
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    ide_type = context.get("ide_type")
    if not ide_type:
        raise StepValidationError("IDE type is required")
    if not is_valid_ide_type(ide_type):
        raise StepValidationError(f"Unknown IDE type '{ide_type}'. Valid types: {', '.join(all_types())}")

    ide_manager = context.get_service("ide_manager")
    return await ide_manager.start_new_ide(
        workspace_path=context.get("workspace_path"),
        ide_type=ide_type,
        options=context.get("options") or {},
    )
