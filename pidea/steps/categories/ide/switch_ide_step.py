from typing import Any

import structlog

from pidea.steps.step_registry import StepContext, StepValidationError


logger = structlog.get_logger(__name__)

config = {
    "name": "switch_ide_step",
    "type": "ide",
    "category": "ide",
    "description": "Make the IDE on the given port the active one",
    "version": "1.0.0",
    "dependencies": ["ide_manager"],
    "validation": {"required": ["port"], "optional": []},
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    port = context.get("port")
    if isinstance(port, bool) or not isinstance(port, int) or port <= 0:
        raise StepValidationError("Port must be a positive number")

    ide_manager = context.get_service("ide_manager")
    result = await ide_manager.switch_to_ide(port)
    if result["already_active"]:
        logger.info("ide already active", port=port)
    return result
