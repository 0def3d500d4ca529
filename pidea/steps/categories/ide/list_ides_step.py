from typing import Any

from pidea.steps.step_registry import StepContext


config = {
    "name": "list_ides_step",
    "type": "ide",
    "category": "ide",
    "description": "List detected and started IDE instances",
    "version": "1.0.0",
    "dependencies": ["ide_manager"],
    "validation": {"required": [], "optional": []},
}


async def execute(context: StepContext, options: dict[str, Any]) -> dict[str, Any]:
    ide_manager = context.get_service("ide_manager")
    ides = await ide_manager.get_available_ides()
    return {
        "ides": ides,
        "total": len(ides),
        "active_port": ide_manager.get_active_port(),
    }
