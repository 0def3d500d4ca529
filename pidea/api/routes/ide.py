from fastapi import APIRouter, HTTPException, status

from pidea.api.dependencies import AuthContextDep, IDEManagerDep, StepRegistryDep
from pidea.api.step_results import unwrap_step_result
from pidea.models.ide.requests import StartIDERequest
from pidea.models.ide.responses import (
    ActiveIDEResponse,
    IDEListResponse,
    IDEResponse,
    IDETypeListResponse,
    IDETypeResponse,
    StartedIDEResponse,
    SwitchIDEResponse,
)
from pidea.services.ide.ide_types import IDE_DEFINITIONS

router = APIRouter(
    prefix="/api/ide",
    tags=["ide"],
)


@router.get("/available", response_model=IDEListResponse)
async def list_available_ides(
    context: AuthContextDep,
    step_registry: StepRegistryDep,
) -> IDEListResponse:
    result = unwrap_step_result(await step_registry.execute_step("list_ides_step"))
    return IDEListResponse(
        ides=[IDEResponse(**ide) for ide in result["ides"]],
        total=result["total"],
        active_port=result["active_port"],
    )


@router.get("/active", response_model=ActiveIDEResponse)
async def get_active_ide(
    context: AuthContextDep,
    ide_manager: IDEManagerDep,
) -> ActiveIDEResponse:
    ide = await ide_manager.get_active_ide()
    return ActiveIDEResponse(ide=IDEResponse(**ide) if ide else None)


@router.post("/start", response_model=StartedIDEResponse, status_code=status.HTTP_201_CREATED)
async def start_ide(
    request_body: StartIDERequest,
    context: AuthContextDep,
    step_registry: StepRegistryDep,
) -> StartedIDEResponse:
    result = unwrap_step_result(
        await step_registry.execute_step(
            "start_ide_step",
            {
                "ide_type": request_body.ide_type,
                "workspace_path": request_body.workspace_path,
                "options": request_body.options,
            },
        )
    )
    return StartedIDEResponse(**result)


@router.post("/switch/{port}", response_model=SwitchIDEResponse)
async def switch_ide(
    port: int,
    context: AuthContextDep,
    step_registry: StepRegistryDep,
) -> SwitchIDEResponse:
    result = unwrap_step_result(await step_registry.execute_step("switch_ide_step", {"port": port}))
    return SwitchIDEResponse(**result)


@router.delete("/{port}", status_code=status.HTTP_204_NO_CONTENT)
async def stop_ide(
    port: int,
    context: AuthContextDep,
    ide_manager: IDEManagerDep,
) -> None:
    if not await ide_manager.stop_ide(port):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No IDE started by this server on port {port}",
        )


@router.get("/types", response_model=IDETypeListResponse)
async def list_ide_types(context: AuthContextDep) -> IDETypeListResponse:
    return IDETypeListResponse(
        types=[IDETypeResponse(**definition.to_dict()) for definition in IDE_DEFINITIONS.values()],
    )
