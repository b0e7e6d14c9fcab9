"""
API routes for program management
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import Services, get_services, require_approved_provider
from ..models.program import Program, ProgramInput, TrainingResult, TrainingResultInput
from ..models.provider import AccessProfile
from ..services.errors import ProgramError

router = APIRouter(prefix="/programs", tags=["programs"])


def _check_owner(profile: AccessProfile, provider_id) -> None:
    if profile.is_super_admin:
        return
    if str(profile.provider_id) != str(provider_id):
        raise HTTPException(status_code=403, detail="Programs can only be managed by their provider")


@router.get("/", response_model=List[Program])
async def get_programs(services: Services = Depends(get_services)):
    """
    Get all programs, newest first
    """
    return await services.programs.fetch_programs()


@router.get("/provider/{provider_id}", response_model=List[Program])
async def get_provider_programs(provider_id: str, services: Services = Depends(get_services)):
    """
    Get the programs of one provider
    """
    return await services.programs.fetch_programs_by_provider(provider_id)


@router.get("/{program_id}", response_model=Program)
async def get_program(program_id: str, services: Services = Depends(get_services)):
    """
    Get a specific program by ID
    """
    program = await services.programs.get_program(program_id)
    if not program:
        raise HTTPException(status_code=404, detail=f"Program not found: {program_id}")
    return program


@router.post("/", status_code=201)
async def create_program(
    payload: ProgramInput,
    profile: AccessProfile = Depends(require_approved_provider),
    services: Services = Depends(get_services)
):
    """
    Create a program for the caller's provider account
    """
    _check_owner(profile, payload.provider_id)
    try:
        program_id = await services.programs.create_program(payload)
    except ProgramError as e:
        raise HTTPException(status_code=500, detail=e.message)

    await services.audit.log_action("ADMIN", "create_program", f"program {program_id}")
    return {"id": program_id}


@router.put("/{program_id}")
async def update_program(
    program_id: str,
    payload: ProgramInput,
    profile: AccessProfile = Depends(require_approved_provider),
    services: Services = Depends(get_services)
):
    """
    Replace a program's definition
    """
    _check_owner(profile, payload.provider_id)
    existing = await services.programs.get_program(program_id)
    if not existing:
        raise HTTPException(status_code=404, detail=f"Program not found: {program_id}")
    _check_owner(profile, existing.provider_id)

    try:
        updated = await services.programs.update_program(program_id, payload)
    except ProgramError as e:
        raise HTTPException(status_code=500, detail=e.message)

    await services.audit.log_action("ADMIN", "update_program", f"program {program_id}")
    return {"id": program_id, "updated": updated}


@router.delete("/{program_id}")
async def delete_program(
    program_id: str,
    profile: AccessProfile = Depends(require_approved_provider),
    services: Services = Depends(get_services)
):
    """
    Delete a program; providers can only delete their own programs
    """
    provider_id = None if profile.is_super_admin else profile.provider_id
    try:
        deleted = await services.programs.delete_program(program_id, provider_id)
    except ProgramError as e:
        raise HTTPException(status_code=500, detail=e.message)

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Program not found: {program_id}")

    role = "SUPER_ADMIN" if profile.is_super_admin else "ADMIN"
    await services.audit.log_action(role, "delete_program", f"program {program_id}")
    return {"message": f"Program {program_id} deleted successfully"}


@router.post("/{program_id}/training-results", status_code=201)
async def save_training_result(
    program_id: str,
    result: TrainingResultInput,
    profile: AccessProfile = Depends(require_approved_provider),
    services: Services = Depends(get_services)
):
    """
    Record a model training run for a program
    """
    if str(result.program_id) != program_id:
        raise HTTPException(status_code=400, detail="program_id does not match the URL")
    try:
        result_id = await services.programs.save_training_result(result)
    except ProgramError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return {"id": result_id}


@router.get("/{program_id}/training-results/latest", response_model=TrainingResult)
async def get_latest_training_result(program_id: str, services: Services = Depends(get_services)):
    """
    Get the newest training result of a program
    """
    try:
        result = await services.programs.fetch_latest_training_result(program_id)
    except ProgramError as e:
        raise HTTPException(status_code=500, detail=e.message)
    if not result:
        raise HTTPException(status_code=404, detail=f"No training result for program: {program_id}")
    return result
