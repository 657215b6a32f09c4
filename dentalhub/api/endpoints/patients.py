from fastapi import APIRouter, Depends, Request
from typing import Any, Dict

from dentalhub.api.endpoints.database import read_json_body
from dentalhub.di import get_resource_service, require_nexhealth_env
from dentalhub.models import PatientListResponse
from dentalhub.nexhealth_resource_service import NexHealthResourceService

router = APIRouter(dependencies=[Depends(require_nexhealth_env)])


@router.get("/patients", response_model=PatientListResponse)
async def list_patients(
    request: Request,
    resources: NexHealthResourceService = Depends(get_resource_service),
) -> Dict[str, Any]:
    """
    List NexHealth patients.

    Supports page, per_page, sort and the name, email, phone_number,
    foreign_id, chart_id and inactive filters.
    """
    return await resources.list_patients(dict(request.query_params))


@router.get("/patients/{patient_id}")
async def get_patient(
    patient_id: str,
    resources: NexHealthResourceService = Depends(get_resource_service),
) -> Dict[str, Any]:
    return await resources.get_patient(patient_id)


@router.post("/patients", status_code=201)
async def create_patient(
    request: Request,
    resources: NexHealthResourceService = Depends(get_resource_service),
) -> Dict[str, Any]:
    body = await read_json_body(request)
    if not isinstance(body, dict):
        body = {}
    return await resources.create_patient(body)
