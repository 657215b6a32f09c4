from fastapi import APIRouter, Depends, Request
from typing import Any, Dict
import logging

from dentalhub.database import CrudRegistry
from dentalhub.di import get_crud_registry
from dentalhub.errors import MethodNotAllowedError, ValidationError
from dentalhub.models import DeleteResponse, ListResponse

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_json_body(request: Request) -> Any:
    """Decode the request body, mapping malformed JSON to a 400."""
    try:
        return await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON in request body")


@router.get("/{resource}", response_model=ListResponse)
async def list_records(
    resource: str,
    request: Request,
    registry: CrudRegistry = Depends(get_crud_registry),
) -> Dict[str, Any]:
    """
    List records with pagination, search, sorting and resource filters.

    Query parameters: page, per_page (max 100), sort_by, sort_order, search,
    plus the filter columns of the resource.
    """
    return await registry.get(resource).list(dict(request.query_params))


@router.post("/{resource}", status_code=201)
async def create_record(
    resource: str,
    request: Request,
    registry: CrudRegistry = Depends(get_crud_registry),
) -> Dict[str, Any]:
    service = registry.get(resource)
    body = await read_json_body(request)
    return await service.create(body)


@router.get("/{resource}/{record_id}")
async def get_record(
    resource: str,
    record_id: str,
    registry: CrudRegistry = Depends(get_crud_registry),
) -> Dict[str, Any]:
    return await registry.get(resource).get(record_id)


@router.put("/{resource}/{record_id}")
async def update_record(
    resource: str,
    record_id: str,
    request: Request,
    registry: CrudRegistry = Depends(get_crud_registry),
) -> Dict[str, Any]:
    service = registry.get(resource)
    if not service.spec.allow_update:
        raise MethodNotAllowedError(f"{service.spec.label} records cannot be updated")
    body = await read_json_body(request)
    return await service.update(record_id, body)


@router.delete("/{resource}/{record_id}", response_model=DeleteResponse)
async def delete_record(
    resource: str,
    record_id: str,
    registry: CrudRegistry = Depends(get_crud_registry),
) -> Dict[str, str]:
    return await registry.get(resource).delete(record_id)


@router.get("/{resource}/{kind}/{related_id}", response_model=ListResponse)
async def lookup_records(
    resource: str,
    kind: str,
    related_id: str,
    request: Request,
    registry: CrudRegistry = Depends(get_crud_registry),
) -> Dict[str, Any]:
    """Relationship lookups, e.g. ``/prospect-campaigns/prospect/{id}``."""
    return await registry.get(resource).lookup(kind, related_id, dict(request.query_params))
