from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class LivenessResponse(BaseModel):
    status: str
    service: str
    version: str


class ComponentStatus(BaseModel):
    status: str
    message: Optional[str] = None


class HealthCheckResponse(BaseModel):
    service: str
    status: str
    version: str
    timestamp: str
    components: Dict[str, ComponentStatus]


class Pagination(BaseModel):
    total: int
    page: int
    per_page: int
    total_pages: int


class ListResponse(BaseModel):
    data: List[Dict[str, Any]]
    pagination: Pagination


class DeleteResponse(BaseModel):
    message: str


class PatientListResponse(BaseModel):
    data: Dict[str, List[Dict[str, Any]]]
    count: int
    page: int
    per_page: int
