"""Resource-focused service that builds on :class:`NexHealthClient`."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from .errors import ValidationError, missing_fields_error
from .nexhealth_http_client import NexHealthClient, NexHealthError

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

PATIENT_LIST_FILTERS = ("name", "email", "phone_number", "foreign_id", "chart_id")
PATIENT_BIO_OPTIONAL = ("city", "state", "zip_code", "address_line_1", "gender")


@dataclass
class ResourceCollection:
    """Records of one resource gathered across pages."""

    name: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    truncated: bool = False
    pages: int = 0

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


def extract_records(payload: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """Return the record list from ``data`` or ``data[key]``."""

    data = payload.get("data") if isinstance(payload, dict) else None
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return []


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _query_int(query: Dict[str, Any], name: str, default: int) -> int:
    value = query.get(name)
    if value in (None, ""):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}: {value}")
    if parsed < 1:
        raise ValidationError(f"Invalid {name}: {value}")
    return parsed


class NexHealthResourceService:
    """Higher-level fetchers for NexHealth collections and the patient proxy."""

    def __init__(
        self,
        client: NexHealthClient,
        *,
        max_pages: int = 10,
        per_page: int = PAGE_SIZE,
        default_provider_id: Optional[str] = None,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self.client = client
        self.max_pages = max_pages
        self.per_page = per_page
        self.default_provider_id = default_provider_id

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------
    async def fetch_all(
        self,
        path: str,
        key: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> ResourceCollection:
        """Walk pages of ``path`` until a short page or the page cap."""

        collection = ResourceCollection(name=key)
        base_params = {k: v for k, v in (params or {}).items() if v is not None}

        for page in range(1, self.max_pages + 1):
            payload = await self.client.get(
                path, {**base_params, "page": page, "per_page": self.per_page}
            )
            records = extract_records(payload, key)
            collection.records.extend(records)
            collection.pages = page

            if len(records) < self.per_page:
                return collection

        collection.truncated = True
        logger.warning(
            "Stopped fetching %s after %s pages; results are truncated",
            key,
            self.max_pages,
        )
        return collection

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------
    async def appointments(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> ResourceCollection:
        return await self.fetch_all(
            "/appointments", "appointments", {"start": _iso(start), "end": _iso(end)}
        )

    async def patients(
        self, created_after: Optional[date] = None, created_before: Optional[date] = None
    ) -> ResourceCollection:
        return await self.fetch_all(
            "/patients",
            "patients",
            {"created_after": _iso(created_after), "created_before": _iso(created_before)},
        )

    async def procedures(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> ResourceCollection:
        return await self.fetch_all(
            "/procedures", "procedures", {"start": _iso(start), "end": _iso(end)}
        )

    async def payments(self, start: date, end: date) -> ResourceCollection:
        return await self.fetch_all(
            "/payments", "payments", {"start": _iso(start), "end": _iso(end)}
        )

    async def charges(self, start: date, end: date) -> ResourceCollection:
        return await self.fetch_all(
            "/charges", "charges", {"start": _iso(start), "end": _iso(end)}
        )

    async def providers(self) -> ResourceCollection:
        return await self.fetch_all("/providers", "providers")

    async def patient_documents(
        self, created_after: Optional[date] = None, created_before: Optional[date] = None
    ) -> ResourceCollection:
        return await self.fetch_all(
            "/patient_documents",
            "patient_documents",
            {"created_after": _iso(created_after), "created_before": _iso(created_before)},
        )

    # ------------------------------------------------------------------
    # Patient proxy
    # ------------------------------------------------------------------
    async def list_patients(self, query: Dict[str, Any]) -> Dict[str, Any]:
        page = _query_int(query, "page", 1)
        per_page = _query_int(query, "per_page", 25)
        params: Dict[str, Any] = {
            "page": page,
            "per_page": per_page,
            "sort": query.get("sort") or "name",
        }
        for name in PATIENT_LIST_FILTERS:
            if query.get(name):
                params[name] = query[name]
        if query.get("inactive") is not None:
            params["inactive"] = query["inactive"]

        payload = await self.client.get("/patients", params)
        data = payload.get("data")
        if not isinstance(data, dict) or not isinstance(data.get("patients"), list):
            raise NexHealthError(
                "Unexpected response structure from NexHealth API when listing patients",
                error_type="invalid_response",
            )

        patients = data["patients"]
        return {
            "data": {"patients": patients},
            "count": payload.get("count", len(patients)),
            "page": page,
            "per_page": per_page,
        }

    async def get_patient(self, patient_id: str) -> Dict[str, Any]:
        payload = await self.client.get(f"/patients/{patient_id}")
        if payload.get("data") is None:
            raise NexHealthError(
                f"Unexpected response structure from NexHealth API for patient {patient_id}",
                error_type="invalid_response",
            )
        return {"data": payload["data"]}

    async def create_patient(self, body: Dict[str, Any]) -> Dict[str, Any]:
        payload = build_patient_payload(body, self.default_provider_id)
        logger.info("Creating NexHealth patient %s %s",
                    payload["patient"]["first_name"], payload["patient"]["last_name"])

        response = await self.client.post("/patients", payload)
        user = (response.get("data") or {}).get("user")
        if not user:
            raise NexHealthError(
                "Unexpected response structure from NexHealth API during patient creation",
                error_type="invalid_response",
            )
        return {"data": {"user": user}}


def build_patient_payload(
    body: Dict[str, Any], default_provider_id: Optional[str] = None
) -> Dict[str, Any]:
    """Normalize a flat or nested patient body into the NexHealth create payload."""

    patient = body.get("patient") if isinstance(body.get("patient"), dict) else body
    bio = patient.get("bio") or body.get("bio") or {}
    if not isinstance(bio, dict):
        raise ValidationError("Invalid patient bio: expected an object")

    date_of_birth = bio.get("date_of_birth") or patient.get("date_of_birth")
    phone_number = bio.get("phone_number") or patient.get("phone_number")
    values = {
        "first_name": patient.get("first_name"),
        "last_name": patient.get("last_name"),
        "email": patient.get("email"),
        "date_of_birth": date_of_birth,
        "phone_number": phone_number,
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise missing_fields_error(missing)

    nex_bio = {"date_of_birth": date_of_birth, "phone_number": phone_number}
    for name in PATIENT_BIO_OPTIONAL:
        if bio.get(name):
            nex_bio[name] = bio[name]

    payload: Dict[str, Any] = {
        "patient": {
            "first_name": values["first_name"],
            "last_name": values["last_name"],
            "email": values["email"],
            "bio": nex_bio,
        }
    }

    provider = body.get("provider") if isinstance(body.get("provider"), dict) else {}
    provider_id = provider.get("provider_id") or patient.get("provider_id") or default_provider_id
    if provider_id:
        payload["provider"] = {"provider_id": provider_id}
    return payload
