"""
Generic CRUD over the relational store.

A :class:`ResourceSpec` describes one table (required fields, filters, search
columns, default ordering, embedded relations) and :class:`CrudService`
implements list/get/create/update/delete for it.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import uuid4

from sqlalchemy import DateTime, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import (
    ConflictError,
    MethodNotAllowedError,
    NotFoundError,
    ValidationError,
    missing_fields_error,
)
from .connection import get_db_session

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100
IMMUTABLE_FIELDS = ("id", "created_at")


@dataclass(frozen=True)
class Embed:
    """Related row embedded under ``name`` by following ``column``."""

    name: str
    column: str
    model: Any


@dataclass(frozen=True)
class Lookup:
    """Relationship lookup: rows whose ``column`` equals the path id."""

    column: str
    embeds: Tuple[str, ...]


@dataclass(frozen=True)
class ResourceSpec:
    name: str
    model: Any
    label: str
    required: Tuple[str, ...]
    filters: Tuple[str, ...] = ()
    search: Tuple[str, ...] = ()
    default_sort: str = "created_at"
    default_order: str = "desc"
    per_page: int = 20
    conflict_message: Optional[str] = None
    embeds: Tuple[Embed, ...] = ()
    lookups: Mapping[str, Lookup] = field(default_factory=dict)
    allow_update: bool = True

    @property
    def columns(self) -> Dict[str, Any]:
        return {column.name: column for column in self.model.__table__.columns}


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for Postgres SQLSTATE 23505 or a SQLite UNIQUE failure."""

    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    message = str(orig if orig is not None else exc)
    return (
        code == "23505"
        or "UNIQUE constraint failed" in message
        or "duplicate key value" in message
    )


def parse_datetime(name: str, value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date-time for {name}: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid date-time for {name}: {value!r}")


def row_to_dict(row: Any, names) -> Dict[str, Any]:
    """Column values of ``row``; naive timestamps read back from SQLite are UTC."""

    payload = {}
    for name in names:
        value = getattr(row, name)
        if isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        payload[name] = value
    return payload


def _parse_positive_int(name: str, value: Any, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}: {value}")
    if parsed < 1:
        raise ValidationError(f"Invalid {name}: {value}")
    return parsed


class CrudService:
    """List/get/create/update/delete for one :class:`ResourceSpec`."""

    def __init__(self, spec: ResourceSpec) -> None:
        self.spec = spec
        self.model = spec.model
        self._embeds = {embed.name: embed for embed in spec.embeds}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def list(self, query: Mapping[str, Any]) -> Dict[str, Any]:
        filters = {
            name: query[name] for name in self.spec.filters if query.get(name) not in (None, "")
        }
        return await self._paginate(
            query, filters, embeds=[embed.name for embed in self.spec.embeds]
        )

    async def lookup(self, kind: str, related_id: str, query: Mapping[str, Any]) -> Dict[str, Any]:
        lookup = self.spec.lookups.get(kind)
        if lookup is None:
            raise NotFoundError(f"Unknown {self.spec.name} lookup: {kind}")

        filters = {lookup.column: related_id}
        if "status" in self.spec.columns and query.get("status"):
            filters["status"] = query["status"]
        return await self._paginate(query, filters, embeds=list(lookup.embeds))

    async def get(self, record_id: str) -> Dict[str, Any]:
        async with get_db_session() as session:
            row = await session.get(self.model, record_id)
            if row is None:
                raise NotFoundError(f"{self.spec.label} not found")
            return await self._serialize(session, row, [e.name for e in self.spec.embeds])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def create(self, body: Any) -> Dict[str, Any]:
        values = self._clean(body)
        missing = [name for name in self.spec.required if values.get(name) in (None, "")]
        if missing:
            raise missing_fields_error(missing)

        now = datetime.now(timezone.utc)
        if not values.get("id"):
            values["id"] = str(uuid4())
        values["created_at"] = now
        values["updated_at"] = now
        if "assigned_at" in self.spec.columns and values.get("assigned_at") is None:
            values["assigned_at"] = now

        async with get_db_session() as session:
            row = self.model(**values)
            session.add(row)
            await self._flush(session)
            logger.info("Created %s %s", self.spec.name, row.id)
            return self._to_dict(row)

    async def update(self, record_id: str, body: Any) -> Dict[str, Any]:
        if not self.spec.allow_update:
            raise MethodNotAllowedError(f"{self.spec.label} records cannot be updated")

        values = self._clean(body)
        for name in IMMUTABLE_FIELDS:
            values.pop(name, None)
        values["updated_at"] = datetime.now(timezone.utc)

        async with get_db_session() as session:
            row = await session.get(self.model, record_id)
            if row is None:
                raise NotFoundError(f"{self.spec.label} not found")
            for name, value in values.items():
                setattr(row, name, value)
            await self._flush(session)
            return self._to_dict(row)

    async def delete(self, record_id: str) -> Dict[str, str]:
        async with get_db_session() as session:
            row = await session.get(self.model, record_id)
            if row is None:
                raise NotFoundError(f"{self.spec.label} not found")
            await session.delete(row)
            await self._flush(session)
        logger.info("Deleted %s %s", self.spec.name, record_id)
        return {"message": f"{self.spec.label} deleted successfully"}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _paginate(
        self,
        query: Mapping[str, Any],
        filters: Dict[str, Any],
        *,
        embeds: List[str],
    ) -> Dict[str, Any]:
        columns = self.spec.columns
        page = _parse_positive_int("page", query.get("page"), 1)
        per_page = min(
            _parse_positive_int("per_page", query.get("per_page"), self.spec.per_page),
            MAX_PER_PAGE,
        )
        sort_by = query.get("sort_by") or self.spec.default_sort
        if sort_by not in columns:
            raise ValidationError(f"Invalid sort_by: {sort_by}")
        sort_order = query.get("sort_order") or self.spec.default_order
        if sort_order not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort_order: {sort_order}")

        stmt = select(self.model)
        for name, value in filters.items():
            stmt = stmt.where(columns[name] == value)
        search = query.get("search")
        if search and self.spec.search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(*[columns[name].ilike(pattern) for name in self.spec.search]))

        sort_column = columns[sort_by]
        ordered = stmt.order_by(sort_column.asc() if sort_order == "asc" else sort_column.desc())

        async with get_db_session() as session:
            total = await session.scalar(select(func.count()).select_from(stmt.subquery()))
            result = await session.execute(
                ordered.offset((page - 1) * per_page).limit(per_page)
            )
            rows = result.scalars().all()
            data = [await self._serialize(session, row, embeds) for row in rows]

        return {
            "data": data,
            "pagination": {
                "total": total or 0,
                "page": page,
                "per_page": per_page,
                "total_pages": math.ceil((total or 0) / per_page),
            },
        }

    def _clean(self, body: Any) -> Dict[str, Any]:
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")

        columns = self.spec.columns
        unknown = sorted(name for name in body if name not in columns)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(unknown)}")

        values: Dict[str, Any] = {}
        for name, value in body.items():
            if isinstance(columns[name].type, DateTime):
                values[name] = parse_datetime(name, value)
            elif isinstance(value, (dict, list)):
                raise ValidationError(f"Invalid value for {name}")
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                values[name] = str(value)
            else:
                values[name] = value
        return values

    async def _flush(self, session: AsyncSession) -> None:
        try:
            await session.flush()
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise ConflictError(
                    self.spec.conflict_message or f"{self.spec.label} already exists"
                ) from exc
            raise

    def _to_dict(self, row: Any) -> Dict[str, Any]:
        return row_to_dict(row, self.spec.columns)

    async def _serialize(self, session: AsyncSession, row: Any, embeds: List[str]) -> Dict[str, Any]:
        payload = self._to_dict(row)
        for name in embeds:
            embed = self._embeds[name]
            related_id = payload.get(embed.column)
            related = await session.get(embed.model, related_id) if related_id else None
            payload[name] = (
                row_to_dict(related, [c.name for c in embed.model.__table__.columns])
                if related is not None
                else None
            )
        return payload
