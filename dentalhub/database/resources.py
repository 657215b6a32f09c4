"""
Registry of the relational-store resources served under ``/api/database``.
"""

from typing import Dict, Iterable

from ..errors import NotFoundError
from .crud import CrudService, Embed, Lookup, ResourceSpec
from .models import Campaign, Profile, Prospect, ProspectCampaign, ProspectTag, Tag

RESOURCE_SPECS = (
    ResourceSpec(
        name="prospects",
        model=Prospect,
        label="Prospect",
        required=("first_name", "last_name"),
        filters=("status", "lead_source", "assignee_id", "location_id"),
        search=("first_name", "last_name", "email", "phone"),
        embeds=(Embed("assignee", "assignee_id", Profile),),
    ),
    ResourceSpec(
        name="campaigns",
        model=Campaign,
        label="Campaign",
        required=("name", "campaign_type"),
        filters=("status", "campaign_type", "created_by"),
        search=("name", "description"),
        embeds=(Embed("creator", "created_by", Profile),),
    ),
    ResourceSpec(
        name="tags",
        model=Tag,
        label="Tag",
        required=("name",),
        search=("name",),
        default_sort="name",
        default_order="asc",
        per_page=50,
        conflict_message="A tag with this name already exists",
    ),
    ResourceSpec(
        name="profiles",
        model=Profile,
        label="Profile",
        required=("id", "email"),
        filters=("role",),
        search=("first_name", "last_name", "email"),
        conflict_message="A profile with this id already exists",
    ),
    ResourceSpec(
        name="prospect-campaigns",
        model=ProspectCampaign,
        label="Prospect campaign relationship",
        required=("prospect_id", "campaign_id"),
        filters=("status",),
        default_sort="assigned_at",
        conflict_message="This prospect is already assigned to this campaign",
        embeds=(
            Embed("prospect", "prospect_id", Prospect),
            Embed("campaign", "campaign_id", Campaign),
        ),
        lookups={
            "prospect": Lookup("prospect_id", ("campaign",)),
            "campaign": Lookup("campaign_id", ("prospect",)),
        },
    ),
    ResourceSpec(
        name="prospect-tags",
        model=ProspectTag,
        label="Prospect tag relationship",
        required=("prospect_id", "tag_id"),
        conflict_message="This prospect already has this tag",
        embeds=(
            Embed("prospect", "prospect_id", Prospect),
            Embed("tag", "tag_id", Tag),
        ),
        lookups={
            "prospect": Lookup("prospect_id", ("tag",)),
            "tag": Lookup("tag_id", ("prospect",)),
        },
        allow_update=False,
    ),
)


class CrudRegistry:
    """One :class:`CrudService` per resource, addressed by its URL name."""

    def __init__(self, specs: Iterable[ResourceSpec] = RESOURCE_SPECS) -> None:
        self._services: Dict[str, CrudService] = {spec.name: CrudService(spec) for spec in specs}

    @property
    def names(self):
        return sorted(self._services)

    def get(self, name: str) -> CrudService:
        service = self._services.get(name)
        if service is None:
            raise NotFoundError(f"Unknown database resource: {name}")
        return service
