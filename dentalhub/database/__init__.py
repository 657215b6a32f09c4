"""
Database module for DentalHub.

Provides connection management, models and the generic CRUD services.
"""

from .connection import close_database, get_db_session, init_database, ping_database
from .crud import CrudService, Embed, Lookup, ResourceSpec
from .models import Base, Campaign, Profile, Prospect, ProspectCampaign, ProspectTag, Tag
from .resources import RESOURCE_SPECS, CrudRegistry

__all__ = [
    "get_db_session",
    "init_database",
    "close_database",
    "ping_database",
    "CrudService",
    "CrudRegistry",
    "Embed",
    "Lookup",
    "ResourceSpec",
    "RESOURCE_SPECS",
    "Base",
    "Campaign",
    "Profile",
    "Prospect",
    "ProspectCampaign",
    "ProspectTag",
    "Tag",
]
