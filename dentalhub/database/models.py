"""
SQLAlchemy models for the DentalHub relational store.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    """Staff profile."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(255))
    last_name = Column(String(255))
    role = Column(String(50), index=True)
    avatar_url = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class Prospect(Base):
    """Marketing lead that has not yet become a patient."""

    __tablename__ = "prospects"

    id = Column(String(36), primary_key=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), index=True)
    phone = Column(String(50))
    status = Column(String(50), index=True)
    lead_source = Column(String(100))
    assignee_id = Column(String(36), index=True)
    location_id = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    campaign_type = Column(String(50), nullable=False)
    status = Column(String(50), index=True)
    created_by = Column(String(36), index=True)
    start_date = Column(DateTime(timezone=True))
    end_date = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    color = Column(String(20))
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class ProspectCampaign(Base):
    """Assignment of a prospect to a campaign."""

    __tablename__ = "prospect_campaigns"

    id = Column(String(36), primary_key=True)
    prospect_id = Column(String(36), ForeignKey("prospects.id", ondelete="CASCADE"), nullable=False)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(50), index=True)
    assigned_at = Column(DateTime(timezone=True), default=utcnow)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("prospect_id", "campaign_id", name="uq_prospect_campaign"),
        Index("idx_prospect_campaigns_campaign", "campaign_id"),
    )


class ProspectTag(Base):
    __tablename__ = "prospect_tags"

    id = Column(String(36), primary_key=True)
    prospect_id = Column(String(36), ForeignKey("prospects.id", ondelete="CASCADE"), nullable=False)
    tag_id = Column(String(36), ForeignKey("tags.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("prospect_id", "tag_id", name="uq_prospect_tag"),
        Index("idx_prospect_tags_tag", "tag_id"),
    )
