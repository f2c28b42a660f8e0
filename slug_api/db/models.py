"""SQLAlchemy models: the canonical slug index and the owner-type partitions."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    JSON,
    func,
    text,
)

from slug_api.domain.slugs import OwnerType
from .session import Base


class SlugAssignment(Base):
    """One slug-to-owner binding; superseded rows stay forever for redirects and audit."""

    __tablename__ = "slug_assignments"
    __table_args__ = (
        Index(
            "ux_slug_assignments_active_slug",
            "slug",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index(
            "ux_slug_assignments_active_owner",
            "owner_id",
            "owner_type",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index("ix_slug_assignments_owner", "owner_id", "owner_type", "is_active"),
        Index("ix_slug_assignments_slug", "slug", "is_active"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(64), nullable=False)
    owner_id = Column(String(128), nullable=False)
    owner_type = Column(String(32), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    redirect_from = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "ownerId": self.owner_id,
            "ownerType": self.owner_type,
            "isActive": bool(self.is_active),
            "redirectFrom": list(self.redirect_from or []),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class OwnerProfileMixin:
    """Columns shared by every owner-type partition.

    ``public_slug`` mirrors the owner's active SlugAssignment; the assignment
    table wins on any discrepancy.
    """

    id = Column(String(128), primary_key=True)
    display_name = Column(String(255), nullable=False, default="")
    public_slug = Column(String(64), nullable=True, index=True)
    is_public = Column(Boolean, default=True, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class FreelancerProfile(OwnerProfileMixin, Base):
    __tablename__ = "freelancers"


class VendorProfile(OwnerProfileMixin, Base):
    __tablename__ = "vendors"


class OrganizationProfile(OwnerProfileMixin, Base):
    __tablename__ = "organizations"


PROFILE_MODELS = {
    OwnerType.FREELANCER: FreelancerProfile,
    OwnerType.VENDOR: VendorProfile,
    OwnerType.ORGANIZATION: OrganizationProfile,
}
