"""
Pro Profiles Core - Professional Profile Database Models

A professional owns several child collections. Every child row is soft-deleted
through its `active` flag; project images are the one hard-deleted type.

Tables:
- professionals: Parent account (never hard-deleted)
- professional_specialties: Up to 3 active, one principal
- professional_certifications: Ordered, unbounded
- portfolio_projects: Up to 20 active, client rating is client-write-only
- project_images: Up to 5 per project, hard-deleted
- background_checks: One active per check type, verification is admin-only
- social_accounts: One row per platform link, lower-cased platform
- professional_addresses: Up to 3 active, exactly one principal
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime,
    ForeignKey, Index, JSON, Numeric
)
from sqlalchemy.orm import relationship

from database.connection import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ==================== ENUMS (FROZEN) ====================

class CostType(str, PyEnum):
    """Billing unit of a specialty"""
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"


class ImageKind(str, PyEnum):
    """Stage of the work a project image shows"""
    BEFORE = "before"
    AFTER = "after"
    PROGRESS = "progress"
    GENERAL = "general"


class BackgroundCheckType(str, PyEnum):
    """Background check document types"""
    POLICE = "police"
    CRIMINAL = "criminal"
    JUDICIAL = "judicial"


class SocialPlatform(str, PyEnum):
    """Supported social platforms (stored lower-case)"""
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    TIKTOK = "tiktok"
    WHATSAPP = "whatsapp"
    WEBSITE = "website"
    YOUTUBE = "youtube"


class AddressLabel(str, PyEnum):
    """Address usage label"""
    HOME = "home"
    OFFICE = "office"
    WORK = "work"
    OTHER = "other"


# ==================== DATABASE MODELS ====================

class ProfessionalDB(Base):
    """
    Professional account.

    Created on registration by the identity service and only ever
    soft-deactivated. The platform score is derived on read and has no column.
    """
    __tablename__ = "professionals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, unique=True, index=True)

    full_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    biography = Column(Text, nullable=True)
    years_experience = Column(Integer, nullable=False, default=0)
    languages = Column(JSON, nullable=True, default=list)
    licenses = Column(Text, nullable=True)
    liability_insurance = Column(Boolean, nullable=False, default=False)
    payment_methods = Column(JSON, nullable=True, default=list)
    cancellation_policy = Column(Text, nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)

    verified = Column(Boolean, nullable=False, default=False)
    available = Column(Boolean, nullable=False, default=True)
    active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class SpecialtyDB(Base):
    """Service specialty offered by a professional (max 3 active)"""
    __tablename__ = "professional_specialties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)

    category_id = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    includes_materials = Column(Boolean, nullable=False, default=False)
    cost = Column(Numeric(10, 2), nullable=True)
    cost_type = Column(String(10), nullable=True)
    years_experience = Column(Integer, nullable=False, default=0)
    order = Column(Integer, nullable=False, default=1)
    is_principal = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_specialties_professional_active', 'professional_id', 'active'),
    )


class CertificationDB(Base):
    """Certification or diploma held by a professional"""
    __tablename__ = "professional_certifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    institution = Column(String(200), nullable=True)
    obtained_on = Column(Date, nullable=True)
    expires_on = Column(Date, nullable=True)
    document_url = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=1)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_certifications_professional_active', 'professional_id', 'active'),
    )


class PortfolioProjectDB(Base):
    """
    Portfolio project (max 20 active).

    client_rating / client_comment are written only by the client review path.
    """
    __tablename__ = "portfolio_projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    completed_on = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, nullable=True)
    service_request_id = Column(Integer, nullable=True)

    # Client fields (client review path only)
    client_rating = Column(Numeric(4, 2), nullable=True)
    client_comment = Column(Text, nullable=True)

    order = Column(Integer, nullable=False, default=1)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    images = relationship(
        "ProjectImageDB",
        back_populates="project",
        order_by="ProjectImageDB.order",
        lazy="selectin",
    )

    __table_args__ = (
        Index('ix_projects_professional_active', 'professional_id', 'active'),
    )


class ProjectImageDB(Base):
    """Image attached to a portfolio project (max 5, hard-deleted)"""
    __tablename__ = "project_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("portfolio_projects.id", ondelete="CASCADE"), nullable=False, index=True)

    url = Column(Text, nullable=False)
    kind = Column(String(20), nullable=False, default=ImageKind.GENERAL.value)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=1)
    uploaded_at = Column(DateTime(timezone=True), default=utc_now)

    project = relationship("PortfolioProjectDB", back_populates="images")


class BackgroundCheckDB(Base):
    """
    Background check document.

    At most one active row per (professional, check_type); the partial unique
    index backs the check done in code. verified / verified_at are admin-only.
    """
    __tablename__ = "background_checks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)

    check_type = Column(String(20), nullable=False)
    document_url = Column(Text, nullable=False)
    issued_on = Column(Date, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), default=utc_now)
    notes = Column(Text, nullable=True)

    # Admin fields
    verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)

    active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index(
            'uq_background_checks_active_type',
            'professional_id', 'check_type',
            unique=True,
            postgresql_where=active.is_(True),
            sqlite_where=active.is_(True),
        ),
    )


class SocialAccountDB(Base):
    """Social network link of a professional"""
    __tablename__ = "social_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)

    platform = Column(String(20), nullable=False)
    url = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_social_accounts_professional_active', 'professional_id', 'active'),
    )


class AddressDB(Base):
    """Service address of a professional (max 3 active, one principal)"""
    __tablename__ = "professional_addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)

    label = Column(String(20), nullable=False, default=AddressLabel.HOME.value)
    full_address = Column(Text, nullable=False)
    district = Column(String(120), nullable=True)
    reference = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=1)
    is_principal = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index('ix_addresses_professional_active', 'professional_id', 'active'),
    )
