"""
Pro Profiles Core - Profile DTOs

Request and response models for the profile engine.

Write models are split per actor:
- Owner models (the professional) never declare client or admin fields, and
  unknown keys are ignored, so a client_rating or verified flag sent by the
  owner is silently stripped before it reaches the engine.
- ClientReview is the only model that carries a project rating.
- BackgroundCheckVerification is the only model that carries verification.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from database.profile_models import (
    CostType, ImageKind, BackgroundCheckType, SocialPlatform, AddressLabel
)


class OwnerInput(BaseModel):
    """Base for payloads submitted by the owning professional"""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)


class RecordOut(BaseModel):
    """Base for models read straight from ORM rows"""
    model_config = ConfigDict(from_attributes=True)


# ==================== PROFESSIONAL ====================

class ProfessionalProfileUpdate(OwnerInput):
    """Owner edit of the base attributes; verified/active are not editable"""
    full_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    biography: Optional[str] = None
    years_experience: Optional[int] = Field(None, ge=0, le=100)
    languages: Optional[List[str]] = None
    licenses: Optional[str] = None
    liability_insurance: Optional[bool] = None
    payment_methods: Optional[List[str]] = None
    cancellation_policy: Optional[str] = None
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    available: Optional[bool] = None


class ProfessionalProfile(RecordOut):
    id: int
    user_id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None
    biography: Optional[str] = None
    years_experience: int = 0
    languages: Optional[List[str]] = None
    licenses: Optional[str] = None
    liability_insurance: bool = False
    payment_methods: Optional[List[str]] = None
    cancellation_policy: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    verified: bool = False
    available: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ==================== SPECIALTIES ====================

class SpecialtyCreate(OwnerInput):
    category_id: int = Field(..., gt=0)
    description: Optional[str] = None
    includes_materials: bool = False
    cost: Optional[Decimal] = Field(None, ge=0)
    cost_type: Optional[CostType] = None
    years_experience: int = Field(0, ge=0, le=100)
    order: int = Field(1, ge=1, le=3)
    is_principal: bool = False


class SpecialtyUpdate(OwnerInput):
    """Principal is only changed through the set-principal operation"""
    category_id: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    includes_materials: Optional[bool] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    cost_type: Optional[CostType] = None
    years_experience: Optional[int] = Field(None, ge=0, le=100)
    order: Optional[int] = Field(None, ge=1, le=3)


class Specialty(RecordOut):
    id: int
    professional_id: int
    category_id: int
    description: Optional[str] = None
    includes_materials: bool = False
    cost: Optional[Decimal] = None
    cost_type: Optional[str] = None
    years_experience: int = 0
    order: int
    is_principal: bool
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ==================== CERTIFICATIONS ====================

class CertificationCreate(OwnerInput):
    name: str = Field(..., min_length=1, max_length=200)
    institution: Optional[str] = Field(None, max_length=200)
    obtained_on: Optional[date] = None
    expires_on: Optional[date] = None
    document_url: Optional[str] = None
    description: Optional[str] = None


class CertificationInput(CertificationCreate):
    """One element of a full certification list; id targets an existing row"""
    id: Optional[int] = None


class CertificationUpdate(OwnerInput):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    institution: Optional[str] = Field(None, max_length=200)
    obtained_on: Optional[date] = None
    expires_on: Optional[date] = None
    document_url: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = Field(None, ge=1)


class Certification(RecordOut):
    id: int
    professional_id: int
    name: str
    institution: Optional[str] = None
    obtained_on: Optional[date] = None
    expires_on: Optional[date] = None
    document_url: Optional[str] = None
    description: Optional[str] = None
    order: int
    active: bool


class CertificationsReplace(BaseModel):
    certifications: List[CertificationInput]


# ==================== PORTFOLIO ====================

class ProjectCreate(OwnerInput):
    name: str = Field(..., min_length=1, max_length=200)
    completed_on: Optional[date] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    service_request_id: Optional[int] = None
    order: int = Field(1, ge=1)


class ProjectUpdate(OwnerInput):
    """Owner edit; client_rating and client_comment are not accepted here"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    completed_on: Optional[date] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    order: Optional[int] = Field(None, ge=1)


class ImageCreate(OwnerInput):
    url: str = Field(..., min_length=1)
    kind: ImageKind = ImageKind.GENERAL
    description: Optional[str] = None
    order: int = Field(1, ge=1)


class ProjectImage(RecordOut):
    id: int
    project_id: int
    url: str
    kind: str
    description: Optional[str] = None
    order: int
    uploaded_at: Optional[datetime] = None


class PortfolioProject(RecordOut):
    id: int
    professional_id: int
    name: str
    completed_on: Optional[date] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    service_request_id: Optional[int] = None
    client_rating: Optional[Decimal] = None
    client_comment: Optional[str] = None
    order: int
    active: bool
    images: List[ProjectImage] = Field(default_factory=list)


class ClientReview(BaseModel):
    """Rating left by the client of a finished project"""
    rating: Decimal = Field(..., ge=0, le=10)
    comment: Optional[str] = None


# ==================== BACKGROUND CHECKS ====================

class BackgroundCheckCreate(OwnerInput):
    check_type: BackgroundCheckType
    document_url: str = Field(..., min_length=1)
    issued_on: Optional[date] = None
    notes: Optional[str] = None


class BackgroundCheckUpdate(OwnerInput):
    """Owner edit; the check type and verification are fixed"""
    document_url: Optional[str] = Field(None, min_length=1)
    issued_on: Optional[date] = None
    notes: Optional[str] = None


class BackgroundCheckVerification(BaseModel):
    """Admin verification decision"""
    verified: bool = True


class BackgroundCheck(RecordOut):
    id: int
    professional_id: int
    check_type: str
    document_url: str
    issued_on: Optional[date] = None
    uploaded_at: Optional[datetime] = None
    notes: Optional[str] = None
    verified: bool
    verified_at: Optional[datetime] = None
    active: bool


# ==================== SOCIAL ACCOUNTS ====================

class SocialAccountInput(OwnerInput):
    """One element of a full social account list; id targets an existing row"""
    id: Optional[int] = None
    platform: SocialPlatform
    url: str = Field(..., min_length=1)

    @field_validator('platform', mode='before')
    @classmethod
    def normalize_platform(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('url')
    @classmethod
    def strip_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be blank")
        return v


class SocialAccount(RecordOut):
    id: int
    professional_id: int
    platform: str
    url: str
    verified: bool
    active: bool


class SocialAccountsReplace(BaseModel):
    accounts: List[SocialAccountInput]


# ==================== ADDRESSES ====================

class AddressCreate(OwnerInput):
    label: AddressLabel = AddressLabel.HOME
    full_address: str = Field(..., min_length=1)
    district: Optional[str] = Field(None, max_length=120)
    reference: Optional[str] = None
    order: int = Field(1, ge=1, le=3)
    is_principal: bool = False


class AddressUpdate(OwnerInput):
    label: Optional[AddressLabel] = None
    full_address: Optional[str] = Field(None, min_length=1)
    district: Optional[str] = Field(None, max_length=120)
    reference: Optional[str] = None
    order: Optional[int] = Field(None, ge=1, le=3)


class Address(RecordOut):
    id: int
    professional_id: int
    label: str
    full_address: str
    district: Optional[str] = None
    reference: Optional[str] = None
    order: int
    is_principal: bool
    active: bool


# ==================== AGGREGATE VIEW ====================

class ScoreBreakdown(BaseModel):
    """Per-signal values (0-10), their weighted contributions and the total"""
    signals: Dict[str, Decimal] = Field(default_factory=dict)
    contributions: Dict[str, Decimal] = Field(default_factory=dict)
    total: Decimal = Decimal("0.00")


class SliceStatus(BaseModel):
    status: str = "ok"  # ok | failed
    error: Optional[str] = None


class ProfileView(BaseModel):
    """
    Read-only composite of a professional and all child collections.

    `slices` reports the outcome of every optional slice; `partial` is True
    when at least one of them fell back to its empty default.
    """
    professional: ProfessionalProfile
    specialties: List[Specialty] = Field(default_factory=list)
    certifications: List[Certification] = Field(default_factory=list)
    projects: List[PortfolioProject] = Field(default_factory=list)
    background_checks: List[BackgroundCheck] = Field(default_factory=list)
    verified_background_checks: int = 0
    social_accounts: List[SocialAccount] = Field(default_factory=list)
    addresses: List[Address] = Field(default_factory=list)
    platform_score: Decimal = Decimal("0.00")
    score_breakdown: Optional[ScoreBreakdown] = None
    slices: Dict[str, SliceStatus] = Field(default_factory=dict)
    partial: bool = False
