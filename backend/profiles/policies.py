"""
Per-type rules for professional child records.

Each child collection is described once here: which table holds it, which
column links it to its parent, its ceiling, its discriminator and whether it
carries a principal flag. The guard, selector and reconciler read these
policies instead of hard-coding table knowledge.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from database.profile_models import (
    SpecialtyDB, CertificationDB, PortfolioProjectDB, ProjectImageDB,
    BackgroundCheckDB, SocialAccountDB, AddressDB
)

from .errors import ValidationError


class ChildKind(str, Enum):
    SPECIALTY = "specialty"
    CERTIFICATION = "certification"
    PORTFOLIO_PROJECT = "portfolio_project"
    PROJECT_IMAGE = "project_image"
    BACKGROUND_CHECK = "background_check"
    SOCIAL_ACCOUNT = "social_account"
    ADDRESS = "address"


@dataclass(frozen=True)
class ChildPolicy:
    kind: ChildKind
    model: Any
    parent_column: str = "professional_id"
    ceiling: Optional[int] = None
    discriminator: Optional[str] = None
    has_principal: bool = False
    soft_delete: bool = True

    @property
    def label(self) -> str:
        return self.kind.value.replace("_", " ")

    @property
    def parent_attr(self):
        return getattr(self.model, self.parent_column)


MAX_SPECIALTIES = 3
MAX_ACTIVE_PROJECTS = 20
MAX_IMAGES_PER_PROJECT = 5
MAX_ADDRESSES = 3


POLICIES: Dict[ChildKind, ChildPolicy] = {
    ChildKind.SPECIALTY: ChildPolicy(
        kind=ChildKind.SPECIALTY,
        model=SpecialtyDB,
        ceiling=MAX_SPECIALTIES,
        has_principal=True,
    ),
    ChildKind.CERTIFICATION: ChildPolicy(
        kind=ChildKind.CERTIFICATION,
        model=CertificationDB,
    ),
    ChildKind.PORTFOLIO_PROJECT: ChildPolicy(
        kind=ChildKind.PORTFOLIO_PROJECT,
        model=PortfolioProjectDB,
        ceiling=MAX_ACTIVE_PROJECTS,
    ),
    ChildKind.PROJECT_IMAGE: ChildPolicy(
        kind=ChildKind.PROJECT_IMAGE,
        model=ProjectImageDB,
        parent_column="project_id",
        ceiling=MAX_IMAGES_PER_PROJECT,
        discriminator="kind",
        soft_delete=False,
    ),
    ChildKind.BACKGROUND_CHECK: ChildPolicy(
        kind=ChildKind.BACKGROUND_CHECK,
        model=BackgroundCheckDB,
        discriminator="check_type",
    ),
    ChildKind.SOCIAL_ACCOUNT: ChildPolicy(
        kind=ChildKind.SOCIAL_ACCOUNT,
        model=SocialAccountDB,
        discriminator="platform",
    ),
    ChildKind.ADDRESS: ChildPolicy(
        kind=ChildKind.ADDRESS,
        model=AddressDB,
        ceiling=MAX_ADDRESSES,
        has_principal=True,
    ),
}


def policy_for(kind: Any) -> ChildPolicy:
    """Resolve a ChildKind (or its string value) to its policy"""
    try:
        return POLICIES[ChildKind(kind)]
    except ValueError:
        raise ValidationError(f"Unknown child record type: {kind}", {"kind": str(kind)})
