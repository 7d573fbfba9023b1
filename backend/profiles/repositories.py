"""
Profile child repositories.

One repository per child type, all sharing ChildRepository:
- reads are filtered to active rows owned by the acting professional
- every write is one `atomic()` transaction that first locks the parent
- ceilings go through CardinalityGuard, principal flags through
  PrincipalSelector, bulk lists through BulkReconciler

Ownership is fused with existence: a row that belongs to another professional
is reported as NotFound.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.profile_models import (
    ProfessionalDB, SpecialtyDB, PortfolioProjectDB, ProjectImageDB, BackgroundCheckDB, utc_now
)

from .errors import ConflictError, NotFound, ValidationError
from .guards import CardinalityGuard
from .policies import ChildKind, policy_for
from .principal import PrincipalSelector
from .reconciler import BulkReconciler
from .schemas import (
    ProfessionalProfile, ProfessionalProfileUpdate,
    Specialty, Certification, PortfolioProject, ProjectImage, ImageCreate,
    BackgroundCheck, SocialAccount, Address
)
from .transaction import atomic, lock_professional, lock_project

logger = logging.getLogger(__name__)


def _patch_values(data: BaseModel, model: Any) -> Dict[str, Any]:
    """Fields sent by the caller. Null clears a nullable column and is ignored otherwise."""
    columns = model.__table__.columns
    return {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or columns[field].nullable
    }


# ==================== PROFESSIONAL ====================

class ProfessionalRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, professional_id: int) -> ProfessionalProfile:
        result = await self.session.execute(
            select(ProfessionalDB).where(
                ProfessionalDB.id == professional_id,
                ProfessionalDB.active.is_(True),
            )
        )
        professional = result.scalar_one_or_none()
        if professional is None:
            raise NotFound("Professional", professional_id)
        return ProfessionalProfile.model_validate(professional)

    async def update_profile(self, professional_id: int,
                             data: ProfessionalProfileUpdate) -> ProfessionalProfile:
        """Owner edit of base attributes (verified/active are never touched)"""
        updates = _patch_values(data, ProfessionalDB)

        async with atomic(self.session, "update:professional"):
            professional = await lock_professional(self.session, professional_id)
            for field, value in updates.items():
                setattr(professional, field, value)
            professional.updated_at = utc_now()
            await self.session.flush()

        logger.info(f"Updated profile of professional {professional_id}: {sorted(updates)}")
        return ProfessionalProfile.model_validate(professional)


# ==================== CHILD RECORDS ====================

class ChildRepository:
    """Shared owner-path CRUD for one child type"""
    kind: ChildKind
    schema: Type[BaseModel]

    def __init__(self, session: AsyncSession):
        self.session = session
        self.policy = policy_for(self.kind)
        self.model = self.policy.model
        self.guard = CardinalityGuard(session)
        self.principals = PrincipalSelector(session)

    def _ordering(self) -> tuple:
        if self.policy.has_principal:
            return (self.model.is_principal.desc(), self.model.order, self.model.id)
        return (self.model.order, self.model.id)

    async def list(self, professional_id: int) -> List[Any]:
        result = await self.session.execute(
            select(self.model)
            .where(
                self.model.professional_id == professional_id,
                self.model.active.is_(True),
            )
            .order_by(*self._ordering())
        )
        return [self.schema.model_validate(row) for row in result.scalars()]

    async def get(self, professional_id: int, child_id: int) -> Any:
        row = await self._get_owned(professional_id, child_id)
        return self.schema.model_validate(row)

    async def create(self, professional_id: int, data: BaseModel) -> Any:
        values = data.model_dump(exclude={"is_principal"})
        requested_principal = bool(getattr(data, "is_principal", False))

        async with atomic(self.session, f"create:{self.kind.value}"):
            await self.guard.ensure_capacity(professional_id, self.kind)
            await self._before_create(professional_id, values)
            row = await self._insert(professional_id, values)
            if self.policy.has_principal:
                row = await self.principals.assign_on_create(
                    professional_id, row, self.policy, requested_principal
                )

        logger.info(f"Created {self.policy.label} {row.id} for professional {professional_id}")
        return self.schema.model_validate(row)

    async def update(self, professional_id: int, child_id: int, data: BaseModel) -> Any:
        updates = _patch_values(data, self.model)

        async with atomic(self.session, f"update:{self.kind.value}"):
            await lock_professional(self.session, professional_id)
            row = await self._get_owned(professional_id, child_id)
            await self._before_update(professional_id, row, updates)
            for field, value in updates.items():
                setattr(row, field, value)
            row.updated_at = utc_now()
            await self.session.flush()

        return self.schema.model_validate(row)

    async def deactivate(self, professional_id: int, child_id: int) -> None:
        """Soft delete; a deactivated principal hands over to the next active row"""
        async with atomic(self.session, f"deactivate:{self.kind.value}"):
            await lock_professional(self.session, professional_id)
            row = await self._get_owned(professional_id, child_id)

            was_principal = self.policy.has_principal and row.is_principal
            row.active = False
            if self.policy.has_principal:
                row.is_principal = False
            row.updated_at = utc_now()
            await self.session.flush()

            if was_principal:
                await self.principals.promote_successor(professional_id, self.policy)

        logger.info(f"Deactivated {self.policy.label} {child_id} for professional {professional_id}")

    async def set_principal(self, professional_id: int, child_id: int) -> Any:
        row = await self.principals.set_principal(professional_id, child_id, self.kind)
        return self.schema.model_validate(row)

    # ==================== HOOKS ====================

    async def _before_create(self, professional_id: int, values: Dict[str, Any]) -> None:
        pass

    async def _before_update(self, professional_id: int, row: Any, updates: Dict[str, Any]) -> None:
        pass

    def _new_row(self, professional_id: int, values: Dict[str, Any]) -> Any:
        return self.model(professional_id=professional_id, **values)

    async def _insert(self, professional_id: int, values: Dict[str, Any]) -> Any:
        row = self._new_row(professional_id, values)
        self.session.add(row)
        await self.session.flush()
        return row

    async def _get_owned(self, professional_id: int, child_id: int) -> Any:
        result = await self.session.execute(
            select(self.model).where(
                self.model.id == child_id,
                self.model.professional_id == professional_id,
                self.model.active.is_(True),
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFound(self.policy.label.capitalize(), child_id)
        return row


class SpecialtyRepository(ChildRepository):
    """Max 3 active, one principal, one active specialty per category"""
    kind = ChildKind.SPECIALTY
    schema = Specialty

    async def _before_create(self, professional_id: int, values: Dict[str, Any]) -> None:
        await self._ensure_category_free(professional_id, values["category_id"])

    async def _before_update(self, professional_id: int, row: Any, updates: Dict[str, Any]) -> None:
        category_id = updates.get("category_id")
        if category_id is not None and category_id != row.category_id:
            await self._ensure_category_free(professional_id, category_id, exclude_id=row.id)

    async def _ensure_category_free(self, professional_id: int, category_id: int,
                                    exclude_id: Optional[int] = None) -> None:
        stmt = select(SpecialtyDB.id).where(
            SpecialtyDB.professional_id == professional_id,
            SpecialtyDB.category_id == category_id,
            SpecialtyDB.active.is_(True),
        )
        if exclude_id is not None:
            stmt = stmt.where(SpecialtyDB.id != exclude_id)
        result = await self.session.execute(stmt)
        if result.first() is not None:
            raise ValidationError(
                f"Category {category_id} is already registered as a specialty",
                {"category_id": category_id},
            )


class AddressRepository(ChildRepository):
    """Max 3 active, exactly one principal"""
    kind = ChildKind.ADDRESS
    schema = Address


class CertificationRepository(ChildRepository):
    kind = ChildKind.CERTIFICATION
    schema = Certification

    async def replace_all(self, professional_id: int, items: List[Any]) -> List[Certification]:
        rows = await BulkReconciler(self.session).reconcile(professional_id, self.kind, items)
        return [Certification.model_validate(row) for row in rows]


class SocialAccountRepository(ChildRepository):
    kind = ChildKind.SOCIAL_ACCOUNT
    schema = SocialAccount

    def _ordering(self) -> tuple:
        return (self.model.platform, self.model.id)

    async def replace_all(self, professional_id: int, items: List[Any]) -> List[SocialAccount]:
        rows = await BulkReconciler(self.session).reconcile(professional_id, self.kind, items)
        return [SocialAccount.model_validate(row) for row in rows]


class BackgroundCheckRepository(ChildRepository):
    """One active check per type; verification belongs to admins"""
    kind = ChildKind.BACKGROUND_CHECK
    schema = BackgroundCheck

    def _ordering(self) -> tuple:
        return (self.model.check_type, self.model.id)

    async def _before_create(self, professional_id: int, values: Dict[str, Any]) -> None:
        result = await self.session.execute(
            select(BackgroundCheckDB.id).where(
                BackgroundCheckDB.professional_id == professional_id,
                BackgroundCheckDB.check_type == values["check_type"],
                BackgroundCheckDB.active.is_(True),
            )
        )
        if result.first() is not None:
            raise self._duplicate(values["check_type"])

    async def _insert(self, professional_id: int, values: Dict[str, Any]) -> Any:
        try:
            return await super()._insert(professional_id, values)
        except IntegrityError:
            raise self._duplicate(values["check_type"])

    async def verify(self, check_id: int, verified: bool = True) -> BackgroundCheck:
        """Admin path: set or clear verification"""
        async with atomic(self.session, "verify:background_check"):
            result = await self.session.execute(
                select(BackgroundCheckDB)
                .where(
                    BackgroundCheckDB.id == check_id,
                    BackgroundCheckDB.active.is_(True),
                )
                .with_for_update()
            )
            check = result.scalar_one_or_none()
            if check is None:
                raise NotFound("Background check", check_id)

            now = utc_now()
            check.verified = verified
            check.verified_at = now if verified else None
            check.updated_at = now
            await self.session.flush()

        logger.info(f"Background check {check_id} verified={verified}")
        return BackgroundCheck.model_validate(check)

    @staticmethod
    def _duplicate(check_type: str) -> ConflictError:
        return ConflictError(
            f"An active {check_type} background check already exists",
            {"check_type": check_type},
        )


class PortfolioRepository(ChildRepository):
    """Max 20 active projects, max 5 images each; ratings come from clients"""
    kind = ChildKind.PORTFOLIO_PROJECT
    schema = PortfolioProject

    def _new_row(self, professional_id: int, values: Dict[str, Any]) -> Any:
        return PortfolioProjectDB(professional_id=professional_id, images=[], **values)

    async def add_image(self, professional_id: int, project_id: int,
                        data: ImageCreate) -> ProjectImage:
        async with atomic(self.session, "create:project_image"):
            await self.guard.ensure_capacity(
                project_id, ChildKind.PROJECT_IMAGE, owner_id=professional_id
            )
            image = ProjectImageDB(project_id=project_id, **data.model_dump())
            self.session.add(image)
            await self.session.flush()

        logger.info(f"Added image {image.id} to project {project_id}")
        return ProjectImage.model_validate(image)

    async def delete_image(self, professional_id: int, project_id: int, image_id: int) -> None:
        """Images are hard-deleted"""
        async with atomic(self.session, "delete:project_image"):
            await lock_professional(self.session, professional_id)
            await lock_project(self.session, professional_id, project_id)
            result = await self.session.execute(
                select(ProjectImageDB).where(
                    ProjectImageDB.id == image_id,
                    ProjectImageDB.project_id == project_id,
                )
            )
            image = result.scalar_one_or_none()
            if image is None:
                raise NotFound("Project image", image_id)
            await self.session.delete(image)
            await self.session.flush()

        logger.info(f"Deleted image {image_id} from project {project_id}")

    async def submit_client_review(self, project_id: int, rating: Any,
                                   comment: Optional[str] = None) -> PortfolioProject:
        """Client path: rate a project once, 0-10"""
        try:
            rating = Decimal(str(rating))
        except (InvalidOperation, ValueError):
            raise ValidationError("Rating must be a number", {"rating": str(rating)})
        if not rating.is_finite() or rating < 0 or rating > 10:
            raise ValidationError("Rating must be between 0 and 10", {"rating": str(rating)})

        async with atomic(self.session, "client_review:portfolio_project"):
            result = await self.session.execute(
                select(PortfolioProjectDB)
                .where(
                    PortfolioProjectDB.id == project_id,
                    PortfolioProjectDB.active.is_(True),
                )
                .with_for_update()
            )
            project = result.scalar_one_or_none()
            if project is None:
                raise NotFound("Portfolio project", project_id)
            if project.client_rating is not None:
                raise ConflictError(
                    "This project has already been reviewed",
                    {"project_id": project_id},
                )

            project.client_rating = rating
            project.client_comment = comment
            project.updated_at = utc_now()
            await self.session.flush()

        logger.info(f"Client review stored for project {project_id}")
        return PortfolioProject.model_validate(project)
