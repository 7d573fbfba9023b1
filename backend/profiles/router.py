"""
Professional Profiles - API Router

Provides REST API endpoints for professional profiles:
- GET /api/professionals/me/profile - Full profile of the acting professional
- GET /api/professionals/{id}/profile - Full profile of any professional
- GET /api/professionals/me/score - Score breakdown
- PATCH /api/professionals/me - Edit base attributes
- /api/professionals/me/specialties - CRUD + principal (max 3)
- /api/professionals/me/addresses - CRUD + principal (max 3)
- /api/professionals/me/certifications - CRUD + full-list replace
- /api/professionals/me/projects - CRUD + images (max 20 / max 5 images)
- /api/professionals/me/background-checks - CRUD (one active per type)
- /api/professionals/me/social-accounts - list, full-list replace, deactivate
- POST /api/professionals/projects/{id}/review - Client review
- POST /api/professionals/background-checks/{id}/verification - Admin verification

Permissions:
- me/*: professional (acts on the professional bound to the token)
- profile read: any authenticated user
- review: client
- verification: admin
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db, get_session_factory
from middleware.auth import (
    AuthUser, get_current_user_required, get_acting_professional_id,
    require_admin, require_client
)
from utils.error_responses import ErrorResponse, status_for

from .aggregator import ProfileAggregator
from .errors import ProfileError
from .repositories import (
    ProfessionalRepository, SpecialtyRepository, AddressRepository,
    CertificationRepository, PortfolioRepository, BackgroundCheckRepository,
    SocialAccountRepository
)
from .schemas import (
    ProfileView, ScoreBreakdown, ProfessionalProfile, ProfessionalProfileUpdate,
    Specialty, SpecialtyCreate, SpecialtyUpdate,
    Address, AddressCreate, AddressUpdate,
    Certification, CertificationCreate, CertificationUpdate, CertificationsReplace,
    PortfolioProject, ProjectCreate, ProjectUpdate, ProjectImage, ImageCreate, ClientReview,
    BackgroundCheck, BackgroundCheckCreate, BackgroundCheckUpdate, BackgroundCheckVerification,
    SocialAccount, SocialAccountsReplace
)
from .scoring import ScoreAggregator

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/professionals", tags=["Professional Profiles"])


def get_profile_aggregator() -> ProfileAggregator:
    return ProfileAggregator(get_session_factory())


# ==================== PROFILE ====================

@router.get("/me/profile", response_model=ProfileView)
async def get_my_profile(
    professional_id: int = Depends(get_acting_professional_id),
    aggregator: ProfileAggregator = Depends(get_profile_aggregator)
):
    """Full profile of the acting professional, including failed-slice markers."""
    return await aggregator.build_full_profile(professional_id)


@router.get("/me/score", response_model=ScoreBreakdown)
async def get_my_score(
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await ScoreAggregator(db).compute_breakdown(professional_id)


@router.patch("/me", response_model=ProfessionalProfile)
async def update_my_profile(
    request: ProfessionalProfileUpdate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit base attributes.

    `verified` and `active` are not accepted and are dropped if sent.
    """
    return await ProfessionalRepository(db).update_profile(professional_id, request)


# ==================== SPECIALTIES ====================

@router.get("/me/specialties", response_model=List[Specialty])
async def list_specialties(
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await SpecialtyRepository(db).list(professional_id)


@router.post("/me/specialties", response_model=Specialty, status_code=status.HTTP_201_CREATED)
async def create_specialty(
    request: SpecialtyCreate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a specialty.

    **Rules:**
    - At most 3 active specialties (409 limit_reached)
    - One active specialty per category (422)
    - The first specialty becomes principal
    """
    return await SpecialtyRepository(db).create(professional_id, request)


@router.patch("/me/specialties/{specialty_id}", response_model=Specialty)
async def update_specialty(
    specialty_id: int,
    request: SpecialtyUpdate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await SpecialtyRepository(db).update(professional_id, specialty_id, request)


@router.delete("/me/specialties/{specialty_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_specialty(
    specialty_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    await SpecialtyRepository(db).deactivate(professional_id, specialty_id)


@router.post("/me/specialties/{specialty_id}/principal", response_model=Specialty)
async def set_principal_specialty(
    specialty_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await SpecialtyRepository(db).set_principal(professional_id, specialty_id)


# ==================== ADDRESSES ====================

@router.get("/me/addresses", response_model=List[Address])
async def list_addresses(
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await AddressRepository(db).list(professional_id)


@router.post("/me/addresses", response_model=Address, status_code=status.HTTP_201_CREATED)
async def create_address(
    request: AddressCreate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await AddressRepository(db).create(professional_id, request)


@router.patch("/me/addresses/{address_id}", response_model=Address)
async def update_address(
    address_id: int,
    request: AddressUpdate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await AddressRepository(db).update(professional_id, address_id, request)


@router.delete("/me/addresses/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_address(
    address_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    await AddressRepository(db).deactivate(professional_id, address_id)


@router.post("/me/addresses/{address_id}/principal", response_model=Address)
async def set_principal_address(
    address_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await AddressRepository(db).set_principal(professional_id, address_id)


# ==================== CERTIFICATIONS ====================

@router.get("/me/certifications", response_model=List[Certification])
async def list_certifications(
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await CertificationRepository(db).list(professional_id)


@router.post("/me/certifications", response_model=Certification, status_code=status.HTTP_201_CREATED)
async def create_certification(
    request: CertificationCreate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await CertificationRepository(db).create(professional_id, request)


@router.put("/me/certifications", response_model=List[Certification])
async def replace_certifications(
    request: CertificationsReplace,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Replace the full certification list.

    Entries with an id are updated, entries without one are added, and active
    certifications missing from the list are deactivated. List position
    becomes display order.
    """
    return await CertificationRepository(db).replace_all(professional_id, request.certifications)


@router.patch("/me/certifications/{certification_id}", response_model=Certification)
async def update_certification(
    certification_id: int,
    request: CertificationUpdate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await CertificationRepository(db).update(professional_id, certification_id, request)


@router.delete("/me/certifications/{certification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_certification(
    certification_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    await CertificationRepository(db).deactivate(professional_id, certification_id)


# ==================== PORTFOLIO ====================

@router.get("/me/projects", response_model=List[PortfolioProject])
async def list_projects(
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await PortfolioRepository(db).list(professional_id)


@router.post("/me/projects", response_model=PortfolioProject, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    """Add a portfolio project (max 20 active)."""
    return await PortfolioRepository(db).create(professional_id, request)


@router.get("/me/projects/{project_id}", response_model=PortfolioProject)
async def get_project(
    project_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await PortfolioRepository(db).get(professional_id, project_id)


@router.patch("/me/projects/{project_id}", response_model=PortfolioProject)
async def update_project(
    project_id: int,
    request: ProjectUpdate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    """Edit a project. Client rating and comment are dropped if sent."""
    return await PortfolioRepository(db).update(professional_id, project_id, request)


@router.delete("/me/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_project(
    project_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    await PortfolioRepository(db).deactivate(professional_id, project_id)


@router.post("/me/projects/{project_id}/images", response_model=ProjectImage,
             status_code=status.HTTP_201_CREATED)
async def add_project_image(
    project_id: int,
    request: ImageCreate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    """Attach an image to a project (max 5 per project)."""
    return await PortfolioRepository(db).add_image(professional_id, project_id, request)


@router.delete("/me/projects/{project_id}/images/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project_image(
    project_id: int,
    image_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    await PortfolioRepository(db).delete_image(professional_id, project_id, image_id)


# ==================== BACKGROUND CHECKS ====================

@router.get("/me/background-checks", response_model=List[BackgroundCheck])
async def list_background_checks(
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await BackgroundCheckRepository(db).list(professional_id)


@router.post("/me/background-checks", response_model=BackgroundCheck,
             status_code=status.HTTP_201_CREATED)
async def create_background_check(
    request: BackgroundCheckCreate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    """Upload a background check (one active per type, 409 otherwise)."""
    return await BackgroundCheckRepository(db).create(professional_id, request)


@router.patch("/me/background-checks/{check_id}", response_model=BackgroundCheck)
async def update_background_check(
    check_id: int,
    request: BackgroundCheckUpdate,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await BackgroundCheckRepository(db).update(professional_id, check_id, request)


@router.delete("/me/background-checks/{check_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_background_check(
    check_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    await BackgroundCheckRepository(db).deactivate(professional_id, check_id)


# ==================== SOCIAL ACCOUNTS ====================

@router.get("/me/social-accounts", response_model=List[SocialAccount])
async def list_social_accounts(
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    return await SocialAccountRepository(db).list(professional_id)


@router.put("/me/social-accounts", response_model=List[SocialAccount])
async def replace_social_accounts(
    request: SocialAccountsReplace,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    """Replace the full social account list in one transaction."""
    return await SocialAccountRepository(db).replace_all(professional_id, request.accounts)


@router.delete("/me/social-accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_social_account(
    account_id: int,
    professional_id: int = Depends(get_acting_professional_id),
    db: AsyncSession = Depends(get_db)
):
    await SocialAccountRepository(db).deactivate(professional_id, account_id)


# ==================== CLIENT / ADMIN PATHS ====================

@router.post("/projects/{project_id}/review", response_model=PortfolioProject)
async def review_project(
    project_id: int,
    request: ClientReview,
    current_user: AuthUser = Depends(require_client),
    db: AsyncSession = Depends(get_db)
):
    """
    Rate a finished project (0-10).

    **Permissions:** client. A project can be reviewed once (409 afterwards).
    """
    logger.info(f"Client {current_user.id} reviewing project {project_id}")
    return await PortfolioRepository(db).submit_client_review(
        project_id, request.rating, request.comment
    )


@router.post("/background-checks/{check_id}/verification", response_model=BackgroundCheck)
async def verify_background_check(
    check_id: int,
    request: BackgroundCheckVerification,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Set or clear verification of a background check.

    **Permissions:** admin
    """
    logger.info(f"Admin {current_user.id} setting verified={request.verified} on check {check_id}")
    return await BackgroundCheckRepository(db).verify(check_id, request.verified)


# ==================== PUBLIC READ ====================

@router.get("/{professional_id}/profile", response_model=ProfileView)
async def get_profile(
    professional_id: int,
    current_user: AuthUser = Depends(get_current_user_required),
    aggregator: ProfileAggregator = Depends(get_profile_aggregator)
):
    return await aggregator.build_full_profile(professional_id)


# ==================== ERROR HANDLERS ====================

def register_error_handlers(app: FastAPI):
    """Translate engine errors and request validation failures into JSON bodies."""

    @app.exception_handler(ProfileError)
    async def profile_error_handler(request: Request, exc: ProfileError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.details}")
        else:
            logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content=jsonable_encoder(ErrorResponse.from_profile_error(exc))
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=jsonable_encoder(ErrorResponse.from_request_validation(exc.errors()))
        )
