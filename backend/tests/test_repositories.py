"""
Unit Tests for Profile Repositories

Tests owner/client/admin write paths:
- one active background check per type (code check + partial unique index)
- admin verification
- owner payloads cannot set client or admin fields
- client review is write-once and range checked
- ownership is fused with existence

Run with: pytest tests/test_repositories.py -v
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from database.profile_models import BackgroundCheckDB, ProjectImageDB
from profiles.errors import ConflictError, NotFound, ValidationError
from profiles.repositories import (
    ProfessionalRepository, SpecialtyRepository, PortfolioRepository,
    BackgroundCheckRepository, AddressRepository, CertificationRepository
)
from profiles.schemas import (
    ProfessionalProfileUpdate, SpecialtyCreate, SpecialtyUpdate, ProjectCreate,
    ProjectUpdate, ImageCreate, BackgroundCheckCreate, BackgroundCheckUpdate, AddressUpdate,
    AddressCreate, CertificationCreate, CertificationUpdate
)


def _police_check(url="https://docs.example.com/police.pdf"):
    return BackgroundCheckCreate(check_type="police", document_url=url)


class TestBackgroundChecks:
    """One active check per type"""

    @pytest.mark.asyncio
    async def test_duplicate_active_type_is_conflict(self, session, professional_id, count_rows):
        repo = BackgroundCheckRepository(session)
        await repo.create(professional_id, _police_check())

        with pytest.raises(ConflictError) as exc_info:
            await repo.create(professional_id, _police_check("https://docs.example.com/police-2.pdf"))

        assert exc_info.value.code == "conflict"
        assert await count_rows(
            BackgroundCheckDB, BackgroundCheckDB.professional_id == professional_id
        ) == 1

    @pytest.mark.asyncio
    async def test_type_is_free_again_after_deactivation(self, session, professional_id):
        repo = BackgroundCheckRepository(session)
        first = await repo.create(professional_id, _police_check())
        await repo.deactivate(professional_id, first.id)

        second = await repo.create(professional_id, _police_check("https://docs.example.com/renewed.pdf"))

        assert second.id != first.id
        assert [check.id for check in await repo.list(professional_id)] == [second.id]

    @pytest.mark.asyncio
    async def test_partial_unique_index_backs_the_check(self, session, professional_id):
        """A direct insert bypassing the repository still cannot create a second active row"""
        for url in ("https://docs.example.com/a.pdf", "https://docs.example.com/b.pdf"):
            session.add(BackgroundCheckDB(
                professional_id=professional_id, check_type="criminal", document_url=url
            ))

        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()

    @pytest.mark.asyncio
    async def test_owner_update_cannot_verify(self, session, professional_id):
        repo = BackgroundCheckRepository(session)
        check = await repo.create(professional_id, _police_check())
        payload = BackgroundCheckUpdate.model_validate({"notes": "renewed", "verified": True})

        updated = await repo.update(professional_id, check.id, payload)

        assert updated.notes == "renewed"
        assert updated.verified is False
        assert updated.verified_at is None

    @pytest.mark.asyncio
    async def test_admin_verify_and_unverify(self, session, professional_id):
        repo = BackgroundCheckRepository(session)
        check = await repo.create(professional_id, _police_check())

        verified = await repo.verify(check.id)
        assert verified.verified is True
        assert verified.verified_at is not None

        cleared = await repo.verify(check.id, verified=False)
        assert cleared.verified is False
        assert cleared.verified_at is None

    @pytest.mark.asyncio
    async def test_verify_unknown_check_is_not_found(self, session):
        with pytest.raises(NotFound):
            await BackgroundCheckRepository(session).verify(555)


class TestOwnerFieldStripping:
    """Client and admin fields in owner payloads are dropped silently"""

    @pytest.mark.asyncio
    async def test_project_update_ignores_client_rating(self, session, professional_id):
        repo = PortfolioRepository(session)
        project = await repo.create(professional_id, ProjectCreate(name="Roof repair"))
        payload = ProjectUpdate.model_validate({
            "description": "Replaced 40 tiles",
            "client_rating": 10,
            "client_comment": "Perfect",
        })

        updated = await repo.update(professional_id, project.id, payload)

        assert updated.description == "Replaced 40 tiles"
        assert updated.client_rating is None
        assert updated.client_comment is None

    @pytest.mark.asyncio
    async def test_profile_update_ignores_verified(self, session, professional_id):
        payload = ProfessionalProfileUpdate.model_validate({
            "biography": "Plumber in Lima",
            "years_experience": 6,
            "verified": True,
            "active": False,
        })

        profile = await ProfessionalRepository(session).update_profile(professional_id, payload)

        assert profile.biography == "Plumber in Lima"
        assert profile.years_experience == 6
        assert profile.verified is False
        assert (await ProfessionalRepository(session).get(professional_id)).id == professional_id

    @pytest.mark.asyncio
    async def test_update_profile_of_unknown_professional(self, session):
        with pytest.raises(NotFound):
            await ProfessionalRepository(session).update_profile(
                999, ProfessionalProfileUpdate(full_name="Nobody")
            )


class TestPartialUpdates:
    """Only sent fields change; null clears optional columns"""

    @pytest.mark.asyncio
    async def test_null_clears_optional_certification_fields(self, session, professional_id):
        repo = CertificationRepository(session)
        certification = await repo.create(professional_id, CertificationCreate(
            name="Working at heights",
            obtained_on=date(2019, 1, 1),
            expires_on=date(2020, 1, 1),
            document_url="https://docs.example.com/heights.pdf",
        ))
        payload = CertificationUpdate.model_validate({
            "expires_on": None,
            "document_url": None,
            "institution": "SENATI",
        })

        updated = await repo.update(professional_id, certification.id, payload)

        assert updated.expires_on is None
        assert updated.document_url is None
        assert updated.institution == "SENATI"
        assert updated.obtained_on == date(2019, 1, 1)
        assert updated.name == "Working at heights"

    @pytest.mark.asyncio
    async def test_null_on_required_column_is_ignored(self, session, professional_id):
        repo = AddressRepository(session)
        address = await repo.create(professional_id, AddressCreate(
            full_address="Av. Brasil 300", district="Magdalena"
        ))

        updated = await repo.update(
            professional_id, address.id,
            AddressUpdate.model_validate({"full_address": None, "district": None}),
        )

        assert updated.full_address == "Av. Brasil 300"
        assert updated.district is None

    @pytest.mark.asyncio
    async def test_profile_biography_can_be_cleared(self, session, make_professional):
        professional_id = await make_professional(biography="Painter", years_experience=3)

        profile = await ProfessionalRepository(session).update_profile(
            professional_id, ProfessionalProfileUpdate.model_validate({"biography": None})
        )

        assert profile.biography is None
        assert profile.years_experience == 3


class TestClientReview:
    """Client rating path"""

    @pytest.mark.asyncio
    async def test_review_is_stored(self, session, professional_id):
        repo = PortfolioRepository(session)
        project = await repo.create(professional_id, ProjectCreate(name="Tiling"))

        reviewed = await repo.submit_client_review(project.id, "8.5", "On time")

        assert reviewed.client_rating == Decimal("8.5")
        assert reviewed.client_comment == "On time"

    @pytest.mark.asyncio
    async def test_review_is_write_once(self, session, session_factory, professional_id):
        repo = PortfolioRepository(session)
        project = await repo.create(professional_id, ProjectCreate(name="Painting"))
        await repo.submit_client_review(project.id, 7)

        with pytest.raises(ConflictError):
            await repo.submit_client_review(project.id, 3)

        async with session_factory() as fresh:
            stored = await PortfolioRepository(fresh).get(professional_id, project.id)
        assert stored.client_rating == Decimal("7")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [-1, "10.5", "abc", "NaN"])
    async def test_out_of_range_rating_is_rejected(self, session, professional_id, rating):
        repo = PortfolioRepository(session)
        project = await repo.create(professional_id, ProjectCreate(name="Fence"))

        with pytest.raises(ValidationError):
            await repo.submit_client_review(project.id, rating)

    @pytest.mark.asyncio
    async def test_review_of_unknown_project_is_not_found(self, session):
        with pytest.raises(NotFound):
            await PortfolioRepository(session).submit_client_review(404, 5)


class TestSpecialtyCategories:
    """One active specialty per category"""

    @pytest.mark.asyncio
    async def test_duplicate_category_on_create(self, session, professional_id):
        repo = SpecialtyRepository(session)
        await repo.create(professional_id, SpecialtyCreate(category_id=12))

        with pytest.raises(ValidationError):
            await repo.create(professional_id, SpecialtyCreate(category_id=12))

    @pytest.mark.asyncio
    async def test_duplicate_category_on_update(self, session, professional_id):
        repo = SpecialtyRepository(session)
        await repo.create(professional_id, SpecialtyCreate(category_id=12))
        other = await repo.create(professional_id, SpecialtyCreate(category_id=13))

        with pytest.raises(ValidationError):
            await repo.update(professional_id, other.id, SpecialtyUpdate(category_id=12))

    @pytest.mark.asyncio
    async def test_update_cannot_change_principal(self, session, professional_id):
        repo = SpecialtyRepository(session)
        await repo.create(professional_id, SpecialtyCreate(category_id=1))
        second = await repo.create(professional_id, SpecialtyCreate(category_id=2))
        payload = SpecialtyUpdate.model_validate({"description": "Night shifts", "is_principal": True})

        updated = await repo.update(professional_id, second.id, payload)

        assert updated.description == "Night shifts"
        assert updated.is_principal is False


class TestOwnership:
    """Another professional's rows are reported as missing"""

    @pytest.mark.asyncio
    async def test_update_foreign_address_is_not_found(self, session, professional_id,
                                                       other_professional_id):
        repo = AddressRepository(session)
        theirs = await repo.create(other_professional_id, AddressCreate(full_address="Jr. Cusco 9"))

        with pytest.raises(NotFound):
            await repo.update(professional_id, theirs.id, AddressUpdate(district="Miraflores"))

    @pytest.mark.asyncio
    async def test_deactivate_foreign_specialty_is_not_found(self, session, professional_id,
                                                             other_professional_id):
        repo = SpecialtyRepository(session)
        theirs = await repo.create(other_professional_id, SpecialtyCreate(category_id=3))

        with pytest.raises(NotFound):
            await repo.deactivate(professional_id, theirs.id)

        assert len(await repo.list(other_professional_id)) == 1

    @pytest.mark.asyncio
    async def test_get_deactivated_row_is_not_found(self, session, professional_id):
        repo = AddressRepository(session)
        address = await repo.create(professional_id, AddressCreate(full_address="Av. Grau 77"))
        await repo.deactivate(professional_id, address.id)

        with pytest.raises(NotFound):
            await repo.get(professional_id, address.id)


class TestProjectImages:
    """Images are the one hard-deleted child"""

    @pytest.mark.asyncio
    async def test_delete_image_removes_row(self, session, professional_id, count_rows):
        repo = PortfolioRepository(session)
        project = await repo.create(professional_id, ProjectCreate(name="Deck"))
        image = await repo.add_image(
            professional_id, project.id, ImageCreate(url="https://cdn.example.com/deck.jpg")
        )

        await repo.delete_image(professional_id, project.id, image.id)

        assert await count_rows(ProjectImageDB, ProjectImageDB.id == image.id) == 0

    @pytest.mark.asyncio
    async def test_delete_image_of_foreign_project_is_not_found(self, session, professional_id,
                                                                other_professional_id):
        repo = PortfolioRepository(session)
        project = await repo.create(other_professional_id, ProjectCreate(name="Stairs"))
        image = await repo.add_image(
            other_professional_id, project.id, ImageCreate(url="https://cdn.example.com/s.jpg")
        )

        with pytest.raises(NotFound):
            await repo.delete_image(professional_id, project.id, image.id)
