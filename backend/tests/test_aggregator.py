"""
Unit Tests for the Profile Aggregator

Tests the composite profile view:
- a fully populated profile loads every slice
- a failing slice degrades to its empty default and marks the view partial
- a missing professional is NotFound, not an empty view

Run with: pytest tests/test_aggregator.py -v
"""

import asyncio
import logging
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from profiles.aggregator import ProfileAggregator, DEFAULT_FETCHERS
from profiles.errors import NotFound, StorageError
from profiles.repositories import (
    SpecialtyRepository, CertificationRepository, PortfolioRepository,
    BackgroundCheckRepository, SocialAccountRepository, AddressRepository
)
from profiles.schemas import (
    SpecialtyCreate, CertificationCreate, ProjectCreate, ImageCreate,
    BackgroundCheckCreate, SocialAccountInput, AddressCreate
)


@pytest.fixture
def populated(session, professional_id):
    """Seed one record of every child type"""

    async def seed():
        await SpecialtyRepository(session).create(professional_id, SpecialtyCreate(category_id=4))
        await CertificationRepository(session).create(
            professional_id, CertificationCreate(name="Electrical safety", institution="SENATI")
        )
        portfolio = PortfolioRepository(session)
        project = await portfolio.create(
            professional_id, ProjectCreate(name="Office lighting", completed_on=date(2024, 5, 20))
        )
        await portfolio.add_image(
            professional_id, project.id, ImageCreate(url="https://cdn.example.com/after.jpg", kind="after")
        )
        await portfolio.submit_client_review(project.id, 9, "Clean work")
        checks = BackgroundCheckRepository(session)
        check = await checks.create(
            professional_id,
            BackgroundCheckCreate(check_type="police", document_url="https://docs.example.com/police.pdf"),
        )
        await checks.verify(check.id)
        await checks.create(
            professional_id,
            BackgroundCheckCreate(check_type="judicial", document_url="https://docs.example.com/judicial.pdf"),
        )
        await SocialAccountRepository(session).replace_all(professional_id, [
            SocialAccountInput(platform="facebook", url="https://facebook.com/ana"),
        ])
        await AddressRepository(session).create(
            professional_id, AddressCreate(full_address="Av. Javier Prado 500", district="San Isidro")
        )
        return professional_id

    return seed


class TestFullProfile:
    """Every slice succeeds"""

    @pytest.mark.asyncio
    async def test_full_profile_loads_every_slice(self, session_factory, populated):
        professional_id = await populated()

        view = await ProfileAggregator(session_factory).build_full_profile(professional_id)

        assert view.professional.full_name == "Ana Torres"
        assert len(view.specialties) == 1
        assert view.specialties[0].is_principal is True
        assert [c.name for c in view.certifications] == ["Electrical safety"]
        assert len(view.projects) == 1
        assert view.projects[0].client_rating == Decimal("9")
        assert [image.kind for image in view.projects[0].images] == ["after"]
        assert len(view.background_checks) == 2
        assert view.verified_background_checks == 1
        assert [a.platform for a in view.social_accounts] == ["facebook"]
        assert view.addresses[0].is_principal is True
        assert view.partial is False
        assert set(view.slices) == set(DEFAULT_FETCHERS)
        assert all(status.status == "ok" for status in view.slices.values())

    @pytest.mark.asyncio
    async def test_platform_score_matches_breakdown(self, session_factory, populated):
        professional_id = await populated()

        view = await ProfileAggregator(session_factory).build_full_profile(professional_id)

        # 9 * 0.40 + 1/5 * 10 * 0.20 + 1/3 * 10 * 0.20
        assert view.platform_score == Decimal("4.67")
        assert view.score_breakdown.total == view.platform_score

    @pytest.mark.asyncio
    async def test_empty_profile_is_complete(self, session_factory, professional_id):
        view = await ProfileAggregator(session_factory).build_full_profile(professional_id)

        assert view.specialties == []
        assert view.projects == []
        assert view.verified_background_checks == 0
        assert view.platform_score == Decimal("0.00")
        assert view.partial is False


class TestPartialProfile:
    """A failing optional slice does not take the view down"""

    @pytest.mark.asyncio
    async def test_failed_slice_falls_back_to_default(self, session_factory, populated, caplog):
        professional_id = await populated()
        failing = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection reset")))
        aggregator = ProfileAggregator(session_factory, fetchers={"certifications": failing})

        with caplog.at_level(logging.WARNING, logger="profiles.aggregator"):
            view = await aggregator.build_full_profile(professional_id)

        assert view.certifications == []
        assert view.slices["certifications"].status == "failed"
        assert view.slices["certifications"].error == "OperationalError"
        assert view.partial is True
        assert len(view.specialties) == 1
        assert len(view.addresses) == 1
        assert any("certifications" in record.getMessage() for record in caplog.records)
        failing.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_score_reports_zero(self, session_factory, populated):
        professional_id = await populated()
        aggregator = ProfileAggregator(
            session_factory, fetchers={"score": AsyncMock(side_effect=RuntimeError("boom"))}
        )

        view = await aggregator.build_full_profile(professional_id)

        assert view.platform_score == Decimal("0.00")
        assert view.score_breakdown is None
        assert view.slices["score"].error == "RuntimeError"
        assert view.partial is True


class TestSliceConcurrency:
    """Slice sessions are bounded per read"""

    @pytest.mark.asyncio
    async def test_open_slices_never_exceed_limit(self, session_factory, populated):
        professional_id = await populated()
        gauge = {"open": 0, "peak": 0}

        def tracked(fetcher):
            async def run(session, pid):
                gauge["open"] += 1
                gauge["peak"] = max(gauge["peak"], gauge["open"])
                try:
                    await asyncio.sleep(0.01)
                    return await fetcher(session, pid)
                finally:
                    gauge["open"] -= 1
            return run

        aggregator = ProfileAggregator(
            session_factory,
            fetchers={name: tracked(fetcher) for name, fetcher in DEFAULT_FETCHERS.items()},
            max_concurrency=2,
        )

        view = await aggregator.build_full_profile(professional_id)

        assert gauge["peak"] == 2
        assert view.partial is False
        assert len(view.certifications) == 1


class TestMissingProfessional:
    """The base slice is mandatory"""

    @pytest.mark.asyncio
    async def test_unknown_professional_is_not_found(self, session_factory):
        with pytest.raises(NotFound):
            await ProfileAggregator(session_factory).build_full_profile(31337)

    @pytest.mark.asyncio
    async def test_deactivated_professional_is_not_found(self, session_factory, make_professional):
        professional_id = await make_professional(active=False)

        with pytest.raises(NotFound):
            await ProfileAggregator(session_factory).build_full_profile(professional_id)

    @pytest.mark.asyncio
    async def test_base_storage_failure_is_storage_error(self, session_factory, professional_id,
                                                         monkeypatch):
        failing = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
        monkeypatch.setattr("profiles.aggregator.ProfessionalRepository.get", failing)

        with pytest.raises(StorageError):
            await ProfileAggregator(session_factory).build_full_profile(professional_id)
