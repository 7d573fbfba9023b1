"""
Profile aggregator.

Builds the read-only ProfileView of a professional:

1. Base attributes are mandatory; a missing professional aborts with NotFound.
2. Every optional slice is fetched concurrently, each in its own short-lived
   session, so one failing query can neither poison another slice's
   transaction nor take the whole view down.
3. A failed slice falls back to its empty default, is logged as a warning and
   is marked `failed` in `ProfileView.slices`.

At most `PROFILE_SLICE_CONCURRENCY` slice sessions are open at once per read.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import get_settings
from sentry_integration import capture_exception

from .errors import StorageError
from .repositories import (
    ProfessionalRepository, SpecialtyRepository, CertificationRepository,
    PortfolioRepository, BackgroundCheckRepository, SocialAccountRepository,
    AddressRepository
)
from .schemas import ProfileView, SliceStatus
from .scoring import ScoreAggregator

logger = logging.getLogger(__name__)

SliceFetcher = Callable[[AsyncSession, int], Awaitable[Any]]


async def fetch_specialties(session: AsyncSession, professional_id: int):
    return await SpecialtyRepository(session).list(professional_id)


async def fetch_certifications(session: AsyncSession, professional_id: int):
    return await CertificationRepository(session).list(professional_id)


async def fetch_projects(session: AsyncSession, professional_id: int):
    return await PortfolioRepository(session).list(professional_id)


async def fetch_background_checks(session: AsyncSession, professional_id: int):
    return await BackgroundCheckRepository(session).list(professional_id)


async def fetch_social_accounts(session: AsyncSession, professional_id: int):
    return await SocialAccountRepository(session).list(professional_id)


async def fetch_addresses(session: AsyncSession, professional_id: int):
    return await AddressRepository(session).list(professional_id)


async def fetch_score(session: AsyncSession, professional_id: int):
    return await ScoreAggregator(session).compute_breakdown(professional_id)


DEFAULT_FETCHERS: Dict[str, SliceFetcher] = {
    "specialties": fetch_specialties,
    "certifications": fetch_certifications,
    "projects": fetch_projects,
    "background_checks": fetch_background_checks,
    "social_accounts": fetch_social_accounts,
    "addresses": fetch_addresses,
    "score": fetch_score,
}

# Value used when a slice fails
SLICE_DEFAULTS: Dict[str, Callable[[], Any]] = {
    "specialties": list,
    "certifications": list,
    "projects": list,
    "background_checks": list,
    "social_accounts": list,
    "addresses": list,
    "score": lambda: None,
}


class ProfileAggregator:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        fetchers: Optional[Dict[str, SliceFetcher]] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.max_concurrency = (
            get_settings().PROFILE_SLICE_CONCURRENCY if max_concurrency is None else max_concurrency
        )
        self.fetchers = dict(DEFAULT_FETCHERS)
        if fetchers:
            self.fetchers.update(fetchers)

    async def build_full_profile(self, professional_id: int) -> ProfileView:
        professional = await self._fetch_base(professional_id)

        limit = asyncio.Semaphore(self.max_concurrency)
        outcomes = await asyncio.gather(*(
            self._run_slice(name, fetcher, professional_id, limit)
            for name, fetcher in self.fetchers.items()
        ))

        values: Dict[str, Any] = {}
        slices: Dict[str, SliceStatus] = {}
        for name, value, status in outcomes:
            values[name] = value
            slices[name] = status

        checks = values["background_checks"]
        breakdown = values["score"]
        partial = any(status.status == "failed" for status in slices.values())
        if partial:
            failed = sorted(name for name, status in slices.items() if status.status == "failed")
            logger.warning(f"Partial profile for professional {professional_id}; failed slices: {failed}")

        return ProfileView(
            professional=professional,
            specialties=values["specialties"],
            certifications=values["certifications"],
            projects=values["projects"],
            background_checks=checks,
            verified_background_checks=sum(1 for check in checks if check.verified),
            social_accounts=values["social_accounts"],
            addresses=values["addresses"],
            platform_score=breakdown.total if breakdown is not None else Decimal("0.00"),
            score_breakdown=breakdown,
            slices=slices,
            partial=partial,
        )

    async def _fetch_base(self, professional_id: int):
        try:
            async with self.session_factory() as session:
                return await ProfessionalRepository(session).get(professional_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load professional {professional_id}: {e}", exc_info=True)
            capture_exception(e, operation="build_full_profile")
            raise StorageError("build_full_profile") from e

    async def _run_slice(self, name: str, fetcher: SliceFetcher, professional_id: int,
                         limit: asyncio.Semaphore) -> Tuple[str, Any, SliceStatus]:
        try:
            async with limit, self.session_factory() as session:
                value = await fetcher(session, professional_id)
            return name, value, SliceStatus(status="ok")
        except Exception as e:
            logger.warning(
                f"Profile slice '{name}' failed for professional {professional_id}: {e}",
                exc_info=True,
            )
            default = SLICE_DEFAULTS.get(name, lambda: None)
            return name, default(), SliceStatus(status="failed", error=type(e).__name__)
