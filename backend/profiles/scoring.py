"""
Platform score.

A professional's score is a weighted sum of five signals, each normalized to
the 0-10 range before weighting:

| Signal            | Source                                   | Weight |
|-------------------|------------------------------------------|--------|
| rating            | mean rating of completed active projects | 40%    |
| certifications    | active certifications, capped            | 20%    |
| background_checks | verified active checks / check types     | 20%    |
| experience        | years of experience, capped              | 10%    |
| biography         | biography of at least the minimum length | 10%    |

The total is clamped to [0, 10] and rounded half-up to two decimals. It is
derived on every read and never stored.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database.profile_models import (
    ProfessionalDB, PortfolioProjectDB, CertificationDB, BackgroundCheckDB,
    BackgroundCheckType
)

from .errors import NotFound
from .schemas import ScoreBreakdown

logger = logging.getLogger(__name__)


MAX_SCORE = Decimal("10")
ZERO = Decimal("0")
CENTS = Decimal("0.01")

WEIGHTS: Dict[str, Decimal] = {
    "rating": Decimal("0.40"),
    "certifications": Decimal("0.20"),
    "background_checks": Decimal("0.20"),
    "experience": Decimal("0.10"),
    "biography": Decimal("0.10"),
}

VERIFIABLE_CHECK_TYPES = len(BackgroundCheckType)


def _clamp(value: Decimal) -> Decimal:
    return max(ZERO, min(MAX_SCORE, value))


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _capped_ratio(count: int, cap: int) -> Decimal:
    """min(count, cap) / cap scaled to 0-10"""
    if cap <= 0:
        return ZERO
    return Decimal(min(max(count, 0), cap)) / Decimal(cap) * MAX_SCORE


class ScoreAggregator:
    def __init__(
        self,
        session: AsyncSession,
        certification_cap: Optional[int] = None,
        experience_cap_years: Optional[int] = None,
        bio_min_length: Optional[int] = None,
    ):
        settings = get_settings()
        self.session = session
        self.certification_cap = (
            settings.SCORE_CERTIFICATION_CAP if certification_cap is None else certification_cap
        )
        self.experience_cap_years = (
            settings.SCORE_EXPERIENCE_CAP_YEARS if experience_cap_years is None else experience_cap_years
        )
        self.bio_min_length = (
            settings.SCORE_BIO_MIN_LENGTH if bio_min_length is None else bio_min_length
        )

    async def compute_score(self, professional_id: int) -> Decimal:
        breakdown = await self.compute_breakdown(professional_id)
        return breakdown.total

    async def compute_breakdown(self, professional_id: int) -> ScoreBreakdown:
        """Compute every signal, its weighted contribution and the total"""
        result = await self.session.execute(
            select(ProfessionalDB.years_experience, ProfessionalDB.biography).where(
                ProfessionalDB.id == professional_id,
                ProfessionalDB.active.is_(True),
            )
        )
        row = result.first()
        if row is None:
            raise NotFound("Professional", professional_id)

        signals = {
            "rating": await self._rating_signal(professional_id),
            "certifications": _capped_ratio(
                await self._count_certifications(professional_id), self.certification_cap
            ),
            "background_checks": _capped_ratio(
                await self._count_verified_checks(professional_id), VERIFIABLE_CHECK_TYPES
            ),
            "experience": _capped_ratio(row.years_experience or 0, self.experience_cap_years),
            "biography": self._biography_signal(row.biography),
        }
        signals = {name: _clamp(value) for name, value in signals.items()}
        contributions = {name: signals[name] * weight for name, weight in WEIGHTS.items()}
        total = _round(_clamp(sum(contributions.values(), ZERO)))

        logger.debug(f"Score for professional {professional_id}: {total}")
        return ScoreBreakdown(
            signals={name: _round(value) for name, value in signals.items()},
            contributions={name: _round(value) for name, value in contributions.items()},
            total=total,
        )

    # ==================== SIGNALS ====================

    async def _rating_signal(self, professional_id: int) -> Decimal:
        """Mean client rating of completed projects"""
        result = await self.session.execute(
            select(func.avg(PortfolioProjectDB.client_rating)).where(
                PortfolioProjectDB.professional_id == professional_id,
                PortfolioProjectDB.active.is_(True),
                PortfolioProjectDB.completed_on.is_not(None),
                PortfolioProjectDB.client_rating.is_not(None),
            )
        )
        mean = result.scalar_one_or_none()
        if mean is None:
            return ZERO
        return Decimal(str(mean))

    async def _count_certifications(self, professional_id: int) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(CertificationDB).where(
                CertificationDB.professional_id == professional_id,
                CertificationDB.active.is_(True),
            )
        )
        return result.scalar_one()

    async def _count_verified_checks(self, professional_id: int) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(BackgroundCheckDB).where(
                BackgroundCheckDB.professional_id == professional_id,
                BackgroundCheckDB.active.is_(True),
                BackgroundCheckDB.verified.is_(True),
            )
        )
        return result.scalar_one()

    def _biography_signal(self, biography: Optional[str]) -> Decimal:
        if biography and len(biography.strip()) >= self.bio_min_length:
            return MAX_SCORE
        return ZERO
