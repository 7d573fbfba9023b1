"""
Transaction boundary for the profile engine.

Every mutating engine operation runs its whole multi-statement body inside
`atomic()`. Parent rows are locked with SELECT ... FOR UPDATE so concurrent
operations on the same professional (or project) serialize, while different
parents never wait on each other.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.profile_models import ProfessionalDB, PortfolioProjectDB
from sentry_integration import capture_exception

from .errors import ProfileError, NotFound, StorageError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(session: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Commit on success, roll back on any failure.

    Domain errors pass through unchanged. Driver/ORM failures are logged with
    their full traceback, reported to Sentry and re-raised as StorageError so
    callers only ever see a generic failure.
    """
    try:
        yield session
        await session.commit()
    except ProfileError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            f"Storage failure during {operation}: {e}",
            exc_info=True,
            extra={"operation": operation},
        )
        capture_exception(e, operation=operation)
        raise StorageError(operation) from e
    except BaseException:
        await session.rollback()
        raise


async def lock_professional(session: AsyncSession, professional_id: int) -> ProfessionalDB:
    """Lock an active professional row for the rest of the transaction"""
    result = await session.execute(
        select(ProfessionalDB)
        .where(
            ProfessionalDB.id == professional_id,
            ProfessionalDB.active.is_(True),
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    professional = result.scalar_one_or_none()
    if professional is None:
        raise NotFound("Professional", professional_id)
    return professional


async def lock_project(session: AsyncSession, professional_id: int, project_id: int) -> int:
    """Lock an active project owned by the professional; returns its id"""
    result = await session.execute(
        select(PortfolioProjectDB.id)
        .where(
            PortfolioProjectDB.id == project_id,
            PortfolioProjectDB.professional_id == professional_id,
            PortfolioProjectDB.active.is_(True),
        )
        .with_for_update()
    )
    locked_id = result.scalar_one_or_none()
    if locked_id is None:
        raise NotFound("Portfolio project", project_id)
    return locked_id
