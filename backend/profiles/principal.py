"""
Principal selector.

Specialties and addresses carry an `is_principal` flag. Among the active rows
of one professional at most one is principal, and whenever at least one
active row exists exactly one is.

The swap is always "unset all, then set one" inside a single transaction, so
no reader ever sees two principals and a failed set leaves the previous
principal in place.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from database.profile_models import utc_now

from .errors import NotFound, ValidationError
from .policies import ChildPolicy, policy_for
from .transaction import atomic, lock_professional

logger = logging.getLogger(__name__)


class PrincipalSelector:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def set_principal(self, professional_id: int, child_id: int, kind: Any):
        """Make `child_id` the sole principal of its type for the professional"""
        policy = self._principal_policy(kind)

        async with atomic(self.session, f"set_principal:{policy.kind.value}"):
            await lock_professional(self.session, professional_id)
            child = await self.swap(professional_id, child_id, policy)

        logger.info(f"Principal {policy.label} for professional {professional_id} is now {child_id}")
        return child

    # ==================== IN-TRANSACTION HELPERS ====================

    async def swap(self, professional_id: int, child_id: int, policy: ChildPolicy):
        """
        Unset every principal, then set the target.

        Runs inside the caller's transaction. Raises NotFound when the target
        is missing, inactive or owned by someone else; the caller's rollback
        restores the previous principal.
        """
        model = policy.model
        now = utc_now()

        await self.session.execute(
            update(model)
            .where(
                model.professional_id == professional_id,
                model.is_principal.is_(True),
            )
            .values(is_principal=False, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(
            update(model)
            .where(
                model.id == child_id,
                model.professional_id == professional_id,
                model.active.is_(True),
            )
            .values(is_principal=True, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound(policy.label.capitalize(), child_id)

        refreshed = await self.session.execute(
            select(model)
            .where(model.id == child_id)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one()

    async def assign_on_create(self, professional_id: int, child: Any, policy: ChildPolicy,
                               requested: bool = False):
        """
        Apply the principal rules to a freshly flushed child.

        The first active child of its type always becomes principal; a later
        child becomes principal only when explicitly requested.
        """
        if requested or await self._active_count(professional_id, policy) == 1:
            return await self.swap(professional_id, child.id, policy)
        return child

    async def promote_successor(self, professional_id: int, policy: ChildPolicy) -> Optional[int]:
        """
        Restore "exactly one principal" after a deactivation.

        If no active principal remains, the active child with the lowest
        order (then lowest id) is promoted. Returns the promoted id, if any.
        """
        model = policy.model
        current = await self.session.execute(
            select(model.id).where(
                model.professional_id == professional_id,
                model.active.is_(True),
                model.is_principal.is_(True),
            )
        )
        if current.first() is not None:
            return None

        successor = await self.session.execute(
            select(model.id)
            .where(
                model.professional_id == professional_id,
                model.active.is_(True),
            )
            .order_by(model.order, model.id)
            .limit(1)
        )
        successor_id = successor.scalar_one_or_none()
        if successor_id is None:
            return None

        await self.swap(professional_id, successor_id, policy)
        logger.info(f"Promoted {policy.label} {successor_id} to principal for professional {professional_id}")
        return successor_id

    async def _active_count(self, professional_id: int, policy: ChildPolicy) -> int:
        model = policy.model
        result = await self.session.execute(
            select(func.count()).select_from(model).where(
                model.professional_id == professional_id,
                model.active.is_(True),
            )
        )
        return result.scalar_one()

    @staticmethod
    def _principal_policy(kind: Any) -> ChildPolicy:
        policy = policy_for(kind)
        if not policy.has_principal:
            raise ValidationError(
                f"{policy.label.capitalize()} records have no principal",
                {"kind": policy.kind.value},
            )
        return policy
