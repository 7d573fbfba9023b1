"""
Cardinality guard.

Counts the active children of a parent under the parent's row lock so two
concurrent inserts can never both observe "one slot left".
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import CardinalityExceeded, ValidationError
from .policies import ChildPolicy, policy_for
from .transaction import lock_professional, lock_project

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    current_count: int
    ceiling: Optional[int]


class CardinalityGuard:
    """
    Ceiling checks for bounded child collections.

    Must be called inside an open transaction (see `atomic`); the lock it
    takes on the parent row is held until that transaction ends, so the
    caller's insert is covered by the same decision.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def check_and_reserve(
        self,
        parent_id: int,
        kind: Any,
        owner_id: Optional[int] = None,
    ) -> GuardDecision:
        """
        Lock the parent and report whether one more active child fits.

        For project images the parent is a project and `owner_id` is the
        professional that must own it.
        """
        policy = policy_for(kind)
        await self._lock_parent(policy, parent_id, owner_id)

        current = await self.count_active(parent_id, policy)
        if policy.ceiling is None:
            return GuardDecision(allowed=True, current_count=current, ceiling=None)

        allowed = current < policy.ceiling
        if not allowed:
            logger.warning(
                f"Ceiling reached for {policy.label} on parent {parent_id}: "
                f"{current}/{policy.ceiling}"
            )
        return GuardDecision(allowed=allowed, current_count=current, ceiling=policy.ceiling)

    async def ensure_capacity(
        self,
        parent_id: int,
        kind: Any,
        owner_id: Optional[int] = None,
    ) -> GuardDecision:
        """check_and_reserve, raising CardinalityExceeded when full"""
        decision = await self.check_and_reserve(parent_id, kind, owner_id)
        if not decision.allowed:
            raise CardinalityExceeded(
                policy_for(kind).label, decision.current_count, decision.ceiling
            )
        return decision

    async def count_active(self, parent_id: int, policy: ChildPolicy) -> int:
        model = policy.model
        stmt = select(func.count()).select_from(model).where(policy.parent_attr == parent_id)
        if policy.soft_delete:
            stmt = stmt.where(model.active.is_(True))
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def _lock_parent(self, policy: ChildPolicy, parent_id: int, owner_id: Optional[int]) -> None:
        if policy.parent_column == "project_id":
            if owner_id is None:
                raise ValidationError(
                    f"An owning professional is required for {policy.label} records"
                )
            await lock_professional(self.session, owner_id)
            await lock_project(self.session, owner_id, parent_id)
        else:
            await lock_professional(self.session, parent_id)
