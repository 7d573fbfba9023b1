"""
Bulk reconciler.

Replaces a professional's full active set of social accounts or
certifications with a client-supplied list in one transaction:

- active rows whose id is absent from the list are deactivated
- listed rows with an id are updated in place (and reactivated if needed)
- listed rows without an id are inserted

For certifications the list position becomes the stored `order`.
Any failure rolls the whole reconcile back, so the active set is either the
old one or the new one, never a mix.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database.profile_models import utc_now

from .errors import NotFound, ValidationError
from .policies import ChildKind, ChildPolicy, policy_for
from .schemas import CertificationInput, SocialAccountInput
from .transaction import atomic, lock_professional

logger = logging.getLogger(__name__)


def _social_values(item: SocialAccountInput, position: int) -> Dict[str, Any]:
    return {"platform": item.platform, "url": item.url}


def _certification_values(item: CertificationInput, position: int) -> Dict[str, Any]:
    return {
        "name": item.name,
        "institution": item.institution,
        "obtained_on": item.obtained_on,
        "expires_on": item.expires_on,
        "document_url": item.document_url,
        "description": item.description,
        "order": position,
    }


@dataclass(frozen=True)
class ReconcileTarget:
    policy: ChildPolicy
    input_model: Type[BaseModel]
    values: Callable[[Any, int], Dict[str, Any]]


RECONCILABLE: Dict[ChildKind, ReconcileTarget] = {
    ChildKind.SOCIAL_ACCOUNT: ReconcileTarget(
        policy=policy_for(ChildKind.SOCIAL_ACCOUNT),
        input_model=SocialAccountInput,
        values=_social_values,
    ),
    ChildKind.CERTIFICATION: ReconcileTarget(
        policy=policy_for(ChildKind.CERTIFICATION),
        input_model=CertificationInput,
        values=_certification_values,
    ),
}


class BulkReconciler:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def reconcile(self, professional_id: int, kind: Any, desired: Sequence[Any]) -> List[Any]:
        """
        Make the active set of `kind` equal `desired`.

        `desired` holds input models (or plain dicts of the same shape).
        Returns the freshly loaded active rows in display order.
        """
        target = self._target_for(kind)
        items = self._coerce(target, desired)
        model = target.policy.model

        async with atomic(self.session, f"reconcile:{target.policy.kind.value}"):
            await lock_professional(self.session, professional_id)

            keep_ids = {item.id for item in items if item.id is not None}
            owned = await self._owned_ids(professional_id, model, keep_ids)
            missing = sorted(keep_ids - owned)
            if missing:
                raise NotFound(target.policy.label.capitalize(), missing[0])

            active = await self.session.execute(
                select(model.id).where(
                    model.professional_id == professional_id,
                    model.active.is_(True),
                )
            )
            stale_ids = [row_id for row_id in active.scalars() if row_id not in keep_ids]

            now = utc_now()
            for row_id in stale_ids:
                await self.session.execute(
                    update(model)
                    .where(model.id == row_id)
                    .values(active=False, updated_at=now)
                    .execution_options(synchronize_session=False)
                )

            for position, item in enumerate(items, start=1):
                values = target.values(item, position)
                if item.id is not None:
                    await self.session.execute(
                        update(model)
                        .where(
                            model.id == item.id,
                            model.professional_id == professional_id,
                        )
                        .values(active=True, updated_at=now, **values)
                        .execution_options(synchronize_session=False)
                    )
                else:
                    self.session.add(model(professional_id=professional_id, **values))

            await self.session.flush()
            rows = await self._load_active(professional_id, model)

        logger.info(
            f"Reconciled {target.policy.label} set for professional {professional_id}: "
            f"{len(rows)} active, {len(stale_ids)} deactivated"
        )
        return rows

    async def _owned_ids(self, professional_id: int, model: Any, ids: set) -> set:
        if not ids:
            return set()
        result = await self.session.execute(
            select(model.id).where(
                model.id.in_(ids),
                model.professional_id == professional_id,
            )
        )
        return set(result.scalars())

    async def _load_active(self, professional_id: int, model: Any) -> List[Any]:
        result = await self.session.execute(
            select(model)
            .where(
                model.professional_id == professional_id,
                model.active.is_(True),
            )
            .order_by(*self._display_order(model))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    @staticmethod
    def _display_order(model: Any) -> tuple:
        if hasattr(model, "order"):
            return (model.order, model.id)
        return (model.id,)

    @staticmethod
    def _target_for(kind: Any) -> ReconcileTarget:
        policy = policy_for(kind)
        target = RECONCILABLE.get(policy.kind)
        if target is None:
            raise ValidationError(
                f"{policy.label.capitalize()} records cannot be reconciled in bulk",
                {"kind": policy.kind.value},
            )
        return target

    @staticmethod
    def _coerce(target: ReconcileTarget, desired: Sequence[Any]) -> List[Any]:
        if not desired:
            raise ValidationError(
                f"At least one {target.policy.label} is required",
                {"kind": target.policy.kind.value},
            )

        items = []
        for index, raw in enumerate(desired):
            if isinstance(raw, target.input_model):
                items.append(raw)
                continue
            try:
                source = raw.model_dump() if isinstance(raw, BaseModel) else raw
                items.append(target.input_model.model_validate(source))
            except PydanticValidationError as e:
                errors = e.errors(include_url=False, include_context=False, include_input=False)
                raise ValidationError(
                    f"Invalid {target.policy.label} at position {index + 1}",
                    {"position": index + 1, "errors": errors},
                )

        seen = set()
        for item in items:
            if item.id is None:
                continue
            if item.id in seen:
                raise ValidationError(
                    f"Duplicate {target.policy.label} id {item.id}",
                    {"id": item.id},
                )
            seen.add(item.id)
        return items
