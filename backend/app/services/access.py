# backend/app/services/access.py
"""
Data access for owned records, routed through the access policy.

Every read and write of an owned record goes through this module. The
partner of the record's owner is looked up fresh on each call and handed
to the pure rule in security.policy.

Denials are consistent for all record types:
- not readable        -> RecordNotFound (404), existence is not leaked
- readable, not owned -> PermissionDenied (403) on update/delete

Child rows (loan payments, shopping list items) have no owner of their
own; they are checked against the owner of their parent record.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Type

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import PermissionDenied, RecordNotFound, ValidationFailed
from backend.app.models.user import User
from backend.app.security import policy
from backend.app.security.policy import Action
from backend.app.services import partnerships

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at", "updated_at"})


def label(model: Type) -> str:
    words = re.sub(r"(?<!^)(?=[A-Z])", " ", model.__name__).lower()
    return words[:1].upper() + words[1:]


async def readable_owner_ids(db: AsyncSession, user: User) -> List[int]:
    partner_id = await partnerships.get_active_partner_id(db, user.id)
    return policy.readable_owner_ids(user.id, partner_id)


async def check_owner(db: AsyncSession, user: User, owner_id: int, action: Action, what: str) -> None:
    """Apply the policy to a record of `owner_id`; `what` names it in the error."""
    owner_partner_id = None
    if owner_id != user.id:
        owner_partner_id = await partnerships.get_active_partner_id(db, owner_id)

    if not policy.is_allowed(Action.READ, user.id, owner_id, owner_partner_id):
        raise RecordNotFound(f"{what} not found")

    if action is not Action.READ and not policy.is_allowed(action, user.id, owner_id, owner_partner_id):
        raise PermissionDenied(f"Only the owner can modify this {what.lower()}")


async def authorize(db: AsyncSession, user: User, record: Any, action: Action) -> None:
    await check_owner(db, user, record.user_id, action, label(type(record)))


async def load_record(
    db: AsyncSession, model: Type, record_id: int, user: User, action: Action = Action.READ
) -> Any:
    record = await db.get(model, record_id)
    if record is None:
        raise RecordNotFound(f"{label(model)} not found")

    await authorize(db, user, record, action)
    return record


async def list_records(
    db: AsyncSession,
    model: Type,
    user: User,
    *criteria,
    order_by=None,
    skip: int = 0,
    limit: int = 100,
) -> List[Any]:
    """Records of the user and of their active partner, newest first by default."""
    owner_ids = await readable_owner_ids(db, user)
    query = select(model).where(model.user_id.in_(owner_ids), *criteria)

    if order_by is None:
        order_by = (model.created_at.desc(), model.id.desc())
    query = query.order_by(*order_by).offset(skip).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


def apply_changes(record: Any, changes: Dict[str, Any], protected: Iterable[str] = PROTECTED_FIELDS) -> None:
    """
    Copy a partial update onto a row.

    An explicit null is only accepted for nullable columns; anything else
    is a 400 naming the offending fields, and the row is left untouched.
    """
    columns = record.__table__.columns
    errors = [
        {"field": key, "message": "Field cannot be null"}
        for key, value in changes.items()
        if value is None and key in columns and not columns[key].nullable
    ]
    if errors:
        raise ValidationFailed("Invalid request", errors=errors)

    for key, value in changes.items():
        if key in protected:
            continue
        setattr(record, key, value)


async def commit(db: AsyncSession, record: Any = None) -> None:
    """Commit, turning constraint violations into a 400 instead of a raw database error."""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.info("Rejected write violating a constraint: %s", exc.orig)
        raise ValidationFailed("The record could not be saved with the given values") from exc

    if record is not None:
        await db.refresh(record)


async def create_record(db: AsyncSession, model: Type, user: User, data: Dict[str, Any]) -> Any:
    # The owner is always the caller, whatever the payload says
    data = {key: value for key, value in data.items() if key not in ("id", "user_id")}
    record = model(**data, user_id=user.id)
    db.add(record)
    await commit(db, record)
    return record


async def update_record(
    db: AsyncSession, model: Type, record_id: int, user: User, changes: Dict[str, Any]
) -> Any:
    record = await load_record(db, model, record_id, user, Action.WRITE)

    apply_changes(record, changes)
    db.add(record)
    await commit(db, record)
    return record


async def delete_record(db: AsyncSession, model: Type, record_id: int, user: User) -> None:
    record = await load_record(db, model, record_id, user, Action.WRITE)
    await db.delete(record)
    await db.commit()
