# backend/app/security/policy.py
"""
Access policy for owned financial records.

    read:  the owner, or the owner's ACTIVE partner
    write: the owner only, partnership status is irrelevant

This is the only place the rule is written down. It is pure: the caller
looks up the owner's partner (live, per request) and passes it in, so a
disconnect takes effect on the very next request.
"""
from enum import Enum
from typing import List, Optional


class Action(str, Enum):
    READ = "read"
    WRITE = "write"


def can_read(requesting_user_id: int, owner_id: int, owner_partner_id: Optional[int]) -> bool:
    if requesting_user_id == owner_id:
        return True
    return owner_partner_id is not None and owner_partner_id == requesting_user_id


def can_write(requesting_user_id: int, owner_id: int) -> bool:
    return requesting_user_id == owner_id


def is_allowed(
    action: Action,
    requesting_user_id: int,
    owner_id: int,
    owner_partner_id: Optional[int] = None,
) -> bool:
    if action is Action.WRITE:
        return can_write(requesting_user_id, owner_id)
    return can_read(requesting_user_id, owner_id, owner_partner_id)


def readable_owner_ids(requesting_user_id: int, requester_partner_id: Optional[int]) -> List[int]:
    """
    Owners whose records the requester may list.

    Partnership is symmetric, so "owner's partner is me" is the same as
    "owner is my partner": the read rule as a query filter.
    """
    owners = [requesting_user_id]
    if requester_partner_id is not None and requester_partner_id != requesting_user_id:
        owners.append(requester_partner_id)
    return owners

