"""Membership mutations for collaborative entities.

The resolver is read-only; the invariants around membership are enforced
here, before the caller persists anything:

* at most one entry per user (the owner counts as present)
* the owner's entry cannot be removed or re-roled
* only assignable roles can be granted (``owner`` never is)
* an optional cap on the number of members

Entities build their own entry objects through ``build_member`` so this
module stays independent of the storage layer.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from .capabilities import EntityFamily
from .resolver import find_entry, is_owner

logger = logging.getLogger(__name__)


class MembershipError(Exception):
    """Base class for rejected membership changes."""


class DuplicateMemberError(MembershipError):
    def __init__(self, family: EntityFamily, user_id: Any):
        self.user_id = user_id
        super().__init__(f"User is already a member of this {family.name}")


class MembershipLimitError(MembershipError):
    def __init__(self, family: EntityFamily, limit: int):
        self.limit = limit
        super().__init__(f"This {family.name} has reached its limit of {limit} members")


class InvalidRoleError(MembershipError):
    def __init__(self, family: EntityFamily, role: Any):
        self.role = role
        allowed = ", ".join(sorted(family.assignable_roles))
        super().__init__(f"Invalid {family.name} role '{role}'. Must be one of: {allowed}")


class OwnerImmutableError(MembershipError):
    def __init__(self, family: EntityFamily, action: str):
        self.action = action
        super().__init__(f"Cannot {action} the {family.name} owner")


class MemberNotFoundError(MembershipError):
    def __init__(self, family: EntityFamily, user_id: Any):
        self.user_id = user_id
        super().__init__(f"User is not a member of this {family.name}")


def _members(family: EntityFamily, entity: Any) -> list:
    return getattr(entity, family.membership_attr)


def _check_role(family: EntityFamily, role: Any) -> str:
    role = getattr(role, "value", role)
    if role not in family.assignable_roles:
        raise InvalidRoleError(family, role)
    return role


def member_count(family: EntityFamily, entity: Any) -> int:
    """Number of distinct members, counting the owner once."""
    members = _members(family, entity)
    owner_listed = find_entry(family, entity, entity.owner_id) is not None
    return len(members) + (0 if owner_listed else 1)


def find_member(family: EntityFamily, entity: Any, user_id: Any) -> Optional[Any]:
    return find_entry(family, entity, user_id)


def add_owner_entry(family: EntityFamily, entity: Any, added_at: Optional[datetime] = None) -> Any:
    """Push the owner into the membership list with the ``owner`` role."""
    existing = find_entry(family, entity, entity.owner_id)
    if existing is not None:
        return existing

    entry = entity.build_member(
        user_id=entity.owner_id,
        role="owner",
        added_by=entity.owner_id,
        added_at=added_at or datetime.utcnow(),
    )
    _members(family, entity).append(entry)
    return entry


def add_member(
    family: EntityFamily,
    entity: Any,
    user_id: Any,
    role: Any,
    added_by: Any,
    *,
    limit: Optional[int] = None,
) -> Any:
    """
    Append a new membership entry.

    Raises:
        InvalidRoleError: ``role`` is not assignable in this family
        DuplicateMemberError: the user is the owner or already a member
        MembershipLimitError: the entity already has ``limit`` members
    """
    role = _check_role(family, role)

    if is_owner(entity, user_id) or find_entry(family, entity, user_id) is not None:
        raise DuplicateMemberError(family, user_id)

    if limit is not None and member_count(family, entity) >= limit:
        raise MembershipLimitError(family, limit)

    entry = entity.build_member(
        user_id=user_id,
        role=role,
        added_by=added_by,
        added_at=datetime.utcnow(),
    )
    _members(family, entity).append(entry)
    logger.info(f"Added {user_id} to {family.name} {entity.id} as {role}")
    return entry


def change_member_role(family: EntityFamily, entity: Any, user_id: Any, role: Any) -> Any:
    """
    Change the role on an existing entry.

    Raises:
        OwnerImmutableError: ``user_id`` is the owner
        InvalidRoleError: ``role`` is not assignable in this family
        MemberNotFoundError: the user has no entry
    """
    if is_owner(entity, user_id):
        raise OwnerImmutableError(family, "change the role of")

    role = _check_role(family, role)

    entry = find_entry(family, entity, user_id)
    if entry is None:
        raise MemberNotFoundError(family, user_id)

    previous = entry.role
    entry.role = role
    logger.info(f"Changed role of {user_id} on {family.name} {entity.id}: {previous} -> {role}")
    return entry


def remove_member(family: EntityFamily, entity: Any, user_id: Any) -> Any:
    """
    Remove a user's entry.

    Raises:
        OwnerImmutableError: ``user_id`` is the owner
        MemberNotFoundError: the user has no entry
    """
    if is_owner(entity, user_id):
        raise OwnerImmutableError(family, "remove")

    entry = find_entry(family, entity, user_id)
    if entry is None:
        raise MemberNotFoundError(family, user_id)

    _members(family, entity).remove(entry)
    logger.info(f"Removed {user_id} from {family.name} {entity.id}")
    return entry
