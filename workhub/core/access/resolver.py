"""Access control resolver for collaborative entities.

Answers two questions for any entity family:

* which role does a user hold on an entity (``resolve_role``)
* does a role grant a capability (``has_capability``)

``authorize`` combines them and raises ``AuthorizationError`` on denial.
All functions are read-only over the entity passed in and never raise on
missing input or unknown role strings; they fail closed instead.
"""

import logging
from enum import Enum
from typing import Any, Optional, Union

from .capabilities import OWNER_ROLE, EntityFamily, capabilities_for

logger = logging.getLogger(__name__)


class AuthorizationError(Exception):
    """Raised when a user's role does not grant the requested capability."""

    def __init__(
        self,
        family: EntityFamily,
        capability: str,
        role: Any,
        entity_id: Any = None,
    ):
        self.family = family.name
        self.capability = capability
        self.role = role
        self.entity_id = entity_id
        super().__init__(
            f"Permission denied: role '{role}' does not grant {capability} on this {family.name}"
        )


def _same_id(left: Any, right: Any) -> bool:
    # UUIDs and their string renderings must compare equal
    if left is None or right is None:
        return False
    return str(left) == str(right)


def _user_id(user: Any) -> Optional[Any]:
    if user is None:
        return None
    return getattr(user, "id", None)


def find_entry(family: EntityFamily, entity: Any, user_id: Any) -> Optional[Any]:
    """Return the membership entry for ``user_id``, if any."""
    for entry in getattr(entity, family.membership_attr, None) or ():
        if _same_id(getattr(entry, "user_id", None), user_id):
            return entry
    return None


def is_owner(entity: Any, user_id: Any) -> bool:
    return entity is not None and _same_id(getattr(entity, "owner_id", None), user_id)


def resolve_role(family: EntityFamily, entity: Any, user: Any) -> Any:
    """
    Determine the role ``user`` holds on ``entity``.

    The owner always resolves to ``owner``. A member resolves to the role on
    their entry, returned as stored even if it is not a known role. Anyone
    else, and any call with a missing entity or user, gets the family's
    default role.
    """
    user_id = _user_id(user)
    if entity is None or user_id is None:
        return family.default_role

    if is_owner(entity, user_id):
        return OWNER_ROLE

    entry = find_entry(family, entity, user_id)
    if entry is not None:
        return entry.role

    return family.default_role


def is_member(family: EntityFamily, entity: Any, user: Any) -> bool:
    """True if ``user`` owns ``entity`` or appears in its membership list."""
    user_id = _user_id(user)
    if entity is None or user_id is None:
        return False
    return is_owner(entity, user_id) or find_entry(family, entity, user_id) is not None


def has_capability(family: EntityFamily, role: Any, capability: Union[str, Enum]) -> bool:
    """Check whether ``role`` grants ``capability`` in ``family``."""
    capability = getattr(capability, "value", capability)
    if not isinstance(capability, str):
        return False
    return capability in capabilities_for(family, role)


def authorize(family: EntityFamily, entity: Any, user: Any, capability: Union[str, Enum]) -> Any:
    """
    Resolve the user's role and require that it grants ``capability``.

    Returns:
        The resolved role, for response shaping

    Raises:
        AuthorizationError: if the role does not grant the capability
    """
    role = resolve_role(family, entity, user)
    capability = getattr(capability, "value", capability)

    if not has_capability(family, role, capability):
        entity_id = getattr(entity, "id", None)
        logger.warning(
            f"Denied {capability} on {family.name} {entity_id} "
            f"for user {_user_id(user)} (role: {role})"
        )
        raise AuthorizationError(family, capability, role, entity_id)

    return role
