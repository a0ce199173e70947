"""Access control for WorkHub collaborative entities.

Defines the per-family role and capability tables, the role resolver,
and the membership mutations that callers perform around it.
"""

from .capabilities import (
    Capability,
    DocumentRole,
    WhiteboardRole,
    ProjectRole,
    WorkspaceRole,
    EntityFamily,
    DOCUMENT,
    WHITEBOARD,
    PROJECT,
    WORKSPACE,
    FAMILIES,
    OWNER_ROLE,
    get_family,
    capabilities_for,
)
from .resolver import AuthorizationError, resolve_role, has_capability, authorize, is_member
from .membership import (
    MembershipError,
    DuplicateMemberError,
    MembershipLimitError,
    InvalidRoleError,
    OwnerImmutableError,
    MemberNotFoundError,
    add_owner_entry,
    add_member,
    change_member_role,
    remove_member,
    find_member,
    member_count,
)

__all__ = [
    "Capability",
    "DocumentRole",
    "WhiteboardRole",
    "ProjectRole",
    "WorkspaceRole",
    "EntityFamily",
    "DOCUMENT",
    "WHITEBOARD",
    "PROJECT",
    "WORKSPACE",
    "FAMILIES",
    "OWNER_ROLE",
    "get_family",
    "capabilities_for",
    "AuthorizationError",
    "resolve_role",
    "has_capability",
    "authorize",
    "is_member",
    "MembershipError",
    "DuplicateMemberError",
    "MembershipLimitError",
    "InvalidRoleError",
    "OwnerImmutableError",
    "MemberNotFoundError",
    "add_owner_entry",
    "add_member",
    "change_member_role",
    "remove_member",
    "find_member",
    "member_count",
]
