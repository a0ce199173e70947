"""Capability model for WorkHub collaborative entities.

Every collaborative entity belongs to one family (document, whiteboard,
project, workspace). A family has a closed set of roles and a static
permission matrix mapping each role to the capabilities it grants.

Matrices are keyed and valued by plain strings so that role tags loaded
from the database look up the same way as enum members. They are wrapped
in read-only mappings at import time and never change afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Type, Union

OWNER_ROLE = "owner"

NO_CAPABILITIES: FrozenSet[str] = frozenset()


class Capability(str, Enum):
    """Named permissions checked against a role."""

    EDIT = "canEdit"
    DELETE = "canDelete"
    SHARE = "canShare"
    MANAGE_COLLABORATORS = "canManageCollaborators"
    CHANGE_SETTINGS = "canChangeSettings"
    MANAGE_MEMBERS = "canManageMembers"
    CREATE_PROJECTS = "canCreateProjects"
    VIEW = "canView"
    REMOVE_MEMBERS = "canRemoveMembers"


class DocumentRole(str, Enum):
    """Roles on documents and whiteboards."""

    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


WhiteboardRole = DocumentRole


class ProjectRole(str, Enum):
    """Roles on a project team."""

    OWNER = "owner"
    HR = "hr"
    MR = "mr"              # Manager
    TR = "tr"              # Team representative
    EMPLOYEE = "employee"


class WorkspaceRole(str, Enum):
    """Roles on a workspace."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


def _grants(*capabilities: Capability) -> FrozenSet[str]:
    return frozenset(c.value for c in capabilities)


ALL_CAPABILITIES = _grants(*Capability)


DOCUMENT_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    DocumentRole.OWNER.value: _grants(
        Capability.EDIT,
        Capability.DELETE,
        Capability.SHARE,
        Capability.MANAGE_COLLABORATORS,
        Capability.CHANGE_SETTINGS,
        Capability.VIEW,
    ),
    DocumentRole.EDITOR.value: _grants(Capability.EDIT, Capability.SHARE, Capability.VIEW),
    DocumentRole.VIEWER.value: _grants(Capability.VIEW),
})

# Sharing a whiteboard is reserved for its owner
WHITEBOARD_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    WhiteboardRole.OWNER.value: DOCUMENT_PERMISSIONS[DocumentRole.OWNER.value],
    WhiteboardRole.EDITOR.value: _grants(Capability.EDIT, Capability.VIEW),
    WhiteboardRole.VIEWER.value: _grants(Capability.VIEW),
})

PROJECT_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    ProjectRole.OWNER.value: ALL_CAPABILITIES,
    ProjectRole.HR.value: _grants(
        Capability.EDIT,
        Capability.SHARE,
        Capability.MANAGE_COLLABORATORS,
        Capability.MANAGE_MEMBERS,
        Capability.REMOVE_MEMBERS,
        Capability.CREATE_PROJECTS,
        Capability.VIEW,
    ),
    ProjectRole.MR.value: _grants(
        Capability.EDIT,
        Capability.SHARE,
        Capability.MANAGE_COLLABORATORS,
        Capability.MANAGE_MEMBERS,
        Capability.CREATE_PROJECTS,
        Capability.VIEW,
    ),
    ProjectRole.TR.value: _grants(Capability.VIEW),
    ProjectRole.EMPLOYEE.value: _grants(Capability.VIEW),
})

WORKSPACE_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    WorkspaceRole.OWNER.value: ALL_CAPABILITIES,
    WorkspaceRole.ADMIN.value: _grants(
        Capability.SHARE,
        Capability.MANAGE_COLLABORATORS,
        Capability.MANAGE_MEMBERS,
        Capability.CREATE_PROJECTS,
        Capability.VIEW,
    ),
    WorkspaceRole.MEMBER.value: _grants(Capability.CREATE_PROJECTS, Capability.VIEW),
})


@dataclass(frozen=True, eq=False)
class EntityFamily:
    """
    Describes how one kind of collaborative entity stores access data.

    Entities of every family expose ``owner_id`` and a list of membership
    entries (each with ``user_id`` and ``role``) under ``membership_attr``.
    """
    name: str
    roles: Type[Enum]
    default_role: str
    membership_attr: str
    permissions: Mapping[str, FrozenSet[str]]
    assignable_roles: FrozenSet[str]

    def __str__(self) -> str:
        return self.name

    def is_known_role(self, role: object) -> bool:
        return isinstance(role, str) and role in self.permissions


DOCUMENT = EntityFamily(
    name="document",
    roles=DocumentRole,
    default_role=DocumentRole.VIEWER.value,
    membership_attr="collaborators",
    permissions=DOCUMENT_PERMISSIONS,
    assignable_roles=frozenset({DocumentRole.EDITOR.value, DocumentRole.VIEWER.value}),
)

WHITEBOARD = EntityFamily(
    name="whiteboard",
    roles=WhiteboardRole,
    default_role=WhiteboardRole.VIEWER.value,
    membership_attr="collaborators",
    permissions=WHITEBOARD_PERMISSIONS,
    assignable_roles=frozenset({WhiteboardRole.EDITOR.value, WhiteboardRole.VIEWER.value}),
)

PROJECT = EntityFamily(
    name="project",
    roles=ProjectRole,
    default_role=ProjectRole.EMPLOYEE.value,
    membership_attr="team",
    permissions=PROJECT_PERMISSIONS,
    assignable_roles=frozenset({
        ProjectRole.HR.value,
        ProjectRole.MR.value,
        ProjectRole.TR.value,
        ProjectRole.EMPLOYEE.value,
    }),
)

WORKSPACE = EntityFamily(
    name="workspace",
    roles=WorkspaceRole,
    default_role=WorkspaceRole.MEMBER.value,
    membership_attr="members",
    permissions=WORKSPACE_PERMISSIONS,
    assignable_roles=frozenset({WorkspaceRole.ADMIN.value, WorkspaceRole.MEMBER.value}),
)

FAMILIES: Mapping[str, EntityFamily] = MappingProxyType({
    family.name: family for family in (DOCUMENT, WHITEBOARD, PROJECT, WORKSPACE)
})


def get_family(name: str) -> EntityFamily:
    """Look up a family descriptor by name."""
    try:
        return FAMILIES[name]
    except KeyError:
        raise ValueError(f"Unknown entity family: {name}") from None


def capabilities_for(family: EntityFamily, role: Union[str, Enum, None]) -> FrozenSet[str]:
    """
    Return the capabilities a role grants within a family.

    Unknown or malformed roles grant nothing.
    """
    role = getattr(role, "value", role)
    if not isinstance(role, str):
        return NO_CAPABILITIES
    return family.permissions.get(role, NO_CAPABILITIES)
