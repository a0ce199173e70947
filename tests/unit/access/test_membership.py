"""Tests for membership mutations."""

import uuid
from types import SimpleNamespace

import pytest

from workhub.core.access import (
    DOCUMENT,
    PROJECT,
    WORKSPACE,
    DuplicateMemberError,
    InvalidRoleError,
    MemberNotFoundError,
    MembershipError,
    MembershipLimitError,
    OwnerImmutableError,
    add_member,
    add_owner_entry,
    change_member_role,
    find_member,
    member_count,
    remove_member,
    resolve_role,
)


class FakeEntity(SimpleNamespace):
    def build_member(self, **fields):
        return SimpleNamespace(**fields)


def make_entity(family, owner_id=None):
    entity = FakeEntity(id=uuid.uuid4(), owner_id=owner_id or uuid.uuid4())
    setattr(entity, family.membership_attr, [])
    add_owner_entry(family, entity)
    return entity


class TestAddOwnerEntry:

    def test_pushes_owner(self):
        doc = make_entity(DOCUMENT)
        assert len(doc.collaborators) == 1
        assert doc.collaborators[0].role == "owner"
        assert doc.collaborators[0].user_id == doc.owner_id

    def test_is_idempotent(self):
        doc = make_entity(DOCUMENT)
        add_owner_entry(DOCUMENT, doc)
        assert len(doc.collaborators) == 1


class TestAddMember:

    def test_adds_entry(self):
        doc = make_entity(DOCUMENT)
        user_id = uuid.uuid4()

        entry = add_member(DOCUMENT, doc, user_id, "editor", doc.owner_id)

        assert entry.user_id == user_id
        assert entry.role == "editor"
        assert entry.added_by == doc.owner_id
        assert entry.added_at is not None
        assert resolve_role(DOCUMENT, doc, SimpleNamespace(id=user_id)) == "editor"

    def test_rejects_duplicate(self):
        doc = make_entity(DOCUMENT)
        user_id = uuid.uuid4()
        add_member(DOCUMENT, doc, user_id, "viewer", doc.owner_id)

        with pytest.raises(DuplicateMemberError):
            add_member(DOCUMENT, doc, user_id, "editor", doc.owner_id)
        assert len(doc.collaborators) == 2

    def test_duplicate_detected_across_id_types(self):
        doc = make_entity(DOCUMENT)
        user_id = uuid.uuid4()
        add_member(DOCUMENT, doc, user_id, "viewer", doc.owner_id)

        with pytest.raises(DuplicateMemberError):
            add_member(DOCUMENT, doc, str(user_id), "viewer", doc.owner_id)

    def test_rejects_owner(self):
        doc = make_entity(DOCUMENT)
        with pytest.raises(DuplicateMemberError):
            add_member(DOCUMENT, doc, doc.owner_id, "editor", doc.owner_id)

    @pytest.mark.parametrize("family,role", [
        (DOCUMENT, "owner"),
        (DOCUMENT, "admin"),
        (WORKSPACE, "editor"),
        (PROJECT, "contractor"),
    ])
    def test_rejects_unassignable_role(self, family, role):
        entity = make_entity(family)
        with pytest.raises(InvalidRoleError):
            add_member(family, entity, uuid.uuid4(), role, entity.owner_id)

    def test_limit_counts_owner(self):
        workspace = make_entity(WORKSPACE)
        add_member(WORKSPACE, workspace, uuid.uuid4(), "member", workspace.owner_id, limit=2)

        with pytest.raises(MembershipLimitError) as exc_info:
            add_member(WORKSPACE, workspace, uuid.uuid4(), "member", workspace.owner_id, limit=2)
        assert exc_info.value.limit == 2

    def test_all_errors_are_membership_errors(self):
        doc = make_entity(DOCUMENT)
        with pytest.raises(MembershipError):
            add_member(DOCUMENT, doc, doc.owner_id, "viewer", doc.owner_id)


class TestChangeMemberRole:

    def test_changes_role(self):
        project = make_entity(PROJECT)
        user_id = uuid.uuid4()
        add_member(PROJECT, project, user_id, "employee", project.owner_id)

        entry = change_member_role(PROJECT, project, user_id, "mr")

        assert entry.role == "mr"
        assert find_member(PROJECT, project, user_id).role == "mr"

    def test_owner_role_is_fixed(self):
        project = make_entity(PROJECT)
        with pytest.raises(OwnerImmutableError):
            change_member_role(PROJECT, project, project.owner_id, "hr")

    def test_cannot_promote_to_owner(self):
        project = make_entity(PROJECT)
        user_id = uuid.uuid4()
        add_member(PROJECT, project, user_id, "hr", project.owner_id)
        with pytest.raises(InvalidRoleError):
            change_member_role(PROJECT, project, user_id, "owner")

    def test_missing_member(self):
        project = make_entity(PROJECT)
        with pytest.raises(MemberNotFoundError):
            change_member_role(PROJECT, project, uuid.uuid4(), "hr")


class TestRemoveMember:

    def test_removes_entry(self):
        workspace = make_entity(WORKSPACE)
        user_id = uuid.uuid4()
        add_member(WORKSPACE, workspace, user_id, "admin", workspace.owner_id)

        remove_member(WORKSPACE, workspace, user_id)

        assert find_member(WORKSPACE, workspace, user_id) is None
        assert member_count(WORKSPACE, workspace) == 1

    def test_owner_cannot_be_removed(self):
        workspace = make_entity(WORKSPACE)
        with pytest.raises(OwnerImmutableError, match="owner"):
            remove_member(WORKSPACE, workspace, workspace.owner_id)
        assert len(workspace.members) == 1

    def test_missing_member(self):
        workspace = make_entity(WORKSPACE)
        with pytest.raises(MemberNotFoundError):
            remove_member(WORKSPACE, workspace, uuid.uuid4())

    def test_removed_user_falls_back_to_default(self):
        doc = make_entity(DOCUMENT)
        user = SimpleNamespace(id=uuid.uuid4())
        add_member(DOCUMENT, doc, user.id, "editor", doc.owner_id)

        remove_member(DOCUMENT, doc, user.id)

        assert resolve_role(DOCUMENT, doc, user) == "viewer"


class TestMemberCount:

    def test_owner_counted_once(self):
        doc = make_entity(DOCUMENT)
        assert member_count(DOCUMENT, doc) == 1

    def test_owner_counted_without_entry(self):
        doc = FakeEntity(id=uuid.uuid4(), owner_id=uuid.uuid4(), collaborators=[])
        assert member_count(DOCUMENT, doc) == 1
