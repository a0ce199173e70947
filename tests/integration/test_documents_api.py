"""Tests for the document endpoints."""

import uuid

import pytest
from fastapi.testclient import TestClient

from tests.factories import add_collaborator, auth_headers, create_document, create_user
from workhub.core.config import get_settings
from workhub.db.models import Document

pytestmark = pytest.mark.integration


@pytest.fixture
def document(db_session, owner):
    return create_document(db_session, owner=owner, content="hello")


class TestCreateDocument:

    def test_owner_pushed_into_collaborators(self, client: TestClient, owner, owner_headers):
        response = client.post("/api/documents", json={"title": "Plan"}, headers=owner_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["owner_id"] == str(owner.id)
        assert data["user_role"] == "owner"
        assert "canDelete" in data["capabilities"]
        assert data["status"] == "draft"
        assert data["version"] == 1
        assert [(c["user_id"], c["role"]) for c in data["collaborators"]] == [(str(owner.id), "owner")]

    def test_invited_users(self, client: TestClient, db_session, owner, owner_headers):
        friend = create_user(db_session, email="friend@acme.io")

        response = client.post(
            "/api/documents",
            json={
                "title": "Shared notes",
                "invited_users": ["friend@acme.io", "nobody@acme.io", owner.email],
                "invite_role": "editor",
            },
            headers=owner_headers,
        )

        assert response.status_code == 201
        roles = {c["user_id"]: c["role"] for c in response.json()["collaborators"]}
        assert roles == {str(owner.id): "owner", str(friend.id): "editor"}

    def test_requires_title(self, client: TestClient, owner_headers):
        response = client.post("/api/documents", json={"title": ""}, headers=owner_headers)
        assert response.status_code == 422


class TestReadDocument:

    def test_stranger_gets_403(self, client: TestClient, db_session, document):
        stranger = create_user(db_session)
        response = client.get(f"/api/documents/{document.id}", headers=auth_headers(stranger))
        assert response.status_code == 403
        assert response.json()["detail"] == "You don't have access to this document"

    def test_viewer_sees_role(self, client: TestClient, db_session, document):
        viewer = create_user(db_session)
        add_collaborator(db_session, document, viewer, role="viewer")

        response = client.get(f"/api/documents/{document.id}", headers=auth_headers(viewer))

        assert response.status_code == 200
        data = response.json()
        assert data["user_role"] == "viewer"
        assert data["capabilities"] == ["canView"]

    def test_missing_document(self, client: TestClient, owner_headers):
        response = client.get(f"/api/documents/{uuid.uuid4()}", headers=owner_headers)
        assert response.status_code == 404

    def test_legacy_role_is_denied(self, client: TestClient, db_session, document):
        legacy = create_user(db_session)
        add_collaborator(db_session, document, legacy, role="commenter")

        response = client.get(f"/api/documents/{document.id}", headers=auth_headers(legacy))

        assert response.status_code == 403
        assert response.json()["role"] == "commenter"

    def test_list_collaborators(self, client: TestClient, db_session, document, owner_headers):
        add_collaborator(db_session, document, create_user(db_session), role="editor")
        response = client.get(f"/api/documents/{document.id}/collaborators", headers=owner_headers)
        assert response.status_code == 200
        assert [c["role"] for c in response.json()] == ["owner", "editor"]


class TestListDocuments:

    def test_own_and_shared(self, client: TestClient, db_session, owner):
        other = create_user(db_session)
        mine = create_document(db_session, owner=owner, title="Mine")
        theirs = create_document(db_session, owner=other, title="Theirs")
        create_document(db_session, owner=other, title="Hidden")
        add_collaborator(db_session, theirs, owner, role="viewer")
        create_document(db_session, owner=owner, title="Gone", is_deleted=True)

        headers = auth_headers(owner)
        everything = client.get("/api/documents", headers=headers).json()
        own = client.get("/api/documents", params={"type": "own"}, headers=headers).json()
        shared = client.get("/api/documents", params={"type": "shared"}, headers=headers).json()

        assert {d["title"] for d in everything["items"]} == {"Mine", "Theirs"}
        assert everything["total"] == 2
        assert [d["id"] for d in own["items"]] == [str(mine.id)]
        assert [d["id"] for d in shared["items"]] == [str(theirs.id)]

    def test_search_and_drafts(self, client: TestClient, db_session, owner, owner_headers):
        create_document(db_session, owner=owner, title="Quarterly report", status="draft")
        create_document(db_session, owner=owner, title="Meeting notes")

        drafts = client.get("/api/documents", params={"type": "draft"}, headers=owner_headers).json()
        found = client.get("/api/documents", params={"search": "quarterly"}, headers=owner_headers).json()

        assert [d["title"] for d in drafts["items"]] == ["Quarterly report"]
        assert [d["title"] for d in found["items"]] == ["Quarterly report"]

    def test_pagination(self, client: TestClient, db_session, owner, owner_headers):
        for _ in range(3):
            create_document(db_session, owner=owner)

        data = client.get("/api/documents", params={"per_page": 2, "page": 2}, headers=owner_headers).json()

        assert data["total"] == 3
        assert data["pages"] == 2
        assert len(data["items"]) == 1


class TestUpdateDocument:

    def test_viewer_cannot_edit(self, client: TestClient, db_session, document):
        viewer = create_user(db_session)
        add_collaborator(db_session, document, viewer, role="viewer")

        response = client.patch(
            f"/api/documents/{document.id}", json={"content": "x"}, headers=auth_headers(viewer)
        )

        assert response.status_code == 403
        body = response.json()
        assert body["capability"] == "canEdit"
        assert body["role"] == "viewer"

    def test_editor_content_change_bumps_version(self, client: TestClient, db_session, document):
        editor = create_user(db_session)
        add_collaborator(db_session, document, editor, role="editor")
        headers = auth_headers(editor)

        response = client.patch(f"/api/documents/{document.id}", json={"content": "new"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["version"] == 2
        assert response.json()["last_modified_by"] == str(editor.id)

        response = client.patch(f"/api/documents/{document.id}", json={"title": "Renamed"}, headers=headers)
        assert response.json()["version"] == 2
        assert response.json()["title"] == "Renamed"

    def test_stranger_cannot_edit(self, client: TestClient, db_session, document):
        stranger = create_user(db_session)
        response = client.patch(
            f"/api/documents/{document.id}", json={"content": "x"}, headers=auth_headers(stranger)
        )
        assert response.status_code == 403


class TestAutoSave:

    def test_auto_save_keeps_version(self, client: TestClient, db_session, document, owner_headers):
        response = client.post(
            f"/api/documents/{document.id}/auto-save", json={"content": "draft text"}, headers=owner_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["version"] == 1
        db_session.refresh(document)
        assert document.content == "draft text"
        assert document.auto_saved_at is not None

    def test_auto_save_rejected_for_drafts(self, client: TestClient, db_session, owner, owner_headers):
        draft = create_document(db_session, owner=owner, status="draft")
        response = client.post(
            f"/api/documents/{draft.id}/auto-save", json={"content": "x"}, headers=owner_headers
        )
        assert response.status_code == 400

    def test_enable_auto_save(self, client: TestClient, db_session, document, owner_headers):
        response = client.post(f"/api/documents/{document.id}/auto-save/enable", headers=owner_headers)
        assert response.status_code == 200
        db_session.refresh(document)
        assert document.is_auto_save_enabled is True


class TestDeleteDocument:

    def test_editor_cannot_delete(self, client: TestClient, db_session, document):
        editor = create_user(db_session)
        add_collaborator(db_session, document, editor, role="editor")
        response = client.delete(f"/api/documents/{document.id}", headers=auth_headers(editor))
        assert response.status_code == 403

    def test_soft_delete(self, client: TestClient, db_session, owner, document, owner_headers):
        response = client.delete(f"/api/documents/{document.id}", headers=owner_headers)
        assert response.status_code == 204

        stored = db_session.query(Document).filter(Document.id == document.id).one()
        assert stored.is_deleted is True
        assert stored.deleted_by == owner.id
        assert stored.deleted_at is not None

        assert client.get(f"/api/documents/{document.id}", headers=owner_headers).status_code == 404


class TestShareDocument:

    def test_share_adds_and_skips(self, client: TestClient, db_session, document, owner_headers):
        existing = create_user(db_session)
        newcomer = create_user(db_session)
        add_collaborator(db_session, document, existing, role="viewer")

        response = client.post(
            f"/api/documents/{document.id}/share",
            json={"user_ids": [str(existing.id), str(newcomer.id)], "role": "editor"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["added"] == [str(newcomer.id)]
        assert data["already_collaborators"] == [str(existing.id)]
        assert data["visibility"] == "shared"

        db_session.refresh(document)
        roles = {str(c.user_id): c.role for c in document.collaborators}
        assert roles[str(existing.id)] == "viewer"
        assert roles[str(newcomer.id)] == "editor"

    def test_editor_can_share(self, client: TestClient, db_session, document):
        editor = create_user(db_session)
        add_collaborator(db_session, document, editor, role="editor")
        response = client.post(
            f"/api/documents/{document.id}/share",
            json={"user_ids": [str(create_user(db_session).id)]},
            headers=auth_headers(editor),
        )
        assert response.status_code == 200

    def test_viewer_cannot_share(self, client: TestClient, db_session, document):
        viewer = create_user(db_session)
        add_collaborator(db_session, document, viewer, role="viewer")
        response = client.post(
            f"/api/documents/{document.id}/share",
            json={"user_ids": [str(create_user(db_session).id)]},
            headers=auth_headers(viewer),
        )
        assert response.status_code == 403

    def test_cannot_share_with_self(self, client: TestClient, owner, document, owner_headers):
        response = client.post(
            f"/api/documents/{document.id}/share",
            json={"user_ids": [str(owner.id)]},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_unknown_user(self, client: TestClient, document, owner_headers):
        response = client.post(
            f"/api/documents/{document.id}/share",
            json={"user_ids": [str(uuid.uuid4())]},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_owner_role_not_shareable(self, client: TestClient, db_session, document, owner_headers):
        response = client.post(
            f"/api/documents/{document.id}/share",
            json={"user_ids": [str(create_user(db_session).id)], "role": "owner"},
            headers=owner_headers,
        )
        assert response.status_code == 422


class TestManageCollaborators:

    def test_change_role(self, client: TestClient, db_session, document, owner_headers):
        viewer = create_user(db_session)
        add_collaborator(db_session, document, viewer, role="viewer")

        response = client.patch(
            f"/api/documents/{document.id}/collaborators/{viewer.id}",
            json={"role": "editor"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert response.json()["role"] == "editor"
        assert client.get(
            f"/api/documents/{document.id}", headers=auth_headers(viewer)
        ).json()["user_role"] == "editor"

    def test_owner_role_is_fixed(self, client: TestClient, owner, document, owner_headers):
        response = client.patch(
            f"/api/documents/{document.id}/collaborators/{owner.id}",
            json={"role": "viewer"},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_invalid_role(self, client: TestClient, db_session, document, owner_headers):
        viewer = create_user(db_session)
        add_collaborator(db_session, document, viewer, role="viewer")
        response = client.patch(
            f"/api/documents/{document.id}/collaborators/{viewer.id}",
            json={"role": "admin"},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_unknown_collaborator(self, client: TestClient, document, owner_headers):
        response = client.patch(
            f"/api/documents/{document.id}/collaborators/{uuid.uuid4()}",
            json={"role": "editor"},
            headers=owner_headers,
        )
        assert response.status_code == 404

    def test_editor_cannot_manage(self, client: TestClient, db_session, document):
        editor = create_user(db_session)
        viewer = create_user(db_session)
        add_collaborator(db_session, document, editor, role="editor")
        add_collaborator(db_session, document, viewer, role="viewer")
        response = client.patch(
            f"/api/documents/{document.id}/collaborators/{viewer.id}",
            json={"role": "editor"},
            headers=auth_headers(editor),
        )
        assert response.status_code == 403

    def test_remove_collaborator(self, client: TestClient, db_session, document, owner_headers):
        editor = create_user(db_session)
        add_collaborator(db_session, document, editor, role="editor")

        response = client.delete(
            f"/api/documents/{document.id}/collaborators/{editor.id}", headers=owner_headers
        )

        assert response.status_code == 204
        assert client.get(f"/api/documents/{document.id}", headers=auth_headers(editor)).status_code == 403

    def test_owner_cannot_be_removed(self, client: TestClient, owner, document, owner_headers):
        response = client.delete(
            f"/api/documents/{document.id}/collaborators/{owner.id}", headers=owner_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot remove the document owner"


class TestSettingsAndPreview:

    def test_settings_owner_only(self, client: TestClient, db_session, document, owner_headers):
        editor = create_user(db_session)
        add_collaborator(db_session, document, editor, role="editor")
        url = f"/api/documents/{document.id}/settings"

        assert client.patch(url, json={"allow_comments": False}, headers=auth_headers(editor)).status_code == 403

        response = client.patch(url, json={"allow_comments": False}, headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["allow_comments"] is False
        assert response.json()["max_collaborators"] == 50

        assert client.get(url, headers=auth_headers(editor)).json()["allow_comments"] is False

    def test_preview_requires_shared(self, client: TestClient, db_session, owner, document):
        assert client.get(f"/api/documents/{document.id}/preview").status_code == 404

        shared = create_document(db_session, owner=owner, visibility="shared", title="Public")
        response = client.get(f"/api/documents/{shared.id}/preview")
        assert response.status_code == 200
        assert response.json()["title"] == "Public"

    def test_collaborator_limit_follows_configuration(self, client: TestClient, db_session, owner_headers, monkeypatch):
        monkeypatch.setattr(get_settings(), "default_max_collaborators", 2)
        document_id = client.post("/api/documents", json={"title": "Small"}, headers=owner_headers).json()["id"]

        settings = client.get(f"/api/documents/{document_id}/settings", headers=owner_headers).json()
        assert settings["max_collaborators"] == 2

        response = client.post(
            f"/api/documents/{document_id}/share",
            json={"user_ids": [str(create_user(db_session).id), str(create_user(db_session).id)]},
            headers=owner_headers,
        )
        assert response.status_code == 400


class TestDownloadDocument:

    def test_viewer_downloads_markdown(self, client: TestClient, db_session, owner):
        document = create_document(db_session, owner=owner, title="Release notes", content="All done")
        viewer = create_user(db_session)
        add_collaborator(db_session, document, viewer, role="viewer")

        response = client.get(
            f"/api/documents/{document.id}/download", params={"format": "md"}, headers=auth_headers(viewer)
        )

        assert response.status_code == 200
        assert response.text == "# Release notes\n\nAll done"
        assert response.headers["content-type"].startswith("text/markdown")
        assert response.headers["content-disposition"] == 'attachment; filename="Release_notes.md"'

    def test_html_by_default(self, client: TestClient, document, owner_headers):
        response = client.get(f"/api/documents/{document.id}/download", headers=owner_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<!DOCTYPE html>" in response.text

    def test_unsupported_format(self, client: TestClient, document, owner_headers):
        response = client.get(
            f"/api/documents/{document.id}/download", params={"format": "pdf"}, headers=owner_headers
        )
        assert response.status_code == 400

    def test_stranger_cannot_download(self, client: TestClient, db_session, document):
        response = client.get(
            f"/api/documents/{document.id}/download", headers=auth_headers(create_user(db_session))
        )
        assert response.status_code == 403

    def test_legacy_role_cannot_download(self, client: TestClient, db_session, document):
        guest = create_user(db_session)
        add_collaborator(db_session, document, guest, role="commenter")
        response = client.get(f"/api/documents/{document.id}/download", headers=auth_headers(guest))
        assert response.status_code == 403
