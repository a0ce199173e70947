"""Document API endpoints."""

import logging
from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response, status, Query
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_

from workhub.api.deps import get_db, get_current_user
from workhub.api.schemas.common import (
    AccessInfo, MemberResponse, PaginatedResponse, RoleUpdate, SuccessResponse,
)
from workhub.core.access import (
    DOCUMENT,
    Capability,
    DuplicateMemberError,
    add_member,
    add_owner_entry,
    authorize,
    capabilities_for,
    change_member_role,
    is_member,
    remove_member,
)
from workhub.core.config import get_settings
from workhub.core.export import export_document
from workhub.db.models import Document, DocumentCollaborator, User

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/documents", tags=["documents"])


# Schemas
class DocumentBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = ""
    status: Literal["draft", "published"] = "draft"
    visibility: Literal["private", "shared"] = "private"
    tags: List[str] = Field(default_factory=list)

class DocumentCreate(DocumentBase):
    invited_users: List[EmailStr] = Field(default_factory=list)
    invite_role: Literal["editor", "viewer"] = "viewer"

class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = None
    status: Optional[Literal["draft", "published"]] = None
    visibility: Optional[Literal["private", "shared"]] = None
    tags: Optional[List[str]] = None

class DocumentResponse(BaseModel):
    id: UUID
    title: str
    content: str
    owner_id: UUID
    status: str
    visibility: str
    tags: List[str]
    version: int
    last_modified_by: Optional[UUID]
    is_auto_save_enabled: bool
    auto_saved_at: Optional[datetime]
    collaborators: List[MemberResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class DocumentDetail(DocumentResponse, AccessInfo):
    pass

class DocumentPreview(BaseModel):
    id: UUID
    title: str
    content: str
    owner_id: UUID
    updated_at: datetime

    class Config:
        from_attributes = True

class AutoSaveRequest(BaseModel):
    content: str
    title: Optional[str] = Field(None, min_length=1, max_length=200)

class ShareRequest(BaseModel):
    user_ids: List[UUID] = Field(..., min_length=1)
    role: Literal["editor", "viewer"] = "viewer"

class ShareResponse(BaseModel):
    added: List[UUID]
    already_collaborators: List[UUID]
    visibility: str

class DocumentSettingsUpdate(BaseModel):
    auto_save: Optional[bool] = None
    auto_save_interval: Optional[int] = Field(None, ge=1000)
    allow_comments: Optional[bool] = None
    allow_reactions: Optional[bool] = None
    allow_anonymous_view: Optional[bool] = None
    require_approval_for_join: Optional[bool] = None
    max_collaborators: Optional[int] = Field(None, ge=1, le=500)


# Helpers
def _get_document(db: Session, document_id: UUID) -> Document:
    document = db.query(Document).filter(
        and_(Document.id == document_id, Document.is_deleted == False)  # noqa: E712
    ).first()

    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    return document


def _require_access(document: Document, user: User) -> None:
    # The default role would grant canView to anyone
    if not is_member(DOCUMENT, document, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have access to this document",
        )


def _detail(document: Document, role: str) -> DocumentDetail:
    return DocumentDetail(
        **DocumentResponse.model_validate(document).model_dump(),
        user_role=role,
        capabilities=sorted(capabilities_for(DOCUMENT, role)),
    )


def _collaborator_limit(document: Document) -> int:
    return (document.collaboration_settings or {}).get(
        "max_collaborators", settings.default_max_collaborators
    )


# Endpoints
@router.post("", response_model=DocumentDetail, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a document owned by the current user, optionally inviting others by email."""
    document = Document(
        **document_data.model_dump(exclude={"invited_users", "invite_role"}),
        owner_id=current_user.id,
        last_modified_by=current_user.id,
    )
    db.add(document)
    db.flush()
    add_owner_entry(DOCUMENT, document)

    if document_data.invited_users:
        invitees = db.query(User).filter(User.email.in_(document_data.invited_users)).all()
        for invitee in invitees:
            if invitee.id == current_user.id:
                continue
            try:
                add_member(
                    DOCUMENT, document, invitee.id, document_data.invite_role, current_user.id,
                    limit=_collaborator_limit(document),
                )
            except DuplicateMemberError:
                continue

    db.commit()
    db.refresh(document)

    logger.info(f"Document {document.id} created by {current_user.id}")
    return _detail(document, "owner")


@router.get("", response_model=PaginatedResponse[DocumentResponse])
async def list_documents(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    scope: Optional[Literal["own", "shared", "draft"]] = Query(None, alias="type"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
):
    """List documents the current user owns or collaborates on."""
    shared_with_me = Document.collaborators.any(DocumentCollaborator.user_id == current_user.id)

    query = db.query(Document).filter(Document.is_deleted == False)  # noqa: E712

    if scope == "own":
        query = query.filter(Document.owner_id == current_user.id)
    elif scope == "shared":
        query = query.filter(and_(shared_with_me, Document.owner_id != current_user.id))
    elif scope == "draft":
        query = query.filter(and_(Document.owner_id == current_user.id, Document.status == "draft"))
    else:
        query = query.filter(or_(Document.owner_id == current_user.id, shared_with_me))

    if status_filter:
        query = query.filter(Document.status == status_filter)

    if search:
        query = query.filter(
            or_(
                Document.title.ilike(f"%{search}%"),
                Document.content.ilike(f"%{search}%"),
            )
        )

    total = query.count()
    documents = (
        query.order_by(Document.updated_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return PaginatedResponse[DocumentResponse].create(
        items=[DocumentResponse.model_validate(d) for d in documents],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{document_id}/preview", response_model=DocumentPreview)
async def preview_document(document_id: UUID, db: Session = Depends(get_db)):
    """Public preview of a shared document. No authentication required."""
    document = db.query(Document).filter(
        and_(
            Document.id == document_id,
            Document.is_deleted == False,  # noqa: E712
            Document.visibility == "shared",
        )
    ).first()

    if not document:
        raise HTTPException(status_code=404, detail="Document not found or not shared")

    return DocumentPreview.model_validate(document)


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a document with the caller's role and capabilities."""
    document = _get_document(db, document_id)
    _require_access(document, current_user)
    role = authorize(DOCUMENT, document, current_user, Capability.VIEW)
    return _detail(document, role)


@router.patch("/{document_id}", response_model=DocumentDetail)
async def update_document(
    document_id: UUID,
    document_data: DocumentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a document. A content change bumps the version."""
    document = _get_document(db, document_id)
    role = authorize(DOCUMENT, document, current_user, Capability.EDIT)

    update_data = document_data.model_dump(exclude_unset=True, exclude_none=True)
    if "content" in update_data and update_data["content"] != document.content:
        document.version += 1

    for field, value in update_data.items():
        setattr(document, field, value)
    document.last_modified_by = current_user.id

    db.commit()
    db.refresh(document)

    return _detail(document, role)


@router.post("/{document_id}/auto-save", response_model=SuccessResponse)
async def auto_save_document(
    document_id: UUID,
    save_data: AutoSaveRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Persist editor content without creating a new version."""
    document = _get_document(db, document_id)
    authorize(DOCUMENT, document, current_user, Capability.EDIT)

    if document.status == "draft":
        raise HTTPException(status_code=400, detail="Auto-save is not available for draft documents")

    document.content = save_data.content
    if save_data.title is not None:
        document.title = save_data.title
    document.auto_saved_at = datetime.utcnow()
    document.last_modified_by = current_user.id

    db.commit()

    return SuccessResponse(
        message="Document auto-saved",
        data={"auto_saved_at": document.auto_saved_at.isoformat(), "version": document.version},
    )


@router.post("/{document_id}/auto-save/enable", response_model=SuccessResponse)
async def enable_auto_save(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Turn on auto-save for a published document."""
    document = _get_document(db, document_id)
    authorize(DOCUMENT, document, current_user, Capability.EDIT)

    if document.status == "draft":
        raise HTTPException(status_code=400, detail="Auto-save is not available for draft documents")

    document.is_auto_save_enabled = True
    db.commit()

    return SuccessResponse(message="Auto-save enabled")


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Soft-delete a document."""
    document = _get_document(db, document_id)
    authorize(DOCUMENT, document, current_user, Capability.DELETE)

    document.is_deleted = True
    document.deleted_at = datetime.utcnow()
    document.deleted_by = current_user.id
    db.commit()

    logger.info(f"Document {document_id} deleted by {current_user.id}")


@router.post("/{document_id}/share", response_model=ShareResponse)
async def share_document(
    document_id: UUID,
    share_data: ShareRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Share a document with other users. Existing collaborators are left unchanged."""
    document = _get_document(db, document_id)
    authorize(DOCUMENT, document, current_user, Capability.SHARE)

    user_ids = list(dict.fromkeys(share_data.user_ids))
    if current_user.id in user_ids:
        raise HTTPException(status_code=400, detail="You cannot share a document with yourself")

    found = db.query(User.id).filter(User.id.in_(user_ids)).count()
    if found != len(user_ids):
        raise HTTPException(status_code=400, detail="One or more users not found")

    added, skipped = [], []
    for user_id in user_ids:
        try:
            add_member(
                DOCUMENT, document, user_id, share_data.role, current_user.id,
                limit=_collaborator_limit(document),
            )
            added.append(user_id)
        except DuplicateMemberError:
            skipped.append(user_id)

    if added and document.visibility == "private":
        document.visibility = "shared"

    db.commit()

    return ShareResponse(added=added, already_collaborators=skipped, visibility=document.visibility)


@router.get("/{document_id}/collaborators", response_model=List[MemberResponse])
async def list_collaborators(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List a document's collaborators."""
    document = _get_document(db, document_id)
    _require_access(document, current_user)
    authorize(DOCUMENT, document, current_user, Capability.VIEW)
    return [MemberResponse.model_validate(c) for c in document.collaborators]


@router.patch("/{document_id}/collaborators/{user_id}", response_model=MemberResponse)
async def update_collaborator_role(
    document_id: UUID,
    user_id: UUID,
    role_data: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Change a collaborator's role."""
    document = _get_document(db, document_id)
    authorize(DOCUMENT, document, current_user, Capability.MANAGE_COLLABORATORS)

    entry = change_member_role(DOCUMENT, document, user_id, role_data.role)
    db.commit()
    db.refresh(entry)

    return MemberResponse.model_validate(entry)


@router.delete("/{document_id}/collaborators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_collaborator(
    document_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Remove a collaborator. The owner cannot be removed."""
    document = _get_document(db, document_id)
    authorize(DOCUMENT, document, current_user, Capability.MANAGE_COLLABORATORS)

    remove_member(DOCUMENT, document, user_id)
    db.commit()


@router.get("/{document_id}/download", response_class=Response)
async def download_document(
    document_id: UUID,
    file_format: str = Query("html", alias="format"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Download a document as html, txt or md. Any collaborator can download."""
    document = _get_document(db, document_id)
    _require_access(document, current_user)
    authorize(DOCUMENT, document, current_user, Capability.VIEW)

    try:
        exported = export_document(document, file_format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


@router.get("/{document_id}/settings", response_model=dict)
async def get_document_settings(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a document's collaboration settings."""
    document = _get_document(db, document_id)
    _require_access(document, current_user)
    authorize(DOCUMENT, document, current_user, Capability.VIEW)
    return document.collaboration_settings


@router.patch("/{document_id}/settings", response_model=dict)
async def update_document_settings(
    document_id: UUID,
    settings_data: DocumentSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a document's collaboration settings."""
    document = _get_document(db, document_id)
    authorize(DOCUMENT, document, current_user, Capability.CHANGE_SETTINGS)

    document.collaboration_settings = {
        **(document.collaboration_settings or {}),
        **settings_data.model_dump(exclude_unset=True, exclude_none=True),
    }
    db.commit()
    db.refresh(document)

    return document.collaboration_settings
