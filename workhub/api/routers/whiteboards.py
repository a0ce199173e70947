"""Whiteboard API endpoints."""

import logging
from typing import Any, List, Literal, Optional
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_

from workhub.api.deps import get_db, get_current_user
from workhub.api.schemas.common import (
    AccessInfo, MemberResponse, PaginatedResponse, RoleUpdate, SuccessResponse,
)
from workhub.core.access import (
    WHITEBOARD,
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
from workhub.core.canvas import merge_canvas
from workhub.core.config import get_settings
from workhub.db.models import Whiteboard, WhiteboardCollaborator, User
from workhub.db.models.whiteboard import default_canvas_settings

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/whiteboards", tags=["whiteboards"])

WhiteboardStatus = Literal["draft", "active", "archived"]


# Schemas
class CanvasSettings(BaseModel):
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)
    background_color: Optional[str] = None
    grid_size: Optional[int] = Field(None, ge=1)
    show_grid: Optional[bool] = None

class WhiteboardCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    canvas_data: Any = Field(default_factory=dict)
    canvas_settings: Optional[CanvasSettings] = None
    status: WhiteboardStatus = "draft"
    visibility: Literal["private", "shared"] = "private"
    tags: List[str] = Field(default_factory=list)

class WhiteboardUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    canvas_data: Any = None
    canvas_settings: Optional[CanvasSettings] = None
    status: Optional[WhiteboardStatus] = None
    visibility: Optional[Literal["private", "shared"]] = None
    tags: Optional[List[str]] = None

class WhiteboardResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str]
    canvas_data: Any
    canvas_settings: dict
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

class WhiteboardDetail(WhiteboardResponse, AccessInfo):
    pass

class WhiteboardPreview(BaseModel):
    id: UUID
    title: str
    description: Optional[str]
    canvas_data: Any
    canvas_settings: dict
    updated_at: datetime

    class Config:
        from_attributes = True

class CanvasSave(BaseModel):
    canvas_data: Any

class AutoSaveToggle(BaseModel):
    enabled: bool = True

class ShareRequest(BaseModel):
    user_ids: List[UUID] = Field(..., min_length=1)
    role: Literal["editor", "viewer"] = "viewer"

class ShareResponse(BaseModel):
    added: List[UUID]
    already_collaborators: List[UUID]
    visibility: str

class WhiteboardSettingsUpdate(BaseModel):
    auto_save: Optional[bool] = None
    auto_save_interval: Optional[int] = Field(None, ge=1000)
    allow_anonymous_view: Optional[bool] = None
    max_collaborators: Optional[int] = Field(None, ge=1, le=500)


# Helpers
def _get_whiteboard(db: Session, whiteboard_id: UUID) -> Whiteboard:
    whiteboard = db.query(Whiteboard).filter(
        and_(Whiteboard.id == whiteboard_id, Whiteboard.is_deleted == False)  # noqa: E712
    ).first()

    if not whiteboard:
        raise HTTPException(status_code=404, detail="Whiteboard not found")

    return whiteboard


def _require_access(whiteboard: Whiteboard, user: User) -> None:
    if not is_member(WHITEBOARD, whiteboard, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have access to this whiteboard",
        )


def _detail(whiteboard: Whiteboard, role: str) -> WhiteboardDetail:
    return WhiteboardDetail(
        **WhiteboardResponse.model_validate(whiteboard).model_dump(),
        user_role=role,
        capabilities=sorted(capabilities_for(WHITEBOARD, role)),
    )


def _collaborator_limit(whiteboard: Whiteboard) -> int:
    return (whiteboard.collaboration_settings or {}).get(
        "max_collaborators", settings.default_max_collaborators
    )


def _save_canvas(whiteboard: Whiteboard, canvas_data: Any, user: User) -> None:
    whiteboard.canvas_data = merge_canvas(
        whiteboard.canvas_data, canvas_data, modified_by=user.id
    )
    whiteboard.version += 1
    whiteboard.last_modified_by = user.id


# Endpoints
@router.post("", response_model=WhiteboardDetail, status_code=status.HTTP_201_CREATED)
async def create_whiteboard(
    whiteboard_data: WhiteboardCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a whiteboard owned by the current user."""
    whiteboard = Whiteboard(
        **whiteboard_data.model_dump(exclude={"canvas_settings"}),
        owner_id=current_user.id,
        last_modified_by=current_user.id,
    )
    if whiteboard_data.canvas_settings:
        overrides = whiteboard_data.canvas_settings.model_dump(exclude_none=True)
        whiteboard.canvas_settings = {**default_canvas_settings(), **overrides}

    db.add(whiteboard)
    db.flush()
    add_owner_entry(WHITEBOARD, whiteboard)

    db.commit()
    db.refresh(whiteboard)

    logger.info(f"Whiteboard {whiteboard.id} created by {current_user.id}")
    return _detail(whiteboard, "owner")


@router.get("", response_model=PaginatedResponse[WhiteboardResponse])
async def list_whiteboards(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    scope: Optional[Literal["own", "shared"]] = Query(None, alias="type"),
    status_filter: Optional[WhiteboardStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
):
    """List whiteboards the current user owns or collaborates on."""
    shared_with_me = Whiteboard.collaborators.any(WhiteboardCollaborator.user_id == current_user.id)

    query = db.query(Whiteboard).filter(Whiteboard.is_deleted == False)  # noqa: E712

    if scope == "own":
        query = query.filter(Whiteboard.owner_id == current_user.id)
    elif scope == "shared":
        query = query.filter(and_(shared_with_me, Whiteboard.owner_id != current_user.id))
    else:
        query = query.filter(or_(Whiteboard.owner_id == current_user.id, shared_with_me))

    if status_filter:
        query = query.filter(Whiteboard.status == status_filter)

    if search:
        query = query.filter(
            or_(
                Whiteboard.title.ilike(f"%{search}%"),
                Whiteboard.description.ilike(f"%{search}%"),
            )
        )

    total = query.count()
    whiteboards = (
        query.order_by(Whiteboard.updated_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return PaginatedResponse[WhiteboardResponse].create(
        items=[WhiteboardResponse.model_validate(w) for w in whiteboards],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{whiteboard_id}/preview", response_model=WhiteboardPreview)
async def preview_whiteboard(whiteboard_id: UUID, db: Session = Depends(get_db)):
    """Public preview of a shared whiteboard. No authentication required."""
    whiteboard = db.query(Whiteboard).filter(
        and_(
            Whiteboard.id == whiteboard_id,
            Whiteboard.is_deleted == False,  # noqa: E712
            Whiteboard.visibility == "shared",
        )
    ).first()

    if not whiteboard:
        raise HTTPException(status_code=404, detail="Whiteboard not found or not shared")

    return WhiteboardPreview.model_validate(whiteboard)


@router.get("/{whiteboard_id}", response_model=WhiteboardDetail)
async def get_whiteboard(
    whiteboard_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a whiteboard with the caller's role and capabilities."""
    whiteboard = _get_whiteboard(db, whiteboard_id)
    _require_access(whiteboard, current_user)
    role = authorize(WHITEBOARD, whiteboard, current_user, Capability.VIEW)
    return _detail(whiteboard, role)


@router.patch("/{whiteboard_id}", response_model=WhiteboardDetail)
async def update_whiteboard(
    whiteboard_id: UUID,
    whiteboard_data: WhiteboardUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a whiteboard. Canvas data is merged into the stored canvas."""
    whiteboard = _get_whiteboard(db, whiteboard_id)
    role = authorize(WHITEBOARD, whiteboard, current_user, Capability.EDIT)

    update_data = whiteboard_data.model_dump(
        exclude_unset=True, exclude_none=True, exclude={"canvas_data", "canvas_settings"}
    )
    for field, value in update_data.items():
        setattr(whiteboard, field, value)

    if whiteboard_data.canvas_settings:
        whiteboard.canvas_settings = {
            **(whiteboard.canvas_settings or {}),
            **whiteboard_data.canvas_settings.model_dump(exclude_none=True),
        }

    if whiteboard_data.canvas_data is not None:
        _save_canvas(whiteboard, whiteboard_data.canvas_data, current_user)
    else:
        whiteboard.last_modified_by = current_user.id

    db.commit()
    db.refresh(whiteboard)

    return _detail(whiteboard, role)


@router.post("/{whiteboard_id}/auto-save", response_model=SuccessResponse)
async def auto_save_whiteboard(
    whiteboard_id: UUID,
    save_data: CanvasSave,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Merge a canvas snapshot from the editor and bump the version."""
    whiteboard = _get_whiteboard(db, whiteboard_id)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.EDIT)

    _save_canvas(whiteboard, save_data.canvas_data, current_user)
    whiteboard.auto_saved_at = datetime.utcnow()
    db.commit()

    return SuccessResponse(
        message="Whiteboard auto-saved",
        data={"auto_saved_at": whiteboard.auto_saved_at.isoformat(), "version": whiteboard.version},
    )


@router.post("/{whiteboard_id}/auto-save/enable", response_model=SuccessResponse)
async def enable_auto_save(
    whiteboard_id: UUID,
    toggle: Optional[AutoSaveToggle] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Turn auto-save on, or off with ``{"enabled": false}``. Only the owner can change this."""
    whiteboard = _get_whiteboard(db, whiteboard_id)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.CHANGE_SETTINGS)

    enabled = toggle.enabled if toggle else True
    whiteboard.is_auto_save_enabled = enabled
    whiteboard.collaboration_settings = {
        **(whiteboard.collaboration_settings or {}),
        "auto_save": enabled,
    }
    whiteboard.last_modified_by = current_user.id
    db.commit()

    return SuccessResponse(
        message=f"Auto-save {'enabled' if enabled else 'disabled'}",
        data={
            "auto_save": enabled,
            "auto_save_interval": whiteboard.collaboration_settings.get("auto_save_interval"),
        },
    )


@router.delete("/{whiteboard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_whiteboard(
    whiteboard_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Soft-delete a whiteboard."""
    whiteboard = _get_whiteboard(db, whiteboard_id)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.DELETE)

    whiteboard.is_deleted = True
    whiteboard.deleted_at = datetime.utcnow()
    whiteboard.deleted_by = current_user.id
    db.commit()

    logger.info(f"Whiteboard {whiteboard_id} deleted by {current_user.id}")


@router.post("/{whiteboard_id}/share", response_model=ShareResponse)
async def share_whiteboard(
    whiteboard_id: UUID,
    share_data: ShareRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Share a whiteboard. Rejected once the collaborator limit is reached."""
    whiteboard = _get_whiteboard(db, whiteboard_id)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.SHARE)

    user_ids = list(dict.fromkeys(share_data.user_ids))
    if current_user.id in user_ids:
        raise HTTPException(status_code=400, detail="You cannot share a whiteboard with yourself")

    found = db.query(User.id).filter(User.id.in_(user_ids)).count()
    if found != len(user_ids):
        raise HTTPException(status_code=400, detail="One or more users not found")

    added, skipped = [], []
    for user_id in user_ids:
        try:
            add_member(
                WHITEBOARD, whiteboard, user_id, share_data.role, current_user.id,
                limit=_collaborator_limit(whiteboard),
            )
            added.append(user_id)
        except DuplicateMemberError:
            skipped.append(user_id)

    if added and whiteboard.visibility == "private":
        whiteboard.visibility = "shared"

    db.commit()

    return ShareResponse(added=added, already_collaborators=skipped, visibility=whiteboard.visibility)


@router.get("/{whiteboard_id}/collaborators", response_model=List[MemberResponse])
async def list_collaborators(
    whiteboard_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List a whiteboard's collaborators."""
    whiteboard = _get_whiteboard(db, whiteboard_id)
    _require_access(whiteboard, current_user)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.VIEW)
    return [MemberResponse.model_validate(c) for c in whiteboard.collaborators]


@router.patch("/{whiteboard_id}/collaborators/{user_id}", response_model=MemberResponse)
async def update_collaborator_role(
    whiteboard_id: UUID,
    user_id: UUID,
    role_data: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    whiteboard = _get_whiteboard(db, whiteboard_id)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.MANAGE_COLLABORATORS)

    entry = change_member_role(WHITEBOARD, whiteboard, user_id, role_data.role)
    db.commit()
    db.refresh(entry)

    return MemberResponse.model_validate(entry)


@router.delete("/{whiteboard_id}/collaborators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_collaborator(
    whiteboard_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    whiteboard = _get_whiteboard(db, whiteboard_id)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.MANAGE_COLLABORATORS)

    remove_member(WHITEBOARD, whiteboard, user_id)
    db.commit()


@router.get("/{whiteboard_id}/settings", response_model=dict)
async def get_whiteboard_settings(
    whiteboard_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    whiteboard = _get_whiteboard(db, whiteboard_id)
    _require_access(whiteboard, current_user)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.VIEW)
    return whiteboard.collaboration_settings


@router.patch("/{whiteboard_id}/settings", response_model=dict)
async def update_whiteboard_settings(
    whiteboard_id: UUID,
    settings_data: WhiteboardSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a whiteboard's collaboration settings."""
    whiteboard = _get_whiteboard(db, whiteboard_id)
    authorize(WHITEBOARD, whiteboard, current_user, Capability.CHANGE_SETTINGS)

    whiteboard.collaboration_settings = {
        **(whiteboard.collaboration_settings or {}),
        **settings_data.model_dump(exclude_unset=True, exclude_none=True),
    }
    db.commit()
    db.refresh(whiteboard)

    return whiteboard.collaboration_settings
