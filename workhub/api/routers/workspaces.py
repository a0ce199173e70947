"""Workspace API endpoints."""

import logging
from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_

from workhub.api.deps import get_db, get_current_user
from workhub.api.schemas.auth import UserSummary
from workhub.api.schemas.common import AccessInfo, MemberResponse, PaginatedResponse, RoleUpdate
from workhub.core.access import (
    WORKSPACE,
    Capability,
    add_member,
    add_owner_entry,
    authorize,
    capabilities_for,
    change_member_role,
    is_member,
    remove_member,
)
from workhub.core.config import get_settings
from workhub.db.models import Workspace, WorkspaceMember, User
from workhub.db.models.workspace import default_workspace_settings

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

SEARCH_LIMIT = 10


# Schemas
class WorkspaceSettings(BaseModel):
    allow_member_invites: Optional[bool] = None
    require_approval: Optional[bool] = None
    max_members: Optional[int] = Field(None, ge=1, le=1000)
    allow_public_projects: Optional[bool] = None

class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    settings: Optional[WorkspaceSettings] = None

class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    settings: Optional[WorkspaceSettings] = None

class WorkspaceResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str]
    owner_id: UUID
    settings: dict
    is_active: bool
    members: List[MemberResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class WorkspaceDetail(WorkspaceResponse, AccessInfo):
    pass

class WorkspaceMemberAdd(BaseModel):
    user_id: UUID
    role: Literal["admin", "member"] = "member"


# Helpers
def get_active_workspace(db: Session, workspace_id: UUID) -> Workspace:
    workspace = db.query(Workspace).filter(
        and_(Workspace.id == workspace_id, Workspace.is_active == True)  # noqa: E712
    ).first()

    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")

    return workspace


def require_workspace_access(workspace: Workspace, user: User) -> None:
    if not is_member(WORKSPACE, workspace, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have access to this workspace",
        )


def _detail(workspace: Workspace, role: str) -> WorkspaceDetail:
    return WorkspaceDetail(
        **WorkspaceResponse.model_validate(workspace).model_dump(),
        user_role=role,
        capabilities=sorted(capabilities_for(WORKSPACE, role)),
    )


def _member_limit(workspace: Workspace) -> int:
    return (workspace.settings or {}).get("max_members", settings.default_max_members)


# Endpoints
@router.post("", response_model=WorkspaceDetail, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    workspace_data: WorkspaceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a workspace owned by the current user."""
    workspace_settings = default_workspace_settings()
    if workspace_data.settings:
        workspace_settings.update(workspace_data.settings.model_dump(exclude_none=True))

    workspace = Workspace(
        name=workspace_data.name,
        description=workspace_data.description,
        owner_id=current_user.id,
        settings=workspace_settings,
    )
    db.add(workspace)
    db.flush()
    add_owner_entry(WORKSPACE, workspace)

    db.commit()
    db.refresh(workspace)

    logger.info(f"Workspace {workspace.id} created by {current_user.id}")
    return _detail(workspace, "owner")


@router.get("", response_model=PaginatedResponse[WorkspaceResponse])
async def list_workspaces(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
):
    """List active workspaces the current user owns or belongs to."""
    query = db.query(Workspace).filter(
        and_(
            Workspace.is_active == True,  # noqa: E712
            or_(
                Workspace.owner_id == current_user.id,
                Workspace.members.any(WorkspaceMember.user_id == current_user.id),
            ),
        )
    )

    if search:
        query = query.filter(Workspace.name.ilike(f"%{search}%"))

    total = query.count()
    workspaces = query.order_by(Workspace.name).offset((page - 1) * per_page).limit(per_page).all()

    return PaginatedResponse[WorkspaceResponse].create(
        items=[WorkspaceResponse.model_validate(w) for w in workspaces],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{workspace_id}", response_model=WorkspaceDetail)
async def get_workspace(
    workspace_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a workspace with the caller's role and capabilities."""
    workspace = get_active_workspace(db, workspace_id)
    require_workspace_access(workspace, current_user)
    role = authorize(WORKSPACE, workspace, current_user, Capability.VIEW)
    return _detail(workspace, role)


@router.patch("/{workspace_id}", response_model=WorkspaceDetail)
async def update_workspace(
    workspace_id: UUID,
    workspace_data: WorkspaceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update workspace details and settings. Owner only."""
    workspace = get_active_workspace(db, workspace_id)
    role = authorize(WORKSPACE, workspace, current_user, Capability.CHANGE_SETTINGS)

    update_data = workspace_data.model_dump(exclude_unset=True, exclude_none=True, exclude={"settings"})
    for field, value in update_data.items():
        setattr(workspace, field, value)

    if workspace_data.settings:
        workspace.settings = {
            **(workspace.settings or {}),
            **workspace_data.settings.model_dump(exclude_none=True),
        }

    db.commit()
    db.refresh(workspace)

    return _detail(workspace, role)


@router.delete("/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(
    workspace_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Deactivate a workspace. Owner only."""
    workspace = get_active_workspace(db, workspace_id)
    authorize(WORKSPACE, workspace, current_user, Capability.DELETE)

    workspace.is_active = False
    db.commit()

    logger.info(f"Workspace {workspace_id} deactivated by {current_user.id}")


@router.get("/{workspace_id}/members", response_model=List[MemberResponse])
async def list_workspace_members(
    workspace_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    workspace = get_active_workspace(db, workspace_id)
    require_workspace_access(workspace, current_user)
    authorize(WORKSPACE, workspace, current_user, Capability.VIEW)
    return [MemberResponse.model_validate(m) for m in workspace.members]


@router.get("/{workspace_id}/search-users", response_model=List[UserSummary])
async def search_workspace_candidates(
    workspace_id: UUID,
    q: str = Query(..., min_length=2),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Find active users, by name or email, who are not members yet."""
    workspace = get_active_workspace(db, workspace_id)
    authorize(WORKSPACE, workspace, current_user, Capability.MANAGE_MEMBERS)

    member_ids = [m.user_id for m in workspace.members] + [workspace.owner_id]
    pattern = f"%{q}%"
    users = (
        db.query(User)
        .filter(
            and_(
                User.is_active == True,  # noqa: E712
                ~User.id.in_(member_ids),
                or_(User.name.ilike(pattern), User.email.ilike(pattern)),
            )
        )
        .order_by(User.name)
        .limit(SEARCH_LIMIT)
        .all()
    )

    return [UserSummary.model_validate(u) for u in users]


@router.post(
    "/{workspace_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_workspace_member(
    workspace_id: UUID,
    member_data: WorkspaceMemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a user to the workspace. Owners and admins only."""
    workspace = get_active_workspace(db, workspace_id)
    authorize(WORKSPACE, workspace, current_user, Capability.MANAGE_MEMBERS)

    user = db.query(User).filter(User.id == member_data.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    entry = add_member(
        WORKSPACE, workspace, user.id, member_data.role, current_user.id,
        limit=_member_limit(workspace),
    )

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="User is already a member of this workspace")

    db.refresh(entry)
    return MemberResponse.model_validate(entry)


@router.patch("/{workspace_id}/members/{user_id}", response_model=MemberResponse)
async def update_workspace_member_role(
    workspace_id: UUID,
    user_id: UUID,
    role_data: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Change a member's role. The owner's role is fixed."""
    workspace = get_active_workspace(db, workspace_id)
    authorize(WORKSPACE, workspace, current_user, Capability.MANAGE_MEMBERS)

    entry = change_member_role(WORKSPACE, workspace, user_id, role_data.role)
    db.commit()
    db.refresh(entry)

    return MemberResponse.model_validate(entry)


@router.delete("/{workspace_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_workspace_member(
    workspace_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Remove a member. Owner only, and the owner cannot be removed."""
    workspace = get_active_workspace(db, workspace_id)
    authorize(WORKSPACE, workspace, current_user, Capability.REMOVE_MEMBERS)

    remove_member(WORKSPACE, workspace, user_id)
    db.commit()
