"""Project API endpoints.

Projects live inside a workspace. Creating one requires ``canCreateProjects``
on the workspace; everything after that is checked against the project team.
"""

import logging
from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_

from workhub.api.deps import get_db, get_current_user
from workhub.api.routers.workspaces import get_active_workspace, require_workspace_access
from workhub.api.schemas.auth import UserSummary
from workhub.api.schemas.common import AccessInfo, MemberResponse, PaginatedResponse, RoleUpdate
from workhub.core.access import (
    PROJECT,
    WORKSPACE,
    Capability,
    WorkspaceRole,
    add_member,
    add_owner_entry,
    authorize,
    capabilities_for,
    change_member_role,
    is_member,
    remove_member,
    resolve_role,
)
from workhub.db.models import Project, User, WorkspaceMember

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

ProjectStatus = Literal["planning", "active", "on_hold", "completed", "cancelled"]
ProjectPriority = Literal["low", "medium", "high", "urgent"]

SEARCH_LIMIT = 10


def _as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # date columns hold naive UTC
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _check_dates(start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
    if start_date and end_date and end_date <= start_date:
        raise ValueError("End date must be after start date")


# Schemas
class ProjectCreate(BaseModel):
    workspace_id: UUID
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    status: ProjectStatus = "planning"
    priority: ProjectPriority = "medium"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_to_utc(cls, value):
        return _as_naive_utc(value)

    @model_validator(mode="after")
    def end_after_start(self):
        _check_dates(self.start_date, self.end_date)
        return self

class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[ProjectStatus] = None
    priority: Optional[ProjectPriority] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    tags: Optional[List[str]] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_to_utc(cls, value):
        return _as_naive_utc(value)

class ProjectResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    owner_id: UUID
    name: str
    description: Optional[str]
    status: str
    priority: str
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    progress: int
    tags: List[str]
    is_active: bool
    team: List[MemberResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ProjectDetail(ProjectResponse, AccessInfo):
    pass

class ProjectMemberAdd(BaseModel):
    user_id: UUID
    role: Literal["hr", "mr", "tr", "employee"] = "employee"


# Helpers
def _get_project(db: Session, project_id: UUID) -> Project:
    project = db.query(Project).filter(
        and_(Project.id == project_id, Project.is_active == True)  # noqa: E712
    ).first()

    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    return project


def _require_access(project: Project, user: User) -> None:
    """Team members can read a project, and so can the workspace's owner and admins."""
    if is_member(PROJECT, project, user):
        return

    workspace = project.workspace
    if is_member(WORKSPACE, workspace, user):
        workspace_role = resolve_role(WORKSPACE, workspace, user)
        if workspace_role in (WorkspaceRole.OWNER.value, WorkspaceRole.ADMIN.value):
            return

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You don't have access to this project",
    )


def _detail(project: Project, role: str) -> ProjectDetail:
    return ProjectDetail(
        **ProjectResponse.model_validate(project).model_dump(),
        user_role=role,
        capabilities=sorted(capabilities_for(PROJECT, role)),
    )


# Endpoints
@router.post("", response_model=ProjectDetail, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a project in a workspace. The creator becomes the project owner."""
    workspace = get_active_workspace(db, project_data.workspace_id)
    require_workspace_access(workspace, current_user)
    authorize(WORKSPACE, workspace, current_user, Capability.CREATE_PROJECTS)

    project = Project(**project_data.model_dump(), owner_id=current_user.id)
    db.add(project)
    db.flush()
    add_owner_entry(PROJECT, project)

    db.commit()
    db.refresh(project)

    logger.info(f"Project {project.id} created in workspace {workspace.id} by {current_user.id}")
    return _detail(project, "owner")


@router.get("", response_model=PaginatedResponse[ProjectResponse])
async def list_projects(
    workspace_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
):
    """List active projects in a workspace the current user belongs to."""
    workspace = get_active_workspace(db, workspace_id)
    require_workspace_access(workspace, current_user)

    query = db.query(Project).filter(
        and_(Project.workspace_id == workspace.id, Project.is_active == True)  # noqa: E712
    )

    if status_filter:
        query = query.filter(Project.status == status_filter)

    if search:
        query = query.filter(Project.name.ilike(f"%{search}%"))

    total = query.count()
    projects = query.order_by(Project.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()

    return PaginatedResponse[ProjectResponse].create(
        items=[ProjectResponse.model_validate(p) for p in projects],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a project with the caller's team role and capabilities."""
    project = _get_project(db, project_id)
    _require_access(project, current_user)
    role = authorize(PROJECT, project, current_user, Capability.VIEW)
    return _detail(project, role)


@router.patch("/{project_id}", response_model=ProjectDetail)
async def update_project(
    project_id: UUID,
    project_data: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a project. Owner, hr and mr only."""
    project = _get_project(db, project_id)
    role = authorize(PROJECT, project, current_user, Capability.EDIT)

    update_data = project_data.model_dump(exclude_unset=True, exclude_none=True)
    try:
        _check_dates(
            update_data.get("start_date", project.start_date),
            update_data.get("end_date", project.end_date),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    for field, value in update_data.items():
        setattr(project, field, value)

    db.commit()
    db.refresh(project)

    return _detail(project, role)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Deactivate a project. Owner only."""
    project = _get_project(db, project_id)
    authorize(PROJECT, project, current_user, Capability.DELETE)

    project.is_active = False
    db.commit()

    logger.info(f"Project {project_id} deactivated by {current_user.id}")


@router.get("/{project_id}/members", response_model=List[MemberResponse])
async def list_project_members(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = _get_project(db, project_id)
    _require_access(project, current_user)
    authorize(PROJECT, project, current_user, Capability.VIEW)
    return [MemberResponse.model_validate(m) for m in project.team]


@router.get("/{project_id}/search-members", response_model=List[UserSummary])
async def search_project_candidates(
    project_id: UUID,
    q: str = Query(..., min_length=2),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Find workspace members, by name or email, who are not on the team yet."""
    project = _get_project(db, project_id)
    authorize(PROJECT, project, current_user, Capability.MANAGE_MEMBERS)

    team_ids = [m.user_id for m in project.team]
    pattern = f"%{q}%"
    users = (
        db.query(User)
        .join(WorkspaceMember, WorkspaceMember.user_id == User.id)
        .filter(
            and_(
                WorkspaceMember.workspace_id == project.workspace_id,
                User.is_active == True,  # noqa: E712
                ~User.id.in_(team_ids),
                or_(User.name.ilike(pattern), User.email.ilike(pattern)),
            )
        )
        .order_by(User.name)
        .limit(SEARCH_LIMIT)
        .all()
    )

    return [UserSummary.model_validate(u) for u in users]


@router.post(
    "/{project_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_project_member(
    project_id: UUID,
    member_data: ProjectMemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a workspace member to the project team."""
    project = _get_project(db, project_id)
    authorize(PROJECT, project, current_user, Capability.MANAGE_MEMBERS)

    user = db.query(User).filter(User.id == member_data.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if not is_member(WORKSPACE, project.workspace, user):
        raise HTTPException(status_code=400, detail="User must be a member of the workspace")

    entry = add_member(PROJECT, project, user.id, member_data.role, current_user.id)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="User is already a member of this project")

    db.refresh(entry)
    return MemberResponse.model_validate(entry)


@router.patch("/{project_id}/members/{user_id}", response_model=MemberResponse)
async def update_project_member_role(
    project_id: UUID,
    user_id: UUID,
    role_data: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Change a team member's role. The owner's role is fixed."""
    project = _get_project(db, project_id)
    authorize(PROJECT, project, current_user, Capability.MANAGE_MEMBERS)

    entry = change_member_role(PROJECT, project, user_id, role_data.role)
    db.commit()
    db.refresh(entry)

    return MemberResponse.model_validate(entry)


@router.delete("/{project_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_project_member(
    project_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Remove a team member. Owner and hr only; the owner cannot be removed."""
    project = _get_project(db, project_id)
    authorize(PROJECT, project, current_user, Capability.REMOVE_MEMBERS)

    remove_member(PROJECT, project, user_id)
    db.commit()
