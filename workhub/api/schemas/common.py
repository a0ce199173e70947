"""Common schemas for the WorkHub API."""

from datetime import datetime
from typing import Generic, TypeVar, Optional, List, Any
from uuid import UUID
from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated response wrapper."""
    items: List[T]
    total: int
    page: int
    per_page: int
    pages: int

    @classmethod
    def create(cls, items: List[T], total: int, page: int, per_page: int):
        pages = (total + per_page - 1) // per_page if per_page > 0 else 0
        return cls(items=items, total=total, page=page, per_page=per_page, pages=pages)


class MemberResponse(BaseModel):
    """One membership entry (collaborator, team member or workspace member)."""
    user_id: UUID
    role: str
    added_by: Optional[UUID] = None
    added_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoleUpdate(BaseModel):
    role: str = Field(..., min_length=1, max_length=50)


class AccessInfo(BaseModel):
    """The caller's resolved role and what it allows."""
    user_role: str
    capabilities: List[str]


class SuccessResponse(BaseModel):
    """Standard success response."""
    message: str
    data: Optional[Any] = None
