"""Workspace database models.

A workspace groups users and the projects they run together.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Boolean, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from workhub.core.config import get_settings
from workhub.db.base import Base


def default_workspace_settings() -> dict:
    return {
        "allow_member_invites": True,
        "require_approval": False,
        "max_members": get_settings().default_max_members,
        "allow_public_projects": False,
    }


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    settings = Column(JSON, nullable=False, default=default_workspace_settings)

    # Deactivated instead of deleted
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", foreign_keys=[owner_id])
    members = relationship(
        "WorkspaceMember",
        back_populates="workspace",
        cascade="all, delete-orphan",
        order_by="WorkspaceMember.added_at",
    )
    projects = relationship("Project", back_populates="workspace")

    def build_member(self, **fields) -> "WorkspaceMember":
        return WorkspaceMember(**fields)

    def __repr__(self) -> str:
        return f"<Workspace {self.name}>"


class WorkspaceMember(Base):
    """
    A user's membership in a workspace.

    Project teams may only draw from the workspace's members.
    """
    __tablename__ = "workspace_members"
    __table_args__ = (UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)

    added_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow)

    workspace = relationship("Workspace", back_populates="members")
    user = relationship("User", foreign_keys=[user_id])
