import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, JSON, ForeignKey, Boolean, Text, Integer, Uuid, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from workhub.db.base import Base


class Project(Base):
    """A project inside a workspace, staffed by a team."""
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    # planning, active, on_hold, completed, cancelled
    status = Column(String(20), nullable=False, default="planning")
    priority = Column(String(20), nullable=False, default="medium")  # low, medium, high, urgent
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    progress = Column(Integer, nullable=False, default=0)  # percent
    tags = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    workspace = relationship("Workspace", back_populates="projects")
    owner = relationship("User", foreign_keys=[owner_id])
    team = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectMember.added_at",
    )

    def build_member(self, **fields) -> "ProjectMember":
        return ProjectMember(**fields)

    def __repr__(self) -> str:
        return f"<Project {self.name}>"


class ProjectMember(Base):
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_member"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)

    added_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="team")
    user = relationship("User", foreign_keys=[user_id])
