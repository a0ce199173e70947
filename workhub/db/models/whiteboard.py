import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, JSON, ForeignKey, Boolean, Text, Integer, Uuid, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from workhub.core.config import get_settings
from workhub.db.base import Base


def default_canvas_settings() -> dict:
    return {
        "width": 1920,
        "height": 1080,
        "background_color": "#ffffff",
        "grid_size": 20,
        "show_grid": True,
    }


def default_whiteboard_settings() -> dict:
    return {
        "auto_save": True,
        "auto_save_interval": 30000,  # milliseconds
        "allow_anonymous_view": False,
        "max_collaborators": get_settings().default_max_collaborators,
    }


class Whiteboard(Base):
    """Shared drawing canvas. Soft-deleted like documents."""
    __tablename__ = "whiteboards"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    # Canvas
    canvas_data = Column(JSON, nullable=False, default=dict)
    canvas_settings = Column(JSON, nullable=False, default=default_canvas_settings)

    status = Column(String(20), nullable=False, default="draft")  # draft, active, archived
    visibility = Column(String(20), nullable=False, default="private")  # private, shared
    tags = Column(JSON, nullable=False, default=list)

    version = Column(Integer, nullable=False, default=1)
    last_modified_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    is_auto_save_enabled = Column(Boolean, default=False)
    auto_saved_at = Column(DateTime, nullable=True)

    collaboration_settings = Column(JSON, nullable=False, default=default_whiteboard_settings)

    # Soft delete
    is_deleted = Column(Boolean, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", foreign_keys=[owner_id])
    collaborators = relationship(
        "WhiteboardCollaborator",
        back_populates="whiteboard",
        cascade="all, delete-orphan",
        order_by="WhiteboardCollaborator.added_at",
    )

    def build_member(self, **fields) -> "WhiteboardCollaborator":
        return WhiteboardCollaborator(**fields)

    def __repr__(self) -> str:
        return f"<Whiteboard {self.title}>"


class WhiteboardCollaborator(Base):
    __tablename__ = "whiteboard_collaborators"
    __table_args__ = (UniqueConstraint("whiteboard_id", "user_id", name="uq_whiteboard_collaborator"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    whiteboard_id = Column(Uuid, ForeignKey("whiteboards.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)

    added_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow)

    whiteboard = relationship("Whiteboard", back_populates="collaborators")
    user = relationship("User", foreign_keys=[user_id])
