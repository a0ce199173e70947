"""Document database models.

A document is a rich-text record owned by one user and shared with
collaborators who hold the ``editor`` or ``viewer`` role.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, JSON, ForeignKey, Boolean, Text, Integer, Uuid, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from workhub.core.config import get_settings
from workhub.db.base import Base


def default_document_settings() -> dict:
    return {
        "auto_save": True,
        "auto_save_interval": 30000,  # milliseconds
        "allow_comments": True,
        "allow_reactions": True,
        "allow_anonymous_view": False,
        "require_approval_for_join": False,
        "max_collaborators": get_settings().default_max_collaborators,
    }


class Document(Base):
    """
    Collaborative document.

    Deleting a document only flags it; deleted documents stay in the table
    so that references to them keep resolving.
    """
    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False, default="")
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="draft")  # draft, published
    visibility = Column(String(20), nullable=False, default="private")  # private, shared
    tags = Column(JSON, nullable=False, default=list)

    # Editing state
    version = Column(Integer, nullable=False, default=1)
    last_modified_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    is_auto_save_enabled = Column(Boolean, default=False)
    auto_saved_at = Column(DateTime, nullable=True)

    collaboration_settings = Column(JSON, nullable=False, default=default_document_settings)

    # Soft delete
    is_deleted = Column(Boolean, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id])
    collaborators = relationship(
        "DocumentCollaborator",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentCollaborator.added_at",
    )

    def build_member(self, **fields) -> "DocumentCollaborator":
        return DocumentCollaborator(**fields)

    def __repr__(self) -> str:
        return f"<Document {self.title}>"


class DocumentCollaborator(Base):
    """A user's role on a document."""
    __tablename__ = "document_collaborators"
    __table_args__ = (UniqueConstraint("document_id", "user_id", name="uq_document_collaborator"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)  # Free-form so legacy roles still load

    added_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow)

    document = relationship("Document", back_populates="collaborators")
    user = relationship("User", foreign_keys=[user_id])
