"""Database models for WorkHub."""

from workhub.db.models.user import User
from workhub.db.models.document import Document, DocumentCollaborator
from workhub.db.models.whiteboard import Whiteboard, WhiteboardCollaborator
from workhub.db.models.workspace import Workspace, WorkspaceMember
from workhub.db.models.project import Project, ProjectMember

__all__ = [
    "User",
    "Document",
    "DocumentCollaborator",
    "Whiteboard",
    "WhiteboardCollaborator",
    "Workspace",
    "WorkspaceMember",
    "Project",
    "ProjectMember",
]
