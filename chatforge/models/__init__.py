"""Database models."""
from chatforge.models.user import User
from chatforge.models.project import Project
from chatforge.models.source import Source
from chatforge.models.message import Message, MessageRole

__all__ = [
    "User",
    "Project",
    "Source",
    "Message",
    "MessageRole",
]
