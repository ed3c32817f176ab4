"""Message model."""
import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, DateTime, Text, ForeignKey, Enum, Uuid
from sqlalchemy.orm import relationship
from chatforge.db.base import Base


class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(Base):
    """One chat turn. Append-only; ordered by created_at when read."""

    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(
        Enum(
            MessageRole,
            name="message_role",
            native_enum=False,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
    )
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    project = relationship("Project", back_populates="messages")
