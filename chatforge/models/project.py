"""Project model."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from chatforge.db.base import Base

PROVIDERS = ("openai", "openrouter")
NAME_MAX_LENGTH = 100
SYSTEM_PROMPT_MAX_LENGTH = 10000


class Project(Base):
    """A named assistant configuration (system prompt + model choice)."""

    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    system_prompt = Column(Text, nullable=False)
    # {"provider": "openai" | "openrouter", "model": "<model id>"}
    model_config = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner = relationship("User", back_populates="projects")
    sources = relationship("Source", back_populates="project", cascade="all, delete-orphan")
    messages = relationship("Message", back_populates="project", cascade="all, delete-orphan")
