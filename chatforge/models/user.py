"""User model."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Uuid
from sqlalchemy.orm import relationship
from chatforge.db.base import Base


class User(Base):
    """Registered account; owns projects and accumulates token usage."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    # always stored lowercased, lookups lowercase too
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    total_tokens_used = Column(Integer, nullable=False, default=0)
    prompt_tokens_used = Column(Integer, nullable=False, default=0)
    completion_tokens_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    projects = relationship("Project", back_populates="owner", cascade="all, delete-orphan")
