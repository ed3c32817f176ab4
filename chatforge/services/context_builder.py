"""Build the model's system instruction from a project and its sources."""
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from chatforge.core.config import settings
from chatforge.models.source import Source

CONTEXT_PREAMBLE = "Use the following context to answer the user's questions if relevant:"


def load_recent_sources(db: Session, project_id, limit: Optional[int] = None) -> List[Source]:
    """Most recently uploaded sources for a project, newest first."""
    if limit is None:
        limit = settings.CONTEXT_MAX_SOURCES

    return (
        db.query(Source)
        .filter(Source.project_id == project_id)
        .order_by(Source.created_at.desc())
        .limit(limit)
        .all()
    )


def format_source(source: Source, max_chars: int) -> str:
    return f"[Source: {source.file_name}]\n{source.content[:max_chars]}"


def build_system_instruction(
    system_prompt: str,
    sources: Sequence[Source],
    max_sources: Optional[int] = None,
    max_chars: Optional[int] = None,
) -> str:
    """
    Append source excerpts to the project's system prompt.

    ``sources`` are expected newest first. At most ``max_sources`` are used and
    each is cut to ``max_chars`` characters; there is no token accounting or
    relevance ranking. With no sources the prompt is returned unchanged.
    """
    if max_sources is None:
        max_sources = settings.CONTEXT_MAX_SOURCES
    if max_chars is None:
        max_chars = settings.CONTEXT_SOURCE_MAX_CHARS

    selected = list(sources)[:max_sources]
    if not selected:
        return system_prompt

    context_text = "\n\n".join(format_source(source, max_chars) for source in selected)
    return f"{system_prompt}\n\n{CONTEXT_PREAMBLE}\n\n{context_text}"
