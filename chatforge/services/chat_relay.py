"""Chat relay: persist the user's turn, stream the model's reply, persist the reply.

Single producer, single consumer. Text deltas are yielded as they arrive with
no buffering; the reply is written once the provider stream completes.
"""
import json
import logging
from typing import Annotated, Dict, Iterator, List, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictBool, StrictFloat, StrictInt
from sqlalchemy.orm import Session

from chatforge.core.config import settings
from chatforge.db.sessions import Database
from chatforge.models.message import Message, MessageRole
from chatforge.models.project import Project
from chatforge.models.user import User
from chatforge.services.context_builder import build_system_instruction, load_recent_sources
from chatforge.services.openai_service import (
    OpenAIService,
    ProviderError,
    StreamChunk,
    TokenUsage,
    resolve_model,
)

logger = logging.getLogger(__name__)


# numbers and booleans are accepted wherever text is and flattened to their JSON spelling
Scalar = Union[str, StrictBool, StrictInt, StrictFloat]


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: Scalar


class StructuredPart(BaseModel):
    """Any other content part (images, tool output, nested parts, ...)."""

    type: Optional[str] = None
    text: Optional[Scalar] = None
    content: Optional["Content"] = None

    class Config:
        extra = "allow"


# TextPart is tried before StructuredPart so {"type": "text"} never lands in the catch-all
ContentPart = Annotated[
    Union[Scalar, TextPart, StructuredPart],
    Field(union_mode="left_to_right"),
]
Content = Annotated[
    Union[Scalar, TextPart, StructuredPart, List[ContentPart]],
    Field(union_mode="left_to_right"),
]

StructuredPart.model_rebuild()


class ChatTurn(BaseModel):
    role: Optional[str] = None
    content: Optional[Content] = None


def _scalar_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_content(content: Optional[Content]) -> str:
    """Reduce any chat content shape to plain text. Lists concatenate without separator."""
    if content is None:
        return ""
    if isinstance(content, (str, bool, int, float)):
        return _scalar_text(content)
    if isinstance(content, TextPart):
        return _scalar_text(content.text)
    if isinstance(content, StructuredPart):
        if content.text is not None:
            return _scalar_text(content.text)
        if content.content is not None:
            return flatten_content(content.content)
        return json.dumps(content.model_dump(exclude_none=True))
    return "".join(flatten_content(part) for part in content)


ALLOWED_ROLES = {role.value for role in MessageRole}


def to_provider_messages(turns: List[ChatTurn]) -> List[Dict[str, str]]:
    """Drop turns with unknown roles and flatten the rest to ``{role, content}``."""
    return [
        {"role": turn.role, "content": flatten_content(turn.content)}
        for turn in turns
        if turn.role in ALLOWED_ROLES
    ]


class ChatRelay:
    def __init__(self, database: Database, llm: OpenAIService):
        self.database = database
        self.llm = llm

    def start(self, db: Session, project: Project, turns: List[ChatTurn], user_id) -> Iterator[str]:
        """
        Persist the incoming user turn, open the provider stream and return
        the text iterator to hand to the HTTP response.

        Raises:
            ProviderError: If the provider refuses the request before streaming
        """
        last_turn = turns[-1]
        if last_turn.role == MessageRole.USER.value:
            db.add(Message(
                project_id=project.id,
                role=MessageRole.USER,
                content=flatten_content(last_turn.content),
            ))
            db.commit()

        sources = load_recent_sources(db, project.id)
        system_instruction = build_system_instruction(project.system_prompt, sources)
        provider, model = resolve_model(project.model_config)

        logger.info(
            "Chat started project=%s provider=%s model=%s turns=%d sources=%d",
            project.id, provider, model, len(turns), len(sources),
        )

        chunks = self.llm.stream_chat(
            provider,
            model,
            system_instruction,
            to_provider_messages(turns),
            max_tokens=settings.CHAT_MAX_OUTPUT_TOKENS,
        )
        return self._relay(chunks, project.id, user_id)

    def _relay(self, chunks: Iterator[StreamChunk], project_id, user_id) -> Iterator[str]:
        parts: List[str] = []
        usage: Optional[TokenUsage] = None

        try:
            for chunk in chunks:
                if chunk.usage is not None:
                    usage = chunk.usage
                if chunk.text:
                    parts.append(chunk.text)
                    yield chunk.text
        except ProviderError:
            # the partial reply is not saved
            logger.exception(
                "Chat stream failed project=%s after %d chars",
                project_id, sum(len(p) for p in parts),
            )
            return

        reply = "".join(parts)
        logger.info("Chat finished project=%s chars=%d", project_id, len(reply))
        self._save_reply(project_id, user_id, reply, usage)

    def _save_reply(self, project_id, user_id, reply: str, usage: Optional[TokenUsage]) -> None:
        if not reply and usage is None:
            return

        db = self.database.session()
        try:
            if reply:
                db.add(Message(project_id=project_id, role=MessageRole.ASSISTANT, content=reply))

            if usage is not None:
                db.query(User).filter(User.id == user_id).update(
                    {
                        User.total_tokens_used: User.total_tokens_used + usage.total_tokens,
                        User.prompt_tokens_used: User.prompt_tokens_used + usage.prompt_tokens,
                        User.completion_tokens_used: User.completion_tokens_used + usage.completion_tokens,
                    },
                    synchronize_session=False,
                )

            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to save assistant reply project=%s", project_id)
            raise
        finally:
            db.close()
