"""Streaming chat route."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from chatforge.core.security import SessionIdentity, get_current_identity
from chatforge.db.sessions import Database, get_database, get_db
from chatforge.routes.projects import get_owned_project, parse_id
from chatforge.services.chat_relay import ChatRelay, ChatTurn
from chatforge.services.openai_service import OpenAIService, ProviderError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])


class ChatRequest(BaseModel):
    messages: Optional[List[ChatTurn]] = None
    project_id: Optional[str] = Field(None, alias="projectId")

    class Config:
        populate_by_name = True


def get_openai_service() -> OpenAIService:
    return OpenAIService()


@router.post("/chat")
def chat(
    request: ChatRequest,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    database: Database = Depends(get_database),
    llm: OpenAIService = Depends(get_openai_service),
):
    """
    Send a conversation to the project's model and stream the reply as plain text.

    The last turn is saved if it came from the user; the assistant reply is
    saved once the stream completes.
    """
    if not request.project_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid project ID"
        )
    project_id = parse_id(request.project_id)

    if not request.messages:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Messages are required"
        )

    project = get_owned_project(db, project_id, identity.user_id)

    relay = ChatRelay(database, llm)
    try:
        stream = relay.start(db, project, request.messages, identity.user_id)
    except ProviderError:
        logger.exception("Model provider refused chat for project %s", project.id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Model provider error"
        )

    return StreamingResponse(stream, media_type="text/plain; charset=utf-8")
