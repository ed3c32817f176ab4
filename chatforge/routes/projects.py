"""Project (assistant) routes."""
import logging
import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from chatforge.core.config import settings
from chatforge.core.security import SessionIdentity, get_current_identity
from chatforge.db.sessions import get_db
from chatforge.models.message import Message
from chatforge.models.project import NAME_MAX_LENGTH, SYSTEM_PROMPT_MAX_LENGTH, Project

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])


# Request/Response schemas
class ModelConfig(BaseModel):
    provider: Literal["openai", "openrouter"] = "openrouter"
    model: Optional[str] = None


class CreateProjectRequest(BaseModel):
    name: str = Field(max_length=NAME_MAX_LENGTH)
    system_prompt: Optional[str] = Field(None, max_length=SYSTEM_PROMPT_MAX_LENGTH)
    llm: Optional[ModelConfig] = Field(None, alias="model_config")


class UpdateProjectRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    system_prompt: Optional[str] = Field(None, max_length=SYSTEM_PROMPT_MAX_LENGTH)
    llm: Optional[ModelConfig] = Field(None, alias="model_config")


class ProjectResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    system_prompt: str
    llm: ModelConfig = Field(alias="model_config")
    created_at: str
    updated_at: Optional[str] = None

    class Config:
        populate_by_name = True


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse]
    total: int


class MessageResponse(BaseModel):
    id: str
    role: str
    content: str
    created_at: str


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
    total: int


def parse_id(value: Optional[str], label: str = "project") -> uuid.UUID:
    """Parse a path/body identifier, 400 if it is not a UUID."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} ID"
        )


def get_owned_project(db: Session, project_id: uuid.UUID, owner_id: uuid.UUID) -> Project:
    """Load a project owned by the caller. Missing and foreign projects are both 404."""
    project = db.query(Project).filter(
        Project.id == project_id,
        Project.owner_id == owner_id
    ).first()

    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    return project


def _model_config_dict(config: Optional[ModelConfig]) -> dict:
    if config is None:
        config = ModelConfig(provider=settings.DEFAULT_PROVIDER)

    model = (config.model or "").strip()
    if not model:
        model = settings.DEFAULT_OPENAI_MODEL if config.provider == "openai" else settings.DEFAULT_MODEL
    return {"provider": config.provider, "model": model}


def _merge_model_config(stored: Optional[dict], patch: ModelConfig) -> dict:
    """
    Apply a partial model config to the stored one. A provider switch without
    a model drops the old model, which belongs to the other provider.
    """
    current = stored or {}
    given = patch.model_fields_set
    provider = patch.provider if "provider" in given else current.get("provider", settings.DEFAULT_PROVIDER)

    if "model" in given:
        model = patch.model
    elif provider == current.get("provider"):
        model = current.get("model")
    else:
        model = None

    return _model_config_dict(ModelConfig(provider=provider, model=model))


def _project_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=str(project.id),
        owner_id=str(project.owner_id),
        name=project.name,
        system_prompt=project.system_prompt,
        llm=ModelConfig(**project.model_config),
        created_at=project.created_at.isoformat(),
        updated_at=project.updated_at.isoformat() if project.updated_at else None,
    )


@router.get("", response_model=ProjectListResponse)
def list_projects(
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    List all projects for the current user, newest first.

    Protected endpoint - requires a session cookie.
    """
    projects = db.query(Project).filter(
        Project.owner_id == identity.user_id
    ).order_by(Project.created_at.desc()).all()

    return ProjectListResponse(
        projects=[_project_response(p) for p in projects],
        total=len(projects)
    )


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    request: CreateProjectRequest,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Create a new project.

    Missing system prompt and model configuration fall back to the defaults.
    """
    name = request.name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Project name is required"
        )

    project = Project(
        owner_id=identity.user_id,
        name=name,
        system_prompt=request.system_prompt or settings.DEFAULT_SYSTEM_PROMPT,
        model_config=_model_config_dict(request.llm),
    )

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Created project %s for user %s", project.id, identity.user_id)

    return _project_response(project)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: str,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Get a specific project by ID.

    Only returns projects owned by the current user.
    """
    project = get_owned_project(db, parse_id(project_id), identity.user_id)
    return _project_response(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    request: UpdateProjectRequest,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Partially update a project. Only fields present in the body change.
    """
    project = get_owned_project(db, parse_id(project_id), identity.user_id)
    provided = request.model_fields_set

    if "name" in provided:
        name = (request.name or "").strip()
        if not name:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Project name cannot be empty"
            )
        project.name = name

    if "system_prompt" in provided and request.system_prompt is not None:
        project.system_prompt = request.system_prompt

    if "llm" in provided and request.llm is not None:
        project.model_config = _merge_model_config(project.model_config, request.llm)

    db.commit()
    db.refresh(project)
    logger.info("Updated project %s fields=%s", project.id, sorted(provided))

    return _project_response(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: str,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Delete a project.

    Its sources and messages are removed in the same transaction.
    """
    project = get_owned_project(db, parse_id(project_id), identity.user_id)

    db.delete(project)
    db.commit()
    logger.info("Deleted project %s", project_id)

    return None


@router.get("/{project_id}/messages", response_model=MessageListResponse)
def list_messages(
    project_id: str,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Conversation history for a project, oldest first.
    """
    project = get_owned_project(db, parse_id(project_id), identity.user_id)

    messages = db.query(Message).filter(
        Message.project_id == project.id
    ).order_by(Message.created_at.asc()).all()

    return MessageListResponse(
        messages=[
            MessageResponse(
                id=str(m.id),
                role=m.role.value,
                content=m.content,
                created_at=m.created_at.isoformat(),
            )
            for m in messages
        ],
        total=len(messages)
    )
