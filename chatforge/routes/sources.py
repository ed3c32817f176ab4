"""Source (uploaded document) routes."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session
from pydantic import BaseModel

from chatforge.core.config import settings
from chatforge.core.security import SessionIdentity, get_current_identity
from chatforge.db.sessions import get_db
from chatforge.models.source import Source
from chatforge.routes.projects import get_owned_project, parse_id
from chatforge.utils.file_processor import FileProcessor, UnsupportedFileType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}", tags=["Sources"])


# Response schemas
class SourceSummary(BaseModel):
    id: str
    file_name: str
    created_at: str


class SourceDetail(SourceSummary):
    project_id: str
    content: str


class SourceListResponse(BaseModel):
    sources: List[SourceSummary]
    total: int


def _get_source(db: Session, project_id, source_id) -> Source:
    source = db.query(Source).filter(
        Source.id == source_id,
        Source.project_id == project_id
    ).first()

    if not source:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Source not found"
        )
    return source


def _detail(source: Source) -> SourceDetail:
    return SourceDetail(
        id=str(source.id),
        project_id=str(source.project_id),
        file_name=source.file_name,
        content=source.content,
        created_at=source.created_at.isoformat(),
    )


@router.get("/sources", response_model=SourceListResponse)
def list_sources(
    project_id: str,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    List a project's sources, newest first. Content is not included.
    """
    project = get_owned_project(db, parse_id(project_id), identity.user_id)

    sources = db.query(Source).filter(
        Source.project_id == project.id
    ).order_by(Source.created_at.desc()).all()

    return SourceListResponse(
        sources=[
            SourceSummary(id=str(s.id), file_name=s.file_name, created_at=s.created_at.isoformat())
            for s in sources
        ],
        total=len(sources)
    )


@router.post("/sources", response_model=SourceDetail, status_code=status.HTTP_201_CREATED)
@router.post("/upload", response_model=SourceDetail, status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def upload_source(
    project_id: str,
    file: Optional[UploadFile] = File(None),
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Upload a document and store its extracted text as a source.

    Accepts PDF, plain text and markdown (by MIME type).

    Raises:
        HTTPException 400: No file, unsupported type, unreadable or empty content
        HTTPException 404: Project missing or not owned by the caller
        HTTPException 413: File larger than MAX_UPLOAD_BYTES
    """
    project = get_owned_project(db, parse_id(project_id), identity.user_id)

    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded"
        )

    if not FileProcessor.is_supported(file.content_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unsupported file type. Only PDF and Text/Markdown are supported."
        )

    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File is too large"
        )

    try:
        content = FileProcessor.extract_text(data, file.content_type)
    except UnsupportedFileType as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ValueError as e:
        logger.warning("Could not extract text from %s: %s", file.filename, e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not read file content"
        )

    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File content is empty"
        )

    source = Source(project_id=project.id, file_name=file.filename, content=content)
    db.add(source)
    db.commit()
    db.refresh(source)
    logger.info("Stored source %s (%d chars) for project %s", source.id, len(content), project.id)

    return _detail(source)


@router.get("/sources/{source_id}", response_model=SourceDetail)
def get_source(
    project_id: str,
    source_id: str,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Get a source with its full extracted content.
    """
    project_uuid = parse_id(project_id)
    source_uuid = parse_id(source_id, "source")

    project = get_owned_project(db, project_uuid, identity.user_id)
    return _detail(_get_source(db, project.id, source_uuid))


@router.delete("/sources/{source_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_source(
    project_id: str,
    source_id: str,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Delete a single source.
    """
    project_uuid = parse_id(project_id)
    source_uuid = parse_id(source_id, "source")

    project = get_owned_project(db, project_uuid, identity.user_id)
    source = _get_source(db, project.id, source_uuid)

    db.delete(source)
    db.commit()
    logger.info("Deleted source %s from project %s", source_id, project.id)

    return None
