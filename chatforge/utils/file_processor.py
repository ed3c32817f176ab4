"""File processing utilities for extracting text from uploaded documents."""
import io
import logging
from typing import Optional
import pypdf

logger = logging.getLogger(__name__)


class UnsupportedFileType(ValueError):
    """Raised when an upload's MIME type is not one we can extract text from."""


class FileProcessor:
    """Extract text content from uploaded file bytes."""

    PDF_TYPES = {"application/pdf"}
    TEXT_TYPES = {"text/plain", "text/markdown"}
    SUPPORTED_TYPES = PDF_TYPES | TEXT_TYPES

    @staticmethod
    def normalize_content_type(content_type: Optional[str]) -> str:
        """Lowercase a MIME type and drop parameters such as ``charset``."""
        if not content_type:
            return ""
        return content_type.split(";", 1)[0].strip().lower()

    @staticmethod
    def is_supported(content_type: Optional[str]) -> bool:
        """Check if a MIME type is supported."""
        return FileProcessor.normalize_content_type(content_type) in FileProcessor.SUPPORTED_TYPES

    @staticmethod
    def extract_text(data: bytes, content_type: Optional[str]) -> str:
        """
        Extract text from an uploaded file.

        Args:
            data: Raw file bytes
            content_type: MIME type reported by the client

        Returns:
            Extracted text, stripped of surrounding whitespace

        Raises:
            UnsupportedFileType: If the MIME type is not PDF, plain text or markdown
            ValueError: If the file cannot be parsed
        """
        kind = FileProcessor.normalize_content_type(content_type)

        if kind in FileProcessor.PDF_TYPES:
            return FileProcessor._extract_from_pdf(data).strip()
        if kind in FileProcessor.TEXT_TYPES:
            return FileProcessor._extract_from_text(data).strip()

        raise UnsupportedFileType(f"Unsupported file type: {kind or 'unknown'}")

    @staticmethod
    def _extract_from_pdf(data: bytes) -> str:
        """Extract text from PDF bytes."""
        text_parts = []

        try:
            pdf_reader = pypdf.PdfReader(io.BytesIO(data))
            for page in pdf_reader.pages:
                page_text = page.extract_text() or ""
                if page_text.strip():
                    text_parts.append(page_text)
        except Exception as e:
            raise ValueError(f"Error extracting text from PDF: {str(e)}") from e

        logger.debug("Extracted %d non-empty PDF pages", len(text_parts))
        return "\n\n".join(text_parts)

    @staticmethod
    def _extract_from_text(data: bytes) -> str:
        """Decode a plain text or markdown file."""
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            # Try with different encoding
            return data.decode("latin-1")
