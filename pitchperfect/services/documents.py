"""Pitch details from uploaded documents through the ``parse-document`` edge function."""

from pathlib import PurePath

from pitchperfect.core.config import get_settings
from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_services import DocumentParseResult
from pitchperfect.services.edge_functions import EdgeFunctionError, invoke_function

logger = get_logger(__name__)

PARSE_FUNCTION = "parse-document"

SUPPORTED_EXTENSIONS = {
    ".txt", ".md", ".markdown",
    ".pdf",
    ".doc", ".docx",
    ".ppt", ".pptx",
    ".json", ".yaml", ".yml",
    ".csv",
}

SUPPORTED_MIME_TYPES = {
    "text/plain",
    "text/markdown",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/json",
    "text/csv",
    "application/x-yaml",
    "text/yaml",
}


def is_file_supported(filename: str, content_type: str | None = None) -> bool:
    extension = PurePath(filename).suffix.lower()
    return extension in SUPPORTED_EXTENSIONS or (content_type or "") in SUPPORTED_MIME_TYPES


def validate_document(
    filename: str, size: int, content_type: str | None = None
) -> tuple[bool, str | None]:
    """
    Validate an upload before sending it anywhere.

    Returns:
        Tuple of (is_valid, error_message)
    """
    max_bytes = get_settings().MAX_DOCUMENT_BYTES
    if size > max_bytes:
        return False, f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB"

    if not is_file_supported(filename, content_type):
        return False, "Unsupported file type. Please upload a text, PDF, Word, or PowerPoint file."

    return True, None


async def parse_document(
    filename: str, content: bytes, content_type: str | None = None
) -> DocumentParseResult:
    """
    Extract pitch details (name, problem, solution, audience) from a document.

    Invalid uploads are rejected locally without a remote call. Never raises.
    """
    is_valid, error = validate_document(filename, len(content), content_type)
    if not is_valid:
        return DocumentParseResult(success=False, error=error, filename=filename)

    try:
        body = await invoke_function(
            PARSE_FUNCTION,
            files={"file": (filename, content, content_type or "application/octet-stream")},
        )
        result = DocumentParseResult.model_validate(body)
    except EdgeFunctionError as e:
        logger.warning(f"Document parse failed for {filename}: {e}")
        return DocumentParseResult(success=False, error=str(e), filename=filename)
    except ValueError as e:
        logger.warning(f"Unexpected parse response for {filename}: {e}")
        return DocumentParseResult(
            success=False, error="Failed to parse document", filename=filename
        )

    logger.info(f"Parsed document {filename} ({len(content)} bytes)")
    return result
