"""Content-based file type detection (libmagic), not by extension."""
import logging
from pathlib import Path
from typing import Optional

import magic

from picon.config import OFFICE_TYPES, VIDEO_TYPES
from picon.conversion.models import SourceKind

logger = logging.getLogger("picon.sniff")

PDF_TYPE = "application/pdf"


def detect_type(path: Path) -> str:
    """Return the MIME type of the file content. Raises OSError if unreadable."""
    mime = magic.from_file(str(path), mime=True)
    logger.debug("Detected MIME type %s for %s", mime, path.name)
    return mime


def is_pdf(mime: str) -> bool:
    return mime == PDF_TYPE


def is_video(mime: str) -> bool:
    return mime in VIDEO_TYPES


def is_office_document(mime: str) -> bool:
    return mime in OFFICE_TYPES


def classify(path: Path) -> Optional[SourceKind]:
    """Sniff once and map to a converter. PDF wins over the allow-lists."""
    mime = detect_type(path)
    if is_pdf(mime):
        return SourceKind.PDF
    if is_video(mime):
        return SourceKind.VIDEO
    if is_office_document(mime):
        return SourceKind.OFFICE
    logger.info("No converter for %s (%s)", path.name, mime)
    return None
