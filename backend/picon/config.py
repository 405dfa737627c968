"""Application configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")


def _csv(name: str, default: str) -> list[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


# Shared directory for uploads and rendered previews (override with env)
TMP_DIR = Path(os.getenv("TMP_DIR", str(BASE_DIR / "tmp")))
TMP_DIR.mkdir(parents=True, exist_ok=True)

# MIME allow-lists used to route /convert uploads
VIDEO_TYPES = _csv(
    "VIDEO_TYPES",
    "video/mp4,video/quicktime,video/webm,video/x-msvideo,video/x-matroska,"
    "video/x-m4v,video/mpeg,video/3gpp,video/x-flv",
)
OFFICE_TYPES = _csv(
    "OFFICE_TYPES",
    "application/msword,"
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
    "application/vnd.ms-excel,"
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet,"
    "application/vnd.ms-powerpoint,"
    "application/vnd.openxmlformats-officedocument.presentationml.presentation,"
    "application/vnd.oasis.opendocument.text,"
    "application/vnd.oasis.opendocument.spreadsheet,"
    "application/vnd.oasis.opendocument.presentation,"
    "application/rtf,text/rtf,application/CDFV2,application/x-cfb",
)

# External tools (binary name or absolute path)
CONVERT_CMD = os.getenv("CONVERT_CMD", "convert")
FFMPEG_CMD = os.getenv("FFMPEG_CMD", "ffmpeg")
LIBREOFFICE_CMD = os.getenv("LIBREOFFICE_CMD", "libreoffice")
# Seconds before an external tool is killed and the request fails
CONVERSION_TIMEOUT = float(os.getenv("CONVERSION_TIMEOUT", "120"))

# Limits
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "100"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024

# Purge: cron expression (5 fields, or 6 with leading seconds) and retention in days
PURGE_CRON = os.getenv("PURGE_CRON", "0 0 * * *")
PURGE_DAYS = float(os.getenv("PURGE_DAYS", "1"))
if PURGE_DAYS.is_integer():
    PURGE_DAYS = int(PURGE_DAYS)
PURGE_ENABLED = os.getenv("PURGE_ENABLED", "true").strip().lower() in ("1", "true", "yes", "on")

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
# CORS: comma-separated origins, "*" for any
CORS_ORIGINS = _csv("CORS_ORIGINS", "*")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("picon")
