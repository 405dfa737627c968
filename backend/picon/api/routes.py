"""API routes: service metadata, convert and resize uploads to PNG previews."""
import asyncio
import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile as StarletteUploadFile

from picon import __version__
from picon.api.messages import RequestLog
from picon.config import (
    HOST,
    MAX_UPLOAD_SIZE_BYTES,
    MAX_UPLOAD_SIZE_MB,
    PORT,
    PURGE_CRON,
    PURGE_DAYS,
    TMP_DIR,
)
from picon.conversion.models import (
    ConversionRequest,
    Operation,
    PreviewError,
    UploadTooLargeError,
)
from picon.conversion.service import get_conversion_service

logger = logging.getLogger("picon.api")
router = APIRouter(tags=["preview"])

PACKAGE_NAME = "picon"


async def _save_upload(file: UploadFile) -> Path:
    """Stream the upload into TMP_DIR under a random, extension-less name."""
    dest = TMP_DIR / uuid.uuid4().hex
    total = 0
    try:
        with open(dest, "wb") as f:
            while chunk := await file.read(1024 * 1024):
                total += len(chunk)
                if total > MAX_UPLOAD_SIZE_BYTES:
                    raise UploadTooLargeError(f"file too large (max {MAX_UPLOAD_SIZE_MB} MB)")
                f.write(chunk)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise
    logger.debug("Saved upload %s as %s (%s bytes)", file.filename, dest.name, total)
    return dest


async def _form_params(request: Request) -> dict[str, str]:
    """Text fields of the multipart form, in submission order."""
    form = await request.form()
    return {
        key: value
        for key, value in form.multi_items()
        if not isinstance(value, StarletteUploadFile)
    }


def _error(log: RequestLog, status_code: int, error: str) -> JSONResponse:
    log = log.with_(error=error)
    log.emit(logger)
    return JSONResponse(log.to_dict(), status_code=status_code)


async def _send_image(log: RequestLog, path: Path) -> Response:
    contents = await asyncio.to_thread(path.read_bytes)
    log.emit(logger)
    return Response(content=contents, media_type="image/png")


async def _handle(request: Request, file: UploadFile, operation: Operation) -> Response:
    fields = await _form_params(request)
    log = RequestLog(path=request.url.path, params=fields)
    try:
        src = await _save_upload(file)
        conversion = ConversionRequest.from_form(src, operation, fields)
        log = log.with_(params=conversion.params)
        dest = await get_conversion_service().render(conversion)
    except PreviewError as e:
        return _error(log, e.status_code, e.message)
    return await _send_image(log.with_(sent=dest.name), dest)


@router.get("/about")
def about(request: Request):
    """Service metadata, server config and purge settings."""
    RequestLog(path=request.url.path).emit(logger)
    return {
        "package": {"name": PACKAGE_NAME, "version": __version__},
        "config": {"host": HOST, "port": PORT},
        "purge": {"cron": PURGE_CRON, "days": PURGE_DAYS},
    }


@router.post("/convert", responses={200: {"content": {"image/png": {}}}})
async def convert(request: Request, file: UploadFile = File(...)):
    """Render a PDF, video or office document upload to a PNG preview."""
    return await _handle(request, file, Operation.CONVERT)


@router.post("/resize", responses={200: {"content": {"image/png": {}}}})
async def resize(request: Request, file: UploadFile = File(...)):
    """
    Letterbox an image into width x height (form fields `width`, `height`,
    `background_color`; defaults 100, 100, white).
    """
    return await _handle(request, file, Operation.RESIZE)


@router.post("/resize_width", responses={200: {"content": {"image/png": {}}}})
async def resize_width(request: Request, file: UploadFile = File(...)):
    """Resize an image to `width` (default 100) with `method` (resize, scale, sample, thumbnail)."""
    return await _handle(request, file, Operation.RESIZE_WIDTH)
