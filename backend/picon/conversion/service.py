"""Preview conversion service: external tool converters and cached resizes."""
import asyncio
import logging
import subprocess
from pathlib import Path
from typing import Awaitable, Callable, Optional

from picon.config import (
    CONVERSION_TIMEOUT,
    CONVERT_CMD,
    FFMPEG_CMD,
    LIBREOFFICE_CMD,
    TMP_DIR,
)
from picon.conversion.models import (
    ConversionError,
    ConversionRequest,
    ConversionTimeout,
    InvalidFileError,
    Operation,
    SourceKind,
)
from picon.conversion.naming import compute_name
from picon.conversion.resize import resize_file, resize_width_file
from picon.conversion.sniff import classify

logger = logging.getLogger("picon.service")


class InflightRegistry:
    """Collapses concurrent work on the same key into a single task."""

    def __init__(self):
        self._pending: dict[str, asyncio.Task] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    async def run(self, key: str, factory: Callable[[], Awaitable[Path]]) -> Path:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task

            def _forget(done: asyncio.Task) -> None:
                if self._pending.get(key) is done:
                    del self._pending[key]
                # Mark the failure retrieved even when every waiter was cancelled
                if not done.cancelled() and done.exception() is not None:
                    logger.debug("In-flight work for %s failed: %s", key, done.exception())

            task.add_done_callback(_forget)
        else:
            logger.debug("Joining in-flight work for %s", key)
        # Shield so one cancelled waiter does not cancel the shared task
        return await asyncio.shield(task)


class ConversionService:
    """Turns uploads into PNG previews in the shared temporary directory."""

    def __init__(self, out_dir: Optional[Path] = None, timeout: Optional[float] = None):
        self.out_dir = Path(out_dir or TMP_DIR)
        self.timeout = CONVERSION_TIMEOUT if timeout is None else timeout
        self._inflight = InflightRegistry()
        logger.info("ConversionService initialized (out_dir=%s, timeout=%ss)", self.out_dir, self.timeout)

    def _run_tool(self, cmd: list[str], tool: str) -> subprocess.CompletedProcess:
        """Run an external tool from an argument list (never through a shell)."""
        logger.debug("Running %s", cmd)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            logger.error("%s not found. Install it or set its *_CMD variable.", tool)
            raise ConversionError(f"{tool} not installed")
        except subprocess.TimeoutExpired:
            logger.error("%s timed out after %ss", tool, self.timeout)
            raise ConversionTimeout(f"{tool} timed out after {self.timeout:g}s")
        if result.returncode != 0:
            message = f"{tool} failed (exit {result.returncode})"
            detail = (result.stderr or result.stdout or "").strip()
            raise ConversionError(f"{message}: {detail}" if detail else message)
        return result

    def convert_pdf(self, src: Path) -> Path:
        """
        Rasterize a PDF with ImageMagick. Multi-page documents come out as
        <name>-0.png, <name>-1.png, ...; whichever of the two candidate names
        exists is the preview.
        """
        dest = self.out_dir / f"{src.name}.png"
        self._run_tool([CONVERT_CMD, str(src), str(dest)], "ImageMagick")
        for candidate in (dest, dest.with_name(f"{dest.stem}-0.png")):
            if candidate.is_file():
                logger.info("Converted PDF %s -> %s", src.name, candidate.name)
                return candidate
        raise ConversionError(f"ImageMagick produced no output for {src.name}")

    def convert_video(self, src: Path) -> Path:
        """Grab the frame at timestamp 0."""
        dest = self.out_dir / f"{src.name}.png"
        cmd = [
            FFMPEG_CMD, "-y",
            "-ss", "0",
            "-i", str(src),
            "-frames:v", "1",
            str(dest),
        ]
        self._run_tool(cmd, "ffmpeg")
        if not dest.is_file():
            raise ConversionError(f"ffmpeg produced no frame for {src.name}")
        logger.info("Converted video %s -> %s", src.name, dest.name)
        return dest

    def convert_office_document(self, src: Path) -> Path:
        # LibreOffice names the output after the input stem
        dest = self.out_dir / f"{src.stem}.png"
        cmd = [
            LIBREOFFICE_CMD,
            "--headless",
            "--nologo",
            "--nofirststartwizard",
            "--convert-to", "png",
            "--outdir", str(self.out_dir),
            str(src),
        ]
        self._run_tool(cmd, "LibreOffice")
        if not dest.is_file():
            raise ConversionError(f"LibreOffice produced no output for {src.name}")
        logger.info("Converted document %s -> %s", src.name, dest.name)
        return dest

    def convert(self, src: Path) -> Path:
        """Sniff the upload and dispatch to the matching converter."""
        kind = classify(src)
        if kind is None:
            raise InvalidFileError()
        converters = {
            SourceKind.PDF: self.convert_pdf,
            SourceKind.VIDEO: self.convert_video,
            SourceKind.OFFICE: self.convert_office_document,
        }
        return converters[kind](src)

    def output_path(self, request: ConversionRequest) -> Path:
        return self.out_dir / compute_name(request.source, request.params)

    def _transform(self, request: ConversionRequest, dest: Path) -> Path:
        if dest.is_file():
            logger.info("Cache hit %s", dest.name)
            return dest
        params = request.params
        if request.operation == Operation.RESIZE:
            return resize_file(
                request.source, dest,
                params["width"], params["height"], params["background_color"],
            )
        if request.operation == Operation.RESIZE_WIDTH:
            return resize_width_file(request.source, dest, params["width"], params["method"])
        raise ValueError(f"Not a resize operation: {request.operation}")

    async def render(self, request: ConversionRequest) -> Path:
        """Produce the preview for a request without blocking the event loop."""
        if request.operation == Operation.CONVERT:
            return await asyncio.to_thread(self.convert, request.source)
        dest = await asyncio.to_thread(self.output_path, request)
        return await self._inflight.run(
            dest.name,
            lambda: asyncio.to_thread(self._transform, request, dest),
        )


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service
