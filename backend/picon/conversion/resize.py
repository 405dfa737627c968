"""Resize images onto a fixed canvas (letterbox) or to a target width."""
import logging
import os
import uuid
from pathlib import Path
from typing import Tuple

from PIL import Image, ImageColor, UnidentifiedImageError

from picon.conversion.models import TransformError

logger = logging.getLogger("picon.resize")

Color = Tuple[int, int, int, int]

# Named resize methods accepted by /resize_width
RESIZE_METHODS = {
    "resize": Image.Resampling.LANCZOS,
    "scale": Image.Resampling.BOX,
    "sample": Image.Resampling.NEAREST,
    "thumbnail": Image.Resampling.BICUBIC,
}

MAX_DIMENSION = 10000


def parse_color(value: str) -> Color:
    """Parse a CSS/X11 color name or hex code to RGBA. 'none'/'transparent' give full transparency."""
    value = (value or "").strip()
    if value.lower() in ("none", "transparent"):
        return (0, 0, 0, 0)
    try:
        return ImageColor.getcolor(value, "RGBA")
    except ValueError:
        raise TransformError(f"unrecognized color: {value}")


def parse_dimension(value, name: str) -> int:
    try:
        size = int(str(value).strip())
    except (TypeError, ValueError):
        raise TransformError(f"invalid {name}: {value}")
    if not 1 <= size <= MAX_DIMENSION:
        raise TransformError(f"{name} must be between 1 and {MAX_DIMENSION}")
    return size


def letterbox(img: Image.Image, width: int, height: int, background: Color) -> Image.Image:
    """
    Produce an image of exactly (width, height): scale the source to fit inside
    (upscaling small sources too), center it and fill the remainder with background.
    """
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    w, h = img.size
    scale = min(width / w, height / h)
    new_w = max(1, min(width, int(round(w * scale))))
    new_h = max(1, min(height, int(round(h * scale))))
    resized = img.resize((new_w, new_h), Image.Resampling.LANCZOS)
    out = Image.new("RGBA", (width, height), background)
    out.alpha_composite(resized, ((width - new_w) // 2, (height - new_h) // 2))
    return out


def resize_to_width(img: Image.Image, width: int, method: str = "resize") -> Image.Image:
    """Scale to the given width keeping aspect ratio, with the named resampling method."""
    resample = RESIZE_METHODS.get(method)
    if resample is None:
        raise TransformError(f"unknown resize method: {method}")
    w, h = img.size
    new_h = max(1, int(round(h * width / w)))
    if img.mode not in ("RGB", "RGBA", "L", "LA"):
        img = img.convert("RGBA")
    out = img.resize((width, new_h), resample)
    if method == "thumbnail":
        out.info = {}
    return out


def save_png(img: Image.Image, dest: Path) -> Path:
    """Write to a sibling file, then move into place so readers never see a partial PNG."""
    part = dest.with_name(f"{dest.stem}.{uuid.uuid4().hex[:8]}.part")
    try:
        img.save(str(part), format="PNG")
        os.replace(part, dest)
    finally:
        part.unlink(missing_ok=True)
    return dest


def _open(src: Path) -> Image.Image:
    try:
        img = Image.open(src)
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise TransformError(f"cannot read image: {e}")
    return img


def resize_file(src: Path, dest: Path, width, height, background_color: str) -> Path:
    """Letterbox src into a width x height PNG at dest."""
    tw = parse_dimension(width, "width")
    th = parse_dimension(height, "height")
    background = parse_color(background_color)
    with _open(src) as img:
        try:
            out = letterbox(img, tw, th, background)
        except (ValueError, OSError) as e:
            raise TransformError(f"resize failed: {e}")
    save_png(out, dest)
    logger.info("Resized %s -> %s (%sx%s)", src.name, dest.name, tw, th)
    return dest


def resize_width_file(src: Path, dest: Path, width, method: str) -> Path:
    tw = parse_dimension(width, "width")
    with _open(src) as img:
        try:
            out = resize_to_width(img, tw, method)
        except (ValueError, OSError) as e:
            raise TransformError(f"resize failed: {e}")
    save_png(out, dest)
    logger.info("Resized %s -> %s (width=%s, method=%s)", src.name, dest.name, tw, method)
    return dest
