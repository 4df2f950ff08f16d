"""
Cover image re-encoding (Pillow).
"""
import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


@dataclass
class OptimizeResult:
    data: bytes
    original_size: int
    optimized: bool

    @property
    def saved_bytes(self) -> int:
        return self.original_size - len(self.data) if self.optimized else 0


def resize_to_bounds(data: bytes, max_width: int, max_height: int, quality: int) -> bytes:
    """
    Decode, fit inside max_width x max_height and re-encode as JPEG.

    Aspect ratio is preserved and images are never enlarged.
    """
    with Image.open(io.BytesIO(data)) as im:
        if im.mode != "RGB":
            im = im.convert("RGB")
        im.thumbnail((max_width, max_height), Image.LANCZOS)
        out = io.BytesIO()
        im.save(out, format="JPEG", quality=quality, optimize=True)
        return out.getvalue()


def optimize_cover(
    data: bytes,
    threshold_bytes: int,
    max_width: int,
    max_height: int,
    quality: int,
) -> OptimizeResult:
    """
    Shrink a cover above ``threshold_bytes``.

    Payloads at or below the threshold are kept untouched. When decoding or
    encoding fails the original bytes are kept and a warning is logged.
    """
    if len(data) <= threshold_bytes:
        return OptimizeResult(data=data, original_size=len(data), optimized=False)

    try:
        optimized = resize_to_bounds(data, max_width, max_height, quality)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"Optimization failed, using original: {e}")
        return OptimizeResult(data=data, original_size=len(data), optimized=False)

    return OptimizeResult(data=optimized, original_size=len(data), optimized=True)
