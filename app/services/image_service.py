import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

COMPRESSIBLE_EXTENSIONS = {".jpg", ".jpeg", ".png"}


@dataclass(frozen=True)
class ImageConfig:
    max_width: int
    max_height: int
    quality: int  # JPEG only


AVATAR_IMAGE = ImageConfig(max_width=800, max_height=800, quality=85)
VISA_DOCUMENT_IMAGE = ImageConfig(max_width=1200, max_height=1200, quality=80)


def compress_image(data: bytes, extension: str, config: ImageConfig) -> bytes:
    """
    Shrink an image to fit ``config`` and re-encode it.

    Formats other than JPEG/PNG, and files Pillow cannot read, come back
    unchanged.
    """
    extension = extension.lower()
    if extension not in COMPRESSIBLE_EXTENSIONS:
        return data

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.width > config.max_width or img.height > config.max_height:
                img.thumbnail((config.max_width, config.max_height), Image.LANCZOS)

            out = io.BytesIO()
            if extension == ".png":
                img.save(out, format="PNG", optimize=True)
            else:
                if img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")
                img.save(out, format="JPEG", quality=config.quality, optimize=True)
            return out.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Image compression skipped: %s", e)
        return data
