from __future__ import annotations
import io

from PIL import Image, UnidentifiedImageError

from clauseguard.utils.logger import logger
from clauseguard.utils.types import ImageSource


def resize_image(image: ImageSource, max_width: int = 1200, quality: float = 0.9) -> ImageSource:
    """Scale a page so its longest side fits ``max_width`` and re-encode as JPEG.

    Undecodable input is returned untouched; the recognizer reports the real error.
    """
    try:
        if isinstance(image, (bytes, bytearray)):
            img = Image.open(io.BytesIO(image))
        else:
            img = Image.open(image)
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Could not decode image for resizing, using original: %s", e)
        return image
    ratio = min(max_width / img.width, max_width / img.height)
    size = (max(1, int(img.width * ratio)), max(1, int(img.height * ratio)))
    out = img.convert("RGB").resize(size, Image.LANCZOS)
    buf = io.BytesIO()
    out.save(buf, format="JPEG", quality=int(round(quality * 100)))
    return buf.getvalue()
