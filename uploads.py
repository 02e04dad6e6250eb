import io
import logging
import os
import uuid
from typing import Optional

from PIL import Image

from errors import UnsupportedMediaType

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./public/uploads")
PHOTO_WIDTH = int(os.getenv("PHOTO_WIDTH", 300))

FILETYPE_REJECTED = "That filetype isn't allowed!"


class PhotoIntake:
    """Checks, renames, resizes and stores one uploaded photo."""

    def __init__(self, upload_dir: str = UPLOAD_DIR, width: int = PHOTO_WIDTH):
        self.upload_dir = upload_dir
        self.width = width

    def check_type(self, content_type: Optional[str]) -> str:
        if not content_type or not content_type.startswith("image/"):
            logger.warning("Rejected upload with content type %r", content_type)
            raise UnsupportedMediaType(FILETYPE_REJECTED)
        media_type = content_type.split(";", 1)[0].strip()
        return media_type.split("/", 1)[1]

    def process(self, content: Optional[bytes], content_type: Optional[str]) -> Optional[str]:
        """Store the photo and return its new filename, or None if nothing was uploaded."""
        if not content:
            return None
        extension = self.check_type(content_type)
        filename = f"{uuid.uuid4()}.{extension}"

        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except Exception:
            raise UnsupportedMediaType("Invalid image file.")

        # keep aspect ratio, height follows the fixed width
        height = max(1, round(image.height * self.width / image.width))
        resized = image.resize((self.width, height))

        os.makedirs(self.upload_dir, exist_ok=True)
        path = os.path.join(self.upload_dir, filename)
        resized.save(path, format=image.format)
        logger.info("Stored photo %s (%dx%d)", filename, self.width, height)
        return filename
