"""
截图存储
Saves step screenshots as PNG files named by a random id.
"""
import logging
import os
import uuid
from typing import Optional

from PIL import Image

from phone_pilot.device.base import ImageStore

logger = logging.getLogger(__name__)


class ImageStorage(ImageStore):
    """PNG files in one directory; writes go through a temp file and a rename."""

    def __init__(self, directory: str):
        self.directory = directory

    def save(self, image: Image.Image) -> Optional[str]:
        name = f"{uuid.uuid4()}.png"
        path = os.path.join(self.directory, name)
        tmp_path = os.path.join(self.directory, f".{name}.tmp")
        try:
            os.makedirs(self.directory, exist_ok=True)
            image.save(tmp_path, format="PNG")
            os.replace(tmp_path, path)
        except (OSError, ValueError) as e:
            logger.warning("Could not save screenshot: %s", e)
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            return None
        return path

    def load_image(self, path: str) -> Optional[Image.Image]:
        """加载图片"""
        if not os.path.exists(path):
            return None
        try:
            with Image.open(path) as image:
                image.load()
                return image.copy()
        except (OSError, ValueError) as e:
            logger.warning("Could not load %s: %s", path, e)
            return None

    def delete_image(self, path: str) -> bool:
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False

    def _files(self) -> list:
        if not os.path.isdir(self.directory):
            return []
        return [
            os.path.join(self.directory, name)
            for name in os.listdir(self.directory)
            if name.endswith(".png")
        ]

    def total_size(self) -> int:
        """Bytes used by stored screenshots."""
        return sum(os.path.getsize(path) for path in self._files())

    def delete_all(self) -> int:
        count = 0
        for path in self._files():
            if self.delete_image(path):
                count += 1
        return count
