import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from PIL import Image

from .errors import ImageLoadFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RasterImage:
    """A decoded RGBA image with its natural size."""
    image: Image.Image
    source: str = ""

    @property
    def width(self):
        return self.image.width

    @property
    def height(self):
        return self.image.height

    @property
    def size(self):
        return self.image.size

    @classmethod
    def from_pil(cls, image, source=""):
        return cls(image.convert("RGBA"), source)


def read_image(path):
    """Decode an image file fully, raising ImageLoadFailure on any problem."""
    try:
        with Image.open(path) as img:
            img.load()
            return RasterImage.from_pil(img, str(path))
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageLoadFailure(str(path), exc) from exc


class AssetLoader:
    """Resolves levels to image files and decodes them off the event thread.

    load_image returns a Future; nothing here touches engine state, the
    engine decides on its own thread whether a finished load still matters.
    """

    def __init__(self, config, executor=None):
        self.config = config
        self._executor = executor
        self._owns_executor = executor is None

    @property
    def executor(self):
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="asset-loader")
        return self._executor

    def path_for_level(self, level):
        return os.path.join(self.config.asset_dir, self.config.asset_for_level(level))

    def load_image(self, level):
        path = self.path_for_level(level)
        logger.debug("loading %s for level %d", path, level)
        return self.executor.submit(read_image, path)

    def close(self):
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
