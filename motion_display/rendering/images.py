"""
Image decoding for image elements.

Files are decoded with OpenCV into RGBA numpy arrays on a background
executor so a slow disk never stalls the tick thread. Decoded pixels are
attached to the element through the scene, under its lock.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import cv2
import numpy as np

from motion_display.core.element import ElementKind
from motion_display.core.scene import Scene

logger = logging.getLogger(__name__)


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Convert an OpenCV image (gray, BGR or BGRA) to contiguous RGBA uint8."""
    if image.dtype != np.uint8:
        # 16-bit PNG/TIFF: scale down to 8 bits
        image = cv2.convertScaleAbs(image, alpha=255.0 / max(1, int(image.max())))

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    channels = image.shape[2]
    if channels == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    raise ValueError(f"Unsupported channel count: {channels}")


def load_rgba(path: str) -> np.ndarray:
    """
    Decode an image file into an (h, w, 4) RGBA array.

    Raises:
        FileNotFoundError: If OpenCV cannot read the file
    """
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise FileNotFoundError(f"Cannot read image: {path}")
    return to_rgba(image)


class ImageLoader:
    """
    Loads image files for image elements in the background.

    Args:
        scene: Scene whose image elements receive the decoded pixels
        max_workers: Decoder threads
    """

    def __init__(self, scene: Scene, max_workers: int = 1):
        self.scene = scene
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="image-loader")

    def load(self, element_id: str, path: Optional[str] = None) -> Future:
        """
        Decode `path` (or the element's own path) and attach it to the element.

        The returned future resolves to the RGBA array, or raises the decode
        error. If the element was removed meanwhile the pixels are dropped.
        """
        element = self.scene.get(element_id)
        if element.kind != ElementKind.IMAGE:
            raise ValueError(f"Element '{element.name}' is not an image")
        path = path or element.payload.path
        if not path:
            raise ValueError(f"Element '{element.name}' has no image path")

        future = self._executor.submit(self._decode_and_attach, element_id, path)
        future.add_done_callback(self._on_done)
        return future

    def _decode_and_attach(self, element_id: str, path: str) -> np.ndarray:
        rgba = load_rgba(path)
        attached = self.scene.set_image(element_id, rgba, path)
        if attached:
            logger.info(f"Loaded image {path} ({rgba.shape[1]}x{rgba.shape[0]})")
        else:
            logger.debug(f"Element {element_id} removed before {path} finished loading")
        return rgba

    def _on_done(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Image load failed: {error}")

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
