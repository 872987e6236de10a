import asyncio
import base64
import logging
from io import BytesIO
from pathlib import Path
from typing import Optional
from urllib.parse import unquote_to_bytes, urlparse
from urllib.request import url2pathname

import cv2
import numpy as np
import requests
from PIL import Image as PILImage

from ..models.image_source import DecodedImage
from ..utils.mimetype import JPEG, PNG, validate_mimetype
from .blob_repository import BlobStore

logger = logging.getLogger(__name__)

ORIENTATION_TAG = 0x0112
EXIF_TRANSPOSE = {
    2: PILImage.Transpose.FLIP_LEFT_RIGHT,
    3: PILImage.Transpose.ROTATE_180,
    4: PILImage.Transpose.FLIP_TOP_BOTTOM,
    5: PILImage.Transpose.TRANSPOSE,
    6: PILImage.Transpose.ROTATE_270,
    7: PILImage.Transpose.TRANSVERSE,
    8: PILImage.Transpose.ROTATE_90,
}


class ImageRepository:
    """
    Handles byte I/O and codecs for image handles.

    • decode(): locator (path, file/http(s)/data/blob URL) → DecodedImage, or None on failure.
    • encode(): Pillow image → compressed PNG/JPEG bytes.
    """

    def __init__(self, blob_store: Optional[BlobStore] = None, timeout: Optional[float] = None):
        self.blob_store = blob_store if blob_store is not None else BlobStore()
        # Seconds for remote fetches; None waits indefinitely.
        self.timeout = timeout

    # ---------- decoding ----------
    async def decode(self, src: str, cross_origin: bool = False) -> Optional[DecodedImage]:
        """
        Load and decode *src* off the event loop. Failures are logged and
        reported as None; nothing is retried. Remote fetches honour
        self.timeout when one is set.
        """
        try:
            data = await asyncio.to_thread(self.read_bytes, src)
        except (OSError, ValueError, KeyError, requests.RequestException) as err:
            logger.warning(f"Could not read image {self._describe(src)}: {err}")
            return None

        pixels = await asyncio.to_thread(self.decode_bytes, data)
        if pixels is None:
            logger.warning(f"Could not decode image {self._describe(src)} ({len(data)} bytes)")
            return None

        height, width = pixels.shape[:2]
        return DecodedImage(
            width=width,
            height=height,
            pixels=pixels,
            src=src,
            cross_origin="anonymous" if cross_origin else None,
        )

    def read_bytes(self, src: str) -> bytes:
        parsed = urlparse(src)
        scheme = parsed.scheme.lower()

        if scheme in ("http", "https"):
            response = requests.get(src, timeout=self.timeout)
            response.raise_for_status()
            return response.content
        if scheme == "data":
            return self._parse_data_uri(src)
        if scheme == "blob":
            return self.blob_store.resolve(src)
        if scheme == "file":
            return Path(url2pathname(parsed.path)).read_bytes()
        return Path(src).read_bytes()

    @staticmethod
    def _parse_data_uri(src: str) -> bytes:
        header, sep, payload = src[5:].partition(",")
        if not sep:
            raise ValueError("Malformed data URI")
        if header.lower().endswith(";base64"):
            return base64.b64decode(payload)
        return unquote_to_bytes(payload)

    @staticmethod
    def decode_bytes(data: bytes) -> Optional[np.ndarray]:
        """
        Returns an (H, W, 4) uint8 RGBA array, or None if OpenCV cannot
        decode the bytes.
        """
        if not data:
            return None
        try:
            arr = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        except cv2.error:
            return None
        if arr is None:
            return None

        if arr.dtype == np.uint16:
            arr = (arr >> 8).astype(np.uint8)
        elif arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)

        if arr.ndim == 2:
            code = cv2.COLOR_GRAY2RGBA
        elif arr.shape[2] == 3:
            code = cv2.COLOR_BGR2RGBA
        elif arr.shape[2] == 4:
            code = cv2.COLOR_BGRA2RGBA
        else:
            return None
        rgba = np.ascontiguousarray(cv2.cvtColor(arr, code))

        # IMREAD_UNCHANGED skips EXIF rotation; apply it the way an <img> does.
        method = EXIF_TRANSPOSE.get(ImageRepository._exif_orientation(data))
        if method is not None:
            rgba = np.array(PILImage.fromarray(rgba).transpose(method), dtype=np.uint8)
        return rgba

    @staticmethod
    def _exif_orientation(data: bytes) -> int:
        try:
            with PILImage.open(BytesIO(data)) as image:
                return int(image.getexif().get(ORIENTATION_TAG, 1))
        except (OSError, SyntaxError, ValueError):
            # Header Pillow cannot parse: nothing to rotate.
            return 1

    # ---------- encoding ----------
    @staticmethod
    def encode(image: PILImage.Image, mimetype: str = PNG, quality: int = 92) -> bytes:
        """
        JPEG has no alpha: the image is composited over opaque black first,
        as a canvas does.
        """
        validate_mimetype(mimetype)
        buffer = BytesIO()
        if mimetype == JPEG:
            background = PILImage.new("RGBA", image.size, (0, 0, 0, 255))
            flattened = PILImage.alpha_composite(background, image.convert("RGBA")).convert("RGB")
            flattened.save(buffer, format="JPEG", quality=quality)
        else:
            image.save(buffer, format="PNG")
        return buffer.getvalue()

    @staticmethod
    def to_data_url(data: bytes, mimetype: str) -> str:
        return f"data:{mimetype};base64,{base64.b64encode(data).decode('utf-8')}"

    @staticmethod
    def _describe(src: str) -> str:
        # Data URIs can be megabytes long.
        return src if len(src) <= 80 else f"{src[:77]}..."
