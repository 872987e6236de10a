from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from dotenv import load_dotenv

from ..models.image_source import DecodedImage
from ..repositories.canvas import Surface
from ..repositories.image_repository import ImageRepository
from ..utils.mimetype import validate_mimetype

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

JPEG_QUALITY = int(os.getenv("PIXELS_JPEG_QUALITY", "92"))


class ExportObject:
    """
    Output views of a surface at a fixed mimetype.
    Nothing is cached: every call re-encodes the surface as it is right now.
    """

    def __init__(self,
                 surface: Optional[Surface],
                 mimetype: str,
                 *,
                 image_repository: Optional[ImageRepository] = None,
                 quality: int = JPEG_QUALITY):
        self.surface = surface
        self.mimetype = validate_mimetype(mimetype)
        self.image_repository = image_repository or ImageRepository()
        self.quality = quality

    def _encode(self) -> Optional[bytes]:
        if self.surface is None or self.surface.width == 0 or self.surface.height == 0:
            return None
        return self.image_repository.encode(self.surface.to_pil(), self.mimetype, self.quality)

    async def get_blob(self) -> Optional[bytes]:
        """
        Encoded bytes of the surface content.
        Best for large images: the compressed form keeps memory in check.
        For small images prefer get_data_url(), which skips the async hop.
        Returns None when no surface is bound.
        """
        if self.surface is None:
            return None
        # Snapshot on the loop thread; only the encoding runs in the worker.
        snapshot = self.surface.to_pil()
        if snapshot.width == 0 or snapshot.height == 0:
            return None
        return await asyncio.to_thread(self.image_repository.encode, snapshot, self.mimetype, self.quality)

    def get_data_url(self) -> Optional[str]:
        """
        Data URL of the surface content. Fast for small images (well under
        1 MB); avoid for very large ones, base64 inflates them by a third.
        """
        if self.surface is None:
            return None
        data = self._encode()
        if data is None:
            return "data:,"
        return self.image_repository.to_data_url(data, self.mimetype)

    def get_surface(self) -> Optional[Surface]:
        return self.surface

    async def get_image_from_data_url(self) -> Optional[DecodedImage]:
        """Image handle whose src is get_data_url() (small images)."""
        data_url = self.get_data_url()
        if data_url is None:
            return None
        return await self.image_repository.decode(data_url)

    async def get_image_from_blob(self) -> Optional[DecodedImage]:
        """
        Image handle whose src is an object URL for get_blob() (large images).
        The object URL is revoked as soon as the handle has decoded, so the
        returned handle's src no longer resolves.
        """
        blob = await self.get_blob()
        if not blob:
            return None
        store = self.image_repository.blob_store
        url = store.create_object_url(blob)
        try:
            return await self.image_repository.decode(url)
        finally:
            store.revoke_object_url(url)
            logger.debug(f"Revoked {url}")

    def get_inferred_mimetype(self) -> str:
        return self.mimetype
