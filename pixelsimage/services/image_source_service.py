from __future__ import annotations

import logging
from typing import Optional, Union

from ..exceptions import CorsDecodeError, DecodeError, NoRenderingContextError
from ..models.image_source import DecodedImage, ImageSourceDescriptor
from ..models.pixel_buffer import PixelBuffer
from ..repositories.canvas import Surface
from ..repositories.image_repository import ImageRepository
from ..repositories.surface_repository import SurfaceRepository
from ..utils.mimetype import PNG, infer_mimetype, validate_mimetype

logger = logging.getLogger(__name__)

ImageInput = Union[str, DecodedImage, Surface]


class ImageSourceService:
    """
    Turns a locator, a decoded image or a surface into an ImageSourceDescriptor.
    """

    def __init__(self,
                 image_repository: Optional[ImageRepository] = None,
                 surface_repository: Optional[SurfaceRepository] = None):
        self.image_repository = image_repository or ImageRepository()
        self.surface_repository = surface_repository or SurfaceRepository()

    async def acquire(self, source: ImageInput, mimetype: Optional[str] = None) -> ImageSourceDescriptor:
        """
        Suspends while *source* loads and decodes. Awaiting tasks can be
        cancelled but the underlying load always runs to completion.

        Raises:
            CorsDecodeError: an "http..." locator failed to load.
            DecodeError: any other locator failed to load.
            NoRenderingContextError: a surface gave no 2D context.
            NotInGraphicalEnvironmentError: a scratch surface was needed in a headless process.
        """
        if mimetype is not None:
            validate_mimetype(mimetype)

        if isinstance(source, str):
            element = await self.image_repository.decode(source, cross_origin=True)
            if element is None and source.startswith("http"):
                logger.warning(f"Remote image failed to load, likely blocked by CORS: {source}")
                raise CorsDecodeError(source)
            if element is None:
                raise DecodeError("PixelsImage: Unknown error while loading the image.")
            mimetype = mimetype or infer_mimetype(source)
        elif isinstance(source, DecodedImage):
            element = source
            mimetype = mimetype or infer_mimetype(source.src)
        elif isinstance(source, Surface):
            element = source
            mimetype = mimetype or PNG
        else:
            raise TypeError(f"Unsupported image source: {type(source).__name__}")

        data = self._read_pixels(element)
        logger.info(f"Acquired {element.width}x{element.height} image ({mimetype})")
        return ImageSourceDescriptor(
            width=element.width,
            height=element.height,
            mimetype=mimetype,
            data=data,
        )

    def _read_pixels(self, element: Union[DecodedImage, Surface]) -> PixelBuffer:
        if isinstance(element, Surface):
            context = element.get_context("2d")
            if context is None:
                raise NoRenderingContextError("PixelsImage: Error obtaining the canvas context")
            return context.get_image_data(0, 0, element.width, element.height)

        # Decoded handles are painted onto a scratch surface via a pattern fill.
        scratch = self.surface_repository.create_surface(element.width, element.height)
        context = scratch.get_context("2d")
        if context is None:
            raise NoRenderingContextError("PixelsImage: Error obtaining the canvas context")
        context.fill_style = context.create_pattern(element, "no-repeat")
        context.fill_rect(0, 0, scratch.width, scratch.height)
        return context.get_image_data(0, 0, scratch.width, scratch.height)
