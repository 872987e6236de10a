import logging
from typing import Optional

from ..exceptions import NoRenderingContextError
from ..models.image_source import ImageSourceDescriptor, PixelsImageData
from ..models.pixel_buffer import PixelBuffer
from ..repositories.canvas import Surface, SurfaceContext
from ..repositories.surface_repository import SurfaceRepository

logger = logging.getLogger(__name__)


class SurfaceService:
    """
    Moves pixels between buffers and a render surface.
    Surface and context are always passed in explicitly.
    """

    def __init__(self, surface_repository: Optional[SurfaceRepository] = None):
        self.surface_repository = surface_repository or SurfaceRepository()

    def commit(self, surface: Surface, source: ImageSourceDescriptor) -> PixelsImageData:
        """
        Size *surface* to the source, draw its pixels, and hand back the
        context plus an independent clone of what was drawn.
        """
        surface.resize(source.width, source.height)
        context = surface.get_context("2d", will_read_frequently=True)
        if context is None:
            raise NoRenderingContextError("PixelsImage: Error obtaining the canvas context")
        context.clear_rect(0, 0, surface.width, surface.height)
        context.put_image_data(source.data, 0, 0)

        cloned = source.data.copy()
        logger.debug(f"Committed {source.width}x{source.height} image to {surface!r}")
        return PixelsImageData(context=context, image_data=cloned)

    @staticmethod
    def apply(image_data: PixelBuffer, context: SurfaceContext) -> None:
        context.put_image_data(image_data, 0, 0)

    def reset(self, source: ImageSourceDescriptor, context: SurfaceContext) -> None:
        """Back to the pixels as they were acquired."""
        self.apply(source.data, context)

    # ─── Geometric transforms (surface state only) ─────────────────
    def flip_horizontal(self, surface: Surface, context: SurfaceContext) -> None:
        self._mirror(surface, context, sx=-1, sy=1)

    def flip_vertical(self, surface: Surface, context: SurfaceContext) -> None:
        self._mirror(surface, context, sx=1, sy=-1)

    def _mirror(self, surface: Surface, context: SurfaceContext, sx: int, sy: int) -> None:
        scratch = self.surface_repository.create_surface(surface.width, surface.height)
        scratch_context = scratch.get_context("2d")
        if scratch_context is None:
            raise NoRenderingContextError("PixelsImage: Error obtaining the canvas context")
        scratch_context.scale(sx, sy)
        scratch_context.draw_image(
            surface,
            -surface.width if sx < 0 else 0,
            -surface.height if sy < 0 else 0,
        )
        context.clear_rect(0, 0, surface.width, surface.height)
        context.draw_image(scratch, 0, 0)
