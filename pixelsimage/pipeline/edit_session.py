"""
Edit Session
Binds one acquired image to one surface and chains the pipeline steps:
acquire → commit → adjust / filter / flip → apply → export or reset.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from ..models.color_adjustment import ColorAdjustment
from ..models.image_source import ImageSourceDescriptor
from ..models.pixel_buffer import PixelBuffer
from ..repositories.canvas import Surface, SurfaceContext
from ..repositories.filter_repository import FilterRegistry, default_registry
from ..repositories.image_repository import ImageRepository
from ..repositories.surface_repository import SurfaceRepository
from ..services.color_service import ColorAdjustmentService
from ..services.export_service import ExportObject
from ..services.filter_service import FilterService
from ..services.image_source_service import ImageInput, ImageSourceService
from ..services.surface_service import SurfaceService

logger = logging.getLogger(__name__)


class EditSession:
    """
    Holds the pristine source, the live surface and a working clone of its
    pixels. Colour and filter edits go to the clone and are then applied to
    the surface; flips go to the surface and the clone is re-read from it.
    """

    def __init__(self,
                 source: ImageSourceDescriptor,
                 surface: Surface,
                 *,
                 image_repository: Optional[ImageRepository] = None,
                 surface_service: Optional[SurfaceService] = None,
                 color_service: Optional[ColorAdjustmentService] = None,
                 filter_service: Optional[FilterService] = None):
        self.source = source
        self.surface = surface
        self.image_repository = image_repository or ImageRepository()
        self.surface_service = surface_service or SurfaceService()
        self.color_service = color_service or ColorAdjustmentService()
        self.filter_service = filter_service or FilterService(default_registry())

        committed = self.surface_service.commit(surface, source)
        self.context: SurfaceContext = committed.context
        self.image_data: PixelBuffer = committed.image_data

    @classmethod
    async def open(cls,
                   source: ImageInput,
                   mimetype: Optional[str] = None,
                   *,
                   surface: Optional[Surface] = None,
                   registry: Optional[FilterRegistry] = None,
                   image_repository: Optional[ImageRepository] = None,
                   surface_repository: Optional[SurfaceRepository] = None,
                   color_service: Optional[ColorAdjustmentService] = None) -> EditSession:
        image_repository = image_repository or ImageRepository()
        surface_repository = surface_repository or SurfaceRepository()

        source_service = ImageSourceService(image_repository, surface_repository)
        descriptor = await source_service.acquire(source, mimetype)
        if surface is None:
            surface = surface_repository.create_surface(descriptor.width, descriptor.height)

        return cls(
            descriptor,
            surface,
            image_repository=image_repository,
            surface_service=SurfaceService(surface_repository),
            color_service=color_service,
            filter_service=FilterService(registry if registry is not None else default_registry()),
        )

    @property
    def mimetype(self) -> str:
        return self.source.mimetype

    # ─── Edits ─────────────────────────────────────────────────────
    def adjust_colors(self, colors: ColorAdjustment) -> None:
        self.color_service.adjust(self.image_data, colors)
        self.apply()

    def apply_filters(self, names: Union[str, Sequence[str]]) -> None:
        """
        On UnknownFilterError the filters before the bad token stay in the
        working buffer and are still pushed to the surface.
        """
        try:
            self.filter_service.apply_filters(self.image_data, names)
        finally:
            self.apply()

    def flip_horizontal(self) -> None:
        self.surface_service.flip_horizontal(self.surface, self.context)
        self._reread()

    def flip_vertical(self) -> None:
        self.surface_service.flip_vertical(self.surface, self.context)
        self._reread()

    def _reread(self) -> None:
        self.image_data = self.context.get_image_data(0, 0, self.surface.width, self.surface.height)

    def apply(self) -> None:
        if (self.image_data.width, self.image_data.height) != (self.surface.width, self.surface.height):
            # A filter changed the geometry; the surface follows the buffer.
            self.surface.resize(self.image_data.width, self.image_data.height)
        self.surface_service.apply(self.image_data, self.context)

    def reset(self) -> None:
        if (self.surface.width, self.surface.height) != (self.source.width, self.source.height):
            self.surface.resize(self.source.width, self.source.height)
        self.surface_service.reset(self.source, self.context)
        self.image_data = self.source.data.copy()
        logger.info(f"Session reset to the acquired {self.source.width}x{self.source.height} image")

    def export(self) -> ExportObject:
        return ExportObject(self.surface, self.mimetype, image_repository=self.image_repository)
