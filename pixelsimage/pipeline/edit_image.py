from typing import Optional, Sequence, Union

from ..models.color_adjustment import ColorAdjustment
from ..repositories.filter_repository import FilterRegistry
from ..repositories.image_repository import ImageRepository
from ..repositories.surface_repository import SurfaceRepository
from ..services.export_service import ExportObject
from ..services.image_source_service import ImageInput
from .edit_session import EditSession


async def edit_image(
    source: ImageInput,
    *,
    colors: Optional[ColorAdjustment] = None,
    filters: Union[str, Sequence[str], None] = None,
    flip_horizontal: bool = False,
    flip_vertical: bool = False,
    mimetype: Optional[str] = None,
    registry: Optional[FilterRegistry] = None,
    image_repository: Optional[ImageRepository] = None,
    surface_repository: Optional[SurfaceRepository] = None,
) -> ExportObject:
    """
    One-shot edit of *source*:
        • acquire and commit it to a fresh surface
        • colour adjustments, then filters, then flips
    Returns the ExportObject of the edited surface.
    """
    session = await EditSession.open(
        source,
        mimetype,
        registry=registry,
        image_repository=image_repository,
        surface_repository=surface_repository,
    )

    if colors is not None:
        session.adjust_colors(colors)
    if filters:
        session.apply_filters(filters)
    if flip_horizontal:
        session.flip_horizontal()
    if flip_vertical:
        session.flip_vertical()

    return session.export()
