"""
pixels-image: normalise images into RGBA pixel buffers, adjust and filter
them, and export the result from a render surface.
"""

from .exceptions import (
    CorsDecodeError,
    DecodeError,
    NoRenderingContextError,
    NotInGraphicalEnvironmentError,
    PixelsImageError,
    UnknownFilterError,
)
from .models.color_adjustment import ColorAdjustment
from .models.image_source import DecodedImage, ImageSourceDescriptor, PixelsImageData
from .models.pixel_buffer import PixelBuffer
from .pipeline.edit_image import edit_image
from .pipeline.edit_session import EditSession
from .repositories.canvas import Surface, SurfaceContext
from .repositories.filter_repository import FilterRegistry, default_registry
from .services.export_service import ExportObject

__all__ = [
    "ColorAdjustment",
    "CorsDecodeError",
    "DecodeError",
    "DecodedImage",
    "EditSession",
    "ExportObject",
    "FilterRegistry",
    "ImageSourceDescriptor",
    "NoRenderingContextError",
    "NotInGraphicalEnvironmentError",
    "PixelBuffer",
    "PixelsImageData",
    "PixelsImageError",
    "Surface",
    "SurfaceContext",
    "UnknownFilterError",
    "default_registry",
    "edit_image",
]
