from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
import numpy as np

from .pixel_buffer import PixelBuffer

if TYPE_CHECKING:
    from ..repositories.canvas import SurfaceContext


@dataclass(eq=False)
class DecodedImage:
    """
    Decoded image handle: RGBA pixels plus the locator it came from.
    Plays the part of a loaded <img> element.
    """
    width: int
    height: int
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.
    src: Optional[str] = None
    cross_origin: Optional[str] = None  # "anonymous" when fetched with cross-origin permission


@dataclass(frozen=True, eq=False)
class ImageSourceDescriptor:
    """
    Result of one acquisition. Keep it around to hold on to the pristine
    pixels; downstream edits work on clones of `data`.
    """
    width: int
    height: int
    mimetype: str
    data: PixelBuffer


@dataclass(eq=False)
class PixelsImageData:
    """Drawing context of a committed surface plus a freely mutable clone of its pixels."""
    context: SurfaceContext
    image_data: PixelBuffer
