from __future__ import annotations

import logging
import os
from typing import Optional

import numpy as np
from dotenv import load_dotenv

from ..models.color_adjustment import ColorAdjustment
from ..models.pixel_buffer import PixelBuffer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

LUMINANCE_R = 0.3086
LUMINANCE_G = 0.6094
LUMINANCE_B = 0.0820


def saturation_matrix(saturation: float) -> np.ndarray:
    """
    Luminance-weighted saturation matrix. 0 gives the identity,
    -1 collapses every pixel to its grey value.
    """
    factor = saturation + 1
    perc = -saturation
    return np.array([
        [perc * LUMINANCE_R + factor, perc * LUMINANCE_G,          perc * LUMINANCE_B],
        [perc * LUMINANCE_R,          perc * LUMINANCE_G + factor, perc * LUMINANCE_B],
        [perc * LUMINANCE_R,          perc * LUMINANCE_G,          perc * LUMINANCE_B + factor],
    ], dtype=np.float64)


def _to_byte_range(values: np.ndarray) -> np.ndarray:
    """Round half-to-even and saturate, like a clamped 8-bit store."""
    return np.clip(np.rint(values), 0, 255)


class ColorAdjustmentService:
    """
    Brightness → contrast → saturation on the RGB channels of a buffer.
    Alpha is never touched.

    Only the contrast stage clamps. With clamp_each_stage=False (default)
    brightness and saturation may leave [0, 255] in the float pipeline and
    are saturated once when written back. With clamp_each_stage=True every
    stage is rounded and saturated before the next one reads it.
    """

    def __init__(self, clamp_each_stage: Optional[bool] = None):
        if clamp_each_stage is None:
            clamp_each_stage = os.getenv("PIXELS_CLAMP_EACH_STAGE", "false").strip().lower() in ("1", "true", "yes", "on")
        self.clamp_each_stage = clamp_each_stage

    def _stage(self, rgb: np.ndarray) -> np.ndarray:
        return _to_byte_range(rgb) if self.clamp_each_stage else rgb

    def adjust(self, buffer: PixelBuffer, colors: ColorAdjustment) -> None:
        """Mutates *buffer* in place."""
        if colors.is_noop() or buffer.pixels.size == 0:
            return

        rgb = buffer.pixels[..., :3].astype(np.float64)
        stages = []

        if colors.brightness:
            rgb *= colors.brightness + 1
            rgb = self._stage(rgb)
            stages.append(f"brightness={colors.brightness:+.3f}")

        if colors.contrast:
            factor = colors.contrast + 1
            rgb = np.clip(factor * (rgb - 128) + 128, 0, 255)
            rgb = self._stage(rgb)
            stages.append(f"contrast={colors.contrast:+.3f}")

        if colors.saturation:
            # Row i of the matrix produces channel i from the pre-saturation R, G, B.
            rgb = rgb @ saturation_matrix(colors.saturation).T
            rgb = self._stage(rgb)
            stages.append(f"saturation={colors.saturation:+.3f}")

        buffer.pixels[..., :3] = _to_byte_range(rgb).astype(np.uint8)
        logger.debug(f"Adjusted {buffer.width}x{buffer.height} buffer: {', '.join(stages)}")
