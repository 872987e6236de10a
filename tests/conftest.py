"""Shared fixtures: small deterministic buffers, encoded images and a stub decoder."""

from __future__ import annotations

from io import BytesIO
from typing import Dict, Optional

import numpy as np
import pytest
from PIL import Image as PILImage

from pixelsimage.models.image_source import DecodedImage, ImageSourceDescriptor
from pixelsimage.models.pixel_buffer import PixelBuffer
from pixelsimage.repositories.blob_repository import BlobStore


def make_pixels(width: int, height: int, *, opaque: bool = False, seed: int = 7) -> np.ndarray:
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    if opaque:
        pixels[..., 3] = 255
    return pixels


def encode_png(pixels: np.ndarray) -> bytes:
    buffer = BytesIO()
    PILImage.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def random_buffer() -> PixelBuffer:
    """5x6 buffer with random RGBA bytes (alpha included)."""
    return PixelBuffer.from_array(make_pixels(5, 6))


@pytest.fixture
def opaque_buffer() -> PixelBuffer:
    """4x3 buffer with random RGB and full alpha."""
    return PixelBuffer.from_array(make_pixels(4, 3, opaque=True, seed=11))


@pytest.fixture
def descriptor(opaque_buffer: PixelBuffer) -> ImageSourceDescriptor:
    return ImageSourceDescriptor(
        width=opaque_buffer.width,
        height=opaque_buffer.height,
        mimetype="image/png",
        data=opaque_buffer,
    )


@pytest.fixture
def png_file(tmp_path):
    """Write an opaque 4x3 PNG to disk; returns (path, pixels)."""
    pixels = make_pixels(4, 3, opaque=True, seed=3)
    path = tmp_path / "sample.png"
    path.write_bytes(encode_png(pixels))
    return path, pixels


class StubImageRepository:
    """Decoder that knows a fixed set of locators and fails on anything else."""

    def __init__(self, images: Optional[Dict[str, np.ndarray]] = None):
        self.images = images or {}
        self.blob_store = BlobStore()
        self.calls = []

    async def decode(self, src: str, cross_origin: bool = False) -> Optional[DecodedImage]:
        self.calls.append((src, cross_origin))
        pixels = self.images.get(src)
        if pixels is None:
            return None
        height, width = pixels.shape[:2]
        return DecodedImage(width, height, pixels.copy(), src=src,
                            cross_origin="anonymous" if cross_origin else None)
