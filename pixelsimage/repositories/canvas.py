"""
In-memory render surface backed by Pillow.

Surface is the mutable 2D pixel grid, SurfaceContext its drawing context.
Only the primitives the pixel pipeline needs are provided: resize, clear,
fill (colour or pattern), draw another surface or image, and raw pixel
put/get. Transforms are axis-aligned (scale + translate), which covers the
mirroring used by the flip operations.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image as PILImage
from PIL import ImageOps

from ..models.image_source import DecodedImage
from ..models.pixel_buffer import PixelBuffer

TRANSPARENT = (0, 0, 0, 0)
REPETITIONS = ("repeat", "repeat-x", "repeat-y", "no-repeat")


def _blank(width: int, height: int) -> PILImage.Image:
    if width < 0 or height < 0:
        raise ValueError(f"Invalid surface size {width}x{height}")
    return PILImage.new("RGBA", (int(width), int(height)), TRANSPARENT)


def _rgba_image(pixels: np.ndarray) -> PILImage.Image:
    height, width = pixels.shape[:2]
    if width == 0 or height == 0:
        return _blank(width, height)
    return PILImage.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))


def _clip(size: Tuple[int, int], left: int, top: int,
          bounds: Tuple[int, int]) -> Optional[Tuple[Tuple[int, int, int, int], Tuple[int, int]]]:
    """
    Intersect an image of *size* placed at (left, top) with a destination of
    *bounds*. Returns (source crop box, destination offset) or None.
    """
    x0, y0 = max(left, 0), max(top, 0)
    x1, y1 = min(left + size[0], bounds[0]), min(top + size[1], bounds[1])
    if x0 >= x1 or y0 >= y1:
        return None
    return (x0 - left, y0 - top, x1 - left, y1 - top), (x0, y0)


@dataclass
class SurfacePattern:
    """Fill style that paints an image, tiled according to *repetition*."""
    image: PILImage.Image
    repetition: str = "repeat"


class Surface:
    """
    RGBA pixel grid. Changing its size reallocates and clears it, and resets
    the drawing state of its context.
    """

    def __init__(self, width: int = 300, height: int = 150):
        self._image = _blank(width, height)
        self._context: Optional[SurfaceContext] = None

    @property
    def width(self) -> int:
        return self._image.width

    @width.setter
    def width(self, value: int) -> None:
        self.resize(value, self.height)

    @property
    def height(self) -> int:
        return self._image.height

    @height.setter
    def height(self, value: int) -> None:
        self.resize(self.width, value)

    @property
    def image(self) -> PILImage.Image:
        """Live backing image. Use to_pil() for a snapshot."""
        return self._image

    def resize(self, width: int, height: int) -> None:
        self._image = _blank(width, height)
        if self._context is not None:
            self._context.reset_state()

    def get_context(self, kind: str = "2d", *, will_read_frequently: bool = False) -> Optional[SurfaceContext]:
        """
        Return the surface's 2D context (always the same object), or None
        for any other kind of context.
        """
        if kind != "2d":
            return None
        if self._context is None:
            self._context = SurfaceContext(self, will_read_frequently=will_read_frequently)
        return self._context

    def to_pil(self) -> PILImage.Image:
        return self._image.copy()

    def __repr__(self) -> str:
        return f"Surface({self.width}x{self.height})"


ImageLike = Union[Surface, DecodedImage]
FillStyle = Union[Tuple[int, int, int, int], SurfacePattern]


class SurfaceContext:
    """2D drawing context bound to a single Surface."""

    def __init__(self, surface: Surface, *, will_read_frequently: bool = False):
        self.surface = surface
        self.will_read_frequently = will_read_frequently
        self.reset_state()

    def reset_state(self) -> None:
        self._transform = (1.0, 1.0, 0.0, 0.0)  # sx, sy, tx, ty
        self.fill_style: FillStyle = (0, 0, 0, 255)

    # ─── Transform ─────────────────────────────────────────────────
    @property
    def transform(self) -> Tuple[float, float, float, float]:
        return self._transform

    def scale(self, sx: float, sy: float) -> None:
        if sx == 0 or sy == 0:
            raise ValueError("Scale factors must be non-zero")
        a, d, e, f = self._transform
        self._transform = (a * sx, d * sy, e, f)

    def translate(self, tx: float, ty: float) -> None:
        a, d, e, f = self._transform
        self._transform = (a, d, e + a * tx, f + d * ty)

    def _map_rect(self, x: float, y: float, w: float, h: float) -> Tuple[int, int, int, int]:
        a, d, e, f = self._transform
        x0, x1 = a * x + e, a * (x + w) + e
        y0, y1 = d * y + f, d * (y + h) + f
        return (round(min(x0, x1)), round(min(y0, y1)),
                round(max(x0, x1)), round(max(y0, y1)))

    def _fit(self, image: PILImage.Image, width: int, height: int) -> Optional[PILImage.Image]:
        """Scale and mirror *image* the way the current transform maps it."""
        if width <= 0 or height <= 0 or image.width == 0 or image.height == 0:
            return None
        if image.size != (width, height):
            image = image.resize((width, height), PILImage.Resampling.BILINEAR)
        a, d = self._transform[:2]
        if a < 0:
            image = ImageOps.mirror(image)
        if d < 0:
            image = ImageOps.flip(image)
        return image

    # ─── Compositing helpers ───────────────────────────────────────
    def _composite(self, layer: PILImage.Image, left: int, top: int) -> None:
        """Source-over *layer* onto the surface at (left, top)."""
        dest = self.surface.image
        clipped = _clip(layer.size, left, top, dest.size)
        if clipped is None:
            return
        box, offset = clipped
        dest.alpha_composite(layer.crop(box), dest=offset)

    def _paste(self, layer: PILImage.Image, left: int, top: int) -> None:
        """Replace surface pixels with *layer* at (left, top), alpha included."""
        dest = self.surface.image
        clipped = _clip(layer.size, left, top, dest.size)
        if clipped is None:
            return
        box, offset = clipped
        dest.paste(layer.crop(box), offset)

    @staticmethod
    def _to_pil(source: ImageLike) -> PILImage.Image:
        if isinstance(source, Surface):
            return source.image
        if isinstance(source, DecodedImage):
            return _rgba_image(source.pixels)
        raise TypeError(f"Cannot draw {type(source).__name__} onto a surface")

    # ─── Drawing primitives ────────────────────────────────────────
    def clear_rect(self, x: float, y: float, w: float, h: float) -> None:
        left, top, right, bottom = self._map_rect(x, y, w, h)
        layer = _blank(right - left, bottom - top)
        self._paste(layer, left, top)

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        left, top, right, bottom = self._map_rect(x, y, w, h)
        width, height = right - left, bottom - top
        if width <= 0 or height <= 0:
            return
        style = self.fill_style
        if isinstance(style, SurfacePattern):
            layer = self._pattern_layer(style, left, top, width, height)
        else:
            layer = PILImage.new("RGBA", (width, height), tuple(style))
        self._composite(layer, left, top)

    def draw_image(self, source: ImageLike, dx: float = 0, dy: float = 0) -> None:
        image = self._to_pil(source)
        if source is self.surface:
            image = image.copy()
        left, top, right, bottom = self._map_rect(dx, dy, image.width, image.height)
        layer = self._fit(image, right - left, bottom - top)
        if layer is not None:
            self._composite(layer, left, top)

    def put_image_data(self, buffer: PixelBuffer, dx: int = 0, dy: int = 0) -> None:
        """Write raw pixels; ignores the transform and does not composite."""
        self._paste(_rgba_image(buffer.pixels), int(dx), int(dy))

    def get_image_data(self, x: int, y: int, w: int, h: int) -> PixelBuffer:
        """Copy a rectangle of pixels; anything outside the surface reads as transparent black."""
        if w < 0 or h < 0:
            raise ValueError(f"Invalid read size {w}x{h}")
        if w == 0 or h == 0:
            return PixelBuffer.blank(w, h)
        region = self.surface.image.crop((x, y, x + w, y + h))
        return PixelBuffer.from_array(np.array(region, dtype=np.uint8))

    # ─── Patterns ──────────────────────────────────────────────────
    def create_pattern(self, source: ImageLike, repetition: Optional[str] = "repeat") -> SurfacePattern:
        repetition = repetition or "repeat"
        if repetition not in REPETITIONS:
            raise ValueError(f"Unknown pattern repetition {repetition!r}")
        return SurfacePattern(self._to_pil(source).copy(), repetition)

    @staticmethod
    def _tile_offsets(anchor: int, step: int, span: int, repeat: bool) -> list[int]:
        if not repeat:
            return [anchor]
        start = anchor % step
        if start > 0:
            start -= step
        return list(range(start, span, step))

    def _pattern_layer(self, pattern: SurfacePattern, left: int, top: int,
                       width: int, height: int) -> PILImage.Image:
        # Patterns are anchored at the (transformed) coordinate origin.
        layer = _blank(width, height)
        t_left, t_top, t_right, t_bottom = self._map_rect(0, 0, pattern.image.width, pattern.image.height)
        tile = self._fit(pattern.image, t_right - t_left, t_bottom - t_top)
        if tile is None:
            return layer

        repeat_x = pattern.repetition in ("repeat", "repeat-x")
        repeat_y = pattern.repetition in ("repeat", "repeat-y")
        for ty in self._tile_offsets(t_top - top, tile.height, height, repeat_y):
            for tx in self._tile_offsets(t_left - left, tile.width, width, repeat_x):
                clipped = _clip(tile.size, tx, ty, layer.size)
                if clipped is None:
                    continue
                box, offset = clipped
                layer.paste(tile.crop(box), offset)
        return layer
