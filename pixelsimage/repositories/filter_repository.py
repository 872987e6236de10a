from collections.abc import Mapping
from typing import Callable, Dict, Iterator, Optional

import numpy as np

from ..models.pixel_buffer import PixelBuffer

FilterFn = Callable[[PixelBuffer], PixelBuffer]

# Luminance weights shared with the saturation matrix.
LUMINANCE = np.array([0.3086, 0.6094, 0.0820])


class FilterRegistry(Mapping):
    """
    Lookup table from filter token to a buffer transform.
    A transform may mutate and return its input or return a new buffer.
    """

    def __init__(self, filters: Optional[Dict[str, FilterFn]] = None):
        self._filters: Dict[str, FilterFn] = dict(filters or {})

    def register(self, name: str, fn: Optional[FilterFn] = None):
        """
        registry.register("invert", invert)  or  @registry.register("invert")
        """
        if fn is None:
            def decorator(func: FilterFn) -> FilterFn:
                self._filters[name] = func
                return func
            return decorator
        self._filters[name] = fn
        return fn

    def unregister(self, name: str) -> None:
        self._filters.pop(name, None)

    def __getitem__(self, name: str) -> FilterFn:
        return self._filters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._filters)

    def __len__(self) -> int:
        return len(self._filters)


# ─── Seed filters ──────────────────────────────────────────────────
def invert(buffer: PixelBuffer) -> PixelBuffer:
    buffer.pixels[..., :3] = 255 - buffer.pixels[..., :3]
    return buffer


def greyscale(buffer: PixelBuffer) -> PixelBuffer:
    grey = buffer.pixels[..., :3].astype(np.float64) @ LUMINANCE
    buffer.pixels[..., :3] = np.clip(np.rint(grey), 0, 255).astype(np.uint8)[..., None]
    return buffer


def default_registry() -> FilterRegistry:
    """Fresh registry holding the seed filters."""
    return FilterRegistry({
        "invert": invert,
        "greyscale": greyscale,
    })
