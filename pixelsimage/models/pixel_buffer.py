from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(eq=False)
class PixelBuffer:
    """
    Simple data object: RGBA pixels plus their dimensions.
    pixels.size == width * height * 4 at all times.
    """
    width: int
    height: int
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Invalid buffer size {self.width}x{self.height}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Pixel buffer must be uint8, got {self.pixels.dtype}")
        if self.pixels.shape != (self.height, self.width, 4):
            raise ValueError(
                f"Pixel array of shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )

    @classmethod
    def blank(cls, width: int, height: int) -> PixelBuffer:
        """Transparent black buffer."""
        return cls(width, height, np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def from_array(cls, array: np.ndarray) -> PixelBuffer:
        if array.ndim != 3 or array.shape[2] != 4:
            raise ValueError(f"Expected an (H, W, 4) array, got shape {array.shape}")
        height, width = array.shape[:2]
        return cls(width, height, np.ascontiguousarray(array, dtype=np.uint8))

    @property
    def data(self) -> np.ndarray:
        """Flat R,G,B,A,R,G,B,A... view of the pixels (length width*height*4)."""
        return self.pixels.reshape(-1)

    def copy(self) -> PixelBuffer:
        return PixelBuffer(self.width, self.height, self.pixels.copy())

    def resize(self, width: int, height: int) -> None:
        """Reallocate to a new size; previous content is dropped."""
        self.width, self.height = width, height
        self.pixels = np.zeros((height, width, 4), dtype=np.uint8)

    def replace(self, other: PixelBuffer) -> None:
        """Take over *other*'s pixels, reallocating when the size differs."""
        if other is self:
            return
        if (other.width, other.height) != (self.width, self.height):
            self.width, self.height = other.width, other.height
            self.pixels = other.pixels.copy()
        else:
            self.pixels[...] = other.pixels
