from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from PIL import Image


class ColorMode(str, Enum):
    RGB = "rgb"
    GRAY = "gray"


class RasterEngineName(str, Enum):
    """
    Rendering backend identifiers.
    """

    PYPDFIUM2 = "pypdfium2"


WHITE = (255, 255, 255)


@dataclass(frozen=True, slots=True)
class RenderConfig:
    """
    Page rasterizer configuration.

    - `scale` multiplies the intrinsic page size (PDF points) to get pixels.
    - `background` is painted before drawing; transparent regions confuse OCR.
    - `timeout_s=None` disables the render deadline.
    - `engine_wait_s` bounds how long a page waits for the engine to finish an
      earlier, abandoned render before it starts its own deadline. None waits
      indefinitely.
    """

    engine: RasterEngineName = RasterEngineName.PYPDFIUM2
    scale: float = 2.0
    color_mode: ColorMode = ColorMode.RGB
    background: tuple[int, int, int] = WHITE
    timeout_s: float | None = 30.0
    engine_wait_s: float | None = 120.0

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ValueError("scale must be positive")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive or None")
        if self.engine_wait_s is not None and self.engine_wait_s <= 0:
            raise ValueError("engine_wait_s must be positive or None")
        if len(self.background) != 3 or any(not 0 <= c <= 255 for c in self.background):
            raise ValueError("background must be an (r, g, b) tuple of 0..255 ints")


@dataclass(slots=True)
class Raster:
    """
    Rendered pixels of one page.

    Owned by a single page pipeline call: handed to recognition once, then
    closed.
    """

    page_num: int  # 1-indexed
    scale: float
    width_px: int
    height_px: int
    image: Image.Image
    meta: dict[str, Any] = field(default_factory=dict)

    def close(self) -> None:
        self.image.close()
