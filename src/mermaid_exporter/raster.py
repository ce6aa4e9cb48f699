"""Rasterization of normalized SVG artifacts."""

import asyncio
import logging
import xml.etree.ElementTree as ET
from io import BytesIO
from typing import Protocol

from PIL import Image

from .artifact import parse_length, parse_view_box
from .errors import ConversionError
from .models import ExportFormat, QualityTier

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 800.0
DEFAULT_HEIGHT = 600.0
JPEG_QUALITY = 92


def intrinsic_size(markup: str) -> tuple[float, float]:
    """viewBox size, else width/height attributes, else 800x600."""
    try:
        root = ET.fromstring(markup)
    except ET.ParseError as exc:
        raise ConversionError("Failed to load SVG image") from exc

    width = parse_length(root.get("width")) or DEFAULT_WIDTH
    height = parse_length(root.get("height")) or DEFAULT_HEIGHT
    view_box = parse_view_box(root.get("viewBox"))
    if view_box is not None and view_box[2] > 0 and view_box[3] > 0:
        width, height = view_box[2], view_box[3]
    return width, height


def scaled_size(markup: str, quality: QualityTier) -> tuple[int, int]:
    width, height = intrinsic_size(markup)
    return round(width * quality.scale), round(height * quality.scale)


class RasterSurface(Protocol):
    def draw(self, markup: str, width: int, height: int, fmt: ExportFormat) -> bytes:
        """Draw the SVG at exactly ``width`` x ``height`` pixels and encode it."""
        ...


class CairoSurface:
    """Draws with cairosvg, re-encodes with Pillow."""

    def draw(self, markup: str, width: int, height: int, fmt: ExportFormat) -> bytes:
        try:
            import cairosvg
        except (ImportError, OSError) as exc:
            # cairocffi raises OSError when the native library is missing
            raise ConversionError(f"Could not get drawing surface: {exc}") from exc

        try:
            png = cairosvg.svg2png(
                bytestring=markup.encode("utf-8"),
                output_width=width,
                output_height=height,
            )
        except Exception as exc:
            raise ConversionError(f"Failed to load SVG image: {exc}") from exc

        if fmt is ExportFormat.PNG:
            return png
        return encode_jpeg(png)


def encode_jpeg(png: bytes, quality: int = JPEG_QUALITY) -> bytes:
    """Flatten onto white and encode as JPEG."""
    with Image.open(BytesIO(png)) as image:
        rgba = image.convert("RGBA")
        flattened = Image.new("RGB", rgba.size, (255, 255, 255))
        flattened.paste(rgba, mask=rgba.getchannel("A"))
    buffer = BytesIO()
    flattened.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


async def convert(
    markup: str, fmt: ExportFormat, quality: QualityTier, surface: RasterSurface
) -> bytes:
    """Rasterize at the quality tier's scale; drawing runs off the event loop."""
    if not fmt.is_raster:
        raise ConversionError(f"{fmt.value} is not a raster format")
    width, height = scaled_size(markup, quality)
    logger.debug("Rasterizing to %s at %dx%d", fmt.value, width, height)
    data = await asyncio.to_thread(surface.draw, markup, width, height, fmt)
    if not data:
        raise ConversionError("Failed to convert canvas to image")
    return data
