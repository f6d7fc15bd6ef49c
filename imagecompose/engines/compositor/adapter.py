"""
Raster Image Adapter

Thin Pillow wrapper exposing the primitives the compositor needs:
decode, metadata, rotate, trim, resize, composite and encode.
Every operation returns a new RasterImage; inputs are never mutated.
Pillow failures are surfaced as CodecError.
"""

import io
from typing import Any, Dict, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from imagecompose.core.exceptions import CodecError
from imagecompose.core.logging import get_logger
from imagecompose.engines.compositor.schemas import RasterImage

logger = get_logger(__name__)

Color = Tuple[int, int, int, int]

WHITE_OPAQUE: Color = (255, 255, 255, 255)
WHITE_TRANSPARENT: Color = (255, 255, 255, 0)

# Colour distance (per channel) under which a border pixel counts as background
DEFAULT_TRIM_THRESHOLD = 10

_PIL_FORMATS = {
    "png": "PNG",
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "webp": "WEBP",
    "gif": "GIF",
    "tiff": "TIFF",
    "bmp": "BMP",
}


class PillowRasterAdapter:
    """Image codec and transform backend built on Pillow."""

    def decode(self, data: bytes) -> RasterImage:
        """Decode raw bytes; the format is auto-detected."""
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise CodecError(f"Cannot decode image: {e}", operation="decode")

        return RasterImage(image=image, format=image.format)

    def metadata(self, image: RasterImage) -> Dict[str, Any]:
        return {
            "width": image.width,
            "height": image.height,
            "channels": image.channel_count,
            "format": image.format,
        }

    def rotate(self, image: RasterImage, degrees: float, fill: Color = WHITE_TRANSPARENT) -> RasterImage:
        """
        Rotate clockwise by `degrees`, expanding the canvas to fit.

        Exposed corners are painted with `fill`. A translucent fill forces
        an alpha channel so the corners can be trimmed afterwards.
        """
        source = image.image
        if fill[3] < 255 or image.has_alpha:
            source = source.convert("RGBA")
            fillcolor = fill
        else:
            source = source.convert("RGB")
            fillcolor = fill[:3]

        try:
            # Pillow rotates counter-clockwise
            rotated = source.rotate(
                -degrees,
                resample=Image.Resampling.BICUBIC,
                expand=True,
                fillcolor=fillcolor,
            )
        except (OSError, ValueError) as e:
            raise CodecError(f"Cannot rotate image: {e}", operation="rotate")

        return RasterImage(image=rotated, format=image.format)

    def trim(self, image: RasterImage, threshold: int = DEFAULT_TRIM_THRESHOLD) -> RasterImage:
        """
        Crop away uniform borders.

        If the top-left pixel is fully transparent, every fully transparent
        row/column on the edges is removed. Otherwise borders whose colour
        stays within `threshold` of the top-left pixel are removed.
        An image with no content at all is returned unchanged.
        """
        bbox = self.content_bbox(image, threshold)
        if bbox is None or bbox == (0, 0, image.width, image.height):
            return image

        return RasterImage(image=image.image.crop(bbox), format=image.format)

    def content_bbox(self, image: RasterImage, threshold: int = DEFAULT_TRIM_THRESHOLD):
        """Bounding box (left, upper, right, lower) of non-border content, or None."""
        if image.has_alpha:
            rgba = np.asarray(image.image.convert("RGBA"))
            if rgba[0, 0, 3] == 0:
                content = rgba[:, :, 3] > 0
                return _mask_bbox(content)

        rgb = np.asarray(image.image.convert("RGB"), dtype=np.int16)
        distance = np.abs(rgb - rgb[0, 0]).max(axis=2)
        return _mask_bbox(distance > threshold)

    def resize(self, image: RasterImage, width: int, height: int) -> RasterImage:
        if width <= 0 or height <= 0:
            raise CodecError(
                f"Cannot resize image to {width}x{height}",
                operation="resize"
            )

        try:
            resized = image.image.resize((width, height), Image.Resampling.LANCZOS)
        except (OSError, ValueError) as e:
            raise CodecError(f"Cannot resize image: {e}", operation="resize")

        return RasterImage(image=resized, format=image.format)

    def resize_inside(self, image: RasterImage, width: int, height: int) -> RasterImage:
        """Largest aspect-preserving size that fits inside width x height."""
        return self._ops(ImageOps.contain, image, (width, height), method=Image.Resampling.LANCZOS)

    def resize_cover(self, image: RasterImage, width: int, height: int) -> RasterImage:
        """Cover width x height preserving aspect, centre-cropping the excess."""
        return self._ops(ImageOps.fit, image, (width, height), method=Image.Resampling.LANCZOS)

    def resize_letterbox(self, image: RasterImage, width: int, height: int) -> RasterImage:
        """Fit inside width x height and pad with black to exactly that size."""
        mode = "RGBA" if image.has_alpha else "RGB"
        color = (0, 0, 0, 255) if image.has_alpha else (0, 0, 0)
        source = RasterImage(image=image.image.convert(mode), format=image.format)
        return self._ops(ImageOps.pad, source, (width, height), method=Image.Resampling.LANCZOS, color=color)

    def _ops(self, func, image: RasterImage, size: Tuple[int, int], **kwargs) -> RasterImage:
        try:
            result = func(image.image, size, **kwargs)
        except (OSError, ValueError, ZeroDivisionError) as e:
            raise CodecError(f"Cannot resize image: {e}", operation="resize")
        return RasterImage(image=result, format=image.format)

    def composite(self, base: RasterImage, overlay: RasterImage, x: int, y: int) -> RasterImage:
        """Alpha-blend `overlay` onto a copy of `base` with its top-left at (x, y)."""
        try:
            canvas = base.image.convert("RGBA")
            layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
            layer.paste(overlay.image.convert("RGBA"), (x, y))
            merged = Image.alpha_composite(canvas, layer)
        except (OSError, ValueError) as e:
            raise CodecError(f"Cannot composite images: {e}", operation="composite")

        if not base.has_alpha:
            merged = merged.convert("RGB")

        return RasterImage(image=merged, format=base.format)

    def encode(self, image: RasterImage, fmt: str = "png") -> bytes:
        pil_format = _PIL_FORMATS.get(fmt.lower(), fmt.upper())
        source = image.image
        if pil_format == "JPEG" and source.mode not in ("RGB", "L", "CMYK"):
            source = _flatten(source)

        buffer = io.BytesIO()
        try:
            source.save(buffer, format=pil_format)
        except (KeyError, OSError, ValueError) as e:
            raise CodecError(f"Cannot encode image as {fmt}: {e}", operation="encode")

        return buffer.getvalue()

    def rgb_array(self, image: RasterImage) -> np.ndarray:
        """Raw (height, width, 3) uint8 channel values; alpha is dropped."""
        return np.asarray(image.image.convert("RGB"))


def _mask_bbox(mask: np.ndarray):
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(mask.any(axis=0))
    return (int(cols[0]), int(rows[0]), int(cols[-1]) + 1, int(rows[-1]) + 1)


def _flatten(image: Image.Image) -> Image.Image:
    """Flatten onto white for formats without alpha."""
    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, WHITE_OPAQUE)
    return Image.alpha_composite(background, rgba).convert("RGB")
