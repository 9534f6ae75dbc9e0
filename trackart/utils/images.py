from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from ..errors import CorruptImageError, EmptyImageError, UnsupportedFormatError
from ..models import SUPPORTED_FORMATS, ImageFormat, ImageInfo

# Raised by Pillow on truncated, unrecognised or oversized input
_DECODE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError)


def read_image_info(data: bytes) -> ImageInfo:
    """
    Format and dimensions from the image header only.
    Pillow's open() is lazy, so no pixel data is decoded here.
    """
    if not data:
        raise EmptyImageError()
    try:
        with Image.open(BytesIO(data)) as img:
            pil_format = img.format
            width, height = img.size
    except _DECODE_ERRORS as e:
        raise CorruptImageError(str(e) or e.__class__.__name__) from e

    fmt = ImageFormat.from_pil(pil_format)
    if fmt is None:
        raise UnsupportedFormatError((pil_format or "").lower() or None, SUPPORTED_FORMATS)
    return ImageInfo(format=fmt, width=width, height=height, size_bytes=len(data))


def decode_rgb(data: bytes) -> Image.Image:
    """Full decode, flattened to RGB (transparent areas become white)."""
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return flatten_to_rgb(img)
    except _DECODE_ERRORS as e:
        raise CorruptImageError(str(e) or e.__class__.__name__) from e


def flatten_to_rgb(img: Image.Image) -> Image.Image:
    if img.mode == "RGB":
        return img.copy()
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")


def fit_within(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Bounding-box fit with one uniform scale factor, min(max_w/w, max_h/h).
    Never upscales. Integer arithmetic keeps the limiting axis exactly on the
    box edge and floors the other one.
    """
    if max_width * height <= max_height * width:
        if width <= max_width:
            return width, height
        return max_width, max(1, height * max_width // width)
    if height <= max_height:
        return width, height
    return max(1, width * max_height // height), max_height


def resize_to_fit(img: Image.Image, max_width: int, max_height: int) -> Image.Image:
    w, h = img.size
    new_size = fit_within(w, h, max_width, max_height)
    if new_size == (w, h):
        return img
    return img.resize(new_size, resample=Image.Resampling.BICUBIC)


def sniff_content_type(data: bytes) -> str:
    if data.startswith(b"\xff\xd8\xff"):
        return ImageFormat.JPEG.mime_type
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return ImageFormat.PNG.mime_type
    return "application/octet-stream"
