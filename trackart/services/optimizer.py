import logging
from typing import Sequence

from ..errors import AppError, EncodingFailedError
from ..models import ImageFormat, ImageInfo, OptimizationConfig, ProcessingResult
from ..utils.images import decode_rgb, read_image_info, resize_to_fit
from .encoders import DEFAULT_ENCODERS, race
from .validators import validate_image

logger = logging.getLogger(__name__)

LABEL_NO_OPTIMIZATION = "original (no optimization needed)"
LABEL_ORIGINAL_SMALLER = "original (smaller than optimized)"


def process(data: bytes, config: OptimizationConfig, encoders: Sequence = DEFAULT_ENCODERS) -> ProcessingResult:
    """
    Validate, resize and re-encode an image.

    Images already at the exact target size come back untouched. Everything
    else is decoded, shrunk to fit the target box (never enlarged) and encoded
    by every encoder; the smallest JPEG is kept only if it beats the original.
    The result is therefore never larger than the input.
    """
    original = validate_image(data, config)

    if original.dimensions == config.target:
        logger.info("Image already %dx%d, keeping original", original.width, original.height)
        return _keep_original(data, original, LABEL_NO_OPTIMIZATION)

    pixels = decode_rgb(data)
    pixels = resize_to_fit(pixels, config.target_width, config.target_height)
    encoded = race(pixels, config.quality, encoders)

    if len(encoded.data) >= original.size_bytes:
        logger.info(
            "Optimized image (%d bytes) not smaller than original (%d bytes), keeping original",
            len(encoded.data), original.size_bytes,
        )
        return _keep_original(data, original, LABEL_ORIGINAL_SMALLER)

    optimized = _describe(encoded.data, encoded.winner)
    savings = (original.size_bytes - optimized.size_bytes) / original.size_bytes * 100
    logger.info(
        "Optimized %s %dx%d (%d bytes) -> jpeg %dx%d (%d bytes), %.1f%% saved with %s",
        original.format.value, original.width, original.height, original.size_bytes,
        optimized.width, optimized.height, optimized.size_bytes, savings, encoded.winner,
    )
    return ProcessingResult(
        data=encoded.data,
        format=ImageFormat.JPEG,
        encoder_label=encoded.label,
        original=original,
        optimized=optimized,
        savings_percent=savings,
    )


def _keep_original(data: bytes, info: ImageInfo, label: str) -> ProcessingResult:
    return ProcessingResult(
        data=data,
        format=info.format,
        encoder_label=label,
        original=info,
        optimized=info,
        savings_percent=0.0,
    )


def _describe(data: bytes, encoder: str) -> ImageInfo:
    try:
        info = read_image_info(data)
    except AppError as e:
        raise EncodingFailedError({encoder: f"output is not a readable image: {e.message}"}) from e
    if info.format is not ImageFormat.JPEG:
        raise EncodingFailedError({encoder: f"output is {info.format.value}, expected jpeg"})
    return info
