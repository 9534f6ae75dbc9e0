import logging
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from typing import Dict, NamedTuple, Sequence

import cv2
import numpy as np
from PIL import Image

from ..errors import EncodingFailedError
from ..utils.transforms import format_kb

logger = logging.getLogger(__name__)


class StandardJpegEncoder:
    """Baseline JPEG through Pillow's libjpeg bindings."""
    name = "standard"

    def encode(self, img: Image.Image, quality: int) -> bytes:
        buf = BytesIO()
        img.save(buf, format="JPEG", quality=quality)
        return buf.getvalue()


class OpenCVJpegEncoder:
    """OpenCV's own libjpeg build, with optimized Huffman tables."""
    name = "alt"

    def encode(self, img: Image.Image, quality: int) -> bytes:
        bgr = np.ascontiguousarray(np.asarray(img.convert("RGB"))[:, :, ::-1])
        params = [int(cv2.IMWRITE_JPEG_QUALITY), int(quality), int(cv2.IMWRITE_JPEG_OPTIMIZE), 1]
        ok, encoded = cv2.imencode(".jpg", bgr, params)
        if not ok:
            raise RuntimeError("cv2.imencode returned no data")
        return encoded.tobytes()


# Order matters: on equal size the earlier encoder wins
DEFAULT_ENCODERS = (StandardJpegEncoder(), OpenCVJpegEncoder())


class RaceResult(NamedTuple):
    data: bytes
    label: str
    winner: str


def _run(encoder, img: Image.Image, quality: int) -> bytes:
    data = encoder.encode(img, quality)
    if not data:
        raise RuntimeError("encoder produced no data")
    return data


def race(img: Image.Image, quality: int, encoders: Sequence = DEFAULT_ENCODERS) -> RaceResult:
    """
    Encode `img` with every encoder and keep the smallest output.
    The label lists the winner first, then the others in list order,
    e.g. "alt (98 KB) vs standard (120 KB)" or "standard (120 KB) - alt failed".
    """
    if not encoders:
        raise EncodingFailedError({})

    outputs: Dict[str, bytes] = {}
    failures: Dict[str, str] = {}

    with ThreadPoolExecutor(max_workers=len(encoders), thread_name_prefix="jpeg-encode") as pool:
        futures = [(enc.name, pool.submit(_run, enc, img, quality)) for enc in encoders]
        for name, fut in futures:
            try:
                outputs[name] = fut.result()
            except Exception as e:
                logger.warning("Encoder %s failed: %s", name, e)
                failures[name] = str(e) or e.__class__.__name__

    if not outputs:
        raise EncodingFailedError(failures)

    # dicts keep insertion order, so min() picks the earliest encoder on a tie
    winner = min(outputs, key=lambda n: len(outputs[n]))
    parts = [f"{winner} ({format_kb(len(outputs[winner]))})"]
    parts += [f"{n} ({format_kb(len(d))})" for n, d in outputs.items() if n != winner]
    label = " vs ".join(parts)
    for name in failures:
        label += f" - {name} failed"

    logger.debug("Encoder race: %s", label)
    return RaceResult(outputs[winner], label, winner)
