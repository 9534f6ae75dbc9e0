from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["ImageFormat"]:
        """Case-insensitive lookup; accepts extension aliases (jpg, jpeg)."""
        if not name:
            return None
        return _ALIASES.get(name.strip().lower().lstrip("."))

    @classmethod
    def from_pil(cls, pil_format: Optional[str]) -> Optional["ImageFormat"]:
        """Map the format Pillow detected; multi-picture JPEGs come back as MPO."""
        return _FROM_PIL.get(pil_format or "")


_FROM_PIL = {"JPEG": ImageFormat.JPEG, "MPO": ImageFormat.JPEG, "PNG": ImageFormat.PNG}
_ALIASES = {"jpeg": ImageFormat.JPEG, "jpg": ImageFormat.JPEG, "png": ImageFormat.PNG}

SUPPORTED_FORMATS = tuple(f.value for f in ImageFormat)


@dataclass(frozen=True)
class ImageInfo:
    format: ImageFormat
    width: int
    height: int
    size_bytes: int

    @property
    def dimensions(self):
        return self.width, self.height


@dataclass(frozen=True)
class OptimizationConfig:
    target_width: int = 640
    target_height: int = 640
    quality: int = 90
    reject_smaller: bool = False
    max_download_bytes: int = 50 * 1024 * 1024

    def __post_init__(self):
        if self.target_width <= 0 or self.target_height <= 0:
            raise ValueError("target dimensions must be positive")
        if not 1 <= self.quality <= 100:
            raise ValueError("quality must be between 1 and 100")
        if self.max_download_bytes <= 0:
            raise ValueError("max_download_bytes must be positive")

    @property
    def target(self):
        return self.target_width, self.target_height


@dataclass(frozen=True)
class ProcessingResult:
    data: bytes
    format: ImageFormat
    encoder_label: str
    original: ImageInfo
    optimized: ImageInfo
    savings_percent: float = 0.0
