# trackart/errors.py
from typing import Any, Dict, Optional, Tuple


class AppError(Exception):
    """
    Base for every error the service reports to a caller.
    Subclasses fix `kind` and `status_code`; the HTTP layer maps on those,
    never on the message text.
    """
    kind: str = "Error"
    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.context}


# --- Validation (client input) ---

class ValidationError(AppError):
    kind = "ValidationError"
    status_code = 400

    def __init__(self, field: str, message: str, **context: Any):
        super().__init__(message, field=field, **context)
        self.field = field


class InvalidURLError(ValidationError):
    kind = "InvalidURL"

    def __init__(self, url: str, reason: str):
        super().__init__("url", f"invalid URL: {reason}", url=url)
        self.url = url
        self.reason = reason


class InvalidBase64Error(ValidationError):
    kind = "InvalidBase64"

    def __init__(self, reason: str = "not valid base64"):
        super().__init__("image", f"invalid base64 image: {reason}")


class InvalidSourceError(ValidationError):
    kind = "InvalidSource"

    def __init__(self, message: str):
        super().__init__("image", message)


class EmptyImageError(ValidationError):
    kind = "EmptyImage"

    def __init__(self):
        super().__init__("image", "image is empty")


class UnsupportedFormatError(ValidationError):
    kind = "UnsupportedFormat"

    def __init__(self, fmt: Optional[str], supported: Tuple[str, ...]):
        super().__init__(
            "image",
            f"image format {fmt or 'unknown'} is not supported (use: {', '.join(supported)})",
            format=fmt,
        )
        self.format = fmt


class ImageTooSmallError(ValidationError):
    kind = "ImageTooSmall"

    def __init__(self, have: Tuple[int, int], want: Tuple[int, int]):
        super().__init__(
            "dimensions",
            f"image is too small: {have[0]}x{have[1]} (at least {want[0]}x{want[1]} required)",
            have=list(have),
            want=list(want),
        )
        self.have = have
        self.want = want


class InvalidEntityIDError(ValidationError):
    kind = "InvalidEntityID"

    def __init__(self, label: str, entity_id: str, reason: str):
        super().__init__("id", f"invalid {label} ID: {reason}", id=entity_id)


# --- Download (about the supplied URL, so still a client error) ---

class DownloadError(AppError):
    kind = "DownloadError"
    status_code = 400


class DownloadFailedError(DownloadError):
    kind = "DownloadFailed"

    def __init__(self, url: str, status: Optional[int] = None, reason: Optional[str] = None):
        detail = f"HTTP {status}" if status is not None else (reason or "request failed")
        super().__init__(f"download failed: {detail}", url=url, status=status)
        self.status = status


class NotAnImageError(DownloadError):
    kind = "NotAnImage"

    def __init__(self, url: str, content_type: str):
        super().__init__(f"not an image content-type: {content_type}", url=url, content_type=content_type)
        self.content_type = content_type


class ResponseTooLargeError(DownloadError):
    kind = "ResponseTooLarge"

    def __init__(self, url: str, limit: int):
        super().__init__(f"response exceeds {limit} bytes", url=url, limit=limit)
        self.limit = limit


class DownloadTimeoutError(DownloadError):
    kind = "DownloadTimeout"

    def __init__(self, url: str, timeout: float):
        super().__init__(f"download timed out after {timeout:g}s", url=url, timeout=timeout)


# --- Image processing (well-formed-looking bytes we could not handle) ---

class CorruptImageError(AppError):
    kind = "CorruptImage"
    status_code = 422

    def __init__(self, reason: str):
        super().__init__(f"image could not be decoded: {reason}")


class EncodingFailedError(AppError):
    kind = "EncodingFailed"
    status_code = 422

    def __init__(self, failures: Dict[str, str]):
        detail = "; ".join(f"{name}: {err}" for name, err in failures.items()) or "no encoders"
        super().__init__(f"JPEG encoding failed ({detail})", failures=failures)
        self.failures = failures


# --- Persistence ---

class NotFoundError(AppError):
    kind = "NotFound"
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} with ID '{entity_id}' does not exist", entity=entity, id=entity_id)


class NoImageError(AppError):
    kind = "NoImage"
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} with ID '{entity_id}' has no image", entity=entity, id=entity_id)


class DatabaseError(AppError):
    kind = "DatabaseError"
    status_code = 500

    def __init__(self, operation: str, err: Exception):
        super().__init__(f"database error during {operation}: {err}", operation=operation)
        self.__cause__ = err


class ConfigurationError(AppError):
    kind = "ConfigurationError"
    status_code = 500

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("configuration is incomplete: " + "; ".join(self.problems), problems=self.problems)
