from pydantic import BaseModel, Field
from typing import Optional, Any, Dict


class ImageUploadRequest(BaseModel):
    url: Optional[str] = Field(None, description="http(s) URL to download the image from")
    image: Optional[str] = Field(None, description="Base64-encoded JPEG/PNG, data: URI prefix allowed")


class ArtistDetails(BaseModel):
    id: str
    artist: str = ""
    info: str = ""
    website: str = ""
    twitter: str = ""
    instagram: str = ""
    repeat_value: int = 0
    has_image: bool = False

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ArtistDetails":
        return cls(id=str(doc["_id"]), **_present(doc, cls))


class TrackDetails(BaseModel):
    id: str
    title: str = ""
    artist: str = ""
    artist_id: Optional[str] = None
    year: int = 0
    known_length_ms: int = 0
    intro_time_ms: int = 0
    outro_time_ms: int = 0
    bpm: int = 0
    export_type: int = 0
    repeat_value: int = 0
    rating: int = 0
    website: str = ""
    has_image: bool = False

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "TrackDetails":
        return cls(id=str(doc["_id"]), **_present(doc, cls))


def _present(doc: Dict[str, Any], model) -> Dict[str, Any]:
    # Mongo documents may carry nulls or extra keys; keep known, non-null fields only
    return {k: v for k, v in doc.items() if k in model.model_fields and k != "id" and v is not None}


class ImageUploadResponse(BaseModel):
    artist: str
    track: Optional[str] = None
    original_size: int
    optimized_size: int
    savings_percent: float
    encoder: str


class ImageStatsResponse(BaseModel):
    total: int
    with_images: int
    without_images: int


class BulkDeleteResponse(BaseModel):
    deleted: int
    message: str


class ImageDeleteResponse(BaseModel):
    message: str
    artist_id: Optional[str] = None
    track_id: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    database_status: str
