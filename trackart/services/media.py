import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from fastapi.concurrency import run_in_threadpool

from ..errors import AppError
from ..models import OptimizationConfig
from ..repository import EntityRepository, EntityType
from ..schemas import ArtistDetails, ImageStatsResponse, ImageUploadRequest, TrackDetails
from ..utils.logger import log_error, log_image_upload
from .downloader import DEFAULT_TIMEOUT, acquire
from .encoders import DEFAULT_ENCODERS
from .optimizer import process
from .validators import validate_upload_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUploadResult:
    artist_name: str
    track_title: Optional[str]
    original_size: int
    optimized_size: int
    savings_percent: float
    encoder: str


@dataclass(frozen=True)
class DeleteResult:
    count_before: int
    deleted: int


class MediaService:
    """Artist/track lookups plus the image upload use case."""

    def __init__(
        self,
        repo: EntityRepository,
        config: OptimizationConfig,
        download_timeout: float = DEFAULT_TIMEOUT,
        block_private_networks: bool = True,
        encoders: Sequence = DEFAULT_ENCODERS,
        audit_db=None,
        http_session=None,
    ):
        self.repo = repo
        self.config = config
        self.download_timeout = download_timeout
        self.block_private_networks = block_private_networks
        self.encoders = encoders
        self.audit_db = audit_db
        self.http_session = http_session

    async def get_artist(self, artist_id: str) -> ArtistDetails:
        return await self.repo.get_artist(artist_id)

    async def get_track(self, track_id: str) -> TrackDetails:
        return await self.repo.get_track(track_id)

    async def get_image(self, entity_type: EntityType, entity_id: str) -> bytes:
        return await self.repo.get_image(entity_type, entity_id)

    async def delete_image(self, entity_type: EntityType, entity_id: str) -> None:
        await self.repo.delete_image(entity_type, entity_id)

    async def upload_image(
        self, entity_type: EntityType, entity_id: str, req: ImageUploadRequest
    ) -> ImageUploadResult:
        validate_upload_source(req.url, req.image)

        # The entity must exist before anything is fetched
        if entity_type is EntityType.ARTIST:
            artist = await self.repo.get_artist(entity_id)
            name, title = artist.artist, None
        else:
            track = await self.repo.get_track(entity_id)
            name, title = track.artist, track.title

        source = "url" if req.url and req.url.strip() else "base64"
        try:
            data = await run_in_threadpool(
                acquire,
                req.url,
                req.image,
                self.config.max_download_bytes,
                timeout=self.download_timeout,
                block_private_networks=self.block_private_networks,
                session=self.http_session,
            )
            result = await run_in_threadpool(process, data, self.config, self.encoders)
        except AppError as e:
            logger.error("Image %s failed for %s %s: %s", source, entity_type.label, entity_id, e.message)
            await log_error(self.audit_db, "process_image", e.to_dict(),
                            {"entity_type": entity_type.value, "entity_id": entity_id, "source": source})
            raise

        await self.repo.update_image(entity_type, entity_id, result.data)
        await log_image_upload(
            self.audit_db, entity_type.value, entity_id, source,
            result.original.size_bytes, result.optimized.size_bytes,
            result.savings_percent, result.encoder_label,
        )

        return ImageUploadResult(
            artist_name=name,
            track_title=title,
            original_size=result.original.size_bytes,
            optimized_size=result.optimized.size_bytes,
            savings_percent=result.savings_percent,
            encoder=result.encoder_label,
        )

    async def get_statistics(self, entity_type: EntityType) -> ImageStatsResponse:
        with_images = await self.repo.count_with_images(entity_type)
        without_images = await self.repo.count_without_images(entity_type)
        return ImageStatsResponse(
            total=with_images + without_images,
            with_images=with_images,
            without_images=without_images,
        )

    async def delete_all_images(self, entity_type: EntityType) -> DeleteResult:
        count = await self.repo.count_with_images(entity_type)
        if count == 0:
            return DeleteResult(count_before=0, deleted=0)
        deleted = await self.repo.delete_all_images(entity_type)
        return DeleteResult(count_before=count, deleted=deleted)
