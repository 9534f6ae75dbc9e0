from fastapi import Depends

from .config import Settings, get_settings
from .db import get_db
from .repository import EntityRepository
from .services.media import MediaService


def get_media_service(settings: Settings = Depends(get_settings)) -> MediaService:
    db = get_db()
    return MediaService(
        EntityRepository(db),
        settings.image_config(),
        download_timeout=settings.IMAGE_DOWNLOAD_TIMEOUT,
        block_private_networks=settings.IMAGE_BLOCK_PRIVATE_NETWORKS,
        audit_db=db,
    )
