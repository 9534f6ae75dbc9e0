# trackart/routes/entities.py
from fastapi import APIRouter, Depends, Header, HTTPException, Response
from typing import Optional

from ..dependencies import get_media_service
from ..repository import EntityType
from ..schemas import BulkDeleteResponse, ImageDeleteResponse, ImageUploadRequest, ImageUploadResponse
from ..services.media import MediaService
from ..services.validators import validate_entity_id
from ..utils.images import sniff_content_type

CONFIRM_HEADER = "X-Confirm-Bulk-Delete"
CONFIRM_VALUE = "DELETE ALL"


def ok(data) -> dict:
    if hasattr(data, "model_dump"):
        data = data.model_dump(exclude_none=True)
    return {"success": True, "data": data}


def build_entity_router(entity_type: EntityType) -> APIRouter:
    """Same route set for artists and tracks."""
    label = entity_type.label
    router = APIRouter(prefix=f"/{entity_type.collection}", tags=[entity_type.collection])

    @router.get("")
    async def image_stats(svc: MediaService = Depends(get_media_service)):
        return ok(await svc.get_statistics(entity_type))

    @router.delete("/bulk-delete")
    async def bulk_delete(
        confirm: Optional[str] = Header(None, alias=CONFIRM_HEADER),
        svc: MediaService = Depends(get_media_service),
    ):
        if confirm != CONFIRM_VALUE:
            raise HTTPException(status_code=400, detail=f"Missing confirmation header: {CONFIRM_HEADER}")
        result = await svc.delete_all_images(entity_type)
        return ok(BulkDeleteResponse(
            deleted=result.deleted,
            message=f"{result.deleted} {label} images deleted",
        ))

    @router.get("/{entity_id}")
    async def entity_details(entity_id: str, svc: MediaService = Depends(get_media_service)):
        validate_entity_id(entity_id, label)
        if entity_type is EntityType.ARTIST:
            return ok(await svc.get_artist(entity_id))
        return ok(await svc.get_track(entity_id))

    @router.get("/{entity_id}/image")
    async def get_image(entity_id: str, svc: MediaService = Depends(get_media_service)):
        validate_entity_id(entity_id, label)
        data = await svc.get_image(entity_type, entity_id)
        return Response(content=data, media_type=sniff_content_type(data))

    @router.post("/{entity_id}/image")
    async def upload_image(
        entity_id: str,
        req: ImageUploadRequest,
        svc: MediaService = Depends(get_media_service),
    ):
        validate_entity_id(entity_id, label)
        result = await svc.upload_image(entity_type, entity_id, req)
        return ok(ImageUploadResponse(
            artist=result.artist_name,
            track=result.track_title,
            original_size=result.original_size,
            optimized_size=result.optimized_size,
            savings_percent=result.savings_percent,
            encoder=result.encoder,
        ))

    @router.delete("/{entity_id}/image")
    async def delete_image(entity_id: str, svc: MediaService = Depends(get_media_service)):
        validate_entity_id(entity_id, label)
        await svc.delete_image(entity_type, entity_id)
        resp = ImageDeleteResponse(message=f"{label} image deleted")
        if entity_type is EntityType.ARTIST:
            resp.artist_id = entity_id
        else:
            resp.track_id = entity_id
        return ok(resp)

    return router
