# trackart/repository.py: artist/track documents in MongoDB
import logging
from enum import Enum
from typing import Any, Dict, Optional

from bson.binary import Binary
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from .errors import DatabaseError, NoImageError, NotFoundError
from .schemas import ArtistDetails, TrackDetails

logger = logging.getLogger(__name__)


class EntityType(str, Enum):
    ARTIST = "artist"
    TRACK = "track"

    @property
    def collection(self) -> str:
        return "artists" if self is EntityType.ARTIST else "tracks"

    @property
    def label(self) -> str:
        return self.value


HAS_IMAGE = {"image": {"$type": "binData"}}
NO_IMAGE = {"image": {"$not": {"$type": "binData"}}}


class EntityRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    def _coll(self, entity_type: EntityType):
        return self.db[entity_type.collection]

    async def _find(self, entity_type: EntityType, entity_id: str) -> Dict[str, Any]:
        try:
            doc = await self._coll(entity_type).find_one({"_id": entity_id}, {"image": 0})
            if doc is None:
                raise NotFoundError(entity_type.label, entity_id)
            doc["has_image"] = await self._coll(entity_type).count_documents(
                {"_id": entity_id, **HAS_IMAGE}, limit=1
            ) > 0
        except PyMongoError as e:
            raise DatabaseError(f"fetching {entity_type.label}", e)
        return doc

    async def get_artist(self, artist_id: str) -> ArtistDetails:
        doc = await self._find(EntityType.ARTIST, artist_id)
        return ArtistDetails.from_document(doc)

    async def get_track(self, track_id: str) -> TrackDetails:
        doc = await self._find(EntityType.TRACK, track_id)
        return TrackDetails.from_document(doc)

    async def get_image(self, entity_type: EntityType, entity_id: str) -> bytes:
        try:
            doc = await self._coll(entity_type).find_one({"_id": entity_id}, {"image": 1})
        except PyMongoError as e:
            raise DatabaseError(f"fetching {entity_type.label} image", e)
        if doc is None:
            raise NotFoundError(entity_type.label, entity_id)
        image: Optional[bytes] = doc.get("image")
        if not image:
            raise NoImageError(entity_type.label, entity_id)
        return bytes(image)

    async def update_image(self, entity_type: EntityType, entity_id: str, data: bytes) -> None:
        try:
            result = await self._coll(entity_type).update_one(
                {"_id": entity_id}, {"$set": {"image": Binary(data)}}
            )
        except PyMongoError as e:
            raise DatabaseError(f"updating {entity_type.label}", e)
        if result.matched_count == 0:
            raise NotFoundError(entity_type.label, entity_id)

    async def delete_image(self, entity_type: EntityType, entity_id: str) -> None:
        try:
            result = await self._coll(entity_type).update_one(
                {"_id": entity_id}, {"$set": {"image": None}}
            )
        except PyMongoError as e:
            raise DatabaseError(f"deleting {entity_type.label} image", e)
        if result.matched_count == 0:
            raise NotFoundError(f"{entity_type.label} image", entity_id)

    async def count_with_images(self, entity_type: EntityType) -> int:
        try:
            return await self._coll(entity_type).count_documents(HAS_IMAGE)
        except PyMongoError as e:
            raise DatabaseError(f"counting {entity_type.collection} with images", e)

    async def count_without_images(self, entity_type: EntityType) -> int:
        try:
            return await self._coll(entity_type).count_documents(NO_IMAGE)
        except PyMongoError as e:
            raise DatabaseError(f"counting {entity_type.collection} without images", e)

    async def delete_all_images(self, entity_type: EntityType) -> int:
        try:
            result = await self._coll(entity_type).update_many(HAS_IMAGE, {"$set": {"image": None}})
        except PyMongoError as e:
            raise DatabaseError(f"deleting all {entity_type.label} images", e)
        logger.info("Removed %d %s images", result.modified_count, entity_type.label)
        return result.modified_count
