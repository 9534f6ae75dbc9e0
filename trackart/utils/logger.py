import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

UPLOADS_COLLECTION = "uploads"  # successful image uploads
ERRORS_COLLECTION = "logs"      # failed uploads, by stage


# Audit writes are best effort: a failing audit never fails the upload itself

async def log_image_upload(
    db: Optional[AsyncIOMotorDatabase],
    entity_type: str,
    entity_id: str,
    source: str,
    original_size: int,
    optimized_size: int,
    savings_percent: float,
    encoder: str,
):
    if db is None:
        return
    try:
        await db[UPLOADS_COLLECTION].insert_one({
            "created_at": datetime.now(timezone.utc),
            "entity_type": entity_type,
            "entity_id": entity_id,
            "source": source,
            "original_size": original_size,
            "optimized_size": optimized_size,
            "savings_percent": round(savings_percent, 2),
            "encoder": encoder,
        })
    except PyMongoError as e:
        logger.warning("Writing upload audit record failed: %s", e)


async def log_error(
    db: Optional[AsyncIOMotorDatabase],
    stage: str,
    error: Dict[str, Any],
    extra: Optional[Dict[str, Any]] = None,
):
    if db is None:
        return
    try:
        await db[ERRORS_COLLECTION].insert_one({
            "created_at": datetime.now(timezone.utc),
            "stage": stage,
            "error": error,
            "extra": extra or {},
        })
    except PyMongoError as e:
        logger.warning("Writing error audit record failed: %s", e)
