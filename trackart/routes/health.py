from fastapi import APIRouter, Depends, Request

from .. import db
from ..config import Settings, get_settings
from ..schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request, settings: Settings = Depends(get_settings)):
    connected = await db.ping()
    return {
        "success": True,
        "data": HealthResponse(
            status="healthy",
            version=request.app.version,
            database=settings.MONGO_DB,
            database_status="connected" if connected else "disconnected",
        ).model_dump(),
    }
