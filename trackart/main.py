import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import db
from .config import settings
from .errors import AppError
from .logging_config import configure_logging
from .repository import EntityType
from .routes.entities import build_entity_router
from .routes.health import router as health_router
from .security import add_cors, verify_api_key

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    settings.validate()
    logger.info("Starting %s %s (database %s)", settings.APP_NAME, VERSION, settings.MONGO_DB)
    yield
    db.close_client()


def error_response(status_code: int, message: str, kind: Optional[str] = None) -> JSONResponse:
    content = {"success": False, "error": message}
    if kind:
        content["kind"] = kind
    return JSONResponse(status_code=status_code, content=content)


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.message, exc.kind)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(404, "Endpoint not found")
    return error_response(exc.status_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(400, "Invalid request body")


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, version=VERSION, lifespan=lifespan)
    add_cors(app, settings.CORS_ALLOWED_ORIGINS)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    api = APIRouter(prefix="/api")
    api.include_router(health_router)

    protected = APIRouter(dependencies=[Depends(verify_api_key)])
    protected.include_router(build_entity_router(EntityType.ARTIST))
    protected.include_router(build_entity_router(EntityType.TRACK))
    api.include_router(protected)

    app.include_router(api)
    return app


app = create_app()
