# trackart/security.py
import logging
import secrets

from fastapi import Depends, FastAPI, HTTPException, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security.api_key import APIKeyHeader

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

API_KEY_NAME = "X-API-Key"

_api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)


def is_valid_api_key(api_key: str, keys) -> bool:
    if not api_key:
        return False
    return any(secrets.compare_digest(api_key, k) for k in keys)


def verify_api_key(
    request: Request,
    api_key: str = Security(_api_key_header),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Dependency to enforce API-key auth.
    Accepts any key in API_KEYS (comma-separated); a no-op when API_ENABLED is false.
    """
    if not settings.API_ENABLED:
        return ""
    if is_valid_api_key(api_key, settings.API_KEYS):
        return api_key
    logger.warning(
        "Authentication failed: path=%s method=%s client=%s",
        request.url.path, request.method, request.client.host if request.client else "-",
    )
    raise HTTPException(status_code=401, detail="Unauthorized: invalid or missing API key")


def add_cors(app: FastAPI, origins_env: str) -> None:
    """
    Attach CORS using CORS_ALLOWED_ORIGINS.
    - "*" -> allow all origins (credentials disabled)
    - "http://localhost:3000,https://myapp.com" -> allow list (credentials enabled)
    """
    origins_env = (origins_env or "*").strip()
    if origins_env == "*":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,  # credentials not allowed with wildcard per browsers
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        origins = [o.strip() for o in origins_env.split(",") if o.strip()]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
