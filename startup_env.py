import logging
import os
from typing import List

from services.feature_flags import BOOL_FALSE, BOOL_TRUE, FLAG_NAMES

logger = logging.getLogger("api.startup")

DOCUMENT_CACHE_BACKENDS = ("memory", "redis")
POSITIVE_NUMBER_KEYS = (
    "GENAI_TIMEOUT_SEC",
    "REMOTE_FETCH_TIMEOUT_SEC",
    "MAX_REMOTE_DOCUMENT_MB",
    "MAX_UPLOAD_FILE_SIZE_MB",
    "PAGE_RENDER_DPI",
)


def _is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _validate_redis_url(value: str | None, key: str, errors: List[str]) -> None:
    if _is_blank(value):
        errors.append(f"{key} is required")
        return
    if not (value.startswith("redis://") or value.startswith("rediss://")):
        errors.append(f"{key} must start with redis:// or rediss://")


def _validate_cors_allow_origins(value: str | None, errors: List[str]) -> None:
    if _is_blank(value):
        errors.append("CORS_ALLOW_ORIGINS is required")
        return

    origins = [x.strip() for x in str(value).split(",") if x.strip()]
    if not origins:
        errors.append("CORS_ALLOW_ORIGINS must contain at least one origin")
        return

    for origin in origins:
        if origin == "*":
            errors.append("CORS_ALLOW_ORIGINS must not contain '*' in strict allowlist mode")
            continue
        if not (origin.startswith("http://") or origin.startswith("https://")):
            errors.append(f"CORS origin must start with http:// or https://: {origin}")


def _validate_bool_flag_env(name: str, errors: List[str]) -> None:
    raw = os.getenv(name)
    if raw is None:
        return
    if str(raw).strip().lower() not in BOOL_TRUE | BOOL_FALSE:
        errors.append(f"{name} must be one of {sorted(BOOL_TRUE | BOOL_FALSE)}")


def _validate_positive_number(name: str, errors: List[str]) -> None:
    raw = os.getenv(name)
    if _is_blank(raw):
        return
    try:
        value = float(raw)
    except ValueError:
        errors.append(f"{name} must be a number")
        return
    if value <= 0:
        errors.append(f"{name} must be greater than 0")


def validate_startup_env() -> None:
    errors: List[str] = []
    warnings: List[str] = []

    if _is_blank(os.getenv("GEMINI_API_KEY")):
        errors.append("GEMINI_API_KEY is required")

    backend = str(os.getenv("DOCUMENT_CACHE_BACKEND") or "memory").strip().lower()
    if backend not in DOCUMENT_CACHE_BACKENDS:
        errors.append(f"DOCUMENT_CACHE_BACKEND must be one of {list(DOCUMENT_CACHE_BACKENDS)}")
    elif backend == "redis":
        _validate_redis_url(os.getenv("REDIS_URL"), "REDIS_URL", errors)
    else:
        warnings.append("DOCUMENT_CACHE_BACKEND=memory; the last uploaded document is lost on restart")

    _validate_cors_allow_origins(os.getenv("CORS_ALLOW_ORIGINS"), errors)

    for name in FLAG_NAMES:
        _validate_bool_flag_env(name, errors)
    for name in POSITIVE_NUMBER_KEYS:
        _validate_positive_number(name, errors)

    if errors:
        for err in errors:
            logger.error("startup_env_invalid %s", err)
        raise RuntimeError("Startup env validation failed: " + "; ".join(errors))

    for warning in warnings:
        logger.warning("startup_env_warning %s", warning)

    logger.info(
        "startup_env_validated keys=%s",
        ["GEMINI_API_KEY", "DOCUMENT_CACHE_BACKEND", "CORS_ALLOW_ORIGINS", *FLAG_NAMES],
    )
