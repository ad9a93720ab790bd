"""
Canonical public base URLs.
get_public_app_url() is used for checkout redirects back to the admin dashboard;
get_public_api_url() for links to files served by this API. No other code
should build absolute links directly.
"""
import os
import logging

logger = logging.getLogger(__name__)


def _normalize(raw: str) -> str:
    raw = (raw or "").strip().rstrip("/")
    if raw.startswith("http://") and "localhost" not in raw and "127.0.0.1" not in raw:
        raw = "https://" + raw.split("://", 1)[1]
    return raw


def get_public_app_url() -> str:
    """
    Return normalized public frontend base URL (no trailing slash).
    Fallback order: PUBLIC_APP_URL, FRONTEND_URL, NEXT_PUBLIC_SITE_URL, VERCEL_URL (as https).
    In production (non-localhost) https is enforced. Falls back to http://localhost:3000.
    """
    raw = (
        (os.getenv("PUBLIC_APP_URL") or "").strip()
        or (os.getenv("FRONTEND_URL") or "").strip()
        or (os.getenv("NEXT_PUBLIC_SITE_URL") or "").strip()
    )
    if not raw and os.getenv("VERCEL_URL"):
        raw = f"https://{os.getenv('VERCEL_URL', '').strip()}"
    raw = _normalize(raw)
    if not raw:
        env = (os.getenv("ENVIRONMENT") or "").strip().lower()
        if env in ("production", "prod"):
            logger.warning("PUBLIC_APP_URL is not set in production; redirects will point at localhost")
        return "http://localhost:3000"
    return raw


def get_public_api_url() -> str:
    """Base URL of this API as seen by browsers (for uploaded file links)."""
    raw = _normalize(os.getenv("PUBLIC_API_URL") or os.getenv("RENDER_EXTERNAL_URL") or "")
    return raw or "http://localhost:8001"
