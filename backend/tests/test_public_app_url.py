"""Tests for get_public_app_url / get_public_api_url (redirect and file link bases)."""
import os
from unittest.mock import patch


def test_get_public_app_url_uses_public_app_url_when_set():
    """When PUBLIC_APP_URL is set, returned URL contains that domain (no localhost)."""
    from utils.public_app_url import get_public_app_url

    with patch.dict(os.environ, {"PUBLIC_APP_URL": "https://app.example.com"}, clear=False):
        url = get_public_app_url()
    assert "app.example.com" in url
    assert "localhost" not in url
    assert url.rstrip("/") == url


def test_get_public_app_url_strips_trailing_slash():
    from utils.public_app_url import get_public_app_url

    with patch.dict(os.environ, {"PUBLIC_APP_URL": "https://app.example.com/"}, clear=False):
        assert get_public_app_url() == "https://app.example.com"


def test_get_public_app_url_falls_back_to_frontend_url():
    from utils.public_app_url import get_public_app_url

    with patch.dict(os.environ, {"FRONTEND_URL": "https://folio.example.com"}, clear=False):
        os.environ.pop("PUBLIC_APP_URL", None)
        assert get_public_app_url() == "https://folio.example.com"


def test_get_public_app_url_forces_https_off_localhost():
    from utils.public_app_url import get_public_app_url

    with patch.dict(os.environ, {"PUBLIC_APP_URL": "http://folio.example.com"}, clear=False):
        assert get_public_app_url() == "https://folio.example.com"


def test_get_public_app_url_default_is_localhost():
    from utils.public_app_url import get_public_app_url

    with patch.dict(os.environ, {}, clear=False):
        for key in ("PUBLIC_APP_URL", "FRONTEND_URL", "NEXT_PUBLIC_SITE_URL", "VERCEL_URL"):
            os.environ.pop(key, None)
        assert get_public_app_url() == "http://localhost:3000"


def test_get_public_api_url():
    from utils.public_app_url import get_public_api_url

    with patch.dict(os.environ, {"PUBLIC_API_URL": "https://api.example.com/"}, clear=False):
        assert get_public_api_url() == "https://api.example.com"
    with patch.dict(os.environ, {}, clear=False):
        os.environ.pop("PUBLIC_API_URL", None)
        os.environ.pop("RENDER_EXTERNAL_URL", None)
        assert get_public_api_url() == "http://localhost:8001"
