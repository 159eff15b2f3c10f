"""Tests for get_frontend_base_url (checkout redirect base URL)."""
import os
import pytest
from unittest.mock import patch

URL_VARS = ("FRONTEND_BASE_URL", "FRONTEND_PUBLIC_URL", "VERCEL_URL", "ENVIRONMENT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in URL_VARS:
        monkeypatch.delenv(name, raising=False)


def test_frontend_base_url_wins_and_is_stripped():
    from utils.public_app_url import get_frontend_base_url

    with patch.dict(os.environ, {
        "FRONTEND_BASE_URL": "https://mycurriculo.vercel.app/ ",
        "FRONTEND_PUBLIC_URL": "https://other.example.com",
    }):
        base = get_frontend_base_url()
    assert base == "https://mycurriculo.vercel.app"


def test_http_is_upgraded_outside_localhost():
    from utils.public_app_url import get_frontend_base_url

    with patch.dict(os.environ, {"FRONTEND_BASE_URL": "http://mycurriculo.vercel.app"}):
        assert get_frontend_base_url() == "https://mycurriculo.vercel.app"


def test_vercel_url_fallback():
    from utils.public_app_url import get_frontend_base_url

    with patch.dict(os.environ, {"VERCEL_URL": "mycurriculo-git-main.vercel.app"}):
        assert get_frontend_base_url() == "https://mycurriculo-git-main.vercel.app"


def test_local_default_in_development():
    from utils.public_app_url import get_frontend_base_url

    assert get_frontend_base_url() == "http://localhost:3000"


def test_missing_url_in_production_raises():
    from utils.public_app_url import get_frontend_base_url

    with patch.dict(os.environ, {"ENVIRONMENT": "production"}):
        with pytest.raises(ValueError):
            get_frontend_base_url()


def test_payment_return_urls():
    from utils.public_app_url import payment_return_urls

    with patch.dict(os.environ, {"FRONTEND_BASE_URL": "https://mycurriculo.vercel.app"}):
        success, cancel = payment_return_urls("ORD-1-ABC")
    assert success == "https://mycurriculo.vercel.app/pagamento.html?orderId=ORD-1-ABC&status=success"
    assert cancel == "https://mycurriculo.vercel.app/pagamento.html?orderId=ORD-1-ABC&status=cancel"
