"""Pytest fixtures: isolated settings, storage roots, sample images. No test touches the network."""
import io
from types import SimpleNamespace

import pytest
from PIL import Image

from filestore.core.config import get_settings

TEST_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test, pointed at a temp local root."""
    monkeypatch.setenv("SECRET_KEY", TEST_SECRET)
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_ROOT", str(tmp_path / "storage"))
    monkeypatch.delenv("STORAGE_CONFIG_FILE", raising=False)
    monkeypatch.delenv("LOCAL_BASE_URL", raising=False)
    monkeypatch.delenv("LOCAL_PUBLIC_READ", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_png(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png(64, 32)


def sdk_info(status_code: int = 200, error: str | None = None, text_body: str = "") -> SimpleNamespace:
    """Stand-in for qiniu's ResponseInfo."""
    return SimpleNamespace(status_code=status_code, error=error, text_body=text_body)
