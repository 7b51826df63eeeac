"""HTTP app: signed local file serving, health and metrics."""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from filestore.main import app
from filestore.storage import get_storage


@pytest.fixture
def served(monkeypatch):
    """Local backend whose URLs point at this app's /files router."""
    monkeypatch.setenv("LOCAL_BASE_URL", "http://test/files")
    from filestore.core.config import get_settings
    get_settings.cache_clear()
    return get_storage()


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_signed_url_serves_file(served, client, png_bytes):
    served.put("img/a.png", png_bytes)
    url = served.get_signed_url("img/a.png", 60)

    r = await client.get(url)
    assert r.status_code == 200
    assert r.content == png_bytes
    assert r.headers["cache-control"] == "private, no-store"
    assert r.headers["x-content-type-options"] == "nosniff"
    assert "x-request-id" in r.headers


@pytest.mark.asyncio
async def test_missing_or_tampered_token_forbidden(served, client):
    served.put("doc.txt", b"secret")
    url = served.get_signed_url("doc.txt", 60)

    r = await client.get("/files/doc.txt")
    assert r.status_code == 403
    r = await client.get(url[:-1] + ("0" if url[-1] != "0" else "1"))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_token_for_other_path_forbidden(served, client):
    served.put("a.txt", b"a")
    served.put("b.txt", b"b")
    url = served.get_signed_url("a.txt", 60)

    r = await client.get(url.replace("/a.txt", "/b.txt"))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_signed_url_for_missing_file_not_found(served, client):
    r = await client.get(served.get_signed_url("gone.txt", 60))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_public_read_skips_token(served, client, monkeypatch):
    from filestore.core.config import get_settings
    monkeypatch.setenv("LOCAL_PUBLIC_READ", "true")
    get_settings.cache_clear()
    served.put("pub.txt", b"public")

    r = await client.get("/files/pub.txt")
    assert r.status_code == 200
    assert r.content == b"public"


@pytest.mark.asyncio
async def test_healthz(client):
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "backend": "local"}


@pytest.mark.asyncio
async def test_metrics_guarded_by_secret(client, monkeypatch):
    from filestore.core.config import get_settings
    monkeypatch.setenv("METRICS_SECRET", "m-secret")
    get_settings.cache_clear()

    r = await client.get("/metrics")
    assert r.status_code == 403
    r = await client.get("/metrics", headers={"X-Metrics-Secret": "m-secret"})
    assert r.status_code == 200
    assert "storage_operations_total" in r.text


@pytest.mark.asyncio
async def test_metrics_label_routes_not_raw_paths(served, client):
    served.put("deep/dir/a.txt", b"a")
    await client.get(served.get_signed_url("deep/dir/a.txt", 60))

    r = await client.get("/metrics")
    assert 'route="/files/{path:path}"' in r.text
    assert "deep/dir" not in r.text
    assert 'storage_signed_url_mint_total{backend="local"}' in r.text


@pytest.mark.asyncio
async def test_non_numeric_deadline_forbidden(served, client):
    served.put("a.txt", b"a")
    r = await client.get("/files/a.txt", params={"e": "abc", "token": "x"})
    assert r.status_code == 403
