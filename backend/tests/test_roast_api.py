"""HTTP surface: status codes, error bodies, rate limiting and reads."""

import uuid

import pytest

from app.core.config import get_settings
from app.core.errors import CAPTURE_MESSAGES, CaptureFailureKind
from app.services.ai.common.providers.base import BaseProvider, ProviderResult
from app.utils.rate_limit import rate_limiter
from conftest import RecordingBackend


class GarbageProvider(BaseProvider):
    name = "garbage"

    async def generate(self, prompt, **kwargs) -> ProviderResult:
        return ProviderResult(raw_text='{"verdict": "ninety"}', model="m", provider=self.name)


class ExplodingPipeline:
    async def run(self, url, visitor_id=None):
        raise RuntimeError("database password is hunter2")


@pytest.mark.asyncio
async def test_create_roast(api_client, make_pipeline, roast_store):
    backend = RecordingBackend()
    client = api_client(make_pipeline(backend=backend))
    visitor = str(uuid.uuid4())

    resp = await client.post("/roast", json={"url": "https://example.com", "visitorId": visitor})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert set(body) == {"id", "url", "critique", "imageUrl", "visitorId", "createdAt"}
    assert body["url"] == "https://example.com"
    assert body["visitorId"] == visitor
    assert body["imageUrl"].endswith(f"{body['id']}.jpg")
    assert 1 <= body["critique"]["verdict"] <= 100
    assert resp.headers["RateLimit-Limit"] == "3"
    assert resp.headers["RateLimit-Remaining"] == "2"
    assert backend.calls == ["https://example.com"]
    assert await roast_store.count() == 1


@pytest.mark.asyncio
async def test_loopback_target_rejected_without_capture(api_client, make_pipeline, roast_store):
    backend = RecordingBackend()
    client = api_client(make_pipeline(backend=backend))

    resp = await client.post("/roast", json={"url": "http://127.0.0.1"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "This URL is not publicly accessible."}
    assert backend.calls == []
    assert await roast_store.count() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({}, "URL is required."),
        ({"url": ""}, "URL is required."),
        ({"url": "example.com"}, "Invalid URL format. A valid URL (including http:// or https://) is required."),
        ({"url": "ftp://example.com"}, "Invalid URL format. A valid URL (including http:// or https://) is required."),
        ({"url": 42}, "Invalid request body."),
        ({"url": "https://example.com", "visitorId": "nope"}, "Invalid visitor ID."),
    ],
)
async def test_bad_input(api_client, make_pipeline, payload, message):
    backend = RecordingBackend()
    client = api_client(make_pipeline(backend=backend))

    resp = await client.post("/roast", json=payload)

    assert resp.status_code == 400
    assert resp.json() == {"error": message}
    assert backend.calls == []


@pytest.mark.asyncio
async def test_capture_timeout(api_client, make_pipeline, roast_store):
    client = api_client(make_pipeline(backend=RecordingBackend(TimeoutError("Timeout 30000ms exceeded"))))

    resp = await client.post("/roast", json={"url": "https://slow.example.com"})

    assert resp.status_code == 400
    assert resp.json() == {"error": CAPTURE_MESSAGES[CaptureFailureKind.TIMEOUT]}
    assert await roast_store.count() == 0


@pytest.mark.asyncio
async def test_unresolvable_capture(api_client, make_pipeline):
    backend = RecordingBackend(RuntimeError("net::ERR_NAME_NOT_RESOLVED at https://gone.example.com/"))
    client = api_client(make_pipeline(backend=backend))

    resp = await client.post("/roast", json={"url": "https://gone.example.com/"})

    assert resp.status_code == 400
    assert resp.json() == {"error": CAPTURE_MESSAGES[CaptureFailureKind.UNRESOLVABLE]}


@pytest.mark.asyncio
async def test_invalid_critique_is_500_and_not_persisted(api_client, make_pipeline, roast_store):
    client = api_client(make_pipeline(provider=GarbageProvider()))

    resp = await client.post("/roast", json={"url": "https://example.com"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to analyze the screenshot. Please try again later."}
    assert await roast_store.count() == 0


@pytest.mark.asyncio
async def test_unclassified_error_is_generic_500(api_client):
    client = api_client(ExplodingPipeline(), raise_app_exceptions=False)

    resp = await client.post("/roast", json={"url": "https://example.com"})

    assert resp.status_code == 500
    assert resp.json()["error"] == "An unexpected error occurred. Please try again later."
    assert "hunter2" not in resp.text


@pytest.mark.asyncio
async def test_fourth_request_rate_limited_until_window_ends(api_client, make_pipeline, monkeypatch):
    now = {"t": 5000.0}
    monkeypatch.setattr(rate_limiter, "_clock", lambda: now["t"])
    backend = RecordingBackend()
    client = api_client(make_pipeline(backend=backend))

    for _ in range(3):
        assert (await client.post("/roast", json={"url": "https://example.com"})).status_code == 200

    now["t"] += 60
    resp = await client.post("/roast", json={"url": "https://example.com"})
    assert resp.status_code == 429
    assert resp.json() == {"error": "Are you trying to bankrupt me? Slow down!"}
    assert resp.headers["Retry-After"] == "840"
    assert resp.headers["RateLimit-Remaining"] == "0"
    assert len(backend.calls) == 3

    # Another address has its own window.
    other = api_client(make_pipeline(), client_ip="198.51.100.20")
    assert (await other.post("/roast", json={"url": "https://example.com"})).status_code == 200

    now["t"] += 900
    assert (await client.post("/roast", json={"url": "https://example.com"})).status_code == 200


@pytest.mark.asyncio
async def test_allowlisted_address_bypasses_limit(api_client, make_pipeline):
    get_settings().rate_limit_allowlist_raw = "203.0.113.0/24"
    client = api_client(make_pipeline(), client_ip="203.0.113.10")

    for _ in range(5):
        resp = await client.post("/roast", json={"url": "https://example.com"})
        assert resp.status_code == 200
        assert "RateLimit-Limit" not in resp.headers


@pytest.mark.asyncio
async def test_reads_are_not_rate_limited(api_client):
    client = api_client()
    for _ in range(10):
        assert (await client.get("/roasts")).status_code == 200


@pytest.mark.asyncio
async def test_get_roast_by_id(api_client, make_pipeline):
    client = api_client(make_pipeline())
    created = (await client.post("/roast", json={"url": "https://example.com"})).json()

    resp = await client.get(f"/roasts/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == created

    resp = await client.get("/roasts/not-a-uuid")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid roast ID."}

    resp = await client.get(f"/roasts/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Roast not found."}


@pytest.mark.asyncio
async def test_recent_and_mine(api_client, make_pipeline):
    get_settings().rate_limit_roast_enabled = False
    client = api_client(make_pipeline())
    visitor = str(uuid.uuid4())

    ids = []
    for i in range(4):
        payload = {"url": f"https://example.com/{i}"}
        if i % 2 == 0:
            payload["visitorId"] = visitor
        ids.append((await client.post("/roast", json=payload)).json()["id"])

    recent = (await client.get("/roasts")).json()
    assert len(recent) == 3
    assert {r["id"] for r in recent} <= set(ids)
    created = [r["createdAt"] for r in recent]
    assert created == sorted(created, reverse=True)

    mine = (await client.get(f"/roasts/mine/{visitor}")).json()
    assert {r["id"] for r in mine} == {ids[0], ids[2]}

    resp = await client.get(f"/roasts/mine/{uuid.uuid4()}")
    assert resp.status_code == 404

    resp = await client.get("/roasts/mine/12345")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid visitor ID."}


@pytest.mark.asyncio
async def test_health_and_security_headers(api_client):
    resp = await api_client().get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert "default-src 'none'" in resp.headers["Content-Security-Policy"]


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(api_client):
    resp = await api_client().get("/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}
