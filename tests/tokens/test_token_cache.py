"""Tests for parceltrack.tokens.cache and the UPS/USPS token exchanges"""

from datetime import timedelta
from urllib.parse import parse_qs

import httpx
import pytest

from parceltrack.errors import AuthError
from parceltrack.oauth import UpsTokenCache, UspsTokenCache
from parceltrack.tokens.store import MemoryTokenStore


def _transport(requests, status=200, body=None, exc=None):
    def handler(request):
        requests.append(request)
        if exc is not None:
            raise exc
        return httpx.Response(status, json=body)
    return httpx.MockTransport(handler)


def _make_ups(store, clock, requests, **kwargs):
    body = kwargs.pop("body", {"access_token": "ups-token-1", "expires_in": "14399"})
    return UpsTokenCache(
        store,
        client_id="ups-id",
        client_secret="ups-secret",
        base_url="https://ups.test",
        clock=clock,
        transport=_transport(requests, body=body, **kwargs),
    )


def _make_usps(store, clock, requests, **kwargs):
    body = kwargs.pop("body", {"access_token": "usps-token-1", "expires_in": 28800})
    return UspsTokenCache(
        store,
        client_id="usps-id",
        client_secret="usps-secret",
        base_url="https://usps.test/",
        clock=clock,
        transport=_transport(requests, body=body, **kwargs),
    )


@pytest.fixture
def store():
    return MemoryTokenStore()


class TestUpsExchange:

    @pytest.mark.asyncio
    async def test_fetches_and_persists_token(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests)

        token = await cache.get_token()

        assert token == "ups-token-1"
        record = await store.get("UPS")
        assert record.token == "ups-token-1"
        assert record.expires_at == clock.now + timedelta(seconds=14399)

    @pytest.mark.asyncio
    async def test_request_shape(self, store, clock):
        requests = []
        await _make_ups(store, clock, requests).get_token()

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://ups.test/security/v1/oauth/token"
        assert request.headers["authorization"].startswith("Basic ")
        assert parse_qs(request.content.decode()) == {"grant_type": ["client_credentials"]}

    @pytest.mark.asyncio
    async def test_error_envelope(self, store, clock):
        requests = []
        body = {"response": {"errors": [{"code": "10401", "message": "ClientId is Invalid"}]}}
        cache = _make_ups(store, clock, requests, status=401, body=body)

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "10401"
        assert exc_info.value.http_status == 401
        assert exc_info.value.message == "ClientId is Invalid"
        assert await store.get("UPS") is None

    @pytest.mark.asyncio
    async def test_error_without_envelope(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests, status=503, body={})

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "AUTH_FAILED"
        assert exc_info.value.http_status == 503
        assert "503" in exc_info.value.message


class TestUspsExchange:

    @pytest.mark.asyncio
    async def test_credentials_in_form_body(self, store, clock):
        requests = []
        token = await _make_usps(store, clock, requests).get_token()

        assert token == "usps-token-1"
        assert str(requests[0].url) == "https://usps.test/oauth2/v3/token"
        form = parse_qs(requests[0].content.decode())
        assert form["client_id"] == ["usps-id"]
        assert form["client_secret"] == ["usps-secret"]
        assert form["grant_type"] == ["client_credentials"]

    @pytest.mark.asyncio
    async def test_oauth_error_fields(self, store, clock):
        requests = []
        body = {"error": "invalid_client", "error_description": "Client authentication failed"}
        cache = _make_usps(store, clock, requests, status=401, body=body)

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "invalid_client"
        assert exc_info.value.message == "Client authentication failed"

    @pytest.mark.asyncio
    async def test_api_error_envelope(self, store, clock):
        requests = []
        body = {"apiError": {"error": {"code": "403", "message": "Forbidden product"}}}
        cache = _make_usps(store, clock, requests, status=403, body=body)

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "403"
        assert exc_info.value.message == "Forbidden product"

    @pytest.mark.asyncio
    async def test_error_object(self, store, clock):
        requests = []
        body = {"error": {"code": "UNAUTHORIZED", "message": "Invalid client secret"}}
        cache = _make_usps(store, clock, requests, status=401, body=body)

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "UNAUTHORIZED"
        assert exc_info.value.message == "Invalid client secret"
        assert exc_info.value.http_status == 401


class TestTokenBuffer:

    @pytest.mark.asyncio
    async def test_reuses_token_outside_buffer(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests)
        await store.upsert("UPS", "cached", clock.now + timedelta(minutes=6))

        assert await cache.get_token() == "cached"
        assert requests == []

    @pytest.mark.asyncio
    async def test_refetches_inside_buffer(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests)
        await store.upsert("UPS", "cached", clock.now + timedelta(minutes=4))

        assert await cache.get_token() == "ups-token-1"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_exact_buffer_boundary_refetches(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests)
        await store.upsert("UPS", "cached", clock.now + timedelta(minutes=5))

        assert await cache.get_token() == "ups-token-1"

    @pytest.mark.asyncio
    async def test_token_expires_as_clock_moves(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests, body={"access_token": "t", "expires_in": "600"})

        await cache.get_token()
        await cache.get_token()
        assert len(requests) == 1

        clock.advance(minutes=6)
        await cache.get_token()
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests)
        await store.upsert("UPS", "cached", clock.now + timedelta(hours=1))

        assert await cache.refresh_token() == "ups-token-1"
        assert (await store.get("UPS")).token == "ups-token-1"

    @pytest.mark.asyncio
    async def test_invalidate_removes_row(self, store, clock):
        cache = _make_ups(store, clock, [])
        await store.upsert("UPS", "cached", clock.now + timedelta(hours=1))

        await cache.invalidate_token()

        assert await store.get("UPS") is None


class TestTokenFailures:

    @pytest.mark.asyncio
    async def test_missing_credentials(self, store, clock):
        cache = UpsTokenCache(store, base_url="https://ups.test", clock=clock)

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "MISSING_CREDENTIALS"
        assert exc_info.value.http_status == 500

    @pytest.mark.asyncio
    async def test_timeout(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests, exc=httpx.ConnectTimeout("timed out"))

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "TIMEOUT"
        assert exc_info.value.http_status == 504

    @pytest.mark.asyncio
    async def test_transport_error(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests, exc=httpx.ConnectError("connection refused"))

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "FETCH_ERROR"
        assert exc_info.value.http_status == 500

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests, body={"token_type": "Bearer"})

        with pytest.raises(AuthError) as exc_info:
            await cache.get_token()

        assert exc_info.value.code == "FETCH_ERROR"

    @pytest.mark.asyncio
    async def test_no_internal_retry(self, store, clock):
        requests = []
        cache = _make_ups(store, clock, requests, status=500, body={})

        with pytest.raises(AuthError):
            await cache.get_token()

        assert len(requests) == 1
