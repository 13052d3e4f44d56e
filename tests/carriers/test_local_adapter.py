"""Tests for parceltrack.carriers.local"""

import json
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from parceltrack.carriers.local import LocalCourierAdapter, SimulatedTokenCache
from parceltrack.errors import TrackingError
from parceltrack.models import Carrier, ShipmentStatus
from parceltrack.tokens.store import MemoryTokenStore


def _make_adapter(clock, failure_rate=0.0, rng=None, store=None):
    return LocalCourierAdapter(
        SimulatedTokenCache(store or MemoryTokenStore(), clock=clock),
        latency_seconds=0,
        failure_rate=failure_rate,
        rng=rng,
        clock=clock,
    )


class TestLocalOutcomes:

    @pytest.mark.asyncio
    async def test_delivered_suffix(self, clock):
        shipment = await _make_adapter(clock).fetch_shipment("LOC123DEL")

        assert shipment.carrier == Carrier.LOCAL
        assert shipment.status == ShipmentStatus.DELIVERED
        assert shipment.estimated_delivery is None
        assert shipment.current_location == "Beaverton, OR 97005"
        assert len(shipment.events) == 4
        assert shipment.events[0].status == "DELIVERED"
        assert shipment.events[-1].status == "RECEIVED"

    @pytest.mark.asyncio
    async def test_exception_suffix(self, clock):
        shipment = await _make_adapter(clock).fetch_shipment("LOC123EXC")

        assert shipment.status == ShipmentStatus.EXCEPTION
        assert shipment.estimated_delivery == clock.now + timedelta(days=3)
        assert shipment.current_location == "Local Delivery Station, Beaverton, OR"

    @pytest.mark.asyncio
    async def test_default_transit(self, clock):
        shipment = await _make_adapter(clock).fetch_shipment("loc 42")

        assert shipment.tracking_number == "LOC42"
        assert shipment.status == ShipmentStatus.TRANSIT
        assert shipment.estimated_delivery == clock.now + timedelta(days=1)
        assert shipment.events[0].description == "Arrived at local delivery station"

    @pytest.mark.asyncio
    async def test_events_newest_first(self, clock):
        shipment = await _make_adapter(clock).fetch_shipment("LOC1")
        stamps = [e.timestamp for e in shipment.events]
        assert stamps == sorted(stamps, reverse=True)

    @pytest.mark.asyncio
    async def test_not_found(self, clock):
        with pytest.raises(TrackingError) as exc_info:
            await _make_adapter(clock).track("LOCNOTFOUND1")

        assert exc_info.value.http_status == 404
        assert exc_info.value.provider_error_code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_empty_tracking_number(self, clock):
        with pytest.raises(TrackingError) as exc_info:
            await _make_adapter(clock).track("")
        assert exc_info.value.http_status == 400


class TestLocalFailureInjection:

    @pytest.mark.asyncio
    async def test_always_fails_at_rate_one(self, clock):
        with pytest.raises(TrackingError) as exc_info:
            await _make_adapter(clock, failure_rate=1.0).track("LOC1")

        assert exc_info.value.http_status == 503
        assert exc_info.value.provider_error_code == "SERVICE_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_draw_below_rate_fails(self, clock):
        rng = MagicMock()
        rng.random.return_value = 0.01

        with pytest.raises(TrackingError):
            await _make_adapter(clock, failure_rate=0.05, rng=rng).track("LOC1")

    @pytest.mark.asyncio
    async def test_draw_above_rate_succeeds(self, clock):
        rng = MagicMock()
        rng.random.return_value = 0.5

        raw = await _make_adapter(clock, failure_rate=0.05, rng=rng).track("LOC1")
        assert raw["status"] == "TRANSIT"

    @pytest.mark.asyncio
    async def test_zero_rate_never_draws(self, clock):
        rng = MagicMock()
        await _make_adapter(clock, rng=rng).track("LOC1")
        rng.random.assert_not_called()

    def test_rejects_invalid_rate(self, clock):
        with pytest.raises(ValueError):
            _make_adapter(clock, failure_rate=1.5)


class TestLocalToken:

    @pytest.mark.asyncio
    async def test_requires_simulated_token(self, clock):
        store = MemoryTokenStore()
        await _make_adapter(clock, store=store).track("LOC1")

        record = await store.get("LOCAL")
        assert record is not None
        assert record.token.startswith("local-")

    @pytest.mark.asyncio
    async def test_token_reused_between_calls(self, clock):
        store = MemoryTokenStore()
        adapter = _make_adapter(clock, store=store)
        await adapter.track("LOC1")
        first = (await store.get("LOCAL")).token
        await adapter.track("LOC2")
        assert (await store.get("LOCAL")).token == first


class TestLocalMisc:

    @pytest.mark.asyncio
    async def test_track_raw_is_json(self, clock):
        payload = await _make_adapter(clock).track_raw("LOC1DEL")
        assert json.loads(payload)["status"] == "DELIVERED"

    def test_service_info(self, clock):
        info = _make_adapter(clock, failure_rate=0.2).service_info()
        assert info["name"] == "Local Courier Service"
        assert info["simulated"] is True
        assert info["latency_seconds"] == 0
        assert info["failure_rate"] == 0.2
