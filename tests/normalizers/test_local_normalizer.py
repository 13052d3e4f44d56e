"""Tests for parceltrack.normalizers.local"""

from parceltrack.models import Carrier, ShipmentStatus
from parceltrack.normalizers.local import normalize_local_response
from parceltrack.server.models import ShipmentModel


class TestNormalizeLocalResponse:

    def test_maps_payload(self):
        raw = {
            "trackingNumber": "LOC1DEL",
            "status": "DELIVERED",
            "estimatedDelivery": None,
            "currentLocation": "Beaverton, OR 97005",
            "events": [
                {"timestamp": "2025-01-12T12:00:00+00:00", "location": "A", "description": "a", "status": "RECEIVED"},
                {"timestamp": "2025-01-15T12:00:00+00:00", "location": "B", "description": "b", "status": "DELIVERED"},
            ],
        }
        result = normalize_local_response(raw)
        assert result.carrier == Carrier.LOCAL
        assert result.status == ShipmentStatus.DELIVERED
        assert result.estimated_delivery is None
        assert [e.status for e in result.events] == ["DELIVERED", "RECEIVED"]

    def test_unknown_status(self):
        assert normalize_local_response({"status": "LOST"}).status == ShipmentStatus.UNKNOWN

    def test_total_over_empty(self):
        result = normalize_local_response(None)
        assert result.tracking_number == "UNKNOWN"
        assert result.events == []
        assert result.current_location is None

    def test_non_string_fields_are_coerced(self):
        raw = {
            "trackingNumber": 42,
            "status": "TRANSIT",
            "currentLocation": {"city": "Portland"},
            "events": [
                {"timestamp": "2025-01-14T10:30:00Z", "location": None, "description": 9, "status": 3.5},
            ],
        }
        result = normalize_local_response(raw)

        assert result.tracking_number == "42"
        assert result.current_location is None
        event = result.events[0]
        assert event.location == "Unknown Location"
        assert event.description == "9"
        assert event.status == "3.5"
        ShipmentModel(**result.to_dict())
