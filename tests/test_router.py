"""Tests for parceltrack.router - carrier detection"""

import pytest

from parceltrack.models import Carrier
from parceltrack.router import (
    CARRIER_RULES,
    SUPPORTED_FORMATS,
    detect_carrier,
    get_tracking_url,
    normalize_tracking_number,
)


class TestNormalizeTrackingNumber:

    def test_strips_all_whitespace_and_uppercases(self):
        assert normalize_tracking_number(" 1z 999aa1\t0123456784\n") == "1Z999AA10123456784"

    def test_empty_and_none(self):
        assert normalize_tracking_number("") == ""
        assert normalize_tracking_number(None) == ""


class TestDetectCarrier:

    @pytest.mark.parametrize("tracking_number, expected", [
        ("1Z999AA10123456784", Carrier.UPS),
        ("1z999aa10123456784", Carrier.UPS),
        ("1Z 999 AA1 0123456784", Carrier.UPS),
        ("9400111899223100012345", Carrier.USPS),
        ("9205590164917312751089", Carrier.USPS),
        ("LOC123DEL", Carrier.LOCAL),
        ("loc-anything", Carrier.LOCAL),
        ("123456789012", Carrier.FEDEX),
    ])
    def test_known_formats(self, tracking_number, expected):
        assert detect_carrier(tracking_number) == expected

    @pytest.mark.parametrize("tracking_number", [
        "",
        "   ",
        "HELLO",
        "1Z123",
        "12345",
    ])
    def test_unmatched_returns_none(self, tracking_number):
        assert detect_carrier(tracking_number) is None

    def test_usps_wins_over_numeric_fallback(self):
        # 22 digits match both the USPS prefix rule and the generic numeric rule
        assert detect_carrier("9400111899223100012345") == Carrier.USPS

    def test_non_usps_prefix_falls_to_fedex(self):
        assert detect_carrier("8400111899223100012345") == Carrier.FEDEX

    def test_rule_order(self):
        assert [c for c, _ in CARRIER_RULES] == [
            Carrier.UPS, Carrier.USPS, Carrier.LOCAL, Carrier.FEDEX,
        ]

    def test_deterministic(self):
        results = {detect_carrier("1Z999AA10123456784") for _ in range(10)}
        assert results == {Carrier.UPS}


class TestTrackingUrls:

    def test_ups_url(self):
        url = get_tracking_url(Carrier.UPS, "1z999aa10123456784")
        assert url == "https://www.ups.com/track?tracknum=1Z999AA10123456784"

    def test_usps_url(self):
        assert "tLabels=9400111899223100012345" in get_tracking_url(
            Carrier.USPS, "9400111899223100012345"
        )

    def test_local_has_no_url(self):
        assert get_tracking_url(Carrier.LOCAL, "LOC1") is None

    def test_supported_formats_cover_wired_carriers(self):
        assert set(SUPPORTED_FORMATS) == {"UPS", "USPS", "LOCAL"}
