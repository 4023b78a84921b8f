"""
Unit tests for frame decoding and wire models.
"""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from flood_relay.models import (
    ConnectionCountMessage,
    DataFrame,
    ElevationStatus,
    EnrichedReading,
    FrameDecodeError,
    RainfallStatus,
    ThresholdPair,
    TimeFrame,
    decode_frame,
)


class TestDecodeFrame:
    """Tests for decode_frame()."""

    def test_data_frame(self):
        frame = decode_frame(json.dumps({
            "type": "data",
            "hardwareId": "AWLR-01",
            "elevation": 75,
            "curah_hujan": 30,
            "latitude": -5.13,
            "longitude": 119.45,
        }))

        assert isinstance(frame, DataFrame)
        assert frame.hardwareId == "AWLR-01"
        assert frame.elevation == 75
        assert frame.curah_hujan == 30
        assert frame.latitude == -5.13

    def test_missing_type_is_treated_as_data(self):
        frame = decode_frame('{"elevation": 120.5, "curah_hujan": 0}')
        assert isinstance(frame, DataFrame)
        assert frame.elevation == 120.5

    def test_time_frame(self):
        frame = decode_frame('{"type": "time", "timeReady": "07:00"}')
        assert isinstance(frame, TimeFrame)
        assert frame.timeReady == "07:00"

    def test_bytes_frame(self):
        frame = decode_frame(b'{"elevation": 90, "curah_hujan": 5}')
        assert isinstance(frame, DataFrame)

    def test_unknown_fields_are_ignored(self):
        frame = decode_frame('{"elevation": 90, "curah_hujan": 5, "battery": 3.7}')
        assert "battery" not in frame.model_dump()

    @pytest.mark.parametrize("raw", [
        "{not json",
        "",
        "[1, 2, 3]",
        '"just a string"',
        "42",
        '{"type": "reboot"}',
        '{"type": ["data"], "elevation": 1, "curah_hujan": 1}',
    ])
    def test_malformed_frames(self, raw):
        with pytest.raises(FrameDecodeError):
            decode_frame(raw)

    @pytest.mark.parametrize("payload", [
        {"type": "data", "curah_hujan": 10},
        {"type": "data", "elevation": 10},
        {"type": "data", "elevation": "75", "curah_hujan": 10},
        {"type": "data", "elevation": 75, "curah_hujan": "heavy"},
        {"type": "data", "elevation": True, "curah_hujan": 10},
        {"type": "data", "elevation": None, "curah_hujan": 10},
    ])
    def test_missing_or_mistyped_numbers(self, payload):
        with pytest.raises(FrameDecodeError):
            decode_frame(json.dumps(payload))

    def test_nan_is_rejected(self):
        with pytest.raises(FrameDecodeError):
            decode_frame('{"elevation": NaN, "curah_hujan": 1}')

    @pytest.mark.parametrize("raw", [
        '{"elevation": 1e400, "curah_hujan": 30}',
        '{"elevation": 75, "curah_hujan": -1e400}',
        '{"elevation": Infinity, "curah_hujan": 30}',
    ])
    def test_infinite_numbers_are_rejected(self, raw):
        with pytest.raises(FrameDecodeError):
            decode_frame(raw)

    def test_deeply_nested_frame_is_malformed(self):
        with pytest.raises(FrameDecodeError):
            decode_frame("[" * 100000 + "]" * 100000)

    def test_optional_fields_keep_whatever_type_was_sent(self):
        frame = decode_frame(json.dumps({
            "hardwareId": 1.5,
            "elevation": 75,
            "curah_hujan": 30,
            "latitude": "-6.2",
            "level_siaga": {"cm": 100},
        }))

        assert frame.hardwareId == 1.5
        assert frame.latitude == "-6.2"
        assert frame.level_siaga == {"cm": 100}


class TestThresholdPair:
    """Tests for ThresholdPair."""

    def test_from_endpoint_body(self):
        pair = ThresholdPair.model_validate({"Normal": 100, "Banjir": 80})
        assert pair.normal == 100
        assert pair.banjir == 80

    def test_by_field_name(self):
        pair = ThresholdPair(normal=10, banjir=5)
        assert (pair.normal, pair.banjir) == (10, 5)

    def test_inverted_pair_is_rejected(self):
        with pytest.raises(ValidationError):
            ThresholdPair(normal=80, banjir=100)

    def test_equal_pair_is_rejected(self):
        with pytest.raises(ValidationError):
            ThresholdPair(normal=80, banjir=80)

    def test_frozen(self):
        pair = ThresholdPair(normal=100, banjir=80)
        with pytest.raises(ValidationError):
            pair.normal = 50


class TestEnrichedReading:
    """Tests for outbound reading frames."""

    def test_timestamp_format(self):
        moment = datetime(2026, 10, 19, 7, 5, 9, tzinfo=timezone.utc)
        assert EnrichedReading.format_timestamp(moment) == "Mon, 19 Oct 2026 07:05:09 UTC"

    def test_from_frame_echoes_fields(self):
        frame = decode_frame(json.dumps({
            "hardwareId": 7,
            "elevation": 75,
            "curah_hujan": 30,
            "level_siaga": 100,
            "level_banjir": 80,
        }))
        reading = EnrichedReading.from_frame(
            frame,
            status_elevation=ElevationStatus.BANJIR,
            status_curah_hujan=RainfallStatus.SEDANG,
            captured_at=datetime(2026, 10, 19, tzinfo=timezone.utc),
        )
        body = json.loads(reading.model_dump_json())

        assert body["type"] == "data"
        assert body["hardwareId"] == 7
        assert body["elevation"] == 75
        assert body["status_elevation"] == "Banjir"
        assert body["status_curah_hujan"] == "Hujan sedang"
        assert body["level_siaga"] == 100
        assert body["latitude"] is None
        assert body["timestamp"] == "Mon, 19 Oct 2026 00:00:00 UTC"


def test_connection_count_message():
    body = json.loads(ConnectionCountMessage(connection_count=3).model_dump_json())
    assert body == {"type": "connection", "connection_count": 3}
