import json
import logging

import pytest

from signed_store.logger import JsonFormatter, get_logger
from signed_store.utils import b64d, b64e, canonical_json, parse_duration, parse_ts


@pytest.mark.parametrize("text,seconds", [
    ("1d", 86400),
    ("2h30m", 9000),
    ("2h 30m", 9000),
    ("90 sec", 90),
    ("1w", 604800),
    ("500ms", 0.5),
    ("1h1m1s", 3661),
    ("3 days", 259200),
])
def test_parse_duration(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "   ", "10", "d", "1x", "1h junk", "-1h", "1.5h"])
def test_parse_duration_rejects(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_parse_ts():
    dt = parse_ts("2024-05-01T12:00:00Z")
    assert dt.year == 2024 and dt.hour == 12
    assert dt.utcoffset().total_seconds() == 0
    assert parse_ts(None) is None
    with pytest.raises(ValueError):
        parse_ts("yesterday")


def test_b64_round_trip_and_strictness():
    assert b64d(b64e(b"\x00\x01")) == b"\x00\x01"
    with pytest.raises(ValueError):
        b64d("not base64!")


def test_canonical_json_is_order_independent():
    assert canonical_json({"b": 1, "a": "ü"}) == canonical_json({"a": "ü", "b": 1})
    assert canonical_json({"b": 1, "a": 2}) == b'{"a":2,"b":1}'


def test_get_logger_namespaces():
    assert get_logger("reaper").name == "signed_store.reaper"
    assert get_logger("signed_store.http").name == "signed_store.http"
    assert get_logger().name == "signed_store"


def test_json_formatter_emits_one_object_per_record():
    record = logging.LogRecord("signed_store.http", logging.INFO, __file__, 1, "GET %s", ("/k",), None)
    entry = json.loads(JsonFormatter().format(record))
    assert entry["level"] == "INFO"
    assert entry["name"] == "signed_store.http"
    assert entry["msg"] == "GET /k"
    assert entry["ts"].endswith("Z")
