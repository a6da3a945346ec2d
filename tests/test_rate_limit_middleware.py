# This project was developed with assistance from AI tools.
"""Tests for caller identification and rate limit response helpers."""

from datetime import UTC, datetime, timedelta

from starlette.requests import Request

from navigator.middleware.rate_limit import (
    client_address,
    client_identifier,
    hash_user_agent,
    hours_until,
    rate_limit_headers,
    rate_limited_message,
    seconds_until,
)
from navigator.services.rate_limit import RateDecision

NOW = datetime(2025, 10, 9, 12, 0, tzinfo=UTC)


def _request(headers: dict[str, str] | None = None, host: str = "10.0.0.1") -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/assistant/classify",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (host, 5000),
    }
    return Request(scope)


# -- Identification --


def test_identifier_is_deterministic():
    assert client_identifier("1.2.3.4", "Mozilla/5.0") == client_identifier(
        "1.2.3.4", "Mozilla/5.0"
    )


def test_identifier_format():
    identifier = client_identifier("1.2.3.4", "Mozilla/5.0")
    address, digest = identifier.split("_")
    assert address == "1.2.3.4"
    assert digest == hash_user_agent("Mozilla/5.0")
    assert len(digest) == 12


def test_different_user_agents_differ():
    assert client_identifier("1.2.3.4", "A") != client_identifier("1.2.3.4", "B")


def test_missing_user_agent_uses_placeholder():
    assert client_identifier("1.2.3.4", None) == client_identifier("1.2.3.4", "unknown")


def test_address_from_socket_by_default():
    request = _request({"X-Forwarded-For": "203.0.113.7"})
    assert client_address(request) == "10.0.0.1"


def test_address_from_forwarded_for_when_trusted():
    request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
    assert client_address(request, trust_forwarded_for=True) == "203.0.113.7"


def test_trusted_but_absent_forwarded_for_uses_socket():
    assert client_address(_request(), trust_forwarded_for=True) == "10.0.0.1"


# -- Headers and messages --


def test_headers_for_allowed_decision():
    reset = NOW + timedelta(hours=12)
    headers = rate_limit_headers(RateDecision(True, 12, 30, reset))
    assert headers == {
        "X-RateLimit-Limit": "30",
        "X-RateLimit-Remaining": "12",
        "X-RateLimit-Reset": reset.isoformat(),
    }


def test_seconds_until_rounds_up_and_clamps():
    assert seconds_until(NOW + timedelta(seconds=1.2), NOW) == 2
    assert seconds_until(NOW - timedelta(seconds=5), NOW) == 0


def test_hours_until_rounds_up():
    assert hours_until(NOW + timedelta(hours=11, minutes=1), NOW) == 12
    assert hours_until(NOW + timedelta(hours=3), NOW) == 3


def test_hours_until_is_at_least_one():
    assert hours_until(NOW + timedelta(seconds=30), NOW) == 1
    assert hours_until(NOW - timedelta(hours=1), NOW) == 1


def test_rate_limited_message_mentions_hours():
    message = rate_limited_message(NOW + timedelta(hours=5), NOW)
    assert "5 soatdan keyin" in message
