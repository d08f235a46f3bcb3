"""Tests for the bounded async retry helper."""

import asyncio

import httpx
import pytest

from soundnest.services.retry import backoff_delay, is_transient_http_error, retry_async


def status_error(code):
    request = httpx.Request("POST", "https://inference.test/models/m")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class FlakyCall:
    """Raises the queued errors in order, then returns "ok"."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def run(coro):
    return asyncio.run(coro)


def test_backoff_doubles_and_caps():
    assert [backoff_delay(n, 0.5) for n in range(4)] == [0.5, 1.0, 2.0, 4.0]
    assert backoff_delay(10, 1.0, maximum=16.0) == 16.0


def test_transient_predicate():
    assert is_transient_http_error(status_error(503))
    assert is_transient_http_error(status_error(429))
    assert is_transient_http_error(httpx.ConnectTimeout("timed out"))
    assert not is_transient_http_error(status_error(400))
    assert not is_transient_http_error(ValueError("bad json"))


def test_retries_transient_errors_then_succeeds():
    call = FlakyCall(status_error(503), httpx.ConnectError("refused"))
    sleep = RecordingSleep()

    result = run(retry_async(call, max_attempts=3, backoff=0.25, sleep=sleep))

    assert result == "ok"
    assert call.calls == 3
    assert sleep.delays == [0.25, 0.5]


def test_client_errors_are_not_retried():
    call = FlakyCall(status_error(401))
    sleep = RecordingSleep()

    with pytest.raises(httpx.HTTPStatusError):
        run(retry_async(call, max_attempts=5, sleep=sleep))

    assert call.calls == 1
    assert sleep.delays == []


def test_last_error_propagates_when_attempts_run_out():
    call = FlakyCall(status_error(500), status_error(502), status_error(504))
    sleep = RecordingSleep()

    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        run(retry_async(call, max_attempts=3, backoff=0.1, sleep=sleep))

    assert excinfo.value.response.status_code == 504
    assert call.calls == 3
    assert len(sleep.delays) == 2


def test_custom_predicate():
    call = FlakyCall(KeyError("once"))
    result = run(retry_async(call, max_attempts=2, is_retryable=lambda e: isinstance(e, KeyError),
                             sleep=RecordingSleep()))
    assert result == "ok"
