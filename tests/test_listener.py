import asyncio
import logging

import pytest

from conftest import FakeLedger, account, report_event, request_event
from surety_oracle.dispatcher import Dispatcher
from surety_oracle.errors import DecodeError, SubscriptionError
from surety_oracle.listener import (
    RequestListener,
    decode_report,
    decode_request,
    informational_listeners,
)
from surety_oracle.models import OracleIdentity, StatusRequest
from surety_oracle.registry import OracleRegistry


def test_decode_request():
    request = decode_request(request_event(7, flight="UA90", timestamp=42))
    assert request == StatusRequest(index=7, airline=account(1), flight="UA90", timestamp=42)


def test_decode_request_is_positional():
    raw = {"args": {"a": "3", "b": account(2), "c": "LH400", "d": 99}}
    assert decode_request(raw) == StatusRequest(3, account(2), "LH400", 99)


@pytest.mark.parametrize("raw", [
    None,
    {},
    {"args": {"index": 1, "airline": account(1), "flight": "X"}},
    {"args": {"index": "one", "airline": account(1), "flight": "X", "timestamp": 1}},
    {"args": {"index": -1, "airline": account(1), "flight": "X", "timestamp": 1}},
    {"args": {"index": True, "airline": account(1), "flight": "X", "timestamp": 1}},
    {"args": {"index": 1, "airline": None, "flight": "X", "timestamp": 1}},
    {"args": {"index": 1, "airline": account(1), "flight": "", "timestamp": 1}},
])
def test_decode_request_rejects_malformed(raw):
    with pytest.raises(DecodeError):
        decode_request(raw)


def test_decode_report():
    report = decode_report("OracleReport", report_event("OracleReport", 20))
    assert (report.flight, report.status) == ("ND1309", 20)


def run_request_listener(ledger, registry):
    dispatcher = Dispatcher(ledger, registry)
    listener = RequestListener(ledger, dispatcher, from_block="earliest")

    async def scenario():
        with pytest.raises(SubscriptionError) as excinfo:
            await listener.run()
        await dispatcher.drain(1.0)
        return excinfo.value

    return listener, dispatcher, asyncio.run(scenario())


def test_listener_skips_malformed_event_and_continues(caplog):
    ledger = FakeLedger()
    ledger.streams["OracleRequest"] = [
        {"args": {"index": "garbage"}},
        request_event(1, flight="AA1"),
        request_event(2, flight="AA2"),
    ]
    registry = OracleRegistry([OracleIdentity(account(20), frozenset({1, 2}))])

    listener, dispatcher, error = run_request_listener(ledger, registry)

    assert listener.received == 3
    assert listener.skipped == 1
    assert [s[3] for s in ledger.submissions] == ["AA1", "AA2"]
    assert dispatcher.stats.requests == 2
    assert "ended" in str(error)
    assert any("Skipping event" in r.getMessage() for r in caplog.records)


def test_every_event_dispatched_once():
    ledger = FakeLedger()
    ledger.streams["OracleRequest"] = [request_event(i % 3, flight=f"F{i}") for i in range(30)]
    registry = OracleRegistry([
        OracleIdentity(account(20), frozenset({0})),
        OracleIdentity(account(21), frozenset({0, 1})),
    ])

    listener, dispatcher, _ = run_request_listener(ledger, registry)

    assert dispatcher.stats.requests == 30
    assert dispatcher.stats.unanswered == 10
    assert len(ledger.submissions) == 10 * 2 + 10 * 1


def test_stream_failure_is_subscription_error():
    ledger = FakeLedger()
    ledger.streams["OracleRequest"] = [request_event(1), ConnectionError("websocket closed")]
    registry = OracleRegistry([OracleIdentity(account(20), frozenset({1}))])

    listener, _, error = run_request_listener(ledger, registry)

    assert isinstance(error.cause, ConnectionError)
    assert error.event_name == "OracleRequest"
    assert len(ledger.submissions) == 1


def test_informational_listeners_only_log(caplog):
    caplog.set_level(logging.INFO)
    ledger = FakeLedger()
    ledger.streams["OracleReport"] = [report_event("OracleReport", 10), {"args": None}]
    ledger.streams["FlightStatusInfo"] = [report_event("FlightStatusInfo", 20)]

    async def scenario():
        results = await asyncio.gather(
            *(listener.run() for listener in informational_listeners(ledger)),
            return_exceptions=True,
        )
        return results

    results = asyncio.run(scenario())

    assert all(isinstance(r, SubscriptionError) for r in results)
    messages = [r.getMessage() for r in caplog.records]
    assert any("oracle report" in m and "statusCode 10" in m for m in messages)
    assert any("FlightStatusInfo" in m and "statusCode 20" in m for m in messages)
    assert ledger.submissions == []


def test_handler_failure_does_not_end_subscription(caplog):
    class FlakyDispatcher:
        def __init__(self):
            self.requests = []

        def dispatch(self, request):
            if not self.requests and request.flight == "AA1":
                self.requests.append(None)
                raise RuntimeError("dispatch blew up")
            self.requests.append(request)

    ledger = FakeLedger()
    ledger.streams["OracleRequest"] = [request_event(1, flight="AA1"), request_event(2, flight="AA2")]
    dispatcher = FlakyDispatcher()
    listener = RequestListener(ledger, dispatcher)

    with pytest.raises(SubscriptionError) as excinfo:
        asyncio.run(listener.run())

    assert "ended" in str(excinfo.value)
    assert [r.flight for r in dispatcher.requests if r] == ["AA2"]
    assert listener.received == 2
    assert listener.skipped == 1
    errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "dispatch blew up" in errors[0]
