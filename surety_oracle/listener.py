# surety_oracle/listener.py
"""
Event listeners.

Each listener consumes one ledger event stream for the life of the
process. A malformed event is logged and skipped; a broken stream is
raised as SubscriptionError so the service can stop.
"""

import logging

from surety_oracle.errors import DecodeError, SubscriptionError
from surety_oracle.ledger import REPORT_EVENT, REQUEST_EVENT, STATUS_INFO_EVENT
from surety_oracle.models import StatusReport, StatusRequest
from surety_oracle.strategy import status_name

log = logging.getLogger("surety-oracle.listener")


def _fields(name, raw, count):
    """Event arguments in ABI order."""
    try:
        values = list(raw["args"].values())
    except (KeyError, TypeError, AttributeError) as e:
        raise DecodeError(name, raw, f"no argument mapping ({e!r})") from e
    if len(values) != count:
        raise DecodeError(name, raw, f"expected {count} arguments, got {len(values)}")
    return values


def _as_int(name, raw, field, value):
    if isinstance(value, bool):
        raise DecodeError(name, raw, f"{field} is not an integer: {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise DecodeError(name, raw, f"{field} is not an integer: {value!r}") from e
    if number < 0:
        raise DecodeError(name, raw, f"{field} is negative: {number}")
    return number


def _as_text(name, raw, field, value):
    if not isinstance(value, str) or not value:
        raise DecodeError(name, raw, f"{field} is not a non-empty string: {value!r}")
    return value


def decode_request(raw) -> StatusRequest:
    index, airline, flight, timestamp = _fields(REQUEST_EVENT, raw, 4)
    return StatusRequest(
        index=_as_int(REQUEST_EVENT, raw, "index", index),
        airline=_as_text(REQUEST_EVENT, raw, "airline", airline),
        flight=_as_text(REQUEST_EVENT, raw, "flight", flight),
        timestamp=_as_int(REQUEST_EVENT, raw, "timestamp", timestamp),
    )


def decode_report(name, raw) -> StatusReport:
    airline, flight, timestamp, status = _fields(name, raw, 4)
    return StatusReport(
        airline=_as_text(name, raw, "airline", airline),
        flight=_as_text(name, raw, "flight", flight),
        timestamp=_as_int(name, raw, "timestamp", timestamp),
        status=_as_int(name, raw, "status", status),
    )


class EventListener:
    event_name = ""

    def __init__(self, ledger, from_block="latest"):
        self.ledger = ledger
        self.from_block = from_block
        self.received = 0
        self.skipped = 0

    def handle(self, raw):
        raise NotImplementedError

    async def run(self):
        """Consume the stream until cancelled. Raises SubscriptionError if it breaks."""
        log.info(f"Subscribing to {self.event_name} from {self.from_block}")
        try:
            async for raw in self.ledger.events(self.event_name, self.from_block):
                self.received += 1
                try:
                    self.handle(raw)
                except DecodeError as e:
                    self.skipped += 1
                    log.warning(f"Skipping event: {e} raw={e.raw!r}")
                except Exception as e:
                    self.skipped += 1
                    log.error(f"Failed to handle {self.event_name} event: {e!r} raw={raw!r}")
        except SubscriptionError:
            raise
        except Exception as e:
            raise SubscriptionError(self.event_name, e) from e
        raise SubscriptionError(self.event_name, "event stream ended")


class RequestListener(EventListener):
    event_name = REQUEST_EVENT

    def __init__(self, ledger, dispatcher, from_block="latest"):
        super().__init__(ledger, from_block)
        self.dispatcher = dispatcher

    def handle(self, raw):
        request = decode_request(raw)
        log.info(
            f"Request index={request.index} airline={request.airline} "
            f"flight={request.flight} timestamp={request.timestamp}"
        )
        self.dispatcher.dispatch(request)


class ReportListener(EventListener):
    """Logs a decoded status event. Makes no decisions."""

    def __init__(self, ledger, event_name, label, from_block="latest"):
        super().__init__(ledger, from_block)
        self.event_name = event_name
        self.label = label

    def handle(self, raw):
        report = decode_report(self.event_name, raw)
        log.info(
            f"Event from {self.label}: airline {report.airline} flight {report.flight} "
            f"timestamp {report.timestamp} statusCode {report.status} ({status_name(report.status)})"
        )


def informational_listeners(ledger, from_block="latest"):
    return [
        ReportListener(ledger, REPORT_EVENT, "oracle report", from_block),
        ReportListener(ledger, STATUS_INFO_EVENT, "FlightStatusInfo", from_block),
    ]
