# surety_oracle/errors.py
"""
Failure classes raised by the coordinator.

Each carries the context needed to line a log record up with the
ledger-side transaction receipt.
"""


class OracleError(Exception):
    pass


class RegistrationError(OracleError):
    """An oracle account could not be registered or its indexes fetched."""

    def __init__(self, account, cause):
        self.account = account
        self.cause = cause
        super().__init__(f"registration failed for {account}: {cause}")


class DecodeError(OracleError):
    """A ledger event could not be turned into a typed value."""

    def __init__(self, event_name, raw, cause):
        self.event_name = event_name
        self.raw = raw
        self.cause = cause
        super().__init__(f"cannot decode {event_name} event: {cause}")


class SubmissionError(OracleError):
    """A response transaction failed. Terminal for its (oracle, request) pair."""

    def __init__(self, identity, request, status, cause):
        self.identity = identity
        self.request = request
        self.status = status
        self.cause = cause
        super().__init__(
            f"oracle {identity.account} failed to answer index={request.index} "
            f"airline={request.airline} flight={request.flight} timestamp={request.timestamp} "
            f"status={status}: {cause}"
        )


class SubscriptionError(OracleError):
    """An event stream dropped. Fatal to the listener that owns it."""

    def __init__(self, event_name, cause):
        self.event_name = event_name
        self.cause = cause
        super().__init__(f"{event_name} subscription lost: {cause}")
