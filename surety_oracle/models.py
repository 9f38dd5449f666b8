# surety_oracle/models.py
from dataclasses import dataclass
from typing import FrozenSet


@dataclass(frozen=True)
class OracleIdentity:
    account: str
    indexes: FrozenSet[int]


@dataclass(frozen=True)
class StatusRequest:
    """Decoded OracleRequest event. Lives for one dispatch."""
    index: int
    airline: str
    flight: str
    timestamp: int


@dataclass(frozen=True)
class StatusResponseAttempt:
    identity: OracleIdentity
    request: StatusRequest
    status: int


@dataclass(frozen=True)
class StatusReport:
    """Decoded OracleReport / FlightStatusInfo event."""
    airline: str
    flight: str
    timestamp: int
    status: int
