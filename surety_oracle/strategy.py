# surety_oracle/strategy.py
"""
Response strategies: StatusRequest -> status code.

A strategy is any callable with that shape. The dispatcher only calls it,
so swapping one in (e.g. fixed_status for tests) touches nothing else.
"""

import random
from typing import Callable

from surety_oracle.models import StatusRequest

STATUS_UNKNOWN = 0
STATUS_ON_TIME = 10
STATUS_LATE_AIRLINE = 20
STATUS_LATE_WEATHER = 30
STATUS_LATE_TECHNICAL = 40
STATUS_LATE_OTHER = 50

STATUS_CODES = (
    STATUS_UNKNOWN,
    STATUS_ON_TIME,
    STATUS_LATE_AIRLINE,
    STATUS_LATE_WEATHER,
    STATUS_LATE_TECHNICAL,
    STATUS_LATE_OTHER,
)

STATUS_NAMES = {
    STATUS_UNKNOWN: "Unknown",
    STATUS_ON_TIME: "OnTime",
    STATUS_LATE_AIRLINE: "LateAirline",
    STATUS_LATE_WEATHER: "LateWeather",
    STATUS_LATE_TECHNICAL: "LateTechnical",
    STATUS_LATE_OTHER: "LateOther",
}

StatusStrategy = Callable[[StatusRequest], int]

_rng = random.SystemRandom()


def choose_status(request: StatusRequest) -> int:
    """Uniform pick over STATUS_CODES; request content is ignored."""
    return _rng.choice(STATUS_CODES)


def seeded_status(seed) -> StatusStrategy:
    """Uniform strategy with its own reproducible random source."""
    rng = random.Random(seed)

    def strategy(request: StatusRequest) -> int:
        return rng.choice(STATUS_CODES)

    return strategy


def fixed_status(status: int) -> StatusStrategy:
    if status not in STATUS_CODES:
        raise ValueError(f"unknown status code {status}")
    return lambda request: status


def status_name(status: int) -> str:
    return STATUS_NAMES.get(status, f"Status{status}")
