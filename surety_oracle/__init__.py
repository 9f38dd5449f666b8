# surety_oracle/__init__.py
"""
Flight Surety oracle coordinator: registers a pool of simulated oracles with
the FlightSuretyApp contract and answers its OracleRequest events.
"""

from surety_oracle.dispatcher import Dispatcher
from surety_oracle.models import OracleIdentity, StatusReport, StatusRequest, StatusResponseAttempt
from surety_oracle.registry import OracleRegistry, register_oracles
from surety_oracle.strategy import STATUS_CODES, choose_status

__all__ = [
    "Dispatcher",
    "OracleIdentity",
    "OracleRegistry",
    "STATUS_CODES",
    "StatusReport",
    "StatusRequest",
    "StatusResponseAttempt",
    "choose_status",
    "register_oracles",
]
