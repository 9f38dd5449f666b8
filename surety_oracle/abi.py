# surety_oracle/abi.py
"""
FlightSuretyApp ABI, limited to the members the oracle coordinator touches.
A full truffle build artifact can be used instead (see load_abi).
"""

import json
from pathlib import Path


def _event(name, *inputs):
    return {
        "anonymous": False,
        "name": name,
        "type": "event",
        "inputs": [{"indexed": False, "name": n, "type": t} for n, t in inputs],
    }


def _function(name, inputs=(), outputs=(), mutability="nonpayable"):
    return {
        "name": name,
        "type": "function",
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


FLIGHT_SURETY_APP_ABI = [
    _function("isOperational", outputs=[("", "bool")], mutability="view"),
    _function("registerOracle", mutability="payable"),
    _function("getMyIndexes", outputs=[("", "uint8[3]")], mutability="view"),
    _function(
        "fetchFlightStatus",
        inputs=[("airline", "address"), ("flight", "string"), ("timestamp", "uint256")],
    ),
    _function(
        "submitOracleResponse",
        inputs=[
            ("index", "uint8"),
            ("airline", "address"),
            ("flight", "string"),
            ("timestamp", "uint256"),
            ("statusCode", "uint8"),
        ],
    ),
    _event("OracleRequest", ("index", "uint8"), ("airline", "address"),
           ("flight", "string"), ("timestamp", "uint256")),
    _event("OracleReport", ("airline", "address"), ("flight", "string"),
           ("timestamp", "uint256"), ("status", "uint8")),
    _event("FlightStatusInfo", ("airline", "address"), ("flight", "string"),
           ("timestamp", "uint256"), ("status", "uint8")),
]


def load_abi(path=None):
    """ABI from a truffle artifact ({"abi": [...]}) or a bare list; built-in otherwise."""
    if not path:
        return FLIGHT_SURETY_APP_ABI
    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        return data["abi"]
    return data
