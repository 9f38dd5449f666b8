# surety_oracle/config.py
"""
Runtime configuration.

Every knob has an environment variable and a default that matches the
local development chain (ganache/truffle, 40+ unlocked accounts).
An optional truffle-style config.json can supply the node URL and the
FlightSuretyApp address for a named network.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

BlockOrigin = Union[int, str]


def parse_block(value) -> BlockOrigin:
    """'earliest' | 'latest' | block number."""
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"block number must be >= 0, got {value}")
        return value
    text = str(value).strip().lower()
    if text in ("earliest", "latest"):
        return text
    if text.isdigit():
        return int(text)
    raise ValueError(f"invalid block origin: {value!r}")


# ── Defaults ──────────────────────────────────────────────────────────────────

RPC_URL = os.environ.get("SURETY_RPC_URL", "http://127.0.0.1:8545")
APP_ADDRESS = os.environ.get("SURETY_APP_ADDRESS", "")
ABI_PATH = os.environ.get("SURETY_ABI_PATH", "")
CONFIG_PATH = os.environ.get("SURETY_CONFIG_PATH", "")
NETWORK = os.environ.get("SURETY_NETWORK", "localhost")

ORACLE_FIRST_ACCOUNT = int(os.environ.get("SURETY_ORACLE_FIRST_ACCOUNT", "20"))
ORACLE_COUNT = int(os.environ.get("SURETY_ORACLE_COUNT", "20"))
ORACLE_STAKE_ETHER = os.environ.get("SURETY_ORACLE_STAKE_ETHER", "1")
GAS = int(os.environ.get("SURETY_GAS", "5000000"))

FROM_BLOCK = parse_block(os.environ.get("SURETY_FROM_BLOCK", "latest"))
POLL_INTERVAL = float(os.environ.get("SURETY_POLL_INTERVAL", "1.0"))
SHUTDOWN_GRACE = float(os.environ.get("SURETY_SHUTDOWN_GRACE", "5.0"))

HOST = os.environ.get("SURETY_HOST", "0.0.0.0")
PORT = int(os.environ.get("SURETY_PORT", "3000"))


@dataclass
class Settings:
    rpc_url: str = RPC_URL
    app_address: str = APP_ADDRESS
    abi_path: str = ABI_PATH
    oracle_first_account: int = ORACLE_FIRST_ACCOUNT
    oracle_count: int = ORACLE_COUNT
    oracle_stake_ether: str = ORACLE_STAKE_ETHER
    gas: int = GAS
    from_block: BlockOrigin = FROM_BLOCK
    poll_interval: float = POLL_INTERVAL
    shutdown_grace: float = SHUTDOWN_GRACE
    host: str = HOST
    port: int = PORT

    @classmethod
    def from_env(cls, config_path: Optional[str] = None, network: Optional[str] = None):
        settings = cls()
        path = config_path if config_path is not None else CONFIG_PATH
        if path:
            settings.apply_network_file(path, network or NETWORK)
        return settings

    def apply_network_file(self, path, network):
        """Take url/appAddress from a truffle-style {network: {...}} file."""
        data = json.loads(Path(path).read_text())
        if network not in data:
            raise KeyError(f"network {network!r} not found in {path}")
        entry = data[network]
        if entry.get("url"):
            self.rpc_url = entry["url"]
        if entry.get("appAddress"):
            self.app_address = entry["appAddress"]

    def oracle_accounts(self, accounts):
        """The slice of node accounts that act as oracles."""
        first = self.oracle_first_account
        picked = list(accounts[first:first + self.oracle_count])
        if len(picked) < self.oracle_count:
            raise ValueError(
                f"node exposes {len(accounts)} accounts, need "
                f"{first + self.oracle_count} for {self.oracle_count} oracles"
            )
        return picked
