# surety_oracle/ledger.py
"""
Ledger binding for the FlightSuretyApp contract.

Ledger is the surface the coordinator depends on; Web3Ledger implements
it against an Ethereum JSON-RPC node with web3.py. Events are delivered
by polling eth_getLogs from a configurable origin block, in chain order.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Protocol

from web3 import AsyncHTTPProvider, AsyncWeb3

from surety_oracle.abi import load_abi
from surety_oracle.config import BlockOrigin, Settings, parse_block

log = logging.getLogger("surety-oracle.ledger")

REQUEST_EVENT = "OracleRequest"
REPORT_EVENT = "OracleReport"
STATUS_INFO_EVENT = "FlightStatusInfo"

RawEvent = Dict[str, Any]


class Ledger(Protocol):
    async def accounts(self) -> List[str]: ...

    async def is_operational(self) -> bool: ...

    async def register_oracle(self, account: str, stake: int) -> None: ...

    async def get_assigned_indexes(self, account: str) -> List[int]: ...

    async def submit_response(self, account: str, index: int, airline: str,
                              flight: str, timestamp: int, status: int) -> str: ...

    async def fetch_flight_status(self, account: str, airline: str,
                                  flight: str, timestamp: int) -> str: ...

    def events(self, name: str, from_block: BlockOrigin) -> AsyncIterator[RawEvent]: ...


class TransactionReverted(RuntimeError):
    pass


class Web3Ledger:
    def __init__(self, w3: AsyncWeb3, app_address: str, abi=None, gas: int = 5000000,
                 poll_interval: float = 1.0):
        if not app_address:
            raise ValueError("FlightSuretyApp address is not configured")
        self.w3 = w3
        self.gas = gas
        self.poll_interval = poll_interval
        self.abi = abi if abi is not None else load_abi()
        self.contract = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(app_address),
            abi=self.abi,
        )

    @classmethod
    def from_settings(cls, settings: Settings):
        w3 = AsyncWeb3(AsyncHTTPProvider(settings.rpc_url))
        return cls(
            w3,
            settings.app_address,
            abi=load_abi(settings.abi_path),
            gas=settings.gas,
            poll_interval=settings.poll_interval,
        )

    # ── Calls ────────────────────────────────────────────────────────────────

    async def accounts(self) -> List[str]:
        return list(await self.w3.eth.accounts)

    async def is_operational(self) -> bool:
        return bool(await self.contract.functions.isOperational().call())

    async def get_assigned_indexes(self, account: str) -> List[int]:
        indexes = await self.contract.functions.getMyIndexes().call({"from": account})
        return [int(i) for i in indexes]

    # ── Transactions ─────────────────────────────────────────────────────────

    async def _send(self, fn, tx) -> str:
        tx = {"gas": self.gas, **tx}
        tx_hash = await fn.transact(tx)
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] == 0:
            raise TransactionReverted(f"transaction {tx_hash.hex()} reverted")
        return tx_hash.hex()

    async def register_oracle(self, account: str, stake: int) -> None:
        await self._send(self.contract.functions.registerOracle(), {"from": account, "value": stake})

    async def submit_response(self, account, index, airline, flight, timestamp, status) -> str:
        fn = self.contract.functions.submitOracleResponse(index, airline, flight, timestamp, status)
        return await self._send(fn, {"from": account})

    async def fetch_flight_status(self, account, airline, flight, timestamp) -> str:
        fn = self.contract.functions.fetchFlightStatus(airline, flight, timestamp)
        return await self._send(fn, {"from": account})

    # ── Event streams ────────────────────────────────────────────────────────

    async def _start_block(self, origin: BlockOrigin) -> int:
        origin = parse_block(origin)
        if origin == "earliest":
            return 0
        if origin == "latest":
            return await self.w3.eth.block_number + 1
        return origin

    def event_inputs(self, name: str) -> List[str]:
        """Argument names of a contract event, in ABI declaration order."""
        for item in self.abi:
            if item.get("type") == "event" and item.get("name") == name:
                return [i["name"] for i in item["inputs"]]
        raise KeyError(f"event {name} not in contract ABI")

    async def events(self, name: str, from_block: BlockOrigin) -> AsyncIterator[RawEvent]:
        """
        Yield raw events of one contract event type forever.

        `args` keeps ABI declaration order whether or not arguments are indexed.
        Node errors propagate to the caller; the stream never ends on its own.
        """
        event = getattr(self.contract.events, name)
        names = self.event_inputs(name)
        cursor = await self._start_block(from_block)
        log.info(f"Watching {name} from block {cursor}")
        while True:
            head = await self.w3.eth.block_number
            if head >= cursor:
                for entry in await event.get_logs(from_block=cursor, to_block=head):
                    yield {
                        "event": entry["event"],
                        "args": {n: entry["args"][n] for n in names},
                        "blockNumber": entry["blockNumber"],
                        "transactionHash": entry["transactionHash"].hex(),
                    }
                cursor = head + 1
            await asyncio.sleep(self.poll_interval)
