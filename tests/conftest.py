import asyncio

import pytest

from surety_oracle.models import StatusRequest


def account(i):
    return f"0x{i:040x}"


class FakeLedger:
    """In-memory stand-in for the FlightSuretyApp contract."""

    def __init__(self, assignments=None, n_accounts=40, operational=True):
        self._accounts = [account(i) for i in range(n_accounts)]
        self.assignments = dict(assignments or {})
        self.operational = operational
        self.reject_registration = set()
        self.fail_submission = set()
        self.block_submissions = None
        self.started = 0
        self.registered = {}
        self.submissions = []
        self.flight_requests = []
        self.streams = {}
        self.hold_open = False

    async def accounts(self):
        return list(self._accounts)

    async def is_operational(self):
        return self.operational

    async def register_oracle(self, account, stake):
        if account in self.reject_registration:
            raise RuntimeError("stake rejected")
        self.registered[account] = stake

    async def get_assigned_indexes(self, account):
        return list(self.assignments.get(account, [0, 1, 2]))

    async def submit_response(self, account, index, airline, flight, timestamp, status):
        self.started += 1
        if self.block_submissions is not None:
            await self.block_submissions.wait()
        await asyncio.sleep(0)
        self.submissions.append((account, index, airline, flight, timestamp, status))
        if account in self.fail_submission:
            raise RuntimeError("transaction reverted")
        return f"0xtx{len(self.submissions)}"

    async def fetch_flight_status(self, account, airline, flight, timestamp):
        self.flight_requests.append((account, airline, flight, timestamp))
        return "0xrequest"

    async def events(self, name, from_block):
        for item in self.streams.get(name, []):
            if isinstance(item, BaseException):
                raise item
            yield item
            await asyncio.sleep(0)
        if self.hold_open:
            await asyncio.Event().wait()


def request_event(index, airline=None, flight="ND1309", timestamp=1700000000):
    return {
        "event": "OracleRequest",
        "args": {
            "index": index,
            "airline": airline or account(1),
            "flight": flight,
            "timestamp": timestamp,
        },
    }


def report_event(name, status, flight="ND1309", timestamp=1700000000):
    return {
        "event": name,
        "args": {"airline": account(1), "flight": flight, "timestamp": timestamp, "status": status},
    }


def make_request(index, flight="ND1309"):
    return StatusRequest(index=index, airline=account(1), flight=flight, timestamp=1700000000)


@pytest.fixture
def ledger():
    return FakeLedger()
