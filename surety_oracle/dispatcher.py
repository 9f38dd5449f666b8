# surety_oracle/dispatcher.py
"""
Response dispatcher.

One dispatch per OracleRequest: every registered oracle holding the
requested index draws its own status and submits it as a separate task.
Tasks are not awaited by the caller; their outcome is only logged.
A failed submission is final, nothing is retried.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Set

from surety_oracle.errors import SubmissionError
from surety_oracle.models import OracleIdentity, StatusRequest, StatusResponseAttempt
from surety_oracle.registry import OracleRegistry
from surety_oracle.strategy import StatusStrategy, choose_status, status_name

log = logging.getLogger("surety-oracle.dispatcher")


@dataclass
class DispatchStats:
    requests: int = 0
    unanswered: int = 0
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    abandoned: int = 0


class Dispatcher:
    def __init__(self, ledger, registry: OracleRegistry, strategy: StatusStrategy = choose_status):
        self.ledger = ledger
        self.registry = registry
        self.strategy = strategy
        self.stats = DispatchStats()
        self._pending: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def dispatch(self, request: StatusRequest) -> List[asyncio.Task]:
        """
        Fan a request out to every eligible oracle. Must run inside the event loop.

        Returns the submission tasks so callers may observe them; nothing in
        the service waits on them.
        """
        self.stats.requests += 1
        eligible = self.registry.identities_for_index(request.index)
        if not eligible:
            self.stats.unanswered += 1
            log.info(
                f"No eligible oracle for index={request.index} "
                f"flight={request.flight} airline={request.airline}"
            )
            return []

        tasks = []
        for identity in eligible:
            task = asyncio.create_task(
                self._respond(identity, request),
                name=f"respond-{identity.account}-{request.flight}-{request.timestamp}",
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        self.stats.submitted += len(tasks)
        log.info(f"Dispatching index={request.index} flight={request.flight} to {len(tasks)} oracles")
        return tasks

    async def _respond(self, identity: OracleIdentity, request: StatusRequest) -> bool:
        """Draw a status for one oracle and submit it. Failures stay with this pair."""
        status = None
        try:
            status = self.strategy(request)
            attempt = StatusResponseAttempt(identity, request, status)
            tx = await self.ledger.submit_response(
                identity.account,
                request.index,
                request.airline,
                request.flight,
                request.timestamp,
                attempt.status,
            )
        except asyncio.CancelledError:
            log.warning(
                f"Abandoned submission: oracle {identity.account} index={request.index} "
                f"flight={request.flight} timestamp={request.timestamp} status={status}"
            )
            raise
        except Exception as e:
            self.stats.failed += 1
            log.error(str(SubmissionError(identity, request, status, e)))
            return False
        self.stats.succeeded += 1
        log.info(
            f"Oracle {identity.account} responded with {status} "
            f"({status_name(status)}) to {request.flight} - {request.airline} "
            f"with {request.timestamp} tx={tx}"
        )
        return True

    async def drain(self, grace: float) -> int:
        """
        Let in-flight submissions finish for up to `grace` seconds, then
        cancel the rest. Returns how many were abandoned.
        """
        pending = set(self._pending)
        if not pending:
            return 0
        log.info(f"Waiting up to {grace:.1f}s for {len(pending)} in-flight submissions")
        _, still_running = await asyncio.wait(pending, timeout=grace)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
        self.stats.abandoned += len(still_running)
        return len(still_running)
