# surety_oracle/service.py
"""
Oracle coordinator lifecycle.

  1. start(): check the contract, register oracles, build the registry
  2. run():   request + report + status-info listeners until one fails
              or the task is cancelled
  3. on exit: stop listeners, give in-flight submissions a grace period
"""

import asyncio
import logging
import time

from web3 import Web3

from surety_oracle.config import Settings
from surety_oracle.dispatcher import Dispatcher
from surety_oracle.listener import RequestListener, informational_listeners
from surety_oracle.registry import register_oracles
from surety_oracle.strategy import choose_status

log = logging.getLogger("surety-oracle.service")


class OracleService:
    def __init__(self, ledger, settings: Settings, strategy=choose_status):
        self.ledger = ledger
        self.settings = settings
        self.strategy = strategy
        self.registry = None
        self.dispatcher = None
        self.listeners = []
        self.started_at = None

    @property
    def ready(self) -> bool:
        return self.dispatcher is not None

    async def start(self):
        """Register oracles. Raises RegistrationError if none succeed."""
        if not await self.ledger.is_operational():
            log.warning("FlightSuretyApp reports it is not operational")

        accounts = self.settings.oracle_accounts(await self.ledger.accounts())
        stake = Web3.to_wei(self.settings.oracle_stake_ether, "ether")
        self.registry = await register_oracles(self.ledger, accounts, stake)
        self.dispatcher = Dispatcher(self.ledger, self.registry, self.strategy)

        origin = self.settings.from_block
        self.listeners = [RequestListener(self.ledger, self.dispatcher, origin)]
        self.listeners += informational_listeners(self.ledger, origin)
        self.started_at = time.time()

    async def run(self):
        """
        Run all listeners together. Returns only by raising: the first
        SubscriptionError, or CancelledError on shutdown.
        """
        if not self.ready:
            raise RuntimeError("OracleService.start() must complete before run()")
        tasks = [
            asyncio.create_task(listener.run(), name=f"listen-{listener.event_name}")
            for listener in self.listeners
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                exc = task.exception()
                if exc is not None:
                    log.critical(f"Listener {task.get_name()} stopped: {exc}")
                    raise exc
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            abandoned = await self.dispatcher.drain(self.settings.shutdown_grace)
            if abandoned:
                log.warning(f"Shut down with {abandoned} submissions abandoned")
            else:
                log.info("Shut down cleanly")

    def health(self) -> dict:
        body = {
            "status": "ok" if self.ready else "starting",
            "oracles": len(self.registry) if self.registry is not None else 0,
        }
        if self.ready:
            stats = self.dispatcher.stats
            body.update({
                "uptime": round(time.time() - self.started_at, 1),
                "in_flight": self.dispatcher.in_flight,
                "requests": stats.requests,
                "unanswered": stats.unanswered,
                "submitted": stats.submitted,
                "succeeded": stats.succeeded,
                "failed": stats.failed,
                "abandoned": stats.abandoned,
                "listeners": {
                    listener.event_name: {"received": listener.received, "skipped": listener.skipped}
                    for listener in self.listeners
                },
            })
        return body
