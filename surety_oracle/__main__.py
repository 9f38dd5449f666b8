# surety_oracle/__main__.py
"""
Flight Surety oracle coordinator.

Usage:
  python -m surety_oracle serve [--from-block earliest] [--port 3000]
  python -m surety_oracle request FLIGHT [--airline ADDR] [--timestamp TS]

`serve` registers the oracle accounts, then answers OracleRequest events
until interrupted. `request` asks the contract to resolve a flight, which
makes it emit an OracleRequest.
"""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
import time

import uvicorn

from surety_oracle.config import Settings, parse_block
from surety_oracle.errors import OracleError
from surety_oracle.ledger import Web3Ledger
from surety_oracle.server import create_app
from surety_oracle.service import OracleService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
log = logging.getLogger("surety-oracle")


STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class HealthServer(uvicorn.Server):
    """uvicorn server that leaves SIGINT/SIGTERM to serve()."""

    def install_signal_handlers(self):
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


async def start_and_run(service: OracleService):
    await service.start()
    await service.run()


async def serve(settings: Settings, ledger=None):
    """
    Serve /health, register oracles and answer requests until a stop
    signal, an HTTP server exit or a fatal service error. The service is
    always cancelled and awaited before returning, so in-flight
    submissions get their grace period.
    """
    service = OracleService(ledger or Web3Ledger.from_settings(settings), settings)
    server = HealthServer(uvicorn.Config(
        create_app(service), host=settings.host, port=settings.port, log_level="warning",
    ))

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in STOP_SIGNALS:
        loop.add_signal_handler(sig, stop.set)

    log.info(f"Health endpoint on :{settings.port}/health")
    server_task = asyncio.create_task(server.serve(), name="http")
    service_task = asyncio.create_task(start_and_run(service), name="oracles")
    stop_task = asyncio.create_task(stop.wait(), name="stop")
    try:
        done, _ = await asyncio.wait(
            {server_task, service_task, stop_task}, return_when=asyncio.FIRST_COMPLETED,
        )
        if stop_task in done:
            log.info("Stop requested, shutting down")
        elif server_task in done:
            log.info("HTTP server stopped, shutting down oracles")
    finally:
        for sig in STOP_SIGNALS:
            loop.remove_signal_handler(sig)
        stop_task.cancel()
        service_task.cancel()
        await asyncio.gather(service_task, stop_task, return_exceptions=True)
        server.should_exit = True
        await asyncio.gather(server_task, return_exceptions=True)

    if not service_task.cancelled() and service_task.exception() is not None:
        raise service_task.exception()


async def request(settings: Settings, flight, airline=None, timestamp=None):
    ledger = Web3Ledger.from_settings(settings)
    accounts = await ledger.accounts()
    owner = accounts[0]
    airline = airline or accounts[1]
    timestamp = timestamp if timestamp is not None else int(time.time())
    tx = await ledger.fetch_flight_status(owner, airline, flight, timestamp)
    log.info(f"Requested status of {flight} - {airline} with {timestamp} tx={tx}")


def build_parser():
    parser = argparse.ArgumentParser(prog="surety_oracle", description="Flight Surety oracle coordinator")
    parser.add_argument("--config", help="truffle-style config.json with url/appAddress")
    parser.add_argument("--network", help="network key inside --config")
    parser.add_argument("--rpc-url", help="ledger node URL")
    parser.add_argument("--app-address", help="FlightSuretyApp contract address")
    parser.add_argument("--abi", help="FlightSuretyApp truffle artifact or ABI JSON")
    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="register oracles and answer requests")
    p_serve.add_argument("--from-block", type=parse_block,
                         help="event origin: earliest, latest or a block number")
    p_serve.add_argument("--oracles", type=int, help="number of oracle accounts")
    p_serve.add_argument("--first-account", type=int, help="index of the first oracle account")
    p_serve.add_argument("--port", type=int, help="health server port")

    p_request = sub.add_parser("request", help="ask the contract for a flight status")
    p_request.add_argument("flight")
    p_request.add_argument("--airline", help="airline address (default: node account 1)")
    p_request.add_argument("--timestamp", type=int, help="flight timestamp (default: now)")
    return parser


def settings_from_args(args) -> Settings:
    settings = Settings.from_env(args.config, args.network)
    overrides = {
        "rpc_url": args.rpc_url,
        "app_address": args.app_address,
        "abi_path": args.abi,
        "from_block": getattr(args, "from_block", None),
        "oracle_count": getattr(args, "oracles", None),
        "oracle_first_account": getattr(args, "first_account", None),
        "port": getattr(args, "port", None),
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)
    return settings


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    try:
        if args.command == "request":
            asyncio.run(request(settings, args.flight, args.airline, args.timestamp))
        else:
            asyncio.run(serve(settings))
    except OracleError as e:
        log.critical(f"Fatal: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("Interrupted")


if __name__ == "__main__":
    main()
