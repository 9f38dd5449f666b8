# surety_oracle/registry.py
"""
Oracle registry.

Built once at startup by register_oracles(), read-only afterwards.
Accounts whose registration or index lookup fails never enter it and
so never answer a request.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from surety_oracle.errors import RegistrationError
from surety_oracle.models import OracleIdentity

log = logging.getLogger("surety-oracle.registry")


class OracleRegistry:
    def __init__(self, identities: Iterable[OracleIdentity] = ()):
        self._identities: Tuple[OracleIdentity, ...] = tuple(identities)
        by_index: Dict[int, List[OracleIdentity]] = {}
        for identity in self._identities:
            if not identity.indexes:
                raise ValueError(f"oracle {identity.account} has no assigned indexes")
            for index in identity.indexes:
                by_index.setdefault(index, []).append(identity)
        self._by_index = {i: tuple(ids) for i, ids in by_index.items()}

    def identities_for_index(self, index: int) -> Tuple[OracleIdentity, ...]:
        """Every registered oracle whose index set contains `index`, in registration order."""
        return self._by_index.get(index, ())

    def indexes(self):
        return frozenset(self._by_index)

    def __len__(self):
        return len(self._identities)

    def __iter__(self):
        return iter(self._identities)

    def __contains__(self, account):
        return any(identity.account == account for identity in self._identities)


async def _register_one(ledger, account, stake) -> Optional[OracleIdentity]:
    try:
        await ledger.register_oracle(account, stake)
        indexes = frozenset(int(i) for i in await ledger.get_assigned_indexes(account))
        if not indexes:
            raise ValueError("ledger assigned no indexes")
    except Exception as e:
        err = RegistrationError(account, e)
        log.error(str(err))
        return None
    log.info(f"Oracle registered {account} indexes={sorted(indexes)}")
    return OracleIdentity(account=account, indexes=indexes)


async def register_oracles(ledger, accounts, stake) -> OracleRegistry:
    """
    Register every account with the ledger (one transaction each) and
    collect the index sets it hands out.

    Individual failures are logged and skipped. Raises RegistrationError
    when no account at all could be registered.
    """
    accounts = list(accounts)
    log.info(f"Registering {len(accounts)} oracles (stake={stake} wei)")
    results = await asyncio.gather(*(_register_one(ledger, a, stake) for a in accounts))
    registry = OracleRegistry(identity for identity in results if identity is not None)

    failed = len(accounts) - len(registry)
    if not registry:
        raise RegistrationError("*", f"none of {len(accounts)} oracles registered")
    if failed:
        log.warning(f"{failed} of {len(accounts)} oracles failed to register")
    log.info(f"Registry ready: {len(registry)} oracles covering indexes {sorted(registry.indexes())}")
    return registry
