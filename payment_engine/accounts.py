"""
Account Store Module

Per-client balances and lock state. Accounts are created lazily with zeroed
balances the first time a client is referenced. The store performs no
business validation; every balance change goes through the command engine.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .currency import Amount


@dataclass
class Account:
    """
    Client account

    Balances are Amounts, so `available >= 0` and `held >= 0` hold by
    construction. The total is derived, never stored.
    """
    client: int
    available: Amount = field(default_factory=Amount.zero)
    held: Amount = field(default_factory=Amount.zero)
    locked: bool = False

    @property
    def total(self) -> Amount:
        """Available plus held assets"""
        return self.available.add(self.held)

    def snapshot(self) -> 'AccountSnapshot':
        return AccountSnapshot(
            client=self.client,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked
        )


@dataclass(frozen=True)
class AccountSnapshot:
    """Point-in-time view of an account, as handed to output formatters"""
    client: int
    available: Amount
    held: Amount
    total: Amount
    locked: bool


class AccountStore:
    """Keyed store of client accounts"""

    def __init__(self):
        self._accounts: Dict[int, Account] = {}

    def __len__(self) -> int:
        return len(self._accounts)

    def contains(self, client: int) -> bool:
        return client in self._accounts

    def get(self, client: int) -> Optional[Account]:
        """Get an account without creating it"""
        return self._accounts.get(client)

    def get_or_create(self, client: int) -> Account:
        """Get the account for a client, creating an empty one on first reference"""
        account = self._accounts.get(client)
        if account is None:
            account = Account(client=client)
            self._accounts[client] = account
        return account

    def snapshots(self, sort: bool = False) -> List[AccountSnapshot]:
        """
        Snapshot all known accounts

        Args:
            sort: Order by client id instead of first-reference order
        """
        accounts = self._accounts.values()
        if sort:
            accounts = sorted(accounts, key=lambda account: account.client)
        return [account.snapshot() for account in accounts]
