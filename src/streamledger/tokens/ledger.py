"""Token ledger collaborator — the fungible token the marketplaces settle in.

The accrual engine never inspects balances. It only asks the token
ledger to move funds and reacts to the boolean result. A ``False``
result makes the calling operation roll back everything it touched.

Adding a new token backend = implement the TokenLedger Protocol. Zero
changes to either marketplace ledger.
"""

from __future__ import annotations

from typing import Dict, Protocol, Tuple, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """Abstract contract for the token the engine holds deposits in.

    Both calls are made by the engine's own account (the pool).
    """

    def transfer(self, recipient: str, amount: int) -> bool:
        """Move ``amount`` from the pool to ``recipient``."""
        ...

    def transfer_from(self, owner: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` from ``owner`` to ``recipient`` using an allowance."""
        ...


class InMemoryTokenLedger:
    """Balance and allowance book for simulations and tests.

    Seeding balances with ``credit`` is a fixture helper, not a minting
    model. ``fail_next`` forces the next N transfer calls to report
    failure without moving anything.

    Usage:
        token = InMemoryTokenLedger(pool_address="pool")
        token.credit("buyer", 1_000)
        token.approve("buyer", "pool", 1_000)
        token.transfer_from("buyer", "pool", 250)  # True
    """

    def __init__(self, pool_address: str) -> None:
        self._pool = pool_address
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._forced_failures = 0
        self.calls: list[tuple[str, str, str, int, bool]] = []

    @property
    def pool_address(self) -> str:
        return self._pool

    def credit(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Credit amount must be non-negative")
        self._balances[account] = self._balances.get(account, 0) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Allowance must be non-negative")
        self._allowances[(owner, spender)] = amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def fail_next(self, count: int = 1) -> None:
        self._forced_failures += count

    def transfer(self, recipient: str, amount: int) -> bool:
        ok = self._move(self._pool, recipient, amount)
        self.calls.append(("transfer", self._pool, recipient, amount, ok))
        return ok

    def transfer_from(self, owner: str, recipient: str, amount: int) -> bool:
        ok = self.allowance(owner, self._pool) >= amount
        if ok:
            ok = self._move(owner, recipient, amount)
        if ok:
            self._allowances[(owner, self._pool)] -= amount
        self.calls.append(("transfer_from", owner, recipient, amount, ok))
        return ok

    def _move(self, sender: str, recipient: str, amount: int) -> bool:
        if self._forced_failures > 0:
            self._forced_failures -= 1
            return False
        if amount < 0 or self.balance_of(sender) < amount:
            return False
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        return True
