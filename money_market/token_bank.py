"""In-memory fungible token balances with ERC-20 style allowances."""
from __future__ import annotations

import logging
from collections import defaultdict

from .constants import MAX_AMOUNT
from .errors import TransferError

logger = logging.getLogger(__name__)


class InMemoryTokenBank:
    """Balances and allowances keyed by (asset, holder).

    An allowance of ``MAX_AMOUNT`` is treated as infinite and is not
    decremented by ``transfer_from``.
    """

    def __init__(self) -> None:
        self._balances: dict[str, dict[str, int]] = defaultdict(dict)
        self._allowances: dict[tuple[str, str, str], int] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance_of(self, asset: str, holder: str) -> int:
        return self._balances[asset].get(holder, 0)

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        return self._allowances.get((asset, owner, spender), 0)

    def total_supply(self, asset: str) -> int:
        return sum(self._balances[asset].values())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mint(self, asset: str, holder: str, amount: int) -> None:
        if amount < 0:
            raise TransferError("Cannot mint a negative amount")
        balances = self._balances[asset]
        balances[holder] = balances.get(holder, 0) + amount

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise TransferError("Cannot approve a negative amount")
        self._allowances[(asset, owner, spender)] = amount

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise TransferError("Cannot transfer a negative amount")
        balances = self._balances[asset]
        held = balances.get(sender, 0)
        if held < amount:
            raise TransferError(
                f"{sender} holds {held} {asset}, cannot transfer {amount}"
            )
        balances[sender] = held - amount
        balances[recipient] = balances.get(recipient, 0) + amount
        logger.debug("%s: %s -> %s %d", asset, sender, recipient, amount)

    def transfer_from(
        self, asset: str, spender: str, owner: str, recipient: str, amount: int
    ) -> None:
        allowed = self.allowance(asset, owner, spender)
        if allowed < amount:
            raise TransferError(
                f"{spender} may move {allowed} {asset} of {owner}, requested {amount}"
            )
        self.transfer(asset, owner, recipient, amount)
        if allowed != MAX_AMOUNT:
            self._allowances[(asset, owner, spender)] = allowed - amount

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    def checkpoint(self) -> tuple[dict[str, dict[str, int]], dict[tuple[str, str, str], int]]:
        return (
            {asset: dict(holders) for asset, holders in self._balances.items()},
            dict(self._allowances),
        )

    def rollback(
        self, checkpoint: tuple[dict[str, dict[str, int]], dict[tuple[str, str, str], int]]
    ) -> None:
        balances, allowances = checkpoint
        self._balances = defaultdict(dict, {a: dict(h) for a, h in balances.items()})
        self._allowances = dict(allowances)
