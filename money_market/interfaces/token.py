"""Token bank protocol"""
from typing import Any, Protocol, runtime_checkable


class TokenBank(Protocol):
    """Abstract interface for moving fungible assets between holders."""

    def balance_of(self, asset: str, holder: str) -> int: ...

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> None: ...

    def transfer_from(
        self, asset: str, spender: str, owner: str, recipient: str, amount: int
    ) -> None: ...


@runtime_checkable
class Transactional(Protocol):
    """Token banks that can roll back to a checkpoint."""

    def checkpoint(self) -> Any: ...

    def rollback(self, checkpoint: Any) -> None: ...
