"""Flash loan receiver protocol"""
from typing import Protocol


class FlashLoanReceiver(Protocol):
    """Contract of a flash loan callback.

    ``execute_operation`` runs while it holds ``amount`` of ``asset`` and
    must return ``amount + fee`` to the market before returning True.
    """

    @property
    def address(self) -> str: ...

    def execute_operation(
        self, asset: str, amount: int, fee: int, initiator: str, params: bytes
    ) -> bool: ...
