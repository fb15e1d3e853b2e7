"""Unit tests for the in-memory token bank."""
from __future__ import annotations

import pytest

from money_market.constants import MAX_AMOUNT
from money_market.errors import TransferError
from money_market.interfaces.token import TokenBank, Transactional
from money_market.token_bank import InMemoryTokenBank


@pytest.fixture()
def bank() -> InMemoryTokenBank:
    b = InMemoryTokenBank()
    b.mint("DAI", "alice", 100)
    return b


class TestTransfers:
    def test_transfer_moves_balance(self, bank: InMemoryTokenBank) -> None:
        bank.transfer("DAI", "alice", "bob", 40)
        assert bank.balance_of("DAI", "alice") == 60
        assert bank.balance_of("DAI", "bob") == 40
        assert bank.total_supply("DAI") == 100

    def test_transfer_above_balance(self, bank: InMemoryTokenBank) -> None:
        with pytest.raises(TransferError):
            bank.transfer("DAI", "alice", "bob", 101)
        assert bank.balance_of("DAI", "alice") == 100

    def test_negative_amounts_rejected(self, bank: InMemoryTokenBank) -> None:
        with pytest.raises(TransferError):
            bank.transfer("DAI", "alice", "bob", -1)
        with pytest.raises(TransferError):
            bank.mint("DAI", "alice", -1)
        with pytest.raises(TransferError):
            bank.approve("DAI", "alice", "bob", -1)


class TestAllowances:
    def test_transfer_from_spends_allowance(self, bank: InMemoryTokenBank) -> None:
        bank.approve("DAI", "alice", "market", 50)
        bank.transfer_from("DAI", "market", "alice", "market", 30)
        assert bank.allowance("DAI", "alice", "market") == 20
        assert bank.balance_of("DAI", "market") == 30

    def test_transfer_from_above_allowance(self, bank: InMemoryTokenBank) -> None:
        bank.approve("DAI", "alice", "market", 10)
        with pytest.raises(TransferError):
            bank.transfer_from("DAI", "market", "alice", "market", 11)

    def test_infinite_allowance_not_decremented(self, bank: InMemoryTokenBank) -> None:
        bank.approve("DAI", "alice", "market", MAX_AMOUNT)
        bank.transfer_from("DAI", "market", "alice", "market", 100)
        assert bank.allowance("DAI", "alice", "market") == MAX_AMOUNT


class TestCheckpoints:
    def test_rollback_restores_balances_and_allowances(self, bank: InMemoryTokenBank) -> None:
        bank.approve("DAI", "alice", "market", 50)
        checkpoint = bank.checkpoint()
        bank.transfer_from("DAI", "market", "alice", "bob", 50)
        bank.mint("WETH", "bob", 1)
        bank.rollback(checkpoint)
        assert bank.balance_of("DAI", "alice") == 100
        assert bank.balance_of("DAI", "bob") == 0
        assert bank.balance_of("WETH", "bob") == 0
        assert bank.allowance("DAI", "alice", "market") == 50

    def test_satisfies_protocols(self, bank: InMemoryTokenBank) -> None:
        assert isinstance(bank, Transactional)
        token_bank: TokenBank = bank
        assert token_bank.balance_of("DAI", "alice") == 100
