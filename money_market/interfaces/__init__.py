"""Protocol interfaces for the lending market's external collaborators."""
from .clock import Clock, ManualClock, system_clock
from .flash_loan_receiver import FlashLoanReceiver
from .price_source import PriceSource
from .token import TokenBank, Transactional

__all__ = [
    "Clock",
    "FlashLoanReceiver",
    "ManualClock",
    "PriceSource",
    "TokenBank",
    "Transactional",
    "system_clock",
]
