"""Data Layer - Typed read access to account and market data.

Components:
- AccountsAPI: Accounts, ledger, summary and exchange rates
- PositionsAPI: Paginated position listing
- InstrumentResolver: Symbol to contract id with a cache in front of search
"""

from autoinvest.data.accounts import AccountsAPI
from autoinvest.data.instruments import (
    COMMON_FOREX_IDS,
    COMMON_INSTRUMENT_IDS,
    InstrumentResolver,
)
from autoinvest.data.models import AccountList, LedgerEntry, Position
from autoinvest.data.positions import PositionsAPI

__all__ = [
    "AccountsAPI",
    "PositionsAPI",
    "InstrumentResolver",
    "AccountList",
    "LedgerEntry",
    "Position",
    "COMMON_INSTRUMENT_IDS",
    "COMMON_FOREX_IDS",
]
