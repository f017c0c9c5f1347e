"""Account and market data structures returned by the gateway.

Each class decodes one gateway payload shape into a small dataclass so the
rest of the engine never touches raw response dictionaries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _to_float(value: Any) -> float:
    """Convert a gateway number (possibly a string or null) to float."""
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class LedgerEntry:
    """Cash snapshot for one currency of an account ledger.

    Attributes:
        currency: Currency code (e.g., "USD", "ILS", or "BASE")
        cash_balance: Cash held in this currency
        settled_cash: Settled portion of the cash balance
        net_liquidation_value: Net liquidation value in this currency
        stock_market_value: Market value of stock positions
        exchange_rate: Rate of this currency to the account base currency
        unrealized_pnl: Unrealized profit/loss
    """

    currency: str
    cash_balance: float
    settled_cash: float = 0.0
    net_liquidation_value: float = 0.0
    stock_market_value: float = 0.0
    exchange_rate: float = 0.0
    unrealized_pnl: float = 0.0

    @classmethod
    def from_response(cls, key: str, payload: Dict[str, Any]) -> "LedgerEntry":
        return cls(
            currency=str(payload.get("currency") or key).upper(),
            cash_balance=_to_float(payload.get("cashbalance")),
            settled_cash=_to_float(payload.get("settledcash")),
            net_liquidation_value=_to_float(payload.get("netliquidationvalue")),
            stock_market_value=_to_float(payload.get("stockmarketvalue")),
            exchange_rate=_to_float(payload.get("exchangerate")),
            unrealized_pnl=_to_float(payload.get("unrealizedpnl")),
        )


@dataclass(frozen=True)
class Position:
    """A held instrument.

    Attributes:
        instrument_id: Provider contract id (conid)
        symbol: Ticker symbol
        quantity: Number of shares held
        market_value: Current market value
        market_price: Current price per share
        currency: Currency of the position
        avg_cost: Average cost per share
        unrealized_pnl: Unrealized profit/loss
    """

    instrument_id: int
    symbol: str
    quantity: float
    market_value: float
    market_price: float
    currency: str = ""
    avg_cost: float = 0.0
    unrealized_pnl: float = 0.0

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "Position":
        symbol = payload.get("ticker") or payload.get("contractDesc") or ""
        return cls(
            instrument_id=int(payload.get("conid") or 0),
            symbol=str(symbol),
            quantity=_to_float(payload.get("position")),
            market_value=_to_float(payload.get("mktValue")),
            market_price=_to_float(payload.get("mktPrice")),
            currency=str(payload.get("currency") or ""),
            avg_cost=_to_float(payload.get("avgCost")),
            unrealized_pnl=_to_float(payload.get("unrealizedPnl")),
        )


@dataclass
class AccountList:
    """Brokerage accounts visible to the session.

    Attributes:
        accounts: Account ids (the "All" pseudo account is excluded)
        aliases: Account id to display alias
        selected_account: Account currently selected
    """

    accounts: List[str] = field(default_factory=list)
    aliases: Dict[str, str] = field(default_factory=dict)
    selected_account: str = ""

    ALL_ACCOUNTS_PSEUDO_ID = "All"

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "AccountList":
        accounts = [
            str(acc)
            for acc in payload.get("accounts") or []
            if acc != cls.ALL_ACCOUNTS_PSEUDO_ID
        ]
        return cls(
            accounts=accounts,
            aliases=dict(payload.get("aliases") or {}),
            selected_account=str(payload.get("selectedAccount") or ""),
        )

    def choose(self, preferred: Optional[str] = None) -> str:
        """Pick the account to work with.

        Prefers ``preferred`` if it is a real account, then the gateway's own
        selection, then the first account.

        Returns:
            Account id, or "" when there are no accounts
        """
        if preferred and preferred in self.accounts:
            return preferred
        if self.selected_account in self.accounts:
            return self.selected_account
        return self.accounts[0] if self.accounts else ""
