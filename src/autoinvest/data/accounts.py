"""Account-level read operations: accounts, ledger, summary, exchange rates."""

from typing import Any, Dict

from autoinvest.data.models import AccountList, LedgerEntry
from autoinvest.gateway.client import GatewayClient
from autoinvest.utils.exceptions import ExchangeRateError, GatewayError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)


class AccountsAPI:
    """Typed access to account endpoints of the gateway.

    Example:
        >>> accounts = AccountsAPI(GatewayClient())
        >>> ledger = accounts.get_ledger("U1234567")
        >>> ledger["USD"].cash_balance
        3000.0
    """

    def __init__(self, client: GatewayClient):
        self.client = client

    def get_accounts(self) -> AccountList:
        """List brokerage accounts, without the "All" pseudo account."""
        payload = self.client.request("iserver/accounts")
        accounts = AccountList.from_response(payload if isinstance(payload, dict) else {})
        logger.info("Found %d account(s)", len(accounts.accounts))
        return accounts

    def get_ledger(self, account_id: str) -> Dict[str, LedgerEntry]:
        """Fetch cash balances by currency.

        Args:
            account_id: Brokerage account id

        Returns:
            Dict mapping upper-case currency code to LedgerEntry
        """
        payload = self.client.request(f"portfolio/{account_id}/ledger")
        if not isinstance(payload, dict):
            raise GatewayError(200, f"Unexpected ledger response: {payload!r}")

        ledger = {
            key.upper(): LedgerEntry.from_response(key, entry)
            for key, entry in payload.items()
            if isinstance(entry, dict)
        }
        logger.debug("Ledger currencies for %s: %s", account_id, sorted(ledger))
        return ledger

    def get_summary(self, account_id: str) -> Dict[str, Any]:
        """Fetch the raw account summary (margin, buying power, ...)."""
        return self.client.request(f"portfolio/{account_id}/summary")

    def get_exchange_rate(self, source: str, target: str) -> float:
        """Get the rate converting ``source`` currency into ``target``.

        Args:
            source: Currency being converted (e.g., "ILS")
            target: Currency converted into (e.g., "USD")

        Returns:
            Strictly positive exchange rate

        Raises:
            ExchangeRateError: If the rate is missing or not positive
            GatewayError: If the request fails
        """
        payload = self.client.request(
            "iserver/exchangerate",
            params={"source": source.upper(), "target": target.upper()},
        )

        rate = payload.get("rate") if isinstance(payload, dict) else None
        try:
            rate = float(rate)
        except (TypeError, ValueError) as e:
            raise ExchangeRateError(
                f"No exchange rate returned for {source}->{target}: {payload!r}"
            ) from e

        if rate <= 0:
            raise ExchangeRateError(
                f"Exchange rate for {source}->{target} is not positive: {rate}"
            )

        logger.debug("Exchange rate %s->%s = %.6f", source, target, rate)
        return rate
