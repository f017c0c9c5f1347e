"""Symbol to instrument id (conid) resolution.

Resolution is two-tier: an in-memory cache seeded with well-known contract
ids is consulted first, then the gateway's security search. The cache only
saves round trips; every symbol it holds would resolve the same way through
the search.
"""

from typing import Any, Dict, List, Optional

from autoinvest.gateway.client import GatewayClient
from autoinvest.utils.exceptions import InstrumentNotFoundError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)

# Common ETF and stock contract ids
COMMON_INSTRUMENT_IDS: Dict[str, int] = {
    # ETFs
    "SPY": 756733,
    "QQQ": 320227571,
    "VTI": 97415584,
    "IVV": 9579970,
    "VOO": 97907157,
    "VEA": 46048054,
    "VWO": 41939883,
    "BND": 43645865,
    "VNQ": 27684070,
    "GLD": 51529211,
    # Stocks
    "AAPL": 265598,
    "MSFT": 272093,
    "GOOGL": 208813719,
    "AMZN": 3691937,
    "NVDA": 4815747,
    "META": 107113386,
    "TSLA": 76792991,
}

# Forex pairs, BASE.QUOTE: buying BASE with QUOTE
COMMON_FOREX_IDS: Dict[str, int] = {
    "USD.ILS": 15016062,
}


class InstrumentResolver:
    """Resolve symbols to contract ids with a cache in front of search.

    Example:
        >>> resolver = InstrumentResolver(GatewayClient())
        >>> resolver.find_instrument_id("voo")
        97907157
        >>> resolver.find_instrument_id("NOSUCHTICKER") is None
        True
    """

    def __init__(
        self,
        client: GatewayClient,
        seed: Optional[Dict[str, int]] = None,
        forex_seed: Optional[Dict[str, int]] = None,
    ):
        """Initialize resolver.

        Args:
            client: Gateway client used for live searches
            seed: Initial symbol cache (defaults to COMMON_INSTRUMENT_IDS)
            forex_seed: Initial forex pair cache (defaults to COMMON_FOREX_IDS)
        """
        self.client = client
        self._cache = dict(COMMON_INSTRUMENT_IDS if seed is None else seed)
        self._forex_cache = dict(COMMON_FOREX_IDS if forex_seed is None else forex_seed)

    def search_security(self, symbol: str, sec_type: str = "STK") -> List[Dict[str, Any]]:
        """Search contracts by symbol.

        Args:
            symbol: Ticker symbol or forex pair
            sec_type: Security type ("STK" for stocks and ETFs, "CASH" for forex)

        Returns:
            Search results, most relevant first
        """
        body: Dict[str, Any] = {"symbol": symbol, "secType": sec_type}
        if sec_type == "STK":
            body["name"] = True

        payload = self.client.request("iserver/secdef/search", method="POST", body=body)
        return payload if isinstance(payload, list) else []

    def get_contract_info(self, instrument_id: int) -> Dict[str, Any]:
        """Fetch contract details for an instrument id."""
        payload = self.client.request(f"iserver/contract/{instrument_id}/info")
        if isinstance(payload, dict) and str(instrument_id) in payload:
            return payload[str(instrument_id)]
        return payload

    def find_instrument_id(self, symbol: str) -> Optional[int]:
        """Resolve a stock/ETF symbol, or None if the search finds nothing.

        Raises:
            GatewayError: If the live search fails
        """
        key = symbol.upper()
        if key in self._cache:
            return self._cache[key]

        instrument_id = self._first_conid(self.search_security(symbol, sec_type="STK"))
        if instrument_id is None:
            logger.warning("No instrument found for symbol %s", symbol)
            return None

        logger.info("Resolved %s to instrument %d", key, instrument_id)
        self._cache[key] = instrument_id
        return instrument_id

    def require_instrument_id(self, symbol: str) -> int:
        """Resolve a symbol or raise InstrumentNotFoundError."""
        instrument_id = self.find_instrument_id(symbol)
        if instrument_id is None:
            raise InstrumentNotFoundError(f"No instrument found for symbol {symbol}")
        return instrument_id

    def find_forex_instrument_id(self, currency_pair: str) -> Optional[int]:
        """Resolve a forex pair such as "USD.ILS", or None if not found.

        Raises:
            GatewayError: If the live search fails
        """
        key = currency_pair.upper()
        if key in self._forex_cache:
            return self._forex_cache[key]

        instrument_id = self._first_conid(self.search_security(key, sec_type="CASH"))
        if instrument_id is None:
            logger.warning("No forex contract found for %s", key)
            return None

        self._forex_cache[key] = instrument_id
        return instrument_id

    @staticmethod
    def _first_conid(results: List[Dict[str, Any]]) -> Optional[int]:
        for result in results:
            conid = result.get("conid") if isinstance(result, dict) else None
            if conid:
                return int(conid)
        return None
