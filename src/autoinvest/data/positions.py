"""Position listing with page-by-page retrieval."""

from typing import Any, List

from autoinvest.data.models import Position
from autoinvest.gateway.client import GatewayClient
from autoinvest.utils.exceptions import GatewayError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)


class PositionsAPI:
    """Access to the paginated positions endpoint.

    The gateway returns at most ``PAGE_SIZE`` positions per page; a shorter
    or empty page is the last one.
    """

    PAGE_SIZE = 30

    def __init__(self, client: GatewayClient):
        self.client = client

    def get_positions(self, account_id: str, page: int = 0) -> List[Position]:
        """Fetch one page of positions."""
        payload = self.client.request(f"portfolio/{account_id}/positions/{page}")
        return [Position.from_response(item) for item in _as_list(payload)]

    def get_all_positions(self, account_id: str) -> List[Position]:
        """Fetch every position by walking pages until a short page.

        Args:
            account_id: Brokerage account id

        Returns:
            All positions, in page order
        """
        positions: List[Position] = []
        page = 0

        while True:
            batch = self.get_positions(account_id, page)
            positions.extend(batch)
            if len(batch) < self.PAGE_SIZE:
                break
            page += 1

        logger.info("Fetched %d positions for %s (%d page(s))", len(positions), account_id, page + 1)
        return positions

    def invalidate_cache(self, account_id: str) -> Any:
        """Ask the gateway to drop its cached positions for the account."""
        return self.client.request(
            f"portfolio/{account_id}/positions/invalidate", method="POST"
        )


def _as_list(payload: Any) -> list:
    """Positions come back as a JSON list; anything else is a protocol error."""
    if isinstance(payload, list):
        return payload
    if payload == {} or payload == "":
        return []
    raise GatewayError(200, f"Unexpected positions response: {payload!r}")
