"""User-friendly API for auto-investing.

This module wires the gateway client, data accessors, planning engine,
order protocol and allocation store into one facade used by the CLI and by
any other front end.
"""

from pathlib import Path
from typing import List, Optional

from autoinvest.data.accounts import AccountsAPI
from autoinvest.data.instruments import InstrumentResolver
from autoinvest.data.models import AccountList
from autoinvest.data.positions import PositionsAPI
from autoinvest.execution.forex import CurrencyConverter
from autoinvest.execution.orders import OrderProtocol
from autoinvest.gateway.client import AuthStatus, GatewayClient
from autoinvest.gateway.health import wait_for_gateway
from autoinvest.orchestration.executor import AutoInvestExecutor
from autoinvest.portfolio.analyzer import PortfolioAnalyzer
from autoinvest.portfolio.base import AutoInvestPlan, AutoInvestResult, PortfolioAnalysis
from autoinvest.portfolio.planner import PlanBuilder
from autoinvest.store.base import Allocation, AllocationStore
from autoinvest.store.yaml_store import YamlAllocationStore
from autoinvest.utils.config import ROOT_DIR, AutoInvestSettings, load_settings
from autoinvest.utils.exceptions import ConfigurationError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)


class AutoInvestAPI:
    """User-friendly API for planning and executing auto-invest runs.

    Every account-scoped method takes an optional ``account_id``; when it is
    omitted the stored account is used, then the gateway's selected account,
    then the first account of the session.

    Example:
        >>> api = AutoInvestAPI.from_config()
        >>> api.set_allocations([Allocation("VOO", 60), Allocation("BND", 40)])
        >>> plan = api.create_auto_invest_plan()
        >>> print(plan.summary)
        Planning to invest $4752.10 across 2 positions.
        >>> result = api.execute_auto_invest()
        >>> result.success
        True
    """

    def __init__(
        self,
        client: GatewayClient,
        store: AllocationStore,
        settings: Optional[AutoInvestSettings] = None,
    ):
        """Initialize AutoInvestAPI.

        Args:
            client: Gateway client
            store: Allocation store
            settings: Tunables (defaults if not provided)
        """
        self.settings = settings or AutoInvestSettings()
        self.client = client
        self.store = store

        self.accounts = AccountsAPI(client)
        self.positions = PositionsAPI(client)
        self.resolver = InstrumentResolver(client)
        self.protocol = OrderProtocol(
            client,
            max_confirmations=self.settings.max_confirmations,
            fill_poll_interval=self.settings.fill_poll_interval,
            fill_poll_timeout=self.settings.fill_poll_timeout,
        )
        self.converter = CurrencyConverter(
            self.protocol, self.resolver, forex_pair=self.settings.forex_pair
        )
        self.analyzer = PortfolioAnalyzer(
            self.accounts,
            self.positions,
            store,
            quote_currency=self.settings.quote_currency,
            secondary_currency=self.settings.secondary_currency,
            exchange_rate_fallback=self.settings.exchange_rate_fallback,
        )
        self.plan_builder = PlanBuilder(
            self.analyzer,
            self.resolver,
            store,
            min_remaining_cash=self.settings.min_remaining_cash,
        )
        self.executor = AutoInvestExecutor(
            self.plan_builder,
            self.protocol,
            self.converter,
            store,
            min_conversion_amount=self.settings.min_conversion_amount,
            conversion_fill_timeout=self.settings.conversion_fill_timeout,
        )

    @classmethod
    def from_config(
        cls,
        config_file: Optional[str | Path] = None,
        env_file: Optional[str | Path] = None,
    ) -> "AutoInvestAPI":
        """Build the API from config/default.yaml (or ``config_file``).

        Relative store paths are resolved against the project root.
        """
        settings = load_settings(config_file, env_file)

        store_path = Path(settings.store_path)
        if not store_path.is_absolute():
            store_path = ROOT_DIR / store_path

        logger.info("AutoInvestAPI using gateway %s, store %s", settings.gateway_url, store_path)
        return cls(
            client=GatewayClient.from_settings(settings),
            store=YamlAllocationStore(store_path),
            settings=settings,
        )

    # Gateway

    def auth_status(self) -> AuthStatus:
        return self.client.get_auth_status()

    def wait_for_gateway(self, timeout: Optional[float] = None) -> bool:
        """Poll the gateway until it answers.

        Returns:
            True if the gateway answered before the timeout
        """
        outcome = wait_for_gateway(
            self.client,
            interval=self.settings.health_poll_interval,
            timeout=timeout if timeout is not None else self.settings.health_poll_timeout,
        )
        return outcome.met

    # Accounts

    def list_accounts(self) -> AccountList:
        return self.accounts.get_accounts()

    def resolve_account_id(self, account_id: Optional[str] = None) -> str:
        """Account to operate on.

        Raises:
            ConfigurationError: If the session has no accounts
        """
        if account_id:
            return account_id

        chosen = self.list_accounts().choose(self.store.get_selected_account_id())
        if not chosen:
            raise ConfigurationError("No brokerage accounts available for this session")
        return chosen

    def get_selected_account_id(self) -> str:
        return self.store.get_selected_account_id()

    def set_selected_account_id(self, account_id: str) -> None:
        self.store.set_selected_account_id(account_id)

    # Allocations

    def get_allocations(self) -> List[Allocation]:
        return self.store.get_allocations()

    def set_allocations(self, allocations: List[Allocation]) -> None:
        self.store.set_allocations(allocations)

    def upsert_allocation(self, symbol: str, target_percent: float) -> None:
        self.store.upsert_allocation(Allocation(symbol=symbol, target_percent=target_percent))

    def remove_allocation(self, symbol: str) -> None:
        self.store.remove_allocation(symbol)

    def get_buffer_percent(self) -> float:
        return self.store.get_buffer_percent()

    def set_buffer_percent(self, percent: float) -> None:
        self.store.set_buffer_percent(percent)

    # Auto-invest

    def analyze_portfolio(self, account_id: Optional[str] = None) -> PortfolioAnalysis:
        return self.analyzer.analyze(self.resolve_account_id(account_id))

    def create_auto_invest_plan(self, account_id: Optional[str] = None) -> AutoInvestPlan:
        return self.plan_builder.build_plan(self.resolve_account_id(account_id))

    def execute_auto_invest(self, account_id: Optional[str] = None) -> AutoInvestResult:
        return self.executor.execute(self.resolve_account_id(account_id))
