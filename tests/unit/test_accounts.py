"""Unit tests for AccountsAPI and account data models."""

from unittest.mock import Mock

import pytest

from autoinvest.data.accounts import AccountsAPI
from autoinvest.data.models import AccountList, LedgerEntry
from autoinvest.utils.exceptions import ExchangeRateError, GatewayError


@pytest.fixture
def accounts_api(mock_client):
    return AccountsAPI(mock_client)


class TestAccountList:
    """Test AccountList parsing and selection."""

    def test_all_pseudo_account_filtered(self) -> None:
        """Test the "All" entry is dropped."""
        accounts = AccountList.from_response(
            {"accounts": ["U1", "All", "U2"], "aliases": {"U1": "Main"}, "selectedAccount": "U2"}
        )

        assert accounts.accounts == ["U1", "U2"]
        assert accounts.aliases == {"U1": "Main"}
        assert accounts.selected_account == "U2"

    def test_choose_prefers_stored_account(self) -> None:
        """Test stored account wins when it exists."""
        accounts = AccountList(accounts=["U1", "U2"], selected_account="U2")
        assert accounts.choose("U1") == "U1"

    def test_choose_falls_back_to_gateway_selection(self) -> None:
        """Test unknown stored account falls back to the gateway selection."""
        accounts = AccountList(accounts=["U1", "U2"], selected_account="U2")
        assert accounts.choose("U9") == "U2"
        assert accounts.choose(None) == "U2"

    def test_choose_falls_back_to_first(self) -> None:
        """Test first account is used when nothing else applies."""
        accounts = AccountList(accounts=["U1", "U2"], selected_account="All")
        assert accounts.choose() == "U1"

    def test_choose_no_accounts(self) -> None:
        """Test empty list yields an empty id."""
        assert AccountList().choose("U1") == ""


class TestAccountsAPI:
    """Test AccountsAPI methods."""

    def test_get_accounts(self, accounts_api, mock_client) -> None:
        """Test accounts listing."""
        mock_client.request.return_value = {"accounts": ["All", "U1234567"], "selectedAccount": "U1234567"}

        accounts = accounts_api.get_accounts()

        mock_client.request.assert_called_once_with("iserver/accounts")
        assert accounts.accounts == ["U1234567"]

    def test_get_ledger(self, accounts_api, mock_client) -> None:
        """Test ledger entries keyed by upper-case currency."""
        mock_client.request.return_value = {
            "USD": {"currency": "USD", "cashbalance": 3000.5, "settledcash": 2500, "netliquidationvalue": "10000"},
            "ils": {"cashbalance": 1000},
            "BASE": {"currency": "BASE", "cashbalance": 3270.5},
        }

        ledger = accounts_api.get_ledger("U1")

        mock_client.request.assert_called_once_with("portfolio/U1/ledger")
        assert ledger["USD"] == LedgerEntry(
            currency="USD",
            cash_balance=3000.5,
            settled_cash=2500.0,
            net_liquidation_value=10000.0,
        )
        assert ledger["ILS"].cash_balance == 1000.0
        assert "BASE" in ledger

    def test_get_ledger_unexpected_shape(self, accounts_api, mock_client) -> None:
        """Test non-mapping ledger raises GatewayError."""
        mock_client.request.return_value = "error"

        with pytest.raises(GatewayError, match="Unexpected ledger response"):
            accounts_api.get_ledger("U1")

    def test_get_exchange_rate(self, accounts_api, mock_client) -> None:
        """Test rate request parameters and parsing."""
        mock_client.request.return_value = {"rate": 0.27}

        rate = accounts_api.get_exchange_rate("ils", "usd")

        assert rate == 0.27
        mock_client.request.assert_called_once_with(
            "iserver/exchangerate", params={"source": "ILS", "target": "USD"}
        )

    @pytest.mark.parametrize("payload", [{"rate": 0}, {"rate": -1.2}, {}, {"rate": None}, "n/a"])
    def test_get_exchange_rate_unusable(self, accounts_api, mock_client, payload) -> None:
        """Test missing or non-positive rates raise ExchangeRateError."""
        mock_client.request.return_value = payload

        with pytest.raises(ExchangeRateError):
            accounts_api.get_exchange_rate("ILS", "USD")

    def test_get_summary(self, accounts_api, mock_client) -> None:
        """Test raw summary passthrough."""
        mock_client.request.return_value = {"netliquidation": {"amount": 1}}

        assert accounts_api.get_summary("U1") == {"netliquidation": {"amount": 1}}
        mock_client.request.assert_called_once_with("portfolio/U1/summary")
