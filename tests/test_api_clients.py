"""
Tests for the upstream HTTP clients with requests patched out.
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from wallet_fun_facts.api_clients import (
    CoinGeckoClient,
    CoinMarketCapClient,
    NansenClient,
    to_iso,
)
from wallet_fun_facts.exceptions import APIResponseError, MalformedResponseError

from conftest import TOKEN_A, WALLET

FROM = datetime(2025, 1, 1, tzinfo=timezone.utc)
TO = datetime(2025, 7, 1, tzinfo=timezone.utc)


def fake_response(payload=None, status_code=200, invalid_json=False):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "OK" if response.ok else "Error"
    if invalid_json:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response


def tx_page(count, is_last_page):
    return {
        "data": [{
            "block_timestamp": "2025-03-01T10:00:00Z",
            "chain": "ethereum",
            "method": "swap",
            "volume_usd": 100.0,
            "tokens_sent": [{"token_address": "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE",
                             "price_usd": 2000.0, "value_usd": 100.0}],
            "tokens_received": [{"token_address": TOKEN_A, "price_usd": 1.0,
                                 "value_usd": 100.0, "token_amount": 100}],
        }] * count,
        "pagination": {"page": 1, "per_page": 100, "is_last_page": is_last_page},
    }


class TestNansenClient:

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_sends_api_key_header(self, mock_post, config):
        mock_post.return_value = fake_response({"data": [], "pagination": {"is_last_page": True}})

        NansenClient(config).get_current_balance(WALLET)

        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.nansen.ai/api/v1/profiler/address/current-balance"
        assert kwargs["headers"]["apiKey"] == "test-key"
        assert kwargs["json"]["pagination"] == {"page": 1, "per_page": 100}
        assert kwargs["timeout"] == config.request_timeout

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_parses_holdings(self, mock_post, config):
        mock_post.return_value = fake_response({"data": [{
            "token_address": "0xAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA",
            "chain": "ethereum",
            "token_symbol": "AAA",
            "token_amount": "12.5",
            "value_usd": 25.0,
            "price_usd": 2.0,
        }]})

        holding = NansenClient(config).get_current_balance(WALLET).data[0]

        assert holding.token_address == TOKEN_A
        assert holding.balance == Decimal("12.5")
        assert holding.value_usd == 25.0

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_pages_until_last_page(self, mock_post, config):
        mock_post.side_effect = [
            fake_response(tx_page(100, False)),
            fake_response(tx_page(100, False)),
            fake_response(tx_page(7, True)),
        ]

        transactions = NansenClient(config).get_all_transactions(WALLET, "ethereum", FROM, TO)

        assert len(transactions) == 207
        pages = [c.kwargs["json"]["pagination"]["page"] for c in mock_post.call_args_list]
        assert pages == [1, 2, 3]
        assert transactions[0].tokens_sent[0].price_usd == 2000.0
        assert transactions[0].is_buy

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_paging_stops_at_page_limit(self, mock_post, config):
        mock_post.return_value = fake_response(tx_page(1, False))

        transactions = NansenClient(config).get_all_transactions(WALLET, "ethereum", FROM, TO)

        assert mock_post.call_count == config.max_transaction_pages
        assert len(transactions) == config.max_transaction_pages

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_labels_are_a_bare_array(self, mock_post, config):
        mock_post.return_value = fake_response([
            {"label": "Staker", "category": "defi"},
            {"label": "30D Smart Trader", "category": "smart_money"},
        ])

        result = NansenClient(config).get_labels(WALLET)

        assert [item.label for item in result] == ["Staker", "30D Smart Trader"]
        assert mock_post.call_args.kwargs["json"]["parameters"] == {"chain": "all", "address": WALLET}

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_pnl_summary(self, mock_post, config):
        mock_post.return_value = fake_response(
            {"realized_pnl_usd": -42.1, "realized_pnl_percent": -0.0002273911194097849})

        summary = NansenClient(config).get_pnl_summary(WALLET, FROM, TO)

        assert summary.realized_pnl_percent == pytest.approx(-0.0002273911194097849)
        assert mock_post.call_args.kwargs["json"]["date"] == {
            "from": "2025-01-01T00:00:00.000Z", "to": "2025-07-01T00:00:00.000Z"}

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_pnl_summary_without_realized_value(self, mock_post, config):
        mock_post.return_value = fake_response({"realized_pnl_usd": None})
        assert NansenClient(config).get_pnl_summary(WALLET, FROM, TO) is None

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_screener_items(self, mock_post, config):
        mock_post.return_value = fake_response({"data": {"items": [
            {"token_address": TOKEN_A, "chain": "ethereum", "token_name": "Dead",
             "token_symbol": "DEAD", "liquidity": 512.0},
        ]}})

        tokens = NansenClient(config).screen_tokens(
            ["ethereum"], FROM, TO, [TOKEN_A], 0, 10_000)

        assert tokens[0].liquidity_usd == 512.0
        assert mock_post.call_args.kwargs["json"]["watchlistFilter"] == [TOKEN_A]

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_http_error_raises(self, mock_post, config):
        mock_post.return_value = fake_response({"error": "nope"}, status_code=429)

        with pytest.raises(APIResponseError) as excinfo:
            NansenClient(config).get_labels(WALLET)

        assert excinfo.value.status_code == 429
        assert excinfo.value.is_rate_limited()

    @pytest.mark.parametrize("payload", [
        {"items": []},
        {"data": [{"value_usd": "lots"}]},
        {"data": [], "pagination": {"page": None}},
        {"data": [], "pagination": {"per_page": "many"}},
        {"data": [], "pagination": ["page", 1]},
    ])
    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_malformed_payload_raises(self, mock_post, payload, config):
        mock_post.return_value = fake_response(payload)

        with pytest.raises(MalformedResponseError):
            NansenClient(config).get_current_balance(WALLET)

    @pytest.mark.parametrize("payload", [
        {"data": [{"token_address": TOKEN_A}]},
        {"data": {"items": {"token_address": TOKEN_A}}},
        {"data": {"items": ["not a token"]}},
    ])
    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_malformed_screener_payload_raises(self, mock_post, payload, config):
        mock_post.return_value = fake_response(payload)

        with pytest.raises(MalformedResponseError):
            NansenClient(config).screen_tokens(["ethereum"], FROM, TO, [TOKEN_A], 0, 10_000)

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_empty_screener_payload(self, mock_post, config):
        mock_post.return_value = fake_response({"data": None})

        assert NansenClient(config).screen_tokens(
            ["ethereum"], FROM, TO, [TOKEN_A], 0, 10_000) == []

    @patch("wallet_fun_facts.api_clients.requests.post")
    def test_invalid_json_raises(self, mock_post, config):
        mock_post.return_value = fake_response(invalid_json=True)

        with pytest.raises(MalformedResponseError):
            NansenClient(config).get_current_balance(WALLET)


class TestCoinGeckoClient:

    @patch("wallet_fun_facts.api_clients.requests.get")
    def test_market_chart_url(self, mock_get, config):
        mock_get.return_value = fake_response({"prices": [[1, 2.0]]})

        prices = CoinGeckoClient(config).get_market_chart(
            "ethereum", TOKEN_A.upper().replace("0X", "0x"), 365)

        assert prices == [[1, 2.0]]
        args, kwargs = mock_get.call_args
        assert args[0] == f"https://api.coingecko.com/api/v3/coins/ethereum/contract/{TOKEN_A}/market_chart"
        assert kwargs["params"] == {"vs_currency": "usd", "days": 365}
        assert kwargs["headers"] == {}

    @patch("wallet_fun_facts.api_clients.requests.get")
    def test_pro_key_header(self, mock_get, config):
        config.coingecko_api_key = "cg-key"
        mock_get.return_value = fake_response({"ethereum": {"usd": 2500.5}})

        assert CoinGeckoClient(config).get_current_price("ethereum") == 2500.5
        assert mock_get.call_args.kwargs["headers"] == {"x-cg-pro-api-key": "cg-key"}

    @patch("wallet_fun_facts.api_clients.requests.get")
    def test_historical_price(self, mock_get, config):
        mock_get.return_value = fake_response(
            {"market_data": {"current_price": {"usd": 1800.0}}})

        price = CoinGeckoClient(config).get_historical_price("ethereum", datetime(2025, 2, 3))

        assert price == 1800.0
        assert mock_get.call_args.kwargs["params"]["date"] == "03-02-2025"

    @patch("wallet_fun_facts.api_clients.requests.get")
    def test_missing_price_is_zero(self, mock_get, config):
        mock_get.return_value = fake_response({})
        assert CoinGeckoClient(config).get_current_price("ethereum") == 0.0


class TestCoinMarketCapClient:

    def test_enabled_only_with_key(self, config):
        assert not CoinMarketCapClient(config).enabled
        config.coinmarketcap_api_key = "cmc"
        assert CoinMarketCapClient(config).enabled

    @patch("wallet_fun_facts.api_clients.requests.get")
    def test_latest_quote(self, mock_get, config):
        config.coinmarketcap_api_key = "cmc"
        mock_get.return_value = fake_response(
            {"data": {"ETH": [{"quote": {"USD": {"price": 2450.0}}}]}})

        assert CoinMarketCapClient(config).get_current_price("ETH") == 2450.0
        assert mock_get.call_args.kwargs["headers"]["X-CMC_PRO_API_KEY"] == "cmc"


def test_to_iso_assumes_utc_for_naive_datetimes():
    assert to_iso(datetime(2025, 1, 2, 3, 4, 5)) == "2025-01-02T03:04:05.000Z"
