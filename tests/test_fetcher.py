"""
Quote source tests.
Tests for the synthetic generator and the Alpha Vantage adapter.
"""

import asyncio
import math
from datetime import timedelta
from unittest.mock import Mock, patch

import pytest
import requests

from stock_tracker.config import QuoteProviderConfig
from stock_tracker.data.fetcher import QuoteSource
from stock_tracker.data.models import SOURCE_LIVE, SOURCE_SYNTHETIC
from stock_tracker.data.synthetic import (
    base_price,
    symbol_hash,
    synthetic_quote,
    time_bucket,
)
from stock_tracker.database.store import InMemoryStore


def _reference_hash(symbol: str) -> int:
    """31-based polynomial hash wrapped to signed 32 bits."""
    n = len(symbol)
    total = sum(ord(c) * 31 ** (n - 1 - i) for i, c in enumerate(symbol))
    return (total + 2**31) % 2**32 - 2**31


class TestSymbolHash:
    """Test symbol hashing."""

    def test_known_values(self):
        assert symbol_hash("") == 0
        assert symbol_hash("A") == 65
        assert symbol_hash("AAPL") == 2001436

    def test_wraps_to_signed_32_bit(self):
        """Should overflow like 32-bit integer arithmetic."""
        symbol = "BERKSHIRE.HATHAWAY.CLASS.B"
        h = symbol_hash(symbol)
        assert -(2**31) <= h < 2**31
        assert h == _reference_hash(symbol)

    @pytest.mark.parametrize("symbol", ["MSFT", "GOOGL", "TSLA", "BRK.B", "ZZZZZZZZ"])
    def test_matches_reference(self, symbol):
        assert symbol_hash(symbol) == _reference_hash(symbol)

    def test_base_price_for_aapl(self):
        # 50 + 2001436 % 950
        assert base_price("AAPL") == 786


class TestSyntheticQuote:
    """Test the deterministic generator."""

    def test_same_bucket_is_identical(self, fixed_now):
        """Should return the same numbers anywhere inside a 5-minute window."""
        first = synthetic_quote("AAPL", fixed_now)
        second = synthetic_quote("AAPL", fixed_now + timedelta(minutes=4, seconds=59))

        assert time_bucket(fixed_now) == time_bucket(fixed_now + timedelta(minutes=4))
        assert (first.price, first.change, first.change_percent) == (
            second.price,
            second.change,
            second.change_percent,
        )

    def test_next_bucket_moves(self, fixed_now):
        first = synthetic_quote("AAPL", fixed_now)
        later = synthetic_quote("AAPL", fixed_now + timedelta(minutes=5))

        assert time_bucket(later.timestamp) == time_bucket(fixed_now) + 1
        assert first.price != later.price

    def test_different_symbols_differ(self, fixed_now):
        aapl = synthetic_quote("AAPL", fixed_now)
        msft = synthetic_quote("MSFT", fixed_now)
        assert aapl.price != msft.price

    def test_change_percent_is_fluctuation(self, fixed_now):
        """changePercent should equal sin(bucket) * 2."""
        quote = synthetic_quote("AAPL", fixed_now)
        expected = math.sin(time_bucket(fixed_now)) * 0.02 * 100
        assert quote.change_percent == pytest.approx(expected)

    def test_change_consistent_with_price(self, fixed_now):
        """changePercent == change / (price - change) * 100."""
        quote = synthetic_quote("NVDA", fixed_now)
        assert quote.change_percent == pytest.approx(
            quote.change / (quote.price - quote.change) * 100
        )
        assert quote.price - quote.change == pytest.approx(base_price("NVDA"))

    @pytest.mark.parametrize("symbol", ["AAPL", "MSFT", "GOOGL", "A", "XYZW"])
    def test_price_in_range(self, symbol, fixed_now):
        for minutes in range(0, 60, 5):
            quote = synthetic_quote(symbol, fixed_now + timedelta(minutes=minutes))
            assert 50 * 0.98 <= quote.price < 1000 * 1.02
            assert abs(quote.change_percent) <= 2.0
            assert 50 <= base_price(symbol) < 1000

    def test_symbol_is_uppercased(self, fixed_now):
        assert synthetic_quote("aapl", fixed_now).symbol == "AAPL"
        assert synthetic_quote("aapl", fixed_now).price == synthetic_quote("AAPL", fixed_now).price

    def test_source_is_synthetic(self, fixed_now):
        assert synthetic_quote("AAPL", fixed_now).source == SOURCE_SYNTHETIC


class TestQuoteSource:
    """Test QuoteSource with mocked requests."""

    @pytest.fixture
    def store(self):
        return InMemoryStore()

    @pytest.fixture
    def live_source(self, store, fixed_now):
        """Quote source with an API key configured."""
        config = QuoteProviderConfig(api_key="demo-key")
        return QuoteSource(config, store=store, now=lambda: fixed_now)

    def _mock_response(self, payload):
        response = Mock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        return response

    def test_no_api_key_uses_synthetic(self, quote_source, fixed_now):
        """Should not touch the network without a key."""
        with patch("requests.get") as mock_get:
            quote = asyncio.run(quote_source.fetch_quote("aapl"))

        mock_get.assert_not_called()
        assert quote.symbol == "AAPL"
        assert quote.source == SOURCE_SYNTHETIC
        assert quote.price == synthetic_quote("AAPL", fixed_now).price

    def test_fetch_live_quote(self, live_source, sample_global_quote):
        """Should parse price, change and percent from the provider."""
        with patch("requests.get", return_value=self._mock_response(sample_global_quote)) as mock_get:
            quote = asyncio.run(live_source.fetch_quote("ibm"))

        assert quote.source == SOURCE_LIVE
        assert quote.symbol == "IBM"
        assert quote.price == 175.5
        assert quote.change == 2.25
        assert quote.change_percent == pytest.approx(1.2987)
        assert quote.raw == sample_global_quote["Global Quote"]

        params = mock_get.call_args.kwargs["params"]
        assert params == {"function": "GLOBAL_QUOTE", "symbol": "IBM", "apikey": "demo-key"}
        assert mock_get.call_args.kwargs["timeout"] == 10.0

    @pytest.mark.parametrize(
        "payload",
        [
            {"Note": "Thank you for using Alpha Vantage! Our standard API rate limit is..."},
            {"Information": "The **demo** API key is for demo purposes only."},
            {},
            {"Global Quote": {}},
            {"Global Quote": {"01. symbol": "AAPL"}},
            {"Global Quote": {"05. price": "abc", "09. change": "1", "10. change percent": "1%"}},
        ],
    )
    def test_unusable_response_falls_back(self, live_source, payload, fixed_now):
        """Should use synthetic data for rate limits and malformed payloads."""
        with patch("requests.get", return_value=self._mock_response(payload)):
            quote = asyncio.run(live_source.fetch_quote("AAPL"))

        assert quote.source == SOURCE_SYNTHETIC
        assert quote.price == synthetic_quote("AAPL", fixed_now).price

    def test_network_error_falls_back(self, live_source):
        with patch("requests.get", side_effect=requests.ConnectionError("boom")):
            quote = asyncio.run(live_source.fetch_quote("AAPL"))

        assert quote.source == SOURCE_SYNTHETIC

    def test_http_error_falls_back(self, live_source):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        with patch("requests.get", return_value=response):
            quote = asyncio.run(live_source.fetch_quote("AAPL"))

        assert quote.source == SOURCE_SYNTHETIC

    def test_invalid_json_falls_back(self, live_source):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("No JSON object could be decoded")
        with patch("requests.get", return_value=response):
            quote = asyncio.run(live_source.fetch_quote("AAPL"))

        assert quote.source == SOURCE_SYNTHETIC

    def test_records_history_for_live_and_synthetic(self, live_source, store, sample_global_quote):
        """Every resolution should append a history sample."""
        with patch("requests.get", return_value=self._mock_response(sample_global_quote)):
            asyncio.run(live_source.fetch_quote("IBM"))
        with patch("requests.get", side_effect=requests.Timeout("slow")):
            asyncio.run(live_source.fetch_quote("IBM"))

        history = store.get_history("IBM", 10)
        assert len(history) == 2
        assert history[0].price == 175.5
        assert history[0].change_amount == 2.25

    def test_history_failure_does_not_propagate(self, fixed_now):
        """Should still return a quote when storage raises."""
        store = Mock()
        store.append_history.side_effect = RuntimeError("disk full")
        source = QuoteSource(QuoteProviderConfig(), store=store, now=lambda: fixed_now)

        quote = asyncio.run(source.fetch_quote("AAPL"))

        assert quote.symbol == "AAPL"
        store.append_history.assert_called_once()

    def test_has_api_key(self):
        assert not QuoteSource(QuoteProviderConfig()).has_api_key
        assert QuoteSource(QuoteProviderConfig(api_key="x")).has_api_key
