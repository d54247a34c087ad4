from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass
from typing import Any
from urllib import parse as urlparse

import requests
import structlog

from .fallback import FallbackOutcome, FallbackResolver, ProviderAttempt

logger = structlog.get_logger()

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

CRYPTO_ALIASES = {
    "BTC": "bitcoin",
    "BTC-USD": "bitcoin",
    "BITCOIN": "bitcoin",
    "ETH": "ethereum",
    "ETH-USD": "ethereum",
    "ETHEREUM": "ethereum",
    "SOL": "solana",
    "SOL-USD": "solana",
    "SOLANA": "solana",
    "DOGE": "dogecoin",
    "DOGE-USD": "dogecoin",
    "DOGECOIN": "dogecoin",
    "XRP": "ripple",
    "XRP-USD": "ripple",
    "RIPPLE": "ripple",
}

EQUITY_ALIASES = {
    "APPLE": "AAPL",
    "TESLA": "TSLA",
    "GOOGLE": "GOOGL",
    "MICROSOFT": "MSFT",
    "AMAZON": "AMZN",
}

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass
class FinancialReport:
    symbol: str
    price: float
    currency: str
    change: float
    change_percent: float
    market_cap: str
    pe_ratio: float | None
    week52_high: float | None
    week52_low: float | None
    recommendation: str
    analysis: str
    source: str
    data_quality: str = "live"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_number(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if not isinstance(value, str):
        return 0.0

    cleaned = re.sub(r"\s", "", value.replace(",", "").replace("$", "").replace("%", ""))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        if cleaned:
            logger.warning("market_data.coerced_to_zero", raw_value=value[:40])
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def resolve_crypto_id(symbol: str) -> str | None:
    upper = (symbol or "").strip().upper()
    if not upper:
        return None
    alias = CRYPTO_ALIASES.get(upper)
    if alias:
        return alias
    if upper.endswith("USD"):
        base = upper[: -len("USD")].rstrip("-")
        return base.lower() or None
    return None


def normalize_equity_symbol(symbol: str) -> str:
    upper = (symbol or "").strip().upper()
    if "-" not in upper and "." not in upper:
        return EQUITY_ALIASES.get(upper, upper)
    return upper


def recommendation_for(change_percent: float) -> str:
    if change_percent > 1:
        return "BUY"
    if change_percent < -1:
        return "SELL"
    return "HOLD"


class CoinGeckoProvider:
    name = "coingecko"

    def __init__(self, base_url: str, timeout_seconds: int) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = max(1, timeout_seconds)

    def fetch(self, symbol: str, coin_id: str) -> FinancialReport | None:
        response = requests.get(
            f"{self.base_url}/simple/price",
            params={
                "ids": coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_market_cap": "true",
            },
            headers={"Accept": "application/json", "User-Agent": DEFAULT_USER_AGENT},
            timeout=self.timeout_seconds,
        )
        if not response.ok:
            raise RuntimeError(f"CoinGecko request failed ({response.status_code})")
        payload = response.json()
        coin = payload.get(coin_id) if isinstance(payload, dict) else None
        if not isinstance(coin, dict):
            return None

        price = parse_number(coin.get("usd"))
        change_percent = parse_number(coin.get("usd_24h_change"))
        market_cap = parse_number(coin.get("usd_market_cap"))
        return FinancialReport(
            symbol=symbol.strip().upper(),
            price=price,
            currency="USD",
            change=price * (change_percent / 100),
            change_percent=change_percent,
            market_cap=f"${market_cap / 1e9:.2f}B" if market_cap else "N/A",
            pe_ratio=None,
            week52_high=None,
            week52_low=None,
            recommendation="BUY" if change_percent > 0 else "SELL",
            analysis=f"Live data from CoinGecko. 24h Change: {change_percent:.2f}%",
            source=self.name,
        )


class YahooChartProvider:
    name = "yahoo"

    def __init__(self, base_url: str, timeout_seconds: int, api_key: str | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = max(1, timeout_seconds)
        self.api_key = (api_key or "").strip() or None

    def fetch(self, symbol: str) -> FinancialReport | None:
        headers = {"Accept": "application/json", "User-Agent": DEFAULT_USER_AGENT}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        response = requests.get(
            f"{self.base_url}/{urlparse.quote(symbol, safe='-.^=')}",
            params={"interval": "1d", "range": "1d"},
            headers=headers,
            timeout=self.timeout_seconds,
        )
        if not response.ok:
            raise RuntimeError(f"Yahoo chart request failed ({response.status_code})")
        payload = response.json()
        chart = payload.get("chart") if isinstance(payload, dict) else None
        results = chart.get("result") if isinstance(chart, dict) else None
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            return None
        meta = results[0].get("meta")
        if not isinstance(meta, dict):
            return None

        price = parse_number(meta.get("regularMarketPrice"))
        previous_close = parse_number(meta.get("chartPreviousClose"))
        change = price - previous_close if previous_close else 0.0
        change_percent = (change / previous_close) * 100 if previous_close else 0.0
        high = meta.get("fiftyTwoWeekHigh")
        low = meta.get("fiftyTwoWeekLow")
        return FinancialReport(
            symbol=symbol,
            price=price,
            currency=str(meta.get("currency") or "USD"),
            change=change,
            change_percent=change_percent,
            market_cap="N/A",
            pe_ratio=None,
            week52_high=parse_number(high) if high is not None else None,
            week52_low=parse_number(low) if low is not None else None,
            recommendation=recommendation_for(change_percent),
            analysis=f"Market data for {symbol}. Volatility: {abs(change_percent):.2f}%",
            source=self.name,
        )


class MarketDataService:
    def __init__(
        self,
        crypto: CoinGeckoProvider,
        equities: YahooChartProvider,
    ) -> None:
        self.crypto = crypto
        self.equities = equities

    def lookup(self, symbol: str) -> FallbackOutcome[FinancialReport]:
        attempts: list[ProviderAttempt[FinancialReport]] = []
        coin_id = resolve_crypto_id(symbol)
        if coin_id:
            attempts.append(
                ProviderAttempt(
                    name=self.crypto.name,
                    fetch=lambda: self.crypto.fetch(symbol, coin_id),
                    accept=_has_price,
                )
            )
        equity_symbol = normalize_equity_symbol(symbol)
        attempts.append(
            ProviderAttempt(
                name=self.equities.name,
                fetch=lambda: self.equities.fetch(equity_symbol),
                accept=_has_price,
            )
        )
        return FallbackResolver("market_data", attempts).resolve()


def _has_price(report: FinancialReport) -> bool:
    return report.price > 0
