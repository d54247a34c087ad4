from __future__ import annotations

import random
from typing import Any, Protocol

import structlog

from surrogateagent.services.market_data import (
    FinancialReport,
    MarketDataService,
    recommendation_for,
)
from .base import AgentType, DataQuality, PayloadType, Tool, ToolResult, failure, param_text

logger = structlog.get_logger()

SYNTHETIC_ANALYSIS = "Generated based on simulated market volatility and technical indicators."
SYNTHETIC_DISCLOSURE = " (Note: Simulated data - live market feed unavailable.)"


class MarketAnalyst(Protocol):
    def generate_market_analysis(self, symbol: str, price: float, change_percent: float) -> str:
        ...


def synthetic_report(symbol: str, rng: random.Random) -> FinancialReport:
    price = rng.uniform(50, 1050)
    change = rng.uniform(-10, 10)
    change_percent = (change / price) * 100
    return FinancialReport(
        symbol=symbol.strip().upper(),
        price=round(price, 2),
        currency="USD",
        change=round(change, 2),
        change_percent=round(change_percent, 2),
        market_cap=f"{rng.uniform(0.5, 2.5):.1f}T",
        pe_ratio=round(rng.uniform(10, 60), 2),
        week52_high=round(price * 1.2, 2),
        week52_low=round(price * 0.8, 2),
        recommendation=recommendation_for(change_percent),
        analysis=SYNTHETIC_ANALYSIS + SYNTHETIC_DISCLOSURE,
        source="synthetic",
        data_quality=DataQuality.SYNTHETIC.value,
    )


class FinanceTool(Tool):
    agent = AgentType.FINANCE

    def __init__(
        self,
        market_data: MarketDataService,
        analyst: MarketAnalyst,
        rng: random.Random | None = None,
    ) -> None:
        self._market_data = market_data
        self._analyst = analyst
        self._rng = rng or random.Random()

    def run(self, action: str, params: dict[str, Any]) -> ToolResult:
        if action != "analyze_stock":
            return failure("Unknown finance action.")

        symbol = param_text(params, "symbol")
        if not symbol:
            return failure("Missing stock symbol (e.g., AAPL, BTC).")

        outcome = self._market_data.lookup(symbol)
        report = outcome.value
        if report is not None:
            report.analysis = self._analyst.generate_market_analysis(
                report.symbol, report.price, report.change_percent
            )
            message = f"I've analyzed the live market data for {report.symbol}."
        else:
            logger.warning("finance.synthetic_report", symbol=symbol, errors=outcome.errors[-4:])
            report = synthetic_report(symbol, self._rng)
            message = (
                f"Live market data for {report.symbol} is unavailable right now, "
                "so this report uses simulated figures."
            )

        return ToolResult(
            success=True,
            message=message,
            data=report.to_dict(),
            payload_type=PayloadType.FINANCE_REPORT,
        )
