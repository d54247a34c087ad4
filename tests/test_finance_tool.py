import random
import unittest

from surrogateagent.services.fallback import FallbackOutcome
from surrogateagent.services.market_data import FinancialReport
from surrogateagent.tools.base import PayloadType
from surrogateagent.tools.finance import SYNTHETIC_DISCLOSURE, FinanceTool


class _FakeMarketData:
    def __init__(self, report=None):
        self.report = report
        self.symbols = []

    def lookup(self, symbol):
        self.symbols.append(symbol)
        if self.report is None:
            return FallbackOutcome(value=None, provider=None, errors=["yahoo: down"])
        return FallbackOutcome(value=self.report, provider=self.report.source)


class _FakeAnalyst:
    def __init__(self):
        self.calls = []

    def generate_market_analysis(self, symbol, price, change_percent):
        self.calls.append((symbol, price, change_percent))
        return "Prediction: Bullish"


def _live_report():
    return FinancialReport(
        symbol="AAPL",
        price=190.0,
        currency="USD",
        change=2.0,
        change_percent=1.06,
        market_cap="N/A",
        pe_ratio=None,
        week52_high=200.0,
        week52_low=150.0,
        recommendation="BUY",
        analysis="Market data for AAPL.",
        source="yahoo",
    )


class FinanceToolTests(unittest.TestCase):
    def test_live_report_gets_dedicated_analysis(self):
        analyst = _FakeAnalyst()
        tool = FinanceTool(_FakeMarketData(_live_report()), analyst)
        result = tool.run("analyze_stock", {"symbol": "AAPL"})
        self.assertTrue(result.success)
        self.assertEqual(result.payload_type, PayloadType.FINANCE_REPORT)
        self.assertEqual(result.data["analysis"], "Prediction: Bullish")
        self.assertEqual(result.data["data_quality"], "live")
        self.assertEqual(result.message, "I've analyzed the live market data for AAPL.")
        self.assertEqual(analyst.calls, [("AAPL", 190.0, 1.06)])

    def test_retrieval_failure_substitutes_labelled_synthetic_report(self):
        analyst = _FakeAnalyst()
        tool = FinanceTool(_FakeMarketData(None), analyst, rng=random.Random(7))
        result = tool.run("analyze_stock", {"symbol": "nvda"})
        self.assertTrue(result.success)
        data = result.data
        self.assertEqual(data["symbol"], "NVDA")
        self.assertEqual(data["data_quality"], "synthetic")
        self.assertTrue(data["analysis"].endswith(SYNTHETIC_DISCLOSURE))
        self.assertGreaterEqual(data["price"], 50)
        self.assertLess(data["price"], 1050)
        self.assertGreaterEqual(data["change"], -10)
        self.assertLess(data["change"], 10)
        self.assertAlmostEqual(data["change_percent"], data["change"] / data["price"] * 100, delta=0.02)
        self.assertAlmostEqual(data["week52_high"], data["price"] * 1.2, delta=0.02)
        self.assertAlmostEqual(data["week52_low"], data["price"] * 0.8, delta=0.02)
        for key in ("price", "change", "change_percent", "pe_ratio", "week52_high", "week52_low"):
            self.assertEqual(data[key], round(data[key], 2))
        self.assertTrue(data["market_cap"].endswith("T"))
        self.assertTrue(10 <= data["pe_ratio"] < 60)
        self.assertIn("simulated", result.message)
        self.assertEqual(analyst.calls, [])

    def test_missing_symbol_fails(self):
        market = _FakeMarketData(_live_report())
        result = FinanceTool(market, _FakeAnalyst()).run("analyze_stock", {})
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Missing stock symbol (e.g., AAPL, BTC).")
        self.assertEqual(market.symbols, [])


if __name__ == "__main__":
    unittest.main()
