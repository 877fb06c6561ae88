"""
tests/test_advice_report.py
---------------------------
Unit tests for AdviceReport.

Test coverage:
    health_label() bands
    format_portfolio() / format_advice() sections
    recommendations_frame() and CSV export
"""

import os
import tempfile
import unittest

import pandas as pd

from income_engine.advice_report import AdviceReport
from income_engine.models import Instrument, Position, ReturnWindow, WeightingConfig
from income_engine.portfolio_advisor import PortfolioAdvisor
from income_engine.portfolio_engine import PortfolioEngine
from income_engine.ranking import RankingSnapshot


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _entries():
    universe = [
        Instrument("A", price=10.0, total_return_1y=0.20, volatility=0.1,
                   window=ReturnWindow(0.08, 0.10, 0.15, 0.20)),
        Instrument("B", price=20.0, total_return_1y=0.10, volatility=0.2,
                   window=ReturnWindow(0.02, 0.05, 0.10, 0.15)),
    ]
    return PortfolioEngine.build_portfolio(universe, WeightingConfig(top_k=2, max_weight=None))


def _advice():
    positions = [
        Position("A", shares=100, current_value=6_000, signal=2),
        Position("B", shares=100, current_value=4_000, signal=-1),
    ]
    universe = [Instrument("N1", price=10.0, strategy="REIT")]
    ranking = RankingSnapshot.from_order(["A", "N1", "B"])
    return PortfolioAdvisor.advise(positions, {"A": 60.0, "B": 40.0}, ranking, universe)


# ===========================================================================
# 1. Health labels
# ===========================================================================

class TestHealthLabel(unittest.TestCase):

    def test_bands(self):
        cases = {95: "Excellent", 80: "Excellent", 79: "Good", 70: "Good",
                 65: "Fair", 45: "Needs Improvement", 40: "Needs Improvement",
                 39: "Poor", 0: "Poor"}
        for score, label in cases.items():
            with self.subTest(score=score):
                self.assertEqual(AdviceReport.health_label(score), label)


# ===========================================================================
# 2. Text rendering
# ===========================================================================

class TestFormatting(unittest.TestCase):

    def test_portfolio_lists_every_ticker(self):
        text = AdviceReport.format_portfolio(_entries(), 10_000)
        self.assertIn("PORTFOLIO", text)
        self.assertIn("A ", text)
        self.assertIn("B ", text)
        self.assertIn("Cash remaining", text)

    def test_empty_portfolio(self):
        self.assertIn("Nothing allocated", AdviceReport.format_portfolio([], 10_000))

    def test_advice_sections(self):
        text = AdviceReport.format_advice(_advice())
        for section in ("PORTFOLIO HEALTH", "POSITIONS", "NEW CANDIDATES", "REBALANCING"):
            self.assertIn(section, text)
        self.assertIn("N1", text)
        self.assertIn("DECREASE", text)


# ===========================================================================
# 3. Tabular export
# ===========================================================================

class TestExport(unittest.TestCase):

    def test_frame_rows(self):
        frame = AdviceReport.recommendations_frame(_advice())
        self.assertEqual(list(frame["kind"]), ["position", "position", "new"])
        self.assertEqual(frame.loc[frame["kind"] == "new", "action"].iloc[0], "BUY")

    def test_portfolio_frame(self):
        frame = AdviceReport.portfolio_frame(_entries())
        self.assertEqual(list(frame["ticker"]), ["A", "B"])
        self.assertIn("badge_label", frame.columns)

    def test_csv_round_trip(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = AdviceReport.export_csv(_advice(), os.path.join(tmp, "advice.csv"))
            frame = pd.read_csv(path)
        self.assertEqual(len(frame), 3)
        self.assertIn("reason", frame.columns)


if __name__ == "__main__":
    unittest.main()
