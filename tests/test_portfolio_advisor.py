"""
tests/test_portfolio_advisor.py
-------------------------------
Unit tests for PortfolioAdvisor.

Test coverage:
    recommend_position() — every row of the signal × rank decision table
    advise()             — enrichment, rank lookup, ordering
    New candidates       — exclusions, count, allocation, confidence
    analyze()            — diversification, risk, yield, trend, health, texts
    rebalancing_summary()
"""

import unittest

from income_engine.constants import HEALTHY_TEXTS
from income_engine.enums import Action, Priority
from income_engine.errors import ConfigurationError
from income_engine.models import Instrument, Position
from income_engine.portfolio_advisor import PortfolioAdvisor
from income_engine.ranking import RankingSnapshot


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_TOTAL = 100_000.0


def _rec(allocation, signal, rank=None, price=50.0):
    """Recommendation for one position worth *allocation* of a $100k book."""
    position = Position("X", shares=100, current_value=allocation * _TOTAL, signal=signal)
    return PortfolioAdvisor.recommend_position(position, _TOTAL, rank=rank, price=price)


def _book(n=10, value=10_000.0, **kwargs):
    return [Position(f"P{i}", shares=100, current_value=value, **kwargs) for i in range(n)]


# ===========================================================================
# 1. Buy side
# ===========================================================================

class TestBuySide(unittest.TestCase):

    def test_strong_buy_top_ten(self):
        rec = _rec(0.10, 2, rank=5)
        self.assertIs(rec.action, Action.INCREASE)
        self.assertEqual(rec.confidence, 95)
        self.assertAlmostEqual(rec.target_value, 16_000.0)
        self.assertAlmostEqual(rec.target_allocation, 0.16)
        self.assertEqual(rec.target_shares, 320)
        self.assertIs(rec.priority, Priority.HIGH)

    def test_buy_top_ten(self):
        rec = _rec(0.10, 1, rank=10)
        self.assertAlmostEqual(rec.target_allocation, 0.15)
        self.assertEqual(rec.confidence, 90)

    def test_top_ten_capped(self):
        rec = _rec(0.20, 2, rank=1)
        self.assertIs(rec.action, Action.INCREASE)
        self.assertAlmostEqual(rec.target_allocation, 0.25)

    def test_above_cap_keeps_increase_with_capped_target(self):
        rec = _rec(0.30, 1, rank=1)
        self.assertIs(rec.action, Action.INCREASE)
        self.assertAlmostEqual(rec.target_allocation, 0.25)
        self.assertEqual(rec.confidence, 90)
        self.assertIn("position cap", rec.reason)

    def test_top_25_above_cap_keeps_increase(self):
        rec = _rec(0.30, 2, rank=20)
        self.assertIs(rec.action, Action.INCREASE)
        self.assertAlmostEqual(rec.target_allocation, 0.20)
        self.assertEqual(rec.confidence, 80)

    def test_strong_buy_top_25(self):
        rec = _rec(0.10, 2, rank=11)
        self.assertAlmostEqual(rec.target_allocation, 0.135)
        self.assertEqual(rec.confidence, 80)
        self.assertIs(rec.priority, Priority.MEDIUM)

    def test_buy_top_25(self):
        rec = _rec(0.10, 1, rank=25)
        self.assertAlmostEqual(rec.target_allocation, 0.125)
        self.assertEqual(rec.confidence, 75)

    def test_top_25_capped(self):
        rec = _rec(0.18, 2, rank=20)
        self.assertAlmostEqual(rec.target_allocation, 0.20)

    def test_unranked_small_position_increases(self):
        rec = _rec(0.04, 1, rank=None)
        self.assertIs(rec.action, Action.INCREASE)
        self.assertAlmostEqual(rec.target_allocation, 0.044)
        self.assertEqual(rec.confidence, 65)

    def test_low_ranked_large_position_holds(self):
        rec = _rec(0.08, 2, rank=40)
        self.assertIs(rec.action, Action.HOLD)
        self.assertAlmostEqual(rec.target_allocation, 0.08)
        self.assertEqual(rec.confidence, 65)
        self.assertIs(rec.priority, Priority.LOW)


# ===========================================================================
# 2. Sell side
# ===========================================================================

class TestSellSide(unittest.TestCase):

    def test_strong_sell_heavy(self):
        rec = _rec(0.20, -2)
        self.assertIs(rec.action, Action.DECREASE)
        self.assertAlmostEqual(rec.target_allocation, 0.06)
        self.assertEqual(rec.confidence, 90)
        self.assertIs(rec.priority, Priority.HIGH)

    def test_sell_heavy(self):
        rec = _rec(0.20, -1)
        self.assertAlmostEqual(rec.target_allocation, 0.08)
        self.assertEqual(rec.confidence, 85)

    def test_sell_medium(self):
        rec = _rec(0.10, -1, rank=1)
        self.assertIs(rec.action, Action.DECREASE)
        self.assertAlmostEqual(rec.target_allocation, 0.06)
        self.assertEqual(rec.confidence, 75)

    def test_sell_small_exits(self):
        rec = _rec(0.04, -2)
        self.assertIs(rec.action, Action.SELL)
        self.assertEqual(rec.target_allocation, 0.0)
        self.assertEqual(rec.target_value, 0.0)
        self.assertEqual(rec.target_shares, 0)
        self.assertEqual(rec.confidence, 80)
        self.assertIs(rec.priority, Priority.HIGH)


# ===========================================================================
# 3. Neutral signal
# ===========================================================================

class TestHoldSide(unittest.TestCase):

    def test_top_ranked_hold(self):
        rec = _rec(0.10, 0, rank=4)
        self.assertIs(rec.action, Action.HOLD)
        self.assertAlmostEqual(rec.target_allocation, 0.11)
        self.assertEqual(rec.confidence, 70)

    def test_top_ranked_hold_capped(self):
        rec = _rec(0.17, 0, rank=15)
        self.assertAlmostEqual(rec.target_allocation, 0.18)

    def test_oversized_trim(self):
        rec = _rec(0.20, 0, rank=16)
        self.assertIs(rec.action, Action.DECREASE)
        self.assertAlmostEqual(rec.target_allocation, 0.18)
        self.assertEqual(rec.confidence, 65)

    def test_default_hold(self):
        rec = _rec(0.05, 0)
        self.assertIs(rec.action, Action.HOLD)
        self.assertAlmostEqual(rec.target_allocation, 0.05)
        self.assertEqual(rec.confidence, 60)

    def test_no_price_means_no_shares(self):
        self.assertEqual(_rec(0.10, 2, rank=5, price=None).target_shares, 0)

    def test_invalid_signal_rejected(self):
        with self.assertRaises(ConfigurationError):
            Position("X", shares=1, current_value=1, signal=3)


# ===========================================================================
# 4. advise()
# ===========================================================================

class TestAdvise(unittest.TestCase):

    def _advise(self, positions, ranking=None, universe=(), prices=None):
        return PortfolioAdvisor.advise(positions, prices or {}, ranking, universe)

    def test_snapshot_rank_used(self):
        positions = _book(9) + [Position("X", shares=200, current_value=10_000, signal=2)]
        ranking = RankingSnapshot.from_order(["P0", "P1", "P2", "P3", "X"])
        advice = self._advise(positions, ranking, prices={"X": 50.0})
        rec = [t for t in advice.target_recommendations if t.ticker == "X"][0]
        self.assertIs(rec.action, Action.INCREASE)
        self.assertEqual(rec.confidence, 95)
        self.assertAlmostEqual(rec.target_value, 16_000.0)
        self.assertEqual(rec.target_shares, 320)

    def test_position_rank_fallback(self):
        positions = [Position("X", shares=100, current_value=10_000, signal=1, rank=3),
                     Position("Y", shares=100, current_value=90_000)]
        advice = self._advise(positions)
        rec = [t for t in advice.target_recommendations if t.ticker == "X"][0]
        self.assertEqual(rec.confidence, 90)

    def test_price_falls_back_to_value_per_share(self):
        positions = [Position("X", shares=100, current_value=10_000, signal=0),
                     Position("Y", shares=100, current_value=10_000, signal=0)]
        advice = self._advise(positions)
        # 50% of the book with a neutral signal is trimmed to 45%: $9,000 at $100
        self.assertEqual(advice.target_recommendations[0].target_shares, 90)

    def test_ordered_by_priority_then_confidence(self):
        positions = [
            Position("HOLD", shares=1, current_value=5_000, signal=0),
            Position("EXIT", shares=1, current_value=4_000, signal=-1),
            Position("ADD", shares=1, current_value=10_000, signal=1, rank=20),
            Position("BIG", shares=1, current_value=81_000, signal=0),
        ]
        advice = self._advise(positions)
        priorities = [t.priority for t in advice.target_recommendations]
        order = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}
        self.assertEqual(priorities, sorted(priorities, key=order.get))
        self.assertEqual(advice.target_recommendations[0].ticker, "EXIT")

    def test_enrichment_from_universe(self):
        positions = [Position("A", shares=1, current_value=100)]
        universe = [Instrument("A", strategy="Covered Call", yield_ttm=0.09, risk_score=80)]
        enriched = PortfolioAdvisor.enrich(positions[0], universe[0])
        self.assertEqual(enriched.strategy, "Covered Call")
        self.assertEqual(enriched.yield_ttm, 0.09)
        self.assertEqual(enriched.risk_score, 80)
        self.assertIsNone(positions[0].strategy)

    def test_own_metadata_kept(self):
        position = Position("A", shares=1, current_value=100, strategy="BDC")
        enriched = PortfolioAdvisor.enrich(position, Instrument("A", strategy="REIT"))
        self.assertEqual(enriched.strategy, "BDC")

    def test_no_positions(self):
        advice = self._advise([], RankingSnapshot.from_order(["A"]), prices={"A": 10.0})
        self.assertEqual(advice.target_recommendations, [])
        self.assertEqual(advice.new_candidate_recommendations, [])
        self.assertEqual(advice.portfolio_analysis.position_count, 0)

    def test_to_dict(self):
        advice = self._advise(_book(2, signal=1))
        data = advice.to_dict()
        self.assertEqual(data["target_recommendations"][0]["action"], "HOLD")
        self.assertIn("health_score", data["portfolio_analysis"])


# ===========================================================================
# 5. New candidates
# ===========================================================================

class TestNewCandidates(unittest.TestCase):

    def _held(self):
        return [
            Position("A", shares=100, current_value=60_000, strategy="Covered Call"),
            Position("B", shares=100, current_value=40_000, strategy="BDC"),
        ]

    def _universe(self):
        return [
            Instrument("A", price=10.0, strategy="Covered Call"),
            Instrument("B", price=10.0, strategy="BDC"),
            Instrument("N1", price=20.0, strategy="REIT", yield_ttm=0.07),
            Instrument("N2", price=20.0, strategy="Preferred"),
            Instrument("N3", price=20.0, strategy="Covered Call"),
            Instrument("N4", price=20.0, strategy="Utility"),
            Instrument("N5", price=20.0, strategy="REIT"),
        ]

    def _ranking(self):
        return RankingSnapshot.from_order(["A", "N1", "B", "N2", "N3", "N4", "N5"])

    def _candidates(self, prices=None, positions=None):
        advice = PortfolioAdvisor.advise(
            positions or self._held(), prices or {}, self._ranking(), self._universe()
        )
        return advice.new_candidate_recommendations

    def test_never_includes_held_tickers(self):
        tickers = {c.ticker for c in self._candidates()}
        self.assertFalse(tickers & {"A", "B"})

    def test_best_ranked_first_and_strategy_limit(self):
        # N3 is skipped: Covered Call already holds 60% of the book.
        self.assertEqual([c.ticker for c in self._candidates()], ["N1", "N2", "N4"])

    def test_unpriced_skipped(self):
        universe = self._universe()
        universe[2].price = None
        advice = PortfolioAdvisor.advise(self._held(), {}, self._ranking(), universe)
        self.assertNotIn("N1", [c.ticker for c in advice.new_candidate_recommendations])

    def test_zero_share_target_skipped(self):
        tickers = [c.ticker for c in self._candidates(prices={"N1": 50_000.0})]
        self.assertNotIn("N1", tickers)

    def test_allocation_and_shares(self):
        first = self._candidates()[0]
        # min(0.10, 0.80 / (2 + 3)) = 0.10
        self.assertAlmostEqual(first.target_allocation, 0.10)
        self.assertAlmostEqual(first.target_value, 10_000.0)
        self.assertEqual(first.target_shares, 500)
        self.assertEqual(first.rank, 2)
        self.assertEqual(first.confidence, 90)
        self.assertIs(first.priority, Priority.HIGH)
        self.assertIn("7.0%", first.reason)

    def test_single_candidate_for_full_book(self):
        positions = [Position(f"H{i}", shares=1, current_value=10_000) for i in range(12)]
        candidates = self._candidates(positions=positions)
        self.assertEqual(len(candidates), 1)
        self.assertAlmostEqual(candidates[0].target_allocation, 0.80 / 13)

    def test_confidence_tiers(self):
        self.assertEqual(PortfolioAdvisor._candidate_confidence(10), (90, Priority.HIGH))
        self.assertEqual(PortfolioAdvisor._candidate_confidence(25), (80, Priority.MEDIUM))
        self.assertEqual(PortfolioAdvisor._candidate_confidence(26), (70, Priority.LOW))


# ===========================================================================
# 6. Aggregate diagnostics
# ===========================================================================

class TestAnalysis(unittest.TestCase):

    def test_healthy_book(self):
        strategies = ["CC", "BDC", "REIT", "PFD", "UTIL"]
        positions = [
            Position(f"P{i}", shares=1, current_value=10_000, signal=1,
                     strategy=strategies[i % 5], yield_ttm=0.08, risk_score=40)
            for i in range(10)
        ]
        a = PortfolioAdvisor.analyze(positions)
        self.assertEqual(a.diversification_score, 100)
        self.assertEqual(a.risk_score, 40)
        self.assertEqual(a.yield_balance, 85)
        self.assertEqual(a.trend_alignment, 100)
        self.assertEqual(a.health_score, 87)
        self.assertAlmostEqual(a.weighted_avg_yield, 0.08)
        self.assertEqual(a.recommendations, list(HEALTHY_TEXTS))

    def test_concentrated_book(self):
        positions = [
            Position("BIG", shares=1, current_value=80_000, signal=-1,
                     strategy="CC", risk_score=80),
            Position("SMALL", shares=1, current_value=20_000, signal=0, strategy="CC"),
        ]
        a = PortfolioAdvisor.analyze(positions)
        self.assertEqual(a.diversification_score, 23)
        self.assertEqual(a.risk_score, 85)
        self.assertEqual(a.yield_balance, 50)
        self.assertIsNone(a.weighted_avg_yield)
        self.assertEqual(a.trend_alignment, 20)
        self.assertEqual(a.health_score, 26)
        self.assertEqual(len(a.recommendations), 5)

    def test_risk_capped_at_100(self):
        positions = [Position("A", shares=1, current_value=1, risk_score=95)]
        self.assertEqual(PortfolioAdvisor.risk_score(positions), 100)

    def test_yield_bands(self):
        cases = {None: 50, 0.10: 85, 0.06: 85, 0.15: 85, 0.05: 70, 0.18: 70,
                 0.03: 50, 0.25: 50, 0.01: 30, 0.40: 30}
        for avg, expected in cases.items():
            with self.subTest(avg=avg):
                self.assertEqual(PortfolioAdvisor.yield_balance(avg), expected)

    def test_weighted_yield_ignores_missing(self):
        positions = [
            Position("A", shares=1, current_value=3_000, yield_ttm=0.10),
            Position("B", shares=1, current_value=1_000, yield_ttm=0.02),
            Position("C", shares=1, current_value=9_000),
        ]
        self.assertAlmostEqual(PortfolioAdvisor.weighted_avg_yield(positions), 0.08)

    def test_count_shaping(self):
        for n, expected in ((3, 10), (4, 10), (6, 20), (12, 30), (18, 20), (22, 10), (30, 5)):
            with self.subTest(n=n):
                positions = _book(n)
                # one strategy-less, perfectly balanced book → 0 + 30 + shape
                self.assertEqual(PortfolioAdvisor.diversification_score(positions), 30 + expected)

    def test_many_positions_text(self):
        texts = PortfolioAdvisor.analyze(_book(25)).recommendations
        self.assertTrue(any("over-diversified" in t for t in texts))


# ===========================================================================
# 7. Rebalancing summary
# ===========================================================================

class TestRebalancingSummary(unittest.TestCase):

    def test_flows(self):
        positions = [
            Position("UP", shares=1, current_value=10_000, signal=2),
            Position("OUT", shares=1, current_value=4_000, signal=-1),
            Position("SAME", shares=1, current_value=86_000, signal=0),
        ]
        ranking = RankingSnapshot.from_order(["UP"])
        advice = PortfolioAdvisor.advise(positions, {}, ranking)
        s = advice.rebalancing_summary
        # UP: 0.10 → 0.16 (+6000); OUT: exit (-4000); SAME: trimmed 0.86 → 0.774 (-8600)
        self.assertAlmostEqual(s.buy_value, 6_000.0)
        self.assertAlmostEqual(s.sell_value, 12_600.0)
        self.assertAlmostEqual(s.net_change, -6_600.0)
        self.assertEqual(s.total_changes, 3)
        self.assertAlmostEqual(s.estimated_turnover, 18_600.0 / 200_000.0)


if __name__ == "__main__":
    unittest.main()
