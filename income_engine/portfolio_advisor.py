"""
income_engine/portfolio_advisor.py
----------------------------------
Rebalancing advice for an existing income portfolio.

Design contract:
  - Does NOT fetch data; positions, prices, ranks and the universe are inputs
  - Does NOT mutate its inputs (enriched positions are copies)
  - Ranks come from one frozen RankingSnapshot per call
  - Fully stateless (all methods are @staticmethod)
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from income_engine import config as cfg
from income_engine.constants import (
    ANALYSIS_RECOMMENDATIONS,
    FEW_POSITIONS_TEXT,
    HEALTHY_TEXTS,
    MANY_POSITIONS_TEXT,
)
from income_engine.enums import Action, Priority
from income_engine.models import (
    Instrument,
    NewCandidateRecommendation,
    PortfolioAdvice,
    PortfolioAnalysis,
    Position,
    RebalancingSummary,
    TargetRecommendation,
    finite_or_none,
)
from income_engine.ranking import RankingSnapshot

logger = logging.getLogger(__name__)

_PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class PortfolioAdvisor:
    """
    Turn held positions plus buy/sell signals into target allocations.

    Entry point::

        advice = PortfolioAdvisor.advise(positions, prices, ranking, universe)

    ``advice`` is a :class:`PortfolioAdvice` holding one
    :class:`TargetRecommendation` per position, up to three
    :class:`NewCandidateRecommendation` entries, a
    :class:`PortfolioAnalysis` and a :class:`RebalancingSummary`.
    """

    # ------------------------------------------------------------------ #
    #  Public entry point
    # ------------------------------------------------------------------ #

    @staticmethod
    def advise(
        positions: Sequence[Position],
        prices: Optional[Mapping[str, float]] = None,
        ranking: Optional[RankingSnapshot] = None,
        universe: Sequence[Instrument] = (),
    ) -> PortfolioAdvice:
        """
        Build the full advice for *positions*.

        Parameters
        ----------
        positions:
            Current holdings; ``signal`` must be in ``-2..2``.
        prices:
            ``{ticker: latest price}`` used for share counts.
        ranking:
            Frozen rank table.  When omitted, each position's own ``rank``
            is used and no new candidates are suggested.
        universe:
            Instrument records used to fill in missing strategy, yield and
            risk, and to price new candidates.
        """
        prices = prices or {}
        ranking = ranking or RankingSnapshot()
        by_ticker = {inst.ticker: inst for inst in universe}

        enriched = [PortfolioAdvisor.enrich(p, by_ticker.get(p.ticker)) for p in positions]
        total_value = sum(p.current_value for p in enriched)

        logger.info(
            "Advising on %d positions worth %.2f (%d ranked instruments)",
            len(enriched), total_value, len(ranking),
        )

        targets = [
            PortfolioAdvisor.recommend_position(
                position,
                total_value,
                rank=PortfolioAdvisor._rank_for(position, ranking),
                price=PortfolioAdvisor._price_for(position, prices, by_ticker),
            )
            for position in enriched
        ]
        targets.sort(key=lambda t: (_PRIORITY_ORDER[t.priority], -t.confidence, t.ticker))

        candidates = PortfolioAdvisor.recommend_new_candidates(
            enriched, total_value, ranking, prices, by_ticker
        )

        return PortfolioAdvice(
            target_recommendations=targets,
            new_candidate_recommendations=candidates,
            portfolio_analysis=PortfolioAdvisor.analyze(enriched),
            rebalancing_summary=PortfolioAdvisor.rebalancing_summary(
                targets, candidates, total_value
            ),
        )

    # ------------------------------------------------------------------ #
    #  Per-position decisions
    # ------------------------------------------------------------------ #

    @staticmethod
    def enrich(position: Position, instrument: Optional[Instrument]) -> Position:
        """Copy of *position* with strategy, yield and risk filled from *instrument*."""
        if instrument is None:
            return position
        return replace(
            position,
            strategy=position.strategy if position.strategy is not None else instrument.strategy,
            yield_ttm=position.yield_ttm if position.yield_ttm is not None else instrument.yield_ttm,
            risk_score=(
                position.risk_score if position.risk_score is not None else instrument.risk_score
            ),
        )

    @staticmethod
    def recommend_position(
        position: Position,
        total_value: float,
        rank: Optional[int] = None,
        price: Optional[float] = None,
    ) -> TargetRecommendation:
        """
        Apply the signal × rank decision table to one position.

        Returns
        -------
        TargetRecommendation
            ``target_value`` is rounded to cents; ``target_shares`` is
            ``floor(target_value / price)`` (0 without a price).
        """
        current = position.current_value / total_value if total_value > 0 else 0.0
        signal = position.signal

        if signal >= 1:
            target, action, reason, confidence = PortfolioAdvisor._buy_side(current, signal, rank)
        elif signal <= -1:
            target, action, reason, confidence = PortfolioAdvisor._sell_side(current, signal)
        else:
            target, action, reason, confidence = PortfolioAdvisor._hold_side(current, rank)

        target_value = round(target * total_value, 2)
        target_shares = math.floor(target_value / price) if price else 0

        return TargetRecommendation(
            ticker=position.ticker,
            current_value=position.current_value,
            current_allocation=current,
            target_value=target_value,
            target_allocation=target,
            target_shares=int(target_shares),
            action=action,
            reason=reason,
            confidence=confidence,
            priority=PortfolioAdvisor._priority(action, confidence),
        )

    @staticmethod
    def _buy_side(current: float, signal: int, rank: Optional[int]) -> Tuple[float, Action, str, int]:
        strong = signal >= 2
        label = "Strong buy" if strong else "Buy"

        for max_rank, strong_mult, mult, cap, strong_conf, conf in cfg.BUY_TIERS:
            if rank is not None and rank <= max_rank:
                target = min(current * (strong_mult if strong else mult), cap)
                confidence = strong_conf if strong else conf
                if target < current:
                    return (
                        target, Action.INCREASE,
                        f"{label} signal and ranked #{rank} (top {max_rank}). "
                        f"Already above the {cap:.0%} position cap; target is the cap.",
                        confidence,
                    )
                return (
                    target, Action.INCREASE,
                    f"{label} signal and ranked #{rank} (top {max_rank}). "
                    f"Increase toward {target:.1%}.",
                    confidence,
                )

        if current < cfg.BUY_UNRANKED_MAX_ALLOCATION:
            target = min(current * cfg.BUY_UNRANKED_MULTIPLIER, cfg.BUY_UNRANKED_CAP)
            return (
                target, Action.INCREASE,
                f"{label} signal outside the top 25. Small increase while the "
                f"position stays under {cfg.BUY_UNRANKED_MAX_ALLOCATION:.0%}.",
                cfg.BUY_UNRANKED_CONFIDENCE,
            )
        return (
            current, Action.HOLD,
            f"{label} signal outside the top 25 and already "
            f"{current:.1%} of the portfolio. Hold.",
            cfg.BUY_UNRANKED_CONFIDENCE,
        )

    @staticmethod
    def _sell_side(current: float, signal: int) -> Tuple[float, Action, str, int]:
        strong = signal <= -2
        label = "Strong sell" if strong else "Sell"

        if current > cfg.SELL_HEAVY_ALLOCATION:
            strong_mult, mult = cfg.SELL_HEAVY_MULTIPLIERS
            strong_conf, conf = cfg.SELL_HEAVY_CONFIDENCE
            target = max(current * (strong_mult if strong else mult), cfg.SELL_HEAVY_FLOOR)
            return (
                target, Action.DECREASE,
                f"{label} signal on a large position ({current:.1%}). "
                f"Cut to {target:.1%}.",
                strong_conf if strong else conf,
            )

        if current > cfg.SELL_MEDIUM_ALLOCATION:
            target = max(current * cfg.SELL_MEDIUM_MULTIPLIER, cfg.SELL_MEDIUM_FLOOR)
            return (
                target, Action.DECREASE,
                f"{label} signal. Reduce exposure to {target:.1%}.",
                cfg.SELL_MEDIUM_CONFIDENCE,
            )

        return (
            0.0, Action.SELL,
            f"{label} signal on a small position ({current:.1%}). Exit.",
            cfg.SELL_EXIT_CONFIDENCE,
        )

    @staticmethod
    def _hold_side(current: float, rank: Optional[int]) -> Tuple[float, Action, str, int]:
        if rank is not None and rank <= cfg.HOLD_TOP_RANK:
            target = min(current * cfg.HOLD_TOP_MULTIPLIER, cfg.HOLD_TOP_CAP)
            return (
                target, Action.HOLD,
                f"Neutral signal but ranked #{rank}. Hold with room to add.",
                cfg.HOLD_TOP_CONFIDENCE,
            )

        if current > cfg.HOLD_TRIM_ALLOCATION:
            target = current * cfg.HOLD_TRIM_MULTIPLIER
            return (
                target, Action.DECREASE,
                f"Neutral signal on an oversized position ({current:.1%}). Trim slightly.",
                cfg.HOLD_TRIM_CONFIDENCE,
            )

        return (
            current, Action.HOLD,
            "Neutral signal. Maintain current position.",
            cfg.HOLD_DEFAULT_CONFIDENCE,
        )

    @staticmethod
    def _priority(action: Action, confidence: int) -> Priority:
        if action is Action.SELL or confidence >= 90:
            return Priority.HIGH
        if action in (Action.INCREASE, Action.DECREASE):
            return Priority.MEDIUM
        return Priority.LOW

    # ------------------------------------------------------------------ #
    #  New candidates
    # ------------------------------------------------------------------ #

    @staticmethod
    def recommend_new_candidates(
        positions: Sequence[Position],
        total_value: float,
        ranking: RankingSnapshot,
        prices: Mapping[str, float],
        universe: Mapping[str, Instrument],
    ) -> List[NewCandidateRecommendation]:
        """
        Suggest up to ``min(3, max(1, 10 - held))`` unheld instruments, best
        rank first.

        A candidate is skipped when it has no price, when its strategy
        already holds more than 35% of the portfolio, or when its target
        value buys zero shares.
        """
        held = {p.ticker for p in positions}
        held_count = len(held)
        max_new = min(cfg.MAX_NEW_CANDIDATES, max(1, cfg.OPTIMAL_POSITION_COUNT - held_count))
        allocation = min(
            cfg.NEW_CANDIDATE_MAX_ALLOCATION,
            cfg.NEW_CANDIDATE_BUDGET / (held_count + max_new),
        )
        target_value = round(allocation * total_value, 2)

        strategy_values: Dict[str, float] = {}
        for p in positions:
            if p.strategy:
                strategy_values[p.strategy] = strategy_values.get(p.strategy, 0.0) + p.current_value

        picks: List[NewCandidateRecommendation] = []
        for ticker in ranking.ranked_tickers():
            if len(picks) >= max_new:
                break
            if ticker in held:
                continue

            instrument = universe.get(ticker)
            price = PortfolioAdvisor._lookup_price(ticker, prices, instrument)
            if price is None:
                continue

            strategy = instrument.strategy if instrument else None
            if strategy and total_value > 0:
                share = strategy_values.get(strategy, 0.0) / total_value
                if share > cfg.STRATEGY_CONCENTRATION_LIMIT:
                    logger.debug("Skipping %s: %s already %.0f%% of portfolio",
                                 ticker, strategy, share * 100)
                    continue

            shares = math.floor(target_value / price)
            if shares <= 0:
                continue

            rank = ranking.rank_of(ticker)
            confidence, priority = PortfolioAdvisor._candidate_confidence(rank)
            picks.append(NewCandidateRecommendation(
                ticker=ticker,
                target_value=target_value,
                target_allocation=allocation,
                target_shares=shares,
                price=price,
                rank=rank,
                confidence=confidence,
                reason=PortfolioAdvisor._candidate_reason(rank, instrument),
                strategy=strategy,
                priority=priority,
            ))

        return picks

    @staticmethod
    def _candidate_confidence(rank: int) -> Tuple[int, Priority]:
        if rank <= 10:
            return 90, Priority.HIGH
        if rank <= 25:
            return 80, Priority.MEDIUM
        return 70, Priority.LOW

    @staticmethod
    def _candidate_reason(rank: int, instrument: Optional[Instrument]) -> str:
        kind = (instrument.strategy if instrument and instrument.strategy else "income instrument")
        reason = f"Top ranked (#{rank}) {kind}"
        yield_ttm = finite_or_none(instrument.yield_ttm) if instrument else None
        if yield_ttm is not None:
            reason += f" yielding {yield_ttm:.1%}"
        return reason + ". Adds a new income source."

    # ------------------------------------------------------------------ #
    #  Aggregate diagnostics
    # ------------------------------------------------------------------ #

    @staticmethod
    def analyze(positions: Sequence[Position]) -> PortfolioAnalysis:
        """
        Portfolio-wide scores (each 0-100) and recommendation texts.

        ``health_score = 0.30·diversification + 0.25·(100 - risk)
        + 0.20·yield_balance + 0.25·trend_alignment``
        """
        count = len(positions)
        total_value = sum(p.current_value for p in positions)
        if count == 0 or total_value <= 0:
            return PortfolioAnalysis(
                total_value=total_value,
                position_count=count,
                recommendations=[FEW_POSITIONS_TEXT.format(count=count)],
            )

        avg_yield = PortfolioAdvisor.weighted_avg_yield(positions)
        scores = {
            "diversification": PortfolioAdvisor.diversification_score(positions),
            "risk":            PortfolioAdvisor.risk_score(positions),
            "yield_balance":   PortfolioAdvisor.yield_balance(avg_yield),
            "trend_alignment": PortfolioAdvisor.trend_alignment(positions),
        }
        health = round(
            0.30 * scores["diversification"]
            + 0.25 * (100 - scores["risk"])
            + 0.20 * scores["yield_balance"]
            + 0.25 * scores["trend_alignment"]
        )

        recommendations = []
        for key, (threshold, text) in ANALYSIS_RECOMMENDATIONS.items():
            value = scores[key]
            # Risk is the only dimension where higher is worse.
            fires = value > threshold if key == "risk" else value < threshold
            if fires:
                recommendations.append(text.format(value=value))
        if count < 5:
            recommendations.append(FEW_POSITIONS_TEXT.format(count=count))
        elif count > 20:
            recommendations.append(MANY_POSITIONS_TEXT.format(count=count))
        if not recommendations:
            recommendations = list(HEALTHY_TEXTS)

        return PortfolioAnalysis(
            total_value=total_value,
            position_count=count,
            weighted_avg_yield=avg_yield,
            diversification_score=scores["diversification"],
            risk_score=scores["risk"],
            yield_balance=scores["yield_balance"],
            trend_alignment=scores["trend_alignment"],
            health_score=int(health),
            recommendations=recommendations,
        )

    @staticmethod
    def diversification_score(positions: Sequence[Position]) -> int:
        """Strategy diversity (40) + position balance (30) + position count (30)."""
        total_value = sum(p.current_value for p in positions)
        strategies = {p.strategy for p in positions if p.strategy}
        diversity = min(len(strategies) / 5.0, 1.0) * 40

        largest = max(p.current_value for p in positions) / total_value if total_value > 0 else 0.0
        if largest <= cfg.MAX_POSITION_BALANCE:
            balance = 30.0
        else:
            balance = 30.0 * (1.0 - largest) / (1.0 - cfg.MAX_POSITION_BALANCE)

        count = len(positions)
        if 8 <= count <= 15:
            shape = 30
        elif 5 <= count <= 7 or 16 <= count <= 20:
            shape = 20
        elif 3 <= count <= 4 or 21 <= count <= 25:
            shape = 10
        else:
            shape = 5

        return int(round(diversity + max(0.0, balance) + shape))

    @staticmethod
    def risk_score(positions: Sequence[Position]) -> int:
        """Mean position risk, +20 when most of the value sits in high-risk positions."""
        risks = [
            p.risk_score if finite_or_none(p.risk_score) is not None else cfg.DEFAULT_RISK_SCORE
            for p in positions
        ]
        score = sum(risks) / len(risks)

        total_value = sum(p.current_value for p in positions)
        high_risk_value = sum(
            p.current_value for p, r in zip(positions, risks) if r > cfg.HIGH_RISK_THRESHOLD
        )
        if total_value > 0 and high_risk_value / total_value > 0.5:
            score += cfg.HIGH_RISK_PENALTY

        return int(round(min(score, 100.0)))

    @staticmethod
    def weighted_avg_yield(positions: Sequence[Position]) -> Optional[float]:
        """Value-weighted average yield over positions that report one."""
        pairs = [
            (p.current_value, finite_or_none(p.yield_ttm))
            for p in positions
            if finite_or_none(p.yield_ttm) is not None
        ]
        weight = sum(v for v, _ in pairs)
        if not pairs or weight <= 0:
            return None
        return sum(v * y for v, y in pairs) / weight

    @staticmethod
    def yield_balance(avg_yield: Optional[float]) -> int:
        if avg_yield is None:
            return 50
        if 0.06 <= avg_yield <= 0.15:
            return 85
        if 0.04 <= avg_yield < 0.06 or 0.15 < avg_yield <= 0.20:
            return 70
        if 0.02 <= avg_yield < 0.04 or 0.20 < avg_yield <= 0.30:
            return 50
        return 30

    @staticmethod
    def trend_alignment(positions: Sequence[Position]) -> int:
        """``round(100 · (0.6·buy_ratio + 0.4·(1 - sell_ratio)))``."""
        if not positions:
            return 0
        n = len(positions)
        buy_ratio = sum(1 for p in positions if p.signal >= 1) / n
        sell_ratio = sum(1 for p in positions if p.signal <= -1) / n
        return int(round(100 * (0.6 * buy_ratio + 0.4 * (1 - sell_ratio))))

    @staticmethod
    def rebalancing_summary(
        targets: Sequence[TargetRecommendation],
        candidates: Sequence[NewCandidateRecommendation],
        total_value: float,
    ) -> RebalancingSummary:
        """Dollar flows implied by the targets plus the new-position buys."""
        sell_value = 0.0
        buy_value = 0.0
        changes = 0

        for t in targets:
            delta = t.target_value - t.current_value
            if delta < 0:
                sell_value += -delta
            else:
                buy_value += delta
            if t.action is not Action.HOLD:
                changes += 1

        for c in candidates:
            buy_value += c.target_value
            changes += 1

        turnover = (sell_value + buy_value) / (2 * total_value) if total_value > 0 else 0.0
        return RebalancingSummary(
            total_changes=changes,
            sell_value=round(sell_value, 2),
            buy_value=round(buy_value, 2),
            net_change=round(buy_value - sell_value, 2),
            estimated_turnover=turnover,
        )

    # ------------------------------------------------------------------ #
    #  Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _rank_for(position: Position, ranking: RankingSnapshot) -> Optional[int]:
        rank = ranking.rank_of(position.ticker)
        return rank if rank is not None else position.rank

    @staticmethod
    def _lookup_price(
        ticker: str,
        prices: Mapping[str, float],
        instrument: Optional[Instrument],
    ) -> Optional[float]:
        price = finite_or_none(prices.get(ticker))
        if (price is None or price <= 0) and instrument is not None:
            price = finite_or_none(instrument.price)
        if price is None or price <= 0:
            return None
        return price

    @staticmethod
    def _price_for(
        position: Position,
        prices: Mapping[str, float],
        universe: Mapping[str, Instrument],
    ) -> Optional[float]:
        """Quoted price, else the universe price, else value per held share."""
        price = PortfolioAdvisor._lookup_price(position.ticker, prices, universe.get(position.ticker))
        if price is None and position.shares and position.shares > 0:
            price = position.current_value / position.shares
        return price
