import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from income_engine.advice_report import AdviceReport
from income_engine.errors import IncomeEngineError
from income_engine.history_metrics import HistoryMetrics
from income_engine.models import WeightingConfig
from income_engine.portfolio_advisor import PortfolioAdvisor
from income_engine.portfolio_engine import PortfolioEngine
from income_engine.ranking import RankingSnapshot
from income_engine.snapshot_loader import SnapshotLoader


def _parse_args(argv=None):
    ap = argparse.ArgumentParser(
        description="Rank income instruments, build a weighted portfolio and "
                    "advise on existing positions."
    )
    ap.add_argument("snapshot", help="JSON snapshot with universe, prices and positions")
    ap.add_argument("--history-dir", help="folder of <TICKER>.csv price histories")
    ap.add_argument("--top-k", type=int)
    ap.add_argument("--score-source", choices=["trend", "ret1y", "pastperf", "blend"])
    ap.add_argument("--weighting", choices=["equal", "return", "risk_parity"])
    ap.add_argument("--max-weight", type=float)
    ap.add_argument("--capital", type=float)
    ap.add_argument("--export", help="write recommendations to this CSV file")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def _apply_histories(snapshot, history_dir):
    """Replace universe metrics with values derived from CSV price histories."""
    folder = Path(history_dir)
    universe = []
    for inst in snapshot.universe:
        path = folder / f"{inst.ticker}.csv"
        if not path.exists():
            universe.append(inst)
            continue
        derived = HistoryMetrics.instrument_from_history(
            inst.ticker, SnapshotLoader.load_history(path)
        )
        universe.append(replace(
            inst,
            price=derived.price,
            total_return_1y=derived.total_return_1y,
            volatility=derived.volatility,
            max_drawdown=derived.max_drawdown,
            trading_days=derived.trading_days,
            window=derived.window,
        ))
    snapshot.universe = universe


def main(argv=None):
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        snapshot = SnapshotLoader.load(args.snapshot)
        if args.history_dir:
            _apply_histories(snapshot, args.history_dir)

        options = (snapshot.config or WeightingConfig()).to_dict()
        overrides = {
            "top_k": args.top_k,
            "score_source": args.score_source,
            "weighting": args.weighting,
            "max_weight": args.max_weight,
            "capital": args.capital,
        }
        options.update({k: v for k, v in overrides.items() if v is not None})
        config = WeightingConfig(**options)

        entries = PortfolioEngine.build_portfolio(
            snapshot.universe, config,
            prices=snapshot.prices, growth_cache=snapshot.growth_cache,
        )
        print(AdviceReport.format_portfolio(entries, config.capital))

        if snapshot.positions:
            ranking = RankingSnapshot.build(snapshot.universe, snapshot.growth_cache)
            advice = PortfolioAdvisor.advise(
                snapshot.positions, snapshot.prices, ranking, snapshot.universe
            )
            print()
            print(AdviceReport.format_advice(advice))
            if args.export:
                print(f"\nRecommendations written to {AdviceReport.export_csv(advice, args.export)}")

    except IncomeEngineError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
