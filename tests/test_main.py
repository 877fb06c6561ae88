"""
tests/test_main.py
------------------
End-to-end tests for the command-line entry point.

Test coverage:
    Snapshot → portfolio + advice report on stdout
    CLI overrides and CSV export
    Price histories replacing snapshot metrics
    Error exit code on a bad snapshot
"""

import contextlib
import io
import json
import os
import tempfile
import unittest

import pandas as pd

import main


def _snapshot():
    return {
        "universe": [
            {"ticker": "A", "price": 10.0, "total_return_1y": 0.20, "volatility": 0.10,
             "strategy": "Covered Call", "window": {"4w": 0.08, "13w": 0.10, "26w": 0.15, "52w": 0.20}},
            {"ticker": "B", "price": 20.0, "total_return_1y": 0.15, "volatility": 0.20,
             "strategy": "BDC", "window": {"4w": 0.02, "13w": 0.05, "26w": 0.10, "52w": 0.15}},
            {"ticker": "C", "price": 15.0, "total_return_1y": 0.05, "volatility": 0.12,
             "strategy": "REIT", "window": {"4w": 0.04, "13w": 0.26, "26w": 0.30, "52w": 0.40}},
        ],
        "positions": [
            {"ticker": "A", "shares": 100, "current_value": 1000, "signal": 1},
        ],
    }


class TestMain(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = self._tmp.name
        self.snapshot = os.path.join(self.dir, "snap.json")
        with open(self.snapshot, "w", encoding="utf-8") as fh:
            json.dump(_snapshot(), fh)

    def tearDown(self):
        self._tmp.cleanup()

    def _run(self, *args):
        out = io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(io.StringIO()):
            code = main.main([self.snapshot, *args])
        return code, out.getvalue()

    def test_reports_printed(self):
        code, text = self._run()
        self.assertEqual(code, 0)
        self.assertIn("PORTFOLIO", text)
        self.assertIn("PORTFOLIO HEALTH", text)

    def test_overrides_and_export(self):
        export = os.path.join(self.dir, "advice.csv")
        code, _ = self._run("--top-k", "1", "--weighting", "equal", "--export", export)
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(export))

    def test_history_dir(self):
        dates = pd.date_range(end="2025-06-30", periods=400, freq="D")
        pd.DataFrame({"Date": dates, "Adj Close": [50 + i * 0.01 for i in range(400)]}) \
            .to_csv(os.path.join(self.dir, "B.csv"), index=False)
        code, text = self._run("--history-dir", self.dir)
        self.assertEqual(code, 0)
        self.assertIn("B", text)

    def test_bad_snapshot_exit_code(self):
        with open(self.snapshot, "w", encoding="utf-8") as fh:
            fh.write("[]")
        code, _ = self._run()
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
