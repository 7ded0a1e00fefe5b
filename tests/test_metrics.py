import json
import tempfile
import unittest
from pathlib import Path

from citeforge.metrics import MetricsCollector
from citeforge.models import FragmentRef, JumpOutcome, JumpResult, MatchResult, MatchStrategy


def found(page, strategy=MatchStrategy.EXACT, scanned=1):
    match = MatchResult(
        page=page,
        fragment_range=(FragmentRef(page=page, index=0, text="x"),),
        matched_text="x",
        strategy=strategy,
        start=0,
        end=1,
    )
    return JumpResult(outcome=JumpOutcome.FOUND, page=page, match=match, pages_scanned=scanned)


class TestMetricsCollector(unittest.TestCase):
    def test_summary_aggregates_outcomes_and_strategies(self):
        with tempfile.TemporaryDirectory() as tmp:
            metrics = MetricsCollector(tmp, log_enabled=False)
            metrics.record_jump(found(2, scanned=2), 10.0)
            metrics.record_jump(found(4, MatchStrategy.WORD, scanned=4), 30.0)
            metrics.record_jump(JumpResult(outcome=JumpOutcome.QUOTE_NOT_FOUND, page=1, pages_scanned=6), 50.0)
            metrics.record_jump(JumpResult(outcome=JumpOutcome.CANCELLED), 5.0)

            summary = metrics.get_summary()
            self.assertEqual(summary["throughput"]["total_jumps"], 4)
            self.assertEqual(summary["latency"]["min_ms"], 5.0)
            self.assertEqual(summary["latency"]["max_ms"], 50.0)
            self.assertEqual(summary["latency"]["avg_ms"], 23.75)
            self.assertEqual(summary["matching"]["strategies"], {"exact": 1, "word": 1})
            self.assertAlmostEqual(summary["matching"]["hit_rate_percent"], 66.67)
            self.assertEqual(summary["matching"]["avg_pages_scanned"], 3.0)
            self.assertGreater(summary["memory"]["rss_mb"], 0)
            self.assertFalse(Path(metrics.log_path).exists())

    def test_empty_summary(self):
        with tempfile.TemporaryDirectory() as tmp:
            summary = MetricsCollector(tmp, log_enabled=False).get_summary()
            self.assertEqual(summary["latency"]["avg_ms"], 0.0)
            self.assertEqual(summary["matching"]["hit_rate_percent"], 0.0)

    def test_jsonl_log(self):
        with tempfile.TemporaryDirectory() as tmp:
            metrics = MetricsCollector(Path(tmp) / "metrics", log_enabled=True)
            metrics.record_jump(found(3), 12.5)
            lines = metrics.log_path.read_text(encoding="utf-8").splitlines()
            entry = json.loads(lines[0])
            self.assertEqual(entry["outcome"], "found")
            self.assertEqual(entry["strategy"], "exact")
            self.assertEqual(entry["latency_ms"], 12.5)


if __name__ == "__main__":
    unittest.main()
