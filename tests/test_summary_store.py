import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from fungitrainer.analytics.trends import ewma_by_session, prepare_history, trend
from fungitrainer.storage.store import (
    DATA_FILE,
    append_session_summaries,
    init_store,
    load_all,
    query_user_history,
    validate_records,
)

T0 = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


def row(session_id, user_id="u1", day=0, correct=5, total=10, accuracy=50):
    return {
        "session_id": session_id,
        "user_id": user_id,
        "session_start": T0 + timedelta(days=day),
        "total_count": total,
        "correct_count": correct,
        "cumulative_score": 10 * correct,
        "longest_streak": 2,
        "accuracy": accuracy,
        "avg_score": accuracy,
        "hints_used": 3,
    }


class SummaryStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name) / "data"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_init_creates_empty_table(self) -> None:
        init_store(self.data_dir)
        self.assertTrue((self.data_dir / DATA_FILE).exists())
        self.assertTrue(load_all(self.data_dir).empty)

    def test_validation(self) -> None:
        with self.assertRaises(ValidationError):
            validate_records([row("s1", correct=11, total=10)])
        with self.assertRaises(ValidationError):
            validate_records([row("s1", accuracy=101)])
        with self.assertRaises(TypeError):
            validate_records(row("s1"))
        self.assertTrue(validate_records([]).empty)

    def test_append_replaces_same_session(self) -> None:
        init_store(self.data_dir)
        append_session_summaries(validate_records([row("s1"), row("s2", day=1)]), self.data_dir)
        append_session_summaries(validate_records([row("s1", correct=9, accuracy=90)]), self.data_dir)
        df = load_all(self.data_dir)
        self.assertEqual(len(df), 2)
        s1 = df[df["session_id"] == "s1"].iloc[0]
        self.assertEqual(int(s1["correct_count"]), 9)
        self.assertEqual(list(df["session_id"]), ["s1", "s2"])

    def test_history_is_per_user_and_ordered(self) -> None:
        append_session_summaries(
            validate_records([row("b", day=2), row("a", day=0), row("x", user_id="u2", day=1)]), self.data_dir
        )
        hist = query_user_history(load_all(self.data_dir), user_id="u1")
        self.assertEqual(list(hist["session_id"]), ["a", "b"])


class TrendTests(unittest.TestCase):
    def setUp(self) -> None:
        self.df = validate_records(
            [
                row("s1", day=0, accuracy=40),
                row("s2", day=1, accuracy=60),
                row("s3", day=2, accuracy=80),
                row("t1", user_id="u2", day=0, accuracy=100),
            ]
        )

    def test_session_index_per_user(self) -> None:
        hist = prepare_history(self.df)
        u1 = hist[hist["user_id"] == "u1"]
        self.assertEqual(list(u1["session_idx"]), [0, 1, 2])
        u2 = hist[hist["user_id"] == "u2"]
        self.assertEqual(list(u2["session_idx"]), [0])

    def test_span_one_is_identity(self) -> None:
        out = ewma_by_session(prepare_history(self.df), "accuracy", span=1)
        for raw, smooth in zip(out["accuracy"], out["accuracy_smooth"]):
            self.assertAlmostEqual(float(raw), float(smooth), places=4)

    def test_smoothing_lags_rising_accuracy(self) -> None:
        out = trend(self.df, user_id="u1", span=3)
        self.assertEqual(len(out), 3)
        self.assertAlmostEqual(float(out["accuracy_smooth"].iloc[0]), 40.0, places=4)
        self.assertLess(float(out["accuracy_smooth"].iloc[-1]), 80.0)
        self.assertGreater(float(out["accuracy_smooth"].iloc[-1]), 60.0)

    def test_bad_span_and_unknown_user(self) -> None:
        with self.assertRaises(ValueError):
            ewma_by_session(prepare_history(self.df), "accuracy", span=0)
        self.assertTrue(trend(self.df, user_id="nobody").empty)


if __name__ == "__main__":
    unittest.main()
