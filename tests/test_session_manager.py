import sqlite3
import unittest
from datetime import datetime, timedelta

from fungitrainer.achievements.catalog import AchievementCatalog
from fungitrainer.achievements.evaluator import AchievementEvaluator
from fungitrainer.errors import SessionError
from fungitrainer.models import SpecimenRecord
from fungitrainer.app.session_manager import StudySession
from fungitrainer.storage.progress import InMemoryProgressStore
from fungitrainer.storage.schema import SessionSummaryRow

MEADOW = SpecimenRecord(
    id="a1",
    species_name="Agaricus campestris",
    genus="Agaricus",
    family="Agaricaceae",
    common_name="Meadow Mushroom",
    dna_sequenced=True,
)
PORCINI = SpecimenRecord(id="b1", species_name="Boletus edulis", genus="Boletus", family="Boletaceae")

NOON = datetime(2026, 4, 2, 12, 0)
LATE = datetime(2026, 4, 2, 23, 30)

CATALOG = AchievementCatalog.from_records(
    [
        {"id": "first_correct", "name": "First Steps", "requirement_type": "first_correct", "points": 10},
        {"id": "streak_3", "name": "Hat Trick", "requirement_type": "streak", "requirement_value": 3, "points": 20},
        {"id": "night_owl", "name": "Night Owl", "requirement_type": "time_based", "requirement_value": "night_owl"},
        {
            "id": "genus_master_agaricus",
            "name": "Agaricus Expert",
            "requirement_type": "genus_accuracy",
            "requirement_value": "Agaricus",
            "points": 75,
        },
        {"id": "perfect", "name": "Perfectionist", "requirement_type": "perfect_session", "requirement_value": 3},
        {"id": "intro", "name": "Foundations", "requirement_type": "module_complete", "requirement_value": "intro"},
    ]
)


def award_ids(awards):
    return [a.achievement_id for a in awards]


class StudySessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryProgressStore()
        self.session = StudySession("u1", AchievementEvaluator(CATALOG, self.store))

    def test_start_feeds_time_of_day(self) -> None:
        self.assertEqual(award_ids(self.session.start(now=LATE)), ["night_owl"])

    def test_start_twice(self) -> None:
        self.session.start(now=NOON)
        with self.assertRaises(SessionError):
            self.session.start(now=NOON)

    def test_actions_require_question(self) -> None:
        with self.assertRaises(SessionError):
            self.session.begin_question(MEADOW)
        self.session.start(now=NOON)
        with self.assertRaises(SessionError):
            self.session.submit("anything")
        with self.assertRaises(SessionError):
            self.session.request_hint()

    def test_unresolved_question_blocks_next(self) -> None:
        self.session.start(now=NOON)
        self.session.begin_question(MEADOW)
        with self.assertRaises(SessionError):
            self.session.begin_question(PORCINI)

    def test_full_session(self) -> None:
        s = self.session
        s.start(now=NOON)

        s.begin_question(MEADOW)
        step = s.submit("agaricus campestris")
        self.assertEqual(step.decision.action, "next")
        self.assertEqual(award_ids(step.awards), ["first_correct"])

        s.begin_question(MEADOW)
        step = s.submit("Agaricus campestrus")
        self.assertEqual(step.awards, [])

        s.begin_question(MEADOW)
        step = s.submit("meadow mushroom")
        self.assertEqual(award_ids(step.awards), ["streak_3"])
        self.assertEqual(s.stats.current_streak, 3)

        summary, awards = s.end(now=NOON)
        self.assertEqual(summary.total_count, 3)
        self.assertEqual(summary.correct_count, 3)
        self.assertEqual(summary.accuracy, 100)
        self.assertEqual(summary.avg_score, 95)
        self.assertEqual(sorted(award_ids(awards)), ["genus_master_agaricus", "perfect"])

    def test_retry_is_not_counted_until_resolved(self) -> None:
        s = self.session
        s.start(now=NOON)
        s.begin_question(PORCINI)
        step = s.submit("wrong guess")
        self.assertEqual(step.decision.action, "retry")
        self.assertEqual(s.stats.total_count, 0)
        self.assertEqual(s.request_hint().hints_used, 2)
        step = s.submit("Boletus edulis")
        self.assertEqual(step.decision.result.final_score, 90)
        self.assertEqual(s.stats.total_count, 1)
        self.assertEqual(s.stats.hints_used_total, 2)

    def test_dont_know_counts_as_incorrect(self) -> None:
        s = self.session
        s.start(now=NOON)
        s.begin_question(MEADOW)
        step = s.dont_know()
        self.assertTrue(step.decision.show_guide)
        self.assertEqual(step.awards, [])
        self.assertEqual(s.stats.total_count, 1)
        self.assertEqual(s.stats.correct_count, 0)

    def test_end_drops_question_in_progress(self) -> None:
        s = self.session
        s.start(now=NOON)
        s.begin_question(MEADOW)
        summary, awards = s.end(now=NOON)
        self.assertEqual(summary.total_count, 0)
        self.assertEqual(awards, [])
        with self.assertRaises(SessionError):
            s.end()
        with self.assertRaises(SessionError):
            s.begin_question(MEADOW)

    def test_complete_module(self) -> None:
        self.session.start(now=NOON)
        self.assertEqual(award_ids(self.session.complete_module("intro")), ["intro"])
        self.assertEqual(self.session.complete_module("intro"), [])

    def test_awards_persist_across_sessions(self) -> None:
        self.session.start(now=NOON)
        self.session.begin_question(MEADOW)
        self.assertEqual(len(self.session.submit("agaricus campestris").awards), 1)
        again = StudySession("u1", AchievementEvaluator(CATALOG, self.store))
        again.start(now=NOON)
        again.begin_question(MEADOW)
        self.assertEqual(again.submit("agaricus campestris").awards, [])

    def test_without_evaluator(self) -> None:
        s = StudySession("solo")
        self.assertEqual(s.start(now=LATE), [])
        s.begin_question(MEADOW)
        self.assertEqual(s.submit("agaricus campestris").awards, [])

    def test_config_drives_policies(self) -> None:
        cfg = {"grading": {"penalty_per_hint": 10}, "hints": {"max_hints": 1}}
        s = StudySession("u1", cfg=cfg)
        s.start(now=NOON)
        s.begin_question(MEADOW)
        self.assertEqual(s.submit("nope").decision.action, "retry")
        step = s.submit("agaricus campestris")
        self.assertEqual(step.decision.result.final_score, 90)

    def test_summary_row(self) -> None:
        with self.assertRaises(SessionError):
            self.session.summary_row()
        self.session.start(now=NOON)
        self.session.begin_question(MEADOW)
        self.session.submit("agaricus campestris")
        self.session.end(now=NOON)
        row = self.session.summary_row()
        self.assertIsInstance(row, SessionSummaryRow)
        self.assertEqual(row.user_id, "u1")
        self.assertEqual((row.total_count, row.correct_count, row.accuracy), (1, 1, 100))
        self.assertIsNotNone(row.session_start.tzinfo)


class FlakyStore(InMemoryProgressStore):
    """Fails the next ``failures`` writes, then behaves normally."""

    def __init__(self) -> None:
        super().__init__()
        self.failures = 0

    def upsert_progress(self, *args, **kwargs):
        if self.failures > 0:
            self.failures -= 1
            raise sqlite3.OperationalError("database is locked")
        return super().upsert_progress(*args, **kwargs)


class FailedAwardWriteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = FlakyStore()

    def session(self, *records):
        cat = AchievementCatalog.from_records(records) if records else CATALOG
        s = StudySession("u1", AchievementEvaluator(cat, self.store))
        s.start(now=NOON)
        return s

    def test_retry_delivers_award_after_write_failure(self) -> None:
        s = self.session({"id": "dna1", "requirement_type": "dna_specialist", "requirement_value": 1})
        s.begin_question(MEADOW)
        self.store.failures = 1
        with self.assertRaises(sqlite3.OperationalError):
            s.submit("Agaricus campestris")
        self.assertEqual(s.stats.total_count, 1)
        self.assertTrue(s.current.resolved)
        self.assertEqual(len(s.pending), 2)
        self.assertEqual(award_ids(s.retry_awards()), ["dna1"])
        self.assertEqual(s.pending, [])
        self.assertEqual(s.retry_awards(), [])
        self.assertEqual(self.store.get_progress("u1", "dna1").progress, 1)

    def test_failed_retry_keeps_events_queued(self) -> None:
        s = self.session({"id": "dna1", "requirement_type": "dna_specialist", "requirement_value": 1})
        s.begin_question(MEADOW)
        self.store.failures = 2
        with self.assertRaises(sqlite3.OperationalError):
            s.submit("Agaricus campestris")
        with self.assertRaises(sqlite3.OperationalError):
            s.retry_awards()
        self.assertEqual(len(s.pending), 2)
        self.assertEqual(award_ids(s.retry_awards()), ["dna1"])

    def test_next_answer_flushes_queued_events(self) -> None:
        s = self.session()
        s.begin_question(MEADOW)
        self.store.failures = 1
        with self.assertRaises(sqlite3.OperationalError):
            s.submit("agaricus campestris")
        s.begin_question(PORCINI)
        step = s.submit("Boletus edulis")
        self.assertEqual(award_ids(step.awards), ["first_correct"])
        self.assertEqual(s.pending, [])
        self.assertEqual(s.retry_awards(), [])

    def test_retry_after_failed_end(self) -> None:
        s = self.session()
        for _ in range(3):
            s.begin_question(MEADOW)
            s.submit("agaricus campestris")
        self.store.failures = 1
        with self.assertRaises(sqlite3.OperationalError):
            s.end(now=NOON)
        with self.assertRaises(SessionError):
            s.begin_question(MEADOW)
        self.assertEqual(sorted(award_ids(s.retry_awards())), ["genus_master_agaricus", "perfect"])


class SessionDurationTests(unittest.TestCase):
    RECORDS = [{"id": "marathon", "requirement_type": "marathon_duration", "requirement_value": 60}]

    def run_session(self, store, minutes):
        s = StudySession("u1", AchievementEvaluator(AchievementCatalog.from_records(self.RECORDS), store))
        s.start(now=NOON)
        return s.end(now=NOON + timedelta(minutes=minutes))[1]

    def test_marathon_needs_the_full_duration(self) -> None:
        store = InMemoryProgressStore()
        self.assertEqual(self.run_session(store, 59.9), [])
        self.assertEqual(award_ids(self.run_session(store, 75)), ["marathon"])
        self.assertEqual(self.run_session(store, 120), [])


if __name__ == "__main__":
    unittest.main()
