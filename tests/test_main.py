import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

from fungitrainer import __version__
from fungitrainer.achievements.catalog import AchievementCatalog
from fungitrainer.achievements.evaluator import AchievementEvaluator
from fungitrainer.app.session_manager import StudySession
from fungitrainer.main import main, run_session
from fungitrainer.models import SpecimenRecord
from fungitrainer.storage.progress import InMemoryProgressStore
from fungitrainer.storage.store import load_all

MEADOW = SpecimenRecord(
    id="a1", species_name="Agaricus campestris", genus="Agaricus", family="Agaricaceae"
)

DECK = """specimens:
  - id: a1
    species_name: Agaricus campestris
    genus: Agaricus
    family: Agaricaceae
    common_name: Meadow Mushroom
    quality_score: 0.8
"""


def scripted(answers):
    it = iter(answers)
    out = []
    ui = {"ask": lambda prompt: next(it), "inform": out.append}
    return ui, out


class RunSessionTests(unittest.TestCase):
    def test_hint_retry_then_correct(self) -> None:
        catalog = AchievementCatalog.from_records(
            [{"id": "first_correct", "name": "First Steps", "requirement_type": "first_correct", "points": 10}]
        )
        session = StudySession("u1", AchievementEvaluator(catalog, InMemoryProgressStore()))
        ui, out = scripted(["h", "agaricus", "agaricus campestris"])
        awards = run_session(session, [MEADOW], ui, ["Agaricus campestris", "Agaricus bisporus"])
        text = "\n".join(out)
        self.assertIn("Hints revealed: 1/4", text)
        self.assertIn("Hint 2 revealed. Try again.", text)
        self.assertIn("Did you mean:", text)
        self.assertIn("Score: 90", text)
        self.assertIn("Achievement unlocked: First Steps (+10 points)", text)
        self.assertIn("Session Summary:", text)
        self.assertEqual([a.achievement_id for a in awards], ["first_correct"])
        self.assertEqual(session.stats.correct_count, 1)

    def test_dont_know_shows_answer(self) -> None:
        session = StudySession("u1")
        ui, out = scripted(["?"])
        run_session(session, [MEADOW], ui)
        text = "\n".join(out)
        self.assertIn("Answer: Agaricus campestris (Agaricus, Agaricaceae)", text)
        self.assertIn("Total: 0/1 correct (0%)", text)


class MainTests(unittest.TestCase):
    def test_version(self) -> None:
        buf = io.StringIO()
        with redirect_stdout(buf):
            self.assertEqual(main(["--version"]), 0)
        self.assertIn(__version__, buf.getvalue())

    def test_list_achievements(self) -> None:
        buf = io.StringIO()
        with redirect_stdout(buf):
            self.assertEqual(main(["list-achievements", "--category", "streaks"]), 0)
        lines = buf.getvalue().splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith("streak_5"))

    def test_missing_config(self) -> None:
        with redirect_stdout(io.StringIO()), mock.patch("sys.stderr", new_callable=io.StringIO) as err:
            self.assertEqual(main(["list-achievements", "--config", "/nonexistent.yml"]), 1)
        self.assertIn("ERROR:", err.getvalue())

    def test_run_persists_summary(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            deck = Path(tmp) / "deck.yml"
            deck.write_text(DECK, encoding="utf-8")
            data_dir = Path(tmp) / "data"
            argv = ["run", "--deck", str(deck), "--questions", "1", "--data-dir", str(data_dir), "--user", "tester"]
            with redirect_stdout(io.StringIO()), mock.patch("builtins.input", side_effect=["meadow mushroom"]):
                self.assertEqual(main(argv), 0)
            df = load_all(data_dir)
            self.assertTrue((data_dir / "progress.db").exists())
        self.assertEqual(len(df), 1)
        self.assertEqual(df.iloc[0]["user_id"], "tester")
        self.assertEqual(int(df.iloc[0]["correct_count"]), 1)
        self.assertEqual(int(df.iloc[0]["avg_score"]), 90)

    def test_run_with_no_matching_specimens(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            deck = Path(tmp) / "deck.yml"
            deck.write_text(DECK, encoding="utf-8")
            argv = ["run", "--deck", str(deck), "--difficulty", "hard", "--data-dir", str(Path(tmp) / "d")]
            with mock.patch("sys.stderr", new_callable=io.StringIO):
                self.assertEqual(main(argv), 1)


if __name__ == "__main__":
    unittest.main()
