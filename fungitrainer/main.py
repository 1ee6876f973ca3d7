from __future__ import annotations

"""CLI entry point: a terminal flashcard session over a specimen deck."""

import argparse
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from . import __version__
from .achievements.catalog import load_catalog
from .achievements.evaluator import AchievementEvaluator, Award, total_points
from .app import explain
from .app.session_manager import StudySession
from .config.config import load_config, validate_config
from .errors import ConfigError
from .matching.similarity import suggest_corrections
from .specimens import load_deck
from .stats.stats import format_summary, weak_areas
from .storage.progress import SqliteProgressStore
from .storage.store import append_session_summaries, init_store, validate_records
from .util.randomness import sample_specimens, seed_if_needed

HINT_KEY = "h"
DONT_KNOW_KEY = "?"


def _announce(awards: List[Award], inform: Callable[[str], None]) -> None:
    for a in awards:
        inform(f"Achievement unlocked: {a.name} (+{a.points} points)")


def run_session(
    session: StudySession,
    specimens: List,
    ui: Dict[str, Callable],
    species_names: Optional[List[str]] = None,
) -> List[Award]:
    """Drive ``session`` through ``specimens`` using ``ask``/``inform`` callbacks."""
    ask = ui["ask"]
    inform = ui["inform"]
    awards: List[Award] = []
    awards.extend(session.start())
    _announce(awards, inform)

    for i, specimen in enumerate(specimens, start=1):
        attempt = session.begin_question(specimen)
        inform(f"Q{i}/{len(specimens)}: specimen {specimen.id} (family {specimen.family})")
        while not attempt.resolved:
            ans = ask(f"Species name ('{HINT_KEY}' hint, '{DONT_KNOW_KEY}' don't know): ").strip()
            if ans.lower() == HINT_KEY:
                d = session.request_hint()
                inform(f"Hints revealed: {d.hints_used}/{attempt.hints.max_hints}")
                continue
            if ans == DONT_KNOW_KEY:
                step = session.dont_know()
            else:
                step = session.submit(ans)
            result = step.decision.result
            if result is not None:
                inform(result.feedback)
            if step.decision.action == "retry":
                inform(f"Hint {step.decision.hints_used} revealed. Try again.")
                if species_names:
                    tips = suggest_corrections(ans, species_names)
                    if tips:
                        inform("Did you mean: " + ", ".join(tips))
            elif step.decision.show_guide:
                inform(f"Answer: {specimen.species_name} ({specimen.genus}, {specimen.family})")
            if step.decision.resolved and result is not None:
                inform(f"Score: {result.final_score}\n")
            _announce(step.awards, inform)
            awards.extend(step.awards)

    summary, end_awards = session.end()
    _announce(end_awards, inform)
    awards.extend(end_awards)
    inform("\nSession Summary:")
    inform(format_summary(session.stats))
    weak = weak_areas(session.stats)
    if weak:
        inform("Families to review: " + ", ".join(weak))
    if awards:
        inform(f"Points from achievements: {total_points(awards)}")
    return awards


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="fungitrainer")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    sub = p.add_subparsers(dest="cmd")

    la = sub.add_parser("list-achievements")
    la.add_argument("--config", default=None)
    la.add_argument("--category", default=None)

    rp = sub.add_parser("run")
    rp.add_argument("--deck", required=True, help="YAML file with specimens")
    rp.add_argument("--config", default=None)
    rp.add_argument("--user", default="local")
    rp.add_argument("--questions", type=int, default=None)
    rp.add_argument("--difficulty", default=None, choices=["all", "easy", "medium", "hard"])
    rp.add_argument("--data-dir", dest="data_dir", default=None)
    rp.add_argument("--explain", action="store_true")

    args = p.parse_args(argv)
    if args.version:
        print(f"fungitrainer {__version__}")
        return 0
    if args.cmd is None:
        p.print_help()
        return 2

    try:
        cfg = validate_config(load_config(args.config))
        catalog = load_catalog(cfg["achievements"].get("catalog_path"))
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.cmd == "list-achievements":
        for d in catalog.list_achievements(args.category):
            print(f"{d.id:<28} {d.category:<12} {d.points:>4}  {d.name}")
        return 0

    session_cfg = cfg["session"]
    if args.questions is not None:
        session_cfg["questions"] = max(args.questions, 1)
    if args.difficulty is not None:
        session_cfg["difficulty"] = args.difficulty
    explain.enable(bool(args.explain or session_cfg.get("explain")))
    seed_if_needed()

    try:
        deck = load_deck(args.deck)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    pool = deck.filter(session_cfg["difficulty"])
    if not pool:
        print(f"ERROR: no specimens match difficulty '{session_cfg['difficulty']}'.", file=sys.stderr)
        return 1
    specimens = sample_specimens(pool, int(session_cfg["questions"]))

    data_dir = Path(args.data_dir or cfg["storage"]["data_dir"])
    init_store(data_dir)
    with SqliteProgressStore(data_dir / cfg["storage"]["progress_db"]) as store:
        evaluator = AchievementEvaluator(
            catalog,
            store,
            genus_accuracy_threshold=int(cfg["achievements"]["genus_accuracy_threshold"]),
        )
        session = StudySession(args.user, evaluator, cfg)
        ui = {"ask": input, "inform": print}
        try:
            run_session(session, specimens, ui, deck.species_names())
        except (KeyboardInterrupt, EOFError):
            print("\nSession interrupted.")
            if session.ctx is None:
                return 1
            if session.state.ended_at is None:
                session.end()
        append_session_summaries(validate_records([session.summary_row()]), data_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
