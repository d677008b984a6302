#!/usr/bin/env python3
"""
GeoQuiz command line front end

Play a geographic-knowledge quiz against a GeoJSON collection of entities
(peaks, wilderness areas, ...) and inspect coverage statistics.

Features:
- Interactive guessing with per-quiz guess persistence
- Non-interactive guess submission for scripting
- Coverage reports sliced by the collection's attribute definitions
- Threshold filtering on numeric attributes

Usage Examples:
  python run_geoquiz.py play cascades.geojson
  python run_geoquiz.py guess cascades.geojson "Mt. Rainier" "Baker"
  python run_geoquiz.py stats https://example.org/peaks.geojson --quiz-key peaks
  python run_geoquiz.py filter cascades.geojson --min prominence=1000 --min elevation=3000
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from geoquiz.core.exceptions import CollectionLoadError
from geoquiz.data.collection_loader import CollectionLoader
from geoquiz.data.guess_store import GuessStore
from geoquiz.evaluate.metrics import QuizStatisticsEngine
from geoquiz.evaluate.report import format_correct_entities, format_statistics, statistics_to_dict
from geoquiz.evaluate.threshold_filter import ThresholdControls, filter_entities
from geoquiz.game.session import QuizSession
from geoquiz.utils.config_loader import get_config


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Setup logging configuration with optional file output."""
    level = logging.DEBUG if verbose else logging.WARNING

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stderr keeps the quiz output on stdout clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

        logging.info("=== GEOQUIZ TRACE ===")
        logging.info(f"Start time: {datetime.now().isoformat()}")
        logging.info(f"Verbose mode: {verbose}")

    return log_file


def parse_cutoff(text: str) -> Tuple[str, float]:
    """Parse an ATTRIBUTE=MINIMUM command line cutoff."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"Expected ATTRIBUTE=MINIMUM, got {text!r}")
    name, value = text.split("=", 1)
    try:
        minimum = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid minimum for {name}: {value!r}") from None
    return name.strip(), int(minimum) if minimum.is_integer() else minimum


def open_session(args) -> Tuple[QuizSession, GuessStore, str]:
    """Build a session, restore stored guesses and load the collection."""
    store = GuessStore(args.guess_dir)
    quiz_key = args.quiz_key or Path(str(args.source)).stem or "default"

    session = QuizSession(statistics_engine=QuizStatisticsEngine(args.ranking_size))
    session.restore(store.load_guesses(quiz_key))
    session.load_from_source(args.source, CollectionLoader(timeout=args.timeout))
    return session, store, quiz_key


def print_report(session: QuizSession, as_json: bool = False):
    collection = session.collection
    if as_json:
        data = statistics_to_dict(session.statistics)
        data["guesses"] = list(session.guesses)
        print(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        return
    print(format_statistics(session.statistics, collection.config, session.filtered))


def run_play(args) -> bool:
    """Interactive guessing loop."""
    session, store, quiz_key = open_session(args)
    config = session.collection.config

    print(f"GeoQuiz: {session.collection.name} ({len(session.collection)} {config.items_label})")
    print("Enter a guess, or one of :stats :list :guesses :quit")

    while True:
        try:
            raw = input("> ")
        except EOFError:
            print()
            break

        command = raw.strip().lower()
        if command in (":quit", ":q"):
            break
        if command == ":stats":
            print_report(session)
            continue
        if command == ":guesses":
            for guess in reversed(session.guesses):
                print(f"  {guess}")
            continue
        if command == ":list":
            for line in format_correct_entities(session.correct, config):
                print(f"  {line}")
            continue

        result = session.submit(raw)
        if result.already_guessed:
            print("Already guessed.")
        elif not result.accepted:
            continue
        elif result.matched:
            names = ", ".join(entity.title(config) for entity in result.matched_entities)
            coverage = session.statistics.coverage
            print(f"Correct: {names} ({coverage.correct}/{coverage.total})")
        else:
            print("Not found.")
        store.save_guesses(quiz_key, session.guesses)

    print_report(session)
    return True


def run_guess(args) -> bool:
    """Submit guesses non-interactively and persist them."""
    session, store, quiz_key = open_session(args)
    config = session.collection.config

    for raw in args.guesses:
        result = session.submit(raw)
        if result.already_guessed:
            status = "already guessed"
        elif not result.accepted:
            status = "ignored"
        elif result.matched:
            status = "correct: " + ", ".join(e.title(config) for e in result.matched_entities)
        else:
            status = "not found"
        print(f"{raw}: {status}")

    store.save_guesses(quiz_key, session.guesses)
    coverage = session.statistics.coverage
    print(f"{coverage.correct} of {coverage.total} {config.items_label}")
    return True


def run_stats(args) -> bool:
    session, _, _ = open_session(args)
    print_report(session, as_json=args.json)
    return True


def run_filter(args) -> bool:
    """Report counts for explicit cutoffs, or for the configured controls."""
    session, _, _ = open_session(args)
    collection = session.collection

    if args.cutoffs:
        result = filter_entities(collection.entities, session.correct, args.cutoffs)
        label = ", ".join(f"{name} >= {value}" for name, value in args.cutoffs)
    else:
        controls = ThresholdControls()
        result = controls.apply(collection.entities, session.correct)
        label = ", ".join(f"{name} >= {value}" for name, value in controls.predicates())

    print(
        f"{label or 'no cutoffs'}: {len(result.filtered_correct)} of "
        f"{len(result.filtered_all)} {collection.config.items_label}"
    )
    return True


def build_parser() -> argparse.ArgumentParser:
    defaults = get_config().get_cli_defaults()

    parser = argparse.ArgumentParser(
        description="GeoQuiz geographic knowledge quiz",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s play cascades.geojson
  %(prog)s guess cascades.geojson "Mt. Rainier" "Glacier Peak"
  %(prog)s stats cascades.geojson --json
  %(prog)s filter cascades.geojson --min prominence=1000
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--log-file", default=None, help="Write a detailed trace to this file")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    def add_common(sub):
        sub.add_argument("source", help="GeoJSON FeatureCollection file or http(s) URL")
        sub.add_argument(
            "--quiz-key",
            default=None,
            help="Name under which guesses are stored (default: source file name)",
        )
        sub.add_argument("--guess-dir", default=defaults["guess_dir"], help="Guess storage directory")
        sub.add_argument("--timeout", type=int, default=defaults["timeout"], help="Fetch timeout (seconds)")
        sub.add_argument(
            "--ranking-size", type=int, default=defaults["ranking_size"], help="Top/bottom list size"
        )

    play_parser = subparsers.add_parser("play", help="Guess interactively")
    add_common(play_parser)

    guess_parser = subparsers.add_parser("guess", help="Submit guesses and store them")
    add_common(guess_parser)
    guess_parser.add_argument("guesses", nargs="+", help="Raw guesses")

    stats_parser = subparsers.add_parser("stats", help="Print coverage statistics")
    add_common(stats_parser)
    stats_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")

    filter_parser = subparsers.add_parser("filter", help="Count entities passing numeric cutoffs")
    add_common(filter_parser)
    filter_parser.add_argument(
        "--min",
        dest="cutoffs",
        type=parse_cutoff,
        action="append",
        default=[],
        metavar="ATTRIBUTE=MINIMUM",
        help="Minimum value for an attribute (repeatable)",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)
    logging.info(f"ARGUMENTS: {vars(args)}")

    if not args.command:
        parser.print_help()
        return 1

    handlers = {
        "play": run_play,
        "guess": run_guess,
        "stats": run_stats,
        "filter": run_filter,
    }

    try:
        success = handlers[args.command](args)
    except CollectionLoadError as e:
        print(f"Could not load collection: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
