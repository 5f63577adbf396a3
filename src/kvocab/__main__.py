"""Command line entry point for the quiz engine."""
import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import List, Optional

from kvocab import monitoring
from kvocab.config import QUIZ_MODES, ensure_directories, settings
from kvocab.exceptions import KvocabError
from kvocab.logging_config import setup_logging
from kvocab.models.base import SessionLocal, init_db
from kvocab.models.quiz_models import EditOp, QuizMode, VocabularyItem
from kvocab.services.pronunciation_service import PronunciationService
from kvocab.services.quiz_service import QuizService
from kvocab.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)

COMMANDS = (":flip", ":skip", ":graduate", ":remove", ":quit")


def read_word_file(path: Path) -> List[VocabularyItem]:
    """Read korean<TAB>english[<TAB>example] lines; blank and short lines are skipped."""
    items = []
    with open(path, encoding="utf-8", newline="") as f:
        for line_number, row in enumerate(csv.reader(f, delimiter="\t"), start=1):
            row = [cell.strip() for cell in row]
            if len(row) < 2 or not row[0] or not row[1]:
                if any(row):
                    logger.warning(f"{path}:{line_number}: expected korean and english, line skipped")
                continue
            example = row[2] if len(row) > 2 and row[2] else None
            items.append(VocabularyItem(korean=row[0], english=row[1], example=example))
    return items


def format_diff(diff: List[EditOp]) -> str:
    """Render an edit trace: [x] wrong, (x) missing, -x- extra."""
    parts = []
    for op in diff:
        if op.type == "equal":
            parts.append(op.answer_char)
        elif op.type == "substitute":
            parts.append(f"[{op.answer_char}]")
        elif op.type == "insert":
            parts.append(f"({op.answer_char})")
        else:
            parts.append(f"-{op.guess_char}-")
    return "".join(parts)


def upload(args: argparse.Namespace) -> int:
    items = read_word_file(Path(args.file))
    if not items:
        print(f"No word pairs found in {args.file}")
        return 1
    db = SessionLocal()
    try:
        package = VocabularyService(db).upload_words(args.owner, items, args.name)
    finally:
        db.close()
    print(f"Uploaded {len(items)} words as package {package.id}")
    return 0


def say(args: argparse.Namespace) -> int:
    path = PronunciationService().get_pronunciation(args.word)
    print(path)
    return 0


def quiz(args: argparse.Namespace) -> int:
    db = SessionLocal()
    try:
        service = QuizService(VocabularyService(db))
        config = {
            "mode": args.mode,
            "active_window_size": args.window,
            "consecutive_successes_required": args.required,
        }
        handle = service.start_session_for_owner(args.owner, config, package_id=args.package)
        session = service.get_session(handle)
        if session.is_complete:
            print("No words to practise. Upload some first.")
            return 1

        pronunciation = PronunciationService() if session.config.mode is QuizMode.AUDIO_TO_ENGLISH else None
        print(f"Commands: {' '.join(COMMANDS)}")
        run_quiz(service, handle, pronunciation)

        summary = service.end_session(handle)
        print(f"\n{summary.total_successes}/{summary.total_attempts} answered without peeking")
        for korean, rate in summary.success_rates.items():
            print(f"  {korean}: {rate:.0%}")
    finally:
        db.close()
    return 0


def run_quiz(service: QuizService, handle, pronunciation: Optional[PronunciationService] = None) -> None:
    """Interactive loop; returns when the session completes or the learner quits."""
    shown = None
    while True:
        presentation = service.current_presentation(handle)
        if presentation is None:
            print("All words graduated!")
            return

        if presentation is not shown:
            shown = presentation
            if pronunciation is not None:
                try:
                    print(f"\nListen: {pronunciation.get_pronunciation(presentation.word.korean)}")
                except KvocabError as e:
                    logger.warning(f"{e}")
                    print(f"\n(audio unavailable) {presentation.word.korean}")
            else:
                print(f"\n{presentation.prompt}")

        try:
            line = input("> ").strip()
        except EOFError:
            return

        if line == ":quit":
            return
        if line == ":flip":
            service.flip(handle)
            print(f"  {presentation.answer}")
            if presentation.word.example:
                print(f"  {presentation.word.example}")
        elif line == ":skip":
            if not service.advance(handle):
                print("  Answer first, or use :graduate or :remove")
        elif line == ":graduate":
            service.force_graduate(handle, presentation.word.korean)
        elif line == ":remove":
            service.remove_from_session(handle, presentation.word.korean)
        elif line.startswith(":"):
            print(f"Unknown command. Use one of: {' '.join(COMMANDS)}")
        else:
            if presentation.mode.expects_korean:
                result = service.submit_guess(handle, korean_guess=line)
            else:
                result = service.submit_guess(handle, english_guess=line)
            if result.warning:
                print(f"  ! {result.warning}")
            if result.is_correct:
                print("  Correct" + (" (peeked, not counted)" if presentation.was_flipped else ""))
                service.advance(handle)
            elif result.accepted:
                print(f"  Answer: {result.correct_answer}  {format_diff(result.diff)}")
                print("  Type it again or :skip")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kvocab", description="Adaptive Korean vocabulary quiz")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upload_parser = subparsers.add_parser("upload", help="Import a tab-separated word file")
    upload_parser.add_argument("file", help="korean<TAB>english[<TAB>example] per line")
    upload_parser.add_argument("--owner", required=True, help="Owner id")
    upload_parser.add_argument("--name", default=None, help="Package name")
    upload_parser.set_defaults(func=upload)

    quiz_parser = subparsers.add_parser("quiz", help="Practise stored words")
    quiz_parser.add_argument("--owner", required=True, help="Owner id")
    quiz_parser.add_argument("--package", default=None, help="Only this package")
    quiz_parser.add_argument("--mode", choices=QUIZ_MODES, default=None)
    quiz_parser.add_argument("--window", type=int, default=None, help="Active window size")
    quiz_parser.add_argument("--required", type=int, default=None, help="Successes needed to graduate")
    quiz_parser.set_defaults(func=quiz)

    say_parser = subparsers.add_parser("say", help="Write pronunciation audio for a word")
    say_parser.add_argument("word")
    say_parser.set_defaults(func=say)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    ensure_directories()
    setup_logging(f"Starting kvocab {args.command} ...")
    init_db()
    if settings.monitoring.enabled:
        monitoring.start_monitoring(settings.monitoring.port)
        logger.info(f"Metrics exported on port {settings.monitoring.port}")

    try:
        return args.func(args)
    except KvocabError as e:
        logger.error(f"{e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        return 130


if __name__ == "__main__":
    sys.exit(main())
