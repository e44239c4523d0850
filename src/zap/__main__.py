"""Zap Notes entry point.

Usage:
    python -m zap [OPTIONS] COMMAND [ARGS]

Options:
    --config PATH    Path to YAML config file
    --profile NAME   Profile name (dev, prod, test)
    --help           Show this help message
    --version        Show version
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .app import ZapApp
from .config.loader import load_config
from .config.profiles import detect_profile
from .notes.errors import ValidationError, ZapError
from .notes.filters import FILTER_TABS
from .notes.models import AudioContent, NoteItem, PhotoContent, TextContent
from .organizer import OrganizeOutcome


def setup_logging(level: str) -> None:
    """Configure logging based on config."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="zap",
        description="Zap Notes - capture text, audio, and photo notes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m zap add-text "call the plumber"
  python -m zap add-photo ~/Pictures/whiteboard.jpg
  python -m zap list --category Audio
  python -m zap organize

Environment:
  ZAP_PROFILE        Set profile (dev, prod, test)
  ZAP_DATA_DIR       Override the notes directory
  ANTHROPIC_API_KEY  Enables Claude-based organizing
""",
    )

    parser.add_argument("--config", type=Path, help="Path to YAML config file", metavar="PATH")
    parser.add_argument(
        "--profile",
        choices=["dev", "prod", "test"],
        help="Configuration profile to use",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Zap Notes v{__version__}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    add_text = commands.add_parser("add-text", help="Add a text note")
    add_text.add_argument("body", help="Note text")
    add_text.add_argument("--category", help="Optional category label")
    add_text.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")

    add_audio = commands.add_parser("add-audio", help="Add an audio note")
    add_audio.add_argument("file_ref", help="Path or key of the recording")
    add_audio.add_argument("--duration", type=float, default=0.0, help="Length in seconds")

    add_photo = commands.add_parser("add-photo", help="Add a photo note")
    add_photo.add_argument("image_ref", help="Path or key of the image")

    list_cmd = commands.add_parser("list", help="List notes")
    list_cmd.add_argument(
        "--category",
        default="All",
        type=str.capitalize,
        choices=FILTER_TABS,
        help="Filter tab",
    )

    delete = commands.add_parser("delete", help="Delete a note")
    delete.add_argument("note_id", help="Id of the note (full id or unique prefix)")

    organize = commands.add_parser("organize", help="Organize all notes")
    organize.add_argument(
        "--mock",
        action="store_true",
        help="Use the local mock organizer instead of Claude",
    )

    return parser.parse_args(argv)


def describe(note: NoteItem) -> str:
    """One-line summary of a note for terminal output."""
    content = note.content
    if isinstance(content, TextContent):
        summary = content.body.splitlines()[0][:60]
    elif isinstance(content, AudioContent):
        summary = f"{content.file_ref} ({content.duration_seconds:.0f}s)"
    elif isinstance(content, PhotoContent):
        summary = content.image_ref
    else:
        raise TypeError(f"Unknown note content: {type(content).__name__}")

    labels = ""
    if note.category:
        labels += f" [{note.category}]"
    if note.tags:
        labels += " " + " ".join(f"#{t}" for t in note.tags)

    created = note.created_at.strftime("%b %d, %Y %H:%M")
    return f"{note.id[:8]}  {note.kind.label:<5}  {created}  {summary}{labels}"


def resolve_id(app: ZapApp, prefix: str) -> str | None:
    """Expand a unique id prefix to a full note id."""
    matches = [note.id for note in app.notes if note.id.startswith(prefix)]
    return matches[0] if len(matches) == 1 else None


def run_command(app: ZapApp, args: argparse.Namespace) -> int:
    """Execute one CLI command against the app.

    Returns:
        Exit code
    """
    if args.command == "add-text":
        note = app.add_text(args.body, category=args.category, tags=args.tag)
        print(f"Added {describe(note)}")
    elif args.command == "add-audio":
        note = app.add_audio(args.file_ref, duration_seconds=args.duration)
        print(f"Added {describe(note)}")
    elif args.command == "add-photo":
        note = app.add_photo(args.image_ref)
        print(f"Added {describe(note)}")
    elif args.command == "list":
        view = app.filtered(args.category)
        if not view:
            print("No Notes Yet. Start by adding your first note.")
        for note in view:
            print(describe(note))
    elif args.command == "delete":
        note_id = resolve_id(app, args.note_id)
        if note_id is None or not app.delete(note_id):
            print(f"No single note matches '{args.note_id}'", file=sys.stderr)
            return 1
        print(f"Deleted {note_id}")
    elif args.command == "organize":
        outcome = app.organize(wait=True)
        message = app.status.current
        if message is not None:
            print(message.text)
        if outcome is OrganizeOutcome.STARTED and app.workflow.last_error is not None:
            return 1

    if app.status.current is not None and app.store.dirty:
        print(app.status.current.text, file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for Zap Notes.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    load_dotenv()
    args = parse_args(argv)

    try:
        if args.config:
            config = load_config(path=args.config)
        else:
            config = load_config(profile=args.profile or detect_profile().value)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (TypeError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging.level)
    logger = logging.getLogger("zap")
    logger.debug(f"Zap Notes v{__version__}, storage backend {config.storage.backend}")

    use_mock = args.command == "organize" and args.mock

    try:
        app = ZapApp.from_config(config, use_mock=use_mock)
    except (ZapError, ValueError) as e:
        logger.error(f"Failed to open notes store: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return run_command(app, args)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
