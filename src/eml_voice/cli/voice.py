"""
Command-line interface for feature extraction and example store maintenance.

Usage:
    # Features of one text file
    python -m eml_voice.cli.voice extract reply.txt

    # Features from stdin
    echo "Hey honey! Love you!" | python -m eml_voice.cli.voice extract -

    # Every .txt file of a directory, saved as JSONL
    python -m eml_voice.cli.voice extract replies/ --output features.jsonl

    # Relationship counts of a user
    python -m eml_voice.cli.voice stats user-123

    # Delete all examples of a user
    python -m eml_voice.cli.voice wipe user-123 --yes
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from eml_voice.config import settings
from eml_voice.features import extract_email_features
from eml_voice.index.database import create_index_engine
from eml_voice.index.sql_index import SqlVectorIndex
from eml_voice.logging_config import setup_logging


# Setup logging
setup_logging()
logger = structlog.get_logger(__name__)


# ============================================================================
# CLI FUNCTIONS
# ============================================================================

def extract_text(text: str, recipient_hint: Optional[str] = None, source: str = "-") -> dict:
    """
    Extract features of one text.

    Returns:
        Dict with the source name and the features as JSON-ready data
    """
    features = extract_email_features(text, recipient_hint=recipient_hint)
    return {"source": source, "features": features.model_dump(mode="json")}


def extract_path(input_path: str, recipient_hint: Optional[str] = None) -> List[dict]:
    """
    Extract features of stdin ("-"), a text file, or every .txt file of a directory.

    Raises:
        FileNotFoundError: If the path does not exist
    """
    if input_path == "-":
        return [extract_text(sys.stdin.read(), recipient_hint)]

    path = Path(input_path)
    if path.is_file():
        return [extract_text(path.read_text(encoding="utf-8"), recipient_hint, source=str(path))]
    if path.is_dir():
        files = sorted(path.glob("**/*.txt"))
        if not files:
            logger.warning("no_text_files_found", directory=str(path))
        return [
            extract_text(f.read_text(encoding="utf-8"), recipient_hint, source=str(f)) for f in files
        ]
    raise FileNotFoundError(f"Path not found: {path}")


def write_output(results: List[dict], output_path: Optional[Path], format: str = "jsonl") -> None:
    """
    Write results to a file, or stdout when no path is given.

    Args:
        results: JSON-ready result dicts
        output_path: Output file path
        format: Output format ("json" or "jsonl")
    """
    if not output_path:
        if format == "jsonl":
            for result in results:
                print(json.dumps(result, ensure_ascii=False))
        else:
            print(json.dumps(results, ensure_ascii=False, indent=2))
        return

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        if format == "jsonl":
            for result in results:
                f.write(json.dumps(result, ensure_ascii=False) + "\n")
        else:
            json.dump(results, f, ensure_ascii=False, indent=2)

    logger.info("output_written", path=str(output_path), count=len(results))


def open_index(db_url: Optional[str] = None) -> SqlVectorIndex:
    return SqlVectorIndex(engine=create_index_engine(db_url or settings.index_db_url))


def relationship_stats(user_id: str, db_url: Optional[str] = None) -> dict:
    stats = open_index(db_url).get_relationship_stats(user_id)
    return {"user_id": user_id, "stats": stats, "total": sum(stats.values())}


def wipe_user(user_id: str, db_url: Optional[str] = None) -> dict:
    deleted = open_index(db_url).delete_user_data(user_id)
    return {"user_id": user_id, "deleted": deleted}


# ============================================================================
# MAIN CLI
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="EML Voice CLI - email features and style example store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s extract reply.txt
  %(prog)s extract - --recipient "Dr. Johnson" < reply.txt
  %(prog)s extract replies/ --output features.jsonl
  %(prog)s stats user-123 --db sqlite:///data/eml_voice.db
  %(prog)s wipe user-123 --yes
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Extract features from text")
    extract.add_argument("input", type=str, help="Text file, directory of .txt files, or '-' for stdin")
    extract.add_argument("--recipient", "-r", type=str, default=None, help="Recipient name hint")
    extract.add_argument("--output", "-o", type=str, default=None, help="Output file path (default: stdout)")
    extract.add_argument(
        "--format", "-f", type=str, choices=["json", "jsonl"], default="jsonl", help="Output format (default: jsonl)"
    )

    stats = subparsers.add_parser("stats", help="Example count per relationship type for a user")
    stats.add_argument("user_id", type=str)
    stats.add_argument("--db", type=str, default=None, help="SQLAlchemy URL (default: INDEX_DB_URL)")

    wipe = subparsers.add_parser("wipe", help="Delete every example of a user")
    wipe.add_argument("user_id", type=str)
    wipe.add_argument("--db", type=str, default=None, help="SQLAlchemy URL (default: INDEX_DB_URL)")
    wipe.add_argument("--yes", action="store_true", help="Confirm deletion")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        if args.command == "extract":
            results = extract_path(args.input, args.recipient)
            output_path = Path(args.output) if args.output else None

            # Auto-detect format from file extension
            format = args.format
            if output_path and output_path.suffix == ".json":
                format = "json"

            write_output(results, output_path, format)

        elif args.command == "stats":
            write_output([relationship_stats(args.user_id, args.db)], None, "jsonl")

        elif args.command == "wipe":
            if not args.yes:
                print("Refusing to delete without --yes", file=sys.stderr)
                sys.exit(2)
            write_output([wipe_user(args.user_id, args.db)], None, "jsonl")

    except Exception as e:
        logger.error("cli_failed", command=args.command, error=str(e), exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
