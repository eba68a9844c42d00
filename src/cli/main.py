"""
CLI entry point for codeide-store.

Usage
─────
  # Show / save the current text of a document
  codeide-store show python --file hello
  codeide-store save python ./hello.py --file hello --message "first draft"

  # Newest revisions first, then roll back to one of them
  codeide-store history python --file hello --limit 5
  codeide-store restore 42

  # Snippets of a language
  codeide-store snippets python

  # Whole-store backup and restore
  codeide-store export ./backup.json
  codeide-store import ./backup.json

  codeide-store stats

Subcommands are implemented as standalone functions (cmd_show, cmd_save, …)
so they can be unit-tested without invoking argparse.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from src.exceptions import CodeStoreError
from src.store import transfer
from src.store.config import StoreConfig
from src.store.db import CodeStore
from src.store.models import CodeRecord, HistoryEntry

__all__ = [
    "build_parser",
    "cmd_show",
    "cmd_save",
    "cmd_history",
    "cmd_restore",
    "cmd_snippets",
    "cmd_export",
    "cmd_import",
    "cmd_stats",
    "main",
]

logger = logging.getLogger(__name__)


# ── Argument parser ────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Subcommands: show | save | history | restore | snippets | export | import | stats
    """
    default_db = StoreConfig.from_env().db_path
    parser = argparse.ArgumentParser(
        prog="codeide-store",
        description="Local store for code documents, revision history and snippets",
    )
    parser.add_argument(
        "--db",
        default=default_db,
        metavar="PATH",
        help=f"SQLite database path (default: {default_db})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable verbose debug logging",
    )

    sub = parser.add_subparsers(dest="subcommand")

    # ── show ──────────────────────────────────────────────────────────────
    show = sub.add_parser("show", help="Print the current text of a document")
    show.add_argument("lang", metavar="LANG", help="Language identifier")
    show.add_argument("--file", default="main", metavar="NAME", help="Document name (default: main)")

    # ── save ──────────────────────────────────────────────────────────────
    save = sub.add_parser("save", help="Save a source file as the new document text")
    save.add_argument("lang", metavar="LANG", help="Language identifier")
    save.add_argument("source", metavar="SOURCE", help="File to read the code from ('-' for stdin)")
    save.add_argument("--file", default="main", metavar="NAME", help="Document name (default: main)")
    save.add_argument("--message", default="", metavar="TEXT", help="History message")
    save.add_argument("--author", default="", metavar="NAME", help="Author stored on the record")
    save.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Save (and bump the version) even if the code is unchanged",
    )
    save.add_argument(
        "--no-history",
        action="store_true",
        default=False,
        dest="no_history",
        help="Do not append a history entry",
    )

    # ── history ───────────────────────────────────────────────────────────
    hist = sub.add_parser("history", help="List recent revisions, newest first")
    hist.add_argument("lang", metavar="LANG", help="Language identifier")
    hist.add_argument("--file", default=None, metavar="NAME", help="Only this document")
    hist.add_argument("--limit", type=int, default=50, metavar="N", help="Maximum entries (default: 50)")

    # ── restore ───────────────────────────────────────────────────────────
    rest = sub.add_parser("restore", help="Restore a revision as the new current version")
    rest.add_argument("id", type=int, metavar="ID", help="History entry id")

    # ── snippets ──────────────────────────────────────────────────────────
    snip = sub.add_parser("snippets", help="List the snippets of a language")
    snip.add_argument("lang", metavar="LANG", help="Language identifier")

    # ── export / import ───────────────────────────────────────────────────
    exp = sub.add_parser("export", help="Export the whole store to a JSON file")
    exp.add_argument("output", metavar="OUTPUT", help="Destination JSON file")

    imp = sub.add_parser("import", help="Replace the whole store with a JSON export")
    imp.add_argument("input", metavar="INPUT", help="JSON file written by 'export'")

    # ── stats ─────────────────────────────────────────────────────────────
    sub.add_parser("stats", help="Print record counts and approximate size")

    return parser


# ── Helpers ───────────────────────────────────────────────────────────────────


def _format_entry(entry: HistoryEntry) -> str:
    return (
        f"[{entry.id:>5}]  {entry.filename:<20} v{entry.version:<4} "
        f"{entry.lines:>5} lines  {entry.message}"
    )


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).expanduser().read_text(encoding="utf-8")


# ── Command implementations ───────────────────────────────────────────────────


def cmd_show(store: CodeStore, lang: str, filename: str) -> str:
    """Print the document text; prints nothing for a document never saved."""
    code = store.load_code(lang, filename) or ""
    if code:
        print(code)
    else:
        logger.info("No document %s:%s", lang, filename)
    return code


def cmd_save(
    store: CodeStore,
    lang: str,
    source: str,
    filename: str = "main",
    message: str = "",
    author: str = "",
    force: bool = False,
    no_history: bool = False,
) -> Optional[CodeRecord]:
    """Save the contents of *source* and report the resulting version."""
    code = _read_source(source)
    record = store.save_code(
        lang,
        code,
        filename=filename,
        message=message,
        author=author,
        skip_if_unchanged=not force,
        save_history=not no_history,
    )
    if record is None:
        raise ValueError("A language is required")
    print(f"{record.id} v{record.version}")
    return record


def cmd_history(
    store: CodeStore,
    lang: str,
    filename: Optional[str],
    limit: int,
) -> list[HistoryEntry]:
    """Print recent history entries, newest first."""
    entries = store.get_history(lang, filename, limit)
    if not entries:
        print("0 history entries found.")
        return entries
    for entry in entries:
        print(_format_entry(entry))
    return entries


def cmd_restore(store: CodeStore, history_id: int) -> HistoryEntry:
    entry = store.restore_from_history(history_id)
    if entry is None:
        raise ValueError(f"No history entry with id={history_id}")
    record = store.load_code_record(entry.lang, entry.filename)
    print(f"Restored {record.id} from v{entry.version} → v{record.version}")
    return entry


def cmd_snippets(store: CodeStore, lang: str) -> None:
    """Print the snippets of *lang* in insertion order."""
    items = store.get_snippets_by_language(lang)
    if not items:
        print("0 snippets found.")
        return
    for snippet in items:
        tags = ",".join(snippet.tags)
        print(f"[{snippet.id:>4}]  {snippet.name:<30} used={snippet.usage_count:<4} {tags}")


def cmd_export(store: CodeStore, output: str) -> Path:
    """Export the whole store to *output*."""
    out_path = transfer.dump_json(store.export_database(), output)
    logger.info("Exported %s to %s", store.name, out_path)
    print(f"Exported → {out_path}")
    return out_path


def cmd_import(store: CodeStore, input_path: str) -> None:
    """Replace the store contents with the export in *input_path*."""
    data = transfer.load_json(input_path)
    store.import_database(data)
    counts = store.get_stats()
    print(
        f"Imported ← {input_path}: {counts['code']['count']} documents, "
        f"{counts['history']['count']} history entries, "
        f"{counts['snippets']['count']} snippets, "
        f"{counts['settings']['count']} settings"
    )


def cmd_stats(store: CodeStore) -> dict:
    counts = store.get_stats()
    for name in ("settings", "code", "history", "snippets"):
        print(f"{name:<10} {counts[name]['count']:>8}")
    print(f"{'size':<10} {counts['totalSize']:>8} chars (approx.)")
    return counts


# ── Entry point ───────────────────────────────────────────────────────────────


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point. Returns exit code."""
    parser = build_parser()
    ns = parser.parse_args(argv)

    level = logging.DEBUG if ns.debug else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")

    if ns.subcommand is None:
        parser.print_help()
        return 0

    try:
        store = CodeStore(db_path=ns.db)
    except CodeStoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        if ns.subcommand == "show":
            cmd_show(store, ns.lang, ns.file)
        elif ns.subcommand == "save":
            cmd_save(
                store,
                ns.lang,
                ns.source,
                filename=ns.file,
                message=ns.message,
                author=ns.author,
                force=ns.force,
                no_history=ns.no_history,
            )
        elif ns.subcommand == "history":
            cmd_history(store, ns.lang, ns.file, ns.limit)
        elif ns.subcommand == "restore":
            cmd_restore(store, ns.id)
        elif ns.subcommand == "snippets":
            cmd_snippets(store, ns.lang)
        elif ns.subcommand == "export":
            cmd_export(store, ns.output)
        elif ns.subcommand == "import":
            cmd_import(store, ns.input)
        elif ns.subcommand == "stats":
            cmd_stats(store)
        else:
            parser.print_help()
    except (CodeStoreError, ValueError, OSError) as exc:
        logger.debug("%s failed", ns.subcommand, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
