#!/usr/bin/env python
"""Persisted state inspection utility.

Usage:
    python scripts/state.py show
    python scripts/state.py show --json
    python scripts/state.py check <report_id>
    python scripts/state.py --state-dir ./data show

This script reads the poller cursor and the processed/notified report
sets. It never modifies them.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

# Ensure the project is in the path
sys.path.insert(0, "src")


def load_state(state_dir: Path) -> tuple[int | None, list[int], list[str]]:
    """Load cursor, processed ids and notified ids from a state directory."""
    from autolabel.agent.pipeline import CURSOR_FILE, NOTIFIED_FILE, PROCESSED_FILE
    from autolabel.infra.store import CursorStore, PersistedSet

    cursor = CursorStore(state_dir / CURSOR_FILE)
    processed = PersistedSet(state_dir / PROCESSED_FILE, int)
    notified = PersistedSet(state_dir / NOTIFIED_FILE, str)
    return cursor.get(), list(processed), list(notified)


def show(state_dir: Path, json_output: bool) -> None:
    """Print the persisted state."""
    cursor, processed, notified = load_state(state_dir)

    if json_output:
        print(
            json.dumps(
                {
                    "state_dir": str(state_dir),
                    "cursor": cursor,
                    "processed_reports": processed,
                    "notified_reports": notified,
                },
                indent=2,
            )
        )
        return

    print(f"State directory: {state_dir}")
    print(f"  Cursor: {cursor if cursor is not None else '(baseline pending)'}")
    print(f"  Processed reports: {len(processed)}")
    print(f"  Notified reports: {len(notified)}")


def check(state_dir: Path, report_id: int) -> None:
    """Print whether a report was processed and/or notified."""
    cursor, processed, notified = load_state(state_dir)

    print(f"Report {report_id}:")
    print(f"  Processed: {'yes' if report_id in processed else 'no'}")
    print(f"  Notified: {'yes' if str(report_id) in notified else 'no'}")
    if cursor is not None and report_id > cursor:
        print(f"  Not yet seen (cursor is {cursor})")


def main() -> None:
    """Run state inspection."""
    parser = argparse.ArgumentParser(
        description="Inspect the auto-labeler's persisted state",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/state.py show
    python scripts/state.py show --json
    python scripts/state.py check 1042
        """,
    )
    parser.add_argument(
        "--state-dir",
        type=Path,
        default=Path(os.environ.get("STATE_DIR", "/data")),
        help="Directory holding the state files (default: $STATE_DIR or /data)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Show command
    show_parser = subparsers.add_parser("show", help="Show cursor and set sizes")
    show_parser.add_argument(
        "--json",
        action="store_true",
        help="Output the full state as JSON",
    )

    # Check command
    check_parser = subparsers.add_parser("check", help="Check a specific report")
    check_parser.add_argument("report_id", type=int, help="Report event id to check")

    args = parser.parse_args()

    if args.command == "show":
        show(args.state_dir, args.json)
    elif args.command == "check":
        check(args.state_dir, args.report_id)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
