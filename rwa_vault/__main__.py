#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Operator CLI.

```
python -m rwa_vault [--state PATH] [--log-level LEVEL] status [--json]
python -m rwa_vault [--state PATH] [--log-level LEVEL] maintain [--restore]
python -m rwa_vault [--state PATH] [--log-level LEVEL] events [--csv PATH]
```
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from .clock import SystemClock
from .config import VaultSettings
from .errors import VaultError
from .events import EventLog, events_path_for
from .logging_config import VALID_LOG_LEVELS, get_logger, set_log_level
from .maintenance import run_maintenance
from .reporting import events_frame, export_summary, net_stable_flow
from .run_lock import RunLockError
from .status_report import collect_sections, print_sections, sections_to_json
from .storage import StateStore

logger = get_logger(__name__)


def _cmd_status(args: argparse.Namespace, settings: VaultSettings) -> int:
    store = StateStore.load(settings.state_path, SystemClock())
    sections = collect_sections(store)
    if args.json:
        print(json.dumps(sections_to_json(sections), indent=2, ensure_ascii=False))
    else:
        print_sections(sections)
    return 0


def _cmd_maintain(args: argparse.Namespace, settings: VaultSettings) -> int:
    try:
        report = run_maintenance(settings, restore_archived=args.restore)
    except RunLockError as exc:
        logger.error("maintenance skipped: %s", exc)
        return 2
    print(json.dumps(report.to_dict(), indent=2))
    return 0


def _cmd_events(args: argparse.Namespace, settings: VaultSettings) -> int:
    log = EventLog.load(events_path_for(settings.state_path))
    df = events_frame(log.events)
    if df.empty:
        print("No events recorded")
        return 0
    summary = export_summary(df, Path(args.csv) if args.csv else None)
    print(summary.to_string(index=False))
    print(f"\nNet stable flow: {net_stable_flow(df)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rwa_vault", description="RWA maturity vault operator tools")
    parser.add_argument("--state", help="Vault state file (default: RWA_VAULT_STATE_PATH or vault_state.json)")
    parser.add_argument(
        "--log-level", type=str.upper, choices=sorted(VALID_LOG_LEVELS), help="Override LOG_LEVEL for this run"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Phase, NAV, allocation and retention overview")
    status.add_argument("--json", action="store_true", help="Machine-readable output")
    status.set_defaults(handler=_cmd_status)

    maintain = sub.add_parser("maintain", help="Extend retention of entries close to archival")
    maintain.add_argument("--restore", action="store_true", help="Also restore archived entries")
    maintain.set_defaults(handler=_cmd_maintain)

    events = sub.add_parser("events", help="Per-topic summary of the event log")
    events.add_argument("--csv", help="Write the summary to this CSV file")
    events.set_defaults(handler=_cmd_events)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)
    settings = VaultSettings.from_env()
    if args.state:
        settings.state_path = Path(args.state)
    try:
        return args.handler(args, settings)
    except VaultError as exc:
        logger.error("%s (code %s): %s", exc.name, exc.code, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
