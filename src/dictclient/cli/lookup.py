from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, List, Optional

from dictclient.common.ids import make_session_id
from dictclient.common.time import utc_ts_compact
from dictclient.config import Settings
from dictclient.model import Database, Definition, MatchingStrategy
from dictclient.net.client import ClientResult, DictClient
from dictclient.reporting.transcript import TranscriptLogger


def _transcript(s: Settings, override: str) -> Optional[TranscriptLogger]:
    root = Path(override) if override else s.transcript_dir
    if root is None:
        return None
    sid = make_session_id()
    return TranscriptLogger(root / f"{utc_ts_compact()}_{sid}", session_id=sid)


def _render(items: List[Any]) -> None:
    for item in items:
        if isinstance(item, Definition):
            db = item.database.name if item.database is not None else "?"
            print(f"--- {item.headword} [{db}] ---")
            print(item.body)
        elif isinstance(item, (Database, MatchingStrategy)):
            print(f"{item.name:<12} {item.description}")
        else:
            print(item)


def run_lookup(args: argparse.Namespace, s: Settings) -> int:
    op = args.cmd
    if op == "define":
        call_args = [args.word, args.db or s.database]
    elif op == "match":
        call_args = [args.word, args.strategy or s.strategy, args.db or s.database]
    elif op == "info":
        call_args = [args.db]
    else:
        call_args = []

    client = DictClient(
        args.host or s.host,
        args.port if args.port is not None else s.port,
        args.timeout if args.timeout is not None else s.timeout_s,
        transcript=_transcript(s, args.transcript_dir),
    )
    with client:
        res: ClientResult = client.call(op, *call_args)

    if not res.ok:
        print(f"[dictc] {res.error_code}: {res.message}", file=sys.stderr)
        return 1
    if not res.items:
        print(f"[dictc] {res.message}")
        return 0
    _render(res.items)
    return 0
