from __future__ import annotations

import csv
import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from dictclient.common.time import utc_now_iso


TRANSCRIPT_SCHEMA_VERSION = 1

# Stable CSV column order (append-only evolution: only add new columns at the end)
CSV_COLUMNS: List[str] = [
    "schema_version",
    "timestamp",
    "session_id",
    "host",
    "port",
    "command",
    "status_code",
    "duration_ms",
    "ok",
    "error_code",
    "item_count",
    "message",
]


@dataclass(frozen=True)
class TranscriptEvent:
    # Meta
    schema_version: int
    timestamp: str
    session_id: str
    host: str
    port: int

    # Exchange
    command: str
    status_code: Optional[int]
    duration_ms: int

    # Outcome
    ok: bool
    error_code: Optional[str]
    item_count: int
    message: str

    # Extra payload for replay/debug (kept in JSONL only)
    data: Dict[str, Any]

    @staticmethod
    def make(
        *,
        session_id: str,
        host: str,
        port: int,
        command: str,
        status_code: Optional[int],
        duration_ms: int,
        ok: bool,
        error_code: Optional[str] = None,
        item_count: int = 0,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> "TranscriptEvent":
        return TranscriptEvent(
            schema_version=TRANSCRIPT_SCHEMA_VERSION,
            timestamp=utc_now_iso(),
            session_id=session_id,
            host=host,
            port=int(port),
            command=command,
            status_code=status_code,
            duration_ms=int(duration_ms),
            ok=bool(ok),
            error_code=error_code,
            item_count=int(item_count),
            message=message,
            data=data or {},
        )

    def to_jsonl_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_csv_row(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("data", None)  # CSV is flat
        return d


class TranscriptLogger:
    """Append-only session log: one JSONL row per command exchange + mirrored CSV row."""

    def __init__(self, out_dir: Path, *, session_id: str) -> None:
        self.out_dir = out_dir
        self.session_id = session_id
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.jsonl_path = self.out_dir / "events.jsonl"
        self.csv_path = self.out_dir / "events.csv"

        if not self.csv_path.exists():
            with self.csv_path.open("w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
                writer.writeheader()

    def log(self, ev: TranscriptEvent) -> None:
        with self.jsonl_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(ev.to_jsonl_dict(), ensure_ascii=False) + "\n")

        with self.csv_path.open("a", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            row = ev.to_csv_row()
            writer.writerow({k: row.get(k, "") for k in CSV_COLUMNS})
