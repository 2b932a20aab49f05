from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    timeout_s: float
    database: str
    strategy: str
    transcript_dir: Optional[Path]


def load_settings() -> Settings:
    load_dotenv(override=False)

    host = os.getenv("DICT_HOST", "127.0.0.1")
    port = int(os.getenv("DICT_PORT", "2628"))
    timeout_s = float(os.getenv("DICT_TIMEOUT_S", "2.5"))
    database = os.getenv("DICT_DATABASE", "*")
    strategy = os.getenv("DICT_STRATEGY", ".")
    transcript_raw = os.getenv("DICT_TRANSCRIPT_DIR", "").strip()

    return Settings(
        host=host,
        port=port,
        timeout_s=timeout_s,
        database=database,
        strategy=strategy,
        transcript_dir=Path(transcript_raw) if transcript_raw else None,
    )
