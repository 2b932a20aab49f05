from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Database:
    name: str
    description: str


@dataclass(frozen=True)
class MatchingStrategy:
    name: str
    description: str


@dataclass
class Definition:
    headword: str
    # None when the reporting database is not in the connection's cache
    database: Optional[Database]
    body: str = ""

    def append_line(self, line: str) -> None:
        self.body = line if not self.body else self.body + "\n" + line


ALL_DATABASES = Database("*", "All databases")
FIRST_MATCH = Database("!", "First database with a match")
DEFAULT_STRATEGY = MatchingStrategy(".", "Server default strategy")
