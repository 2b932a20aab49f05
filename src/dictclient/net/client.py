from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from dictclient.model import Database, MatchingStrategy
from dictclient.net.connection import DictionaryConnection
from dictclient.net.errors import E_TRANSPORT, DictConnectionError, TransportError
from dictclient.reporting.transcript import TranscriptLogger

OPS = ("define", "match", "databases", "strategies", "info")


@dataclass(frozen=True)
class ClientResult:
    ok: bool
    error_code: Optional[str]
    message: str
    items: List[Any] = field(default_factory=list)


class DictClient:
    """Result-returning wrapper around DictionaryConnection.

    `call` never raises a DictConnectionError: failures come back as
    ClientResult(ok=False, error_code=E_*), and "nothing found" comes back as
    ok=True with no items.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout_s: float,
        *,
        transcript: Optional[TranscriptLogger] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout_s = timeout_s
        self.transcript = transcript
        self._conn: Optional[DictionaryConnection] = None

    def connect(self) -> ClientResult:
        if self._conn is not None:
            return ClientResult(True, None, self._conn.banner)
        try:
            self._conn = DictionaryConnection(
                self.host, self.port, timeout_s=self.timeout_s, transcript=self.transcript
            )
        except DictConnectionError as e:
            return ClientResult(False, e.code, e.message)
        return ClientResult(True, None, self._conn.banner)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DictClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _dispatch(self, conn: DictionaryConnection, op: str, args: List[str]) -> List[Any]:
        def database(name: str) -> Database:
            return conn.databases.get(name) or Database(name, "")

        if op == "define":
            word, db = args[0], args[1] if len(args) > 1 else "*"
            return conn.get_definitions(word, database(db))
        if op == "match":
            word = args[0]
            strat = args[1] if len(args) > 1 else "."
            db = args[2] if len(args) > 2 else "*"
            return conn.get_matches(word, MatchingStrategy(strat, ""), database(db))
        if op == "databases":
            return conn.get_databases()
        if op == "strategies":
            return conn.get_strategies()
        if op == "info":
            return [conn.get_database_info(database(args[0]))]
        raise ValueError(f"Unknown operation: {op}")

    def call(self, op: str, *args: str) -> ClientResult:
        """Run one operation.

        Ops and args:
        - define WORD [DB]
        - match WORD [STRATEGY] [DB]
        - databases
        - strategies
        - info DB

        Arguments containing a line break raise ValueError before anything is sent.
        """
        if op not in OPS:
            raise ValueError(f"Unknown operation: {op}. Expected one of: {list(OPS)}")
        if op in {"define", "match", "info"} and not args:
            raise ValueError(f"{op} requires at least 1 argument")

        if self._conn is None:
            res = self.connect()
            if not res.ok:
                return res
        conn = self._conn
        if conn is None:
            return ClientResult(False, E_TRANSPORT, "Not connected")

        try:
            items = self._dispatch(conn, op, list(args))
        except TransportError as e:
            # the session cannot be trusted any more
            self.close()
            return ClientResult(False, e.code, e.message)
        except DictConnectionError as e:
            if not conn.is_open:
                self.close()
            return ClientResult(False, e.code, e.message)
        return ClientResult(True, None, "OK" if items else "No results", items)
