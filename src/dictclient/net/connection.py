from __future__ import annotations

import socket
import threading
import time
from typing import Callable, List, Optional, TypeVar

from dictclient.model import Database, Definition, MatchingStrategy
from dictclient.net.atoms import quote_atom, split_atoms
from dictclient.net.cache import DatabaseCache
from dictclient.net.errors import (
    AccessDenied,
    DictConnectionError,
    InvalidDatabase,
    InvalidStrategy,
    ProtocolError,
    ServiceShuttingDown,
    ServiceUnavailable,
    TransportError,
)
from dictclient.net.status import (
    ACCESS_DENIED,
    DATABASES_FOLLOW,
    DEFINITION_TEXT,
    DEFINITIONS_FOLLOW,
    INFO_FOLLOWS,
    INVALID_DATABASE,
    INVALID_STRATEGY,
    MATCHES_FOLLOW,
    NO_DATABASES,
    NO_MATCH,
    NO_STRATEGIES,
    OK,
    READY,
    SERVER_UNAVAILABLE,
    SHUTTING_DOWN,
    STRATEGIES_FOLLOW,
    Status,
    parse_status,
)
from dictclient.reporting.transcript import TranscriptEvent, TranscriptLogger

DEFAULT_PORT = 2628
DEFAULT_TIMEOUT_S = 2.5

T = TypeVar("T")


def _reject_line_breaks(**fields: str) -> None:
    for what, value in fields.items():
        if "\r" in value or "\n" in value:
            raise ValueError(f"{what} must not contain a line break: {value!r}")


class DictionaryConnection:
    """One synchronous session with a DICT server.

    The constructor connects and validates the greeting. Every public call
    writes one command, then reads the reply until its terminal status line;
    a per-connection lock is held for the whole exchange.

    After a TransportError or ProtocolError the server state is unknown, so
    the connection refuses further commands until it is closed.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transcript: Optional[TranscriptLogger] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout_s = timeout_s
        self.banner = ""
        self.databases = DatabaseCache()

        self._transcript = transcript
        self._lock = threading.RLock()
        self._sock: Optional[socket.socket] = None
        self._buf = b""
        self._broken = False

        self._handshake()

    # ---- lifecycle ----
    def _handshake(self) -> None:
        t0 = time.time()
        status: Optional[Status] = None
        try:
            try:
                self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout_s)
            except OSError as e:
                raise TransportError(f"Cannot connect to {self.host}:{self.port}: {e}") from e
            self._sock.settimeout(self.timeout_s)

            status = self._read_status()
            if status.code == SERVER_UNAVAILABLE:
                raise ServiceUnavailable("Server temporarily unavailable", status=status)
            if status.code == SHUTTING_DOWN:
                raise ServiceShuttingDown("Server shutting down at operator request", status=status)
            if status.code == ACCESS_DENIED:
                raise AccessDenied("Access denied", status=status)
            if status.code != READY:
                raise ProtocolError(f"Unexpected greeting: {status}", status=status)
        except DictConnectionError as e:
            self._release()
            self._record("CONNECT", t0, status, error=e)
            raise

        self.banner = status.detail
        self._record("CONNECT", t0, status)

    def _release(self) -> None:
        sock, self._sock = self._sock, None
        self._buf = b""
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass

    def close(self) -> None:
        """Send QUIT and drop the socket. Never raises."""
        with self._lock:
            if self._sock is not None:
                try:
                    self._sock.sendall(b"QUIT\r\n")
                except OSError:
                    pass
            self._release()
            self.databases.clear()

    @property
    def is_open(self) -> bool:
        return self._sock is not None and not self._broken

    def __enter__(self) -> "DictionaryConnection":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ---- wire helpers ----
    def _send_line(self, line: str) -> None:
        # one command per line; an embedded line break would put a second command in flight
        if "\r" in line or "\n" in line:
            raise ValueError(f"Command contains a line break: {line!r}")
        if self._sock is None:
            raise TransportError("Connection is closed")
        try:
            self._sock.sendall((line + "\r\n").encode("utf-8"))
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e

    def _read_line(self) -> str:
        if self._sock is None:
            raise TransportError("Connection is closed")
        while b"\n" not in self._buf:
            try:
                chunk = self._sock.recv(4096)
            except socket.timeout as e:
                raise TransportError(f"No reply within {self.timeout_s}s") from e
            except OSError as e:
                raise TransportError(f"Read failed: {e}") from e
            if not chunk:
                raise TransportError("Connection closed by server")
            self._buf += chunk
        raw, self._buf = self._buf.split(b"\n", 1)
        return raw.rstrip(b"\r").decode("utf-8", errors="replace")

    def _read_status(self) -> Status:
        return parse_status(self._read_line())

    def _read_block(self) -> List[str]:
        """Read text lines up to a lone '.'; undo dot-stuffing."""
        lines: List[str] = []
        while True:
            line = self._read_line()
            if line == ".":
                return lines
            if line.startswith(".."):
                line = line[1:]
            lines.append(line)

    def _expect_ok(self, command: str) -> None:
        status = self._read_status()
        if status.code != OK:
            raise ProtocolError(f"Unexpected end status for {command}: {status}", status=status)

    def _exchange(self, command: str, handler: Callable[[Status], T]) -> T:
        if self._sock is None:
            raise TransportError("Connection is closed")
        if self._broken:
            raise TransportError("Connection is no longer usable after a previous failure")

        t0 = time.time()
        status: Optional[Status] = None
        try:
            self._send_line(command)
            status = self._read_status()
            result = handler(status)
        except (TransportError, ProtocolError) as e:
            self._broken = True
            self._record(command, t0, status, error=e)
            raise
        except DictConnectionError as e:
            self._record(command, t0, status, error=e)
            raise

        items = len(result) if isinstance(result, list) else 1
        self._record(command, t0, status, items=items)
        return result

    def _record(
        self,
        command: str,
        t0: float,
        status: Optional[Status],
        *,
        items: int = 0,
        error: Optional[DictConnectionError] = None,
    ) -> None:
        if self._transcript is None:
            return
        if error is not None and error.status is not None:
            status = error.status
        self._transcript.log(
            TranscriptEvent.make(
                session_id=self._transcript.session_id,
                host=self.host,
                port=self.port,
                command=command,
                status_code=status.code if status else None,
                duration_ms=int((time.time() - t0) * 1000),
                ok=error is None,
                error_code=error.code if error else None,
                item_count=items,
                message=str(error) if error else (status.detail if status else ""),
                data={"broken": self._broken},
            )
        )

    # ---- commands ----
    def get_definitions(self, word: str, database: Database) -> List[Definition]:
        """DEFINE word in database, one Definition per 151 block in server order.

        Database names in the replies are resolved through the cache, which is
        populated first; an unknown name gives a Definition with database None.
        """
        if not word:
            return []
        _reject_line_breaks(word=word, database=database.name)

        def handle(status: Status) -> List[Definition]:
            if status.code == INVALID_DATABASE:
                raise InvalidDatabase(f"Invalid database: {database.name}", status=status)
            if status.code == NO_MATCH:
                return []
            if status.code != DEFINITIONS_FOLLOW:
                raise ProtocolError(f"Unexpected reply to DEFINE: {status}", status=status)

            definitions: List[Definition] = []
            summary = self._read_status()
            while summary.code == DEFINITION_TEXT:
                atoms = split_atoms(summary.detail)
                if len(atoms) < 2:
                    raise ProtocolError(f"Malformed definition header: {summary}", status=summary)
                d = Definition(atoms[0], self.databases.get(atoms[1]))
                for line in self._read_block():
                    d.append_line(line)
                definitions.append(d)
                summary = self._read_status()
            if summary.code != OK:
                raise ProtocolError(f"Unexpected end status for DEFINE: {summary}", status=summary)
            return definitions

        with self._lock:
            self.get_databases()
            return self._exchange(f"DEFINE {database.name} {quote_atom(word)}", handle)

    def get_matches(self, word: str, strategy: MatchingStrategy, database: Database) -> List[str]:
        """MATCH word; headwords in server order with duplicates collapsed."""
        if not word:
            return []
        _reject_line_breaks(word=word, strategy=strategy.name, database=database.name)

        def handle(status: Status) -> List[str]:
            if status.code == INVALID_DATABASE:
                raise InvalidDatabase(f"Invalid database: {database.name}", status=status)
            if status.code == INVALID_STRATEGY:
                raise InvalidStrategy(f"Invalid strategy: {strategy.name}", status=status)
            if status.code == NO_MATCH:
                return []
            if status.code != MATCHES_FOLLOW:
                raise ProtocolError(f"Unexpected reply to MATCH: {status}", status=status)

            matches = {}
            for line in self._read_block():
                atoms = split_atoms(line)
                if len(atoms) < 2:
                    raise ProtocolError(f"Malformed match line: {line!r}", status=status)
                matches[atoms[1]] = None
            self._expect_ok("MATCH")
            return list(matches)

        with self._lock:
            return self._exchange(f"MATCH {database.name} {strategy.name} {quote_atom(word)}", handle)

    def get_databases(self) -> List[Database]:
        """SHOW DATABASES, fetched once per connection once non-empty."""

        def handle(status: Status) -> List[Database]:
            if status.code == NO_DATABASES:
                return self.databases.values()
            if status.code != DATABASES_FOLLOW:
                raise ProtocolError(f"Unexpected reply to SHOW DATABASES: {status}", status=status)

            found: List[Database] = []
            for line in self._read_block():
                atoms = split_atoms(line)
                if not atoms:
                    continue
                found.append(Database(atoms[0], atoms[1] if len(atoms) > 1 else ""))
            self._expect_ok("SHOW DATABASES")
            # only commit once the block closed cleanly
            for db in found:
                self.databases.put(db)
            return self.databases.values()

        with self._lock:
            if self.databases.is_populated:
                return self.databases.values()
            return self._exchange("SHOW DATABASES", handle)

    def get_strategies(self) -> List[MatchingStrategy]:
        def handle(status: Status) -> List[MatchingStrategy]:
            if status.code == NO_STRATEGIES:
                return []
            if status.code != STRATEGIES_FOLLOW:
                raise ProtocolError(f"Unexpected reply to SHOW STRAT: {status}", status=status)

            found = {}
            for line in self._read_block():
                atoms = split_atoms(line)
                if not atoms:
                    continue
                found[MatchingStrategy(atoms[0], atoms[1] if len(atoms) > 1 else "")] = None
            self._expect_ok("SHOW STRAT")
            return list(found)

        with self._lock:
            return self._exchange("SHOW STRAT", handle)

    def get_database_info(self, database: Database) -> str:
        _reject_line_breaks(database=database.name)

        def handle(status: Status) -> str:
            if status.code == INVALID_DATABASE:
                raise InvalidDatabase(f"Invalid database: {database.name}", status=status)
            if status.code != INFO_FOLLOWS:
                raise ProtocolError(f"Unexpected reply to SHOW INFO: {status}", status=status)
            text = "\n".join(self._read_block())
            self._expect_ok("SHOW INFO")
            return text

        with self._lock:
            return self._exchange(f"SHOW INFO {database.name}", handle)
