from __future__ import annotations

import os
import random
import socket
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dictclient.net.atoms import quote_atom, split_atoms
from dictclient.net.status import (
    CLOSING,
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
    STRATEGIES_FOLLOW,
    SYNTAX_ERROR,
    UNKNOWN_COMMAND,
)
from dictclient.server.corpus_loader import load_corpus
from dictclient.server.corpus_schema import Corpus, DatabaseSpec
from dictclient.server.fault_injection import FaultDecision, FaultInjector
from dictclient.server.matching import match_headwords

# Reply: lines to send, or None to drop the connection without a reply
Reply = Optional[List[str]]


def _text_block(text: str) -> List[str]:
    lines = []
    for line in text.splitlines():
        lines.append("." + line if line.startswith(".") else line)
    lines.append(".")
    return lines


class DictServer:
    """Multi-client TCP DICT server over a YAML corpus (thread-per-connection)."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        corpus_path: Optional[Path] = None,
        corpus: Optional[Corpus] = None,
        fault_profile: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.ready = threading.Event()
        self._stop = threading.Event()
        self._sock: Optional[socket.socket] = None

        self.corpus = corpus if corpus is not None else load_corpus(corpus_path)
        self._databases: Dict[str, DatabaseSpec] = {d.name: d for d in self.corpus.databases}

        prof_name = fault_profile or os.getenv("DICT_FAULT_PROFILE", self.corpus.default_fault_profile)
        prof = self.corpus.fault_profiles.get(prof_name)
        self.faults = FaultInjector(random.Random(seed), prof.model_dump(exclude_unset=True) if prof is not None else {})

    def stop(self) -> None:
        self._stop.set()
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass

    # ---- session ----
    def _send(self, conn: socket.socket, lines: List[str]) -> None:
        conn.sendall(("\r\n".join(lines) + "\r\n").encode("utf-8"))

    def _handle(self, conn: socket.socket, addr: Tuple[str, int]) -> None:
        with conn:
            try:
                refused = self.faults.handshake()
                if refused is not None:
                    self._send(conn, [str(refused)])
                    return
                self._send(conn, [f"{READY} {self.corpus.server.banner}"])
            except OSError:
                return

            buf = b""
            while not self._stop.is_set():
                try:
                    chunk = conn.recv(4096)
                except OSError:
                    return
                if not chunk:
                    return
                buf += chunk
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    text = line.decode("utf-8", errors="replace").strip()
                    if not text:
                        continue
                    if text.upper() == "QUIT":
                        try:
                            self._send(conn, [f"{CLOSING} bye"])
                        except OSError:
                            pass
                        return
                    reply = self._dispatch(text)
                    if reply is None:
                        # Simulate a dead peer (DROP)
                        return
                    try:
                        self._send(conn, reply)
                    except OSError:
                        return

    def _dispatch(self, text: str) -> Reply:
        atoms = split_atoms(text)
        cmd = atoms[0].upper() if atoms else ""
        args = atoms[1:]

        if cmd == "SHOW" and args:
            what = args[0].upper()
            if what in {"DB", "DATABASES"}:
                cmd, args = "SHOW DATABASES", args[1:]
            elif what in {"STRAT", "STRATEGIES"}:
                cmd, args = "SHOW STRAT", args[1:]
            elif what == "INFO":
                cmd, args = "SHOW INFO", args[1:]

        handlers = {
            "DEFINE": (2, self._define),
            "MATCH": (3, self._match),
            "SHOW DATABASES": (0, self._show_databases),
            "SHOW STRAT": (0, self._show_strategies),
            "SHOW INFO": (1, self._show_info),
        }
        if cmd not in handlers:
            return [f"{UNKNOWN_COMMAND} unknown command"]
        n_args, fn = handlers[cmd]
        if len(args) != n_args:
            return [f"{SYNTAX_ERROR} syntax error, illegal parameters"]

        decision = self.faults.evaluate(cmd)
        if decision.action == "DELAY":
            time.sleep(decision.delay_s)
        elif decision.action == "DROP":
            time.sleep(decision.delay_s)
            return None
        elif decision.action == "RESPOND":
            return [str(decision.status)]

        lines = fn(*args)
        return self._apply_terminal_fault(lines, decision)

    def _apply_terminal_fault(self, lines: List[str], decision: FaultDecision) -> List[str]:
        if decision.action != "BAD_TERMINAL" or not lines or not lines[-1].startswith(f"{OK} "):
            return lines
        return lines[:-1] + [str(decision.status)]

    # ---- commands ----
    def _targets(self, name: str) -> Optional[List[DatabaseSpec]]:
        if name in {"*", "!"}:
            return list(self.corpus.databases)
        db = self._databases.get(name)
        return [db] if db is not None else None

    def _define(self, db_name: str, word: str) -> List[str]:
        targets = self._targets(db_name)
        if targets is None:
            return [f"{INVALID_DATABASE} invalid database, use \"SHOW DB\" for list of databases"]

        found: List[Tuple[DatabaseSpec, str, str]] = []
        for db in targets:
            for headword in match_headwords(db.entries, word, "exact"):
                for text in db.entries[headword]:
                    found.append((db, headword, text))
            if found and db_name == "!":
                break
        if not found:
            return [f"{NO_MATCH} no match"]

        lines = [f"{DEFINITIONS_FOLLOW} {len(found)} definitions retrieved"]
        for db, headword, text in found:
            lines.append(f"{DEFINITION_TEXT} {quote_atom(headword)} {db.name} {quote_atom(db.description)}")
            lines.extend(_text_block(text))
        lines.append(f"{OK} ok")
        return lines

    def _match(self, db_name: str, strategy: str, word: str) -> List[str]:
        targets = self._targets(db_name)
        if targets is None:
            return [f"{INVALID_DATABASE} invalid database, use \"SHOW DB\" for list of databases"]
        if strategy == ".":
            strategy = self.corpus.default_strategy or ""
        if strategy not in {s.name for s in self.corpus.strategies}:
            return [f"{INVALID_STRATEGY} invalid strategy, use \"SHOW STRAT\" for a list of strategies"]

        found: List[Tuple[str, str]] = []
        for db in targets:
            for headword in match_headwords(db.entries, word, strategy):
                found.append((db.name, headword))
            if found and db_name == "!":
                break
        if not found:
            return [f"{NO_MATCH} no match"]

        lines = [f"{MATCHES_FOLLOW} {len(found)} matches found"]
        lines.extend(f"{name} {quote_atom(headword)}" for name, headword in found)
        lines.append(".")
        lines.append(f"{OK} ok")
        return lines

    def _show_databases(self) -> List[str]:
        if not self.corpus.databases:
            return [f"{NO_DATABASES} no databases present"]
        lines = [f"{DATABASES_FOLLOW} {len(self.corpus.databases)} databases present"]
        lines.extend(f"{d.name} {quote_atom(d.description)}" for d in self.corpus.databases)
        lines.append(".")
        lines.append(f"{OK} ok")
        return lines

    def _show_strategies(self) -> List[str]:
        if not self.corpus.strategies:
            return [f"{NO_STRATEGIES} no strategies available"]
        lines = [f"{STRATEGIES_FOLLOW} {len(self.corpus.strategies)} strategies available"]
        lines.extend(f"{s.name} {quote_atom(s.description)}" for s in self.corpus.strategies)
        lines.append(".")
        lines.append(f"{OK} ok")
        return lines

    def _show_info(self, db_name: str) -> List[str]:
        db = self._databases.get(db_name)
        if db is None:
            return [f"{INVALID_DATABASE} invalid database, use \"SHOW DB\" for list of databases"]
        lines = [f"{INFO_FOLLOWS} database information follows"]
        lines.extend(_text_block(db.info or db.description))
        lines.append(f"{OK} ok")
        return lines

    def serve_forever(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            self._sock = s
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((self.host, self.port))
            # port 0 -> OS-assigned ephemeral port
            self.port = s.getsockname()[1]
            s.listen()
            s.settimeout(0.5)
            print(f"[dictd] listening on {self.host}:{self.port}")
            self.ready.set()

            while not self._stop.is_set():
                try:
                    conn, addr = s.accept()
                except socket.timeout:
                    continue
                except OSError:
                    break
                threading.Thread(target=self._handle, args=(conn, addr), daemon=True).start()

            print("[dictd] shutdown complete")
