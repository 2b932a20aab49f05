import threading
from pathlib import Path
from typing import List, Optional

import pytest
import yaml

from dictclient.net import connection as connection_module
from dictclient.server.corpus_loader import load_corpus
from dictclient.server.server import DictServer

GREETING = "220 dictd ready <auth.mime> <42.1@test>"

TEST_CORPUS = {
    "server": {"banner": "test-dictd <mime>"},
    "default_strategy": "prefix",
    "strategies": [
        {"name": "exact", "description": "Match headwords exactly"},
        {"name": "prefix", "description": "Match prefixes"},
        {"name": "lev", "description": "Levenshtein distance one"},
    ],
    "databases": [
        {
            "name": "wn",
            "description": "WordNet (r) 3.0",
            "info": "WordNet sample.\nSecond line.",
            "entries": {
                "cat": ["cat\n  n 1: feline mammal"],
                "cats": ["cats\n  n 1: plural of cat"],
                "catalog": ["catalog\n  n 1: a complete list"],
            },
        },
        {
            "name": "foldoc",
            "description": "Free On-line Dictionary of Computing",
            "entries": {
                "cat": ["cat\n  Unix utility"],
                "daemon": ["daemon\n.hidden dot line\n  background program"],
            },
        },
    ],
    "fault_profiles": {
        "clean": {},
        "denied": {"handshake": {"code": 530, "message": "access denied"}},
        "broken_blocks": {
            "per_command": {"DEFINE": {"action": "BAD_TERMINAL", "code": 420, "message": "gone"}}
        },
        "silent": {"per_command": {"DEFINE": {"action": "DROP"}}},
    },
}


def reply(*lines: str) -> str:
    return "".join(line + "\r\n" for line in lines)


class ScriptedSocket:
    """In-memory stand-in for a connected socket.

    Serves the pre-recorded server bytes in small chunks and records what
    the client sends. When the script runs out, recv returns b"" (peer
    closed) or raises `on_eof` if given.
    """

    def __init__(self, script: str, *, chunk: int = 7, on_eof: Optional[BaseException] = None) -> None:
        self._data = script.encode("utf-8")
        self._chunk = chunk
        self._on_eof = on_eof
        self.sent: List[bytes] = []
        self.closed = False
        self.timeout: Optional[float] = None
        self.fail_send = False

    def settimeout(self, t: float) -> None:
        self.timeout = t

    def sendall(self, data: bytes) -> None:
        if self.closed or self.fail_send:
            raise OSError("socket is closed")
        self.sent.append(data)

    def recv(self, n: int) -> bytes:
        if not self._data:
            if self._on_eof is not None:
                raise self._on_eof
            return b""
        size = min(n, self._chunk)
        out, self._data = self._data[:size], self._data[size:]
        return out

    def close(self) -> None:
        self.closed = True

    @property
    def commands(self) -> List[str]:
        return [b.decode("utf-8").rstrip("\r\n") for b in self.sent]


@pytest.fixture
def scripted(monkeypatch):
    """Install a ScriptedSocket as the result of socket.create_connection."""

    def _install(script: str, **kw) -> ScriptedSocket:
        sock = ScriptedSocket(script, **kw)
        monkeypatch.setattr(
            connection_module.socket, "create_connection", lambda addr, timeout=None: sock
        )
        return sock

    return _install


@pytest.fixture
def corpus_path(tmp_path_factory) -> Path:
    p = tmp_path_factory.mktemp("corpus") / "corpus.yaml"
    p.write_text(yaml.safe_dump(TEST_CORPUS, sort_keys=False), encoding="utf-8")
    return p


@pytest.fixture
def start_server(corpus_path: Path):
    started = []

    def _start(fault_profile: str = "clean") -> DictServer:
        server = DictServer("127.0.0.1", 0, corpus=load_corpus(corpus_path), fault_profile=fault_profile, seed=0)
        t = threading.Thread(target=server.serve_forever, daemon=True)
        t.start()
        assert server.ready.wait(5.0)
        started.append((server, t))
        return server

    yield _start

    for server, t in started:
        server.stop()
        t.join(timeout=2.0)
