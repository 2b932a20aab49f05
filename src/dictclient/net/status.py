from __future__ import annotations

from dataclasses import dataclass

from dictclient.net.errors import MalformedStatusLine

# ==== Reply codes ====
DATABASES_FOLLOW = 110
STRATEGIES_FOLLOW = 111
INFO_FOLLOWS = 112
DEFINITIONS_FOLLOW = 150
DEFINITION_TEXT = 151
MATCHES_FOLLOW = 152
READY = 220
CLOSING = 221
OK = 250
SERVER_UNAVAILABLE = 420
SHUTTING_DOWN = 421
UNKNOWN_COMMAND = 500
SYNTAX_ERROR = 501
ACCESS_DENIED = 530
INVALID_DATABASE = 550
INVALID_STRATEGY = 551
NO_MATCH = 552
NO_DATABASES = 554
NO_STRATEGIES = 555


@dataclass(frozen=True)
class Status:
    code: int
    detail: str

    def __str__(self) -> str:
        return f"{self.code} {self.detail}".rstrip()


def parse_status(line: str) -> Status:
    """Decode one reply line into (code, detail).

    Grammar: CODE [detail...]
    - CODE is the first whitespace-delimited token, a 3-digit integer.
    - detail is everything after the first delimiter; may be empty.
    """
    s = line.strip()
    parts = s.split(None, 1)
    if not parts:
        raise MalformedStatusLine("Empty status line")
    token = parts[0]
    if len(token) != 3 or not (token.isascii() and token.isdigit()):
        raise MalformedStatusLine(f"Malformed status line: {s!r}")
    code = int(token)
    if code < 100 or code > 599:
        raise MalformedStatusLine(f"Status code out of range: {code}")
    detail = parts[1] if len(parts) > 1 else ""
    return Status(code, detail)
