from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from dictclient.net.status import Status

# ==== Error taxonomy (frozen) ====
E_TRANSPORT = "E_TRANSPORT"
E_PROTOCOL = "E_PROTOCOL"
E_MALFORMED_STATUS = "E_MALFORMED_STATUS"
E_INVALID_DATABASE = "E_INVALID_DATABASE"
E_INVALID_STRATEGY = "E_INVALID_STRATEGY"
E_SERVICE_UNAVAILABLE = "E_SERVICE_UNAVAILABLE"
E_SHUTTING_DOWN = "E_SHUTTING_DOWN"
E_ACCESS_DENIED = "E_ACCESS_DENIED"


class DictConnectionError(Exception):
    """Base for every failure a connection reports to its caller.

    `code` is one of the E_* tags above, so callers can branch on the kind
    without depending on the class hierarchy.
    """

    code = E_PROTOCOL

    def __init__(self, message: str, *, status: Optional["Status"] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class TransportError(DictConnectionError):
    code = E_TRANSPORT


class ProtocolError(DictConnectionError):
    code = E_PROTOCOL


class MalformedStatusLine(ProtocolError):
    code = E_MALFORMED_STATUS


class InvalidDatabase(DictConnectionError):
    code = E_INVALID_DATABASE


class InvalidStrategy(DictConnectionError):
    code = E_INVALID_STRATEGY


class ServiceUnavailable(DictConnectionError):
    code = E_SERVICE_UNAVAILABLE


class ServiceShuttingDown(DictConnectionError):
    code = E_SHUTTING_DOWN


class AccessDenied(DictConnectionError):
    code = E_ACCESS_DENIED
