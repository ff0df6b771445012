"""Error taxonomy for the LogicMonitor REST API client.

Every failure the client can report is an :class:`LMApiError` carrying an
:class:`ErrorKind`. Configuration problems are raised at construction time;
request failures are returned inside an ``ApiResult`` so callers can branch
on ``error.kind`` instead of matching message strings.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of client failures."""

    CONFIG = "config"
    CLIENT = "client"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    SERVER = "server"
    PROTOCOL = "protocol"
    PLATFORM = "platform"


class LMApiError(Exception):
    """Base class for all client errors."""

    kind: ErrorKind = ErrorKind.SERVER

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


class ConfigError(LMApiError):
    """Credential store missing or unreadable, or tenant unknown."""

    kind = ErrorKind.CONFIG


class ClientError(LMApiError):
    """Request rejected by the API (HTTP 400 or 404)."""

    kind = ErrorKind.CLIENT


class RequestTimeoutError(LMApiError):
    """No response within the request timeout, or rate limit never released."""

    kind = ErrorKind.TIMEOUT


class TransientTransportError(LMApiError):
    """Connection-level failure that persisted past the retry budget."""

    kind = ErrorKind.TRANSPORT


class ServerError(LMApiError):
    """Any other non-success HTTP status."""

    kind = ErrorKind.SERVER


class ProtocolError(LMApiError):
    """Response body is not the JSON document the API promises."""

    kind = ErrorKind.PROTOCOL


class PlatformError(LMApiError):
    """HTTP exchange succeeded but the API reported an error code in the body."""

    kind = ErrorKind.PLATFORM
