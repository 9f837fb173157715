"""Error taxonomy shared by the transport, orchestrator and readers."""

from __future__ import annotations

from typing import Optional


class CheckinError(RuntimeError):
    """Base class for every failure the check-in client reports."""

    kind = "error"

    @property
    def user_message(self) -> str:
        return str(self) or "Failed to process check-in"


class ConfigurationError(CheckinError):
    """Secret or base URL missing or unusable; fatal for any network action."""

    kind = "configuration"


class UnreachableError(CheckinError):
    """DNS, TLS, connection or timeout failure before a response arrived."""

    kind = "unreachable"

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None) -> None:
        super().__init__(
            message or "Unable to connect to server. Check your internet connection and API URL."
        )
        self.cause = cause


class ServerError(CheckinError):
    """Non-2xx response with a decoded detail message."""

    kind = "server"

    def __init__(self, status: int, detail: str) -> None:
        super().__init__(detail)
        self.status = status
        self.detail = detail


class ProtocolError(CheckinError):
    """Response was not JSON, or JSON of an unexpected shape."""

    kind = "protocol"

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        raw_body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.raw_body = raw_body


class ValidationError(CheckinError):
    """Identifier rejected before any network call was made."""

    kind = "validation"
