"""Exception hierarchy for delivery channels."""

from __future__ import annotations


class ChannelError(Exception):
    """Base exception for all channel errors."""


class ChannelConfigError(ChannelError):
    """Required credential or destination is missing (not a transient fault)."""


class TransportError(ChannelError):
    """Network failure, timeout or non-2xx response during delivery."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: str = "",
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.retryable = retryable
        self.attempts = 1


class CircuitOpenError(ChannelError):
    """Too many consecutive failures — the send was skipped without I/O."""
