"""Exception types raised while resolving a lookup.

Brief:
  Every failure aborts the whole resolution and reaches the caller as one of
  the ResolutionError subclasses below. Nothing in dnstrace retries.
"""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for all lookup failures."""


class DepthExceededError(ResolutionError):
    """Delegation walk went deeper than the configured limit.

    Inputs:
      - hostname: Name being resolved.
      - max_depth: Limit that was exceeded.
    """

    def __init__(self, hostname: str, max_depth: int) -> None:
        super().__init__(
            f"nameserver search depth exceeded ({max_depth}) for {hostname}"
        )
        self.hostname = hostname
        self.max_depth = max_depth


class NoAuthorityProvidedError(ResolutionError):
    """A nameserver returned neither an NS answer nor authority records."""

    def __init__(self, nameserver: str, hostname: str) -> None:
        super().__init__(
            f"no answer or authoritative server provided by {nameserver} "
            f"for {hostname}"
        )
        self.nameserver = nameserver
        self.hostname = hostname


class UnexpectedRecordTypeError(ResolutionError):
    """Authority section held records that are neither NS nor SOA."""

    def __init__(self, nameserver: str, types: list[str]) -> None:
        super().__init__(
            f"unexpected record(s) in authority section from {nameserver}: "
            + ", ".join(types)
        )
        self.nameserver = nameserver
        self.types = types


class TransportError(ResolutionError):
    """Connecting to, writing to or reading from a nameserver failed."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"query to {address} failed: {reason}")
        self.address = address
        self.reason = reason


class RecordDecodeError(ResolutionError):
    """A resource record's value could not be serialized."""


class UnknownRecordTypeError(ResolutionError, ValueError):
    """Requested record type token is not a DNS type name."""

    def __init__(self, token: str) -> None:
        super().__init__(f"unknown record type: {token!r}")
        self.token = token
