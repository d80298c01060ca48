"""Wire-protocol client: one DNS question over TCP, decoded sections back.

Brief:
  The resolver only ever needs the answer and authority sections of a reply,
  so that is all a WireClient hands back. The default implementation builds
  the message with dnslib (random 16-bit id, RD set, single IN question) and
  ships it with the DNS-over-TCP transport.
"""

from __future__ import annotations

import logging
from typing import List, NamedTuple, Protocol, Tuple

from dnslib import QTYPE, RR, DNSRecord
from dnslib.dns import DNSError

from .errors import TransportError
from .transports.tcp import TCPError, tcp_query

logger = logging.getLogger(__name__)

DEFAULT_PORT = 53
DEFAULT_TIMEOUT_MS = 5000


class WireAnswer(NamedTuple):
    """Decoded sections of one DNS reply.

    Inputs:
      - answer: RRs from the answer section, in message order.
      - authority: RRs from the authority section, in message order.
    """

    answer: List[RR]
    authority: List[RR]


class WireClient(Protocol):
    """Protocol for sending a single question to a single nameserver.

    Inputs:
      - address: 'host', 'host:port' or '[v6addr]:port'.
      - record_type: Numeric query type (e.g. QTYPE.NS).
      - name: Fully-qualified query name.

    Outputs:
      - WireAnswer on success; raises TransportError on failure.
    """

    def query(self, address: str, record_type: int, name: str) -> WireAnswer:
        """Send one question and return the decoded reply sections."""


def split_address(address: str, default_port: int = DEFAULT_PORT) -> Tuple[str, int]:
    """Brief: Split a nameserver address into (host, port).

    Inputs:
      - address: 'host', 'host:port', '[v6]:port' or a bare IPv6 address.
      - default_port: Port used when the address carries none.

    Outputs:
      - (host, port) with any trailing dot removed from host.

    Example:
      >>> split_address("ns1.example.")
      ('ns1.example', 53)
      >>> split_address("[2001:db8::1]:5353")
      ('2001:db8::1', 5353)
    """

    addr = address.strip()
    if not addr:
        raise ValueError("empty nameserver address")

    port = default_port
    port_text = None
    if addr.startswith("["):
        host, sep, rest = addr[1:].partition("]")
        if not sep:
            raise ValueError(f"unterminated IPv6 literal in {address!r}")
        if rest.startswith(":"):
            port_text = rest[1:]
    elif addr.count(":") == 1:
        host, _, port_text = addr.partition(":")
    else:
        # Hostname, IPv4 address, or a bare IPv6 address without port.
        host = addr

    if port_text is not None:
        try:
            port = int(port_text)
        except ValueError as exc:
            raise ValueError(f"bad port in {address!r}") from exc
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in {address!r}")
    host = host.rstrip(".") if host != "." else host
    return host, port


class TCPWireClient:
    """Brief: WireClient backed by dnslib messages over DNS-over-TCP.

    Inputs (constructor):
      - timeout_ms: Applied to both the TCP connect and each read/write.

    Outputs:
      - Instances usable wherever a WireClient is expected.
    """

    def __init__(self, *, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        if int(timeout_ms) <= 0:
            raise ValueError("timeout_ms must be positive")
        self.timeout_ms = int(timeout_ms)

    def query(self, address: str, record_type: int, name: str) -> WireAnswer:
        host, port = split_address(address)

        req = DNSRecord.question(name, QTYPE[record_type])
        req.header.rd = 1

        logger.debug("query %s %s @%s:%d", name, QTYPE[record_type], host, port)
        try:
            resp_wire = tcp_query(
                host,
                port,
                req.pack(),
                connect_timeout_ms=self.timeout_ms,
                read_timeout_ms=self.timeout_ms,
            )
        except TCPError as exc:
            logger.error("failed to query dns server %s: %s", address, exc)
            raise TransportError(address, str(exc)) from exc

        try:
            resp = DNSRecord.parse(resp_wire)
        except DNSError as exc:
            logger.error("failed to read from dns server %s: %s", address, exc)
            raise TransportError(address, f"unparseable response: {exc}") from exc

        if resp.header.id != req.header.id:
            raise TransportError(
                address,
                "response id %d does not match query id %d"
                % (resp.header.id, req.header.id),
            )

        return WireAnswer(answer=list(resp.rr), authority=list(resp.auth))
