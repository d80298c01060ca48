"""DNS-over-TCP transport used to reach nameservers during a lookup.

Brief:
  Every query opens its own connection, writes one length-prefixed message
  (RFC 7766 framing) and reads exactly one length-prefixed reply. Timeouts
  apply separately to connect and to each socket read/write.
"""

from __future__ import annotations

import socket


class TCPError(Exception):
    """
    A DNS-over-TCP transport error.

    Inputs:
      - message: Error description.
    Outputs:
      - Exception instance.

    Brief: Raised for connect/read/write or framing errors.
    """

    pass


def tcp_query(
    host: str,
    port: int,
    query: bytes,
    *,
    connect_timeout_ms: int = 5000,
    read_timeout_ms: int = 5000,
) -> bytes:
    """
    Send one wire-format DNS message to host:port and return the reply.

    Inputs:
      - host: Nameserver hostname or IP address.
      - port: Nameserver TCP port (53 typically).
      - query: Wire-format DNS query bytes.
      - connect_timeout_ms: TCP connect timeout.
      - read_timeout_ms: Timeout for each send/recv operation.
    Outputs:
      - bytes: Wire-format DNS response.

    Example:
      >>> resp = tcp_query('a.root-servers.net', 53, b'\x12\x34...')
    """
    if len(query) > 0xFFFF:
        raise TCPError("query too large for TCP framing: %d bytes" % len(query))
    payload = len(query).to_bytes(2, byteorder="big") + query
    try:
        sock = socket.create_connection(
            (host, int(port)), timeout=connect_timeout_ms / 1000.0
        )
    except OSError as e:
        raise TCPError(f"connect to {host}:{port} failed: {e}") from e

    try:
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(read_timeout_ms / 1000.0)
        sock.sendall(payload)
        hdr = _recv_exact(sock, 2)
        if len(hdr) != 2:
            raise TCPError("short read on length header")
        resp_len = int.from_bytes(hdr, byteorder="big")
        resp = _recv_exact(sock, resp_len)
        if len(resp) != resp_len:
            raise TCPError("short read on body")
        return resp
    except OSError as e:
        raise TCPError(f"network error talking to {host}:{port}: {e}") from e
    finally:
        sock.close()


def _recv_exact(sock: socket.socket, n: int) -> bytes:
    """
    Receive exactly n bytes from a blocking socket.

    Inputs:
      - sock: Socket
      - n: Number of bytes
    Outputs:
      - bytes: Exactly n bytes unless EOF occurs.

    Example:
      >>> _recv_exact(sock, 2)
    """
    remaining = n
    chunks = []
    while remaining > 0:
        chunk = sock.recv(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)
