from __future__ import annotations

import threading
from typing import Iterable, Optional


# Root nameserver hostnames, a through m. Addresses are resolved by the
# transport at connect time.
ROOT_SERVERS: tuple[str, ...] = tuple(
    f"{c}.root-servers.net." for c in "abcdefghijklm"
)


class RootServerRotator:
    """Brief: Hand out root nameservers in round-robin order.

    Inputs (constructor):
      - servers: Ordered root server names (defaults to ROOT_SERVERS).

    Outputs:
      - Instance whose next() returns the following server, wrapping at the
        end of the list. Safe to share between threads.

    Example:
      >>> r = RootServerRotator(["x.", "y."])
      >>> r.next(), r.next(), r.next()
      ('x.', 'y.', 'x.')
    """

    def __init__(self, servers: Optional[Iterable[str]] = None) -> None:
        self._servers = tuple(servers if servers is not None else ROOT_SERVERS)
        if not self._servers:
            raise ValueError("RootServerRotator needs at least one server")
        self._index = 0
        self._lock = threading.Lock()

    @property
    def servers(self) -> tuple[str, ...]:
        return self._servers

    def next(self) -> str:
        with self._lock:
            server = self._servers[self._index]
            self._index = (self._index + 1) % len(self._servers)
        return server


_default_rotator = RootServerRotator()


def default_rotator() -> RootServerRotator:
    return _default_rotator
