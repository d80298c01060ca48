"""Nameserver discovery, per-type query fan-out and response assembly.

Brief:
  Resolver.lookup() either walks the delegation chain from a root server to
  the authoritative nameserver for a name and queries it ("trace" mode), or
  sends the questions straight to a caller-supplied resolver ("recursive"
  mode). Every requested record type is queried concurrently; the first
  failure aborts the whole lookup once the remaining queries have finished.

Inputs:
  - A WireClient for talking to nameservers (DNS-over-TCP by default).
  - A RootServerRotator picking the root server each walk starts from.
  - A random source with choice() used to pick among equivalent NS records.

Outputs:
  - Response mappings of record-type key to ordered Server lists.
"""

from __future__ import annotations

import ipaddress
import logging
import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, List, Optional, Protocol, Sequence, Tuple, Union

from dnslib import QTYPE
from dnslib.dns import DNSError

from .errors import (
    DepthExceededError,
    NoAuthorityProvidedError,
    UnexpectedRecordTypeError,
    UnknownRecordTypeError,
)
from .records import (
    TRACE_KEY,
    Record,
    RecordType,
    Response,
    Server,
    records_from_rrs,
    type_name,
)
from .root_servers import RootServerRotator, default_rotator
from .wire import DEFAULT_TIMEOUT_MS, TCPWireClient, WireClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10

# Few servers still answer a literal ANY query, so ANY is expanded into
# concrete types. NS is left out of trace mode because the delegation walk
# already recorded it.
TRACE_ANY_TYPES: Tuple[str, ...] = ("A", "AAAA", "CNAME", "MX", "PTR", "SOA", "TXT")
RECURSIVE_ANY_TYPES: Tuple[str, ...] = TRACE_ANY_TYPES + ("NS",)


class Chooser(Protocol):
    """Anything with random.Random.choice semantics."""

    def choice(self, seq: Sequence[Any]) -> Any:
        """Return one element of a non-empty sequence."""


def record_type_code(record_type: str) -> int:
    """Brief: Map a record-type token to its numeric QTYPE.

    Inputs:
      - record_type: Type name such as 'A' or 'mx' (case-insensitive).

    Outputs:
      - int: Numeric type code.

    Raises:
      - UnknownRecordTypeError: token is not a DNS type name.
    """

    token = record_type.strip().upper()
    try:
        code = getattr(QTYPE, token)
    except (DNSError, AttributeError) as exc:
        raise UnknownRecordTypeError(record_type) from exc
    if not isinstance(code, int):
        raise UnknownRecordTypeError(record_type)
    return code


def expand_record_types(record_type: str, *, include_ns: bool) -> List[str]:
    """Brief: Turn the requested record type into the concrete types to query.

    Inputs:
      - record_type: Requested token; 'ANY' expands to a fixed set.
      - include_ns: Whether the ANY expansion carries NS (recursive mode).

    Outputs:
      - List of upper-cased type names.

    Example:
      >>> expand_record_types("mx", include_ns=False)
      ['MX']
    """

    token = record_type.strip().upper()
    if token == "ANY":
        return list(RECURSIVE_ANY_TYPES if include_ns else TRACE_ANY_TYPES)
    record_type_code(token)
    return [token]


class Resolver:
    """Brief: Trace and recursive DNS lookups with per-type concurrency.

    Inputs (constructor):
      - client: WireClient used for every query (TCPWireClient by default).
      - rotator: RootServerRotator choosing the first server of each walk.
      - rng: Random source for NS selection (random.Random() by default).
      - max_depth: Deepest delegation step allowed before giving up.
      - max_workers: Thread cap for a fan-out (defaults to one per type).
      - timeout_ms: Per-query timeout for the default client.

    Outputs:
      - Instance exposing lookup(), lookup_rdns() and the individual steps.
    """

    def __init__(
        self,
        *,
        client: Optional[WireClient] = None,
        rotator: Optional[RootServerRotator] = None,
        rng: Optional[Chooser] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_workers: Optional[int] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self._client = client if client is not None else TCPWireClient(
            timeout_ms=timeout_ms
        )
        self._rotator = rotator if rotator is not None else default_rotator()
        self._rng = rng if rng is not None else random.Random()
        self._max_depth = int(max_depth)
        self._max_workers = max_workers

    def find_authoritative_nameserver(self, hostname: str) -> Tuple[str, RecordType]:
        """Brief: Walk NS delegations from a root server down to hostname's zone.

        Inputs:
          - hostname: Fully-qualified name (trailing dot) to find the zone of.

        Outputs:
          - (nameserver, trace):
              - nameserver: Authoritative server name without trailing dot,
                or '' when hostname turned out to be a CNAME.
              - trace: One Server per nameserver consulted, root first,
                holding everything that server returned.

        Raises:
          - DepthExceededError, NoAuthorityProvidedError,
            UnexpectedRecordTypeError, TransportError, RecordDecodeError.
        """

        nameserver = self._rotator.next()
        trace: RecordType = []

        depth = 0
        while True:
            if depth > self._max_depth:
                raise DepthExceededError(hostname, self._max_depth)

            answer, authority = self._client.query(nameserver, QTYPE.NS, hostname)
            trace.append(
                Server(address=nameserver, records=records_from_rrs(authority + answer))
            )

            ns_answers = [rr for rr in answer if rr.rtype == QTYPE.NS]
            if ns_answers:
                chosen = str(self._rng.choice(ns_answers).rdata.label).rstrip(".")
                logger.debug(
                    "%s: authoritative nameserver %s (via %s, depth %d)",
                    hostname,
                    chosen,
                    nameserver,
                    depth,
                )
                return chosen, trace

            # An alias rather than a zone: nothing further to delegate to.
            if any(rr.rtype == QTYPE.CNAME for rr in answer):
                logger.debug(
                    "%s: CNAME returned by %s, stopping walk", hostname, nameserver
                )
                return "", trace

            if not authority:
                raise NoAuthorityProvidedError(nameserver, hostname)

            ns_authority = [rr for rr in authority if rr.rtype == QTYPE.NS]
            if ns_authority:
                next_ns = str(self._rng.choice(ns_authority).rdata.label)
                logger.debug(
                    "%s: %s delegates to %s (depth %d)",
                    hostname,
                    nameserver,
                    next_ns,
                    depth,
                )
                nameserver = next_ns
                depth += 1
                continue

            soa = next((rr for rr in authority if rr.rtype == QTYPE.SOA), None)
            if soa is not None:
                primary = str(soa.rdata.mname).rstrip(".")
                logger.debug(
                    "%s: zone apex at %s (SOA from %s)", hostname, primary, nameserver
                )
                return primary, trace

            raise UnexpectedRecordTypeError(
                nameserver, sorted({type_name(rr.rtype) for rr in authority})
            )

    def query_type_from_nameserver(
        self, nameserver: str, record_type: str, lookup: str
    ) -> List[Record]:
        """Brief: Query one nameserver for one record type.

        Inputs:
          - nameserver: Address of the server to ask.
          - record_type: Concrete type name (not 'ANY').
          - lookup: Fully-qualified query name.

        Outputs:
          - Normalized records from the answer section; for NS queries with
            an empty answer, the authority section instead.
        """

        code = record_type_code(record_type)
        answer, authority = self._client.query(nameserver, code, lookup)

        rrs = answer
        if not rrs and code == QTYPE.NS:
            rrs = authority
        return records_from_rrs(rrs)

    def _query_types(
        self, nameserver: str, record_types: List[str], lookup: str
    ) -> List[Tuple[str, List[Record]]]:
        """Brief: Query every record type concurrently against one nameserver.

        Inputs:
          - nameserver: Address of the server to ask.
          - record_types: Concrete type names.
          - lookup: Fully-qualified query name.

        Outputs:
          - (record_type, records) pairs in completion order.

        Notes:
          - A failing query does not cancel the others. Once all have
            finished, the first failure observed is re-raised.
        """

        if not record_types:
            return []

        results: List[Tuple[str, List[Record]]] = []
        first_error: Optional[BaseException] = None
        workers = self._max_workers or len(record_types)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(
                    self.query_type_from_nameserver, nameserver, rt, lookup
                ): rt
                for rt in record_types
            }
            for fut in as_completed(futures):
                rt = futures[fut]
                try:
                    records = fut.result()
                except Exception as exc:
                    logger.debug("%s %s @%s failed: %s", lookup, rt, nameserver, exc)
                    if first_error is None:
                        first_error = exc
                    continue
                results.append((rt, records))

        if first_error is not None:
            raise first_error
        return results

    def trace_query(
        self, dns_server: Optional[str], record_type: str, hostname: str
    ) -> Response:
        """Brief: Walk to the authoritative server and query it directly.

        Inputs:
          - dns_server: Unused in trace mode; accepted for a uniform signature.
          - record_type: Requested type token ('ANY' allowed).
          - hostname: Fully-qualified name.

        Outputs:
          - {'TRACE': servers} with the delegation path, root first. When
            records were queried, the last entry is the authoritative server
            holding them.
        """

        record_types = expand_record_types(record_type, include_ns=False)
        # The walk already captured the NS records.
        if record_types == ["NS"]:
            record_types = []

        authoritative, trace = self.find_authoritative_nameserver(hostname)
        if not authoritative or not record_types:
            return {TRACE_KEY: trace}

        target = Server(address=authoritative)
        trace.append(target)
        for _rt, records in self._query_types(authoritative, record_types, hostname):
            target.records.extend(records)

        return {TRACE_KEY: trace}

    def recursive_query(
        self, dns_server: str, record_type: str, hostname: str
    ) -> Response:
        """Brief: Ask dns_server directly for each expanded record type.

        Inputs:
          - dns_server: Resolver address ('host' or 'host:port').
          - record_type: Requested type token ('ANY' allowed, includes NS).
          - hostname: Fully-qualified name.

        Outputs:
          - {TYPE: [Server(dns_server, records)]} for every queried type.
        """

        if not dns_server:
            raise ValueError("recursive lookups need a dns_server")

        record_types = expand_record_types(record_type, include_ns=True)
        response: Response = {}
        for rt, records in self._query_types(dns_server, record_types, hostname):
            response[rt] = [Server(address=dns_server, records=records)]
        return response

    def lookup(
        self,
        dns_server: Optional[str],
        record_type: str,
        hostname: str,
        full_trace: bool = False,
    ) -> Response:
        """Brief: Resolve hostname in trace or recursive mode.

        Inputs:
          - dns_server: Resolver used in recursive mode.
          - record_type: Requested type token.
          - hostname: Name to resolve; a trailing dot is added if missing.
          - full_trace: True for trace mode.

        Outputs:
          - Response mapping.

        Example:
          >>> Resolver().lookup("1.1.1.1", "A", "example.com")  # doctest: +SKIP
          {'A': [Server(address='1.1.1.1', records=[...])]}
        """

        hostname = hostname.strip()
        if not hostname:
            raise ValueError("hostname must not be empty")
        if not hostname.endswith("."):
            hostname += "."

        logger.debug(
            "lookup %s %s (%s)",
            hostname,
            record_type,
            "trace" if full_trace else f"via {dns_server}",
        )
        if full_trace:
            return self.trace_query(dns_server, record_type, hostname)
        return self.recursive_query(dns_server, record_type, hostname)

    def lookup_rdns(
        self,
        ip: Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address],
        dns_server: Optional[str] = None,
    ) -> RecordType:
        """Brief: Trace the PTR records for an IP address.

        Inputs:
          - ip: IPv4 or IPv6 address.
          - dns_server: Passed through to the trace lookup.

        Outputs:
          - The trace server list; the last server holds the PTR answers.

        Example:
          >>> reverse_name("1.2.3.4")
          '4.3.2.1.in-addr.arpa.'
        """

        hostname = reverse_name(ip)
        return self.trace_query(dns_server, "PTR", hostname)[TRACE_KEY]


def reverse_name(ip: Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address]) -> str:
    """Reverse-lookup query name for ip (in-addr.arpa. or ip6.arpa.)."""

    if isinstance(ip, str):
        ip = ip.strip()
    return ipaddress.ip_address(ip).reverse_pointer + "."


_default_resolver = Resolver()


def lookup(
    dns_server: Optional[str],
    record_type: str,
    hostname: str,
    full_trace: bool = False,
) -> Response:
    """Resolver.lookup() on the module's default resolver."""

    return _default_resolver.lookup(dns_server, record_type, hostname, full_trace)


def lookup_rdns(
    ip: Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address],
    dns_server: Optional[str] = None,
) -> RecordType:
    """Resolver.lookup_rdns() on the module's default resolver."""

    return _default_resolver.lookup_rdns(ip, dns_server)
