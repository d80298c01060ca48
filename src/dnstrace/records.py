"""Result data model and resource-record normalization.

Brief:
  A lookup produces a Response: a mapping from a record-type name (or the
  literal "TRACE") to an ordered list of Server entries, each holding the
  Records that nameserver returned. record_from_rr() turns one decoded dnslib
  RR into a Record whose value is JSON-compatible, regardless of the RR kind.

Inputs:
  - dnslib RR instances produced by the wire client.

Outputs:
  - Record / Server dataclasses plus dict and text renderers for them.
"""

from __future__ import annotations

import base64
import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from dnslib import CLASS, NAPTR, QTYPE, RD, RR
from dnslib.dns import DNSError
from dnslib.label import DNSLabel

from .errors import RecordDecodeError

TRACE_KEY = "TRACE"


@dataclass
class Record:
    """Single normalized resource record.

    Inputs:
      - type: DNS type name (e.g. 'A', 'MX').
      - ttl: TTL in seconds from the RR header.
      - name: Owner name without the trailing dot.
      - value: JSON-compatible payload (string, list or mapping).
      - preference: MX preference; None for every other type.
      - render: Callable returning the tab-delimited zone line of the RR.

    Outputs:
      - Mutable record held for the lifetime of one Response.
    """

    type: str
    ttl: int
    name: str
    value: Any
    preference: Optional[int] = None
    render: Optional[Callable[[], str]] = field(
        default=None, repr=False, compare=False
    )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type, "ttl": self.ttl}
        if self.preference is not None:
            out["priority"] = self.preference
        out["name"] = self.name
        out["value"] = self.value
        return out


@dataclass
class Server:
    """Records returned by one nameserver, tagged with its address."""

    address: str
    records: List[Record] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server": self.address,
            "records": [r.to_dict() for r in self.records],
        }

    def __str__(self) -> str:
        out = "-- " + self.address + " --\n"
        for record in self.records:
            if record.render is not None:
                out += record.render() + "\n"
        return out


RecordType = List[Server]
Response = Dict[str, RecordType]


def render_record_type(servers: RecordType) -> str:
    """Plain-text form of a server sequence, one block per server."""

    return "".join(str(srv) + "\n" for srv in servers)


def render_response(response: Response) -> str:
    """Brief: Plain-text form of a whole Response.

    Inputs:
      - response: Mapping of record-type key to server sequence.

    Outputs:
      - str: '--- KEY ---' header followed by the server blocks, keys sorted.
    """

    out = ""
    for key in sorted(response):
        out += "--- " + key + " ---\n" + render_record_type(response[key])
    return out


def response_to_dict(response: Response) -> Dict[str, List[Dict[str, Any]]]:
    """JSON-ready form of a Response."""

    return {
        key: [srv.to_dict() for srv in servers] for key, servers in response.items()
    }


def _text(label: Any) -> str:
    return str(label)


def _txt_strings(rd: Any) -> List[str]:
    return [
        chunk.decode("utf-8", "replace") if isinstance(chunk, bytes) else str(chunk)
        for chunk in rd.data
    ]


def _soa_fields(rd: Any) -> Dict[str, Any]:
    serial, refresh, retry, expire, minttl = rd.times
    return {
        "ns": _text(rd.mname),
        "mbox": _text(rd.rname),
        "serial": serial,
        "refresh": refresh,
        "retry": retry,
        "expire": expire,
        "minttl": minttl,
    }


def _srv_fields(rd: Any) -> Dict[str, Any]:
    return {
        "priority": rd.priority,
        "weight": rd.weight,
        "port": rd.port,
        "target": _text(rd.target),
    }


def _jsonable(value: Any) -> Any:
    """Convert an rdata attribute into something json.dumps accepts."""

    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, DNSLabel):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


# Fields dnslib stores as bytes although they carry text.
_TEXT_FIELDS: Dict[Type[RD], Tuple[str, ...]] = {
    NAPTR: ("flags", "service", "regexp"),
}


def _field_names(rd: Any) -> List[str]:
    """Names of the rdata fields, in declaration order.

    Most dnslib rdata classes declare them in 'attrs'. A few (LOC, CAA) only
    inherit RD's ('data',) and keep their fields in the instance dict, some
    behind '_'-prefixed storage read through a property of the bare name.
    """

    declared = getattr(type(rd), "attrs", ())
    if type(rd) is RD or declared is not RD.attrs:
        return list(declared)

    names = []
    for key, attr in vars(rd).items():
        if key == "data" and attr is None:
            continue
        name = key[1:] if key.startswith("_") and not key.startswith("__") else key
        if name.startswith("_"):
            continue
        names.append(name)
    return names


def _generic_fields(rd: Any) -> Dict[str, Any]:
    """Field listing for rdata kinds without a dedicated accessor."""

    text_fields = _TEXT_FIELDS.get(type(rd), ())
    out: Dict[str, Any] = {}
    for name in _field_names(rd):
        attr = getattr(rd, name) if hasattr(rd, name) else getattr(rd, "_" + name)
        if name in text_fields and isinstance(attr, bytes):
            out[name.lower()] = attr.decode("utf-8", "replace")
        else:
            out[name.lower()] = _jsonable(attr)
    return out


# Known record kinds and the accessor producing their value. A value of this
# shape is what clients see under "value"; kinds missing here fall back to
# _generic_fields.
_VALUE_ACCESSORS: Dict[int, Callable[[Any], Any]] = {
    QTYPE.A: str,
    QTYPE.AAAA: str,
    QTYPE.CNAME: lambda rd: _text(rd.label),
    QTYPE.MX: lambda rd: _text(rd.label),
    QTYPE.NS: lambda rd: _text(rd.label),
    QTYPE.PTR: lambda rd: _text(rd.label),
    QTYPE.TXT: _txt_strings,
    QTYPE.SOA: _soa_fields,
    QTYPE.SRV: _srv_fields,
}


def type_name(rtype: int) -> str:
    """Text name for a numeric RR type ('TYPE65280' for unassigned ones)."""

    return QTYPE.get(rtype, f"TYPE{rtype}")


def render_rr(rr: RR) -> str:
    """Brief: Tab-delimited zone line for an RR.

    Inputs:
      - rr: dnslib RR.

    Outputs:
      - str: 'name<TAB>ttl<TAB>class<TAB>type<TAB>rdata'.

    Example:
      >>> render_rr(RR("example.com.", QTYPE.A, rdata=A("192.0.2.1"), ttl=60))
      'example.com.\\t60\\tIN\\tA\\t192.0.2.1'
    """

    return "\t".join(
        (
            str(rr.rname),
            str(rr.ttl),
            CLASS.get(rr.rclass, str(rr.rclass)),
            type_name(rr.rtype),
            rr.rdata.toZone(),
        )
    )


def record_from_rr(rr: RR) -> Record:
    """Brief: Normalize one decoded RR into a Record.

    Inputs:
      - rr: dnslib RR from an answer or authority section.

    Outputs:
      - Record with value, TTL, dot-less name, MX preference and renderer.

    Raises:
      - RecordDecodeError: the rdata does not have the shape its type implies.
    """

    accessor = _VALUE_ACCESSORS.get(rr.rtype, _generic_fields)
    try:
        value = accessor(rr.rdata)
        preference = int(rr.rdata.preference) if rr.rtype == QTYPE.MX else None
    except (AttributeError, TypeError, ValueError, DNSError) as exc:
        raise RecordDecodeError(
            f"failed to serialize {type_name(rr.rtype)} record for {rr.rname}: {exc}"
        ) from exc

    return Record(
        type=type_name(rr.rtype),
        ttl=int(rr.ttl),
        name=str(rr.rname).rstrip("."),
        value=value,
        preference=preference,
        render=functools.partial(render_rr, rr),
    )


def records_from_rrs(rrs: List[RR]) -> List[Record]:
    return [record_from_rr(rr) for rr in rrs]
