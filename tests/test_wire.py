"""
Brief: Tests for dnstrace.wire address parsing and the TCP wire client.

Inputs:
  - None

Outputs:
  - None
"""

import socket
import threading
import time

import pytest
from dnslib import NS, QTYPE, RR, A, DNSRecord

import dnstrace.wire as wire_mod
from dnstrace.errors import TransportError
from dnstrace.transports.tcp import TCPError
from dnstrace.wire import TCPWireClient, WireAnswer, split_address


@pytest.mark.parametrize(
    "address,expected",
    [
        ("1.1.1.1", ("1.1.1.1", 53)),
        ("1.1.1.1:5353", ("1.1.1.1", 5353)),
        ("a.root-servers.net.", ("a.root-servers.net", 53)),
        ("ns1.example.com:53", ("ns1.example.com", 53)),
        ("[2001:db8::1]:5353", ("2001:db8::1", 5353)),
        ("[2001:db8::1]", ("2001:db8::1", 53)),
        ("2001:db8::1", ("2001:db8::1", 53)),
        ("  9.9.9.9  ", ("9.9.9.9", 53)),
    ],
)
def test_split_address(address, expected):
    assert split_address(address) == expected


@pytest.mark.parametrize("address", ["", "host:0", "host:70000", "[::1", "host:abc"])
def test_split_address_rejects_bad_input(address):
    with pytest.raises(ValueError):
        split_address(address)


@pytest.mark.parametrize("address", ["ns1:abc", "[2001:db8::1]:x"])
def test_split_address_non_numeric_port_names_address(address):
    with pytest.raises(ValueError) as ei:
        split_address(address)
    assert str(ei.value) == f"bad port in {address!r}"


def test_client_rejects_non_positive_timeout():
    with pytest.raises(ValueError):
        TCPWireClient(timeout_ms=0)


def _recv_exact(sock: socket.socket, n: int) -> bytes:
    data = b""
    while len(data) < n:
        chunk = sock.recv(n - len(data))
        if not chunk:
            break
        data += chunk
    return data


class _DNSTCPStub:
    """Tiny authoritative server: NS referral in authority, A in answer."""

    def __init__(self):
        self.sock = socket.socket()
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(5)
        self.addr = self.sock.getsockname()
        self.questions = []
        self._stop = False
        self.thread = threading.Thread(target=self._loop, daemon=True)

    def start(self):
        self.thread.start()
        time.sleep(0.02)

    def _loop(self):
        while not self._stop:
            try:
                self.sock.settimeout(0.2)
                conn, _ = self.sock.accept()
            except OSError:
                continue
            threading.Thread(target=self._conn, args=(conn,), daemon=True).start()

    def _conn(self, conn: socket.socket):
        with conn:
            hdr = _recv_exact(conn, 2)
            if len(hdr) != 2:
                return
            body = _recv_exact(conn, int.from_bytes(hdr, "big"))
            msg = DNSRecord.parse(body)
            self.questions.append(
                (str(msg.q.qname), QTYPE[msg.q.qtype], msg.header.rd)
            )
            reply = msg.reply()
            reply.add_answer(
                RR(str(msg.q.qname), QTYPE.A, rdata=A("192.0.2.10"), ttl=60)
            )
            reply.add_auth(
                RR("example.test.", QTYPE.NS, rdata=NS("ns1.example.test."), ttl=120)
            )
            wire = reply.pack()
            conn.sendall(len(wire).to_bytes(2, "big") + wire)

    def close(self):
        self._stop = True
        try:
            self.sock.close()
        except OSError:
            pass


@pytest.fixture(scope="module")
def dns_stub():
    s = _DNSTCPStub()
    s.start()
    try:
        yield s
    finally:
        s.close()


def test_tcp_client_roundtrip(dns_stub):
    """
    Brief: TCPWireClient sends one RD question and returns decoded sections.

    Inputs:
      - Local dnslib-backed TCP stub

    Outputs:
      - None: Asserts question shape and answer/authority content
    """
    client = TCPWireClient(timeout_ms=1000)
    address = "%s:%d" % dns_stub.addr
    result = client.query(address, QTYPE.A, "www.example.test.")

    assert isinstance(result, WireAnswer)
    assert dns_stub.questions[-1] == ("www.example.test.", "A", 1)
    assert [str(rr.rdata) for rr in result.answer] == ["192.0.2.10"]
    assert [rr.rtype for rr in result.authority] == [QTYPE.NS]
    assert str(result.authority[0].rdata.label) == "ns1.example.test."


def test_transport_failure_becomes_transport_error(monkeypatch):
    def boom(host, port, query, **kw):
        raise TCPError("connect to %s:%d failed: refused" % (host, port))

    monkeypatch.setattr(wire_mod, "tcp_query", boom)
    with pytest.raises(TransportError) as ei:
        TCPWireClient().query("ns.example.", QTYPE.NS, "example.")
    assert ei.value.address == "ns.example."
    assert "refused" in ei.value.reason


def test_unparseable_response_becomes_transport_error(monkeypatch):
    monkeypatch.setattr(wire_mod, "tcp_query", lambda *a, **kw: b"\x00\x01\x02")
    with pytest.raises(TransportError) as ei:
        TCPWireClient().query("ns.example.", QTYPE.A, "example.")
    assert "unparseable" in ei.value.reason


def test_mismatched_response_id_is_rejected(monkeypatch):
    def wrong_id(host, port, query, **kw):
        reply = DNSRecord.parse(query).reply()
        reply.header.id = (reply.header.id + 1) & 0xFFFF
        return reply.pack()

    monkeypatch.setattr(wire_mod, "tcp_query", wrong_id)
    with pytest.raises(TransportError) as ei:
        TCPWireClient().query("ns.example.", QTYPE.A, "example.")
    assert "does not match" in ei.value.reason


def test_client_passes_timeout_and_port(monkeypatch):
    seen = {}

    def capture(host, port, query, **kw):
        seen.update(host=host, port=port, **kw)
        return DNSRecord.parse(query).reply().pack()

    monkeypatch.setattr(wire_mod, "tcp_query", capture)
    result = TCPWireClient(timeout_ms=250).query(
        "[2001:db8::53]:5353", QTYPE.MX, "example."
    )

    assert result == WireAnswer(answer=[], authority=[])
    assert seen == {
        "host": "2001:db8::53",
        "port": 5353,
        "connect_timeout_ms": 250,
        "read_timeout_ms": 250,
    }


def test_module_docstring_is_attached():
    assert wire_mod.__doc__ is not None
    assert wire_mod.__doc__.startswith("Wire-protocol client")
