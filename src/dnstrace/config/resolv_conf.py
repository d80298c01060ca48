"""Default resolver discovery from the environment or /etc/resolv.conf.

Brief:
  A DNS_SERVER environment variable wins. Without one, the last
  'nameserver' line of the system resolver configuration is used and a
  warning is logged, since production deployments are expected to set
  DNS_SERVER explicitly.
"""

from __future__ import annotations

import logging
import os
import re
from typing import List, Mapping, Optional

from .config_parser import ConfigError

logger = logging.getLogger(__name__)

RESOLV_CONF_PATH = "/etc/resolv.conf"

_PORT_RE = re.compile(r":[0-9]+$")

_IPV4_BLOCK = r"(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
_IPV4_ADDRESS = r"(" + _IPV4_BLOCK + r"\.){3}" + _IPV4_BLOCK
# Accepts a superset of IPv6, including zone suffixes such as %eth0.
_IPV6_ADDRESS = r"([0-9A-Fa-f]{0,4}:){2,7}([0-9A-Fa-f]{0,4})(%\w+)?"
_NS_RE = re.compile(
    r"^\s*nameserver\s*((" + _IPV4_ADDRESS + r")|(" + _IPV6_ADDRESS + r"))\s*$"
)


def parse_nameservers(text: str) -> List[str]:
    """Brief: Return nameserver addresses listed in resolv.conf text.

    Inputs:
      - text: File contents.

    Outputs:
      - Addresses in file order; comments ('#') are ignored.

    Example:
      >>> parse_nameservers("nameserver 10.0.0.1  # office\\nsearch lan\\n")
      ['10.0.0.1']
    """

    out: List[str] = []
    for line in text.splitlines():
        line = line.split("#", 1)[0]
        m = _NS_RE.match(line)
        if m:
            out.append(m.group(1))
    return out


def _with_port(server: str) -> str:
    if ":" in server and not server.startswith("[") and server.count(":") > 1:
        # Bare IPv6 literal; bracket it so the port stays unambiguous.
        return f"[{server}]:53"
    if not _PORT_RE.search(server):
        return server + ":53"
    return server


def get_dns_server(
    environ: Optional[Mapping[str, str]] = None,
    resolv_conf_path: str = RESOLV_CONF_PATH,
) -> str:
    """Brief: Resolve the default DNS server address ('host:port').

    Inputs:
      - environ: Environment mapping (defaults to os.environ).
      - resolv_conf_path: Path of the resolver configuration file.

    Outputs:
      - str: Server address with a port (':53' appended when absent).

    Raises:
      - ConfigError: No DNS_SERVER and no usable nameserver line.
    """

    env = os.environ if environ is None else environ
    server = (env.get("DNS_SERVER") or "").strip()
    if server:
        return _with_port(server)

    try:
        with open(resolv_conf_path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as exc:
        raise ConfigError(f"cannot read {resolv_conf_path}: {exc}") from exc

    logger.warning(
        "No DNS_SERVER environment variable set. Using system default DNS server. "
        "In production, this should be set."
    )
    nameservers = parse_nameservers(text)
    if not nameservers:
        raise ConfigError(f"no DNS server found in {resolv_conf_path}")
    return _with_port(nameservers[-1])
