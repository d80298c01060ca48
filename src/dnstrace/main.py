from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config.config_parser import (
    ConfigError,
    build_resolver,
    load_config,
    parse_resolver_config,
)
from .config.logging_config import LEVELS, init_logging
from .config.resolv_conf import get_dns_server
from .errors import ResolutionError
from .records import render_record_type, render_response, response_to_dict

logger = logging.getLogger("dnstrace.main")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Command-line entry point: run one lookup and print the result.

    Inputs:
      - argv: Argument list (defaults to sys.argv[1:]).

    Outputs:
      - int: 0 on success, 1 on configuration or resolution errors.

    Example use:
        CLI:
            dnstrace --trace MX example.com
            dnstrace --server 1.1.1.1 --json ANY example.com
            dnstrace --rdns 1.1.1.1
    """
    parser = argparse.ArgumentParser(
        description="Trace DNS delegations and query records"
    )
    parser.add_argument("--config", default=None, help="Path to YAML config")
    parser.add_argument(
        "--server",
        default=None,
        help="Resolver for non-trace lookups (host[:port]); overrides config",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Walk the delegation chain from a root server",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON output")
    parser.add_argument("--rdns", metavar="IP", help="Trace PTR records for an IP")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=list(LEVELS),
        help="Override logging.level from the config",
    )
    parser.add_argument("record_type", nargs="?", help="Record type, e.g. A or ANY")
    parser.add_argument("hostname", nargs="?", help="Name to resolve")
    args = parser.parse_args(argv)

    if args.rdns is None and (args.record_type is None or args.hostname is None):
        parser.error("record_type and hostname are required unless --rdns is given")

    try:
        cfg = load_config(args.config)
        resolver_cfg = parse_resolver_config(cfg)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    log_cfg = dict(cfg.get("logging") or {})
    if args.log_level:
        log_cfg["level"] = args.log_level
    init_logging(log_cfg)

    resolver = build_resolver(resolver_cfg)

    try:
        if args.rdns is not None:
            servers = resolver.lookup_rdns(args.rdns)
            if args.json:
                print(json.dumps({"trace": [s.to_dict() for s in servers]}, indent=2))
            else:
                print(render_record_type(servers), end="")
            return 0

        dns_server = args.server or resolver_cfg.server
        if not args.trace and not dns_server:
            dns_server = get_dns_server()

        response = resolver.lookup(
            dns_server, args.record_type, args.hostname, args.trace
        )
    except (ResolutionError, ValueError) as exc:
        logger.debug("lookup failed", exc_info=True)
        print(f"failed to perform dns lookup: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(response_to_dict(response), indent=2))
    else:
        print(render_response(response), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
