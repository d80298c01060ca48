"""Configuration parsing and validation helpers for dnstrace.

Brief:
  Reads the optional YAML config file used by the CLI and validates its
  'resolver' section with a pydantic model. The 'logging' section is handed
  to init_logging() as-is.

Inputs:
  - YAML config paths and parsed mappings.

Outputs:
  - Plain config dicts and ResolverConfig instances.

Example config.yaml:
  logging:
    level: info
  resolver:
    server: 1.1.1.1:53
    timeout_ms: 3000
    max_depth: 10
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..resolver import DEFAULT_MAX_DEPTH, Resolver
from ..wire import DEFAULT_TIMEOUT_MS


class ConfigError(ValueError):
    """Invalid or unusable configuration."""


class ResolverConfig(BaseModel):
    """Brief: Typed 'resolver' section of the config file.

    Inputs:
      - server: Default resolver for recursive lookups ('host[:port]');
        None means discover it from DNS_SERVER or /etc/resolv.conf.
      - timeout_ms: Per-query connect/read timeout.
      - max_depth: Deepest delegation step followed during a trace.
      - max_workers: Thread cap for a record-type fan-out (None = one per type).

    Outputs:
      - ResolverConfig instance with normalized types.
    """

    server: Optional[str] = None
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=0)
    max_workers: Optional[int] = Field(default=None, ge=1)


def load_config(path: Optional[str]) -> Dict[str, Any]:
    """Brief: Read a YAML config file.

    Inputs:
      - path: File path, or None for no file.

    Outputs:
      - dict: Parsed mapping; empty when path is None or does not exist.

    Raises:
      - ConfigError: YAML syntax errors or a non-mapping document.
    """

    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parsing error in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def parse_resolver_config(cfg: Dict[str, Any]) -> ResolverConfig:
    """Brief: Validate cfg['resolver'] into a ResolverConfig.

    Inputs:
      - cfg: Parsed config mapping.

    Outputs:
      - ResolverConfig (defaults when the section is absent).

    Example:
      >>> parse_resolver_config({"resolver": {"timeout_ms": 250}}).timeout_ms
      250
    """

    section = cfg.get("resolver") or {}
    if not isinstance(section, dict):
        raise ConfigError("config.resolver must be a mapping when present")
    try:
        return ResolverConfig(**section)
    except ValidationError as exc:
        raise ConfigError(f"Invalid resolver configuration: {exc}") from exc


def build_resolver(resolver_cfg: ResolverConfig) -> Resolver:
    """Construct a Resolver honouring the configured limits."""

    return Resolver(
        timeout_ms=resolver_cfg.timeout_ms,
        max_depth=resolver_cfg.max_depth,
        max_workers=resolver_cfg.max_workers,
    )
