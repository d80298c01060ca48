"""
Brief: Tests for config loading, resolver config validation and DNS server discovery.

Inputs:
  - None

Outputs:
  - None
"""

import logging

import pytest

from dnstrace.config.config_parser import (
    ConfigError,
    ResolverConfig,
    build_resolver,
    load_config,
    parse_resolver_config,
)
from dnstrace.config.resolv_conf import get_dns_server, parse_nameservers
from dnstrace.resolver import Resolver


def test_resolver_config_defaults():
    cfg = parse_resolver_config({})
    assert cfg == ResolverConfig()
    assert cfg.server is None
    assert cfg.timeout_ms == 5000
    assert cfg.max_depth == 10
    assert cfg.max_workers is None


def test_resolver_config_accepts_overrides():
    cfg = parse_resolver_config(
        {"resolver": {"server": "1.1.1.1:53", "timeout_ms": 250, "max_workers": 4}}
    )
    assert cfg.server == "1.1.1.1:53"
    assert cfg.timeout_ms == 250
    assert cfg.max_workers == 4


@pytest.mark.parametrize(
    "section",
    [
        {"timeout_ms": 0},
        {"timeout_ms": "soon"},
        {"max_depth": -1},
        {"max_workers": 0},
    ],
)
def test_resolver_config_invalid_values_raise(section):
    with pytest.raises(ConfigError):
        parse_resolver_config({"resolver": section})


def test_resolver_section_must_be_mapping():
    with pytest.raises(ConfigError):
        parse_resolver_config({"resolver": ["1.1.1.1"]})


def test_load_config_missing_or_none_is_empty(tmp_path):
    assert load_config(None) == {}
    assert load_config(str(tmp_path / "absent.yaml")) == {}


def test_load_config_reads_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: info\nresolver:\n  max_depth: 4\n")
    cfg = load_config(str(path))
    assert cfg["logging"] == {"level": "info"}
    assert parse_resolver_config(cfg).max_depth == 4


def test_load_config_empty_file_is_empty(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path)) == {}


def test_load_config_bad_yaml_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("resolver: [unclosed\n")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_load_config_non_mapping_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_build_resolver_returns_resolver():
    r = build_resolver(ResolverConfig(timeout_ms=100, max_depth=3))
    assert isinstance(r, Resolver)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("8.8.8.8", "8.8.8.8:53"),
        ("8.8.8.8:5353", "8.8.8.8:5353"),
        ("2001:db8::53", "[2001:db8::53]:53"),
        ("[2001:db8::53]:53", "[2001:db8::53]:53"),
        ("  9.9.9.9 ", "9.9.9.9:53"),
    ],
)
def test_get_dns_server_from_environment(value, expected, tmp_path):
    missing = str(tmp_path / "no-resolv.conf")
    assert get_dns_server({"DNS_SERVER": value}, resolv_conf_path=missing) == expected


def test_get_dns_server_falls_back_to_last_nameserver(tmp_path, caplog):
    """
    Brief: Without DNS_SERVER the last resolv.conf nameserver is used.

    Inputs:
      - resolv.conf with two nameservers, comments and a search line

    Outputs:
      - None: Asserts selected server and warning emitted
    """
    conf = tmp_path / "resolv.conf"
    conf.write_text(
        "# generated\n"
        "search lan\n"
        "nameserver 10.0.0.1\n"
        "nameserver 10.0.0.2  # secondary\n"
        "options ndots:1\n"
    )
    caplog.set_level(logging.WARNING)
    assert get_dns_server({}, resolv_conf_path=str(conf)) == "10.0.0.2:53"
    assert any("No DNS_SERVER" in r.getMessage() for r in caplog.records)


def test_get_dns_server_without_nameserver_raises(tmp_path):
    conf = tmp_path / "resolv.conf"
    conf.write_text("search lan\n")
    with pytest.raises(ConfigError):
        get_dns_server({}, resolv_conf_path=str(conf))


def test_get_dns_server_unreadable_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        get_dns_server({}, resolv_conf_path=str(tmp_path / "missing"))


def test_parse_nameservers_ipv4_and_ipv6():
    text = "nameserver 192.0.2.1\nnameserver fe80::1%eth0\n#nameserver 10.9.9.9\n"
    assert parse_nameservers(text) == ["192.0.2.1", "fe80::1%eth0"]
