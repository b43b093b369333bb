from __future__ import annotations

from datetime import datetime

import pytest

from pynello.config import NelloConfig
from pynello.utils import decode, encode, format_datetime


def test_defaults_replace_unset_values() -> None:
    config = NelloConfig(events_max_count=0, iot="")

    assert config.events_max_count == 30
    assert config.iot == "iot.0.services.custom_nello"


@pytest.mark.parametrize(("refresh", "expected"), [(None, None), (5, None), (10, None), (11, 11.0), (600, 600.0)])
def test_effective_refresh(refresh: float | None, expected: float | None) -> None:
    assert NelloConfig(refresh=refresh).effective_refresh == expected


def test_webhook_url_prefers_cloud_relay() -> None:
    assert NelloConfig(iobroker="https://cloud/x", uri="https://home:8443").webhook_url == "https://cloud/x"
    assert NelloConfig(uri="https://home:8443").webhook_url == "https://home:8443"
    assert NelloConfig().webhook_url == ""


def test_has_token_needs_type_and_token() -> None:
    assert NelloConfig(access_token="t").has_token
    assert not NelloConfig().has_token
    assert not NelloConfig(access_token="t", token_type="").has_token


def test_encoded_access_token_is_decoded() -> None:
    stored = encode("Zgfr56gFe87jJOM", "my-token")

    config = NelloConfig(access_token=stored, secret="Zgfr56gFe87jJOM")

    assert config.resolved_access_token == "my-token"
    assert NelloConfig(access_token="plain").resolved_access_token == "plain"


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NELLO_ACCESS_TOKEN", "env-token")
    monkeypatch.setenv("NELLO_REFRESH", "120")
    monkeypatch.setenv("NELLO_EVENTS_MAX_COUNT", "5")
    monkeypatch.setenv("NELLO_SECURE", "yes")
    monkeypatch.setenv("NELLO_URI", "https://home:8443")

    config = NelloConfig.from_env(events_max_count=7)

    assert config.access_token == "env-token"
    assert config.refresh == 120.0
    assert config.events_max_count == 7
    assert config.secure is True
    assert config.self_signed is True
    assert config.uri == "https://home:8443"


def test_xor_encoding() -> None:
    assert encode("k", "a") == chr(ord("k") ^ ord("a"))
    assert decode("key", encode("key", "hello world")) == "hello world"
    with pytest.raises(ValueError):
        encode("", "text")


def test_format_datetime() -> None:
    stamp = datetime(2018, 3, 4, 5, 6, 7).timestamp() * 1000

    assert format_datetime(stamp) == "04.03.2018 05:06:07"
    assert format_datetime(None) == ""


@pytest.mark.parametrize("stamp", [1_700_000_000_000_000, 10**20, -(10**20)])
def test_format_datetime_out_of_range(stamp: int) -> None:
    assert format_datetime(stamp) == ""
