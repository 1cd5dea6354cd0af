import logging

import pytest
from pydantic import ValidationError

from relayer_loader.core import config
from relayer_loader.core.logging_config import configure_logging, resolve_level
from relayer_loader.loader.models import LoadAttempt, LoaderOptions
from relayer_loader.loader.resource_loader import ResourceLoader


def test_settings_defaults():
    assert config.settings.namespace_key
    assert config.settings.sdk_url.startswith("https://")
    assert config.settings.api_v1_prefix == "/api/v1"


def test_env_int_parses_and_falls_back(monkeypatch):
    monkeypatch.setenv("RELAYER_LOADER_TEST_INT", " 7 ")
    assert config._env_int("RELAYER_LOADER_TEST_INT", 3) == 7
    monkeypatch.setenv("RELAYER_LOADER_TEST_INT", "seven")
    assert config._env_int("RELAYER_LOADER_TEST_INT", 3) == 3
    monkeypatch.delenv("RELAYER_LOADER_TEST_INT")
    assert config._env_int("RELAYER_LOADER_TEST_INT", 3) == 3


def test_env_str_treats_blank_as_unset(monkeypatch):
    monkeypatch.setenv("RELAYER_LOADER_TEST_STR", "   ")
    assert config._env_str("RELAYER_LOADER_TEST_STR", "fallback") == "fallback"
    monkeypatch.setenv("RELAYER_LOADER_TEST_STR", "mod.path")
    assert config._env_str("RELAYER_LOADER_TEST_STR", None) == "mod.path"


def test_loader_options_default_from_settings():
    opts = LoaderOptions()
    assert opts.max_attempts == config.settings.max_attempts
    assert opts.timeout_ms == config.settings.timeout_ms
    assert opts.retry_backoff_ms == config.settings.retry_backoff_ms
    assert opts.settle_delay_ms == config.settings.settle_delay_ms


def test_loader_options_convert_to_seconds():
    opts = LoaderOptions(max_attempts=3, timeout_ms=10000, retry_backoff_ms=1000, settle_delay_ms=500)
    assert opts.timeout == 10.0
    assert opts.retry_backoff == 1.0
    assert opts.settle_delay == 0.5


@pytest.mark.parametrize(
    "field,value",
    [("max_attempts", 0), ("timeout_ms", 0), ("retry_backoff_ms", -1), ("settle_delay_ms", -5)],
)
def test_loader_options_reject_out_of_range(field, value):
    with pytest.raises(ValidationError):
        LoaderOptions(**{field: value})


@pytest.mark.parametrize(
    "field,value",
    [("max_attempts", 0), ("timeout_ms", -5), ("retry_backoff_ms", -1), ("settle_delay_ms", -1)],
)
def test_loader_options_validate_settings_defaults(monkeypatch, field, value):
    monkeypatch.setattr(config.settings, field, value)
    with pytest.raises(ValidationError):
        LoaderOptions()


def test_loader_from_settings_rejects_zero_attempt_budget(monkeypatch):
    monkeypatch.setattr(config.settings, "max_attempts", 0)
    with pytest.raises(ValidationError):
        ResourceLoader.from_settings(None)


def test_load_attempt_budget():
    attempt = LoadAttempt(0, 3)
    seen = [attempt.index]
    while attempt.has_next:
        attempt = attempt.next()
        seen.append(attempt.index)
    assert seen == [0, 1, 2]
    assert attempt.describe() == "3/3"
    with pytest.raises(ValueError):
        attempt.next()


def test_resolve_level():
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(None) == logging.INFO
    assert resolve_level("chatty") == logging.INFO


def test_configure_logging_quiets_http_loggers():
    logging.getLogger("httpx").setLevel(logging.NOTSET)
    configure_logging("DEBUG")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.INFO
    handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.StreamHandler)]
    configure_logging("DEBUG")
    assert len([h for h in logging.getLogger().handlers if isinstance(h, logging.StreamHandler)]) == len(handlers)
