import logging

import pytest

from modeltransform.core.config import ClientSettings, parse_log_level
from modeltransform.core.context import RequestContext


def test_request_context_defaults_and_authorization():
    ctx = RequestContext(tenant="acme.example.com", token="secret")

    assert ctx.authorization == "Bearer secret"
    assert ctx.logger.name == "modeltransform.client"
    assert ctx.timeout is None
    assert ctx.request_id
    assert "secret" not in repr(ctx)


def test_request_context_rejects_missing_pieces():
    with pytest.raises(ValueError):
        RequestContext(tenant="", token="t")
    with pytest.raises(ValueError):
        RequestContext(tenant="acme", token="  ")
    with pytest.raises(TypeError):
        RequestContext(tenant="acme", token="t", logger=None)
    with pytest.raises(ValueError):
        RequestContext(tenant="acme", token="t", timeout=0)


def test_request_context_accepts_logger_adapter():
    adapter = logging.LoggerAdapter(logging.getLogger("tenant.acme"), {"tenant": "acme"})
    ctx = RequestContext(tenant="acme", token="t", logger=adapter)
    assert ctx.logger is adapter


def test_with_timeout_keeps_identity():
    ctx = RequestContext(tenant="acme", token="t")
    ctx2 = ctx.with_timeout(5.0)

    assert ctx2.timeout == 5.0
    assert ctx2.request_id == ctx.request_id
    assert ctx.timeout is None


def test_settings_from_env():
    s = ClientSettings.from_env(
        {
            "MODELTRANSFORM_TENANT": " acme.example.com ",
            "MODELTRANSFORM_TOKEN": "s3cr3t-value",
            "MODELTRANSFORM_TIMEOUT_SEC": "7.5",
            "MODELTRANSFORM_LOG_LEVEL": "debug",
        }
    )
    assert s.tenant == "acme.example.com"
    assert s.token == "s3cr3t-value"
    assert s.timeout == 7.5
    assert s.log_level == "DEBUG"
    assert "s3cr3t-value" not in repr(s)
    assert "token=***" in repr(s)


def test_settings_bad_or_zero_timeout_means_none():
    assert ClientSettings.from_env({"MODELTRANSFORM_TIMEOUT_SEC": "soon"}).timeout is None
    assert ClientSettings.from_env({"MODELTRANSFORM_TIMEOUT_SEC": "0"}).timeout is None


def test_settings_from_process_env(monkeypatch):
    monkeypatch.setenv("MODELTRANSFORM_TENANT", "env.example.com")
    monkeypatch.setenv("MODELTRANSFORM_TOKEN", "env-token")
    monkeypatch.delenv("MODELTRANSFORM_TIMEOUT_SEC", raising=False)

    ctx = ClientSettings.from_env().build_context()
    assert ctx.tenant == "env.example.com"
    assert ctx.authorization == "Bearer env-token"


def test_override_and_build_context():
    base = ClientSettings(tenant="a.example.com", token="t1", timeout=3.0)

    s = base.override(tenant=None, token="t2")
    assert (s.tenant, s.token, s.timeout) == ("a.example.com", "t2", 3.0)

    log = logging.getLogger("custom")
    ctx = s.build_context(logger=log)
    assert ctx.logger is log
    assert ctx.timeout == 3.0

    with pytest.raises(ValueError, match="tenant"):
        ClientSettings(token="t").build_context()
    with pytest.raises(ValueError, match="token"):
        ClientSettings(tenant="a").build_context()


def test_parse_log_level():
    assert parse_log_level(" debug ") == "DEBUG"
    with pytest.raises(ValueError, match="unknown log level"):
        parse_log_level("loud")


def test_settings_log_level_defaults_to_info():
    assert ClientSettings.from_env({}).log_level == "INFO"
    assert ClientSettings.from_env({"MODELTRANSFORM_LOG_LEVEL": "loud"}).log_level == "INFO"
