from __future__ import annotations

import json
import logging

import pytest

from src.core.config import Settings
from src.core.context import (
    reset_current_company_id,
    reset_current_request_id,
    set_current_company_id,
    set_current_request_id,
)
from src.core.logging import RequestContextFilter, log_event


def test_settings_defaults() -> None:
    cfg = Settings(_env_file=None)

    assert cfg.is_production() is False
    assert cfg.session_cookie_name == "bunker_session"
    assert cfg.session_ttl_seconds == 7 * 24 * 60 * 60
    assert cfg.bcrypt_rounds == 12


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", " Production ")
    monkeypatch.setenv("STRIPE_PRICE_ID_PRO", "price_pro")
    monkeypatch.setenv("SESSION_BIND_USER_AGENT", "true")

    cfg = Settings(_env_file=None)

    assert cfg.is_production() is True
    assert cfg.plan_price_ids()["pro"] == "price_pro"
    assert cfg.session_bind_user_agent is True


def test_allowed_origins_merges_base_url_and_csv() -> None:
    cfg = Settings(
        _env_file=None,
        app_base_url="https://app.example.com/",
        allowed_origins_csv=" https://a.example.com/, ,https://b.example.com",
    )

    assert cfg.allowed_origins() == {
        "https://app.example.com",
        "https://a.example.com",
        "https://b.example.com",
    }


def test_request_context_filter_annotates_records() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

    assert RequestContextFilter().filter(record) is True
    assert record.request_id == "-"
    assert record.company_id == "-"

    request_token = set_current_request_id("rid-abcdefgh")
    company_token = set_current_company_id("c-1")
    try:
        RequestContextFilter().filter(record)
        assert record.request_id == "rid-abcdefgh"
        assert record.company_id == "c-1"
    finally:
        reset_current_company_id(company_token)
        reset_current_request_id(request_token)


def test_log_event_writes_json(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="bunker.events"):
        log_event(route="/api/login", result="ok", admin_id=None)

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["route"] == "/api/login"
    assert payload["result"] == "ok"
    assert "admin_id" not in payload
