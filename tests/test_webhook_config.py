from __future__ import annotations

import pytest


def test_load_webhook_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    from nodeguard.config import load_webhook_config

    for name in ("CONFIG_MAP_NAME", "CONFIG_MAP_NAMESPACE", "POLICY_FETCH_TIMEOUT_SECONDS", "EVENT_NAMESPACE"):
        monkeypatch.delenv(name, raising=False)
    cfg = load_webhook_config()
    assert cfg.forbidden_users == []
    assert cfg.config_map_name == "node-operation-validator-config"
    assert cfg.config_map_namespace == "node-operation-validator-system"
    assert cfg.policy_fetch_timeout_seconds == 5.0
    assert cfg.event_namespace == "default"
    assert cfg.tls_cert_file.endswith("/tls.crt")


def test_load_webhook_config_parses_env(monkeypatch: pytest.MonkeyPatch) -> None:
    from nodeguard.config import load_webhook_config

    monkeypatch.setenv("forbiddenUsers", "kube:admin, ,system:admin")
    monkeypatch.setenv("CONFIG_MAP_NAMESPACE", "nov")
    monkeypatch.setenv("POLICY_FETCH_TIMEOUT_SECONDS", "120")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    cfg = load_webhook_config()
    assert cfg.forbidden_users == ["kube:admin", "system:admin"]
    assert cfg.config_map_namespace == "nov"
    assert cfg.policy_fetch_timeout_seconds == 30.0
    assert cfg.log_level == "debug"


def test_load_webhook_config_bad_timeout_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    from nodeguard.config import load_webhook_config

    monkeypatch.setenv("POLICY_FETCH_TIMEOUT_SECONDS", "soon")
    assert load_webhook_config().policy_fetch_timeout_seconds == 5.0
