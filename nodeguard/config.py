from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List

DEFAULT_CONFIG_MAP_NAME = "node-operation-validator-config"
DEFAULT_CONFIG_MAP_NAMESPACE = "node-operation-validator-system"
DEFAULT_CERT_DIR = "/tmp/k8s-webhook-server/serving-certs"

# Kept in camelCase: the chart/deployment already sets this exact name.
FORBIDDEN_USERS_ENV = "forbiddenUsers"


@dataclass(frozen=True)
class WebhookConfig:
    # Policy source
    forbidden_users: List[str]  # from env; the built-in superuser is added by the policy source
    config_map_name: str
    config_map_namespace: str
    policy_fetch_timeout_seconds: float

    # Audit events
    event_namespace: str
    event_component: str

    # Serving
    tls_cert_file: str
    tls_key_file: str
    log_level: str


def _split_csv(raw: str) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


def _env_str(name: str, default: str) -> str:
    return (os.getenv(name, "") or "").strip() or default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def load_webhook_config() -> WebhookConfig:
    """
    Load webhook configuration from environment variables (Deployment/ConfigMap friendly).

    Recommended vars:
    - forbiddenUsers=kube:admin,system:admin
    - CONFIG_MAP_NAME=node-operation-validator-config
    - CONFIG_MAP_NAMESPACE=node-operation-validator-system
    - POLICY_FETCH_TIMEOUT_SECONDS=5
    - EVENT_NAMESPACE=default
    - WEBHOOK_TLS_CERT_FILE=/tmp/k8s-webhook-server/serving-certs/tls.crt
    - WEBHOOK_TLS_KEY_FILE=/tmp/k8s-webhook-server/serving-certs/tls.key
    - LOG_LEVEL=info
    """
    timeout = _env_float("POLICY_FETCH_TIMEOUT_SECONDS", 5.0)

    return WebhookConfig(
        forbidden_users=_split_csv(os.getenv(FORBIDDEN_USERS_ENV, "")),
        config_map_name=_env_str("CONFIG_MAP_NAME", DEFAULT_CONFIG_MAP_NAME),
        config_map_namespace=_env_str("CONFIG_MAP_NAMESPACE", DEFAULT_CONFIG_MAP_NAMESPACE),
        policy_fetch_timeout_seconds=max(1.0, min(timeout, 30.0)),
        event_namespace=_env_str("EVENT_NAMESPACE", "default"),
        event_component=_env_str("EVENT_COMPONENT", "node-operation-validator"),
        tls_cert_file=_env_str("WEBHOOK_TLS_CERT_FILE", f"{DEFAULT_CERT_DIR}/tls.crt"),
        tls_key_file=_env_str("WEBHOOK_TLS_KEY_FILE", f"{DEFAULT_CERT_DIR}/tls.key"),
        log_level=_env_str("LOG_LEVEL", "info").lower(),
    )
