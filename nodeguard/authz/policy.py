from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Protocol

from nodeguard.core.models import SYSTEM_ADMIN_USER, PolicyConfig
from nodeguard.providers.k8s_provider import K8sProvider, get_k8s_provider

logger = logging.getLogger(__name__)

ALLOWED_REASONS_KEY = "allowedReasons"
REASON_PATTERN_KEY = "reasonRegexPattern"


class PolicyFetchError(Exception):
    """The policy ConfigMap could not be read; the decision must not proceed."""


class PolicySource(Protocol):
    def fetch_policy(self, namespace: Optional[str] = None) -> PolicyConfig: ...


def _split_csv(raw: str) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


def forbidden_user_set(users: Iterable[str]) -> frozenset:
    """Forbidden principals always include the built-in superuser."""
    return frozenset([u.strip() for u in users if u and u.strip()] + [SYSTEM_ADMIN_USER])


def policy_from_config_map_data(data: Optional[Mapping[str, str]], forbidden_users: Iterable[str]) -> PolicyConfig:
    """
    Build a PolicyConfig from ConfigMap `data`.

    Missing keys are not an error: no `allowedReasons` means no exact-match list, no
    `reasonRegexPattern` means no pattern.
    """
    data = data or {}
    if ALLOWED_REASONS_KEY not in data:
        logger.info("webhook config does not contain %r key", ALLOWED_REASONS_KEY)
    if REASON_PATTERN_KEY not in data:
        logger.info("webhook config does not contain %r key", REASON_PATTERN_KEY)

    return PolicyConfig(
        forbidden_users=forbidden_user_set(forbidden_users),
        allowed_reasons=tuple(_split_csv(data.get(ALLOWED_REASONS_KEY, ""))),
        reason_pattern=(data.get(REASON_PATTERN_KEY) or "").strip(),
    )


class ConfigMapPolicySource:
    """
    Reads the reason policy from a namespaced ConfigMap on every call.

    The forbidden-user list is passed in explicitly (usually from `load_webhook_config()`)
    so decisions never depend on ambient process state.
    """

    def __init__(
        self,
        *,
        forbidden_users: Iterable[str],
        config_map_name: str,
        default_namespace: str,
        timeout_seconds: float = 5.0,
        provider: Optional[K8sProvider] = None,
    ) -> None:
        self.forbidden_users = tuple(forbidden_users)
        self.config_map_name = config_map_name
        self.default_namespace = default_namespace
        self.timeout_seconds = timeout_seconds
        self.provider = provider or get_k8s_provider()

    def fetch_policy(self, namespace: Optional[str] = None) -> PolicyConfig:
        ns = namespace or self.default_namespace
        try:
            data = self.provider.read_config_map_data(
                self.config_map_name, ns, timeout_seconds=self.timeout_seconds
            )
        except Exception as e:
            logger.error("Failed to fetch ConfigMap %s/%s: %s", ns, self.config_map_name, str(e))
            raise PolicyFetchError(f"failed to fetch ConfigMap {ns}/{self.config_map_name}: {e}") from e
        return policy_from_config_map_data(data, self.forbidden_users)


class StaticPolicySource:
    """Fixed ConfigMap data (offline evaluation via the CLI)."""

    def __init__(self, data: Optional[Mapping[str, str]], *, forbidden_users: Iterable[str] = ()) -> None:
        self._policy = policy_from_config_map_data(data, forbidden_users)

    def fetch_policy(self, namespace: Optional[str] = None) -> PolicyConfig:
        return self._policy
