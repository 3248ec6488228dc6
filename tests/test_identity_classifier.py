from __future__ import annotations

from nodeguard.core.identity import classify_identity
from nodeguard.core.models import IdentityClass

FORBIDDEN = {"system:admin", "kube:admin"}


def test_regular_user() -> None:
    assert classify_identity("alice", FORBIDDEN) == IdentityClass.REGULAR
    assert classify_identity("", FORBIDDEN) == IdentityClass.REGULAR


def test_forbidden_is_exact_and_case_sensitive() -> None:
    assert classify_identity("system:admin", FORBIDDEN) == IdentityClass.FORBIDDEN
    assert classify_identity("System:Admin", FORBIDDEN) == IdentityClass.REGULAR
    assert classify_identity("system:admin2", FORBIDDEN) == IdentityClass.REGULAR


def test_automation_prefixes() -> None:
    sa = "system:serviceaccount:openshift-machine-config-operator:machine-config-daemon"
    assert classify_identity(sa, FORBIDDEN) == IdentityClass.SERVICE_ACCOUNT
    assert classify_identity("system:node:worker-1", FORBIDDEN) == IdentityClass.NODE_AGENT
    assert IdentityClass.SERVICE_ACCOUNT.is_trusted
    assert IdentityClass.NODE_AGENT.is_trusted
    assert not IdentityClass.REGULAR.is_trusted


def test_forbidden_wins_over_trusted_prefix() -> None:
    sa = "system:serviceaccount:kube-system:node-killer"
    node = "system:node:worker-1"
    forbidden = FORBIDDEN | {sa, node}
    assert classify_identity(sa, forbidden) == IdentityClass.FORBIDDEN
    assert classify_identity(node, forbidden) == IdentityClass.FORBIDDEN
