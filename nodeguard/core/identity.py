from __future__ import annotations

from typing import Iterable

from nodeguard.core.models import NODE_AGENT_PREFIX, SERVICE_ACCOUNT_PREFIX, IdentityClass


def is_forbidden_user(principal: str, forbidden_users: Iterable[str]) -> bool:
    return any(user == principal for user in forbidden_users)


def is_service_account(principal: str) -> bool:
    return (principal or "").startswith(SERVICE_ACCOUNT_PREFIX)


def is_node_agent(principal: str) -> bool:
    return (principal or "").startswith(NODE_AGENT_PREFIX)


def classify_identity(principal: str, forbidden_users: Iterable[str]) -> IdentityClass:
    """
    Classify a requesting principal. First match wins.

    The forbidden check must run before the prefix checks: a forbidden identity is
    never upgraded to a trusted automation class.
    """
    if is_forbidden_user(principal, forbidden_users):
        return IdentityClass.FORBIDDEN
    if is_service_account(principal):
        return IdentityClass.SERVICE_ACCOUNT
    if is_node_agent(principal):
        return IdentityClass.NODE_AGENT
    return IdentityClass.REGULAR
