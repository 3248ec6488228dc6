"""Reason annotation policy.

A reason is accepted when it matches the allowed list (case-insensitive), fully
matches the configured pattern, or is free text on a Delete. Evaluation never
raises: a broken pattern only disables the pattern path.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from nodeguard.core.models import Operation, PolicyConfig

logger = logging.getLogger(__name__)


def reason_is_allowed(allowed_reasons: Iterable[str], reason: str) -> bool:
    r = (reason or "").casefold()
    return any(allowed.casefold() == r for allowed in allowed_reasons)


def reason_matches_pattern(pattern: str, reason: str) -> bool:
    if not pattern:
        return False
    try:
        return re.fullmatch(pattern, reason or "") is not None
    except re.error as e:
        logger.warning("Ignoring invalid reason pattern %r: %s", pattern, str(e))
        return False


def is_reason_freetext(operation: Operation, reason: str) -> bool:
    # Deletions accept any non-empty rationale; cordons do not.
    return operation == Operation.DELETE and bool(reason)


def reason_accepted(reason: str, policy: PolicyConfig, operation: Operation) -> bool:
    return (
        reason_is_allowed(policy.allowed_reasons, reason)
        or reason_matches_pattern(policy.reason_pattern, reason)
        or is_reason_freetext(operation, reason)
    )
