"""Node operation decision engine.

`decide()` is the pure core: (request, policy) -> verdict (+ audit event on allow).
`DecisionEngine` wraps it with the two side effects a decision needs:
- one policy fetch (failures propagate as PolicyFetchError, never a deny)
- at most one audit emit (approved, non no-op decisions only)

Evaluation order for every operation with a reason rule is fixed:
forbidden identity -> trusted automation identity -> regular user reason checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from nodeguard.audit import AuditEmitter
from nodeguard.authz.policy import PolicySource
from nodeguard.authz.reasons import reason_accepted
from nodeguard.core.identity import classify_identity
from nodeguard.core.models import (
    REASON_ANNOTATION,
    DecisionRequest,
    IdentityClass,
    NodeEvent,
    Operation,
    PolicyConfig,
    Verdict,
)

logger = logging.getLogger(__name__)


class ReasonRule(str, Enum):
    REQUIRED = "required"
    FORBIDDEN = "forbidden"
    NONE = "none"


REASON_RULES: Dict[Operation, ReasonRule] = {
    Operation.CREATE: ReasonRule.FORBIDDEN,
    Operation.DELETE: ReasonRule.REQUIRED,
    Operation.CORDON: ReasonRule.REQUIRED,
    Operation.UNCORDON: ReasonRule.FORBIDDEN,
    Operation.NOOP: ReasonRule.NONE,
}

NOOP_VERDICT = Verdict(allowed=True, message="Node was updated")


@dataclass(frozen=True)
class Decision:
    verdict: Verdict
    identity: Optional[IdentityClass] = None
    event: Optional[NodeEvent] = None


def _allow(request: DecisionRequest, identity: IdentityClass, message: str, reason_text: str) -> Decision:
    event = NodeEvent(
        operation=request.operation,
        principal=request.principal,
        reason_text=reason_text,
        node=request.node,
    )
    return Decision(verdict=Verdict(allowed=True, message=message), identity=identity, event=event)


def _deny(identity: IdentityClass, message: str) -> Decision:
    return Decision(verdict=Verdict(allowed=False, message=message), identity=identity)


def _format_reasons(policy: PolicyConfig) -> str:
    listed = "[" + ", ".join(policy.allowed_reasons) + "]"
    if policy.reason_pattern:
        return f"{listed} or a reason matching pattern {policy.reason_pattern!r}"
    return listed


def _decide_forbidden(request: DecisionRequest, rule: ReasonRule) -> Decision:
    op, user = request.operation, request.principal
    logger.info("%s node denied: DenialReason=forbidden user User=%s", op, user)
    if rule == ReasonRule.REQUIRED:
        hint = f'You must also add the "{REASON_ANNOTATION}" annotation'
    else:
        hint = f'The "{REASON_ANNOTATION}" annotation must not be set'
    return _deny(
        IdentityClass.FORBIDDEN,
        f'"{user}" user is not allowed to {op} a node. Please log in with a privileged user. {hint}',
    )


def _decide_trusted(request: DecisionRequest, identity: IdentityClass) -> Decision:
    op, user = request.operation, request.principal
    kind = "Service account" if identity == IdentityClass.SERVICE_ACCOUNT else "Node"
    logger.info("%s node approved: ApprovalReason=%s is allowed to do any operation User=%s", op, kind, user)
    return _allow(request, identity, f'{kind} "{user}" is allowed to do everything', request.reason.value)


def _decide_regular(request: DecisionRequest, rule: ReasonRule, policy: PolicyConfig) -> Decision:
    op, user, reason = request.operation, request.principal, request.reason
    identity = IdentityClass.REGULAR

    if rule == ReasonRule.REQUIRED:
        if not reason.exists:
            logger.info("%s node denied: DenialReason=reason annotation doesn't exist User=%s", op, user)
            return _deny(identity, f'You must add the "{REASON_ANNOTATION}" annotation to {op} a node')
        if reason_accepted(reason.value, policy, op):
            logger.info("%s node approved: User=%s Reason=%s", op, user, reason.value)
            return _allow(request, identity, f"{op} operation has been approved", reason.value)
        logger.info("%s node denied: DenialReason=invalid reason User=%s Reason=%s", op, user, reason.value)
        return _deny(identity, f'Invalid reason "{reason.value}". Allowed reasons: {_format_reasons(policy)}')

    if reason.exists:
        logger.info("%s node denied: DenialReason=reason annotation exists User=%s", op, user)
        return _deny(identity, f'Don\'t forget to remove the "{REASON_ANNOTATION}" annotation from the node')
    logger.info("%s node approved: User=%s", op, user)
    return _allow(request, identity, f"{op} operation approved", "")


def decide(request: DecisionRequest, policy: PolicyConfig) -> Decision:
    """
    Pure decision for one request against one policy snapshot.

    Same inputs always produce an identical Decision; nothing here touches the network,
    the environment or module state.
    """
    rule = REASON_RULES[request.operation]
    if rule == ReasonRule.NONE:
        return Decision(verdict=NOOP_VERDICT)

    identity = classify_identity(request.principal, policy.forbidden_users)
    if identity == IdentityClass.FORBIDDEN:
        return _decide_forbidden(request, rule)
    if identity.is_trusted:
        return _decide_trusted(request, identity)
    return _decide_regular(request, rule, policy)


class DecisionEngine:
    def __init__(
        self,
        *,
        policy_source: PolicySource,
        emitter: AuditEmitter,
        namespace: Optional[str] = None,
    ) -> None:
        self.policy_source = policy_source
        self.emitter = emitter
        self.namespace = namespace

    def evaluate_decision(self, request: DecisionRequest, *, dry_run: bool = False) -> Decision:
        if request.operation == Operation.NOOP:
            # Node status heartbeats land here constantly; don't fetch policy for them.
            return Decision(verdict=NOOP_VERDICT)

        # Raises PolicyFetchError; never fall back to an empty policy.
        policy = self.policy_source.fetch_policy(self.namespace)
        decision = decide(request, policy)

        if decision.event is not None and not dry_run:
            self.emitter.emit(decision.event)
        return decision

    def evaluate(self, request: DecisionRequest, *, dry_run: bool = False) -> Verdict:
        return self.evaluate_decision(request, dry_run=dry_run).verdict
