"""Canonical domain models for node operation decisions.

Everything the decision engine consumes or produces is defined here:
- closed enums for the logical operation and the principal's identity class
- small immutable values for the request, the policy and the verdict

Transport shapes (AdmissionReview, Node JSON) live in `nodeguard.api.admission`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

# Fixed policy constants (not runtime configuration).
REASON_ANNOTATION = "node.dana.io/reason"
SERVICE_ACCOUNT_PREFIX = "system:serviceaccount:"
NODE_AGENT_PREFIX = "system:node:"
SYSTEM_ADMIN_USER = "system:admin"
EVENT_REASON = "NodeOperation"


@unique
class Operation(str, Enum):
    CREATE = "create"
    DELETE = "delete"
    CORDON = "cordon"
    UNCORDON = "uncordon"
    NOOP = "noop"

    def __str__(self) -> str:
        return self.value


@unique
class IdentityClass(str, Enum):
    FORBIDDEN = "forbidden"
    SERVICE_ACCOUNT = "service_account"
    NODE_AGENT = "node_agent"
    REGULAR = "regular"

    def __str__(self) -> str:
        return self.value

    @property
    def is_trusted(self) -> bool:
        """Automation identities bypass the reason policy entirely."""
        return self in (IdentityClass.SERVICE_ACCOUNT, IdentityClass.NODE_AGENT)


@dataclass(frozen=True)
class ReasonAnnotation:
    exists: bool = False
    value: str = ""

    @classmethod
    def from_annotations(cls, annotations: Optional[Mapping[str, str]]) -> "ReasonAnnotation":
        if not annotations or REASON_ANNOTATION not in annotations:
            return cls()
        return cls(exists=True, value=str(annotations.get(REASON_ANNOTATION) or ""))


@dataclass(frozen=True)
class NodeRef:
    name: str = ""
    uid: Optional[str] = None


@dataclass(frozen=True)
class NodeState:
    """Decoded node snapshot (before or after the mutation)."""

    node: NodeRef = field(default_factory=NodeRef)
    unschedulable: bool = False
    annotations: Dict[str, str] = field(default_factory=dict)

    @property
    def reason(self) -> ReasonAnnotation:
        return ReasonAnnotation.from_annotations(self.annotations)


@dataclass(frozen=True)
class PolicyConfig:
    # Exact, case-sensitive principal names.
    forbidden_users: FrozenSet[str] = frozenset({SYSTEM_ADMIN_USER})
    # Case-insensitive exact matches, in configured order.
    allowed_reasons: Tuple[str, ...] = ()
    # Empty means "no pattern configured".
    reason_pattern: str = ""


@dataclass(frozen=True)
class DecisionRequest:
    operation: Operation
    principal: str
    reason: ReasonAnnotation = field(default_factory=ReasonAnnotation)
    node: NodeRef = field(default_factory=NodeRef)


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    message: str

    def __post_init__(self) -> None:
        if not self.message:
            raise ValueError("verdict message must not be empty")


@dataclass(frozen=True)
class NodeEvent:
    """Audit record for one approved node operation."""

    operation: Operation
    principal: str
    reason_text: str = ""
    node: NodeRef = field(default_factory=NodeRef)

    @property
    def event_reason(self) -> str:
        return f"{EVENT_REASON}: {self.operation}"

    @property
    def event_message(self) -> str:
        return f"{self.principal}: {self.reason_text}"
