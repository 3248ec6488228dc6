"""Operation classification from the admission verb and node schedulability."""

from __future__ import annotations

from typing import Optional

from nodeguard.core.models import NodeState, Operation


def _unschedulable(state: Optional[NodeState]) -> bool:
    return bool(state.unschedulable) if state is not None else False


def classify_operation(
    verb: str,
    before: Optional[NodeState] = None,
    after: Optional[NodeState] = None,
) -> Operation:
    """
    Derive the logical operation for a node admission request.

    Updates only count as cordon/uncordon when `spec.unschedulable` actually flips;
    every other update (status heartbeats, label changes, ...) is a no-op.

    Raises ValueError for verbs this webhook is not registered for (e.g. CONNECT).
    """
    v = (verb or "").strip().lower()
    if v == "create":
        return Operation.CREATE
    if v == "delete":
        return Operation.DELETE
    if v == "update":
        was, now = _unschedulable(before), _unschedulable(after)
        if not was and now:
            return Operation.CORDON
        if was and not now:
            return Operation.UNCORDON
        return Operation.NOOP
    raise ValueError(f"unsupported admission verb {verb!r}")
