"""Audit events for approved node operations.

One Kubernetes Event per approved (non no-op) decision, attached to the Node. Delivery
is fire-and-forget: a failed write is logged, never turned into a denial.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from nodeguard.core.models import NodeEvent
from nodeguard.providers.k8s_provider import K8sProvider, get_k8s_provider

logger = logging.getLogger(__name__)


class AuditEmitter(Protocol):
    def emit(self, event: NodeEvent) -> None: ...


class KubernetesEventEmitter:
    def __init__(
        self,
        *,
        provider: Optional[K8sProvider] = None,
        namespace: str = "default",
        component: str = "node-operation-validator",
    ) -> None:
        self.provider = provider or get_k8s_provider()
        self.namespace = namespace
        self.component = component

    def emit(self, event: NodeEvent) -> None:
        try:
            self.provider.create_node_event(
                node_name=event.node.name,
                node_uid=event.node.uid,
                reason=event.event_reason,
                message=event.event_message,
                namespace=self.namespace,
                component=self.component,
            )
        except Exception:
            logger.exception("Failed to record %s event for node %s", event.operation, event.node.name)


class NullAuditEmitter:
    """Collects events in memory (dry runs, offline evaluation)."""

    def __init__(self) -> None:
        self.events: List[NodeEvent] = []

    def emit(self, event: NodeEvent) -> None:
        self.events.append(event)
