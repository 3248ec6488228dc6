"""Kubernetes API client for the policy ConfigMap read and node event writes."""

import threading
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol, runtime_checkable

_core_v1_api = None
_config_loaded = False
_init_lock = threading.Lock()


@runtime_checkable
class K8sProvider(Protocol):
    def read_config_map_data(self, name: str, namespace: str, *, timeout_seconds: float) -> Dict[str, str]: ...

    def create_node_event(
        self,
        *,
        node_name: str,
        node_uid: Optional[str],
        reason: str,
        message: str,
        namespace: str = "default",
        component: str = "node-operation-validator",
    ) -> None: ...


class DefaultK8sProvider:
    def read_config_map_data(self, name: str, namespace: str, *, timeout_seconds: float) -> Dict[str, str]:
        return read_config_map_data(name, namespace, timeout_seconds=timeout_seconds)

    def create_node_event(
        self,
        *,
        node_name: str,
        node_uid: Optional[str],
        reason: str,
        message: str,
        namespace: str = "default",
        component: str = "node-operation-validator",
    ) -> None:
        create_node_event(
            node_name=node_name,
            node_uid=node_uid,
            reason=reason,
            message=message,
            namespace=namespace,
            component=component,
        )


def get_k8s_provider() -> K8sProvider:
    """Seam for swapping provider implementations (tests, offline evaluation)."""
    return DefaultK8sProvider()


def _get_core_v1():
    """
    Return a cached CoreV1Api client.

    We intentionally cache both:
    - config loading (in-cluster or kubeconfig)
    - the API client object

    Only the connection is cached; policy data is read fresh on every decision.
    """
    global _core_v1_api, _config_loaded

    if _core_v1_api is not None:
        return _core_v1_api

    with _init_lock:
        if _core_v1_api is not None:
            return _core_v1_api

        from kubernetes import client, config

        if not _config_loaded:
            # In-cluster first (the webhook runs as a Deployment), kubeconfig for local dev.
            try:
                config.load_incluster_config()
            except config.ConfigException:
                config.load_kube_config()
            _config_loaded = True

        _core_v1_api = client.CoreV1Api()
        return _core_v1_api


def read_config_map_data(name: str, namespace: str, *, timeout_seconds: float = 5.0) -> Dict[str, str]:
    """
    Read a ConfigMap's `data` (read-only).

    Raises on any API failure (not found, RBAC, timeout); callers decide how to surface it.
    """
    if not name or not namespace:
        raise ValueError("ConfigMap name/namespace required")
    v1 = _get_core_v1()
    cm = v1.read_namespaced_config_map(name=name, namespace=namespace, _request_timeout=timeout_seconds)
    data = getattr(cm, "data", None)
    if not isinstance(data, dict):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


def create_node_event(
    *,
    node_name: str,
    node_uid: Optional[str],
    reason: str,
    message: str,
    namespace: str = "default",
    component: str = "node-operation-validator",
) -> None:
    """
    Create a `Normal` core/v1 Event whose involved object is the given Node.

    Nodes are cluster-scoped; `kubectl describe node` lists events from the `default`
    namespace, which is where the kubelet and controllers record node events too.
    """
    from kubernetes import client

    v1 = _get_core_v1()
    now = datetime.now(timezone.utc)
    body = client.CoreV1Event(
        metadata=client.V1ObjectMeta(generate_name=f"{node_name}."),
        involved_object=client.V1ObjectReference(api_version="v1", kind="Node", name=node_name, uid=node_uid),
        reason=reason,
        message=message,
        type="Normal",
        source=client.V1EventSource(component=component),
        reporting_component=component,
        first_timestamp=now,
        last_timestamp=now,
        count=1,
    )
    v1.create_namespaced_event(namespace=namespace, body=body)
