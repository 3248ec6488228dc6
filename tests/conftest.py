"""
Pytest config.

Tests import the local `nodeguard/` package straight from the repo root (editable
installs are optional). We pin the repo root on sys.path so collection works no matter
which `pytest` entrypoint is used.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


class FakeK8sProvider:
    """In-memory stand-in for the Kubernetes API (ConfigMaps + recorded node events)."""

    def __init__(self, config_maps: Optional[Dict[tuple, Dict[str, str]]] = None, *, fail_with=None) -> None:
        self.config_maps = dict(config_maps or {})
        self.fail_with = fail_with
        self.reads: List[tuple] = []
        self.events: List[Dict[str, object]] = []

    def read_config_map_data(self, name: str, namespace: str, *, timeout_seconds: float) -> Dict[str, str]:
        self.reads.append((namespace, name, timeout_seconds))
        if self.fail_with is not None:
            raise self.fail_with
        if (namespace, name) not in self.config_maps:
            raise LookupError(f'configmaps "{name}" not found')
        return dict(self.config_maps[(namespace, name)])

    def create_node_event(self, **kwargs) -> None:  # type: ignore[no-untyped-def]
        self.events.append(kwargs)


@pytest.fixture
def fake_provider() -> FakeK8sProvider:
    return FakeK8sProvider(
        {
            ("node-operation-validator-system", "node-operation-validator-config"): {
                "allowedReasons": "Testing,Unauthorized access,Invalid configuration,Dependency error",
            }
        }
    )


@pytest.fixture(autouse=True)
def _reset_process_caches(monkeypatch: pytest.MonkeyPatch):
    """
    Config is lru_cached and the webhook engine is a process singleton; reset both so
    env changes made with monkeypatch are visible to each test.
    """
    from nodeguard.api import webhook as ws
    from nodeguard.config import load_webhook_config

    monkeypatch.delenv("forbiddenUsers", raising=False)
    load_webhook_config.cache_clear()
    ws.set_engine(None)
    yield
    load_webhook_config.cache_clear()
    ws.set_engine(None)
