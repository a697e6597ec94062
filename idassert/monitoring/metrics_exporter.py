"""Prometheus metrics for assertion verification.

Counters are registered once per process on the default prometheus_client
registry. `snapshot()` exposes the same counts as plain integers for tests
and health endpoints.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, REGISTRY


class MetricsRegistry:
    def __init__(self, registry: Optional[CollectorRegistry] = None):
        registry = registry if registry is not None else REGISTRY
        self.verifications = Counter(
            "idassert_verifications_total", "Assertion verification outcomes", ["outcome"], registry=registry
        )
        self.attr_certs = Counter(
            "idassert_attr_certs_total", "Attribute certificate outcomes", ["outcome"], registry=registry
        )
        self.resolver_cache = Counter(
            "idassert_resolver_cache_total", "Issuer resolver cache lookups", ["result"], registry=registry
        )
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {}

    def _bump(self, key: str) -> None:
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + 1

    def observe_verification(self, outcome: str) -> None:
        self.verifications.labels(outcome=outcome).inc()
        self._bump(f"verifications_{outcome}")

    def observe_attr_cert(self, outcome: str) -> None:
        self.attr_certs.labels(outcome=outcome).inc()
        self._bump(f"attr_certs_{outcome}")

    def observe_cache(self, result: str) -> None:
        self.resolver_cache.labels(result=result).inc()
        self._bump(f"resolver_cache_{result}")

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)


_registry: Optional[MetricsRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> MetricsRegistry:
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = MetricsRegistry()
        return _registry


__all__ = ["get_registry", "MetricsRegistry"]
