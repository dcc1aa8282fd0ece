"""Tracking the IPs of ready ingress pods."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from typing import Any

RESYNC_INTERVAL = 60.0


def is_pod_terminating(pod: Mapping[str, Any]) -> bool:
    """True when the pod carries a deletion timestamp."""
    return (pod.get("metadata") or {}).get("deletionTimestamp") is not None


def is_pod_running(pod: Mapping[str, Any]) -> bool:
    """True when the first container runs and the pod has an IP."""
    status = pod.get("status") or {}
    statuses = status.get("containerStatuses") or []
    if not statuses:
        return False
    running = (statuses[0].get("state") or {}).get("running")
    return running is not None and bool(status.get("podIP"))


def _pod_name(pod: Mapping[str, Any]) -> str:
    return str((pod.get("metadata") or {}).get("name") or "")


def _pod_ip(pod: Mapping[str, Any]) -> str:
    return str((pod.get("status") or {}).get("podIP") or "")


class PodEndpoints:
    """Pod name to IP mapping of running, non-terminating pods.

    Pods are given as Kubernetes JSON objects. ``update`` returns the new
    sorted endpoint list when it changed and None otherwise.
    """

    def __init__(self) -> None:
        self._endpoints: dict[str, str] = {}
        self._lock = threading.Lock()

    def seed(self, pods: Iterable[Mapping[str, Any]]) -> list[str]:
        """Store every running, non-terminating pod and return the endpoints."""
        with self._lock:
            for pod in pods:
                if not is_pod_terminating(pod) and is_pod_running(pod):
                    self._endpoints[_pod_name(pod)] = _pod_ip(pod)
            return self._sorted()

    def update(self, pod: Mapping[str, Any]) -> list[str] | None:
        """Apply an update event for ``pod``."""
        name = _pod_name(pod)
        with self._lock:
            if is_pod_terminating(pod):
                if self._endpoints.pop(name, None) is None:
                    return None
                return self._sorted()
            if is_pod_running(pod):
                if name in self._endpoints:
                    return None
                self._endpoints[name] = _pod_ip(pod)
                return self._sorted()
            return None

    def endpoints(self) -> list[str]:
        """Return the IPs of all tracked pods, sorted."""
        with self._lock:
            return self._sorted()

    def _sorted(self) -> list[str]:
        return sorted(self._endpoints.values())