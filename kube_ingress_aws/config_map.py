"""Reading ConfigMaps from the Kubernetes API."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .errors import KubernetesError

if TYPE_CHECKING:
    from .client import SimpleClient

CONFIG_MAP_RESOURCE = "/api/v1/namespaces/{namespace}/configmaps/{name}"


@dataclass
class KubeConfigMap:
    """A ConfigMap as the API server returns it."""

    kind: str = ""
    api_version: str = ""
    name: str = ""
    namespace: str = ""
    data: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> KubeConfigMap:
        data = data or {}
        metadata = data.get("metadata") or {}
        return cls(
            kind=str(data.get("kind") or ""),
            api_version=str(data.get("apiVersion") or ""),
            name=str(metadata.get("name") or ""),
            namespace=str(metadata.get("namespace") or ""),
            data={str(k): str(v) for k, v in (data.get("data") or {}).items()},
        )


def get_config_map(client: SimpleClient, namespace: str, name: str) -> KubeConfigMap:
    """Fetch the ConfigMap ``name`` from ``namespace``."""
    resource = CONFIG_MAP_RESOURCE.format(namespace=namespace, name=name)
    try:
        body = client.get(resource)
    except Exception as exc:
        raise KubernetesError(
            f"failed to get ConfigMap {namespace}/{name}: {exc}"
        ) from exc
    try:
        return KubeConfigMap.from_dict(json.loads(body))
    except (ValueError, TypeError, AttributeError) as exc:
        raise KubernetesError(
            f"failed to unmarshal ConfigMap {namespace}/{name}: {exc}"
        ) from exc