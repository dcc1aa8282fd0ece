"""RouteGroup custom resources as the API server returns them."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .errors import KubernetesError
from .ingress import KubeItemMetadata

if TYPE_CHECKING:
    from .client import SimpleClient

ROUTEGROUP_LIST_RESOURCE = "/apis/zalando.org/v1/routegroups"
ROUTEGROUP_NAMESPACED_RESOURCE = "/apis/zalando.org/v1/namespaces/{namespace}/routegroups/{name}"
ROUTEGROUP_PATCH_STATUS_RESOURCE = (
    "/apis/zalando.org/v1/namespaces/{namespace}/routegroups/{name}/status"
)


@dataclass
class RouteGroup:
    """A RouteGroup: metadata, hosts and load balancer status."""

    metadata: KubeItemMetadata = field(default_factory=KubeItemMetadata)
    hosts: list[str] = field(default_factory=list)
    load_balancer_hostnames: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RouteGroup:
        data = data or {}
        spec = data.get("spec") or {}
        load_balancer = (data.get("status") or {}).get("loadBalancer") or {}
        return cls(
            metadata=KubeItemMetadata.from_dict(data.get("metadata")),
            hosts=[str(host or "") for host in spec.get("hosts") or []],
            load_balancer_hostnames=[
                str(entry.get("hostname") or "")
                for entry in load_balancer.get("routegroup") or []
            ],
        )


@dataclass
class RouteGroupList:
    """A list of RouteGroups with the list's own metadata."""

    kind: str = ""
    api_version: str = ""
    self_link: str = ""
    resource_version: str = ""
    items: list[RouteGroup] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RouteGroupList:
        data = data or {}
        metadata = data.get("metadata") or {}
        return cls(
            kind=str(data.get("kind") or ""),
            api_version=str(data.get("apiVersion") or ""),
            self_link=str(metadata.get("selfLink") or ""),
            resource_version=str(metadata.get("resourceVersion") or ""),
            items=[RouteGroup.from_dict(item) for item in data.get("items") or []],
        )


def list_routegroups(client: SimpleClient) -> RouteGroupList:
    """Fetch every RouteGroup in every namespace.

    Errors of the client, such as ResourceNotFoundError when the CRD is
    missing, propagate unchanged.
    """
    body = client.get(ROUTEGROUP_LIST_RESOURCE)
    try:
        return RouteGroupList.from_dict(json.loads(body))
    except (ValueError, TypeError, AttributeError) as exc:
        raise KubernetesError(f"failed to decode routegroup list: {exc}") from exc


def update_routegroup_load_balancer(
    client: SimpleClient, namespace: str, name: str, hostname: str
) -> None:
    """Set the load balancer hostname in the status of a RouteGroup."""
    patch = {"status": {"loadBalancer": {"routegroup": [{"hostname": hostname}]}}}
    payload = json.dumps(patch, separators=(",", ":"), ensure_ascii=False)
    resource = ROUTEGROUP_PATCH_STATUS_RESOURCE.format(namespace=namespace, name=name)
    try:
        client.patch(resource, payload.encode("utf-8"))
    except Exception as exc:
        raise KubernetesError(
            f"failed to patch routegroup {namespace}/{name} = "
            f"{json.dumps(hostname, ensure_ascii=False)}: {exc}"
        ) from exc