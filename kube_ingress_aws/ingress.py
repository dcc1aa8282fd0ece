"""Kubernetes Ingress resources as the API server returns them."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .errors import KubernetesError

if TYPE_CHECKING:
    from .client import SimpleClient

# Used by external-dns as well.
INGRESS_ALB_IP_ADDRESS_TYPE = "alb.ingress.kubernetes.io/ip-address-type"
INGRESS_API_VERSION_EXTENSIONS = "extensions/v1beta1"
INGRESS_API_VERSION_NETWORKING = "networking.k8s.io/v1"
INGRESS_LIST_RESOURCE = "/apis/{api_version}/ingresses"
INGRESS_PATCH_STATUS_RESOURCE = (
    "/apis/{api_version}/namespaces/{namespace}/ingresses/{name}/status"
)
INGRESS_CERTIFICATE_ARN_ANNOTATION = "zalando.org/aws-load-balancer-ssl-cert"
INGRESS_SCHEME_ANNOTATION = "zalando.org/aws-load-balancer-scheme"
INGRESS_SHARED_ANNOTATION = "zalando.org/aws-load-balancer-shared"
INGRESS_SECURITY_GROUP_ANNOTATION = "zalando.org/aws-load-balancer-security-group"
INGRESS_SSL_POLICY_ANNOTATION = "zalando.org/aws-load-balancer-ssl-policy"
INGRESS_LOAD_BALANCER_TYPE_ANNOTATION = "zalando.org/aws-load-balancer-type"
INGRESS_HTTP2_ANNOTATION = "zalando.org/aws-load-balancer-http2"
INGRESS_WAF_WEB_ACL_ID_ANNOTATION = "zalando.org/aws-waf-web-acl-id"
INGRESS_CLASS_ANNOTATION = "kubernetes.io/ingress.class"

_DECODE_ERRORS = (ValueError, TypeError, AttributeError)


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass
class KubeItemMetadata:
    """The metadata block shared by namespaced Kubernetes objects."""

    namespace: str = ""
    name: str = ""
    uid: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    self_link: str = ""
    resource_version: str = ""
    generation: int = 0
    creation_timestamp: datetime | None = None
    deletion_timestamp: datetime | None = None
    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> KubeItemMetadata:
        data = data or {}
        return cls(
            namespace=str(data.get("namespace") or ""),
            name=str(data.get("name") or ""),
            uid=str(data.get("uid") or ""),
            annotations=dict(data.get("annotations") or {}),
            self_link=str(data.get("selfLink") or ""),
            resource_version=str(data.get("resourceVersion") or ""),
            generation=int(data.get("generation") or 0),
            creation_timestamp=_parse_time(data.get("creationTimestamp")),
            deletion_timestamp=_parse_time(data.get("deletionTimestamp")),
            labels=dict(data.get("labels") or {}),
        )


@dataclass
class KubeIngress:
    """An Ingress object: metadata, rule hosts, class and load balancer status."""

    metadata: KubeItemMetadata = field(default_factory=KubeItemMetadata)
    hosts: list[str] = field(default_factory=list)
    ingress_class_name: str = ""
    load_balancer_hostnames: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> KubeIngress:
        data = data or {}
        spec = data.get("spec") or {}
        load_balancer = (data.get("status") or {}).get("loadBalancer") or {}
        return cls(
            metadata=KubeItemMetadata.from_dict(data.get("metadata")),
            hosts=[str(rule.get("host") or "") for rule in spec.get("rules") or []],
            ingress_class_name=str(spec.get("ingressClassName") or ""),
            load_balancer_hostnames=[
                str(entry.get("hostname") or "")
                for entry in load_balancer.get("ingress") or []
            ],
        )


@dataclass
class IngressList:
    """A list of Ingress objects with the list's own metadata."""

    kind: str = ""
    api_version: str = ""
    self_link: str = ""
    resource_version: str = ""
    items: list[KubeIngress] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> IngressList:
        data = data or {}
        metadata = data.get("metadata") or {}
        return cls(
            kind=str(data.get("kind") or ""),
            api_version=str(data.get("apiVersion") or ""),
            self_link=str(metadata.get("selfLink") or ""),
            resource_version=str(metadata.get("resourceVersion") or ""),
            items=[KubeIngress.from_dict(item) for item in data.get("items") or []],
        )


def get_annotation(annotations: dict[str, str], key: str, default: str) -> str:
    """Return the annotation ``key``, or ``default`` when it is absent."""
    return annotations.get(key, default)


def get_ingress_class_name(ingress: KubeIngress, default: str) -> str:
    """Return the ingress class from the spec, or ``default`` when unset."""
    return ingress.ingress_class_name or default


class IngressClient:
    """Lists and patches Ingress objects of one API version."""

    def __init__(self, api_version: str) -> None:
        self.api_version = api_version

    def list_ingress(self, client: SimpleClient) -> IngressList:
        """Fetch every Ingress in every namespace."""
        resource = INGRESS_LIST_RESOURCE.format(api_version=self.api_version)
        try:
            body = client.get(resource)
        except Exception as exc:
            raise KubernetesError(f"failed to get ingress list: {exc}") from exc
        try:
            return IngressList.from_dict(json.loads(body))
        except _DECODE_ERRORS as exc:
            raise KubernetesError(f"failed to decode ingress list: {exc}") from exc

    def update_ingress_load_balancer(
        self, client: SimpleClient, namespace: str, name: str, hostname: str
    ) -> None:
        """Set the load balancer hostname in the status of an Ingress."""
        patch = {"status": {"loadBalancer": {"ingress": [{"hostname": hostname}]}}}
        payload = json.dumps(patch, separators=(",", ":"), ensure_ascii=False)
        resource = INGRESS_PATCH_STATUS_RESOURCE.format(
            api_version=self.api_version, namespace=namespace, name=name
        )
        try:
            client.patch(resource, payload.encode("utf-8"))
        except Exception as exc:
            raise KubernetesError(
                f"failed to patch ingress {namespace}/{name} = "
                f"{json.dumps(hostname, ensure_ascii=False)}: {exc}"
            ) from exc