"""Higher level Kubernetes abstractions to orchestrate Ingress resources.

The Adapter lists Ingress and RouteGroup resources as one kind of business
object and updates the hostname of their load balancer status. It is built
from an in-cluster configuration (``in_cluster_config``) or, for local
development against ``kubectl proxy``, from ``insecure_config``.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .client import SimpleClient
from .config import Config
from .config_map import get_config_map
from .errors import (
    InvalidConfigurationError,
    InvalidIngressUpdateParamsError,
    KubernetesError,
    NoPermissionToAccessResourceError,
    ResourceNotFoundError,
    UpdateNotNeededError,
)
from .ingress import (
    INGRESS_ALB_IP_ADDRESS_TYPE,
    INGRESS_CERTIFICATE_ARN_ANNOTATION,
    INGRESS_CLASS_ANNOTATION,
    INGRESS_HTTP2_ANNOTATION,
    INGRESS_LOAD_BALANCER_TYPE_ANNOTATION,
    INGRESS_SCHEME_ANNOTATION,
    INGRESS_SECURITY_GROUP_ANNOTATION,
    INGRESS_SHARED_ANNOTATION,
    INGRESS_SSL_POLICY_ANNOTATION,
    INGRESS_WAF_WEB_ACL_ID_ANNOTATION,
    IngressClient,
    KubeIngress,
    KubeItemMetadata,
    get_annotation,
    get_ingress_class_name,
)
from .routegroup import RouteGroup, list_routegroups, update_routegroup_load_balancer

log = logging.getLogger(__name__)

DEFAULT_CLUSTER_LOCAL_DOMAIN = ".cluster.local"

LOAD_BALANCER_TYPE_APPLICATION = "application"
LOAD_BALANCER_TYPE_NETWORK = "network"
IP_ADDRESS_TYPE_IPV4 = "ipv4"
IP_ADDRESS_TYPE_DUALSTACK = "dualstack"
SCHEME_INTERNAL = "internal"
SCHEME_INTERNET_FACING = "internet-facing"

_LB_TYPE_NLB = "nlb"
_LB_TYPE_ALB = "alb"

_INGRESS_TO_AWS = {
    _LB_TYPE_ALB: LOAD_BALANCER_TYPE_APPLICATION,
    _LB_TYPE_NLB: LOAD_BALANCER_TYPE_NETWORK,
}
_AWS_TO_INGRESS = {aws: ing for ing, aws in _INGRESS_TO_AWS.items()}


class IngressType(str, Enum):
    """The kind of Kubernetes resource an Ingress was built from."""

    INGRESS = "ingress"
    ROUTEGROUP = "routegroup"

    def __str__(self) -> str:
        return self.value


@dataclass
class Ingress:
    """The controller's view of an Ingress or RouteGroup resource."""

    resource_type: IngressType = IngressType.INGRESS
    namespace: str = ""
    name: str = ""
    shared: bool = False
    http2: bool = False
    cluster_local: bool = False
    certificate_arn: str = ""
    hostname: str = ""
    scheme: str = ""
    security_group: str = ""
    ssl_policy: str = ""
    ip_address_type: str = ""
    load_balancer_type: str = ""
    waf_web_acl_id: str = ""
    hostnames: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.resource_type.value} {self.namespace}/{self.name}"


@dataclass
class ConfigMap:
    """The controller's view of a Kubernetes ConfigMap."""

    namespace: str
    name: str
    data: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class Adapter:
    """Lists and updates Ingress and RouteGroup resources.

    ``ssl_policies`` names the SSL policies an annotation may choose; when
    None only ``default_ssl_policy`` is known. ``client`` replaces the HTTP
    client built from ``config``.
    """

    def __init__(
        self,
        config: Config | None,
        ingress_api_version: str,
        ingress_class_filters: Iterable[str] | None = None,
        default_security_group: str = "",
        default_ssl_policy: str = "",
        default_load_balancer_type: str = LOAD_BALANCER_TYPE_APPLICATION,
        cluster_local_domain: str = "",
        ssl_policies: Collection[str] | None = None,
        client: Any = None,
    ) -> None:
        if config is None or not config.base_url:
            raise InvalidConfigurationError()
        self.kube_client = client if client is not None else SimpleClient(config)
        self.ingress_client = IngressClient(ingress_api_version)
        self.ingress_filters = list(ingress_class_filters or [])
        self.default_security_group = default_security_group
        self.default_ssl_policy = default_ssl_policy
        self.default_load_balancer_type = _AWS_TO_INGRESS.get(default_load_balancer_type, "")
        self.cluster_local_domain = cluster_local_domain
        self.ssl_policies = (
            frozenset(ssl_policies) if ssl_policies is not None else frozenset({default_ssl_policy})
        )
        self.routegroup_support = True
        self.cni_pod_namespace = ""
        self.cni_pod_label_selector = ""

    def _public_hosts(self, hosts: Iterable[str]) -> list[str]:
        domain = self.cluster_local_domain
        return [h for h in hosts if h and (not domain or not h.endswith(domain))]

    def ingress_from_kube(self, kube_ingress: KubeIngress) -> Ingress:
        """Build an Ingress from a Kubernetes Ingress object."""
        host = next((h for h in kube_ingress.load_balancer_hostnames if h), "")
        return self._new_ingress(
            IngressType.INGRESS,
            kube_ingress.metadata,
            host,
            self._public_hosts(kube_ingress.hosts),
        )

    def ingress_from_routegroup(self, routegroup: RouteGroup) -> Ingress:
        """Build an Ingress from a RouteGroup object."""
        host = next((h for h in routegroup.load_balancer_hostnames if h), "")
        return self._new_ingress(
            IngressType.ROUTEGROUP,
            routegroup.metadata,
            host,
            self._public_hosts(routegroup.hosts),
        )

    def _new_ingress(
        self,
        resource_type: IngressType,
        metadata: KubeItemMetadata,
        host: str,
        hostnames: list[str],
    ) -> Ingress:
        annotations = metadata.annotations

        if get_annotation(annotations, INGRESS_SCHEME_ANNOTATION, "") == SCHEME_INTERNAL:
            scheme = SCHEME_INTERNAL
        else:
            scheme = SCHEME_INTERNET_FACING

        shared = get_annotation(annotations, INGRESS_SHARED_ANNOTATION, "") != "false"

        ip_address_type = IP_ADDRESS_TYPE_IPV4
        if get_annotation(annotations, INGRESS_ALB_IP_ADDRESS_TYPE, "") == IP_ADDRESS_TYPE_DUALSTACK:
            ip_address_type = IP_ADDRESS_TYPE_DUALSTACK

        ssl_policy = get_annotation(
            annotations, INGRESS_SSL_POLICY_ANNOTATION, self.default_ssl_policy
        )
        if ssl_policy not in self.ssl_policies:
            ssl_policy = self.default_ssl_policy

        has_lb = INGRESS_LOAD_BALANCER_TYPE_ANNOTATION in annotations
        if has_lb:
            lb_type = annotations[INGRESS_LOAD_BALANCER_TYPE_ANNOTATION]
        elif scheme == SCHEME_INTERNAL:
            # Internal load balancers are ALBs unless the user says otherwise.
            lb_type = _LB_TYPE_ALB
        else:
            lb_type = self.default_load_balancer_type

        has_sg = INGRESS_SECURITY_GROUP_ANNOTATION in annotations
        security_group = annotations.get(
            INGRESS_SECURITY_GROUP_ANNOTATION, self.default_security_group
        )
        has_waf = INGRESS_WAF_WEB_ACL_ID_ANNOTATION in annotations
        waf_web_acl_id = annotations.get(INGRESS_WAF_WEB_ACL_ID_ANNOTATION, "")

        if lb_type == _LB_TYPE_NLB and (has_sg or has_waf):
            if has_lb:
                raise KubernetesError(
                    "security group or WAF are not supported by NLB (configured by annotation)"
                )
            lb_type = _LB_TYPE_ALB

        if lb_type not in _INGRESS_TO_AWS:
            lb_type = self.default_load_balancer_type
        load_balancer_type = _INGRESS_TO_AWS.get(lb_type, "")

        if load_balancer_type == LOAD_BALANCER_TYPE_NETWORK:
            ip_address_type = IP_ADDRESS_TYPE_IPV4

        http2 = get_annotation(annotations, INGRESS_HTTP2_ANNOTATION, "") != "false"

        return Ingress(
            resource_type=resource_type,
            namespace=metadata.namespace,
            name=metadata.name,
            hostname=host,
            hostnames=hostnames,
            cluster_local=not hostnames,
            certificate_arn=get_annotation(annotations, INGRESS_CERTIFICATE_ARN_ANNOTATION, ""),
            scheme=scheme,
            shared=shared,
            security_group=security_group,
            ssl_policy=ssl_policy,
            ip_address_type=ip_address_type,
            load_balancer_type=load_balancer_type,
            waf_web_acl_id=waf_web_acl_id,
            http2=http2,
        )

    def ingress_filters_string(self) -> str:
        """Return the ingress class filters joined by commas."""
        return ",".join(self.ingress_filters).strip()

    def list_resources(self) -> list[Ingress]:
        """List Ingresses and RouteGroups of all namespaces, filtered by class.

        RouteGroup support is switched off for good when the RouteGroup
        list is missing or forbidden.
        """
        ingresses = self.list_ingress()
        routegroups: list[Ingress] = []
        if self.routegroup_support:
            try:
                routegroups = self.list_routegroups()
            except (ResourceNotFoundError, NoPermissionToAccessResourceError) as exc:
                self.routegroup_support = False
                log.warning(
                    "Disabling RouteGroup support because listing RouteGroups failed: %s", exc
                )
        return ingresses + routegroups

    def list_ingress(self) -> list[Ingress]:
        """List the supported Ingresses of all namespaces."""
        result = []
        for item in self.ingress_client.list_ingress(self.kube_client).items:
            if not self._supported_ingress(item):
                continue
            try:
                result.append(self.ingress_from_kube(item))
            except KubernetesError as exc:
                log.error(
                    "%s %s/%s: %s",
                    IngressType.INGRESS.value,
                    item.metadata.namespace,
                    item.metadata.name,
                    exc,
                )
        return result

    def list_routegroups(self) -> list[Ingress]:
        """List the supported RouteGroups of all namespaces."""
        result = []
        for item in list_routegroups(self.kube_client).items:
            if not self._supported_crd(item.metadata):
                continue
            try:
                result.append(self.ingress_from_routegroup(item))
            except KubernetesError as exc:
                log.error(
                    "%s %s/%s: %s",
                    IngressType.ROUTEGROUP.value,
                    item.metadata.namespace,
                    item.metadata.name,
                    exc,
                )
        return result

    def _supported_crd(self, metadata: KubeItemMetadata) -> bool:
        if not self.ingress_filters:
            return True
        return get_annotation(metadata.annotations, INGRESS_CLASS_ANNOTATION, "") in self.ingress_filters

    def _supported_ingress(self, ingress: KubeIngress) -> bool:
        if not self.ingress_filters:
            return True
        ingress_class = get_ingress_class_name(ingress, "")
        if not ingress_class:
            ingress_class = get_annotation(ingress.metadata.annotations, INGRESS_CLASS_ANNOTATION, "")
        return ingress_class in self.ingress_filters

    def update_ingress_load_balancer(
        self, ingress: Ingress | None, load_balancer_dns_name: str
    ) -> None:
        """Set the load balancer hostname of ``ingress``.

        Raises UpdateNotNeededError when the hostname is already set.
        """
        if ingress is None or not load_balancer_dns_name:
            raise InvalidIngressUpdateParamsError()
        if load_balancer_dns_name == DEFAULT_CLUSTER_LOCAL_DOMAIN:
            load_balancer_dns_name = ""
        if ingress.hostname == load_balancer_dns_name:
            raise UpdateNotNeededError()
        if ingress.resource_type == IngressType.ROUTEGROUP:
            update_routegroup_load_balancer(
                self.kube_client, ingress.namespace, ingress.name, load_balancer_dns_name
            )
        elif ingress.resource_type == IngressType.INGRESS:
            self.ingress_client.update_ingress_load_balancer(
                self.kube_client, ingress.namespace, ingress.name, load_balancer_dns_name
            )
        else:
            raise KubernetesError(
                f"unknown resourceType '{ingress.resource_type}', "
                "failed to update Kubernetes resource"
            )

    def get_config_map(self, namespace: str, name: str) -> ConfigMap:
        """Fetch the ConfigMap ``name`` from ``namespace``."""
        cm = get_config_map(self.kube_client, namespace, name)
        return ConfigMap(namespace=cm.namespace, name=cm.name, data=cm.data)

    def with_target_cni_pod_selector(self, namespace: str, selector: str) -> Adapter:
        """Set the namespace and label selector of the target pods."""
        self.cni_pod_namespace = namespace
        self.cni_pod_label_selector = selector
        return self