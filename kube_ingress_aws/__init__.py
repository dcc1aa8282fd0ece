"""Kubernetes Ingress, RouteGroup, ConfigMap and pod access, plus metrics, for an AWS load balancer controller."""

__version__ = "0.1.0"