"""Locations of namespaced Kubernetes resources."""

from __future__ import annotations

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class ResourceLocation:
    """Where a resource lives: its namespace and its name."""

    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


def parse_resource_location(s: str) -> ResourceLocation:
    """Parse ``namespace/name``; raise ValueError for any other form."""
    parts = s.strip("/").split("/")
    if len(parts) != 2:
        raise ValueError(
            'invalid resource location, expected format "namespace/name" '
            f"but got {json.dumps(s, ensure_ascii=False)}"
        )
    namespace, name = parts
    return ResourceLocation(name=name, namespace=namespace)