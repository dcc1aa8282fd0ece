"""Configuration for reaching the Kubernetes API server."""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import KubernetesError, MissingKubernetesEnvError

SERVICE_ACCOUNT_DIR = "/var/run/secrets/kubernetes.io/serviceaccount/"
SERVICE_ACCOUNT_TOKEN_KEY = "token"
SERVICE_ACCOUNT_ROOT_CA_KEY = "ca.crt"

SERVICE_HOST_ENV_VAR = "KUBERNETES_SERVICE_HOST"
SERVICE_PORT_ENV_VAR = "KUBERNETES_SERVICE_PORT"

DEFAULT_USER_AGENT = "kube-ingress-aws-controller"
DEFAULT_TIMEOUT = 10.0


class SecretProvider(Protocol):
    """Anything that hands out secrets by path."""

    def get_secret(self, path: str) -> bytes | None: ...


@dataclass
class Config:
    """Attributes a Kubernetes API client is created with.

    ``timeout`` is in seconds; zero means no timeout.
    """

    base_url: str = ""
    token_provider: SecretProvider | None = None
    token_path: str = os.path.join(SERVICE_ACCOUNT_DIR, SERVICE_ACCOUNT_TOKEN_KEY)
    ca_file: str = ""
    insecure: bool = False
    user_agent: str = ""
    timeout: float = 0.0


class FileSecretProvider:
    """Secrets read from files and re-read once ``refresh_interval`` seconds pass."""

    def __init__(self, refresh_interval: float = 60.0) -> None:
        self.refresh_interval = refresh_interval
        self._secrets: dict[str, tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    def add(self, path: str) -> None:
        """Start tracking the secret in ``path``; raise OSError if unreadable."""
        data = Path(path).read_bytes()
        with self._lock:
            self._secrets[str(path)] = (data, time.monotonic())

    def get_secret(self, path: str) -> bytes | None:
        """Return the secret for ``path``, or None if it is not tracked."""
        key = str(path)
        with self._lock:
            entry = self._secrets.get(key)
            if entry is None:
                return None
            data, loaded_at = entry
            now = time.monotonic()
            if now - loaded_at >= self.refresh_interval:
                try:
                    data = Path(key).read_bytes()
                except OSError:
                    pass
                self._secrets[key] = (data, now)
            return data


def _join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def in_cluster_config(service_account_dir: str = SERVICE_ACCOUNT_DIR) -> Config:
    """Build a TLS configuration from the in-cluster environment.

    Needs KUBERNETES_SERVICE_HOST and KUBERNETES_SERVICE_PORT, plus the
    service account token and root CA inside ``service_account_dir``.
    """
    host = os.environ.get(SERVICE_HOST_ENV_VAR, "")
    port = os.environ.get(SERVICE_PORT_ENV_VAR, "")
    if not host or not port:
        raise MissingKubernetesEnvError()

    token_path = os.path.join(service_account_dir, SERVICE_ACCOUNT_TOKEN_KEY)
    provider = FileSecretProvider(refresh_interval=60.0)
    try:
        provider.add(token_path)
    except OSError as exc:
        raise KubernetesError(
            f"error when adding token file to token provider: {exc}"
        ) from exc

    root_ca_file = os.path.join(service_account_dir, SERVICE_ACCOUNT_ROOT_CA_KEY)
    if not os.path.exists(root_ca_file):
        raise FileNotFoundError(root_ca_file)

    return Config(
        base_url="https://" + _join_host_port(host, port),
        user_agent=DEFAULT_USER_AGENT,
        token_provider=provider,
        token_path=token_path,
        timeout=DEFAULT_TIMEOUT,
        ca_file=root_ca_file,
    )


def insecure_config(api_server_base_url: str) -> Config:
    """Build a configuration without encryption or authentication.

    Meant for local development, e.g. against ``kubectl proxy``.
    """
    return Config(
        base_url=api_server_base_url,
        user_agent=DEFAULT_USER_AGENT,
        timeout=DEFAULT_TIMEOUT,
    )