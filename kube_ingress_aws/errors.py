"""Errors raised while talking to the Kubernetes API."""

from __future__ import annotations


class KubernetesError(Exception):
    """Base class for errors of the Kubernetes adapter."""

    default_message = "kubernetes error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class MissingKubernetesEnvError(KubernetesError):
    """The API server environment variables are not defined."""

    default_message = (
        "unable to load in-cluster configuration, KUBERNETES_SERVICE_HOST "
        "and KUBERNETES_SERVICE_PORT are not defined"
    )


class InvalidIngressUpdateParamsError(KubernetesError):
    """An update request has no resource or an empty DNS name."""

    default_message = "invalid ingress update parameters"


class UpdateNotNeededError(KubernetesError):
    """The resource already carries the desired hostname."""

    default_message = "update to ingress resource not needed"


class InvalidConfigurationError(KubernetesError):
    """The Kubernetes configuration lacks required attributes."""

    default_message = "invalid Kubernetes Adapter configuration"


class InvalidCertificatesError(KubernetesError):
    """The CA certificates for the API server are invalid."""

    default_message = "invalid CA certificates"


class ResourceNotFoundError(KubernetesError):
    """The API server answered 404 Not Found."""

    default_message = "resource not found"


class NoPermissionToAccessResourceError(KubernetesError):
    """The API server answered 403 Forbidden."""

    default_message = "no permission to access resource"


class UnexpectedStatusError(KubernetesError):
    """The API server answered with a status the client does not accept."""

    def __init__(self, method: str, resource: str, status: int, reason: str, body: bytes) -> None:
        self.method = method
        self.resource = resource
        self.status = status
        self.body = body
        text = body.decode("utf-8", errors="replace")
        super().__init__(
            f'unexpected status code ({reason}) for {method} "{resource}": {text}'
        )