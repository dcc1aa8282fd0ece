"""A small HTTP client for the Kubernetes API server."""

from __future__ import annotations

import http
import ssl
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path

from .config import DEFAULT_USER_AGENT, SERVICE_ACCOUNT_TOKEN_KEY, Config
from .errors import (
    InvalidCertificatesError,
    KubernetesError,
    NoPermissionToAccessResourceError,
    ResourceNotFoundError,
    UnexpectedStatusError,
)

_PEM_MARKER = "-----BEGIN CERTIFICATE-----"


def _reason(status: int) -> str:
    try:
        return http.HTTPStatus(status).phrase
    except ValueError:
        return ""


def _ssl_context(config: Config) -> ssl.SSLContext:
    pem = Path(config.ca_file).read_text(encoding="utf-8", errors="replace")
    if _PEM_MARKER not in pem:
        raise InvalidCertificatesError()
    try:
        context = ssl.create_default_context(cadata=pem)
    except (ssl.SSLError, ValueError) as exc:
        raise InvalidCertificatesError() from exc
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    if config.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class SimpleClient:
    """Issues GET and PATCH requests relative to the configured base URL."""

    def __init__(self, config: Config) -> None:
        self.config = config
        handlers: list[urllib.request.BaseHandler] = []
        if config.ca_file:
            handlers.append(urllib.request.HTTPSHandler(context=_ssl_context(config)))
        self._opener = urllib.request.build_opener(*handlers)

    def get(self, resource: str) -> bytes:
        """Return the body of ``resource``.

        Raises ResourceNotFoundError on 404, NoPermissionToAccessResourceError
        on 403 and UnexpectedStatusError on any other status but 200.
        """
        status, body = self._send(self._request("GET", resource))
        if status == http.HTTPStatus.OK:
            return body
        if status == http.HTTPStatus.NOT_FOUND:
            raise ResourceNotFoundError()
        if status == http.HTTPStatus.FORBIDDEN:
            raise NoPermissionToAccessResourceError()
        raise UnexpectedStatusError("GET", resource, status, _reason(status), body)

    def patch(self, resource: str, payload: bytes) -> bytes:
        """Send ``payload`` as a JSON merge patch and return the response body."""
        request = self._request("PATCH", resource, payload)
        request.add_header("Content-Type", "application/merge-patch+json")
        status, body = self._send(request)
        if status != http.HTTPStatus.OK:
            raise UnexpectedStatusError("PATCH", resource, status, _reason(status), body)
        return body

    def _url(self, resource: str) -> str:
        url = self.config.base_url + resource
        parts = urllib.parse.urlsplit(url)
        if not parts.scheme or not parts.netloc or "%" in parts.netloc:
            raise ValueError(f"invalid URL {url!r}")
        try:
            parts.port
        except ValueError as exc:
            raise ValueError(f"invalid URL {url!r}") from exc
        return url

    def _request(
        self, method: str, resource: str, body: bytes | None = None
    ) -> urllib.request.Request:
        request = urllib.request.Request(self._url(resource), data=body, method=method)
        request.add_header("User-Agent", self.config.user_agent or DEFAULT_USER_AGENT)
        provider = self.config.token_provider
        if provider is not None:
            token = provider.get_secret(self.config.token_path)
            if token is None:
                raise KubernetesError(f"secret not found: {SERVICE_ACCOUNT_TOKEN_KEY}")
            request.add_header("Authorization", "Bearer " + token.decode("utf-8"))
        return request

    def _send(self, request: urllib.request.Request) -> tuple[int, bytes]:
        timeout = self.config.timeout if self.config.timeout > 0 else None
        try:
            with self._opener.open(request, timeout=timeout) as response:
                return response.status, response.read()
        except urllib.error.HTTPError as exc:
            with exc:
                return exc.code, exc.read()