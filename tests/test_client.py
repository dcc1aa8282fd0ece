import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from kube_ingress_aws.client import SimpleClient
from kube_ingress_aws.config import Config
from kube_ingress_aws.errors import (
    InvalidCertificatesError,
    KubernetesError,
    NoPermissionToAccessResourceError,
    ResourceNotFoundError,
    UnexpectedStatusError,
)


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        self._respond()

    def do_PATCH(self):
        self._respond()

    def _respond(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        self.server.requests.append((self.command, self.path, dict(self.headers), body))
        status, payload = self.server.response
        self.send_response(status)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, *args):
        pass


@pytest.fixture
def server():
    srv = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    srv.requests = []
    srv.response = (200, b"")
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.shutdown()
    srv.server_close()


def _client(server, **kwargs):
    return SimpleClient(Config(base_url=f"http://127.0.0.1:{server.server_address[1]}", **kwargs))


class _StaticSecrets:
    def __init__(self, value):
        self.value = value

    def get_secret(self, path):
        return self.value


def test_get_ok(server):
    server.response = (200, b"foo")
    assert _client(server).get("/foo") == b"foo"
    method, path, headers, _ = server.requests[0]
    assert (method, path) == ("GET", "/foo")
    assert headers["User-Agent"] == "kube-ingress-aws-controller"


def test_get_not_found(server):
    server.response = (404, b"bar")
    with pytest.raises(ResourceNotFoundError):
        _client(server).get("/bar")


def test_get_forbidden(server):
    server.response = (403, b"")
    with pytest.raises(NoPermissionToAccessResourceError):
        _client(server).get("/forbidden")


def test_get_server_error(server):
    server.response = (500, b"xpto")
    with pytest.raises(UnexpectedStatusError) as info:
        _client(server).get("/zbr")
    assert info.value.status == 500
    assert info.value.body == b"xpto"
    assert str(info.value) == 'unexpected status code (Internal Server Error) for GET "/zbr": xpto'


def test_get_invalid_base_url():
    client = SimpleClient(Config(base_url="http://192.168.0.%31"))
    with pytest.raises(ValueError):
        client.get("/fail")


def test_patch_ok(server):
    server.response = (200, b"ok")
    assert _client(server).patch("/foo", b"foo") == b"ok"
    method, path, headers, body = server.requests[0]
    assert (method, path, body) == ("PATCH", "/foo", b"foo")
    assert headers["Content-Type"] == "application/merge-patch+json"


@pytest.mark.parametrize(("status", "body"), [(404, b"ok"), (500, b"nok")])
def test_patch_errors(server, status, body):
    server.response = (status, body)
    with pytest.raises(UnexpectedStatusError) as info:
        _client(server).patch("/bar", b"bar")
    assert info.value.status == status
    assert info.value.body == body


def test_patch_invalid_base_url():
    client = SimpleClient(Config(base_url="http://192.168.0.%31"))
    with pytest.raises(ValueError):
        client.patch("/fail", b"fail")


def test_custom_user_agent_and_bearer_token(server):
    server.response = (200, b"bar")
    client = _client(server, user_agent="custom-agent", token_provider=_StaticSecrets(b"token"))
    assert client.patch("/foo", b"bar") == b"bar"
    _, _, headers, body = server.requests[0]
    assert headers["Authorization"] == "Bearer token"
    assert headers["User-Agent"] == "custom-agent"
    assert body == b"bar"


def test_missing_token_raises(server):
    client = _client(server, token_provider=_StaticSecrets(None))
    with pytest.raises(KubernetesError, match="secret not found: token"):
        client.get("/foo")
    assert server.requests == []


def test_missing_ca_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        SimpleClient(Config(base_url="dontcare", ca_file=str(tmp_path / "missing")))


def test_broken_ca_file(tmp_path):
    broken = tmp_path / "broken.pem"
    broken.write_text("not a certificate\n")
    with pytest.raises(InvalidCertificatesError):
        SimpleClient(Config(base_url="dontcare", ca_file=str(broken)))


def test_garbled_pem_ca_file(tmp_path):
    broken = tmp_path / "broken.pem"
    broken.write_text("-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n")
    with pytest.raises(InvalidCertificatesError):
        SimpleClient(Config(base_url="dontcare", ca_file=str(broken)))