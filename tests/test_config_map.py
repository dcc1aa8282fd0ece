import json
import threading
from contextlib import contextmanager
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from kube_ingress_aws.client import SimpleClient
from kube_ingress_aws.config import Config
from kube_ingress_aws.config_map import KubeConfigMap, get_config_map
from kube_ingress_aws.errors import KubernetesError

FIXTURE = {
    "kind": "ConfigMap",
    "apiVersion": "v1",
    "metadata": {"name": "foo-name", "namespace": "foo-ns"},
    "data": {"some-key": "key1: val1\nkey2: val2\n"},
}


@contextmanager
def _server(status, body):
    paths = []

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            paths.append(self.path)
            self.send_response(status)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}", paths
    finally:
        server.shutdown()
        server.server_close()


def test_get_config_map():
    with _server(200, json.dumps(FIXTURE).encode()) as (url, paths):
        got = get_config_map(SimpleClient(Config(base_url=url)), "foo-ns", "foo-name")
    want = KubeConfigMap(
        kind="ConfigMap",
        api_version="v1",
        name="foo-name",
        namespace="foo-ns",
        data={"some-key": "key1: val1\nkey2: val2\n"},
    )
    assert got == want
    assert paths == ["/api/v1/namespaces/foo-ns/configmaps/foo-name"]


@pytest.mark.parametrize("status,body", [(500, b"{}\n"), (200, b"`\n")])
def test_get_config_map_failure_scenarios(status, body):
    with _server(status, body) as (url, _):
        with pytest.raises(KubernetesError, match="ConfigMap foo-ns/foo-name"):
            get_config_map(SimpleClient(Config(base_url=url)), "foo-ns", "foo-name")


def test_from_dict_without_data():
    cm = KubeConfigMap.from_dict({"metadata": {"name": "n", "namespace": "ns"}})
    assert (cm.namespace, cm.name, cm.data) == ("ns", "n", {})