import dataclasses
import socket
import threading
import time
import urllib.error
import urllib.request

import pytest

from kube_ingress_aws.metrics import (
    ChangeCounter,
    ControllerMetrics,
    CounterVec,
    Gauge,
    Registry,
    serve_metrics,
)


def test_gauge_set_renders_value():
    registry = Registry()
    gauge = Gauge("sample_gauge", "A sample")
    registry.register(gauge)
    gauge.set(3)
    text = registry.render()
    assert "# TYPE sample_gauge gauge\n" in text
    assert "sample_gauge 3\n" in text


def test_gauge_set_to_current_time():
    gauge = Gauge("ts", "time")
    before = time.time()
    gauge.set_to_current_time()
    after = time.time()
    assert before <= gauge.value <= after


def test_counter_vec_counts_per_labels():
    counter = CounterVec("events", "Events", ("kind",))
    counter.inc("a")
    counter.inc("a")
    counter.inc("b")
    assert counter.value("a") == 2
    assert counter.value("b") == 1
    assert counter.value("c") == 0


def test_counter_vec_wrong_label_count():
    counter = CounterVec("events", "Events", ("kind", "op"))
    with pytest.raises(ValueError):
        counter.inc("only-one")
    with pytest.raises(ValueError):
        counter.value("a", "b", "c")


def test_change_counter_operations():
    counter = ChangeCounter("changes", "Changes")
    counter.created("ingress")
    counter.updated("ingress")
    counter.deleted("stack")
    assert counter.value("ingress", "create") == 1
    assert counter.value("ingress", "update") == 1
    assert counter.value("stack", "delete") == 1
    assert counter.value("stack", "create") == 0


def test_counter_renders_labels():
    registry = Registry()
    counter = ChangeCounter("changes", "Changes")
    registry.register(counter)
    counter.created("ingress")
    text = registry.render()
    assert "# TYPE changes counter\n" in text
    assert 'changes{resource_type="ingress",operation="create"} 1\n' in text


def test_empty_counter_is_not_rendered():
    registry = Registry()
    registry.register(ChangeCounter("changes", "Changes"))
    assert registry.render() == ""


def test_duplicate_registration_raises():
    registry = Registry()
    registry.register(Gauge("dup", "one"))
    with pytest.raises(ValueError):
        registry.register(Gauge("dup", "two"))


def test_controller_metrics_register_all():
    metrics = ControllerMetrics()
    registry = Registry()
    metrics.register(registry)
    metrics.changes_total.created("ingress")
    text = registry.render()
    for f in dataclasses.fields(ControllerMetrics):
        metric = getattr(metrics, f.name)
        assert metric.name.startswith("kube_ingress_aws_controller_")
        assert f"# HELP {metric.name} {metric.help}\n" in text


def test_controller_metrics_registered_twice_raises():
    metrics = ControllerMetrics()
    registry = Registry()
    metrics.register(registry)
    with pytest.raises(ValueError):
        metrics.register(registry)


def _fetch(url, attempts=50):
    for _ in range(attempts):
        try:
            with urllib.request.urlopen(url, timeout=2) as response:
                return response.status, response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            return exc.code, ""
        except OSError:
            time.sleep(0.1)
    raise AssertionError("metrics server did not start")


def test_serve_metrics():
    registry = Registry()
    gauge = Gauge("served_gauge", "Served")
    registry.register(gauge)
    gauge.set(7)
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    thread = threading.Thread(
        target=serve_metrics, args=(f"127.0.0.1:{port}", registry), daemon=True
    )
    thread.start()
    status, body = _fetch(f"http://127.0.0.1:{port}/metrics")
    assert status == 200
    assert body == registry.render()
    status, _ = _fetch(f"http://127.0.0.1:{port}/other")
    assert status == 404