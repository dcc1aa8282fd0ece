"""Controller metrics in the Prometheus text exposition format."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Protocol

_NAMESPACE = "kube_ingress_aws"
_SUBSYSTEM = "controller"
_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

_log = logging.getLogger(__name__)


def _full_name(name: str) -> str:
    return f"{_NAMESPACE}_{_SUBSYSTEM}_{name}"


def _format_value(value: float) -> str:
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


class _Metric(Protocol):
    name: str

    def _lines(self) -> list[str]: ...


class Gauge:
    """A single value that can go up and down."""

    def __init__(self, name: str, help: str) -> None:
        self.name = name
        self.help = help
        self.value = 0.0
        self._lock = threading.Lock()

    def set(self, value: float) -> None:
        with self._lock:
            self.value = float(value)

    def set_to_current_time(self) -> None:
        """Set the gauge to the current Unix time in seconds."""
        self.set(time.time())

    def _lines(self) -> list[str]:
        with self._lock:
            value = self.value
        return [
            f"# HELP {self.name} {_escape_help(self.help)}",
            f"# TYPE {self.name} gauge",
            f"{self.name} {_format_value(value)}",
        ]


class CounterVec:
    """Counters partitioned by a fixed set of label names."""

    def __init__(self, name: str, help: str, label_names: tuple[str, ...]) -> None:
        self.name = name
        self.help = help
        self.label_names = tuple(label_names)
        self._values: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def _key(self, label_values: tuple[str, ...]) -> tuple[str, ...]:
        if len(label_values) != len(self.label_names):
            raise ValueError(
                f"expected {len(self.label_names)} label values, got {len(label_values)}"
            )
        return tuple(str(v) for v in label_values)

    def inc(self, *args: str) -> None:
        """Add one to the counter for the given label values."""
        key = self._key(args)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + 1.0

    def value(self, *args: str) -> float:
        """Return the counter for the given label values; zero if never seen."""
        key = self._key(args)
        with self._lock:
            return self._values.get(key, 0.0)

    def _lines(self) -> list[str]:
        with self._lock:
            samples = sorted(self._values.items())
        if not samples:
            return []
        lines = [
            f"# HELP {self.name} {_escape_help(self.help)}",
            f"# TYPE {self.name} counter",
        ]
        for labels, value in samples:
            rendered = ",".join(
                f'{name}="{_escape_label(v)}"' for name, v in zip(self.label_names, labels)
            )
            lines.append(f"{self.name}{{{rendered}}} {_format_value(value)}")
        return lines


class ChangeCounter(CounterVec):
    """Counts create, update and delete operations per resource type."""

    def __init__(self, name: str, help: str) -> None:
        super().__init__(name, help, ("resource_type", "operation"))

    def created(self, resource_type: str) -> None:
        self.inc(resource_type, "create")

    def updated(self, resource_type: str) -> None:
        self.inc(resource_type, "update")

    def deleted(self, resource_type: str) -> None:
        self.inc(resource_type, "delete")


class Registry:
    """A set of metrics rendered together."""

    def __init__(self) -> None:
        self._metrics: dict[str, _Metric] = {}
        self._lock = threading.Lock()

    def register(self, metric: _Metric) -> None:
        """Add ``metric``; raise ValueError if its name is taken."""
        with self._lock:
            if metric.name in self._metrics:
                raise ValueError(f"duplicate metrics collector registration: {metric.name}")
            self._metrics[metric.name] = metric

    def render(self) -> str:
        """Return all metrics in the text exposition format, sorted by name."""
        with self._lock:
            metrics = [self._metrics[name] for name in sorted(self._metrics)]
        lines = [line for metric in metrics for line in metric._lines()]
        return "".join(line + "\n" for line in lines)


def _gauge(name: str, help: str):
    return field(default_factory=lambda: Gauge(_full_name(name), help))


@dataclass
class ControllerMetrics:
    """The metrics the controller reports."""

    last_sync_timestamp: Gauge = _gauge(
        "last_sync_timestamp_seconds",
        "Timestamp of the last successful controller reconciliation run",
    )
    ingresses_total: Gauge = _gauge("ingresses_total", "Number of managed Kubernetes Ingresses")
    routegroups_total: Gauge = _gauge("routegroups_total", "Number of managed Route Groups")
    stacks_total: Gauge = _gauge("stacks_total", "Number of managed Cloud Formation stacks")
    owned_autoscaling_groups_total: Gauge = _gauge(
        "owned_autoscaling_groups_total", "Number of owned Autoscaling Groups"
    )
    targeted_autoscaling_groups_total: Gauge = _gauge(
        "targeted_autoscaling_groups_total", "Number of targeted Autoscaling Groups"
    )
    instances_total: Gauge = _gauge("instances_total", "Number of managed EC2 instances")
    standalone_instances_total: Gauge = _gauge(
        "standalone_instances_total",
        "Number of managed EC2 instances not in the Autoscaling Group",
    )
    certificates_total: Gauge = _gauge("certificates_total", "Number of certificates")
    cloud_watch_alarms_total: Gauge = _gauge(
        "cloud_watch_alarms_total", "Number of Cloud Watch Alarms"
    )
    changes_total: ChangeCounter = field(
        default_factory=lambda: ChangeCounter(
            _full_name("changes_total"),
            "Number of Cloud Formation stack, Kubernetes Ingress and Route Group changes",
        )
    )

    def register(self, registry: Registry) -> None:
        """Register every metric with ``registry``."""
        for metric in (
            self.last_sync_timestamp,
            self.ingresses_total,
            self.routegroups_total,
            self.stacks_total,
            self.owned_autoscaling_groups_total,
            self.targeted_autoscaling_groups_total,
            self.instances_total,
            self.standalone_instances_total,
            self.certificates_total,
            self.cloud_watch_alarms_total,
            self.changes_total,
        ):
            registry.register(metric)


def _parse_address(address: str) -> tuple[str, int]:
    host, _, port = address.rpartition(":")
    return host.strip("[]"), int(port)


def serve_metrics(address: str, registry: Registry) -> None:
    """Serve ``registry`` on ``/metrics`` at ``host:port``; blocks forever."""

    class _MetricsHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            if self.path.split("?", 1)[0] != "/metrics":
                self.send_error(404)
                return
            body = registry.render().encode("utf-8")
            self.send_response(200)
            self.send_header("Content-Type", _CONTENT_TYPE)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: object) -> None:
            """Send access log lines to the module logger at debug level."""
            _log.debug("%s - %s", self.address_string(), format % args)

    with ThreadingHTTPServer(_parse_address(address), _MetricsHandler) as server:
        server.serve_forever()