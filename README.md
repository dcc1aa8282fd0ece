# kube-ingress-aws

A library for an AWS load balancer controller that works with Kubernetes.
It has no dependencies outside the Python standard library and needs
Python 3.10 or newer.

It can:

- list Ingress and RouteGroup resources in all namespaces, filtered by ingress class;
- turn each resource into one `Ingress` object that holds the load balancer settings
  (scheme, SSL policy, security group, WAF web ACL id, IP address type, ALB or NLB);
- write the load balancer DNS name into the status of a resource;
- read ConfigMaps;
- track the IPs of running ingress pods from the pod objects you pass to it;
- hold controller metrics and serve them in the Prometheus text format.

## Configuration

`kube_ingress_aws.config` builds a `Config` in one of two ways.

- `in_cluster_config(service_account_dir)` is for use inside a cluster.
  `service_account_dir` defaults to `/var/run/secrets/kubernetes.io/serviceaccount/`.
  - It reads `KUBERNETES_SERVICE_HOST` and `KUBERNETES_SERVICE_PORT`. If either is missing it
    raises `MissingKubernetesEnvError`.
  - It loads the `token` file from the directory into a `FileSecretProvider`. The provider
    reads the file again once 60 seconds have passed.
  - It uses `ca.crt` from the directory as the CA file.
  - The base URL is `https://host:port`.
- `insecure_config(base_url)` is for local development, for example behind `kubectl proxy`.
  It uses no TLS and no authentication.

`SimpleClient(config)` in `kube_ingress_aws.client` sends the HTTP requests.

- `get(resource)` returns the response body as bytes. It raises:
  - `ResourceNotFoundError` on 404;
  - `NoPermissionToAccessResourceError` on 403;
  - `UnexpectedStatusError` on any other status that is not 200.
- `patch(resource, payload)` sends a JSON merge patch.

If a token provider is set, each request carries the header `Authorization: Bearer <token>`.

## The adapter

```python
from kube_ingress_aws.adapter import Adapter
from kube_ingress_aws.config import insecure_config

adapter = Adapter(
    insecure_config("http://localhost:8001"),
    "networking.k8s.io/v1",
    ingress_class_filters=["skipper"],
    default_security_group="sg-example",
    default_ssl_policy="ELBSecurityPolicy-2016-08",
    default_load_balancer_type="application",
    cluster_local_domain=".cluster.local",
    ssl_policies={"ELBSecurityPolicy-2016-08", "ELBSecurityPolicy-TLS-1-2-2017-01"},
)

for ingress in adapter.list_resources():
    print(ingress, ingress.load_balancer_type, ingress.hostnames)
```

If the config is `None` or has an empty base URL, `Adapter` raises `InvalidConfigurationError`.
You can pass a ready client with `client=`. It must have the same `get` and `patch`
methods as `SimpleClient`.

`list_resources()` returns the Ingresses first and then the RouteGroups.

- If listing RouteGroups fails with `ResourceNotFoundError` or
  `NoPermissionToAccessResourceError`, the adapter turns RouteGroup support off for good.
  After that it returns only Ingresses.
- A resource whose annotations conflict is logged and skipped. An example is an explicit
  `nlb` type together with a security group or a WAF web ACL id.

You can also call `list_ingress()` and `list_routegroups()` on their own.

The ingress class comes from `spec.ingressClassName`. If that is not set, the
`kubernetes.io/ingress.class` annotation is used instead.

### Updating the load balancer hostname

```python
adapter.update_ingress_load_balancer(ingress, "my-lb-123.eu-central-1.elb.amazonaws.com")
```

This raises `UpdateNotNeededError` when the hostname is already set. It raises
`InvalidIngressUpdateParamsError` when the ingress is `None` or the DNS name is empty.
Both exceptions live in `kube_ingress_aws.errors`.

### ConfigMaps and resource locations

```python
from kube_ingress_aws.resource import parse_resource_location

location = parse_resource_location("kube-system/alarms")
config_map = adapter.get_config_map(location.namespace, location.name)
print(config_map.data)
```

`parse_resource_location` raises `ValueError` for anything that is not `namespace/name`.

## Pod endpoints

`kube_ingress_aws.pods.PodEndpoints` keeps the IPs of pods that are running and not
terminating. Pods are passed in as Kubernetes JSON objects (dicts).

- `seed(pods)` stores the pods from a first listing and returns the sorted IPs.
- `update(pod)` applies one change. It returns the new sorted IPs if something changed,
  or `None` if nothing did.
- `endpoints()` returns the current sorted IPs.

## Metrics

```python
from kube_ingress_aws.metrics import ControllerMetrics, Registry, serve_metrics

registry = Registry()
metrics = ControllerMetrics()
metrics.register(registry)

metrics.ingresses_total.set(3)
metrics.changes_total.created("stack")

serve_metrics(":7979", registry)  # blocks; serves /metrics
```

`Registry.render()` returns the text exposition format as a string.

## Collecting problems

`kube_ingress_aws.problem.ProblemList` collects errors so that work can go on.

- `add(message, *args)` formats the message %-style and stores it.
- `errors()` returns the stored errors in order.

## What this package does not do

This is a library, not a controller. It does not:

- install a command-line program;
- create or manage AWS load balancers, CloudFormation stacks or certificates;
- run a reconciliation loop;
- watch the Kubernetes API for pod events.

The caller has to fetch pods and pass them to `PodEndpoints`, and has to act on the
`Ingress` objects itself.