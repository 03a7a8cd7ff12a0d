"""Resolve validated chart values into per-workload render context.

The templates only lay out manifest structure. Every decision that
depends on values (environment variables, image references, resource
mirroring, the Consul sidecar, labels) is made here, so it can be tested
without rendering YAML.

Resolution rules:
    - Environment variables are collected by name in a ContainerEnv and
      serialized to a list only when a template is rendered.
    - REPLICATION_TABLES, when configured, is added after every other
      server variable.
    - A set memory limit is mirrored into the memory request; an unset
      limit takes the request's value.
    - With the bundled Consul cluster, ReadySet pods get a consul-agent
      sidecar and talk to it on localhost; otherwise they use
      readyset.authority_address directly.

Example:
    >>> from readyset_helm.chart import Chart
    >>> from readyset_helm.resolver import ReleaseInfo, build_context, resolve_values
    >>> chart = Chart.load()
    >>> values = resolve_values(chart, {"readyset": {"deployment": "prod"}})
    >>> context = build_context(chart, values, ReleaseInfo(namespace="readyset"))
    >>> context["adapter"].env["QUERY_CACHING"]
    'explicit'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from readyset_helm.env import ContainerEnv
from readyset_helm.errors import ValuesValidationError
from readyset_helm.merger import merge_all
from readyset_helm.schemas import ChartValues, ComponentResources

if TYPE_CHECKING:
    from readyset_helm.chart import Chart, ChartMetadata

logger = structlog.get_logger(__name__)

DEFAULT_IMAGE_REPOSITORY = "public.ecr.aws/readyset"
CONSUL_IMAGE = "hashicorp/consul:1.16"
DEFAULT_AUTHORITY_PORT = 8500
LOCAL_AGENT_ADDRESS = f"127.0.0.1:{DEFAULT_AUTHORITY_PORT}"
UPSTREAM_DB_SECRET = "readyset-db-url"
UPSTREAM_DB_SECRET_KEY = "url"
STATE_DIR = "/state"
MANAGED_BY = "readyset-helm"

ADAPTER_NAME = "readyset-adapter"
SERVER_NAME = "readyset-server"
CONSUL_AGENT_NAME = "consul-agent"

DNS_LABEL_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
MAX_NAMESPACE_LENGTH = 63
MAX_RELEASE_NAME_LENGTH = 53


@dataclass(frozen=True)
class ReleaseInfo:
    """Release identity for one render.

    Attributes:
        name: Release name; prefixes the bundled Consul resources.
        namespace: Namespace every manifest is rendered into.

    Raises:
        ValuesValidationError: If either field is not a DNS label.
    """

    name: str = "readyset"
    namespace: str = "default"

    def __post_init__(self) -> None:
        issues: list[tuple[str, str]] = []
        for path, value, limit in (
            ("release.name", self.name, MAX_RELEASE_NAME_LENGTH),
            ("release.namespace", self.namespace, MAX_NAMESPACE_LENGTH),
        ):
            if len(value) > limit or not DNS_LABEL_PATTERN.match(value):
                issues.append(
                    (path, f"{value!r} is not a DNS label of at most {limit} characters")
                )
        if issues:
            raise ValuesValidationError(issues)


@dataclass
class Workload:
    """Everything a template needs to lay out one ReadySet workload."""

    name: str
    component: str
    image: str
    labels: dict[str, str]
    selector: dict[str, str]
    env: ContainerEnv
    resources: dict[str, Any]
    service: dict[str, Any]
    ports: list[dict[str, Any]]
    sidecars: list[dict[str, Any]] = field(default_factory=list)
    volume_claim: dict[str, Any] | None = None


@dataclass
class ConsulWorkload:
    """Render context for the bundled Consul servers."""

    name: str
    image: str
    labels: dict[str, str]
    selector: dict[str, str]
    replicas: int
    bootstrap_expect: int
    resources: dict[str, Any]
    retry_join: list[str]


def resolve_values(chart: Chart, *layers: dict[str, Any]) -> ChartValues:
    """Merge override layers over the chart defaults and validate.

    Args:
        chart: The chart providing default values.
        *layers: Override mappings, lowest priority first.

    Returns:
        Validated ChartValues.

    Raises:
        ValuesValidationError: If any path is unknown, any value invalid,
            or the Consul/authority rule is broken.
    """
    merged = merge_all(chart.defaults, *layers)
    return ChartValues.from_values(merged)


def build_context(
    chart: Chart,
    values: ChartValues,
    release: ReleaseInfo,
) -> dict[str, Any]:
    """Build the template context for every workload.

    Args:
        chart: Chart providing metadata for labels and default image tag.
        values: Validated values.
        release: Release name and namespace.

    Returns:
        Mapping with ``release``, ``chart``, ``values``, ``adapter``,
        ``server`` and ``consul`` (None when Consul is not bundled).
    """
    metadata = chart.metadata
    log = logger.bind(release=release.name, namespace=release.namespace)

    consul = _consul_workload(metadata, values, release) if values.consul.enabled else None
    sidecars = [_consul_agent(consul)] if consul is not None else []

    adapter = _adapter_workload(metadata, values, sidecars)
    server = _server_workload(metadata, values, sidecars)

    log.debug(
        "render_context_built",
        deployment=values.readyset.deployment,
        consul_enabled=consul is not None,
        adapter_env=len(adapter.env),
        server_env=len(server.env),
    )

    return {
        "release": release,
        "chart": metadata,
        "values": values,
        "adapter": adapter,
        "server": server,
        "consul": consul,
        "state_dir": STATE_DIR,
    }


def labels_for(
    metadata: ChartMetadata,
    values: ChartValues,
    name: str,
    component: str,
) -> dict[str, str]:
    """Standard labels carried by every manifest."""
    return {
        **selector_for(values, name),
        "app.kubernetes.io/component": component,
        "app.kubernetes.io/version": metadata.app_version,
        "app.kubernetes.io/part-of": "readyset",
        "app.kubernetes.io/managed-by": MANAGED_BY,
        "helm.sh/chart": metadata.label,
    }


def selector_for(values: ChartValues, name: str) -> dict[str, str]:
    """Labels used to select a workload's pods."""
    return {
        "app.kubernetes.io/name": name,
        "app.kubernetes.io/instance": values.readyset.deployment,
    }


def authority_address(values: ChartValues) -> str:
    """Address ReadySet uses to reach Consul.

    The external address gets the default Consul HTTP port when it
    does not carry one.
    """
    if values.consul.enabled:
        return LOCAL_AGENT_ADDRESS
    address = values.readyset.authority_address.strip()
    host = address.rsplit("]", 1)[-1]
    if host.endswith(":"):
        address = f"{address}{DEFAULT_AUTHORITY_PORT}"
    elif ":" not in host:
        address = f"{address}:{DEFAULT_AUTHORITY_PORT}"
    return address


def mirror_memory(request: str | None, limit: str | None) -> tuple[str | None, str | None]:
    """Apply the memory mirroring rule.

    Returns:
        (request, limit) where both are equal whenever either is set.
    """
    if limit:
        return limit, limit
    return request, request


def container_resources(
    resources: ComponentResources,
    *,
    include_storage: bool,
) -> dict[str, Any]:
    """Map component resources to a container ``resources`` block.

    Args:
        resources: Validated component resources.
        include_storage: Render storage as ``ephemeral-storage`` (the
            adapter); the server sizes its volume claim instead.

    Returns:
        Mapping with ``requests`` and ``limits`` (empty sections omitted).
        CPU limits are never emitted.
    """
    requests: dict[str, str] = {}
    limits: dict[str, str] = {}

    if include_storage and resources.requests.storage:
        requests["ephemeral-storage"] = resources.requests.storage
    if include_storage and resources.limits.storage:
        limits["ephemeral-storage"] = resources.limits.storage
    if resources.requests.cpu:
        requests["cpu"] = resources.requests.cpu

    memory_request, memory_limit = mirror_memory(
        resources.requests.memory, resources.limits.memory
    )
    if memory_request:
        requests["memory"] = memory_request
    if memory_limit:
        limits["memory"] = memory_limit

    return {key: section for key, section in (("requests", requests), ("limits", limits)) if section}


def image_for(repository: str | None, tag: str | None, image: str, metadata: ChartMetadata) -> str:
    """Full image reference, defaulting repository and tag."""
    repository = (repository or DEFAULT_IMAGE_REPOSITORY).rstrip("/")
    return f"{repository}/{image}:{tag or metadata.app_version}"


def _service(exposure: Any) -> dict[str, Any]:
    return {
        "type": exposure.service_type.value,
        "annotations": dict(exposure.annotations),
        "ports": [
            {"name": "sql", "port": exposure.port, "targetPort": "sql", "protocol": "TCP"},
            {"name": "http", "port": exposure.http_port, "targetPort": "http", "protocol": "TCP"},
        ],
    }


def _container_ports(exposure: Any) -> list[dict[str, Any]]:
    return [
        {"name": "sql", "containerPort": exposure.port, "protocol": "TCP"},
        {"name": "http", "containerPort": exposure.http_port, "protocol": "TCP"},
    ]


def _common_env(env: ContainerEnv, values: ChartValues) -> None:
    env.set("DEPLOYMENT", values.readyset.deployment)
    env.set("AUTHORITY", "consul")
    env.set("AUTHORITY_ADDRESS", authority_address(values))
    env.set_secret_ref("UPSTREAM_DB_URL", UPSTREAM_DB_SECRET, UPSTREAM_DB_SECRET_KEY)


def adapter_env(values: ChartValues) -> ContainerEnv:
    """Environment of the readyset-adapter container."""
    adapter = values.readyset.adapter
    env = ContainerEnv()
    _common_env(env, values)
    env.set("QUERY_CACHING", values.readyset.query_caching_mode.value)
    env.set("LISTEN_ADDRESS", f"0.0.0.0:{adapter.service.port}")
    env.set("METRICS_ADDRESS", f"0.0.0.0:{adapter.service.http_port}")
    env.set("PROMETHEUS_METRICS", True)
    env.set("QUERY_LOG_AD_HOC", adapter.query_log_ad_hoc)
    env.set("STATEMENT_LOGGING", adapter.statement_logging)
    env.set("DATABASE_TYPE", adapter.database_type.value)
    env.set("LOG_FORMAT", "json")
    return env


def server_env(values: ChartValues) -> ContainerEnv:
    """Environment of the readyset-server container."""
    server = values.readyset.server
    env = ContainerEnv()
    _common_env(env, values)
    env.set("LISTEN_ADDRESS", "0.0.0.0")
    env.set_field_ref("EXTERNAL_ADDRESS", "status.podIP")
    env.set("DB_DIR", STATE_DIR)
    env.set_field_ref("VOLUME_ID", "metadata.name")
    env.set("METRICS_ADDRESS", f"0.0.0.0:{server.service.http_port}")
    env.set("PROMETHEUS_METRICS", True)
    env.set("STATEMENT_LOGGING", server.statement_logging)
    env.set("DATABASE_TYPE", values.readyset.adapter.database_type.value)
    env.set("LOG_FORMAT", "json")
    env.set("LOG_LEVEL", "info")
    env.set_resource_ref("MEMORY_LIMIT", SERVER_NAME, "limits.memory")
    if server.replication_tables:
        env.set("REPLICATION_TABLES", ",".join(server.replication_tables))
    return env


def _adapter_workload(
    metadata: ChartMetadata,
    values: ChartValues,
    sidecars: list[dict[str, Any]],
) -> Workload:
    adapter = values.readyset.adapter
    return Workload(
        name=ADAPTER_NAME,
        component="adapter",
        image=image_for(adapter.image_repository, adapter.image_tag, ADAPTER_NAME, metadata),
        labels=labels_for(metadata, values, ADAPTER_NAME, "adapter"),
        selector=selector_for(values, ADAPTER_NAME),
        env=adapter_env(values),
        resources=container_resources(adapter.resources, include_storage=True),
        service=_service(adapter.service),
        ports=_container_ports(adapter.service),
        sidecars=sidecars,
    )


def _server_workload(
    metadata: ChartMetadata,
    values: ChartValues,
    sidecars: list[dict[str, Any]],
) -> Workload:
    server = values.readyset.server
    requests = server.resources.requests
    limits = server.resources.limits

    claim: dict[str, Any] = {
        "accessModes": ["ReadWriteOnce"],
        "resources": {"requests": {"storage": requests.storage or "100Gi"}},
    }
    if limits.storage:
        claim["resources"]["limits"] = {"storage": limits.storage}
    if values.kubernetes.storage_class:
        claim["storageClassName"] = values.kubernetes.storage_class

    return Workload(
        name=SERVER_NAME,
        component="server",
        image=image_for(server.image_repository, server.image_tag, SERVER_NAME, metadata),
        labels=labels_for(metadata, values, SERVER_NAME, "server"),
        selector=selector_for(values, SERVER_NAME),
        env=server_env(values),
        resources=container_resources(server.resources, include_storage=False),
        service=_service(server.service),
        ports=_container_ports(server.service),
        sidecars=sidecars,
        volume_claim=claim,
    )


def _consul_workload(
    metadata: ChartMetadata,
    values: ChartValues,
    release: ReleaseInfo,
) -> ConsulWorkload:
    name = f"{release.name}-consul-server"
    server = values.consul.server
    resources: dict[str, Any] = {}
    for section, quantities in (
        ("requests", server.resources.requests),
        ("limits", server.resources.limits),
    ):
        rendered = {k: v for k, v in (("cpu", quantities.cpu), ("memory", quantities.memory)) if v}
        if rendered:
            resources[section] = rendered

    return ConsulWorkload(
        name=name,
        image=CONSUL_IMAGE,
        labels=labels_for(metadata, values, name, "consul"),
        selector=selector_for(values, name),
        replicas=server.replicas,
        bootstrap_expect=server.bootstrap_expect,
        resources=resources,
        retry_join=[
            f"{name}-{index}.{name}.{release.namespace}.svc.cluster.local"
            for index in range(server.replicas)
        ],
    )


def _consul_agent(consul: ConsulWorkload) -> dict[str, Any]:
    """Client agent container joining the bundled Consul servers."""
    return {
        "name": CONSUL_AGENT_NAME,
        "image": consul.image,
        "args": [
            "agent",
            "-data-dir=/consul/data",
            "-client=127.0.0.1",
            "-bind=0.0.0.0",
            *(f"-retry-join={host}" for host in consul.retry_join),
        ],
        "ports": [
            {"name": "consul-http", "containerPort": DEFAULT_AUTHORITY_PORT, "protocol": "TCP"},
            {"name": "serflan", "containerPort": 8301, "protocol": "TCP"},
        ],
        "resources": {
            "requests": {"cpu": "100m", "memory": "128Mi"},
            "limits": {"memory": "128Mi"},
        },
        "volumeMounts": [{"name": "consul-data", "mountPath": "/consul/data"}],
    }


__all__: list[str] = [
    "ConsulWorkload",
    "ReleaseInfo",
    "Workload",
    "adapter_env",
    "authority_address",
    "build_context",
    "container_resources",
    "image_for",
    "labels_for",
    "mirror_memory",
    "resolve_values",
    "selector_for",
    "server_env",
]
