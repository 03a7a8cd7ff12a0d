"""Pydantic schemas for the ReadySet chart values.

These models define every overridable path of ``chart/values.yaml``.
Field aliases are the camelCase keys operators use with ``--set``; any
key that is not an alias of some field is an unknown path and fails the
render instead of being silently ignored.

Models:
    ResourceRequests: storage/cpu/memory requests for a ReadySet component
    ComponentLimits: storage/memory limits for a ReadySet component
    ServiceExposure: Service type, ports and annotations
    AdapterConfig: readyset.adapter.*
    ServerConfig: readyset.server.*
    ReadysetConfig: readyset.*
    KubernetesConfig: kubernetes.*
    ConsulServerConfig / ConsulConfig: consul.*
    ChartValues: the complete values document

Example:
    >>> from readyset_helm.schemas import ChartValues
    >>> values = ChartValues.from_values({
    ...     "readyset": {"deployment": "prod", "queryCachingMode": "async"},
    ... })
    >>> values.readyset.query_caching_mode.value
    'async'
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any, get_args, get_origin

import jsonschema
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    WithJsonSchema,
    field_validator,
    model_validator,
)

from readyset_helm.errors import ValuesValidationError

_STRICT = ConfigDict(frozen=True, extra="forbid")

_QUANTITY_PATTERN = r"^[0-9]+(\.[0-9]+)?(Ki|Mi|Gi|Ti|Pi|Ei|k|M|G|T|P|E)?$"
_CPU_PATTERN = r"^[0-9]+(\.[0-9]+)?m?$"
_DNS_LABEL_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"
_TABLE_PATTERN = re.compile(r"^[^.\s,]+\.([^.\s,]+|\*)$")


def _stringify(value: Any) -> Any:
    """Render YAML scalars the way they appear in a manifest."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


Quantity = Annotated[str, BeforeValidator(_stringify), Field(pattern=_QUANTITY_PATTERN)]
CpuQuantity = Annotated[str, BeforeValidator(_stringify), Field(pattern=_CPU_PATTERN)]
ImageRef = Annotated[str, BeforeValidator(_stringify), Field(min_length=1)]
Port = Annotated[int, Field(ge=1, le=65535)]
# Values files may list annotations as single-key mappings
Annotations = Annotated[
    dict[str, str],
    WithJsonSchema(
        {
            "anyOf": [
                {"type": "object"},
                {"type": "array", "items": {"type": "object"}},
                {"type": "null"},
            ]
        }
    ),
]
# The comma separated form is accepted alongside a list
ReplicationTables = Annotated[
    list[str] | None,
    WithJsonSchema(
        {
            "anyOf": [
                {"type": "string"},
                {"type": "array", "items": {"type": "string"}},
                {"type": "null"},
            ]
        }
    ),
]


class CachingMode(str, Enum):
    """When ReadySet materializes query results."""

    EXPLICIT = "explicit"
    ASYNC = "async"
    IN_REQUEST_PATH = "in-request-path"


class DatabaseType(str, Enum):
    """Wire protocol of the upstream database."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class ServiceType(str, Enum):
    """Kubernetes Service types supported for exposure."""

    CLUSTER_IP = "ClusterIP"
    NODE_PORT = "NodePort"
    LOAD_BALANCER = "LoadBalancer"


class ResourceRequests(BaseModel):
    """Resource requests for a ReadySet component.

    Attributes:
        storage: Ephemeral storage (adapter) or volume size (server)
        cpu: CPU request (e.g., "500m", "1")
        memory: Memory request (e.g., "2Gi"); replaced by limits.memory
            when that is set
    """

    model_config = _STRICT

    storage: Quantity | None = None
    cpu: CpuQuantity | None = None
    memory: Quantity | None = None


class ComponentLimits(BaseModel):
    """Resource limits for a ReadySet component.

    CPU limits are deliberately absent: ReadySet containers run without
    them to avoid CFS throttling, so ``limits.cpu`` is an unknown path.
    """

    model_config = _STRICT

    storage: Quantity | None = None
    memory: Quantity | None = None


class ComponentResources(BaseModel):
    """Requests and limits for a ReadySet component."""

    model_config = _STRICT

    requests: ResourceRequests = Field(default_factory=ResourceRequests)
    limits: ComponentLimits = Field(default_factory=ComponentLimits)


class CpuMemory(BaseModel):
    """CPU and memory quantities."""

    model_config = _STRICT

    cpu: CpuQuantity | None = None
    memory: Quantity | None = None


class ConsulResources(BaseModel):
    """Requests and limits for the Consul servers."""

    model_config = _STRICT

    requests: CpuMemory = Field(
        default_factory=lambda: CpuMemory(cpu="500m", memory="1Gi"),
    )
    limits: CpuMemory = Field(
        default_factory=lambda: CpuMemory(cpu="500m", memory="1Gi"),
    )


class ServiceExposure(BaseModel):
    """How a component is exposed through a Kubernetes Service.

    Attributes:
        service_type: Service type (``type``)
        annotations: Service annotations; a list of single-key mappings is
            accepted and flattened into one mapping
        port: SQL port clients connect to
        http_port: Port serving the Prometheus /metrics endpoint (``httpPort``)
    """

    model_config = _STRICT

    service_type: ServiceType = Field(default=ServiceType.LOAD_BALANCER, alias="type")
    annotations: Annotations = Field(default_factory=dict)
    port: Port = 5432
    http_port: Port = Field(default=6034, alias="httpPort")

    @field_validator("annotations", mode="before")
    @classmethod
    def normalize_annotations(cls, v: Any) -> Any:
        """Flatten list-of-mappings annotations and stringify values."""
        if v is None:
            return {}
        if isinstance(v, list):
            merged: dict[str, Any] = {}
            for item in v:
                if not isinstance(item, dict):
                    msg = f"annotation entries must be mappings, got: {item!r}"
                    raise ValueError(msg)
                merged.update(item)
            v = merged
        if isinstance(v, dict):
            return {str(key): _stringify(value) for key, value in v.items()}
        return v


class AdapterConfig(BaseModel):
    """Configuration for the readyset-adapter Deployment."""

    model_config = _STRICT

    database_type: DatabaseType = Field(default=DatabaseType.POSTGRESQL, alias="type")
    query_log_ad_hoc: bool = Field(default=True, alias="queryLogAdHoc")
    statement_logging: bool = Field(default=False, alias="statementLogging")
    # Accepted for compatibility; ingress is not rendered
    ingress_enabled: bool = Field(default=True, alias="ingressEnabled")
    image_repository: ImageRef | None = Field(default=None, alias="imageRepository")
    image_tag: ImageRef | None = Field(default=None, alias="imageTag")
    service: ServiceExposure = Field(
        default_factory=lambda: ServiceExposure.model_validate({"httpPort": 6034}),
    )
    resources: ComponentResources = Field(default_factory=ComponentResources)


class ServerConfig(BaseModel):
    """Configuration for the readyset-server StatefulSet.

    Attributes:
        replication_tables: Schema-qualified tables to replicate
            (``replicationTables``). None replicates everything.
    """

    model_config = _STRICT

    replication_tables: ReplicationTables = Field(default=None, alias="replicationTables")
    statement_logging: bool = Field(default=False, alias="statementLogging")
    image_repository: ImageRef | None = Field(default=None, alias="imageRepository")
    image_tag: ImageRef | None = Field(default=None, alias="imageTag")
    service: ServiceExposure = Field(
        default_factory=lambda: ServiceExposure.model_validate({"httpPort": 6033}),
    )
    resources: ComponentResources = Field(default_factory=ComponentResources)

    @field_validator("replication_tables", mode="before")
    @classmethod
    def split_replication_tables(cls, v: Any) -> Any:
        """Accept the comma separated form used on the command line."""
        if isinstance(v, str):
            v = [part.strip() for part in v.split(",")]
        if isinstance(v, list) and not any(v):
            return None
        return v

    @field_validator("replication_tables")
    @classmethod
    def validate_replication_tables(cls, v: list[str] | None) -> list[str] | None:
        """Every entry must be schema-qualified (``schema.table`` or ``schema.*``)."""
        if v is None:
            return v
        for table in v:
            if not _TABLE_PATTERN.match(table):
                msg = f"'{table}' is not a schema-qualified table (expected schema.table)"
                raise ValueError(msg)
        return v


class ReadysetConfig(BaseModel):
    """Top-level ReadySet deployment configuration (``readyset.*``)."""

    model_config = _STRICT

    deployment: str = Field(..., max_length=63, pattern=_DNS_LABEL_PATTERN)
    authority_address: str = ""
    query_caching_mode: CachingMode = Field(
        default=CachingMode.EXPLICIT, alias="queryCachingMode"
    )
    adapter: AdapterConfig = Field(default_factory=AdapterConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("deployment", mode="before")
    @classmethod
    def require_deployment(cls, v: Any) -> Any:
        """A deployment name has no default and must be supplied."""
        if v is None or (isinstance(v, str) and not v.strip()):
            msg = "is required; set it to a name that uniquely identifies the deployment"
            raise ValueError(msg)
        return _stringify(v)

    @field_validator("authority_address", mode="before")
    @classmethod
    def normalize_authority_address(cls, v: Any) -> Any:
        """Treat null as empty."""
        return "" if v is None else v


class KubernetesConfig(BaseModel):
    """Cluster-level settings (``kubernetes.*``)."""

    model_config = _STRICT

    storage_class: str | None = Field(default=None, alias="storageClass")


class ConsulServerConfig(BaseModel):
    """Bundled Consul server settings (``consul.server.*``)."""

    model_config = _STRICT

    replicas: int = Field(default=3, ge=1)
    bootstrap_expect: int = Field(default=3, ge=1, alias="bootstrapExpect")
    resources: ConsulResources = Field(default_factory=ConsulResources)

    @model_validator(mode="after")
    def check_quorum(self) -> ConsulServerConfig:
        """Quorum size cannot exceed the number of servers."""
        if self.bootstrap_expect > self.replicas:
            msg = (
                f"bootstrapExpect ({self.bootstrap_expect}) must not exceed "
                f"replicas ({self.replicas})"
            )
            raise ValueError(msg)
        return self


class ConsulConfig(BaseModel):
    """Bundled Consul cluster (``consul.*``)."""

    model_config = _STRICT

    enabled: bool = True
    server: ConsulServerConfig = Field(default_factory=ConsulServerConfig)


class ChartValues(BaseModel):
    """The complete, validated values document for one render."""

    model_config = _STRICT

    readyset: ReadysetConfig
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    consul: ConsulConfig = Field(default_factory=ConsulConfig)

    @classmethod
    def from_values(cls, values: dict[str, Any]) -> ChartValues:
        """Validate a merged values mapping.

        Checks run in three passes so that the most actionable problem is
        reported: unknown paths first, then field types and enums, then
        cross-field consistency.

        Args:
            values: Merged values (defaults plus overrides).

        Returns:
            Validated ChartValues.

        Raises:
            ValuesValidationError: Naming every offending path.
        """
        unknown = unknown_paths(values)
        if unknown:
            raise ValuesValidationError([(path, "unknown value path") for path in unknown])

        try:
            chart_values = cls.model_validate(values)
        except ValidationError as e:
            raise ValuesValidationError(validation_issues(e)) from e

        issues = chart_values.consistency_issues()
        if issues:
            raise ValuesValidationError(issues)

        return chart_values

    def consistency_issues(self) -> list[tuple[str, str]]:
        """Check the bundled-Consul versus external-authority rule.

        Exactly one of ``consul.enabled`` and a non-empty
        ``readyset.authority_address`` must hold.

        Returns:
            List of (path, message) tuples; empty when consistent.
        """
        has_address = bool(self.readyset.authority_address.strip())
        if self.consul.enabled and has_address:
            return [
                (
                    "readyset.authority_address",
                    "must be empty while consul.enabled is true; "
                    "set consul.enabled=false to use an external Consul cluster",
                )
            ]
        if not self.consul.enabled and not has_address:
            return [
                (
                    "readyset.authority_address",
                    "is required when consul.enabled is false",
                )
            ]
        return []


def unknown_paths(
    values: dict[str, Any],
    model: type[BaseModel] = ChartValues,
    prefix: str = "",
) -> list[str]:
    """List the dotted paths in ``values`` that the schema does not define.

    Keys are matched against field aliases. Free-form mappings such as
    service annotations accept any key below them.

    Example:
        >>> unknown_paths({"readyset": {"query_caching_mode": "async"}})
        ['readyset.query_caching_mode']
    """
    fields = {(info.alias or name): info for name, info in model.model_fields.items()}
    unknown: list[str] = []

    for key, value in values.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        info = fields.get(key)
        if info is None:
            unknown.append(path)
            continue
        nested = _nested_model(info.annotation) if isinstance(value, dict) else None
        if nested is not None:
            unknown.extend(unknown_paths(value, nested, path))

    return unknown


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    # Parametrized generics such as list[str] are not classes
    if get_origin(annotation) is None and isinstance(annotation, type):
        return annotation if issubclass(annotation, BaseModel) else None
    for arg in get_args(annotation):
        found = _nested_model(arg)
        if found is not None:
            return found
    return None


def validation_issues(error: ValidationError) -> list[tuple[str, str]]:
    """Convert a pydantic ValidationError into (path, message) tuples."""
    issues: list[tuple[str, str]] = []
    for item in error.errors():
        path = ".".join(str(part) for part in item["loc"]) or "<root>"
        message = item["msg"].removeprefix("Value error, ")
        issues.append((path, message))
    return issues


def values_json_schema() -> dict[str, Any]:
    """JSON Schema for the chart values, keyed by their camelCase aliases."""
    schema = ChartValues.model_json_schema(by_alias=True)
    schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
    schema["title"] = "ReadySet chart values"
    return schema


def schema_errors(values: dict[str, Any], schema: dict[str, Any] | None = None) -> list[str]:
    """Validate a values document against the exported JSON Schema.

    This is the check external tooling (``helm lint``, editors) applies
    to values files. It is structural only; the Consul/authority rule is
    enforced by ``ChartValues.from_values``.

    Args:
        values: Values document (typically defaults merged with overrides).
        schema: Schema to validate against. Defaults to ``values_json_schema()``.

    Returns:
        List of "path: message" strings; empty when the document conforms.
    """
    validator = jsonschema.Draft202012Validator(schema or values_json_schema())
    errors: list[str] = []
    for error in sorted(validator.iter_errors(values), key=lambda e: list(e.absolute_path)):
        path = ".".join(str(p) for p in error.absolute_path)
        errors.append(f"{path}: {error.message}" if path else error.message)
    return errors


__all__: list[str] = [
    "AdapterConfig",
    "CachingMode",
    "ChartValues",
    "ComponentLimits",
    "ComponentResources",
    "ConsulConfig",
    "ConsulResources",
    "ConsulServerConfig",
    "CpuMemory",
    "DatabaseType",
    "KubernetesConfig",
    "ReadysetConfig",
    "ResourceRequests",
    "ServerConfig",
    "ServiceExposure",
    "ServiceType",
    "schema_errors",
    "unknown_paths",
    "validation_issues",
    "values_json_schema",
]
