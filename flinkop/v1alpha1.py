"""FlinkApplication resource types, API version v1alpha1 of group flink.k8s.io."""

import types
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union, get_args, get_origin

from flinkop.scheme import GroupKind, GroupResource, GroupVersion, Scheme, SchemeBuilder

VERSION = "v1alpha1"
GROUP_NAME = "flink.k8s.io"
FLINK_APPLICATION_KIND = "FlinkApplication"
SCHEME_GROUP_VERSION = GroupVersion(GROUP_NAME, VERSION)

_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class FlinkApplicationPhase(str, Enum):
    NEW = ""
    UPDATING = "Updating"
    CLUSTER_STARTING = "ClusterStarting"
    SUBMITTING_JOB = "SubmittingJob"
    RUNNING = "Running"
    SAVEPOINTING = "Savepointing"
    DELETING = "Deleting"
    ROLLING_BACK_JOB = "RollingBackJob"
    DEPLOY_FAILED = "DeployFailed"

    def verbose_string(self) -> str:
        return "New" if self is FlinkApplicationPhase.NEW else self.value


FLINK_APPLICATION_PHASES = (
    FlinkApplicationPhase.NEW,
    FlinkApplicationPhase.UPDATING,
    FlinkApplicationPhase.CLUSTER_STARTING,
    FlinkApplicationPhase.SUBMITTING_JOB,
    FlinkApplicationPhase.RUNNING,
    FlinkApplicationPhase.SAVEPOINTING,
    FlinkApplicationPhase.DELETING,
    FlinkApplicationPhase.DEPLOY_FAILED,
    FlinkApplicationPhase.ROLLING_BACK_JOB,
)


class DeploymentMode(str, Enum):
    SINGLE = "Single"
    DUAL = "Dual"


class DeleteMode(str, Enum):
    SAVEPOINT = "Savepoint"
    FORCE_CANCEL = "ForceCancel"
    NONE = "None"


class HealthStatus(str, Enum):
    GREEN = "Green"
    YELLOW = "Yellow"
    RED = "Red"


class JobState(str, Enum):
    CREATED = "CREATED"
    RUNNING = "RUNNING"
    FAILING = "FAILING"
    FAILED = "FAILED"
    CANCELLING = "CANCELLING"
    CANCELED = "CANCELED"
    FINISHED = "FINISHED"
    RESTARTING = "RESTARTING"
    SUSPENDED = "SUSPENDED"
    RECONCILING = "RECONCILING"


class FlinkMethod(str, Enum):
    CANCEL_JOB_WITH_SAVEPOINT = "CancelJobWithSavepoint"
    FORCE_CANCEL_JOB = "ForceCancelJob"
    SUBMIT_JOB = "SubmitJob"
    CHECK_SAVEPOINT_STATUS = "CheckSavepointStatus"
    GET_JOBS = "GetJobs"
    GET_CLUSTER_OVERVIEW = "GetClusterOverview"
    GET_LATEST_CHECKPOINT = "GetLatestCheckpoint"
    GET_JOB_CONFIG = "GetJobConfig"
    GET_TASK_MANAGERS = "GetTaskManagers"
    GET_CHECKPOINT_COUNTS = "GetCheckpointCounts"
    GET_JOB_OVERVIEW = "GetJobOverview"


def is_running_phase(phase: FlinkApplicationPhase) -> bool:
    return phase in (FlinkApplicationPhase.RUNNING, FlinkApplicationPhase.DEPLOY_FAILED)


def deep_copy_json_value(value: Any) -> Any:
    """Copy a JSON-like value; raise TypeError for anything else."""
    if isinstance(value, dict):
        copied = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"cannot deep copy map key of type {type(key).__name__}")
            copied[key] = deep_copy_json_value(item)
        return copied
    if isinstance(value, list):
        return [deep_copy_json_value(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"cannot deep copy {type(value).__name__}")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIME_FORMAT)


def _parse_time(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise TypeError(f"expected a timestamp string, got {type(raw).__name__}")
    text = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    return datetime.fromisoformat(text).astimezone(timezone.utc)


def _json(name: str, *, omitempty: bool = False, **kwargs: Any) -> Any:
    return field(metadata={"json": name, "omitempty": omitempty}, **kwargs)


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


def _encode(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _to_json(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _format_time(value)
    if isinstance(value, list):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _to_json(obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if f.metadata.get("omitempty") and _is_empty(value):
            continue
        out[f.metadata["json"]] = _encode(value)
    return out


def _decode(tp: Any, raw: Any) -> Any:
    if raw is None:
        return None
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        inner = [arg for arg in get_args(tp) if arg is not type(None)]
        return _decode(inner[0], raw)
    if origin is list:
        if not isinstance(raw, list):
            raise TypeError(f"expected a list, got {type(raw).__name__}")
        (item_type,) = get_args(tp)
        return [_decode(item_type, item) for item in raw]
    if origin is dict:
        if not isinstance(raw, dict):
            raise TypeError(f"expected a mapping, got {type(raw).__name__}")
        return deep_copy_json_value(raw)
    if tp is Any:
        return deep_copy_json_value(raw)
    if is_dataclass(tp):
        return _from_json(tp, raw)
    if isinstance(tp, type) and issubclass(tp, Enum):
        return tp(raw)
    if tp is datetime:
        return _parse_time(raw)
    if tp is bool:
        if not isinstance(raw, bool):
            raise TypeError(f"expected a boolean, got {type(raw).__name__}")
        return raw
    if tp in (int, float):
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise TypeError(f"expected a number, got {type(raw).__name__}")
        return tp(raw)
    if tp is str:
        if not isinstance(raw, str):
            raise TypeError(f"expected a string, got {type(raw).__name__}")
        return raw
    raise TypeError(f"unsupported field type {tp!r}")


def _from_json(cls: type, data: Any) -> Any:
    if not isinstance(data, dict):
        raise TypeError(f"{cls.__name__} expects a mapping, got {type(data).__name__}")
    kwargs = {}
    for f in fields(cls):
        raw = data.get(f.metadata["json"])
        if raw is not None:
            kwargs[f.name] = _decode(f.type, raw)
    return cls(**kwargs)


@dataclass
class EnvironmentConfig:
    env_from: list[dict[str, Any]] = _json("envFrom", omitempty=True, default_factory=list)
    env: list[dict[str, Any]] = _json("env", omitempty=True, default_factory=list)


@dataclass
class JobManagerConfig:
    resources: dict[str, Any] | None = _json("resources", omitempty=True, default=None)
    env_config: EnvironmentConfig = _json("envConfig", default_factory=EnvironmentConfig)
    replicas: int | None = _json("replicas", omitempty=True, default=None)
    off_heap_memory_fraction: float | None = _json("offHeapMemoryFraction", omitempty=True, default=None)
    system_memory_fraction: float | None = _json("systemMemoryFraction", omitempty=True, default=None)
    node_selector: dict[str, str] = _json("nodeSelector", omitempty=True, default_factory=dict)


@dataclass
class TaskManagerConfig:
    resources: dict[str, Any] | None = _json("resources", omitempty=True, default=None)
    env_config: EnvironmentConfig = _json("envConfig", default_factory=EnvironmentConfig)
    task_slots: int | None = _json("taskSlots", omitempty=True, default=None)
    off_heap_memory_fraction: float | None = _json("offHeapMemoryFraction", omitempty=True, default=None)
    system_memory_fraction: float | None = _json("systemMemoryFraction", omitempty=True, default=None)
    node_selector: dict[str, str] = _json("nodeSelector", omitempty=True, default_factory=dict)


@dataclass
class SavepointInfo:
    savepoint_location: str = _json("savepointLocation", omitempty=True, default="")
    trigger_id: str = _json("triggerId", omitempty=True, default="")


@dataclass
class FlinkClusterStatus:
    health: HealthStatus | None = _json("health", omitempty=True, default=None)
    number_of_task_managers: int = _json("numberOfTaskManagers", omitempty=True, default=0)
    healthy_task_managers: int = _json("healthyTaskManagers", omitempty=True, default=0)
    number_of_task_slots: int = _json("numberOfTaskSlots", omitempty=True, default=0)
    available_task_slots: int = _json("availableTaskSlots", default=0)


@dataclass
class FlinkJobStatus:
    job_id: str = _json("jobID", omitempty=True, default="")
    health: HealthStatus | None = _json("health", omitempty=True, default=None)
    state: JobState | None = _json("state", omitempty=True, default=None)
    jar_name: str = _json("jarName", default="")
    parallelism: int = _json("parallelism", default=0)
    entry_class: str = _json("entryClass", omitempty=True, default="")
    program_args: str = _json("programArgs", omitempty=True, default="")
    allow_non_restored_state: bool = _json("allowNonRestoredState", omitempty=True, default=False)
    start_time: datetime | None = _json("startTime", omitempty=True, default=None)
    job_restart_count: int = _json("jobRestartCount", omitempty=True, default=0)
    completed_checkpoint_count: int = _json("completedCheckpointCount", omitempty=True, default=0)
    failed_checkpoint_count: int = _json("failedCheckpointCount", omitempty=True, default=0)
    last_checkpoint_time: datetime | None = _json("lastCheckpointTime", omitempty=True, default=None)
    restore_path: str = _json("restorePath", omitempty=True, default="")
    restore_time: datetime | None = _json("restoreTime", omitempty=True, default=None)
    last_failing_time: datetime | None = _json("lastFailingTime", omitempty=True, default=None)


@dataclass
class FlinkApplicationError(Exception):
    """A structured application error; its message is ``app_error``."""

    app_error: str = _json("appError", omitempty=True, default="")
    method: FlinkMethod | None = _json("method", omitempty=True, default=None)
    error_code: str = _json("errorCode", omitempty=True, default="")
    is_retryable: bool = _json("isRetryable", omitempty=True, default=False)
    is_fail_fast: bool = _json("isFailFast", omitempty=True, default=False)
    max_retries: int = _json("maxRetries", omitempty=True, default=0)
    last_error_update_time: datetime | None = _json("lastErrorUpdateTime", omitempty=True, default=None)

    __hash__ = Exception.__hash__

    def __post_init__(self) -> None:
        Exception.__init__(self, self.app_error)

    def __str__(self) -> str:
        return self.app_error


def new_flink_application_error(
    app_error: str,
    method: FlinkMethod,
    error_code: str,
    is_retryable: bool,
    is_fail_fast: bool,
    max_retries: int,
) -> FlinkApplicationError:
    """Build an error stamped with the current time."""
    return FlinkApplicationError(
        app_error=app_error,
        method=method,
        error_code=error_code,
        is_retryable=is_retryable,
        is_fail_fast=is_fail_fast,
        max_retries=max_retries,
        last_error_update_time=_now(),
    )


@dataclass
class FlinkApplicationStatus:
    phase: FlinkApplicationPhase = _json("phase", default=FlinkApplicationPhase.NEW)
    started_at: datetime | None = _json("startedAt", omitempty=True, default=None)
    last_updated_at: datetime | None = _json("lastUpdatedAt", omitempty=True, default=None)
    reason: str = _json("reason", omitempty=True, default="")
    cluster_status: FlinkClusterStatus = _json("clusterStatus", default_factory=FlinkClusterStatus)
    job_status: FlinkJobStatus = _json("jobStatus", default_factory=FlinkJobStatus)
    failed_deploy_hash: str = _json("failedDeployHash", omitempty=True, default="")
    rollback_hash: str = _json("rollbackHash", omitempty=True, default="")
    deploy_hash: str = _json("deployHash", default="")
    retry_count: int = _json("retryCount", omitempty=True, default=0)
    last_seen_error: FlinkApplicationError = _json("lastSeenError", default_factory=FlinkApplicationError)

    def update_phase(self, phase: FlinkApplicationPhase, reason: str) -> None:
        """Move to a phase; the first move also stamps the start time."""
        if self.started_at is None:
            now = _now()
            self.started_at = now
            self.last_updated_at = now
        self.reason = reason
        self.phase = phase

    def touch_resource(self, reason: str) -> None:
        self.last_updated_at = _now()
        self.reason = reason


@dataclass
class FlinkApplicationSpec:
    image: str = _json("image", omitempty=True, default="")
    image_pull_policy: str = _json("imagePullPolicy", omitempty=True, default="")
    image_pull_secrets: list[dict[str, Any]] = _json("imagePullSecrets", omitempty=True, default_factory=list)
    flink_config: dict[str, Any] = _json("flinkConfig", default_factory=dict)
    flink_version: str = _json("flinkVersion", default="")
    task_manager_config: TaskManagerConfig = _json("taskManagerConfig", default_factory=TaskManagerConfig)
    job_manager_config: JobManagerConfig = _json("jobManagerConfig", default_factory=JobManagerConfig)
    jar_name: str = _json("jarName", default="")
    parallelism: int = _json("parallelism", default=0)
    entry_class: str = _json("entryClass", omitempty=True, default="")
    program_args: str = _json("programArgs", omitempty=True, default="")
    savepoint_info: SavepointInfo = _json("savepointInfo", default_factory=SavepointInfo)
    deployment_mode: DeploymentMode | None = _json("deploymentMode", omitempty=True, default=None)
    rpc_port: int | None = _json("rpcPort", omitempty=True, default=None)
    blob_port: int | None = _json("blobPort", omitempty=True, default=None)
    query_port: int | None = _json("queryPort", omitempty=True, default=None)
    ui_port: int | None = _json("uiPort", omitempty=True, default=None)
    metrics_query_port: int | None = _json("metricsQueryPort", omitempty=True, default=None)
    volumes: list[dict[str, Any]] = _json("volumes", omitempty=True, default_factory=list)
    volume_mounts: list[dict[str, Any]] = _json("volumeMounts", omitempty=True, default_factory=list)
    restart_nonce: str = _json("restartNonce", default="")
    delete_mode: DeleteMode | None = _json("deleteMode", omitempty=True, default=None)
    allow_non_restored_state: bool = _json("allowNonRestoredState", omitempty=True, default=False)
    force_rollback: bool = _json("forceRollback", default=False)


@dataclass
class FlinkApplication:
    api_version: str = _json("apiVersion", omitempty=True, default="")
    kind: str = _json("kind", omitempty=True, default="")
    metadata: dict[str, Any] = _json("metadata", default_factory=dict)
    spec: FlinkApplicationSpec = _json("spec", default_factory=FlinkApplicationSpec)
    status: FlinkApplicationStatus = _json("status", default_factory=FlinkApplicationStatus)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlinkApplication":
        return _from_json(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _to_json(self)


@dataclass
class FlinkApplicationList:
    api_version: str = _json("apiVersion", omitempty=True, default="")
    kind: str = _json("kind", omitempty=True, default="")
    metadata: dict[str, Any] = _json("metadata", default_factory=dict)
    items: list[FlinkApplication] = _json("items", default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlinkApplicationList":
        return _from_json(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _to_json(self)


def kind(kind: str) -> GroupKind:
    """Qualify a kind with this API group."""
    return SCHEME_GROUP_VERSION.with_kind(kind)


def resource(resource: str) -> GroupResource:
    """Qualify a resource with this API group."""
    return SCHEME_GROUP_VERSION.with_resource(resource)


def _add_known_types(scheme: Scheme) -> None:
    scheme.add_known_types(SCHEME_GROUP_VERSION, FlinkApplication, FlinkApplicationList)


SCHEME_BUILDER = SchemeBuilder(_add_known_types)


def add_to_scheme(scheme: Scheme) -> None:
    SCHEME_BUILDER.add_to_scheme(scheme)