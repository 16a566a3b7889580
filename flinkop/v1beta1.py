"""FlinkApplication resource types, API version v1beta1 of group flink.k8s.io."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from flinkop.scheme import GroupKind, GroupResource, GroupVersion, Scheme, SchemeBuilder
from flinkop.v1alpha1 import _from_json, _json, _now, _to_json

__all__ = [
    "FlinkApplicationPhase",
    "DeploymentMode",
    "DeleteMode",
    "ScaleMode",
    "HealthStatus",
    "JobState",
    "FlinkMethod",
    "FlinkApplicationVersion",
    "EnvironmentConfig",
    "JobManagerConfig",
    "TaskManagerConfig",
    "SavepointInfo",
    "FlinkClusterStatus",
    "FlinkJobStatus",
    "FlinkApplicationVersionStatus",
    "FlinkApplicationError",
    "FlinkApplicationStatus",
    "FlinkApplicationSpec",
    "FlinkApplication",
    "FlinkApplicationList",
    "deep_copy_json_value",
    "is_running_phase",
    "is_blue_green_deployment_mode",
    "get_max_running_jobs",
    "kind",
    "resource",
    "add_to_scheme",
]

VERSION = "v1beta1"
GROUP_NAME = "flink.k8s.io"
FLINK_APPLICATION_KIND = "FlinkApplication"
SCHEME_GROUP_VERSION = GroupVersion(GROUP_NAME, VERSION)


def deep_copy_json_value(value: Any) -> Any:
    """Deep-copy a JSON-like value; raise TypeError for anything else."""
    if isinstance(value, dict):
        copied: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"cannot deep copy mapping with key of type {type(key).__name__}")
            copied[key] = deep_copy_json_value(item)
        return copied
    if isinstance(value, list):
        return [deep_copy_json_value(item) for item in value]
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    raise TypeError(f"cannot deep copy {type(value).__name__}")


class FlinkApplicationPhase(str, Enum):
    NEW = ""
    UPDATING = "Updating"
    RESCALING = "Rescaling"
    CLUSTER_STARTING = "ClusterStarting"
    SUBMITTING_JOB = "SubmittingJob"
    RUNNING = "Running"
    SAVEPOINTING = "Savepointing"
    CANCELLING = "Cancelling"
    DELETING = "Deleting"
    RECOVERING = "Recovering"
    ROLLING_BACK_JOB = "RollingBackJob"
    DEPLOY_FAILED = "DeployFailed"
    DUAL_RUNNING = "DualRunning"

    def verbose_string(self) -> str:
        return "New" if self is FlinkApplicationPhase.NEW else self.value


FLINK_APPLICATION_PHASES = (
    FlinkApplicationPhase.NEW,
    FlinkApplicationPhase.UPDATING,
    FlinkApplicationPhase.RESCALING,
    FlinkApplicationPhase.CLUSTER_STARTING,
    FlinkApplicationPhase.SUBMITTING_JOB,
    FlinkApplicationPhase.RUNNING,
    FlinkApplicationPhase.SAVEPOINTING,
    FlinkApplicationPhase.CANCELLING,
    FlinkApplicationPhase.DELETING,
    FlinkApplicationPhase.RECOVERING,
    FlinkApplicationPhase.DEPLOY_FAILED,
    FlinkApplicationPhase.ROLLING_BACK_JOB,
    FlinkApplicationPhase.DUAL_RUNNING,
)


class DeploymentMode(str, Enum):
    SINGLE = "Single"
    DUAL = "Dual"
    BLUE_GREEN = "BlueGreen"


class DeleteMode(str, Enum):
    SAVEPOINT = "Savepoint"
    FORCE_CANCEL = "ForceCancel"
    NONE = "None"


class ScaleMode(str, Enum):
    NEW_CLUSTER = "NewCluster"
    IN_PLACE = "InPlace"


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
    SAVEPOINT_JOB = "SavepointJob"


class FlinkApplicationVersion(str, Enum):
    BLUE = "blue"
    GREEN = "green"


def is_running_phase(phase: FlinkApplicationPhase) -> bool:
    return phase in (FlinkApplicationPhase.RUNNING, FlinkApplicationPhase.DEPLOY_FAILED)


def is_blue_green_deployment_mode(mode: DeploymentMode | str | None) -> bool:
    """True only for the BlueGreen mode; Dual is kept apart for compatibility."""
    if mode == DeploymentMode.DUAL:
        return False
    return mode == DeploymentMode.BLUE_GREEN


def get_max_running_jobs(mode: DeploymentMode | str | None) -> int:
    """Number of jobs that may run side by side in the given mode."""
    return 2 if is_blue_green_deployment_mode(mode) else 1


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
    tolerations: list[dict[str, Any]] = _json("tolerations", omitempty=True, default_factory=list)
    affinity: dict[str, Any] | None = _json("affinity", omitempty=True, default=None)


@dataclass
class TaskManagerConfig:
    resources: dict[str, Any] | None = _json("resources", omitempty=True, default=None)
    env_config: EnvironmentConfig = _json("envConfig", default_factory=EnvironmentConfig)
    task_slots: int | None = _json("taskSlots", omitempty=True, default=None)
    off_heap_memory_fraction: float | None = _json("offHeapMemoryFraction", omitempty=True, default=None)
    system_memory_fraction: float | None = _json("systemMemoryFraction", omitempty=True, default=None)
    node_selector: dict[str, str] = _json("nodeSelector", omitempty=True, default_factory=dict)
    tolerations: list[dict[str, Any]] = _json("tolerations", omitempty=True, default_factory=list)
    affinity: dict[str, Any] | None = _json("affinity", omitempty=True, default=None)


@dataclass
class SavepointInfo:
    savepoint_location: str = _json("savepointLocation", omitempty=True, default="")


@dataclass
class FlinkClusterStatus:
    cluster_overview_url: str = _json("clusterOverviewURL", omitempty=True, default="")
    health: HealthStatus | None = _json("health", omitempty=True, default=None)
    number_of_task_managers: int = _json("numberOfTaskManagers", omitempty=True, default=0)
    healthy_task_managers: int = _json("healthyTaskManagers", omitempty=True, default=0)
    number_of_task_slots: int = _json("numberOfTaskSlots", omitempty=True, default=0)
    available_task_slots: int = _json("availableTaskSlots", default=0)


@dataclass
class FlinkJobStatus:
    job_overview_url: str = _json("jobOverviewURL", omitempty=True, default="")
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
    restore_path: str = _json("restorePath", omitempty=True, default="")
    restore_time: datetime | None = _json("restoreTime", omitempty=True, default=None)
    last_failing_time: datetime | None = _json("lastFailingTime", omitempty=True, default=None)
    last_checkpoint_path: str = _json("lastCheckpoint", omitempty=True, default="")
    last_checkpoint_time: datetime | None = _json("lastCheckpointTime", omitempty=True, default=None)
    running_tasks: int = _json("runningTasks", omitempty=True, default=0)
    total_tasks: int = _json("totalTasks", omitempty=True, default=0)


@dataclass
class FlinkApplicationVersionStatus:
    version: FlinkApplicationVersion | None = _json("appVersion", omitempty=True, default=None)
    version_hash: str = _json("versionHash", omitempty=True, default="")
    cluster_status: FlinkClusterStatus = _json("clusterStatus", default_factory=FlinkClusterStatus)
    job_status: FlinkJobStatus = _json("jobStatus", default_factory=FlinkJobStatus)


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


@dataclass
class FlinkApplicationStatus:
    phase: FlinkApplicationPhase = _json("phase", default=FlinkApplicationPhase.NEW)
    started_at: datetime | None = _json("startedAt", omitempty=True, default=None)
    last_updated_at: datetime | None = _json("lastUpdatedAt", omitempty=True, default=None)
    reason: str = _json("reason", omitempty=True, default="")
    deploy_version: FlinkApplicationVersion | None = _json("deployVersion", omitempty=True, default=None)
    updating_version: FlinkApplicationVersion | None = _json("updatingVersion", omitempty=True, default=None)
    cluster_status: FlinkClusterStatus = _json("clusterStatus", default_factory=FlinkClusterStatus)
    job_status: FlinkJobStatus = _json("jobStatus", default_factory=FlinkJobStatus)
    version_statuses: list[FlinkApplicationVersionStatus] = _json(
        "versionStatuses", omitempty=True, default_factory=list
    )
    failed_deploy_hash: str = _json("failedDeployHash", omitempty=True, default="")
    rollback_hash: str = _json("rollbackHash", omitempty=True, default="")
    deploy_hash: str = _json("deployHash", default="")
    updating_hash: str = _json("updatingHash", omitempty=True, default="")
    teardown_hash: str = _json("teardownHash", omitempty=True, default="")
    in_place_updated_from_hash: str = _json("inPlaceUpdatedFromHash", omitempty=True, default="")
    savepoint_trigger_id: str = _json("savepointTriggerId", omitempty=True, default="")
    savepoint_path: str = _json("savepointPath", omitempty=True, default="")
    retry_count: int = _json("retryCount", omitempty=True, default=0)
    last_seen_error: FlinkApplicationError | None = _json("lastSeenError", omitempty=True, default=None)
    # Kept in the status to refuse migrations between Dual and BlueGreen.
    deployment_mode: DeploymentMode | None = _json("deploymentMode", omitempty=True, default=None)

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
    service_account_name: str = _json("serviceAccountName", omitempty=True, default="")
    security_context: dict[str, Any] | None = _json("securityContext", omitempty=True, default=None)
    flink_config: dict[str, Any] = _json("flinkConfig", default_factory=dict)
    flink_version: str = _json("flinkVersion", default="")
    task_manager_config: TaskManagerConfig = _json("taskManagerConfig", default_factory=TaskManagerConfig)
    job_manager_config: JobManagerConfig = _json("jobManagerConfig", default_factory=JobManagerConfig)
    jar_name: str = _json("jarName", default="")
    parallelism: int = _json("parallelism", default=0)
    entry_class: str = _json("entryClass", omitempty=True, default="")
    program_args: str = _json("programArgs", omitempty=True, default="")
    # Deprecated: savepoint_path supersedes it.
    savepoint_info: SavepointInfo = _json("savepointInfo", default_factory=SavepointInfo)
    savepoint_path: str = _json("savepointPath", omitempty=True, default="")
    savepoint_disabled: bool = _json("savepointDisabled", default=False)
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
    scale_mode: ScaleMode | None = _json("scaleMode", omitempty=True, default=None)
    allow_non_restored_state: bool = _json("allowNonRestoredState", omitempty=True, default=False)
    force_rollback: bool = _json("forceRollback", default=False)
    max_checkpoint_restore_age_seconds: int | None = _json(
        "maxCheckpointRestoreAgeSeconds", omitempty=True, default=None
    )
    tear_down_version_hash: str = _json("tearDownVersionHash", omitempty=True, default="")


@dataclass
class FlinkApplication:
    api_version: str = _json("apiVersion", omitempty=True, default="")
    kind: str = _json("kind", omitempty=True, default="")
    metadata: dict[str, Any] = _json("metadata", default_factory=dict)
    spec: FlinkApplicationSpec = _json("spec", default_factory=FlinkApplicationSpec)
    status: FlinkApplicationStatus = _json("status", default_factory=FlinkApplicationStatus)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlinkApplication:
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
    def from_dict(cls, data: dict[str, Any]) -> FlinkApplicationList:
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