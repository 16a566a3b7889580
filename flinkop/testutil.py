"""Helpers for driving FlinkApplications on a cluster from integration tests.

The cluster is reached through a Kubernetes API proxy (``kubectl proxy``).
The same proxy also forwards requests to the Flink REST API of each
application's job manager service.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import requests
import yaml

from flinkop.v1beta1 import (
    FLINK_APPLICATION_KIND,
    SCHEME_GROUP_VERSION,
    FlinkApplication,
    FlinkApplicationList,
    FlinkApplicationPhase,
    get_max_running_jobs,
    is_blue_green_deployment_mode,
    is_running_phase,
)

__all__ = ["ConflictError", "PhaseError", "TestUtil", "vertex_running"]

log = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8001"
MAX_REDIRECTS = 5


class ConflictError(Exception):
    """The API server refused a write because the object changed meanwhile."""


class PhaseError(Exception):
    """An application entered a phase that a wait treats as failure."""


def vertex_running(vertex: dict[str, Any]) -> bool:
    """True when a job vertex is RUNNING with all of its tasks running."""
    if vertex.get("status") != "RUNNING":
        return False
    tasks = vertex.get("tasks")
    if tasks is None:
        return False
    return int(tasks["RUNNING"]) == int(vertex["parallelism"])


def _phase_value(phase: Any) -> str:
    return phase.value if isinstance(phase, FlinkApplicationPhase) else str(phase)


class TestUtil:
    """Creates, watches and inspects FlinkApplications in one namespace."""

    __test__ = False  # keeps pytest from collecting this as a test class

    def __init__(
        self,
        namespace: str,
        image: str = "",
        checkpoint_dir: str = "",
        *,
        api_url: str = DEFAULT_API_URL,
        session: requests.Session | None = None,
        phase_poll_interval: float = 0.2,
        task_poll_interval: float = 0.1,
        task_settle_time: float = 5.0,
        conflict_retry_interval: float = 0.5,
    ) -> None:
        self.namespace = namespace
        self.image = image
        self.checkpoint_dir = checkpoint_dir
        self.api_url = api_url.rstrip("/")
        self.phase_poll_interval = phase_poll_interval
        self.task_poll_interval = task_poll_interval
        self.task_settle_time = task_settle_time
        self.conflict_retry_interval = conflict_retry_interval
        self._session = session if session is not None else requests.Session()
        self._session.max_redirects = MAX_REDIRECTS

    # -- Kubernetes API -------------------------------------------------

    @property
    def _apps_url(self) -> str:
        gv = SCHEME_GROUP_VERSION
        return f"{self.api_url}/apis/{gv.group}/{gv.version}/namespaces/{self.namespace}/flinkapplications"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        resp = self._session.request(method, url, **kwargs)
        if resp.status_code == 409:
            raise ConflictError(resp.text)
        resp.raise_for_status()
        return resp

    def _list_apps(self) -> FlinkApplicationList:
        return FlinkApplicationList.from_dict(self._request("GET", self._apps_url).json())

    def _update_app(self, app: FlinkApplication) -> FlinkApplication:
        url = f"{self._apps_url}/{app.metadata['name']}"
        return FlinkApplication.from_dict(self._request("PUT", url, json=self._body(app)).json())

    def _body(self, app: FlinkApplication) -> dict[str, Any]:
        body = app.to_dict()
        body.setdefault("apiVersion", str(SCHEME_GROUP_VERSION))
        body.setdefault("kind", FLINK_APPLICATION_KIND)
        return body

    def _pod_names(self) -> list[str]:
        url = f"{self.api_url}/api/v1/namespaces/{self.namespace}/pods"
        pods = self._request("GET", url).json().get("items") or []
        return [pod["metadata"]["name"] for pod in pods]

    def read_flink_application(self, path: str | Path) -> FlinkApplication:
        """Load an application from YAML and point its first volume at the checkpoint dir."""
        with Path(path).resolve().open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        app = FlinkApplication.from_dict(data)
        app.spec.volumes[0]["hostPath"]["path"] = self.checkpoint_dir
        return app

    def create_flink_application(self, application: FlinkApplication) -> FlinkApplication:
        resp = self._request("POST", self._apps_url, json=self._body(application))
        return FlinkApplication.from_dict(resp.json())

    def get_flink_application(self, name: str) -> FlinkApplication:
        return FlinkApplication.from_dict(self._request("GET", f"{self._apps_url}/{name}").json())

    def wait_for_phase(self, name: str, phase: Any, *failure_phases: Any) -> None:
        """Poll until the application reaches ``phase``; raise PhaseError on a failure phase."""
        target = _phase_value(phase)
        failures = [_phase_value(p) for p in failure_phases]
        while True:
            current = self.get_flink_application(name).status.phase.value
            if current == target:
                return
            for failure in failures:
                if current == failure:
                    raise PhaseError(f"application entered {failure} phase")
            time.sleep(self.phase_poll_interval)

    def update(self, name: str, update_fn: Callable[[FlinkApplication], None]) -> FlinkApplication:
        """Apply ``update_fn`` to the latest copy and write it back, retrying on conflicts."""
        while True:
            app = self.get_flink_application(name)
            update_fn(app)
            try:
                return self._update_app(app)
            except ConflictError:
                log.warning("Got conflict while updating... retrying")
                time.sleep(self.conflict_retry_interval)

    def get_job_manager_pod(self) -> str:
        for name in self._pod_names():
            if "-jm-" in name:
                return name
        raise LookupError("no jobmanager pod found")

    def get_task_manager_pods(self) -> list[str]:
        return [name for name in self._pod_names() if "-tm-" in name]

    def cleanup(self) -> None:
        """Strip finalizers and delete the namespace; the default namespace is left alone."""
        if self.namespace == "default":
            return
        try:
            apps = self._list_apps()
        except requests.RequestException as exc:
            log.error("Failed to fetch flink apps during cleanup: %s", exc)
        else:
            for app in apps.items:
                if app.metadata.get("finalizers"):
                    app.metadata["finalizers"] = []
                    try:
                        self._update_app(app)
                    except (requests.RequestException, ConflictError):
                        pass
        try:
            self._request("DELETE", f"{self.api_url}/api/v1/namespaces/{self.namespace}")
        except (requests.RequestException, ConflictError) as exc:
            log.error("Failed to clean up after test: %s", exc)

    # -- Flink REST API ---------------------------------------------------

    def _service_url(self, service: str, endpoint: str) -> str:
        return (
            f"{self.api_url}/api/v1/namespaces/{self.namespace}/"
            f"services/{service}:8081/proxy/{endpoint}"
        )

    def flink_api_url(self, app: FlinkApplication, endpoint: str) -> str:
        """URL of a Flink REST endpoint of the application's active cluster."""
        name = app.metadata["name"]
        if not is_blue_green_deployment_mode(app.spec.deployment_mode):
            return self._service_url(name, endpoint)
        version = app.status.updating_version or app.status.deploy_version
        suffix = version.value if version is not None else ""
        return self._service_url(f"{name}-{suffix}", endpoint)

    def _flink_call(self, method: str, url: str) -> Any:
        resp = self._session.request(method, url)
        if not 200 <= resp.status_code < 300:
            raise requests.HTTPError(f"request failed with code {resp.status_code}", response=resp)
        return resp.json()

    def flink_api_get(self, app: FlinkApplication, endpoint: str) -> Any:
        return self._flink_call("GET", self.flink_api_url(app, endpoint))

    def flink_api_patch(self, app: FlinkApplication, endpoint: str) -> Any:
        return self._flink_call("PATCH", self._service_url(app.metadata["name"], endpoint))

    def wait_for_all_tasks_running(self, name: str) -> None:
        """Poll the job until every vertex runs all of its tasks."""
        app = self.get_flink_application(name)
        endpoint = f"jobs/{self.get_job_id(app)}"
        while True:
            body = self.flink_api_get(app, endpoint)
            vertices = body["vertices"]
            if vertices and all(vertex_running(v) for v in vertices):
                break
            time.sleep(self.task_poll_interval)
        # The API may report tasks as running shortly before they really are.
        time.sleep(self.task_settle_time)

    def get_job_overview(self, app: FlinkApplication) -> dict[str, Any] | None:
        jobs = self.flink_api_get(app, "/jobs")
        job_id = self.get_job_id(app)
        return next((job for job in jobs["jobs"] if job.get("id") == job_id), None)

    # -- Status helpers ---------------------------------------------------

    def get_job_id(self, app: FlinkApplication) -> str:
        if is_blue_green_deployment_mode(app.spec.deployment_mode):
            index = self.get_current_status_index(app)
            if index < 0:
                raise IndexError("application has no version statuses")
            return app.status.version_statuses[index].job_status.job_id
        return app.status.job_status.job_id

    def get_current_status_index(self, app: FlinkApplication) -> int:
        status = app.status
        if (
            is_running_phase(status.phase)
            or status.deploy_hash == ""
            or status.phase in (FlinkApplicationPhase.SAVEPOINTING, FlinkApplicationPhase.DELETING)
        ):
            return 0
        if status.phase == FlinkApplicationPhase.DUAL_RUNNING:
            return 1
        # After a teardown the active job count can drop below the maximum.
        active_jobs = len(status.version_statuses)
        return min(active_jobs, get_max_running_jobs(app.spec.deployment_mode)) - 1