import json

import pytest
import requests
import responses

from flinkop.testutil import ConflictError, PhaseError, TestUtil, vertex_running
from flinkop.v1beta1 import (
    DeploymentMode,
    FlinkApplication,
    FlinkApplicationPhase,
    FlinkApplicationVersion,
    FlinkApplicationVersionStatus,
    FlinkJobStatus,
)

API = "http://localhost:8001"
NS = "flinkoperatortest"
APPS = f"{API}/apis/flink.k8s.io/v1beta1/namespaces/{NS}/flinkapplications"
PODS = f"{API}/api/v1/namespaces/{NS}/pods"
NEW_IMAGE = "lyft/operator-test-app:b1b3cb8e8f98bd41f44f9c89f8462ce255e0d13f.2"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


def make_util(namespace=NS):
    return TestUtil(
        namespace,
        image="flinkk8soperator:latest",
        checkpoint_dir="/tmp/checkpoints",
        api_url=API,
        phase_poll_interval=0,
        task_poll_interval=0,
        task_settle_time=0,
        conflict_retry_interval=0,
    )


def app_doc(name="simple", phase="Running", job_id="job1", image="img:1", finalizers=None):
    metadata = {"name": name, "resourceVersion": "1"}
    if finalizers is not None:
        metadata["finalizers"] = finalizers
    return {
        "metadata": metadata,
        "spec": {"image": image, "jarName": "app.jar", "parallelism": 2},
        "status": {"phase": phase, "deployHash": "abc", "jobStatus": {"jobID": job_id}},
    }


def blue_green_app(phase, statuses, deploy_hash="abc"):
    app = FlinkApplication(metadata={"name": "bg"})
    app.spec.deployment_mode = DeploymentMode.BLUE_GREEN
    app.status.phase = phase
    app.status.deploy_hash = deploy_hash
    app.status.version_statuses = [
        FlinkApplicationVersionStatus(job_status=FlinkJobStatus(job_id=job_id)) for job_id in statuses
    ]
    return app


def test_vertex_running_cases():
    assert vertex_running({"status": "RUNNING", "parallelism": 2, "tasks": {"RUNNING": 2.0}})
    assert not vertex_running({"status": "RUNNING", "parallelism": 2, "tasks": {"RUNNING": 1.0}})
    assert not vertex_running({"status": "RUNNING", "parallelism": 2})
    assert not vertex_running({"status": "CREATED", "parallelism": 2, "tasks": {"RUNNING": 2}})


def test_flink_api_url_single_mode():
    app = FlinkApplication(metadata={"name": "simple"})
    url = make_util().flink_api_url(app, "jobs")
    assert url == f"{API}/api/v1/namespaces/{NS}/services/simple:8081/proxy/jobs"


def test_flink_api_url_blue_green_prefers_updating_version():
    app = blue_green_app(FlinkApplicationPhase.RUNNING, ["a"])
    app.status.deploy_version = FlinkApplicationVersion.GREEN
    app.status.updating_version = FlinkApplicationVersion.BLUE
    tu = make_util()
    assert "services/bg-blue:8081/proxy/jobs" in tu.flink_api_url(app, "jobs")
    app.status.updating_version = None
    assert "services/bg-green:8081/proxy/jobs" in tu.flink_api_url(app, "jobs")


def test_dual_mode_is_not_blue_green():
    app = FlinkApplication(metadata={"name": "dual"})
    app.spec.deployment_mode = DeploymentMode.DUAL
    app.status.job_status.job_id = "j"
    tu = make_util()
    assert tu.flink_api_url(app, "x").endswith("services/dual:8081/proxy/x")
    assert tu.get_job_id(app) == "j"


def test_read_flink_application_sets_checkpoint_dir(tmp_path):
    doc = {
        "metadata": {"name": "operator-test-app", "labels": {}},
        "spec": {
            "image": "img:1",
            "jarName": "app.jar",
            "parallelism": 3,
            "volumes": [{"name": "checkpoints", "hostPath": {"path": "/somewhere"}}],
        },
    }
    path = tmp_path / "test_app.yaml"
    path.write_text(json.dumps(doc))
    app = make_util().read_flink_application(path)
    assert app.spec.volumes[0]["hostPath"]["path"] == "/tmp/checkpoints"
    assert app.metadata["name"] == "operator-test-app"
    assert app.spec.parallelism == 3


def test_create_flink_application_posts_typed_body(rsps):
    rsps.add(responses.POST, APPS, json=app_doc(phase=""))
    app = FlinkApplication(metadata={"name": "simple"})
    app.spec.image = "img:1"
    created = make_util().create_flink_application(app)
    body = json.loads(rsps.calls[0].request.body)
    assert body["apiVersion"] == "flink.k8s.io/v1beta1"
    assert body["kind"] == "FlinkApplication"
    assert body["spec"]["image"] == "img:1"
    assert created.metadata["name"] == "simple"


def test_get_flink_application(rsps):
    rsps.add(responses.GET, f"{APPS}/simple", json=app_doc())
    app = make_util().get_flink_application("simple")
    assert app.status.phase is FlinkApplicationPhase.RUNNING
    assert app.status.job_status.job_id == "job1"


def test_wait_for_phase_polls_until_reached(rsps):
    rsps.add(responses.GET, f"{APPS}/simple", json=app_doc(phase="ClusterStarting"))
    rsps.add(responses.GET, f"{APPS}/simple", json=app_doc(phase="Running"))
    result = make_util().wait_for_phase(
        "simple", FlinkApplicationPhase.RUNNING, FlinkApplicationPhase.DEPLOY_FAILED
    )
    assert result is None
    assert len(rsps.calls) == 2
    assert all(call.request.url == f"{APPS}/simple" for call in rsps.calls)


def test_wait_for_phase_raises_on_failure_phase(rsps):
    rsps.add(responses.GET, f"{APPS}/simple", json=app_doc(phase="DeployFailed"))
    with pytest.raises(PhaseError, match="application entered DeployFailed phase"):
        make_util().wait_for_phase("simple", FlinkApplicationPhase.RUNNING, FlinkApplicationPhase.DEPLOY_FAILED)


def test_update_retries_on_conflict(rsps):
    rsps.add(responses.GET, f"{APPS}/simple", json=app_doc())
    rsps.add(responses.PUT, f"{APPS}/simple", status=409, json={"reason": "Conflict"})
    rsps.add(responses.PUT, f"{APPS}/simple", json=app_doc(image=NEW_IMAGE))

    def change(app):
        app.spec.image = NEW_IMAGE

    updated = make_util().update("simple", change)
    puts = [c for c in rsps.calls if c.request.method == "PUT"]
    assert len(puts) == 2
    assert json.loads(puts[-1].request.body)["spec"]["image"] == NEW_IMAGE
    assert updated.spec.image == NEW_IMAGE


def test_update_raises_other_errors(rsps):
    rsps.add(responses.GET, f"{APPS}/simple", json=app_doc())
    rsps.add(responses.PUT, f"{APPS}/simple", status=422)
    with pytest.raises(requests.HTTPError):
        make_util().update("simple", lambda app: None)


def test_conflict_error_on_direct_write(rsps):
    rsps.add(responses.PUT, f"{APPS}/simple", status=409)
    tu = make_util()
    with pytest.raises(ConflictError):
        tu._update_app(FlinkApplication(metadata={"name": "simple"}))


def test_get_job_id_blue_green_uses_current_index():
    tu = make_util()
    assert tu.get_job_id(blue_green_app(FlinkApplicationPhase.DUAL_RUNNING, ["a", "b"])) == "b"
    assert tu.get_job_id(blue_green_app(FlinkApplicationPhase.RUNNING, ["a", "b"])) == "a"


@pytest.mark.parametrize(
    "phase,statuses,deploy_hash,expected",
    [
        (FlinkApplicationPhase.RUNNING, ["a", "b"], "abc", 0),
        (FlinkApplicationPhase.DEPLOY_FAILED, ["a", "b"], "abc", 0),
        (FlinkApplicationPhase.UPDATING, ["a", "b"], "", 0),
        (FlinkApplicationPhase.SAVEPOINTING, ["a", "b"], "abc", 0),
        (FlinkApplicationPhase.DELETING, ["a", "b"], "abc", 0),
        (FlinkApplicationPhase.DUAL_RUNNING, ["a", "b"], "abc", 1),
        (FlinkApplicationPhase.SUBMITTING_JOB, ["a", "b"], "abc", 1),
        (FlinkApplicationPhase.SUBMITTING_JOB, ["a"], "abc", 0),
    ],
)
def test_get_current_status_index(phase, statuses, deploy_hash, expected):
    app = blue_green_app(phase, statuses, deploy_hash)
    assert make_util().get_current_status_index(app) == expected


def test_current_status_index_single_mode_capped_at_zero():
    app = blue_green_app(FlinkApplicationPhase.SUBMITTING_JOB, ["a", "b"])
    app.spec.deployment_mode = DeploymentMode.SINGLE
    assert make_util().get_current_status_index(app) == 0


def test_job_manager_and_task_manager_pods(rsps):
    pods = {
        "items": [
            {"metadata": {"name": "simple-abc-jm-1"}},
            {"metadata": {"name": "simple-abc-tm-1"}},
            {"metadata": {"name": "simple-abc-tm-2"}},
        ]
    }
    rsps.add(responses.GET, PODS, json=pods)
    tu = make_util()
    assert tu.get_job_manager_pod() == "simple-abc-jm-1"
    assert tu.get_task_manager_pods() == ["simple-abc-tm-1", "simple-abc-tm-2"]


def test_job_manager_pod_missing(rsps):
    rsps.add(responses.GET, PODS, json={"items": [{"metadata": {"name": "other"}}]})
    with pytest.raises(LookupError, match="no jobmanager pod found"):
        make_util().get_job_manager_pod()


def test_flink_api_get_and_failure(rsps):
    tu = make_util()
    app = FlinkApplication(metadata={"name": "simple"})
    rsps.add(responses.GET, tu.flink_api_url(app, "overview"), json={"taskmanagers": 2})
    rsps.add(responses.GET, tu.flink_api_url(app, "broken"), status=500)
    assert tu.flink_api_get(app, "overview") == {"taskmanagers": 2}
    with pytest.raises(requests.HTTPError, match="request failed with code 500"):
        tu.flink_api_get(app, "broken")


def test_flink_api_patch_uses_plain_service(rsps):
    tu = make_util()
    app = blue_green_app(FlinkApplicationPhase.RUNNING, ["a"])
    app.status.deploy_version = FlinkApplicationVersion.BLUE
    url = f"{API}/api/v1/namespaces/{NS}/services/bg:8081/proxy/jobs/a"
    rsps.add(responses.PATCH, url, json={})
    assert tu.flink_api_patch(app, "jobs/a") == {}
    assert rsps.calls[0].request.method == "PATCH"


def test_wait_for_all_tasks_running(rsps):
    tu = make_util()
    rsps.add(responses.GET, f"{APPS}/simple", json=app_doc())
    url = tu.flink_api_url(FlinkApplication(metadata={"name": "simple"}), "jobs/job1")
    rsps.add(responses.GET, url, json={"vertices": []})
    rsps.add(
        responses.GET,
        url,
        json={"vertices": [{"status": "RUNNING", "parallelism": 2, "tasks": {"RUNNING": 1}}]},
    )
    rsps.add(
        responses.GET,
        url,
        json={"vertices": [{"status": "RUNNING", "parallelism": 2, "tasks": {"RUNNING": 2}}]},
    )
    tu.wait_for_all_tasks_running("simple")
    job_calls = [c for c in rsps.calls if c.request.url == url]
    assert len(job_calls) == 3


def test_get_job_overview(rsps):
    tu = make_util()
    app = FlinkApplication.from_dict(app_doc())
    jobs = {"jobs": [{"id": "other", "status": "RUNNING"}, {"id": "job1", "status": "CANCELED"}]}
    rsps.add(responses.GET, tu.flink_api_url(app, "/jobs"), json=jobs)
    assert tu.get_job_overview(app) == {"id": "job1", "status": "CANCELED"}


def test_cleanup_strips_finalizers_and_deletes_namespace(rsps):
    listing = {
        "items": [
            app_doc(name="a", finalizers=["simple.finalizers.test.com"]),
            app_doc(name="b"),
        ]
    }
    rsps.add(responses.GET, APPS, json=listing)
    rsps.add(responses.PUT, f"{APPS}/a", json=app_doc(name="a"))
    rsps.add(responses.DELETE, f"{API}/api/v1/namespaces/{NS}", json={})
    result = make_util().cleanup()
    assert result is None
    methods = [c.request.method for c in rsps.calls]
    assert methods == ["GET", "PUT", "DELETE"]
    assert json.loads(rsps.calls[1].request.body)["metadata"]["finalizers"] == []
    assert rsps.calls[2].request.url == f"{API}/api/v1/namespaces/{NS}"


def test_cleanup_leaves_default_namespace(rsps):
    result = make_util("default").cleanup()
    assert result is None
    assert len(rsps.calls) == 0