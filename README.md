# flinkop

Python types for the `FlinkApplication` custom resource (API group
`flink.k8s.io`, versions `v1alpha1` and `v1beta1`), a small type registry,
and helpers for driving integration tests against a cluster where a Flink
operator runs.

The package depends on `requests` and `pyyaml`. The `test` extra adds
`pytest` and `responses`.

## Resource types

`flinkop.v1beta1` and `flinkop.v1alpha1` describe the resource as dataclasses
and enums: `FlinkApplication`, `FlinkApplicationList`, `FlinkApplicationSpec`,
`FlinkApplicationStatus`, `FlinkJobStatus`, `FlinkClusterStatus`,
`JobManagerConfig`, `TaskManagerConfig`, `EnvironmentConfig`, `SavepointInfo`,
`FlinkApplicationError`, and the enums `FlinkApplicationPhase`,
`DeploymentMode`, `DeleteMode`, `HealthStatus`, `JobState` and `FlinkMethod`.
`v1beta1` adds `ScaleMode`, `FlinkApplicationVersion` (blue/green) and
`FlinkApplicationVersionStatus`.

`FlinkApplication.from_dict()` and `to_dict()` (and the same pair on
`FlinkApplicationList`) convert to and from the JSON/YAML shape used by the
Kubernetes API. Field names follow the API's camelCase keys; fields marked as
optional are left out of `to_dict()` output when empty; timestamps are
`datetime` objects written as UTC `YYYY-MM-DDTHH:MM:SSZ`.

```python
import yaml
from flinkop.v1beta1 import (
    FlinkApplication,
    FlinkApplicationPhase,
    get_max_running_jobs,
    is_blue_green_deployment_mode,
    is_running_phase,
)

with open("app.yaml") as fh:
    app = FlinkApplication.from_dict(yaml.safe_load(fh))

app.status.update_phase(FlinkApplicationPhase.RUNNING, "job started")
print(app.status.phase.verbose_string())           # "Running"
print(is_running_phase(app.status.phase))          # True
print(is_blue_green_deployment_mode(app.spec.deployment_mode))
print(get_max_running_jobs(app.spec.deployment_mode))

document = app.to_dict()
```

Details:

- The phase whose value is the empty string reads as `"New"` through
  `verbose_string()`.
- `is_running_phase()` is true for `Running` and `DeployFailed`.
- `is_blue_green_deployment_mode()` is true only for `BlueGreen`;
  `get_max_running_jobs()` is 2 in that mode and 1 otherwise.
- `FlinkApplicationStatus.update_phase()` sets the phase and reason and, on
  the first call, stamps `started_at` and `last_updated_at`;
  `touch_resource()` stamps `last_updated_at` and sets the reason.
- `FlinkApplicationError` is an exception whose message is its `app_error`.
  `v1alpha1.new_flink_application_error()` builds one stamped with the
  current time.
- `deep_copy_json_value()` copies nested dicts, lists and scalars and raises
  `TypeError` for anything else.

## Registering types

`flinkop.scheme` provides `GroupVersion`, `GroupKind`, `GroupResource`,
`Scheme` and `SchemeBuilder`.

```python
from flinkop.scheme import Scheme, add_to_scheme
from flinkop.v1beta1 import FlinkApplication

scheme = Scheme()
add_to_scheme(scheme)                  # registers the v1beta1 types
print(scheme.kind_for(FlinkApplication()))
# (GroupVersion(group='flink.k8s.io', version='v1beta1'), 'FlinkApplication')
```

`Scheme.type_for()` looks a class up by group version and kind and raises
`KeyError` when none is registered. Each version module also has its own
`add_to_scheme()`, and `kind()` and `resource()` that return group-qualified
`GroupKind` and `GroupResource` values.

## Integration-test helpers

`flinkop.testutil.TestUtil(namespace, image, checkpoint_dir, api_url=...)`
works with FlinkApplications in one namespace over HTTP. It expects a
Kubernetes API proxy at `api_url` (by default `http://localhost:8001`); Flink
REST calls go to each application's job manager service through the same
proxy.

- `read_flink_application(path)` loads a manifest from YAML and points the
  first volume's `hostPath` at the checkpoint directory.
- `create_flink_application()`, `get_flink_application()` and
  `update(name, update_fn)`; `update` retries when the server answers with a
  conflict (`ConflictError`).
- `wait_for_phase(name, phase, *failure_phases)` polls until the phase is
  reached and raises `PhaseError` when a failure phase is entered.
- `flink_api_url()`, `flink_api_get()` and `flink_api_patch()` call the Flink
  REST API; a non-2xx answer raises `requests.HTTPError`. In BlueGreen mode
  the URL targets the service of the updating (or else the deployed) version.
- `wait_for_all_tasks_running(name)` polls the job until every vertex runs
  all of its tasks (see `vertex_running()`), then waits a settle time.
- `get_job_overview()`, `get_job_id()` and `get_current_status_index()`
  read the job of the active version.
- `get_job_manager_pod()` (raises `LookupError` when none is found) and
  `get_task_manager_pods()` find pods by name.
- `cleanup()` strips finalizers from the namespace's applications and deletes
  the namespace, leaving the `default` namespace untouched.

Poll intervals, the settle time and the conflict retry delay are constructor
keyword arguments; a `requests.Session` can be passed in as `session`.

## What this package does not do

It holds no operator: nothing here watches or reconciles FlinkApplications,
starts clusters or submits jobs, and there is no command-line program.
`TestUtil` does not create namespaces or the custom resource definition,
does not deploy an operator, and does not fetch or stream pod logs; it
expects these to be in place and the API proxy to be reachable.