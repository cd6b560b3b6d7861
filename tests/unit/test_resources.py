"""Unit tests for owned Kubernetes objects."""

import base64

import pytest

from yt_operator.exceptions import ConflictError
from yt_operator.labeller import Labeller
from yt_operator.resources import (
    ConfigMapResource,
    Deployment,
    JobResource,
    ServiceResource,
    StatefulSet,
    StringSecret,
)


@pytest.fixture
def labeller():
    return Labeller("test", "default", "master")


def test_labeller_names():
    """Test resource names derived from cluster, kind and suffix."""
    pool = Labeller("test", "default", "exec-node", "gpu")
    default_pool = Labeller("test", "default", "exec-node", "default")

    assert pool.component_name == "exec-node-gpu"
    assert pool.resource_name() == "test-exec-node-gpu"
    assert pool.resource_name("headless") == "test-exec-node-gpu-headless"
    assert pool.main_config_map_name() == "test-exec-node-gpu-config"
    assert default_pool.component_name == "exec-node"
    assert default_pool.init_job_name("user") == "test-exec-node-init-job-user"


def test_labels_include_selector(labeller):
    """Test that every object label set contains the selector labels."""
    labels = labeller.labels()

    assert labeller.selector_labels().items() <= labels.items()
    assert labels["app.kubernetes.io/managed-by"] == "yt-operator"


def test_sync_creates_then_updates(api, labeller):
    """Test that sync creates an absent object and updates an existing one."""
    config_map = ConfigMapResource("test-master-config", labeller, api)
    config_map.fetch()
    config_map.build()["data"]["a"] = "1"
    config_map.sync()

    again = ConfigMapResource("test-master-config", labeller, api)
    again.fetch()
    again.build()["data"]["a"] = "2"
    again.sync()

    assert api.mutations == [
        ("create", "ConfigMap", "test-master-config"),
        ("update", "ConfigMap", "test-master-config"),
    ]
    assert api.get("ConfigMap", "test-master-config")["data"] == {"a": "2"}
    assert again.get_data("a") == "2"


def test_update_carries_observed_resource_version(api, labeller):
    """Test that a write based on stale state is rejected."""
    config_map = ConfigMapResource("test-master-config", labeller, api)
    config_map.fetch()
    config_map.sync()

    stale = ConfigMapResource("test-master-config", labeller, api)
    stale.fetch()
    api.put(api.get("ConfigMap", "test-master-config"))

    with pytest.raises(ConflictError):
        stale.sync()


def test_build_is_memoized(api, labeller):
    """Test that decorations of the built manifest are kept."""
    config_map = ConfigMapResource("test-master-config", labeller, api)

    config_map.build()["data"]["extra"] = "value"

    assert config_map.build()["data"] == {"extra": "value"}


def test_secret_values(api, labeller):
    """Test reading base64 data and plain string data."""
    encoded = base64.b64encode(b"from-data").decode("ascii")
    api.put(
        {
            "kind": "Secret",
            "metadata": {"name": "test-master-secret"},
            "data": {"A": encoded},
            "stringData": {"B": "from-string-data"},
        }
    )
    secret = StringSecret("test-master-secret", labeller, api)
    secret.fetch()

    assert secret.get_value("A") == ("from-data", True)
    assert secret.get_value("B") == ("from-string-data", True)
    assert secret.get_value("C") == ("", False)


def test_secret_need_sync(api, labeller):
    """Test that an empty expected value only requires presence."""
    api.put(
        {"kind": "Secret", "metadata": {"name": "test-master-secret"}, "stringData": {"A": "x"}}
    )
    secret = StringSecret("test-master-secret", labeller, api)
    secret.fetch()

    assert not secret.need_sync("A", "")
    assert not secret.need_sync("A", "x")
    assert secret.need_sync("A", "y")
    assert secret.need_sync("B", "")


def test_headless_service(api, labeller):
    """Test the headless flavor of a service."""
    service = ServiceResource("test-master-headless", labeller, api, 9010, headless=True)

    manifest = service.build()

    assert manifest["spec"]["clusterIP"] == "None"
    assert manifest["spec"]["selector"] == labeller.selector_labels()
    assert manifest["spec"]["ports"][0]["port"] == 9010


def test_stateful_set_skeleton(api, labeller):
    """Test that a StatefulSet points at its governing service."""
    stateful_set = StatefulSet("test-master", labeller, api, "test-master-headless")

    manifest = stateful_set.build()

    assert manifest["apiVersion"] == "apps/v1"
    assert manifest["spec"]["serviceName"] == "test-master-headless"
    assert manifest["spec"]["selector"]["matchLabels"] == labeller.selector_labels()


def _deployment(api, labeller, image="img:1", replicas=2):
    deployment = Deployment("test-ui", labeller, api)
    deployment.fetch()
    manifest = deployment.build()
    manifest["spec"]["replicas"] = replicas
    manifest["spec"]["template"]["spec"]["containers"] = [{"name": "ui", "image": image}]
    deployment.sync()
    return deployment


def test_workload_need_sync_and_update(api, labeller):
    """Test drift detection on replicas and image."""
    absent = Deployment("test-ui", labeller, api)
    absent.fetch()
    assert absent.need_sync(2, "img:1")
    assert not absent.need_update("img:2")

    deployment = _deployment(api, labeller)

    assert not deployment.need_sync(2, "img:1")
    assert deployment.need_sync(3, "img:1")
    assert deployment.need_sync(2, "img:2")
    assert deployment.need_sync(2, "img:1", [("logger", "busybox")])
    assert deployment.need_update("img:2")
    assert not deployment.need_update("img:1")


def test_workload_readiness(api, labeller):
    """Test readiness from ready replicas and observed generation."""
    api.auto_ready = False
    deployment = _deployment(api, labeller)
    assert not deployment.are_pods_ready()

    stored = api.get("Deployment", "test-ui")
    stored["status"] = {"readyReplicas": 2, "observedGeneration": 0}
    deployment.fetch()
    assert not deployment.are_pods_ready()

    stored["status"]["observedGeneration"] = stored["metadata"]["generation"]
    deployment.fetch()
    assert deployment.are_pods_ready()


def test_workload_remove(api, labeller):
    """Test that removal deletes the object and forgets it."""
    deployment = _deployment(api, labeller)

    deployment.remove()

    assert not deployment.exists()
    assert api.get("Deployment", "test-ui") is None
    assert api.mutations[-1] == ("delete", "Deployment", "test-ui")


def test_job_conditions(api, labeller):
    """Test completion and failure read from job conditions."""
    job = JobResource("test-init-job", labeller, api)
    job.fetch()
    assert not job.completed()
    assert not job.failed()

    api.auto_complete = False
    api.put(
        {
            "kind": "Job",
            "metadata": {"name": "test-init-job"},
            "status": {"conditions": [{"type": "Failed", "status": "True"}]},
        }
    )
    job.fetch()

    assert job.failed()
    assert not job.completed()
