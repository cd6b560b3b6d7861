"""Unit tests for the SPYT setup pipeline."""

import pytest

from tests.fakes import make_cluster
from yt_operator.models.cluster import Spyt as SpytResource
from yt_operator.reconciler import reconcile_spyt
from yt_operator.scripts import sha256_string
from yt_operator.status import SyncStatus

SECRET_NAME = "test-spyt-secret"
USER_JOB = "test-spyt-init-job-user"
ENVIRONMENT_JOB = "test-spyt-init-job-spyt-environment"


@pytest.fixture
def spyt_resource():
    return SpytResource.from_resource(
        {
            "metadata": {"name": "spyt", "namespace": "default"},
            "spec": {"image": "ytsaurus/spyt:1.76", "ytsaurus": "test"},
        }
    )


def test_blocked_until_cluster_is_running(api, spyt_resource):
    """Test that nothing happens before the cluster is Running."""
    status = reconcile_spyt(spyt_resource, make_cluster(state="Initializing"), api)

    assert status.sync_status == SyncStatus.BLOCKED
    assert status.reason == "cluster is not running"
    assert api.mutations == []


def test_pipeline(api, spyt_resource, running_cluster):
    """Test the steps of the pipeline, one per tick."""
    status = reconcile_spyt(spyt_resource, running_cluster, api)
    assert status.sync_status == SyncStatus.PENDING
    assert status.reason == "token secret"
    token = api.get("Secret", SECRET_NAME)["stringData"]["YT_TOKEN"]
    assert len(token) == 30
    assert token.isalpha()

    status = reconcile_spyt(spyt_resource, running_cluster, api)
    assert status.reason == "user creation"
    script = api.get("Job", USER_JOB)["spec"]["template"]["spec"]["containers"][0]["command"][2]
    assert "spyt_releaser" in script
    assert sha256_string(token) in script
    assert token not in script

    status = reconcile_spyt(spyt_resource, running_cluster, api)
    assert status.reason == "spyt-environment creation"
    container = api.get("Job", ENVIRONMENT_JOB)["spec"]["template"]["spec"]["containers"][0]
    assert container["image"] == "ytsaurus/spyt:1.76"
    assert container["command"] == ["bash", "-c", "/entrypoint.sh"]
    env = {item["name"]: item["value"] for item in container["env"]}
    assert env == {
        "YT_PROXY": "test-http-proxies.default.svc.cluster.local:80",
        "YT_TOKEN": token,
        "EXTRA_PUBLISH_CLUSTER_OPTIONS": "--ignore-existing",
    }

    api.clear_mutations()
    status = reconcile_spyt(spyt_resource, running_cluster, api)
    assert status.is_ready()
    assert api.mutations == []
    assert api.get("Secret", SECRET_NAME)["stringData"]["YT_TOKEN"] == token


def test_failed_user_job_stops_pipeline(api, spyt_resource, running_cluster):
    """Test that the environment job waits for the user job."""
    api.auto_complete = False
    reconcile_spyt(spyt_resource, running_cluster, api)
    reconcile_spyt(spyt_resource, running_cluster, api)
    api.get("Job", USER_JOB)["status"] = {"conditions": [{"type": "Failed", "status": "True"}]}

    status = reconcile_spyt(spyt_resource, running_cluster, api)

    assert status.sync_status == SyncStatus.BLOCKED
    assert status.reason == "user failed"
    assert api.get("Job", ENVIRONMENT_JOB) is None
