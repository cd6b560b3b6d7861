"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

from tests.fakes import FakeApiProxy, make_cluster

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")


@pytest.fixture
def api():
    """Empty in-memory orchestration layer."""
    return FakeApiProxy()


@pytest.fixture
def running_cluster():
    """Cluster in the Running state with the default exec node pool."""
    return make_cluster()


@pytest.fixture
def sample_cluster_resource():
    """Cluster custom object as returned by the API."""
    return {
        "apiVersion": "cluster.ytsaurus.tech/v1",
        "kind": "Ytsaurus",
        "metadata": {"name": "prod", "namespace": "yt"},
        "spec": {
            "coreImage": "ytsaurus/ytsaurus:23.2",
            "uiImage": "ytsaurus/ui:stable",
            "imagePullSecrets": ["registry"],
            "primaryMasters": {"instanceCount": 3, "cellTag": 1},
            "execNodes": [
                {"name": "default", "instanceCount": 4},
                {"name": "gpu", "instanceCount": 2, "image": "ytsaurus/ytsaurus:23.2-gpu"},
            ],
            "ui": {"instanceCount": 1},
        },
        "status": {
            "state": "Updating",
            "updateState": "WaitingForPodsRemoval",
            "localUpdatingComponents": ["exec-node-gpu"],
        },
    }
