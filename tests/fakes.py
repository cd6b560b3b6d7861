"""In-memory stand-in for the Kubernetes API used by the operator."""

import copy
from typing import Any

from yt_operator.exceptions import ConflictError, FetchError, KubernetesError


class FakeApiProxy:
    """Stores objects by (kind, name) and records every mutating call.

    Workloads become ready and jobs complete as soon as they are written,
    unless auto_ready or auto_complete is switched off.
    """

    def __init__(self, namespace: str = "default"):
        self.namespace = namespace
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.pods: dict[str, list[dict[str, Any]]] = {}
        self.mutations: list[tuple[str, str, str]] = []
        self.auto_ready = True
        self.auto_complete = True
        self.fail_on: set[tuple[str, str]] = set()
        self.fail_fetch = False
        self.fetch_count = 0
        self.clusters: dict[str, dict[str, Any]] = {}
        self.spyts: dict[str, dict[str, Any]] = {}
        self._version = 0

    # helpers for tests

    def get(self, kind: str, name: str) -> dict[str, Any] | None:
        return self.objects.get((kind, name))

    def put(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """Store an object as if an external actor wrote it."""
        stored = self._store(manifest["kind"], copy.deepcopy(manifest))
        return stored

    def names(self, kind: str) -> list[str]:
        return sorted(name for k, name in self.objects if k == kind)

    def clear_mutations(self) -> None:
        self.mutations.clear()

    def _store(self, kind: str, obj: dict[str, Any]) -> dict[str, Any]:
        self._version += 1
        metadata = obj.setdefault("metadata", {})
        metadata["resourceVersion"] = str(self._version)
        metadata["generation"] = metadata.get("generation", 0) + 1
        if kind in ("Deployment", "StatefulSet") and self.auto_ready:
            replicas = obj.get("spec", {}).get("replicas", 1)
            obj["status"] = {
                "replicas": replicas,
                "readyReplicas": replicas,
                "observedGeneration": metadata["generation"],
            }
        if kind == "Job" and self.auto_complete:
            obj["status"] = {"succeeded": 1, "conditions": [{"type": "Complete", "status": "True"}]}
        self.objects[(kind, metadata["name"])] = obj
        return copy.deepcopy(obj)

    def _check_failure(self, verb: str, kind: str, name: str) -> None:
        if (kind, verb) in self.fail_on:
            if verb == "update":
                raise ConflictError(f"Conflict writing {kind} {name}")
            raise KubernetesError(f"Failed to {verb} {kind} {name}")

    # ApiProxy interface

    def fetch(self, kind: str, name: str) -> dict[str, Any] | None:
        self.fetch_count += 1
        if self.fail_fetch:
            raise FetchError(f"Failed to fetch {kind} {name}")
        obj = self.objects.get((kind, name))
        return copy.deepcopy(obj) if obj is not None else None

    def create(self, kind: str, manifest: dict[str, Any]) -> dict[str, Any]:
        name = manifest["metadata"]["name"]
        self._check_failure("create", kind, name)
        self.mutations.append(("create", kind, name))
        return self._store(kind, copy.deepcopy(manifest))

    def update(self, kind: str, name: str, manifest: dict[str, Any]) -> dict[str, Any]:
        self._check_failure("update", kind, name)
        current = self.objects.get((kind, name))
        expected = manifest.get("metadata", {}).get("resourceVersion")
        if current is not None and expected and current["metadata"]["resourceVersion"] != expected:
            raise ConflictError(f"Conflict writing {kind} {name}")
        self.mutations.append(("update", kind, name))
        obj = copy.deepcopy(manifest)
        if current is not None:
            obj["metadata"]["generation"] = current["metadata"].get("generation", 0)
        return self._store(kind, obj)

    def delete(self, kind: str, name: str) -> None:
        self._check_failure("delete", kind, name)
        self.mutations.append(("delete", kind, name))
        self.objects.pop((kind, name), None)

    def list_pods(self, labels: dict[str, str]) -> list[dict[str, Any]]:
        component = labels.get("app.kubernetes.io/component")
        return copy.deepcopy(self.pods.get(component, []))

    def get_cluster(self, name: str) -> dict[str, Any]:
        if name not in self.clusters:
            raise FetchError(f"Cluster {name} not found")
        return copy.deepcopy(self.clusters[name])

    def get_spyt(self, name: str) -> dict[str, Any]:
        if name not in self.spyts:
            raise FetchError(f"SPYT {name} not found")
        return copy.deepcopy(self.spyts[name])

    def patch_cluster_status(self, name: str, body: dict[str, Any]) -> None:
        self.mutations.append(("patch", "Ytsaurus", name))
        self.clusters[name]["status"] = copy.deepcopy(body["status"])


def cluster_resource(
    state: str = "Running",
    update_state: str = "None",
    local_updating_components: list[str] | None = None,
    exec_nodes: list[dict[str, Any]] | None = None,
    ui: bool = False,
    core_image: str = "ytsaurus/ytsaurus:23.2",
    config_overrides: str | None = None,
    name: str = "test",
) -> dict[str, Any]:
    """Cluster custom object the way it arrives from the API."""
    spec: dict[str, Any] = {
        "coreImage": core_image,
        "primaryMasters": {"instanceCount": 1},
        "execNodes": exec_nodes if exec_nodes is not None else [{"name": "default"}],
    }
    if ui:
        spec["ui"] = {"image": "ytsaurus/ui:stable", "instanceCount": 1}
    if config_overrides is not None:
        spec["configOverrides"] = config_overrides
    status: dict[str, Any] = {"state": state, "updateState": update_state}
    if local_updating_components is not None:
        status["localUpdatingComponents"] = local_updating_components
    return {
        "metadata": {"name": name, "namespace": "default"},
        "spec": spec,
        "status": status,
    }


def make_cluster(**kwargs):
    """Parsed cluster, named "test" by default; accepts the arguments of cluster_resource."""
    from yt_operator.models.cluster import Ytsaurus

    return Ytsaurus.from_resource(cluster_resource(**kwargs))


def converge(api: FakeApiProxy, cluster, max_ticks: int = 10) -> None:
    """Sync every component of the cluster until all of them are Ready."""
    from yt_operator.reconciler import build_components

    for _ in range(max_ticks):
        components = build_components(cluster, api)
        for component in components:
            component.fetch()
        statuses = [component.status() for component in components]
        if all(s.is_ready() for s in statuses):
            return
        for component, status in zip(components, statuses):
            if not status.is_ready():
                component.sync()
    raise AssertionError("cluster did not converge")
