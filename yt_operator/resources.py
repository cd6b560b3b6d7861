"""Kubernetes objects owned by components.

Each resource keeps the object observed at fetch time and lazily builds the
desired manifest once per instance, so that callers can amend the built
manifest before it is applied.
"""

import base64
import copy
from collections.abc import Sequence
from typing import Any

from yt_operator.labeller import Labeller
from yt_operator.logging_config import get_logger

logger = get_logger(__name__)


class Resource:
    """One named object of a single kind."""

    kind: str = ""
    api_version: str = "v1"

    def __init__(self, name: str, labeller: Labeller, api):
        self.name = name
        self.labeller = labeller
        self.api = api
        self.old_object: dict[str, Any] | None = None
        self.new_object: dict[str, Any] | None = None

    def fetch(self) -> None:
        self.old_object = self.api.fetch(self.kind, self.name)

    def exists(self) -> bool:
        return self.old_object is not None

    def _skeleton(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self.labeller.object_meta(self.name),
        }

    def build(self) -> dict[str, Any]:
        if self.new_object is None:
            self.new_object = self._skeleton()
        return self.new_object

    def sync(self) -> None:
        """Create the object if absent, otherwise replace it with the built manifest."""
        manifest = self.build()
        if self.old_object is None:
            stored = self.api.create(self.kind, manifest)
        else:
            body = copy.deepcopy(manifest)
            resource_version = self.old_object.get("metadata", {}).get("resourceVersion")
            if resource_version:
                body["metadata"]["resourceVersion"] = resource_version
            stored = self.api.update(self.kind, self.name, body)
        self.old_object = stored


def fetch_all(resources: list) -> None:
    for resource in resources:
        resource.fetch()


def sync_all(resources: list) -> None:
    """Apply resources in order, stopping at the first failure."""
    for resource in resources:
        resource.sync()


class ConfigMapResource(Resource):
    kind = "ConfigMap"

    def _skeleton(self) -> dict[str, Any]:
        return {**super()._skeleton(), "data": {}}

    def get_data(self, key: str) -> str | None:
        if self.old_object is None:
            return None
        return (self.old_object.get("data") or {}).get(key)


class StringSecret(Resource):
    """Secret holding string values."""

    kind = "Secret"

    def _skeleton(self) -> dict[str, Any]:
        return {**super()._skeleton(), "type": "Opaque"}

    def get_value(self, key: str) -> tuple[str, bool]:
        """Return the observed value for a key and whether it is present."""
        if self.old_object is None:
            return "", False
        data = self.old_object.get("data") or {}
        if key in data:
            return base64.b64decode(data[key]).decode("utf-8"), True
        string_data = self.old_object.get("stringData") or {}
        if key in string_data:
            return string_data[key], True
        return "", False

    def need_sync(self, key: str, value: str) -> bool:
        """Whether the key is missing, or differs from a non-empty expected value."""
        current, ok = self.get_value(key)
        if not ok:
            return True
        return bool(value) and current != value


class ServiceResource(Resource):
    """Service selecting the pods of one component."""

    kind = "Service"

    def __init__(self, name: str, labeller: Labeller, api, port: int, headless: bool = False):
        super().__init__(name, labeller, api)
        self.port = port
        self.headless = headless

    def _skeleton(self) -> dict[str, Any]:
        spec = {
            "selector": self.labeller.selector_labels(),
            "ports": [{"name": "rpc", "port": self.port, "targetPort": self.port}],
        }
        if self.headless:
            spec["clusterIP"] = "None"
            spec["publishNotReadyAddresses"] = True
        return {**super()._skeleton(), "spec": spec}


class Workload(Resource):
    """Replica-managed process group: a Deployment or a StatefulSet."""

    api_version = "apps/v1"

    def _skeleton(self) -> dict[str, Any]:
        return {
            **super()._skeleton(),
            "spec": {
                "selector": {"matchLabels": self.labeller.selector_labels()},
                "template": {
                    "metadata": {"labels": self.labeller.labels(), "annotations": {}},
                    "spec": {"containers": []},
                },
            },
        }

    def _observed_spec(self) -> dict[str, Any]:
        return (self.old_object or {}).get("spec") or {}

    def _observed_containers(self) -> list[dict[str, Any]]:
        return self._observed_spec().get("template", {}).get("spec", {}).get("containers") or []

    def observed_image(self) -> str | None:
        containers = self._observed_containers()
        if not containers:
            return None
        return containers[0].get("image")

    def observed_sidecars(self) -> list[tuple[str | None, str | None]]:
        """Name and image of every container after the main one."""
        return [(c.get("name"), c.get("image")) for c in self._observed_containers()[1:]]

    def observed_replicas(self) -> int:
        return self._observed_spec().get("replicas", 1)

    def need_sync(
        self, replicas: int, image: str, sidecars: Sequence[tuple[str, str | None]] = ()
    ) -> bool:
        return (
            not self.exists()
            or self.observed_replicas() != replicas
            or self.observed_image() != image
            or self.observed_sidecars() != list(sidecars)
        )

    def need_update(self, image: str) -> bool:
        """Whether the running version differs from the desired one."""
        return self.exists() and self.observed_image() != image

    def are_pods_ready(self) -> bool:
        if self.old_object is None:
            return False
        status = self.old_object.get("status") or {}
        generation = self.old_object.get("metadata", {}).get("generation")
        observed_generation = status.get("observedGeneration")
        if generation is not None and observed_generation is not None:
            if observed_generation < generation:
                return False
        return status.get("readyReplicas", 0) == self.observed_replicas()

    def remove(self) -> None:
        """Delete the process group and with it its pods."""
        self.api.delete(self.kind, self.name)
        self.old_object = None


class Deployment(Workload):
    kind = "Deployment"


class StatefulSet(Workload):
    kind = "StatefulSet"

    def __init__(self, name: str, labeller: Labeller, api, service_name: str):
        super().__init__(name, labeller, api)
        self.service_name = service_name

    def _skeleton(self) -> dict[str, Any]:
        manifest = super()._skeleton()
        manifest["spec"]["serviceName"] = self.service_name
        manifest["spec"]["podManagementPolicy"] = "Parallel"
        return manifest


class JobResource(Resource):
    """Run-to-completion batch job."""

    kind = "Job"
    api_version = "batch/v1"

    def _skeleton(self) -> dict[str, Any]:
        return {
            **super()._skeleton(),
            "spec": {
                "backoffLimit": 15,
                "template": {
                    "metadata": {"labels": self.labeller.labels()},
                    "spec": {"restartPolicy": "OnFailure", "containers": []},
                },
            },
        }

    def _has_condition(self, condition_type: str) -> bool:
        if self.old_object is None:
            return False
        conditions = (self.old_object.get("status") or {}).get("conditions") or []
        return any(
            c.get("type") == condition_type and c.get("status") == "True" for c in conditions
        )

    def completed(self) -> bool:
        return self._has_condition("Complete")

    def failed(self) -> bool:
        return self._has_condition("Failed")
