"""Reconciler for a managed workload: one config, one process group, one endpoint.

A microservice is a service that does not take part in the cluster's native
protocol, such as the web UI. Server components reuse the same reconciler with
a StatefulSet as their process group.
"""

import copy
from typing import Any

from yt_operator.components.config_helper import CONFIG_HASH_ANNOTATION, ConfigHelper
from yt_operator.labeller import Labeller
from yt_operator.logging_config import get_logger
from yt_operator.resources import Deployment, ServiceResource, Workload, fetch_all, sync_all
from yt_operator.ytconfig import UI_HTTP_PORT, GeneratorFunc, ReloadCheckerFunc

logger = get_logger(__name__)

CONFIG_VOLUME = "config"
CONFIG_MOUNT_PATH = "/config"


class Microservice:
    """Owns a config map, a replica-managed process group and a service."""

    def __init__(
        self,
        labeller: Labeller,
        api,
        image: str,
        instance_count: int,
        generator: GeneratorFunc,
        reload_checker: ReloadCheckerFunc | None,
        config_file_name: str,
        workload_name: str,
        service_name: str,
        port: int = UI_HTTP_PORT,
        image_pull_secrets: list[str] | None = None,
        config_overrides: str | None = None,
    ):
        """Initialize the microservice.

        Args:
            labeller: Naming and labels of the owning component
            api: Orchestration layer proxy
            image: Desired container image
            instance_count: Desired replica count
            generator: Renders the config file content
            reload_checker: Decides whether a config change must restart processes
            config_file_name: File name of the config inside the config map
            workload_name: Name of the process group
            service_name: Name of the network endpoint
            port: Port exposed by the endpoint
            image_pull_secrets: Secrets used to pull the image
            config_overrides: Config map with entries merged over the generated config
        """
        self.labeller = labeller
        self.api = api
        self.image = image
        self.instance_count = instance_count
        self.port = port
        self.image_pull_secrets = image_pull_secrets or []
        self.config_helper = ConfigHelper(
            labeller,
            api,
            labeller.main_config_map_name(),
            config_file_name,
            generator,
            reload_checker,
            overrides_name=config_overrides,
        )
        # Extra containers appended after the main one
        self.sidecars: list[dict[str, Any]] = []
        self.workload = self._make_workload(workload_name, service_name)
        self.service = self._make_service(service_name)

        self._built_workload: dict[str, Any] | None = None
        self._built_service: dict[str, Any] | None = None
        self._built_config: dict[str, Any] | None = None

    def _make_workload(self, name: str, service_name: str) -> Workload:
        return Deployment(name, self.labeller, self.api)

    def _make_service(self, name: str) -> ServiceResource:
        return ServiceResource(name, self.labeller, self.api, self.port)

    def _main_container(self) -> dict[str, Any]:
        return {
            "name": self.labeller.component_kind,
            "image": self.image,
            "volumeMounts": [{"name": CONFIG_VOLUME, "mountPath": CONFIG_MOUNT_PATH}],
        }

    def fetch(self) -> None:
        fetch_all([self.config_helper, self.workload, self.service])

    def need_sync(self) -> bool:
        return (
            self.config_helper.need_sync()
            or not self.service.exists()
            or self.workload.need_sync(self.instance_count, self.image, self._sidecar_images())
        )

    def _sidecar_images(self) -> list[tuple[str, str | None]]:
        return [(s["name"], s.get("image")) for s in self.sidecars]

    def need_update(self) -> bool:
        """Whether the deployed version differs from the desired image."""
        return self.workload.need_update(self.image)

    def _config_hash(self) -> str:
        # Keep the deployed hash unless the pending change requires a restart
        if self.workload.exists() and not self.config_helper.need_reload():
            annotations = (
                self.workload.old_object.get("spec", {})
                .get("template", {})
                .get("metadata", {})
                .get("annotations")
                or {}
            )
            if CONFIG_HASH_ANNOTATION in annotations:
                return annotations[CONFIG_HASH_ANNOTATION]
        return self.config_helper.config_hash()

    def build_workload(self) -> dict[str, Any]:
        if self._built_workload is None:
            manifest = self.workload.build()
            manifest["spec"]["replicas"] = self.instance_count
            template = manifest["spec"]["template"]
            template["metadata"]["annotations"][CONFIG_HASH_ANNOTATION] = self._config_hash()
            pod_spec = template["spec"]
            pod_spec["containers"] = [self._main_container()] + copy.deepcopy(self.sidecars)
            pod_spec["volumes"] = [
                {
                    "name": CONFIG_VOLUME,
                    "configMap": {"name": self.config_helper.config_map.name},
                }
            ]
            if self.image_pull_secrets:
                pod_spec["imagePullSecrets"] = [{"name": s} for s in self.image_pull_secrets]
            self._built_workload = manifest
        return self._built_workload

    def build_service(self) -> dict[str, Any]:
        if self._built_service is None:
            self._built_service = self.service.build()
        return self._built_service

    def build_config(self) -> dict[str, Any]:
        if self._built_config is None:
            self._built_config = self.config_helper.build()
        return self._built_config

    def sync(self) -> None:
        """Apply config, process group and endpoint, in that order.

        Nothing is rolled back on failure; each apply is idempotent and the
        remaining work is retried on the next tick.
        """
        self.build_config()
        self.build_workload()
        self.build_service()
        sync_all([self.config_helper, self.workload, self.service])

    def are_pods_ready(self) -> bool:
        return self.workload.are_pods_ready()

    def remove_pods(self, dry: bool) -> None:
        """Delete the running replicas, keeping config and endpoint."""
        if dry or not self.workload.exists():
            return
        logger.info(f"Removing pods of {self.labeller.component_name}")
        self.workload.remove()

    def are_pods_removed(self) -> bool:
        if self.workload.exists():
            return False
        return not self.api.list_pods(self.labeller.selector_labels())
