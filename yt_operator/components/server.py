"""Managed workload of a native cluster server, backed by a StatefulSet."""

from typing import Any

from yt_operator.components.microservice import CONFIG_MOUNT_PATH, Microservice
from yt_operator.labeller import Labeller
from yt_operator.resources import ServiceResource, StatefulSet, Workload
from yt_operator.ytconfig import GeneratorFunc


class Server(Microservice):
    """Server process group with stable identities behind a headless service."""

    def __init__(
        self,
        labeller: Labeller,
        api,
        image: str,
        instance_count: int,
        binary_path: str,
        config_file_name: str,
        stateful_set_name: str,
        service_name: str,
        generator: GeneratorFunc,
        port: int,
        image_pull_secrets: list[str] | None = None,
        config_overrides: str | None = None,
    ):
        self.binary_path = binary_path
        self.config_file_name = config_file_name
        super().__init__(
            labeller,
            api,
            image,
            instance_count,
            generator,
            None,
            config_file_name,
            stateful_set_name,
            service_name,
            port=port,
            image_pull_secrets=image_pull_secrets,
            config_overrides=config_overrides,
        )

    def _make_workload(self, name: str, service_name: str) -> Workload:
        return StatefulSet(name, self.labeller, self.api, service_name)

    def _make_service(self, name: str) -> ServiceResource:
        return ServiceResource(name, self.labeller, self.api, self.port, headless=True)

    def _main_container(self) -> dict[str, Any]:
        container = super()._main_container()
        container["command"] = [
            self.binary_path,
            "--config",
            f"{CONFIG_MOUNT_PATH}/{self.config_file_name}",
        ]
        container["ports"] = [{"name": "rpc", "containerPort": self.port}]
        return container
