"""Web interface, deployed as a microservice next to the cluster."""

import yaml

from yt_operator.components.base import Component, ComponentBase, apply_workload, workload_gate
from yt_operator.components.microservice import Microservice
from yt_operator.exceptions import ConfigurationError
from yt_operator.labeller import Labeller
from yt_operator.models.cluster import Ytsaurus
from yt_operator.status import ComponentStatus
from yt_operator.ytconfig import UI_CONFIG_FILE_NAME, UI_HTTP_PORT, Generator


def _clusters(config: bytes | None) -> list | None:
    if config is None:
        return None
    try:
        return (yaml.safe_load(config) or {}).get("clusters")
    except (yaml.YAMLError, AttributeError):
        return None


class UI(ComponentBase):
    def __init__(self, cfgen: Generator, cluster: Ytsaurus, api, master: Component):
        spec = cluster.spec.ui
        image = (spec.image if spec else None) or cluster.spec.ui_image
        if spec is None or not image:
            raise ConfigurationError(
                f"Cluster {cluster.name} has no UI image",
                "Set spec.ui.image or spec.uiImage",
            )

        labeller = Labeller(cluster.name, cluster.namespace, "ui")
        super().__init__(labeller, cluster, dependencies=[master])
        self.microservice = Microservice(
            labeller,
            api,
            image,
            spec.instance_count,
            cfgen.get_ui_config,
            self._needs_restart,
            UI_CONFIG_FILE_NAME,
            labeller.resource_name(),
            labeller.resource_name("http"),
            port=UI_HTTP_PORT,
            image_pull_secrets=cluster.spec.image_pull_secrets,
            config_overrides=cluster.spec.config_overrides,
        )

    def _needs_restart(self, deployed: bytes | None) -> bool:
        # Only a change of the cluster list requires a restart
        return _clusters(deployed) != _clusters(self.microservice.config_helper.desired())

    def fetch(self) -> None:
        self.microservice.fetch()

    def are_pods_removed(self) -> bool:
        return self.microservice.are_pods_removed()

    def _do_sync(self, dry: bool) -> ComponentStatus:
        gate = workload_gate(self, self.microservice, dry)
        if gate is not None:
            return gate
        return apply_workload(self.microservice, dry)
