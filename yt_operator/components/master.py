"""Primary masters: the root of the component dependency graph."""

from yt_operator.components.base import ComponentBase, apply_workload, update_gate
from yt_operator.components.server import Server
from yt_operator.labeller import Labeller
from yt_operator.models.cluster import Ytsaurus
from yt_operator.status import ComponentStatus
from yt_operator.ytconfig import MASTER_CONFIG_FILE_NAME, MASTER_RPC_PORT, Generator

MASTER_BINARY = "/usr/bin/ytserver-master"


class Master(ComponentBase):
    def __init__(self, cfgen: Generator, cluster: Ytsaurus, api):
        spec = cluster.spec.primary_masters
        labeller = Labeller(cluster.name, cluster.namespace, "master")
        super().__init__(labeller, cluster)
        self.server = Server(
            labeller,
            api,
            spec.image or cluster.spec.core_image,
            spec.instance_count,
            MASTER_BINARY,
            MASTER_CONFIG_FILE_NAME,
            labeller.resource_name(),
            cfgen.master_service_name(),
            cfgen.get_master_config,
            MASTER_RPC_PORT,
            image_pull_secrets=cluster.spec.image_pull_secrets,
            config_overrides=cluster.spec.config_overrides,
        )

    def fetch(self) -> None:
        self.server.fetch()

    def are_pods_removed(self) -> bool:
        return self.server.are_pods_removed()

    def _do_sync(self, dry: bool) -> ComponentStatus:
        gate = update_gate(self, self.server, dry)
        if gate is not None:
            return gate
        return apply_workload(self.server, dry)
