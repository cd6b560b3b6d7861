"""Pool of exec nodes, blocked on the masters and extendable with sidecars."""

from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from yt_operator.components.base import Component, ComponentBase, apply_workload, workload_gate
from yt_operator.components.server import Server
from yt_operator.exceptions import ValidationError
from yt_operator.labeller import Labeller
from yt_operator.logging_config import get_logger
from yt_operator.models.cluster import ExecNodesSpec, Ytsaurus
from yt_operator.status import ComponentStatus, SyncStatus, waiting_status
from yt_operator.ytconfig import EXEC_NODE_CONFIG_FILE_NAME, NODE_RPC_PORT, Generator

logger = get_logger(__name__)

EXEC_NODE_BINARY = "/usr/bin/ytserver-node"


class SidecarContainer(BaseModel):
    """Container appended to the exec node pods. Only the name is required."""

    model_config = ConfigDict(extra="allow")

    name: str
    image: str | None = None


def parse_sidecar(spec: str) -> dict[str, Any]:
    """Parse a YAML container definition.

    Raises:
        ValidationError: If the string is not a YAML mapping describing a container
    """
    try:
        data = yaml.safe_load(spec)
    except yaml.YAMLError as e:
        raise ValidationError("Sidecar is not valid YAML", str(e))

    if not isinstance(data, dict):
        raise ValidationError("Sidecar must be a YAML mapping", f"Got: {spec!r}")

    try:
        container = SidecarContainer.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("Sidecar is not a valid container", str(e))

    return container.model_dump(exclude_none=True)


class ExecNode(ComponentBase):
    def __init__(
        self,
        cfgen: Generator,
        cluster: Ytsaurus,
        api,
        master: Component,
        spec: ExecNodesSpec,
    ):
        labeller = Labeller(cluster.name, cluster.namespace, "exec-node", spec.name)
        super().__init__(labeller, cluster, dependencies=[master])
        self.master = master
        self.sidecars = list(spec.sidecars)
        self.server = Server(
            labeller,
            api,
            spec.image or cluster.spec.core_image,
            spec.instance_count,
            EXEC_NODE_BINARY,
            EXEC_NODE_CONFIG_FILE_NAME,
            labeller.resource_name(),
            labeller.resource_name("headless"),
            lambda: cfgen.get_exec_node_config(spec),
            NODE_RPC_PORT,
            image_pull_secrets=cluster.spec.image_pull_secrets,
            config_overrides=cluster.spec.config_overrides,
        )

    def fetch(self) -> None:
        self.server.fetch()

    def are_pods_removed(self) -> bool:
        return self.server.are_pods_removed()

    def _do_sync(self, dry: bool) -> ComponentStatus:
        gate = workload_gate(self, self.server, dry)
        if gate is not None:
            return gate

        # Parsed in both passes
        try:
            self.server.sidecars = [parse_sidecar(s) for s in self.sidecars]
        except ValidationError as e:
            logger.warning(f"Invalid sidecar for {self.get_name()}: {e.format_message()}")
            return waiting_status(SyncStatus.BLOCKED, "invalid sidecar")

        return apply_workload(self.server, dry)
