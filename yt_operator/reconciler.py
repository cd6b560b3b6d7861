"""Outer reconcile loop: one tick over every component of one cluster.

Components are built fresh for every tick, fetched, asked for their status in
dependency order and synced when they are not Ready. The cluster state machine
decides when a rolling update starts and when it moves past the pods-removal
barrier. Retrying is left to the next tick.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from pydantic import ValidationError as PydanticValidationError

from yt_operator.components import UI, ComponentBase, ExecNode, Master, Spyt
from yt_operator.exceptions import ConfigurationError, KubernetesError
from yt_operator.logging_config import get_logger
from yt_operator.models.cluster import (
    ClusterState,
    ClusterStatus,
    Spyt as SpytResource,
    UpdateState,
    Ytsaurus,
)
from yt_operator.status import ComponentStatus, SyncStatus
from yt_operator.ytconfig import Generator

logger = get_logger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one tick."""

    status: ClusterStatus
    component_statuses: dict[str, ComponentStatus] = field(default_factory=dict)
    changed: bool = False
    error: KubernetesError | None = None

    def all_ready(self) -> bool:
        return all(s.is_ready() for s in self.component_statuses.values())


def build_components(
    cluster: Ytsaurus, api, cfgen: Generator | None = None
) -> list[ComponentBase]:
    """Wire the components of a cluster, upstreams first."""
    cfgen = cfgen or Generator(cluster)
    master = Master(cfgen, cluster, api)
    components: list[ComponentBase] = [master]
    for spec in cluster.spec.exec_nodes:
        components.append(ExecNode(cfgen, cluster, api, master, spec))
    if cluster.spec.ui is not None:
        components.append(UI(cfgen, cluster, api, master))
    return components


def fetch_components(components: list[ComponentBase], max_workers: int = 4) -> None:
    """Fetch siblings concurrently; they only read independent objects."""
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(component.fetch) for component in components]
        # result() re-raises the first FetchError
        for future in futures:
            future.result()


def compute_statuses(components: list[ComponentBase]) -> dict[str, ComponentStatus]:
    """Dry pass over every component, in dependency order."""
    return {component.get_name(): component.status() for component in components}


def load_cluster(api, name: str) -> Ytsaurus:
    """Read and parse a cluster resource.

    Raises:
        FetchError: If the resource cannot be read
        ConfigurationError: If its spec is invalid
    """
    try:
        return Ytsaurus.from_resource(api.get_cluster(name))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Cluster {name} has an invalid spec", str(e))


def load_spyt(api, name: str) -> SpytResource:
    """Read and parse a SPYT resource.

    Raises:
        FetchError: If the resource cannot be read
        ConfigurationError: If its spec is invalid
    """
    try:
        return SpytResource.from_resource(api.get_spyt(name))
    except PydanticValidationError as e:
        raise ConfigurationError(f"SPYT {name} has an invalid spec", str(e))


class ClusterReconciler:
    """Drives one cluster resource towards its spec, one tick at a time."""

    def __init__(self, api, fetch_workers: int = 4):
        self.api = api
        self.fetch_workers = fetch_workers

    def _sync_components(
        self,
        components: list[ComponentBase],
        statuses: dict[str, ComponentStatus],
    ) -> KubernetesError | None:
        """Sync components that are neither Ready nor waiting on something else.

        Blocked components are left alone: their wet pass would make no change.
        A failed sync stops the chain for this tick and is returned.
        """
        for component in components:
            name = component.get_name()
            status = statuses[name]
            if status.is_ready() or status.sync_status == SyncStatus.NEED_LOCAL_UPDATE:
                continue
            if status.sync_status == SyncStatus.BLOCKED:
                logger.debug(f"Skipping sync of {name}, blocked on {status.reason}")
                continue
            logger.info(f"Syncing component {name} ({status})")
            try:
                component.sync()
            except KubernetesError as e:
                logger.error(f"Failed to sync component {name}: {e.message}")
                return e
        return None

    def reconcile(self, cluster: Ytsaurus) -> ReconcileResult:
        """Run one tick and return the new cluster status.

        Raises:
            FetchError: If observed state cannot be loaded
            InvariantViolationError: If a status pass failed
        """
        current = cluster.status

        if current.state == ClusterState.CREATED:
            logger.info(f"Cluster {cluster.name} created, starting initialization")
            new_status = ClusterStatus(state=ClusterState.INITIALIZING)
            return ReconcileResult(status=new_status, changed=True)

        components = build_components(cluster, self.api)
        fetch_components(components, self.fetch_workers)
        statuses = compute_statuses(components)
        for name, status in statuses.items():
            logger.debug(f"Component {name}: {status}")

        if current.state == ClusterState.UPDATING:
            return self._reconcile_update(cluster, components, statuses)

        if current.state == ClusterState.RUNNING:
            need_update = [
                name
                for name, status in statuses.items()
                if status.sync_status == SyncStatus.NEED_LOCAL_UPDATE
            ]
            if need_update:
                logger.info(f"Starting local update of components {need_update}")
                new_status = ClusterStatus(
                    state=ClusterState.UPDATING,
                    update_state=UpdateState.WAITING_FOR_PODS_REMOVAL,
                    local_updating_components=need_update,
                )
                return ReconcileResult(
                    status=new_status, component_statuses=statuses, changed=True
                )

        error = self._sync_components(components, statuses)
        result = ReconcileResult(status=current, component_statuses=statuses, error=error)

        if current.state == ClusterState.INITIALIZING and result.all_ready():
            logger.info(f"Cluster {cluster.name} is running")
            result.status = ClusterStatus(state=ClusterState.RUNNING)
            result.changed = True

        return result

    def tick(self, name: str) -> ReconcileResult:
        """Load a cluster, run one tick over it and persist its new status.

        Raises:
            FetchError: If observed state cannot be loaded
            ConfigurationError: If the cluster spec is invalid
            InvariantViolationError: If a status pass failed
            KubernetesError: If a component failed to sync or the status could not be saved
        """
        cluster = load_cluster(self.api, name)
        result = self.reconcile(cluster)
        if result.changed:
            self.api.patch_cluster_status(name, cluster.with_status(result.status).status_patch())
            logger.info(f"Cluster {name} is now {result.status.state.value}")
        if result.error is not None:
            raise result.error
        return result

    def _reconcile_update(
        self,
        cluster: Ytsaurus,
        components: list[ComponentBase],
        statuses: dict[str, ComponentStatus],
    ) -> ReconcileResult:
        current = cluster.status
        in_scope = [c for c in components if current.updates_component(c.get_name())]

        if current.update_state == UpdateState.WAITING_FOR_PODS_REMOVAL:
            error = self._sync_components(components, statuses)
            result = ReconcileResult(status=current, component_statuses=statuses, error=error)
            if error is None and all(c.are_pods_removed() for c in in_scope):
                logger.info(f"Pods of {[c.get_name() for c in in_scope]} removed")
                result.status = current.model_copy(
                    update={"update_state": UpdateState.WAITING_FOR_PODS_CREATION}
                )
                result.changed = True
            return result

        error = self._sync_components(components, statuses)
        result = ReconcileResult(status=current, component_statuses=statuses, error=error)
        if result.all_ready():
            logger.info(f"Update of cluster {cluster.name} finished")
            result.status = ClusterStatus(state=ClusterState.RUNNING)
            result.changed = True
        return result


def reconcile_spyt(
    spyt: SpytResource, cluster: Ytsaurus, api, cfgen: Generator | None = None
) -> ComponentStatus:
    """Run one tick over a SPYT resource and return its status after the tick.

    Raises:
        FetchError: If observed state cannot be loaded
        KubernetesError: If a step failed to apply
    """
    component = Spyt(cfgen or Generator(cluster), spyt, cluster, api)
    component.fetch()
    status = component.status()
    if not status.is_ready():
        logger.info(f"Syncing {component.get_name()} ({status})")
        component.sync()
    return status
