"""Component contract shared by every reconcilable part of a cluster.

A component is fetched, then asked for its status, then synced if it is not
ready. Status and sync run the same decision function: status with dry=True,
which takes the same branches but skips every mutating call, so status never
reports Ready while sync would still have work to do.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from yt_operator.components.microservice import Microservice
from yt_operator.exceptions import InvariantViolationError, OperatorError, ValidationError
from yt_operator.labeller import Labeller
from yt_operator.logging_config import get_logger
from yt_operator.models.cluster import ClusterState, Ytsaurus
from yt_operator.status import ComponentStatus, SyncStatus, simple_status, waiting_status

logger = get_logger(__name__)


class Component(ABC):
    """Fetch / Status / Sync lifecycle of one named cluster part."""

    dependencies: Sequence["Component"] = ()

    @abstractmethod
    def get_name(self) -> str: ...

    @abstractmethod
    def fetch(self) -> None:
        """Load observed state of everything the component owns.

        Raises:
            FetchError: If the orchestration layer cannot be read
        """

    @abstractmethod
    def status(self) -> ComponentStatus:
        """Compute the status without side effects.

        Raises:
            InvariantViolationError: If the side-effect free pass failed
        """

    @abstractmethod
    def sync(self) -> None:
        """Make one step of progress towards the desired state.

        Raises:
            KubernetesError: If applying a change failed; retried next tick
        """


class ComponentBase(Component):
    """Fields and dry/wet plumbing shared by concrete components.

    Attributes:
        labeller: Naming of the component and of what it owns
        cluster: Snapshot of the cluster resource taken for this tick
        dependencies: Upstream components that must be Ready first
    """

    def __init__(
        self,
        labeller: Labeller,
        cluster: Ytsaurus,
        dependencies: Sequence[Component] = (),
    ):
        self.labeller = labeller
        self.cluster = cluster
        self.dependencies = tuple(dependencies)

    def get_name(self) -> str:
        return self.labeller.component_name

    @abstractmethod
    def _do_sync(self, dry: bool) -> ComponentStatus: ...

    def status(self) -> ComponentStatus:
        try:
            return self._do_sync(dry=True)
        except OperatorError as e:
            raise InvariantViolationError(
                f"Status pass of component {self.get_name()} failed",
                e.format_message(),
            ) from e

    def sync(self) -> None:
        status = self._do_sync(dry=False)
        logger.debug(f"Component {self.get_name()} synced, status: {status}")

    def are_pods_removed(self) -> bool:
        """Whether the pods-removal barrier is passed; components without pods pass it."""
        return True

    def blocking_dependency(self) -> Component | None:
        """First upstream component whose fresh status is not Ready."""
        for dependency in self.dependencies:
            if not dependency.status().is_ready():
                return dependency
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_name()!r})"


def update_gate(
    component: ComponentBase, workload: Microservice, dry: bool
) -> ComponentStatus | None:
    """Self-update detection and pods-removal barrier.

    Returns a status when the component must stop here, None when it should
    fall through to dependency gating and normal reconciliation.
    """
    status = component.cluster.status

    if status.state == ClusterState.RUNNING and workload.need_update():
        return simple_status(SyncStatus.NEED_LOCAL_UPDATE)

    # Components outside a local update keep reconciling normally
    if status.waiting_for_pods_removal() and status.updates_component(component.get_name()):
        workload.remove_pods(dry)
        return waiting_status(SyncStatus.UPDATING, "pods removal")

    return None


def workload_gate(
    component: ComponentBase, workload: Microservice, dry: bool
) -> ComponentStatus | None:
    """Update gate followed by dependency gating."""
    gate = update_gate(component, workload, dry)
    if gate is not None:
        return gate

    blocker = component.blocking_dependency()
    if blocker is not None:
        return waiting_status(SyncStatus.BLOCKED, blocker.get_name())

    return None


def apply_workload(workload: Microservice, dry: bool) -> ComponentStatus:
    """Apply step and readiness check of a single managed workload."""
    # Checked in both passes
    try:
        workload.config_helper.override()
    except ValidationError as e:
        logger.warning(
            f"Invalid config override for {workload.labeller.component_name}: "
            f"{e.format_message()}"
        )
        return waiting_status(SyncStatus.BLOCKED, "invalid config override")

    if workload.need_sync():
        if not dry:
            workload.sync()
        return waiting_status(SyncStatus.PENDING, "components")

    if not workload.are_pods_ready():
        return waiting_status(SyncStatus.BLOCKED, "pods")

    return simple_status(SyncStatus.READY)
