"""Property-based tests for scoping of rolling updates to listed components."""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from tests.fakes import FakeApiProxy, converge, make_cluster
from yt_operator.models.cluster import ClusterState, ClusterStatus, UpdateState
from yt_operator.reconciler import build_components
from yt_operator.status import SyncStatus

POOL_NAMES = ["a", "b", "c", "gpu"]


@st.composite
def pools_and_scope(draw):
    """Exec node pools and an optional list of components under update."""
    pools = draw(st.lists(st.sampled_from(POOL_NAMES), min_size=1, max_size=4, unique=True))
    names = ["master"] + [f"exec-node-{pool}" for pool in pools]
    scope = draw(st.none() | st.lists(st.sampled_from(names), min_size=1, unique=True))
    return pools, scope


@settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(case=pools_and_scope())
def test_only_components_in_scope_remove_pods(case):
    """Property: during pods removal a component is Updating iff the update covers it."""
    pools, scope = case
    exec_nodes = [{"name": pool} for pool in pools]
    api = FakeApiProxy()
    converge(api, make_cluster(exec_nodes=exec_nodes))
    cluster = make_cluster(
        state="Updating",
        update_state="WaitingForPodsRemoval",
        local_updating_components=scope,
        exec_nodes=exec_nodes,
    )

    for component in build_components(cluster, api):
        component.fetch()
        updating = component.status().sync_status == SyncStatus.UPDATING
        assert updating == (scope is None or component.get_name() in scope)


@given(
    scope=st.none() | st.lists(st.text(min_size=1, max_size=12), unique=True),
    name=st.text(min_size=1, max_size=12),
    update_state=st.sampled_from(list(UpdateState)),
)
def test_updates_component_matches_scope(scope, name, update_state):
    """Property: a nil scope covers everything, a list covers exactly its members."""
    status = ClusterStatus(
        state=ClusterState.UPDATING,
        update_state=update_state,
        local_updating_components=scope,
    )

    assert status.updates_component(name) == (scope is None or name in scope)


@given(
    state=st.sampled_from([s for s in ClusterState if s != ClusterState.UPDATING]),
    update_state=st.sampled_from(list(UpdateState)),
    name=st.text(min_size=1, max_size=12),
)
def test_no_update_outside_updating_state(state, update_state, name):
    """Property: update sub-phases are ignored unless the cluster is Updating."""
    status = ClusterStatus(state=state, update_state=update_state)

    assert not status.updates_component(name)
    assert not status.waiting_for_pods_removal()
