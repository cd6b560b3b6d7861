"""Property-based tests for gating of components on their upstreams."""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from tests.fakes import FakeApiProxy, converge, make_cluster
from yt_operator.reconciler import build_components
from yt_operator.status import SyncStatus


@st.composite
def clusters_with_unready_master(draw):
    """A Running cluster whose masters are either absent or not ready."""
    pools = draw(
        st.lists(st.sampled_from(["a", "b", "c", "default"]), min_size=1, max_size=4, unique=True)
    )
    ui = draw(st.booleans())
    master_deployed = draw(st.booleans())
    return pools, ui, master_deployed


@settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(case=clusters_with_unready_master())
def test_dependents_blocked_on_master(case):
    """Property: while the masters are not Ready every dependent is Blocked on them."""
    pools, ui, master_deployed = case
    cluster = make_cluster(exec_nodes=[{"name": pool} for pool in pools], ui=ui)
    api = FakeApiProxy()
    if master_deployed:
        converge(api, cluster)
        api.get("StatefulSet", "test-master")["status"]["readyReplicas"] = 0

    components = build_components(cluster, api)
    for component in components:
        component.fetch()
    master, dependents = components[0], components[1:]

    assert not master.status().is_ready()
    assert len(dependents) == len(pools) + (1 if ui else 0)
    for component in dependents:
        status = component.status()
        assert status.sync_status == SyncStatus.BLOCKED
        assert status.reason == "master"
