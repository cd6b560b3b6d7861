"""kopf handlers that run the reconcile loop inside the operator process.

Creating, changing or resuming a watched resource runs one tick over it, and a
timer keeps ticking while nothing changes so that readiness and pods removal
are observed. Ticks over the same resource never overlap.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

import kopf

from yt_operator.config import OperatorConfig
from yt_operator.exceptions import (
    ConfigurationError,
    FetchError,
    InvariantViolationError,
    KubernetesError,
)
from yt_operator.logging_config import get_logger
from yt_operator.models.cluster import API_GROUP, API_VERSION, CLUSTER_PLURAL, SPYT_PLURAL
from yt_operator.reconciler import (
    ClusterReconciler,
    ReconcileResult,
    load_cluster,
    load_spyt,
    reconcile_spyt,
)
from yt_operator.status import ComponentStatus

logger = get_logger(__name__)

T = TypeVar("T")

_locks: dict[tuple[str, str, str], threading.Lock] = {}


def create_api(config: OperatorConfig, namespace: str):
    """API proxy scoped to the namespace of the handled resource."""
    from yt_operator.apiproxy import ApiProxy

    return ApiProxy(namespace, request_timeout=config.request_timeout)


def _lock(plural: str, namespace: str, name: str) -> threading.Lock:
    return _locks.setdefault((plural, namespace, name), threading.Lock())


def _run_tick(tick: Callable[[], T], retry_delay: float) -> T:
    """Run a tick, turning operator errors into kopf retry decisions.

    Raises:
        kopf.TemporaryError: If the tick failed and is retried after retry_delay
        kopf.PermanentError: If the resource is invalid or a status pass failed
    """
    try:
        return tick()
    except InvariantViolationError as e:
        logger.critical(f"Aborting tick: {e.format_message()}", exc_info=True)
        raise kopf.PermanentError(e.format_message()) from e
    except ConfigurationError as e:
        logger.error(e.format_message())
        raise kopf.PermanentError(e.format_message()) from e
    except (FetchError, KubernetesError) as e:
        logger.error(f"Tick failed, retrying in {retry_delay}s: {e.message}")
        raise kopf.TemporaryError(e.format_message(), delay=retry_delay) from e


def reconcile_cluster(api, name: str, config: OperatorConfig) -> ReconcileResult:
    """One persisted tick over a cluster."""
    reconciler = ClusterReconciler(api, fetch_workers=config.fetch_workers)
    return _run_tick(lambda: reconciler.tick(name), config.reconcile_interval)


def reconcile_spyt_resource(api, name: str, config: OperatorConfig) -> ComponentStatus:
    """One tick over a SPYT resource and the cluster it is bound to."""

    def tick() -> ComponentStatus:
        spyt = load_spyt(api, name)
        cluster = load_cluster(api, spyt.spec.ytsaurus)
        status = reconcile_spyt(spyt, cluster, api)
        logger.info(f"SPYT {name}: {status}")
        return status

    return _run_tick(tick, config.reconcile_interval)


def on_cluster(name: str, namespace: str, memo: kopf.Memo, **_: Any) -> None:
    """Handle a change of a cluster resource or a timer firing for it."""
    config: OperatorConfig = memo.config
    with _lock(CLUSTER_PLURAL, namespace, name):
        reconcile_cluster(create_api(config, namespace), name, config)


def on_spyt(name: str, namespace: str, memo: kopf.Memo, **_: Any) -> None:
    """Handle a change of a SPYT resource or a timer firing for it."""
    config: OperatorConfig = memo.config
    with _lock(SPYT_PLURAL, namespace, name):
        reconcile_spyt_resource(create_api(config, namespace), name, config)


def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Apply operator settings at startup."""
    config: OperatorConfig = memo.config
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix="ytsaurus.tech")
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix="ytsaurus.tech",
        key="last-handled-configuration",
    )
    settings.networking.request_timeout = config.request_timeout
    # Only warnings and errors become Kubernetes events
    settings.posting.level = logging.WARNING


def register_handlers(
    config: OperatorConfig, registry: kopf.OperatorRegistry | None = None
) -> None:
    """Register the startup, cluster and SPYT handlers.

    The timer interval comes from the configuration, so the handlers are
    registered at runtime instead of at import.
    """
    kopf.on.startup(registry=registry)(configure)
    for plural, handler in ((CLUSTER_PLURAL, on_cluster), (SPYT_PLURAL, on_spyt)):
        for register in (kopf.on.create, kopf.on.update, kopf.on.resume):
            register(API_GROUP, API_VERSION, plural, registry=registry)(handler)
        kopf.timer(
            API_GROUP,
            API_VERSION,
            plural,
            interval=config.reconcile_interval,
            id=f"{plural}-timer",
            registry=registry,
        )(handler)
