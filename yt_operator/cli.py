"""Main CLI entry point for the operator."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from yt_operator.config import OperatorConfig
from yt_operator.exceptions import ConfigurationError, InvariantViolationError, OperatorError
from yt_operator.logging_config import get_logger, setup_logging
from yt_operator.status import ComponentStatus, SyncStatus

app = typer.Typer(
    name="yt-operator",
    help="Reconcile YTsaurus clusters running in Kubernetes",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

_STATUS_STYLES = {
    SyncStatus.READY: "green",
    SyncStatus.PENDING: "yellow",
    SyncStatus.BLOCKED: "red",
    SyncStatus.UPDATING: "blue",
    SyncStatus.NEED_LOCAL_UPDATE: "magenta",
}


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to operator configuration file"
    ),
    namespace: str | None = typer.Option(
        None, "--namespace", "-n", help="Namespace of the cluster resources"
    ),
):
    """Global options for all commands."""
    try:
        config = OperatorConfig.load(config_path) if config_path else OperatorConfig()
    except ConfigurationError as e:
        console.print(f"[red]Configuration Error:[/red] {e.message}")
        if e.details:
            console.print(f"\n{e.details}")
        raise typer.Exit(code=1)

    if namespace:
        config = config.model_copy(update={"namespace": namespace})

    log_path = Path(log_file) if log_file else None
    setup_logging(level=config.log_level, verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")
    ctx.obj = config


def _load_kube_config(config: OperatorConfig) -> None:
    """Load Kubernetes credentials into the default client configuration."""
    from kubernetes import config as kube_config
    from kubernetes.config.config_exception import ConfigException

    try:
        if config.in_cluster:
            kube_config.load_incluster_config()
        else:
            kube_config.load_kube_config(config_file=config.kubeconfig)
    except (ConfigException, OSError) as e:
        raise ConfigurationError(
            f"Failed to load kubeconfig: {e}",
            "Set kubeconfig in the operator configuration, or in_cluster when running in a pod",
        )


def _create_api(config: OperatorConfig):
    """Load Kubernetes credentials and build an API proxy."""
    from yt_operator.apiproxy import ApiProxy

    _load_kube_config(config)
    return ApiProxy(config.namespace, request_timeout=config.request_timeout)


def _format_status(status: ComponentStatus) -> str:
    style = _STATUS_STYLES[status.sync_status]
    return f"[{style}]{status.sync_status.value}[/{style}]"


def _fail(e: OperatorError) -> None:
    logger.error(e.message)
    console.print(f"[red]Error:[/red] {e.message}")
    if e.details:
        console.print(f"\n{e.details}")
    raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show version information."""
    from yt_operator import __version__

    typer.echo(f"yt-operator version {__version__}")


@app.command()
def status(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the cluster resource"),
) -> None:
    """
    Show the status of every component of a cluster.

    The status is computed by a side-effect free pass: nothing is changed.
    """
    from yt_operator.reconciler import (
        build_components,
        compute_statuses,
        fetch_components,
        load_cluster,
    )

    config: OperatorConfig = ctx.obj

    try:
        api = _create_api(config)
        cluster = load_cluster(api, name)
        components = build_components(cluster, api)
        fetch_components(components, config.fetch_workers)
        statuses = compute_statuses(components)
    except OperatorError as e:
        _fail(e)

    console.print(f"[bold cyan]Cluster:[/bold cyan] {cluster.namespace}/{cluster.name}")
    console.print(f"[bold cyan]State:[/bold cyan] {cluster.status.state.value}")
    if cluster.status.is_updating():
        console.print(f"[bold cyan]Update state:[/bold cyan] {cluster.status.update_state.value}")
        scope = cluster.status.local_updating_components
        console.print(f"[bold cyan]Updating:[/bold cyan] {', '.join(scope) if scope else 'all'}")

    table = Table(title="Components")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Reason", style="yellow")

    for component_name, component_status in statuses.items():
        table.add_row(component_name, _format_status(component_status), component_status.reason)

    console.print(table)

    ready = sum(1 for s in statuses.values() if s.is_ready())
    if ready == len(statuses):
        console.print("\n[green]✓ All components are ready[/green]")
    else:
        console.print(f"\n[yellow]⚠ {len(statuses) - ready} component(s) not ready[/yellow]")


@app.command()
def reconcile(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the cluster resource"),
) -> None:
    """
    Run one reconcile tick over a cluster.

    The tick rebuilds the components from the current spec, syncs the ones
    that are not ready and persists the cluster status when it changed.
    Use `run` to keep every cluster of the namespace reconciled.
    """
    from yt_operator.reconciler import ClusterReconciler

    config: OperatorConfig = ctx.obj

    try:
        api = _create_api(config)
        result = ClusterReconciler(api, fetch_workers=config.fetch_workers).tick(name)
    except InvariantViolationError as e:
        logger.critical(f"Aborting tick: {e.format_message()}", exc_info=True)
        console.print(f"[red]Invariant violation:[/red] {e.message}")
        raise typer.Exit(code=2)
    except OperatorError as e:
        _fail(e)

    console.print(f"[green]✓ Tick completed[/green] ({result.status.state.value})")


@app.command()
def run(ctx: typer.Context) -> None:
    """
    Run the operator until interrupted.

    Cluster and SPYT resources of the namespace are reconciled whenever they
    change, and every reconcile interval while they do not.
    """
    import kopf

    from yt_operator.handlers import register_handlers

    config: OperatorConfig = ctx.obj

    try:
        _load_kube_config(config)
    except ConfigurationError as e:
        _fail(e)

    register_handlers(config)
    console.print(f"[bold cyan]Watching namespace:[/bold cyan] {config.namespace}")
    kopf.run(standalone=True, namespaces=[config.namespace], memo=kopf.Memo(config=config))


@app.command()
def spyt(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the SPYT resource"),
) -> None:
    """Run one tick over a SPYT resource and show its status."""
    from yt_operator.reconciler import load_cluster, load_spyt, reconcile_spyt

    config: OperatorConfig = ctx.obj

    try:
        api = _create_api(config)
        spyt_resource = load_spyt(api, name)
        cluster = load_cluster(api, spyt_resource.spec.ytsaurus)
        spyt_status = reconcile_spyt(spyt_resource, cluster, api)
    except OperatorError as e:
        _fail(e)

    console.print(f"[bold cyan]SPYT {name}:[/bold cyan] {_format_status(spyt_status)}")
    if spyt_status.reason:
        console.print(f"Reason: {spyt_status.reason}")


if __name__ == "__main__":
    app()
