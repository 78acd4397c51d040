"""CLI commands for servicehost."""

import importlib
from typing import Any, Callable

import typer
from rich.console import Console

from servicehost import __logo__, __version__

app = typer.Typer(
    name="servicehost",
    help=f"{__logo__} servicehost - run any object as a console app or a managed service",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} servicehost v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """servicehost - run any object as a console app or a managed service."""
    pass


def load_target(target: str) -> Callable[[], Any]:
    """Import 'module:attr' and return the callable it names."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter(f"Expected 'module:attr', got '{target}'")

    obj: Any = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)

    if not callable(obj):
        raise typer.BadParameter(f"{target} is not a class or factory")
    return obj


# ============================================================================
# Run
# ============================================================================


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Hosted object as 'module:attr' (a class or zero-argument factory)"),
    name: str = typer.Option(None, "--name", help="Service name (default: the attribute name)"),
    display_name: str = typer.Option(None, "--display-name", help="Service display name"),
    description: str = typer.Option(None, "--description", help="Service description"),
    depends_on: list[str] = typer.Option(None, "--depends-on", help="Service this one depends on"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Host TARGET. Remaining tokens are host options (-c, -i, -u, -w, -? ...) or go to the hosted object."""
    from servicehost.config import HostSettings, ServiceConfig
    from servicehost.host.launcher import launch
    from servicehost.log import configure_logging

    settings = HostSettings(log_level="DEBUG") if verbose else HostSettings()

    try:
        factory = load_target(target)
    except (ImportError, AttributeError) as e:
        console.print(f"[red]Error: cannot load {target}: {e}[/red]")
        raise typer.Exit(1)

    service_name = name or target.partition(":")[2].split(".")[-1]
    configure_logging(settings, service_name)

    config = (
        ServiceConfig.create(service_name)
        .from_factory(factory)
        .with_entry_arguments(["run", target, "--name", service_name])
        .with_process_args(ctx.args)
    )
    if display_name:
        config.with_display_name(display_name)
    if description:
        config.with_description(description)
    if depends_on:
        config.with_dependencies(*depends_on)

    exit_code = launch(config.with_arguments(ctx.args), settings)
    raise typer.Exit(exit_code)


# ============================================================================
# Status
# ============================================================================


@app.command()
def status(
    name: str = typer.Argument(..., help="Service name"),
):
    """Show installed service status."""
    from servicehost.daemon import DaemonStatus, get_registrar
    from servicehost.daemon.resolve import UnsupportedPlatformError

    try:
        registrar = get_registrar()
    except UnsupportedPlatformError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    info = registrar.status(name)

    status_styles = {
        DaemonStatus.RUNNING: "[green]running[/green]",
        DaemonStatus.STOPPED: "[yellow]stopped[/yellow]",
        DaemonStatus.NOT_INSTALLED: "[dim]not installed[/dim]",
    }

    console.print(f"Service:      {name} ({registrar.scope} scope)")
    console.print(f"Status:       {status_styles[info.status]}")
    if info.pid:
        console.print(f"PID:          {info.pid}")
    if info.service_file:
        console.print(f"Service file: {info.service_file}")
    if info.log_path:
        console.print(f"Logs:         {info.log_path}")


if __name__ == "__main__":
    app()
