"""CLI entry point for unitctl using Click."""

import json
import logging
from pathlib import Path

import click

from .commands import SystemdCommand
from .errors import UnitError
from .service import ServiceStatus, UnitManager, get_unit_manager
from .unit import ServiceRestart, ServiceType, Target, new_default_service, validate_name
from .unit_file import generate

DEFAULT_PORT = 8190
DEFAULT_HOST = "127.0.0.1"


def _manager(ctx: click.Context) -> UnitManager:
    try:
        return get_unit_manager(unit_dir=ctx.obj["unit_dir"], user=ctx.obj["user"])
    except NotImplementedError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option(
    "--unit-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="UNITCTL_UNIT_DIR",
    default=None,
    help="Directory holding unit files (default: /etc/systemd/system, or the user unit dir with --user)",
)
@click.option(
    "--user",
    is_flag=True,
    envvar="UNITCTL_USER",
    help="Manage per-user units with 'systemctl --user'",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, unit_dir: Path | None, user: bool, verbose: bool) -> None:
    """unitctl - create, inspect and control systemd service units."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["unit_dir"] = unit_dir
    ctx.obj["user"] = user


@cli.command()
@click.argument("name")
@click.option("--description", "-d", default="", help="Unit description")
@click.option("--exec-start", "-e", required=True, help="Command line started by the service")
@click.option(
    "--type",
    "service_type",
    type=click.Choice([t.value for t in ServiceType]),
    default=ServiceType.SIMPLE.value,
    show_default=True,
    help="Service type",
)
@click.option(
    "--restart",
    type=click.Choice([r.value for r in ServiceRestart]),
    default=None,
    help="Restart policy",
)
@click.option("--after", default=Target.NETWORK.value, show_default=True, help="Start after this target")
@click.option("--wanted-by", default=Target.MULTI_USER.value, show_default=True, help="Install target")
@click.option("--run-as", "run_as", default="", help="User to run the service as")
@click.option("--group", default="", help="Group to run the service as")
@click.option("--working-directory", default="", help="Working directory of the service")
@click.option("--environment-file", default="", help="File with environment variables")
@click.option("--dry-run", is_flag=True, help="Print the unit file instead of writing it")
@click.option("--no-reload", is_flag=True, help="Skip daemon-reload after writing")
@click.pass_context
def create(
    ctx: click.Context,
    name: str,
    description: str,
    exec_start: str,
    service_type: str,
    restart: str | None,
    after: str,
    wanted_by: str,
    run_as: str,
    group: str,
    working_directory: str,
    environment_file: str,
    dry_run: bool,
    no_reload: bool,
) -> None:
    """Create the unit file for service NAME."""
    try:
        service = new_default_service(validate_name(name), description, exec_start)
        service.unit.after = after
        service.install.wanted_by = wanted_by
        service.service.type = ServiceType(service_type)
        service.service.restart = ServiceRestart(restart) if restart else None
        service.service.user = run_as
        service.service.group = group
        service.service.working_directory = working_directory
        service.service.environment_file = environment_file
        content = generate(service)
    except UnitError as e:
        raise click.ClickException(str(e))

    if dry_run:
        click.echo(content, nl=False)
        return

    manager = _manager(ctx)
    try:
        path = manager.create(service)
        if not no_reload:
            manager.daemon_reload()
    except UnitError as e:
        raise click.ClickException(str(e))

    click.secho(f"✓ Created {path}", fg="green", bold=True)
    click.echo(f"\nTo start: unitctl start {name}")


@cli.command()
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Print the parsed unit as JSON")
@click.pass_context
def show(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show the parsed unit file of NAME."""
    manager = _manager(ctx)
    try:
        service = manager.load(name)
    except UnitError as e:
        raise click.ClickException(str(e))

    if service is None:
        raise click.ClickException(f"service not found: {manager.unit_path(name)}")

    if as_json:
        click.echo(json.dumps(service.to_dict(), indent=2))
    else:
        click.echo(generate(service), nl=False)


@cli.command("list")
@click.pass_context
def list_units(ctx: click.Context) -> None:
    """List service unit files in the unit directory."""
    manager = _manager(ctx)
    units = manager.list_units()
    if not units:
        click.echo(f"No service units in {manager.unit_dir}")
        return
    for unit in units:
        click.echo(unit)


@cli.command()
@click.argument("name")
@click.option("--force", "-f", is_flag=True, help="Remove without confirmation")
@click.pass_context
def remove(ctx: click.Context, name: str, force: bool) -> None:
    """Stop, disable and delete unit NAME."""
    manager = _manager(ctx)

    if not force:
        if not click.confirm(f"Are you sure you want to remove {name}?"):
            click.echo("Cancelled.")
            return

    try:
        manager.remove(name)
    except UnitError as e:
        raise click.ClickException(str(e))

    click.secho(f"✓ Removed {name}.", fg="green")


def _lifecycle_command(command: SystemdCommand, past: str) -> click.Command:
    @click.command(command.verb, help=f"{command.verb.capitalize()} unit NAME.")
    @click.argument("name")
    @click.pass_context
    def run(ctx: click.Context, name: str) -> None:
        manager = _manager(ctx)
        try:
            manager.set_status(name, command)
        except UnitError as e:
            raise click.ClickException(str(e))
        click.secho(f"✓ {name} {past}.", fg="green")

    return run


for _command, _past in (
    (SystemdCommand.START, "started"),
    (SystemdCommand.STOP, "stopped"),
    (SystemdCommand.ENABLE, "enabled"),
    (SystemdCommand.DISABLE, "disabled"),
    (SystemdCommand.RESTART, "restarted"),
):
    cli.add_command(_lifecycle_command(_command, _past))


@cli.command()
@click.argument("name")
@click.pass_context
def status(ctx: click.Context, name: str) -> None:
    """Show the status of unit NAME."""
    try:
        result = _manager(ctx).status(name)
    except UnitError as e:
        raise click.ClickException(str(e))

    status_colors = {
        ServiceStatus.RUNNING: ("green", "●"),
        ServiceStatus.STOPPED: ("yellow", "○"),
        ServiceStatus.FAILED: ("red", "✗"),
        ServiceStatus.NOT_INSTALLED: ("white", "○"),
        ServiceStatus.UNKNOWN: ("white", "?"),
    }

    color, symbol = status_colors.get(result.status, ("white", "?"))

    click.secho(f"{symbol} ", fg=color, nl=False, bold=True)
    click.secho(result.name, bold=True)

    click.echo("   Status: ", nl=False)
    click.secho(result.status.value, fg=color, bold=True)

    if result.enabled is not None:
        click.echo(f"   Enabled: {'yes' if result.enabled else 'no'}")

    if result.pid:
        click.echo(f"   PID: {result.pid}")

    if result.unit_file:
        click.echo(f"   Unit file: {result.unit_file}")

    if result.message:
        click.echo(f"   {result.message}")


@cli.command()
@click.argument("name")
@click.option("--follow", "-f", is_flag=True, help="Follow log output (like tail -f)")
@click.option("--lines", "-n", default=50, help="Number of lines to show")
@click.pass_context
def logs(ctx: click.Context, name: str, follow: bool, lines: int) -> None:
    """View journal logs of unit NAME."""
    try:
        output = _manager(ctx).logs(name, lines=lines, follow=follow)
    except UnitError as e:
        raise click.ClickException(str(e))
    click.echo(output, nl=False)


@cli.command("daemon-reload")
@click.pass_context
def daemon_reload(ctx: click.Context) -> None:
    """Make systemd re-read all unit files."""
    try:
        _manager(ctx).daemon_reload()
    except UnitError as e:
        raise click.ClickException(str(e))
    click.secho("✓ Daemon reloaded.", fg="green")


@cli.command()
@click.option("--port", "-p", default=DEFAULT_PORT, help="Port to run the server on")
@click.option("--host", "-h", default=DEFAULT_HOST, help="Host to bind to")
@click.option(
    "--base-path",
    default="",
    help="Base path for serving the API (e.g., '/units'). Use when routing through subpaths.",
)
@click.option(
    "--threads",
    default=4,
    help="Number of server threads (default: 4)",
)
@click.pass_context
def serve(ctx: click.Context, port: int, host: str, base_path: str, threads: int) -> None:
    """Serve the unit REST API in the foreground."""
    from .server import create_app

    manager = _manager(ctx)
    try:
        app = create_app(manager, base_path=base_path)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--base-path")

    click.echo("Starting unitctl API...")
    click.echo(f"  URL: http://{host}:{port}{base_path}")
    click.echo(f"  Unit dir: {manager.unit_dir}")
    click.echo(f"  Threads: {threads}")
    click.echo("  Press Ctrl+C to stop\n")

    from waitress import serve as waitress_serve

    waitress_serve(app, host=host, port=port, threads=threads)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
