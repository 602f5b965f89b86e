import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler

from .coordinator import SpecializationCoordinator, SpecializationError
from .environment import HostEnvironment
from .models import SpecializationStatus, SpecializerSettings
from .services.config_loader import ConfigLoader

console = Console()

DEFAULT_CONFIG_FILE = ".hostspecializer.yml"


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _load_config(config_path):
    resolved_config = config_path
    if resolved_config is None:
        default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
        if os.path.exists(default_config_path):
            resolved_config = default_config_path

    try:
        return ConfigLoader().load(resolved_config)
    except SpecializationError as exc:
        raise click.ClickException(str(exc)) from exc


def _configure_logging(verbose: bool, log_file):
    logger = logging.getLogger("hostspecializer")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _build_coordinator(ctx_obj) -> SpecializationCoordinator:
    host_environment = HostEnvironment(logger=logging.getLogger("hostspecializer"))
    return SpecializationCoordinator(host_environment=host_environment, settings=ctx_obj["settings"])


def _load_context(context_path):
    try:
        return ConfigLoader().load_context(context_path)
    except SpecializationError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--script-root", required=False, help="Directory the specialized site is served from.")
@click.option("--temp-dir", required=False, type=click.Path(), help="Directory for downloaded packages.")
@click.option(
    "--command-timeout",
    required=False,
    type=float,
    default=None,
    help="Deadline in seconds for each mount/extract tool invocation.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.pass_context
def main(ctx, config, script_root, temp_dir, command_timeout, verbose, log_file):
    """Specialize a placeholder host with a site's package and settings."""
    config_values = _load_config(config)

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    _configure_logging(verbose, log_file)

    settings_values = dict(config_values)
    settings_values["script_root"] = _resolve_option(script_root, config_values, "script_root")
    settings_values["temp_dir"] = _resolve_option(temp_dir, config_values, "temp_dir")
    settings_values["command_timeout"] = _resolve_option(command_timeout, config_values, "command_timeout")

    ctx.ensure_object(dict)
    ctx.obj["config"] = config_values
    ctx.obj["settings"] = SpecializerSettings.from_mapping(settings_values)


@main.command()
@click.option("--context", "context_path", required=True, type=click.Path(), help="Assignment context file (JSON or YAML).")
@click.pass_obj
def validate(obj, context_path):
    """Check that the context's package URL is reachable."""
    context = _load_context(context_path)
    coordinator = _build_coordinator(obj)

    error = coordinator.validate_context(context)
    if error:
        raise click.ClickException(error)
    console.print("[green]Assignment context is valid.[/green]")


@main.command()
@click.option("--context", "context_path", required=True, type=click.Path(), help="Assignment context file (JSON or YAML).")
@click.option("--skip-validation", is_flag=True, default=False, help="Do not probe the package URL first.")
@click.option("--report-file", type=click.Path(), help="Write a JSON latency report to this path.")
@click.option(
    "--wait-timeout",
    required=False,
    type=float,
    default=None,
    help="Seconds to wait for the host to become ready (default: wait forever).",
)
@click.pass_obj
def assign(obj, context_path, skip_validation, report_file, wait_timeout):
    """Specialize this host with the given assignment context."""
    config_values = obj["config"]
    report_file = _resolve_option(report_file, config_values, "report_file")
    wait_timeout = _resolve_option(wait_timeout, config_values, "wait_timeout")

    context = _load_context(context_path)
    coordinator = _build_coordinator(obj)

    if not skip_validation:
        error = coordinator.validate_context(context)
        if error:
            raise click.ClickException(error)

    sidecar_error = coordinator.specialize_sidecar(context)
    if sidecar_error:
        console.print(f"[yellow]Warning:[/yellow] {sidecar_error}")

    if not coordinator.start_assignment(context):
        raise click.ClickException("Assignment was rejected.")

    console.print(f"[blue]Specializing host for site {context.site_name}...[/blue]")
    if not coordinator.host_environment.wait_until_ready(wait_timeout):
        raise click.ClickException(f"Host did not become ready within {wait_timeout}s.")
    coordinator.wait()

    if report_file:
        coordinator.metrics.write(
            report_file,
            extra={"site_id": context.site_id, "status": coordinator.status.value},
        )

    if coordinator.status is SpecializationStatus.SUCCEEDED:
        console.print("[green]Host specialized and ready.[/green]")
        raise SystemExit(0)

    console.print(f"[bold red]Host is ready but specialization {coordinator.status.value}.[/bold red]")
    raise SystemExit(1)


@main.command()
@click.pass_obj
def info(obj):
    """Print version information for this host."""
    coordinator = _build_coordinator(obj)
    for key, value in coordinator.get_instance_info().items():
        console.print(f"{key}={value}")


if __name__ == "__main__":
    main()
