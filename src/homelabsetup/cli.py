import logging
import os

import click
from rich.logging import RichHandler

from .constants import DEFAULT_CONFIG_FILE
from .core import BootstrapError, HomelabBootstrap
from .services.config_loader import ConfigLoader

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _configure_logging(verbose, log_file):
    logger = logging.getLogger("homelabsetup")
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


def _load_answers(config, project_dir):
    resolved_config = config
    if resolved_config is None:
        default_config_path = os.path.join(project_dir, DEFAULT_CONFIG_FILE)
        if os.path.exists(default_config_path):
            resolved_config = default_config_path

    try:
        return ConfigLoader().load(resolved_config)
    except BootstrapError as exc:
        raise click.ClickException(str(exc)) from exc


def common_options(func):
    options = [
        click.option(
            "--project-dir",
            type=click.Path(file_okay=False),
            default=".",
            show_default=True,
            help="Directory holding docker-compose.yml and the service directories.",
        ),
        click.option(
            "--config",
            required=False,
            type=click.Path(),
            help=f"YAML answers file. Defaults to {DEFAULT_CONFIG_FILE} in the project directory.",
        ),
        click.option(
            "--non-interactive",
            is_flag=True,
            default=False,
            help="Accept detected and configured defaults without prompting.",
        ),
        click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging"),
        click.option("--log-file", type=click.Path(), help="Path to log file"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _execute(command, project_dir, config, non_interactive, verbose, log_file, **kwargs):
    _configure_logging(verbose, log_file)
    answers = _load_answers(config, project_dir)

    try:
        bootstrap = HomelabBootstrap(
            command=command,
            project_dir=project_dir,
            answers=answers,
            non_interactive=non_interactive,
            **kwargs,
        )
    except BootstrapError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(bootstrap.run())


@click.group()
@click.version_option(package_name="homelab-setup")
def main():
    """Prepare a host for the homelab monitoring stack."""


@main.command()
@click.argument("username", required=False)
@common_options
@click.option(
    "--overwrite/--keep-existing",
    default=None,
    help="Replace an existing .env (a backup is kept) or leave it untouched.",
)
@click.option(
    "--start/--no-start",
    "start_services",
    default=None,
    help="Start the stack when done instead of asking.",
)
@click.option(
    "--docker-group/--no-docker-group",
    default=True,
    show_default=True,
    help="Add the user to the docker group.",
)
def setup(
    username,
    project_dir,
    config,
    non_interactive,
    verbose,
    log_file,
    overwrite,
    start_services,
    docker_group,
):
    """Configure .env, then create and fix the service directories (requires sudo)."""
    _execute(
        HomelabBootstrap.SETUP,
        project_dir,
        config,
        non_interactive,
        verbose,
        log_file,
        username=username,
        overwrite=overwrite,
        start_services=start_services,
        docker_group=docker_group,
    )


@main.command()
@common_options
@click.option(
    "--overwrite/--keep-existing",
    default=None,
    help="Replace an existing .env (a backup is kept) or leave it untouched.",
)
@click.option(
    "--start/--no-start",
    "start_services",
    default=None,
    help="Start the stack when done instead of asking.",
)
def wizard(project_dir, config, non_interactive, verbose, log_file, overwrite, start_services):
    """Detect host settings and write the .env file."""
    _execute(
        HomelabBootstrap.WIZARD,
        project_dir,
        config,
        non_interactive,
        verbose,
        log_file,
        overwrite=overwrite,
        start_services=start_services,
    )


@main.command("fix-permissions")
@click.argument("username", required=False)
@common_options
@click.option(
    "--stop-services/--no-stop-services",
    default=None,
    help="Run `docker compose down` first instead of asking.",
)
def fix_permissions(
    username, project_dir, config, non_interactive, verbose, log_file, stop_services
):
    """Re-apply ownership and modes on every service directory (requires sudo)."""
    _execute(
        HomelabBootstrap.FIX_PERMISSIONS,
        project_dir,
        config,
        non_interactive,
        verbose,
        log_file,
        username=username,
        stop_services=stop_services,
    )


if __name__ == "__main__":
    main()
