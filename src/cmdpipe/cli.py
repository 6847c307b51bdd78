"""
CLI entry point and command registration.
"""

# Standard library imports
import functools
import os
from pathlib import Path
from typing import Optional, Tuple

# Third-party imports
import click
from dotenv import load_dotenv

# Local/package imports
from . import __version__
from .config import clear_config, get_config, get_root
from .core.exceptions import CmdPipeError, ExecutionError
from .shell import CommandBuilder, wrap_command
from .sync import MySqlConnection, ServerSync, SyncConfiguration
from .utils.logger import get_logger, set_logger
from .utils.security import is_sensitive_field, mask_sensitive_value

logger = get_logger(__name__)


def load_environment_variables(env_path: Path) -> None:
    """Load environment variables from a .env file if it exists."""
    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)

        for key, value in os.environ.items():
            if key.startswith("CMDPIPE_"):
                if is_sensitive_field(key):
                    value = mask_sensitive_value(value)
                logger.debug("Loaded env var: %s=%s", key, value)


def handle_errors(func):
    """Report cmdpipe errors on stderr and abort with exit status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ExecutionError as e:
            error_msg = f"✗ {str(e)}"
            if e.display_command:
                error_msg += f"\nCommand: {e.display_command}"
            click.secho(error_msg, fg="red", err=True)
            raise click.Abort() from e
        except CmdPipeError as e:
            click.secho(f"✗ {str(e)}", fg="red", err=True)
            raise click.Abort() from e
        except KeyboardInterrupt as e:
            click.echo("\nOperation cancelled by user", err=True)
            raise click.Abort() from e

    return wrapper


@click.group()
@click.version_option(version=__version__, prog_name="cmdpipe")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("-v", "--verbose", is_flag=True, help="Log executed commands")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write logs to this file",
)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Load environment variables from this file (default: .env in project root)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool = False,
    verbose: bool = False,
    log_file: Optional[Path] = None,
    env_file: Optional[Path] = None,
):
    """Build and run shell command pipelines.

    Sync files and databases from servers, drop databases and follow log
    files, locally, over ssh or inside containers.
    """
    ctx.ensure_object(dict)
    ctx.obj.setdefault("executor", None)

    set_logger(log_file=log_file, verbose=verbose, debug=debug)
    load_environment_variables(env_file or get_root() / ".env")

    # Environment may have changed; rebuild configuration from it
    clear_config()
    try:
        config = get_config()
    except CmdPipeError as e:
        click.secho(f"✗ {str(e)}", fg="red", err=True)
        raise click.Abort() from e

    if config.verbose or config.debug:
        set_logger(
            log_file=log_file,
            verbose=verbose or config.verbose,
            debug=debug or config.debug,
        )


@cli.command()
@click.argument("context")
@click.option(
    "-c",
    "--config",
    "config_file",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="JSON file describing the sync contexts",
)
@click.pass_context
@handle_errors
def sync(ctx: click.Context, context: str, config_file: Path):
    """Sync files and databases of a server context to this machine."""
    configuration = SyncConfiguration(config_file)
    server_sync = ServerSync(
        configuration.get_context(context),
        filters=configuration.get_filters(),
        executor=ctx.obj.get("executor"),
    )
    server_sync.run()
    click.secho(f"✓ Sync of context {context} finished", fg="green")


@cli.command()
@click.argument("database")
@click.option("--host", "hostname", help="MySQL server hostname")
@click.option("-u", "--user", "username", help="MySQL user")
@click.option("-p", "--password", help="MySQL password")
@click.option("--ssh", "ssh_hostname", help="Run on this host through ssh")
@click.option("--container", help="Run inside this container")
@click.confirmation_option(prompt="Are you sure you want to drop the database?")
@click.pass_context
@handle_errors
def drop(
    ctx: click.Context,
    database: str,
    hostname: Optional[str],
    username: Optional[str],
    password: Optional[str],
    ssh_hostname: Optional[str],
    container: Optional[str],
):
    """Drop a database if it exists."""
    connection = MySqlConnection(
        username=username, password=password, hostname=hostname
    )
    command = wrap_command(
        connection.drop_database_command(database),
        hostname=ssh_hostname,
        container=container,
    )
    command.execute(ctx.obj.get("executor"))
    click.secho(f"✓ Dropped database {database}", fg="green")


@cli.command()
@click.argument("files", nargs=-1, required=True)
@click.option(
    "-n", "--lines", type=click.IntRange(min=0), help="Lines to show initially"
)
@click.option("--ssh", "ssh_hostname", help="Follow files on this host through ssh")
@click.option("--container", help="Follow files inside this container")
@click.pass_context
@handle_errors
def tail(
    ctx: click.Context,
    files: Tuple[str, ...],
    lines: Optional[int],
    ssh_hostname: Optional[str],
    container: Optional[str],
):
    """Follow log files until interrupted."""
    command = CommandBuilder("tail", arguments=["-f"])
    if lines is not None:
        command.add_argument_template("--lines=%s", str(lines))
    command.add_argument_list(files)

    command = wrap_command(command, hostname=ssh_hostname, container=container)
    command.execute_interactive(ctx.obj.get("executor"))


if __name__ == "__main__":
    cli()
