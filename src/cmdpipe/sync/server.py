"""
Sync files and databases from a server to the local machine.

The workflow is a sequence of pipelines built with :mod:`cmdpipe.shell`:

1. rsync the configured directories from the server
2. for each database, dump it on the server through ssh (bzip2 compressed),
   writing the stream to a local dump file
3. restore each dump into the local database

With a table filter active the dump is split into a structure-only dump of
all tables and a data-only dump skipping the filtered tables; both are
combined into one stream before the shared compression pipe.
"""

# Standard library imports
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

# Local/package imports
from ..config import get_config
from ..core.exceptions import ConfigError
from ..shell import (
    CommandBuilder,
    CommandBuilderInterface,
    CommandExecutor,
    OutputCombineCommandBuilder,
    wrap_command,
)
from ..utils.logger import get_logger
from .context import parse_database_entry
from .filters import mysql_ignored_table_filter
from .mysql import MySqlConnection

RSYNC_OPTIONS = "-rlptD --delete-after --progress --human-readable"


class ServerSync:
    """Runs the sync workflow for one server context."""

    def __init__(
        self,
        context: Mapping[str, Any],
        filters: Optional[Mapping[str, List[str]]] = None,
        temp_dir: Optional[Path] = None,
        executor: Optional[CommandExecutor] = None,
    ):
        """Initialize sync.

        Args:
            context: Merged context configuration
            filters: Named table filter lists
            temp_dir: Directory for dump and list files
            executor: Execution engine; a default one is created per run
        """
        self.config = context
        self.filters = dict(filters or {})
        self.temp_dir = Path(temp_dir or get_config().temp_dir)
        self.executor = executor
        self.logger = get_logger(__name__)

        self.remote_mysql = MySqlConnection.from_dict(self.config.get("mysql"))
        self.local_mysql = MySqlConnection.from_dict(self.config.get("local_mysql"))

    @property
    def ssh_hostname(self) -> Optional[str]:
        return (self.config.get("ssh") or {}).get("hostname") or None

    @property
    def docker_container(self) -> Optional[str]:
        return (self.config.get("docker") or {}).get("container") or None

    def run(self) -> None:
        """Run every task configured for the context."""
        if self.config.get("rsync"):
            self.run_rsync()

        if self.config.get("mysql"):
            self.run_databases()

    # Files

    def run_rsync(self) -> None:
        source = self.get_rsync_source()
        target = self.get_rsync_target()
        self.logger.info("Syncing files from %s to %s", source, target)

        command = self.create_rsync_command(source, target)
        command.execute_interactive(self.executor)

    def get_rsync_source(self) -> str:
        path = (self.config.get("rsync") or {}).get("path")
        if not path:
            raise ConfigError("rsync.path is required for file sync")
        if self.ssh_hostname:
            return f"{self.ssh_hostname}:{path}"
        return path

    def get_rsync_target(self) -> str:
        return (self.config.get("rsync") or {}).get("target") or "."

    def create_rsync_command(
        self,
        source: str,
        target: str,
        filelist: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ) -> CommandBuilder:
        """Build the rsync invocation.

        File and exclude lists are written to files in the temp directory
        and passed with ``--files-from`` and ``--exclude-from``.
        """
        rsync = self.config.get("rsync") or {}
        filelist = list(filelist or rsync.get("directory") or [])
        exclude = list(exclude or rsync.get("exclude") or [])

        command = CommandBuilder("rsync", RSYNC_OPTIONS)

        if filelist:
            list_file = self._write_list_file("rsync-files-", filelist)
            command.add_argument_template("--files-from=%s", str(list_file))

        if exclude:
            list_file = self._write_list_file("rsync-exclude-", exclude)
            command.add_argument_template("--exclude-from=%s", str(list_file))

        return command.add_argument(source).add_argument(target)

    def _write_list_file(self, prefix: str, entries: Iterable[str]) -> Path:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=".list", dir=self.temp_dir)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write("\n".join(entries) + "\n")
        return Path(path)

    # Databases

    def run_databases(self) -> List[Path]:
        mysql = self.config.get("mysql") or {}
        databases = mysql.get("database") or []
        if isinstance(databases, str):
            databases = [databases]

        return [
            self.sync_database(*parse_database_entry(entry)) for entry in databases
        ]

    def sync_database(self, local_database: str, foreign_database: str) -> Path:
        """Dump one database from the server and restore it locally.

        Returns:
            Path: The dump file
        """
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        dump_file = self.temp_dir / f"{local_database}.sql.bz2"

        self.logger.info('Fetching foreign database "%s"', foreign_database)
        dump = self.remote_mysql.create_mysqldump_command(
            foreign_database,
            options=(self.config.get("mysqldump") or {}).get("option"),
        )

        filter_name = (self.config.get("mysql") or {}).get("filter")
        if filter_name:
            dump = self.add_filter_arguments(dump, foreign_database, filter_name)

        command = self.wrap_command(dump)
        command.set_output_redirect_to_file(dump_file)
        command.execute_interactive(self.executor)

        self.logger.info('Restoring database "%s"', local_database)
        self.local_mysql.create_database_command(local_database).execute(
            self.executor
        )
        self.local_mysql.create_restore_command(
            local_database, dump_file
        ).execute_interactive(self.executor)

        return dump_file

    def wrap_command(self, command: CommandBuilderInterface) -> CommandBuilderInterface:
        """Wrap a command for the server side of the context, if remote."""
        return wrap_command(
            command, hostname=self.ssh_hostname, container=self.docker_container
        )

    def list_tables(self, database: str) -> List[str]:
        lister = self.remote_mysql.create_mysql_command(database)
        lister.add_argument_template("-e %s", "show tables;")
        result = self.wrap_command(lister).execute(self.executor)
        return [line for line in result.output if line.strip()]

    def add_filter_arguments(
        self,
        command: CommandBuilderInterface,
        database: str,
        filter_name: str,
    ) -> OutputCombineCommandBuilder:
        """Split a dump into structure and filtered data dumps.

        Raises:
            ConfigError: If the filter is not configured
        """
        patterns = self.filters.get(filter_name)
        if not patterns:
            raise ConfigError(f'MySQL dump filter "{filter_name}" not available')

        self.logger.info('Using filter "%s"', filter_name)

        ignored_tables = mysql_ignored_table_filter(
            self.list_tables(database), patterns, database
        )

        structure = command.clone().add_argument("--no-data").clear_pipes()

        data = command.clone().add_argument("--no-create-info").clear_pipes()
        if ignored_tables:
            data.add_argument_template_multiple("--ignore-table=%s", ignored_tables)

        pipes = command.get_pipe_list()

        combined = OutputCombineCommandBuilder()
        combined.add_command_for_combined_output(structure)
        combined.add_command_for_combined_output(data)

        # Re-attach compression after the combined stream
        if pipes:
            combined.set_pipe_list(pipes)

        return combined


def sync_context(
    context: Dict[str, Any],
    filters: Optional[Mapping[str, List[str]]] = None,
    temp_dir: Optional[Union[str, Path]] = None,
    executor: Optional[CommandExecutor] = None,
) -> None:
    """Convenience wrapper running a full sync for one context."""
    ServerSync(
        context,
        filters=filters,
        temp_dir=Path(temp_dir) if temp_dir else None,
        executor=executor,
    ).run()
