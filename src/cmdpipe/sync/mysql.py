"""
Command factories for the MySQL client tools.
"""

# Standard library imports
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

# Local/package imports
from ..shell import CommandBuilder, CommandBuilderInterface

# Decompressors by dump file suffix
DECOMPRESSORS = {
    ".bz2": "bzcat",
    ".gz": "zcat",
    ".xz": "xzcat",
}


def quote_identifier(name: str) -> str:
    """Quote a database or table name for use inside SQL."""
    return "`" + name.replace("`", "``") + "`"


@dataclass
class MySqlConnection:
    """Credentials passed to mysql, mysqldump and friends."""

    username: Optional[str] = None
    password: Optional[str] = None
    hostname: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "MySqlConnection":
        data = data or {}
        return cls(
            username=data.get("username") or None,
            password=data.get("password") or None,
            hostname=data.get("hostname") or None,
        )

    def add_connection_arguments(
        self, command: CommandBuilderInterface
    ) -> CommandBuilderInterface:
        if self.username:
            command.add_argument_template("-u%s", self.username)
        if self.password:
            command.add_argument_template("-p%s", self.password, sensitive=True)
        if self.hostname:
            command.add_argument_template("-h%s", self.hostname)
        return command

    def create_mysql_command(self, database: Optional[str] = None) -> CommandBuilder:
        """mysql client in batch mode without column names."""
        command = CommandBuilder("mysql")
        command.add_argument_raw("-B").add_argument_raw("-N")
        self.add_connection_arguments(command)
        if database is not None:
            command.add_argument(database)
        return command

    def create_sql_command(
        self, query: str, database: Optional[str] = None
    ) -> CommandBuilder:
        return self.create_mysql_command(database).add_argument_template("-e %s", query)

    def create_mysqldump_command(
        self,
        database: Optional[str] = None,
        options: Optional[str] = None,
        compress: bool = True,
    ) -> CommandBuilder:
        """mysqldump, optionally piped through bzip2 for compressed transfer.

        Args:
            database: Database to dump
            options: Raw extra mysqldump options from configuration
            compress: Pipe the dump through ``bzip2 --compress --stdout``
        """
        command = CommandBuilder("mysqldump")
        self.add_connection_arguments(command)

        if options:
            command.add_argument_raw(options)

        if compress:
            command.add_pipe_command(CommandBuilder("bzip2", "--compress --stdout"))

        if database is not None:
            command.add_argument(database)

        return command

    def create_database_command(self, database: str) -> CommandBuilder:
        return self.create_sql_command(
            f"CREATE DATABASE IF NOT EXISTS {quote_identifier(database)}"
        )

    def drop_database_command(self, database: str) -> CommandBuilder:
        return self.create_sql_command(
            f"DROP DATABASE IF EXISTS {quote_identifier(database)}"
        )

    def create_restore_command(
        self, database: str, dump_file: Union[str, Path]
    ) -> CommandBuilder:
        """Feed a (possibly compressed) dump file into the mysql client."""
        dump_file = Path(dump_file)
        reader = DECOMPRESSORS.get(dump_file.suffix, "cat")

        command = CommandBuilder(reader).add_argument(str(dump_file))
        restore = CommandBuilder("mysql")
        self.add_connection_arguments(restore)
        restore.add_argument(database)
        return command.add_pipe_command(restore)
