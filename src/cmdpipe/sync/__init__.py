"""
Server sync workflow built on the command pipeline builders.
"""

from .context import SyncConfiguration, merge_recursive, parse_database_entry
from .filters import (
    compile_filter,
    compile_filters,
    mysql_ignored_table_filter,
    should_exclude_table,
)
from .mysql import MySqlConnection, quote_identifier
from .server import ServerSync, sync_context

__all__ = [
    "SyncConfiguration",
    "merge_recursive",
    "parse_database_entry",
    "compile_filter",
    "compile_filters",
    "mysql_ignored_table_filter",
    "should_exclude_table",
    "MySqlConnection",
    "quote_identifier",
    "ServerSync",
    "sync_context",
]
