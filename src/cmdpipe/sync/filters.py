"""
Pattern based table filtering for partial database dumps.

Filter lists hold regular expressions matched against table names. Both
plain Python patterns (``^cache_``) and delimited patterns with flags
(``/^cache_/i``) are accepted.
"""

# Standard library imports
import re
from typing import Iterable, List, Sequence, Union

# Local/package imports
from ..core.exceptions import ConfigError

DELIMITED_PATTERN = re.compile(r"^/(?P<body>.*)/(?P<flags>[imsx]*)$", re.DOTALL)

FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

PatternLike = Union[str, re.Pattern]


def compile_filter(pattern: PatternLike) -> re.Pattern:
    """Compile one filter expression.

    Raises:
        ConfigError: If the expression is not a valid regular expression
    """
    if isinstance(pattern, re.Pattern):
        return pattern

    flags = 0
    match = DELIMITED_PATTERN.match(pattern)
    if match:
        pattern = match.group("body")
        for flag in match.group("flags"):
            flags |= FLAG_MAP[flag]

    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise ConfigError(f"Invalid table filter {pattern!r}: {e}") from e


def compile_filters(patterns: Iterable[PatternLike]) -> List[re.Pattern]:
    return [compile_filter(pattern) for pattern in patterns]


def should_exclude_table(name: str, patterns: Sequence[PatternLike]) -> bool:
    """Whether a table's data should be left out of a dump."""
    return any(compile_filter(pattern).search(name) for pattern in patterns)


def mysql_ignored_table_filter(
    tables: Iterable[str], patterns: Sequence[PatternLike], database: str
) -> List[str]:
    """Return ``database.table`` names for every table matching a filter.

    The result is suitable for mysqldump's ``--ignore-table`` option.
    """
    compiled = compile_filters(patterns)
    ignored = []
    for table in tables:
        table = table.strip()
        if table and any(pattern.search(table) for pattern in compiled):
            ignored.append(f"{database}.{table}")
    return ignored
