"""
Argument model for shell command lines.

Every fragment of a rendered command line is an :class:`Argument`. Only
``LITERAL`` arguments are inserted verbatim; ``VALUE`` and ``TEMPLATE``
arguments escape their variable parts at render time, so untrusted text can
never change the structure of the command line.

Example:
    >>> Argument.template("--ignore-table=%s", "db.cache").render()
    '--ignore-table=db.cache'
    >>> print(Argument.value("it's").render())
    'it'"'"'s'
"""

# Standard library imports
import re
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

# Local/package imports
from ..core.exceptions import TemplateArityError
from ..utils.security import mask_sensitive_value

# Matches "%s" placeholders and "%%" escapes; other "%" sequences are kept
PLACEHOLDER_PATTERN = re.compile(r"%(%|s)")


class ArgumentKind(Enum):
    """How an argument is turned into command line text."""

    LITERAL = "literal"
    VALUE = "value"
    TEMPLATE = "template"


def escape(raw: str) -> str:
    """Escape a string so a POSIX shell reads it as exactly one word."""
    return shlex.quote(str(raw))


def count_placeholders(template: str) -> int:
    """Count the ``%s`` placeholders of a template."""
    return sum(1 for m in PLACEHOLDER_PATTERN.finditer(template) if m.group(1) == "s")


def _substitute(template: str, tokens: Sequence[str]) -> str:
    token_iter = iter(tokens)

    def replace(match: "re.Match") -> str:
        if match.group(1) == "%":
            return "%"
        return next(token_iter)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def fill_template(template: str, values: Sequence[str]) -> str:
    """Escape each value and substitute it positionally into the template.

    Args:
        template: printf-style template using ``%s`` placeholders
        values: One value per placeholder

    Returns:
        str: The filled template

    Raises:
        TemplateArityError: If placeholder and value counts differ
    """
    values = [str(value) for value in values]
    expected = count_placeholders(template)
    if expected != len(values):
        raise TemplateArityError(template, expected, len(values))
    return _substitute(template, [escape(value) for value in values])


def fill_template_multiple(template: str, values: Iterable[str]) -> List[str]:
    """Apply a single-placeholder template to each value independently."""
    return [fill_template(template, [value]) for value in values]


@dataclass(frozen=True)
class Argument:
    """One fragment of a command line."""

    kind: ArgumentKind
    text: str
    values: Tuple[str, ...] = ()
    sensitive: bool = False

    @classmethod
    def literal(cls, text: str, sensitive: bool = False) -> "Argument":
        return cls(ArgumentKind.LITERAL, str(text), sensitive=sensitive)

    @classmethod
    def value(cls, text: str, sensitive: bool = False) -> "Argument":
        return cls(ArgumentKind.VALUE, str(text), sensitive=sensitive)

    @classmethod
    def template(
        cls, template: str, *values: str, sensitive: bool = False
    ) -> "Argument":
        """Create a template argument, validating its arity immediately."""
        values = tuple(str(value) for value in values)
        expected = count_placeholders(template)
        if expected != len(values):
            raise TemplateArityError(template, expected, len(values))
        return cls(ArgumentKind.TEMPLATE, template, values, sensitive=sensitive)

    def render(self, masked: bool = False) -> str:
        """Render the argument as command line text.

        Args:
            masked: Replace sensitive content with a masked placeholder,
                for log output only

        Returns:
            str: Shell-safe text
        """
        if self.kind is ArgumentKind.LITERAL:
            if masked and self.sensitive:
                return mask_sensitive_value(self.text)
            return self.text

        if self.kind is ArgumentKind.VALUE:
            text = self.text
            if masked and self.sensitive:
                text = mask_sensitive_value(text)
            return escape(text)

        values = self.values
        if masked and self.sensitive:
            values = tuple(mask_sensitive_value(value) for value in values)
        return fill_template(self.text, values)

    def __str__(self) -> str:
        return self.render(masked=True)
