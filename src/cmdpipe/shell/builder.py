"""
Fluent builder for a single program invocation.

Example:
    >>> dump = (CommandBuilder("mysqldump")
    ...     .add_argument_template("-u%s", "root")
    ...     .add_argument("shop")
    ...     .add_pipe_command(CommandBuilder("bzip2", "--compress --stdout")))
    >>> dump.render()
    'mysqldump -uroot shop | bzip2 --compress --stdout'
"""

# Standard library imports
from typing import Iterable, List, Optional, Sequence

# Local/package imports
from ..core.exceptions import BuilderError
from .arguments import Argument, escape
from .base import CommandBuilderInterface


class CommandBuilder(CommandBuilderInterface):
    """Builds one program invocation from escaped argument fragments."""

    def __init__(
        self,
        command: str,
        argument_template: Optional[str] = None,
        arguments: Optional[Sequence[str]] = None,
    ):
        """Initialize command builder.

        Args:
            command: Program name
            argument_template: Raw argument text, or a ``%s`` template when
                ``arguments`` is given as well
            arguments: Values appended as escaped arguments, or filled into
                ``argument_template``
        """
        super().__init__()
        self._command = command
        self._arguments: List[Argument] = []

        if argument_template is not None and arguments:
            self.add_argument_template(argument_template, *arguments)
        elif argument_template is not None:
            self.add_argument_raw(argument_template)
        elif arguments:
            self.add_argument_list(arguments)

    def get_command(self) -> str:
        return self._command

    def set_command(self, command: str) -> "CommandBuilder":
        self._command = command
        return self

    def get_argument_list(self) -> List[Argument]:
        return list(self._arguments)

    def append_argument(self, argument: Argument) -> "CommandBuilder":
        self._arguments.append(argument)
        return self

    def add_argument(self, text: str, sensitive: bool = False) -> "CommandBuilder":
        return self.append_argument(Argument.value(text, sensitive=sensitive))

    def add_argument_raw(self, text: str, sensitive: bool = False) -> "CommandBuilder":
        return self.append_argument(Argument.literal(text, sensitive=sensitive))

    def add_argument_template(
        self, template: str, *values: str, sensitive: bool = False
    ) -> "CommandBuilder":
        return self.append_argument(
            Argument.template(template, *values, sensitive=sensitive)
        )

    def add_argument_template_multiple(
        self, template: str, values: Iterable[str], sensitive: bool = False
    ) -> "CommandBuilder":
        # Validate every value before appending so a failure leaves no partial state
        arguments = [
            Argument.template(template, value, sensitive=sensitive) for value in values
        ]
        self._arguments.extend(arguments)
        return self

    def add_argument_list(self, values: Iterable[str]) -> "CommandBuilder":
        for value in values:
            self.add_argument(value)
        return self

    def clear_arguments(self) -> "CommandBuilder":
        self._arguments = []
        return self

    def clone(self) -> "CommandBuilder":
        copy = CommandBuilder(self._command)
        copy._arguments = list(self._arguments)
        self._copy_state_to(copy)
        return copy

    def _render_command(self, masked: bool = False) -> str:
        if not self._command:
            raise BuilderError("Command name must not be empty")
        parts = [escape(self._command)]
        parts.extend(argument.render(masked) for argument in self._arguments)
        return " ".join(parts)
