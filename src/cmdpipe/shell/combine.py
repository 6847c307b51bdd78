"""
Builder that merges the output of several commands into one stream.
"""

# Standard library imports
from typing import Iterable, List, Optional

# Local/package imports
from ..core.exceptions import BuilderError
from .base import CommandBuilderInterface


class OutputCombineCommandBuilder(CommandBuilderInterface):
    """Runs its stages one after another and concatenates their stdout.

    Stages run strictly in the order they were added and never overlap. The
    combined stream feeds the pipe chain and output target of this builder,
    e.g. a structure-only and a data-only dump sharing one compression pipe.
    Execution stops at the first failing stage and the group reports its
    exit status.
    """

    def __init__(self, commands: Optional[Iterable[CommandBuilderInterface]] = None):
        super().__init__()
        self._commands: List[CommandBuilderInterface] = []
        for command in commands or []:
            self.add_command_for_combined_output(command)

    def add_command_for_combined_output(
        self, builder: CommandBuilderInterface
    ) -> "OutputCombineCommandBuilder":
        if builder is self:
            raise BuilderError("A combined output builder cannot contain itself")
        self._commands.append(builder)
        return self

    def get_command_list(self) -> List[CommandBuilderInterface]:
        return [command.clone() for command in self._commands]

    # Argument operations apply to every stage

    def add_argument(self, text: str, sensitive: bool = False):
        for command in self._commands:
            command.add_argument(text, sensitive=sensitive)
        return self

    def add_argument_raw(self, text: str, sensitive: bool = False):
        for command in self._commands:
            command.add_argument_raw(text, sensitive=sensitive)
        return self

    def add_argument_template(
        self, template: str, *values: str, sensitive: bool = False
    ):
        for command in self._commands:
            command.add_argument_template(template, *values, sensitive=sensitive)
        return self

    def add_argument_template_multiple(
        self, template: str, values: Iterable[str], sensitive: bool = False
    ):
        values = list(values)
        for command in self._commands:
            command.add_argument_template_multiple(
                template, values, sensitive=sensitive
            )
        return self

    def add_argument_list(self, values: Iterable[str]):
        values = list(values)
        for command in self._commands:
            command.add_argument_list(values)
        return self

    def contains_pipes(self) -> bool:
        return self.has_pipes() or any(
            command.contains_pipes() for command in self._commands
        )

    def clone(self) -> "OutputCombineCommandBuilder":
        copy = OutputCombineCommandBuilder(
            command.clone() for command in self._commands
        )
        self._copy_state_to(copy)
        return copy

    def _render_command(self, masked: bool = False) -> str:
        if not self._commands:
            raise BuilderError("Combined output builder has no commands")
        stages = " && ".join(
            command.render_pipeline(masked) for command in self._commands
        )
        return f"( {stages} )"
