"""
Capability interface shared by every command builder.

Callers work against :class:`CommandBuilderInterface` only. Whether they hold
a plain command, a remote or container wrapper, or a combined-output builder
makes a difference inside rendering, never in caller code.
"""

# Standard library imports
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Union

# Local/package imports
from ..core.exceptions import BuilderError
from .arguments import escape
from .executor import (
    CommandExecutor,
    ExecutionMode,
    ExecutionResult,
    OutputTarget,
    OutputTargetKind,
)


class CommandBuilderInterface(ABC):
    """Base class for composable command builders.

    Pipe handling, output targets, rendering of the pipe chain and execution
    are implemented here. Subclasses provide the argument operations, the
    rendering of their own invocation and ``clone()``.
    """

    def __init__(self):
        self._pipes: List["CommandBuilderInterface"] = []
        self._output_target = OutputTarget()
        self.last_result: Optional[ExecutionResult] = None

    # Arguments

    @abstractmethod
    def add_argument(self, text: str, sensitive: bool = False):
        """Append one escaped argument."""

    @abstractmethod
    def add_argument_raw(self, text: str, sensitive: bool = False):
        """Append caller-controlled text verbatim (flags, operators)."""

    @abstractmethod
    def add_argument_template(
        self, template: str, *values: str, sensitive: bool = False
    ):
        """Append one argument built from a ``%s`` template and escaped values."""

    @abstractmethod
    def add_argument_template_multiple(
        self, template: str, values: Iterable[str], sensitive: bool = False
    ):
        """Append one template argument per value."""

    @abstractmethod
    def add_argument_list(self, values: Iterable[str]):
        """Append each value as its own escaped argument."""

    @abstractmethod
    def clone(self) -> "CommandBuilderInterface":
        """Return an independent deep copy sharing no mutable state."""

    @abstractmethod
    def _render_command(self, masked: bool = False) -> str:
        """Render this builder's own invocation, without pipes or redirect."""

    # Pipes

    def add_pipe_command(self, builder: "CommandBuilderInterface"):
        """Pipe the output of this builder into another builder."""
        if builder is self:
            raise BuilderError("A command cannot be piped into itself")
        self._pipes.append(builder)
        return self

    def clear_pipes(self):
        self._pipes = []
        return self

    def get_pipe_list(self) -> List["CommandBuilderInterface"]:
        """Return an owned copy of the pipe chain."""
        return [pipe.clone() for pipe in self._pipes]

    def set_pipe_list(self, pipes: Iterable["CommandBuilderInterface"]):
        """Replace the pipe chain with copies of the given builders."""
        self._pipes = [pipe.clone() for pipe in pipes]
        return self

    def has_pipes(self) -> bool:
        return bool(self._pipes)

    def contains_pipes(self) -> bool:
        """Whether rendering this builder produces a shell pipeline."""
        return self.has_pipes()

    # Output target

    @property
    def output_target(self) -> OutputTarget:
        """Effective output target of the whole pipe chain.

        A target set on the last pipe stage applies to the pipeline. Setting
        different targets on this builder and on its last stage is an error.
        """
        if not self._pipes:
            return self._output_target

        tail = self._pipes[-1].output_target
        if tail.kind is OutputTargetKind.NONE:
            return self._output_target
        if self._output_target.kind is not OutputTargetKind.NONE and (
            self._output_target != tail
        ):
            raise BuilderError(
                "Conflicting output targets on a command and its last pipe stage"
            )
        return tail

    def set_output_redirect_to_file(self, path: Union[str, Path]):
        """Write the stdout of the last pipeline stage to ``path``."""
        self._output_target = OutputTarget.file(path)
        return self

    def set_output_capture(self):
        """Buffer stdout in memory, also in interactive mode."""
        self._output_target = OutputTarget.capture()
        return self

    def clear_output_target(self):
        self._output_target = OutputTarget()
        return self

    # Rendering

    def render_pipeline(self, masked: bool = False) -> str:
        """Render this builder and its pipe chain, without output redirect.

        Raises:
            BuilderError: If a stage before the last one redirects to a file
        """
        stages = [self._render_command(masked)]
        for index, pipe in enumerate(self._pipes):
            if index < len(self._pipes) - 1 and pipe.output_target.is_file:
                raise BuilderError(
                    "Only the last pipe stage may redirect its output to a file"
                )
            stages.append(pipe.render_pipeline(masked))
        return " | ".join(stages)

    def render(self, masked: bool = False) -> str:
        """Render the full command line.

        Args:
            masked: Mask sensitive arguments; the result is for display only

        Returns:
            str: Command line including pipes and output redirect
        """
        command = self.render_pipeline(masked)
        target = self.output_target
        if target.is_file:
            command = f"{command} > {escape(str(target.path))}"
        return command

    # Execution

    def execute(self, executor: Optional[CommandExecutor] = None) -> ExecutionResult:
        """Run the pipeline, capturing its output or redirecting it to a file."""
        executor = executor or CommandExecutor()
        self.last_result = executor.execute(self, ExecutionMode.CAPTURE)
        return self.last_result

    def execute_interactive(
        self, executor: Optional[CommandExecutor] = None
    ) -> ExecutionResult:
        """Run the pipeline attached to the terminal."""
        executor = executor or CommandExecutor()
        self.last_result = executor.execute(self, ExecutionMode.INTERACTIVE)
        return self.last_result

    def get_output(self) -> List[str]:
        """Return the captured lines of the last execution."""
        if self.last_result is None:
            return []
        return list(self.last_result.output)

    def _copy_state_to(self, other: "CommandBuilderInterface") -> None:
        other._pipes = [pipe.clone() for pipe in self._pipes]
        other._output_target = self._output_target

    def __copy__(self):
        return self.clone()

    def __str__(self) -> str:
        return self.render(masked=True)

    def __repr__(self) -> str:
        try:
            rendered = self.render(masked=True)
        except BuilderError:
            rendered = "<incomplete>"
        return f"{self.__class__.__name__}({rendered})"
