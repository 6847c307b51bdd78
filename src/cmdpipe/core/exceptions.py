"""
Custom exceptions for cmdpipe.

This module defines the exception types raised while building and executing
command pipelines. The exception hierarchy is organized as follows:

Base Exceptions:
- CmdPipeError: Base exception for all cmdpipe errors
  - BuilderError: Invalid builder structure
    - TemplateArityError: Placeholder/value count mismatch in a template
  - ExecutionError: Base for failures reported by the execution engine
    - ProcessStartError: The process could not be started
    - CommandExecutionError: The process exited non-zero or was killed
    - OutputDrainError: Reading captured output failed
  - ConfigError: Configuration issues
"""

from typing import List, Optional


class CmdPipeError(Exception):
    """Base exception class for cmdpipe."""

    pass


class BuilderError(CmdPipeError):
    """Raised when a command builder cannot be rendered."""

    pass


class TemplateArityError(BuilderError):
    """Raised when a template's placeholders do not match its values."""

    def __init__(self, template: str, expected: int, given: int):
        self.template = template
        self.expected = expected
        self.given = given
        super().__init__(
            f"Template {template!r} expects {expected} value(s), got {given}"
        )


class ExecutionError(CmdPipeError):
    """Base exception for execution engine failures.

    ``command`` is the pipeline handed to the shell, without a redirect the
    engine bound itself. Messages use ``display_command`` instead when given;
    it has secrets masked and shows the redirect.
    """

    def __init__(self, message: str, command: str = None, display_command: str = None):
        self.command = command
        self.display_command = display_command or command
        super().__init__(message)


class ProcessStartError(ExecutionError):
    """Raised when the operating system could not start the process."""

    def __init__(
        self,
        command: str,
        exit_code: int = None,
        cause: Exception = None,
        display_command: str = None,
    ):
        self.exit_code = exit_code
        self.cause = cause

        message = f"Process {display_command or command} could not be started"
        if cause is not None:
            message = f"{message}: {cause}"
        elif exit_code is not None:
            message = f"{message} [return code: {exit_code}]"

        super().__init__(message, command=command, display_command=display_command)


class CommandExecutionError(ExecutionError):
    """Raised when a process exits non-zero or is terminated by a signal."""

    def __init__(
        self,
        command: str,
        exit_code: int,
        signal: int = None,
        output: Optional[List[str]] = None,
        display_command: str = None,
    ):
        self.exit_code = exit_code
        self.signal = signal
        self.output = list(output or [])

        shown = display_command or command
        if signal is not None:
            message = (
                f"Process {shown} was terminated by signal {signal} "
                f"[return code: {exit_code}]"
            )
        else:
            message = (
                f"Process {shown} did not finish successfully "
                f"[return code: {exit_code}]"
            )

        super().__init__(message, command=command, display_command=display_command)

    @property
    def terminated_by_signal(self) -> bool:
        """Whether the process was killed rather than exiting on its own."""
        return self.signal is not None


class OutputDrainError(ExecutionError):
    """Raised when reading the captured output of a process fails."""

    def __init__(
        self,
        command: str,
        partial_output: Optional[List[str]] = None,
        cause: Exception = None,
        display_command: str = None,
    ):
        self.partial_output = list(partial_output or [])
        self.cause = cause
        super().__init__(
            f"Failed reading output of {display_command or command}: {cause}",
            command=command,
            display_command=display_command,
        )


class ConfigError(CmdPipeError):
    """Raised when there's a configuration error."""

    pass
