"""
Command execution engine.

This is the only place where cmdpipe touches the operating system. A fully
composed builder is rendered once, started once through the configured
shell, and waited for until the whole process tree has exited. Only the
binding of the child's standard output differs between execution modes.

With ``pipefail`` enabled (the default) the configured shell must understand
``set -o pipefail`` and ``PIPESTATUS`` (bash does). A pipeline then fails with
the status of its first failing stage instead of the status of its last one.
"""

# Standard library imports
import subprocess
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from signal import Signals
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

# Local/package imports
from ..config import get_config
from ..core.exceptions import (
    BuilderError,
    CommandExecutionError,
    OutputDrainError,
    ProcessStartError,
)
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..config import ExecutionConfig
    from .base import CommandBuilderInterface

# Shell status for "found but not executable" and "not found"
SHELL_NOT_EXECUTABLE = 126
SHELL_NOT_FOUND = 127

_SIGNAL_NUMBERS = {sig.value for sig in Signals}

PIPEFAIL_PROLOGUE = "set -o pipefail"
PIPESTATUS_EPILOGUE = (
    'for __status in "${PIPESTATUS[@]}"; do '
    '[ "$__status" -eq 0 ] || exit "$__status"; done'
)


class ExecutionMode(Enum):
    """How the child's output is bound."""

    CAPTURE = "capture"
    INTERACTIVE = "interactive"
    REDIRECT = "redirect"


class ExecutionStatus(Enum):
    """Status of command execution."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class OutputTargetKind(Enum):
    """Where the output of a pipeline goes."""

    NONE = "none"
    CAPTURE = "capture"
    FILE = "file"


@dataclass(frozen=True)
class OutputTarget:
    """Output target of a builder."""

    kind: OutputTargetKind = OutputTargetKind.NONE
    path: Optional[Path] = None

    @classmethod
    def capture(cls) -> "OutputTarget":
        return cls(OutputTargetKind.CAPTURE)

    @classmethod
    def file(cls, path: Union[str, Path]) -> "OutputTarget":
        return cls(OutputTargetKind.FILE, Path(path))

    @property
    def is_file(self) -> bool:
        return self.kind is OutputTargetKind.FILE


@dataclass
class ExecutionResult:
    """Result of command execution."""

    # Pipeline handed to the shell, without a redirect bound by the engine
    command: str
    mode: ExecutionMode
    status: ExecutionStatus = ExecutionStatus.PENDING
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    output: List[str] = field(default_factory=list)
    output_file: Optional[Path] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def duration(self) -> Optional[float]:
        """Get execution duration in seconds."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "command": self.command,
            "mode": self.mode.value,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "signal": self.signal,
            "output": list(self.output),
            "output_file": str(self.output_file) if self.output_file else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
        }


def decode_exit_status(returncode: int) -> Tuple[int, Optional[int]]:
    """Split a return code into exit code and terminating signal.

    A negative return code means the shell itself was killed. A shell
    reports a child killed by signal N as status 128 + N.

    A program that exits on its own with a status between 129 and 128 + the
    highest signal number cannot be told apart from a signal death and is
    reported as one.
    """
    if returncode < 0:
        return returncode, -returncode
    if returncode > 128 and returncode - 128 in _SIGNAL_NUMBERS:
        return returncode, returncode - 128
    return returncode, None


class CommandExecutor:
    """Executes command pipelines with proper process management."""

    def __init__(
        self,
        working_dir: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        shell: Optional[str] = None,
        encoding: Optional[str] = None,
        config: Optional["ExecutionConfig"] = None,
        pipefail: Optional[bool] = None,
    ):
        config = config or get_config()
        self.working_dir = working_dir or config.working_dir
        self.env = dict(env) if env is not None else None
        self.shell = shell or config.shell
        self.encoding = encoding or config.encoding
        self.pipefail = config.pipefail if pipefail is None else pipefail
        self.logger = get_logger(__name__)

    def execute(
        self,
        builder: "CommandBuilderInterface",
        mode: ExecutionMode = ExecutionMode.CAPTURE,
    ) -> ExecutionResult:
        """Render and run a builder, waiting for the process tree to exit.

        Args:
            builder: Fully composed builder
            mode: Execution mode; CAPTURE switches to REDIRECT when the
                builder has a file output target

        Returns:
            ExecutionResult: Result of the successful run

        Raises:
            ProcessStartError: If the process could not be started
            CommandExecutionError: If the pipeline exited non-zero
            OutputDrainError: If reading captured output failed
        """
        target = builder.output_target
        if mode is ExecutionMode.REDIRECT and not target.is_file:
            raise BuilderError("Redirect mode requires an output file target")
        if mode is ExecutionMode.CAPTURE and target.is_file:
            mode = ExecutionMode.REDIRECT

        # The engine binds the output file itself, so the redirect is display only
        command = builder.render_pipeline()
        display = builder.render(masked=True)

        result = ExecutionResult(command=command, mode=mode)
        if target.is_file:
            result.output_file = target.path

        self.logger.info("EXEC::%s %s", mode.name, display)

        result.start_time = time.time()
        try:
            with ExitStack() as stack:
                stdout = self._bind_stdout(mode, target, stack, result, display)
                process = self._start(command, stdout, result, display)
                result.status = ExecutionStatus.RUNNING

                if stdout is subprocess.PIPE:
                    result.output = self._drain(process, result, display)

                returncode = process.wait()
        finally:
            result.end_time = time.time()

        self._check_result(result, returncode, display)
        return result

    def _script(self, pipeline: str) -> str:
        """Wrap a pipeline so that any failing stage fails the script."""
        if not self.pipefail:
            return pipeline
        return "\n".join((PIPEFAIL_PROLOGUE, pipeline, PIPESTATUS_EPILOGUE))

    def _bind_stdout(
        self,
        mode: ExecutionMode,
        target: OutputTarget,
        stack: ExitStack,
        result: ExecutionResult,
        display: str,
    ):
        """Select the stdout binding for the child process."""
        if target.is_file:
            try:
                return stack.enter_context(open(target.path, "wb"))
            except OSError as e:
                result.status = ExecutionStatus.FAILED
                raise ProcessStartError(
                    result.command, cause=e, display_command=display
                ) from e

        if mode is ExecutionMode.CAPTURE or target.kind is OutputTargetKind.CAPTURE:
            return subprocess.PIPE

        # Interactive: inherit the controlling terminal
        return None

    def _start(
        self, pipeline: str, stdout, result: ExecutionResult, display: str
    ) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                self._script(pipeline),
                shell=True,
                executable=self.shell,
                cwd=self.working_dir,
                env=self.env,
                stdout=stdout,
            )
        except OSError as e:
            result.status = ExecutionStatus.FAILED
            self.logger.error("Could not start process: %s", e)
            raise ProcessStartError(
                result.command, cause=e, display_command=display
            ) from e

    def _drain(
        self, process: subprocess.Popen, result: ExecutionResult, display: str
    ) -> List[str]:
        """Read stdout line by line while the child is still writing."""
        lines: List[str] = []
        try:
            for raw_line in process.stdout:
                lines.append(
                    raw_line.decode(self.encoding, errors="replace").rstrip("\n")
                )
        except (OSError, ValueError) as e:
            process.kill()
            process.wait()
            result.status = ExecutionStatus.FAILED
            self.logger.error("Error reading output: %s", e)
            raise OutputDrainError(
                result.command,
                partial_output=lines,
                cause=e,
                display_command=display,
            ) from e
        finally:
            process.stdout.close()
        return lines

    def _check_result(
        self, result: ExecutionResult, returncode: int, display: str
    ) -> None:
        exit_code, signal = decode_exit_status(returncode)
        result.exit_code = exit_code
        result.signal = signal

        if exit_code == 0:
            result.status = ExecutionStatus.COMPLETED
            self.logger.debug("Process finished in %.3fs", result.duration or 0.0)
            return

        result.status = ExecutionStatus.FAILED
        self.logger.debug("Process exited with status %s", returncode)

        if signal is None and exit_code in (SHELL_NOT_EXECUTABLE, SHELL_NOT_FOUND):
            raise ProcessStartError(
                result.command, exit_code=exit_code, display_command=display
            )

        raise CommandExecutionError(
            result.command,
            exit_code,
            signal=signal,
            output=result.output,
            display_command=display,
        )
