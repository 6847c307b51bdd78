"""Shared fixtures for the cmdpipe test suite."""

# Standard library imports
import logging
import os
from typing import Callable, Dict, List, Optional

# Third-party imports
import pytest

# Local/package imports
from cmdpipe.config import clear_config
from cmdpipe.shell import (
    CommandExecutor,
    ExecutionMode,
    ExecutionResult,
    ExecutionStatus,
)
from cmdpipe.utils import logger as cmdpipe_logger


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Isolate settings from the environment and point temp_dir at tmp_path."""
    for name in list(os.environ):
        if name.startswith("CMDPIPE_") and name != "CMDPIPE_PROJECT_ROOT":
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CMDPIPE_TEMP_DIR", str(tmp_path / "temp"))
    clear_config()
    yield
    clear_config()

    # Handlers installed by the CLI write to streams that are closed by now
    root = logging.getLogger()
    for handler in list(cmdpipe_logger._managed_handlers):
        root.removeHandler(handler)
        handler.close()
    cmdpipe_logger._managed_handlers.clear()


class RecordingExecutor(CommandExecutor):
    """Executor that records rendered commands instead of running them."""

    def __init__(self, responder: Optional[Callable[[str], List[str]]] = None):
        super().__init__()
        self.calls: List[Dict] = []
        self.responder = responder

    def execute(self, builder, mode=ExecutionMode.CAPTURE):
        if mode is ExecutionMode.CAPTURE and builder.output_target.is_file:
            mode = ExecutionMode.REDIRECT

        command = builder.render()
        self.calls.append(
            {
                "command": command,
                "pipeline": builder.render_pipeline(),
                "mode": mode,
                "output_file": builder.output_target.path,
            }
        )

        output = self.responder(command) if self.responder else []
        return ExecutionResult(
            command=command,
            mode=mode,
            status=ExecutionStatus.COMPLETED,
            exit_code=0,
            output=list(output),
            output_file=builder.output_target.path,
        )

    @property
    def commands(self) -> List[str]:
        return [call["command"] for call in self.calls]


@pytest.fixture
def recording_executor():
    """Create a recording executor without canned output."""
    return RecordingExecutor()


@pytest.fixture
def recording_executor_factory():
    """Create recording executors answering captured commands via a callback."""
    return RecordingExecutor
