"""Tests for the command execution engine."""

# Standard library imports
import logging
import signal
from pathlib import Path
from unittest.mock import Mock, patch

# Third-party imports
import pytest

# Local/package imports
from cmdpipe.core.exceptions import (
    BuilderError,
    CommandExecutionError,
    OutputDrainError,
    ProcessStartError,
)
from cmdpipe.shell import (
    CommandBuilder,
    CommandExecutor,
    ExecutionMode,
    ExecutionResult,
    ExecutionStatus,
    OutputCombineCommandBuilder,
)
from cmdpipe.shell.executor import decode_exit_status


def sh(script: str) -> CommandBuilder:
    return CommandBuilder("sh", "-c %s", [script])


@pytest.fixture
def executor():
    return CommandExecutor()


class TestCapture:
    def test_captures_lines(self, executor):
        result = CommandBuilder("printf", "%s", ["a\\nb\\n"]).execute(executor)

        assert result.output == ["a", "b"]
        assert result.exit_code == 0
        assert result.status is ExecutionStatus.COMPLETED
        assert result.mode is ExecutionMode.CAPTURE
        assert result.duration is not None

    def test_keeps_carriage_returns_and_blank_lines(self, executor):
        result = CommandBuilder("printf", "%s", ["a\\r\\n\\nb"]).execute(executor)
        assert result.output == ["a\r", "", "b"]

    def test_builder_keeps_last_result(self, executor):
        command = CommandBuilder("echo", arguments=["hello"])
        assert command.get_output() == []
        command.execute(executor)
        assert command.get_output() == ["hello"]
        assert command.last_result.command == "echo hello"

    def test_pipe_stages_are_connected(self, executor):
        command = CommandBuilder("printf", "%s", ["b\\na\\n"]).add_pipe_command(
            CommandBuilder("sort")
        )
        assert command.execute(executor).output == ["a", "b"]

    def test_undecodable_bytes_are_replaced(self, executor):
        result = CommandBuilder("printf", "%s", ["\\377ok\\n"]).execute(executor)
        assert result.output == ["\ufffdok"]

    def test_escaped_arguments_reach_the_program_unchanged(self, executor):
        value = "it's $HOME; `id` | cat"
        result = CommandBuilder("printf", "'%%s\\n' %s", [value]).execute(executor)
        assert result.output == [value]

    def test_working_dir(self, tmp_path):
        executor = CommandExecutor(working_dir=tmp_path)
        result = CommandBuilder("pwd").execute(executor)
        assert Path(result.output[0]).resolve() == tmp_path.resolve()

    def test_environment(self):
        executor = CommandExecutor(env={"GREETING": "hi", "PATH": "/usr/bin:/bin"})
        result = CommandBuilder("printenv", arguments=["GREETING"]).execute(executor)
        assert result.output == ["hi"]


class TestFailures:
    def test_non_zero_exit_raises(self, executor):
        with pytest.raises(CommandExecutionError) as exc_info:
            sh("echo partial; exit 2").execute(executor)

        error = exc_info.value
        assert error.exit_code == 2
        assert error.signal is None
        assert not error.terminated_by_signal
        assert error.output == ["partial"]
        assert error.command == "sh -c 'echo partial; exit 2'"
        assert "return code: 2" in str(error)

    def test_failing_stage_before_pipe_raises(self, executor):
        command = sh("echo partial; exit 2").add_pipe_command(CommandBuilder("cat"))
        with pytest.raises(CommandExecutionError) as exc_info:
            command.execute(executor)

        assert exc_info.value.exit_code == 2
        assert exc_info.value.output == ["partial"]

    def test_first_failing_stage_is_reported(self, executor):
        command = sh("exit 3").add_pipe_command(sh("cat; exit 4"))
        with pytest.raises(CommandExecutionError) as exc_info:
            command.execute(executor)
        assert exc_info.value.exit_code == 3

    def test_failing_last_stage_raises(self, executor):
        command = CommandBuilder("echo", arguments=["x"]).add_pipe_command(
            sh("cat > /dev/null; exit 5")
        )
        with pytest.raises(CommandExecutionError) as exc_info:
            command.execute(executor)
        assert exc_info.value.exit_code == 5

    def test_failing_combine_stage_before_pipe_raises(self, executor):
        command = OutputCombineCommandBuilder(
            [sh("echo A; exit 2"), CommandBuilder("echo", arguments=["B"])]
        ).add_pipe_command(CommandBuilder("cat"))

        with pytest.raises(CommandExecutionError) as exc_info:
            command.execute(executor)

        assert exc_info.value.exit_code == 2
        assert exc_info.value.output == ["A"]

    def test_pipefail_can_be_disabled(self):
        executor = CommandExecutor(shell="/bin/sh", pipefail=False)
        command = CommandBuilder("false").add_pipe_command(CommandBuilder("true"))
        assert command.execute(executor).exit_code == 0

    def test_signal_termination_is_reported(self, executor):
        with pytest.raises(CommandExecutionError) as exc_info:
            sh("kill -TERM $$").execute(executor)

        assert exc_info.value.signal == signal.SIGTERM
        assert exc_info.value.terminated_by_signal
        assert "signal" in str(exc_info.value)

    def test_missing_program(self, executor):
        with pytest.raises(ProcessStartError) as exc_info:
            CommandBuilder("cmdpipe-no-such-program").execute(executor)
        assert exc_info.value.exit_code == 127

    def test_missing_shell(self):
        executor = CommandExecutor(shell="/nonexistent/sh")
        with pytest.raises(ProcessStartError) as exc_info:
            CommandBuilder("true").execute(executor)
        assert isinstance(exc_info.value.cause, OSError)

    def test_redirect_mode_requires_file_target(self, executor):
        with pytest.raises(BuilderError):
            executor.execute(CommandBuilder("true"), ExecutionMode.REDIRECT)

    def test_sensitive_values_masked_in_error_message(self, executor):
        command = sh("exit 3").add_argument("hunter22", sensitive=True)
        with pytest.raises(CommandExecutionError) as exc_info:
            command.execute(executor)

        assert "hunter22" not in str(exc_info.value)
        assert "hunter22" in exc_info.value.command
        assert "hunter22" not in exc_info.value.display_command

    def test_drain_failure_kills_process(self, executor):
        class FailingStream:
            def __iter__(self):
                yield b"first\n"
                raise OSError("stream broken")

            def close(self):
                pass

        process = Mock()
        process.stdout = FailingStream()
        process.wait.return_value = -9

        with patch("cmdpipe.shell.executor.subprocess.Popen", return_value=process):
            with pytest.raises(OutputDrainError) as exc_info:
                CommandBuilder("yes").execute(executor)

        assert exc_info.value.partial_output == ["first"]
        assert isinstance(exc_info.value.cause, OSError)
        process.kill.assert_called_once()


class TestRedirect:
    def test_writes_bytes_verbatim(self, executor, tmp_path):
        target = tmp_path / "out.bin"
        command = CommandBuilder("printf", "%s", ["\\001\\377\\nline\\n"])
        command.set_output_redirect_to_file(target)

        result = command.execute(executor)

        assert result.mode is ExecutionMode.REDIRECT
        assert result.output == []
        assert result.output_file == target
        assert target.read_bytes() == b"\x01\xff\nline\n"

    def test_last_pipe_stage_writes_file(self, executor, tmp_path):
        target = tmp_path / "sorted.txt"
        command = CommandBuilder("printf", "%s", ["b\\na\\n"]).add_pipe_command(
            CommandBuilder("sort")
        )
        command.set_output_redirect_to_file(target)
        command.execute(executor)
        assert target.read_text() == "a\nb\n"

    def test_path_with_spaces(self, executor, tmp_path):
        target = tmp_path / "my dump.sql"
        CommandBuilder("echo", arguments=["x"]).set_output_redirect_to_file(
            target
        ).execute(executor)
        assert target.read_text() == "x\n"

    def test_target_on_last_pipe_stage_applies(self, executor, tmp_path):
        target = tmp_path / "out.txt"
        command = CommandBuilder("echo", arguments=["x"]).add_pipe_command(
            CommandBuilder("cat").set_output_redirect_to_file(target)
        )

        result = command.execute(executor)

        assert result.mode is ExecutionMode.REDIRECT
        assert result.output == []
        assert result.output_file == target
        assert target.read_text() == "x\n"

    def test_result_holds_executed_pipeline(self, executor, tmp_path):
        target = tmp_path / "out.txt"
        command = CommandBuilder("echo", arguments=["x"]).set_output_redirect_to_file(
            target
        )
        result = command.execute(executor)
        assert result.command == "echo x"
        assert ">" not in result.command

    def test_failed_dump_stage_is_not_hidden_by_compression(self, executor, tmp_path):
        target = tmp_path / "dump.sql.gz"
        command = sh("echo partial; exit 2").add_pipe_command(
            CommandBuilder("gzip", arguments=["--stdout"])
        )
        command.set_output_redirect_to_file(target)

        with pytest.raises(CommandExecutionError) as exc_info:
            command.execute(executor)

        error = exc_info.value
        assert error.exit_code == 2
        assert error.command == "sh -c 'echo partial; exit 2' | gzip --stdout"
        assert error.display_command.endswith(f"> {target}")

    def test_missing_directory_is_not_created(self, executor, tmp_path):
        target = tmp_path / "missing" / "out.txt"
        command = CommandBuilder("echo").set_output_redirect_to_file(target)
        with pytest.raises(ProcessStartError):
            command.execute(executor)
        assert not target.parent.exists()


class TestInteractive:
    def test_interactive_returns_no_lines(self, executor):
        result = CommandBuilder("true").execute_interactive(executor)
        assert result.mode is ExecutionMode.INTERACTIVE
        assert result.output == []
        assert result.exit_code == 0

    def test_interactive_with_capture_target(self, executor):
        command = CommandBuilder("echo", arguments=["kept"]).set_output_capture()
        result = command.execute_interactive(executor)
        assert result.output == ["kept"]

    def test_interactive_with_file_target(self, executor, tmp_path):
        target = tmp_path / "out.txt"
        command = CommandBuilder("echo", arguments=["to file"])
        command.set_output_redirect_to_file(target).execute_interactive(executor)
        assert target.read_text() == "to file\n"

    def test_interactive_failure_raises(self, executor):
        with pytest.raises(CommandExecutionError):
            sh("exit 1").execute_interactive(executor)


class TestLogging:
    def test_logs_masked_command_with_mode(self, executor, caplog):
        caplog.set_level(logging.INFO, logger="cmdpipe.shell.executor")
        command = CommandBuilder("echo").add_argument_template(
            "-p%s", "hunter22", sensitive=True
        )
        command.execute(executor)

        assert "EXEC::CAPTURE echo" in caplog.text
        assert "hunter22" not in caplog.text


class TestExitStatus:
    @pytest.mark.parametrize(
        "returncode, expected",
        [
            (0, (0, None)),
            (2, (2, None)),
            (127, (127, None)),
            (-15, (-15, 15)),
            (143, (143, 15)),
            (137, (137, 9)),
            (255, (255, None)),
            # A plain exit 130 is indistinguishable from SIGINT
            (130, (130, 2)),
        ],
    )
    def test_decode_exit_status(self, returncode, expected):
        assert decode_exit_status(returncode) == expected

    def test_result_to_dict(self):
        result = ExecutionResult(
            command="true",
            mode=ExecutionMode.CAPTURE,
            status=ExecutionStatus.COMPLETED,
            exit_code=0,
            start_time=1.0,
            end_time=3.5,
        )
        data = result.to_dict()
        assert data["mode"] == "capture"
        assert data["status"] == "completed"
        assert data["duration"] == 2.5
        assert data["output_file"] is None
