"""Tests for child process execution."""
import sys

import pytest

from devmesh.errors import ExecutionError, LaunchFailure, NonZeroExit
from devmesh.shell import (
    LocalShell,
    MockShell,
    check_exit_code,
    pipeline,
    run_os_command,
)
from devmesh.types import CaptureMode, ExecutionRequest

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell")


def test_execute_captures_output():
    """Captured output is returned as bytes"""
    shell = LocalShell(capture_output=True)
    assert shell.execute("/bin/sh", "-c", "echo test") == b"test\n"


def test_execute_captured_output_still_reaches_stdout(capfd):
    shell = LocalShell(capture_output=True)
    shell.execute("/bin/sh", "-c", "echo test")

    assert "test\n" in capfd.readouterr().out


def test_execute_without_capture_streams_output(capfd):
    shell = LocalShell(capture_output=False)
    assert shell.execute("/bin/sh", "-c", "echo test") == b""

    assert capfd.readouterr().out == "test\n"


def test_execute_merges_stderr_when_capturing():
    shell = LocalShell(capture_output=True)
    assert shell.execute("/bin/sh", "-c", "echo oops 1>&2") == b"oops\n"


def test_execute_with_options_overrides_default():
    shell = LocalShell(capture_output=False)
    output = shell.execute_with_options("/bin/sh", ["-c", "echo test"], capture_output=True)
    assert output == b"test\n"


def test_non_zero_exit():
    shell = LocalShell(capture_output=True)
    with pytest.raises(NonZeroExit) as exc_info:
        shell.execute("/bin/sh", "-c", "echo partial; exit 3")

    assert exc_info.value.returncode == 3
    assert exc_info.value.output == b"partial\n"
    assert isinstance(exc_info.value, ExecutionError)


def test_false_fails():
    with pytest.raises(NonZeroExit):
        LocalShell(capture_output=True).execute("false")


def test_launch_failure_keeps_cause():
    shell = LocalShell()
    with pytest.raises(LaunchFailure) as exc_info:
        shell.execute("/nonexistent/devmesh-test-binary")

    assert isinstance(exc_info.value.__cause__, FileNotFoundError)
    assert isinstance(exc_info.value, ExecutionError)


def test_run_passthrough_result(capfd):
    request = ExecutionRequest("/bin/sh", ("-c", "true"), CaptureMode.PASSTHROUGH)
    result = LocalShell().run(request)

    assert result.output is None
    assert result.returncode == 0


def test_request_command_line():
    request = ExecutionRequest("docker", ("compose", "up", "-d", "my service"))
    assert request.command_line == "docker compose up -d 'my service'"
    assert request.capture == CaptureMode.PASSTHROUGH


@pytest.mark.parametrize("args", [(), ("anything",), ("docker", "ps", "-a")])
def test_mock_shell_replays_output(args):
    shell = MockShell(output=b"test", error=None, last_command="test")
    assert shell.execute("whatever", *args) == b"test"


def test_mock_shell_raises_error():
    shell = MockShell(output=None, error=RuntimeError("test error"))
    with pytest.raises(RuntimeError, match="test error"):
        shell.execute("")


def test_mock_shell_records_commands():
    shell = MockShell(output=b"")
    shell.execute("docker", "network", "ls")
    shell.execute_with_options("mutagen", ["version"], capture_output=True)

    assert shell.last_command == "mutagen version"
    assert shell.calls == [["docker", "network", "ls"], ["mutagen", "version"]]


def test_run_os_command_suppressed():
    assert run_os_command(["echo", "hello"], suppress_output=True) == "hello\n"


def test_run_os_command_failure():
    with pytest.raises(NonZeroExit):
        run_os_command(["exit", "2"], suppress_output=True)


def test_check_exit_code():
    assert check_exit_code("/bin/sh", "-c", "exit 0") == 0
    assert check_exit_code("/bin/sh", "-c", "exit 4") == 4


def test_check_exit_code_launch_failure():
    with pytest.raises(LaunchFailure):
        check_exit_code("/nonexistent/devmesh-test-binary")


def test_pipeline():
    output, errors = pipeline(
        ["/bin/sh", "-c", "printf 'a\\nb\\nc\\n'"],
        ["grep", "b"],
    )
    assert output == b"b\n"
    assert errors == b""


def test_pipeline_collects_stderr():
    output, errors = pipeline(
        ["/bin/sh", "-c", "echo warn 1>&2; echo data"],
        ["cat"],
    )
    assert output == b"data\n"
    assert errors == b"warn\n"


def test_pipeline_failing_stage():
    with pytest.raises(NonZeroExit) as exc_info:
        pipeline(["/bin/sh", "-c", "echo data; exit 5"], ["cat"])

    assert exc_info.value.returncode == 5


def test_pipeline_empty():
    assert pipeline() == (b"", b"")
