"""Child process execution.

Callers depend on the :class:`Shell` protocol only; :class:`LocalShell` runs
real processes and :class:`MockShell` replays a fixed result.

Every call writes to the process-wide inherited stdio, so callers must not run
``execute`` concurrently from several threads.
"""

import shlex
import subprocess
import sys
import tempfile
from typing import IO, Iterable, Optional, Protocol, Sequence

from devmesh.errors import LaunchFailure, NonZeroExit
from devmesh.logging import get_logger
from devmesh.types import CaptureMode, ExecutionRequest, ExecutionResult

logger = get_logger(__name__)

CHUNK_SIZE = 8192


class Shell(Protocol):
    """Capability to run an external program."""

    def execute(self, program: str, *args: str) -> bytes:
        ...

    def execute_with_options(
        self, program: str, args: Sequence[str], *, capture_output: Optional[bool] = None
    ) -> bytes:
        ...


def _write_through(chunk: bytes) -> None:
    """Write raw bytes to the inherited stdout."""
    stream = getattr(sys.stdout, "buffer", None)
    if stream is None:
        sys.stdout.write(chunk.decode(errors="replace"))
        sys.stdout.flush()
        return
    sys.stdout.flush()
    stream.write(chunk)
    stream.flush()


def _tee(source: IO[bytes]) -> bytes:
    """Copy everything from source to stdout, returning what was copied."""
    captured = bytearray()
    for chunk in iter(lambda: source.read1(CHUNK_SIZE), b""):
        captured.extend(chunk)
        _write_through(chunk)
    return bytes(captured)


class LocalShell:
    """Runs programs on the local host."""

    def __init__(self, capture_output: bool = False):
        self.capture_output = capture_output

    def execute(self, program: str, *args: str) -> bytes:
        return self.execute_with_options(program, args)

    def execute_with_options(
        self, program: str, args: Sequence[str], *, capture_output: Optional[bool] = None
    ) -> bytes:
        if capture_output is None:
            capture_output = self.capture_output
        request = ExecutionRequest(
            program=program,
            args=tuple(args),
            capture=CaptureMode.CAPTURE if capture_output else CaptureMode.PASSTHROUGH,
        )
        result = self.run(request)
        return result.output or b""

    def run(self, request: ExecutionRequest) -> ExecutionResult:
        """Run the request to completion; raise on launch failure or non-zero exit."""
        capture = request.capture == CaptureMode.CAPTURE

        logger.debug("running_command", command=request.command_line, capture=capture)

        try:
            process = subprocess.Popen(
                request.argv,
                stdin=None,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.STDOUT if capture else None,
            )
        except OSError as e:
            raise LaunchFailure(request.command_line) from e

        with process:
            output = _tee(process.stdout) if capture else None
            returncode = process.wait()

        logger.debug(
            "command_complete", command=request.command_line, returncode=returncode
        )

        if returncode != 0:
            raise NonZeroExit(request.command_line, returncode, output)

        return ExecutionResult(output=output, returncode=returncode)


class MockShell:
    """Shell replaying a fixed output or error, whatever it is asked to run."""

    def __init__(
        self,
        output: Optional[bytes] = None,
        error: Optional[Exception] = None,
        last_command: str = "",
    ):
        self.output = output
        self.error = error
        self.last_command = last_command
        self.calls: list[list[str]] = []

    def execute(self, program: str, *args: str) -> bytes:
        return self.execute_with_options(program, args)

    def execute_with_options(
        self, program: str, args: Sequence[str], *, capture_output: Optional[bool] = None
    ) -> bytes:
        argv = [program, *args]
        self.calls.append(argv)
        self.last_command = shlex.join(argv)
        if self.error is not None:
            raise self.error
        return self.output if self.output is not None else b""


def platform_shell_argv(args: Iterable[str]) -> list[str]:
    """Wrap a command line for the host's command interpreter."""
    args = list(args)
    if sys.platform == "win32":
        return ["cmd", "/c", *args]
    return ["sh", "-c", " ".join(args)]


def run_os_command(args: Iterable[str], suppress_output: bool = False) -> str:
    """Run a command line through the host shell.

    With ``suppress_output`` the combined output is returned instead of being
    written to the inherited streams.
    """
    argv = platform_shell_argv(args)
    command = shlex.join(argv)
    logger.debug("running_os_command", command=command)

    try:
        completed = subprocess.run(
            argv,
            stdout=subprocess.PIPE if suppress_output else None,
            stderr=subprocess.STDOUT if suppress_output else None,
        )
    except OSError as e:
        raise LaunchFailure(command) from e

    output = completed.stdout or b""
    if completed.returncode != 0:
        raise NonZeroExit(command, completed.returncode, output)
    return output.decode(errors="replace")


def check_exit_code(program: str, *args: str) -> int:
    """Run a program and return its exit status."""
    argv = [program, *args]
    command = shlex.join(argv)
    try:
        completed = subprocess.run(argv, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    except OSError as e:
        raise LaunchFailure(command) from e

    logger.debug(
        "exit_code_checked",
        command=command,
        returncode=completed.returncode,
        output=completed.stdout.decode(errors="replace"),
    )
    return completed.returncode


def pipeline(*commands: Sequence[str]) -> tuple[bytes, bytes]:
    """Pipe each command's stdout into the next one's stdin.

    Returns the last command's stdout and the stderr collected from all stages.
    """
    if not commands:
        return b"", b""

    processes: list[subprocess.Popen] = []
    with tempfile.TemporaryFile() as errors:
        previous = None
        try:
            for argv in commands:
                try:
                    process = subprocess.Popen(
                        list(argv),
                        stdin=previous.stdout if previous else None,
                        stdout=subprocess.PIPE,
                        stderr=errors,
                    )
                except OSError as e:
                    raise LaunchFailure(shlex.join(argv)) from e
                if previous is not None:
                    # the next stage owns the pipe now
                    previous.stdout.close()
                processes.append(process)
                previous = process

            output, _ = processes[-1].communicate()
            returncodes = [p.wait() for p in processes]
        finally:
            for process in processes:
                if process.poll() is None:
                    process.kill()
                    process.wait()

        errors.seek(0)
        collected = errors.read()

    for argv, returncode in zip(commands, returncodes):
        if returncode != 0:
            raise NonZeroExit(shlex.join(argv), returncode, output)

    return output, collected
