"""Error types for devmesh."""
import logging
from typing import Any, Dict, Optional


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    logger: Optional[Any] = None,
) -> None:
    """Log an error with context."""
    logger = logger or logging.getLogger(__name__)

    error_info = {
        "error_type": error.__class__.__name__,
        "error_message": str(error),
    }
    if context:
        error_info["context"] = context
    if isinstance(error, DevMeshError):
        error_info["details"] = error.details

    logger.error("devmesh error occurred", extra={"data": error_info})


class DevMeshError(Exception):
    """Base error class for devmesh."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ExecutionError(DevMeshError):
    """A child process could not be run to a successful exit."""


class LaunchFailure(ExecutionError):
    """The program could not be started."""

    def __init__(self, command: str):
        super().__init__(
            f"Failed to launch command: {command}",
            details={"command": command},
        )
        self.command = command


class NonZeroExit(ExecutionError):
    """The program ran and exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, output: Optional[bytes] = None):
        super().__init__(
            f"Command exited with status {returncode}: {command}",
            details={"command": command, "returncode": returncode},
        )
        self.command = command
        self.returncode = returncode
        self.output = output


class ArchiveError(DevMeshError):
    """Archive could not be read."""


class ArchiveMemberNotFound(ArchiveError):
    """No archive member matches the wanted executable."""

    def __init__(self, wanted: str, archive: str, found: Optional[str] = None):
        if found is None:
            message = f"File named '{wanted}' is not found in {archive}"
        else:
            message = f"File name '{found}' does not match command '{wanted}' found in {archive}"
        super().__init__(
            message,
            details={"wanted": wanted, "archive": archive, "found": found},
        )
        self.wanted = wanted
        self.archive = archive


class PathEscape(ArchiveError):
    """Archive entry would be written outside the destination directory."""

    def __init__(self, path: str, dest: str):
        super().__init__(
            f"{path}: illegal file path",
            details={"path": path, "dest": dest},
        )
        self.path = path


class UnsupportedAction(DevMeshError):
    """Unknown network action requested."""

    def __init__(self, action: str):
        super().__init__(
            f"Unsupported action: {action}",
            details={"action": action},
        )
        self.action = action


class ContainerNotFound(DevMeshError):
    """No container matches the name filter."""

    def __init__(self, name: str):
        super().__init__(f"Container cannot be found: {name}", details={"name": name})
        self.name = name


class ContainerAmbiguous(DevMeshError):
    """More than one container matches the name filter."""

    def __init__(self, name: str, matches: list):
        super().__init__(
            f"Too many containers found for {name}: {len(matches)}",
            details={"name": name, "matches": matches},
        )
        self.name = name
        self.matches = matches


class EngineQueryFailure(DevMeshError):
    """The container engine call itself failed."""


class NetworkQueryFailure(EngineQueryFailure):
    """Listing networks failed; distinct from the network not existing."""

    def __init__(self, network: str):
        super().__init__(
            f"Failed to query network {network}",
            details={"network": network},
        )
        self.network = network


class EngineUnreachable(DevMeshError):
    """The container engine API cannot be reached."""


class EngineVersionMismatch(DevMeshError):
    """The container engine is older than required."""

    def __init__(self, current: str, minimum: str):
        super().__init__(
            f"Docker version is too old: {current} < {minimum}",
            details={"current": current, "minimum": minimum},
        )


class UnsupportedPlatform(DevMeshError):
    """Operating system or architecture is not supported."""


class BinaryFetchError(DevMeshError):
    """A helper binary could not be obtained."""

    def __init__(self, name: str, reason: str):
        super().__init__(
            f"Failed to fetch {name}: {reason}",
            details={"binary": name},
        )
        self.name = name
