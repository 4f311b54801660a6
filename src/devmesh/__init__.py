"""Helper binary provisioning and container network mesh for local development environments."""

from devmesh.config import InstallConfig, MeshConfig
from devmesh.errors import (
    ArchiveError,
    ArchiveMemberNotFound,
    BinaryFetchError,
    ContainerAmbiguous,
    ContainerNotFound,
    DevMeshError,
    EngineQueryFailure,
    EngineUnreachable,
    EngineVersionMismatch,
    ExecutionError,
    LaunchFailure,
    NetworkQueryFailure,
    NonZeroExit,
    PathEscape,
    UnsupportedAction,
    UnsupportedPlatform,
)
from devmesh.shell import LocalShell, MockShell, Shell
from devmesh.types import (
    BatchResult,
    CaptureMode,
    ExecutionRequest,
    ExecutionResult,
    NetworkAction,
    NetworkEndpointSpec,
    ServiceOutcome,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "InstallConfig",
    "MeshConfig",

    # Execution
    "Shell",
    "LocalShell",
    "MockShell",
    "CaptureMode",
    "ExecutionRequest",
    "ExecutionResult",

    # Mesh types
    "BatchResult",
    "NetworkAction",
    "NetworkEndpointSpec",
    "ServiceOutcome",

    # Error types
    "DevMeshError",
    "ExecutionError",
    "LaunchFailure",
    "NonZeroExit",
    "ArchiveError",
    "ArchiveMemberNotFound",
    "PathEscape",
    "UnsupportedAction",
    "ContainerNotFound",
    "ContainerAmbiguous",
    "EngineQueryFailure",
    "NetworkQueryFailure",
    "EngineUnreachable",
    "EngineVersionMismatch",
    "UnsupportedPlatform",
    "BinaryFetchError",
]
