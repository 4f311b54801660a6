"""Core type definitions"""

import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

CaptureMode = Enum("CaptureMode", ["CAPTURE", "PASSTHROUGH"])


class NetworkAction(str, Enum):
    CONNECT = "connect"
    DISCONNECT = "disconnect"


class OutcomeStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ExecutionRequest:
    """Single child process invocation"""
    program: str
    args: tuple[str, ...] = ()
    capture: CaptureMode = CaptureMode.PASSTHROUGH

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)


@dataclass(frozen=True)
class ExecutionResult:
    """Process outcome; output is None when it was streamed, not captured"""
    output: Optional[bytes]
    returncode: int


@dataclass(frozen=True)
class NetworkEndpointSpec:
    """A container's membership on one network"""
    network: str
    container: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class ServiceOutcome:
    """Result of attaching or detaching one container (or one service lookup)"""
    service: str
    status: OutcomeStatus
    container_id: Optional[str] = None
    error: Optional[Exception] = None


@dataclass
class BatchResult:
    """Per-item outcomes of a best-effort batch operation"""
    action: NetworkAction
    network: str
    outcomes: list[ServiceOutcome] = field(default_factory=list)

    def add(self, outcome: ServiceOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def failed(self) -> list[ServiceOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]

    @property
    def succeeded(self) -> list[ServiceOutcome]:
        return [
            o for o in self.outcomes
            if o.status in (OutcomeStatus.CONNECTED, OutcomeStatus.DISCONNECTED)
        ]

    @property
    def ok(self) -> bool:
        return not self.failed
