"""Exception types raised by the preview and execution pipeline."""

from __future__ import annotations

from dataclasses import dataclass


class ShellwardError(Exception):
    """Base class for every error raised by shellward."""


class PreviewSealedError(ShellwardError):
    """A classified preview was mutated after the pipeline handed it out."""


class ExecutionError(ShellwardError):
    """Base class for failures settling a queued command."""


@dataclass(slots=True, eq=False)
class TransportError(ExecutionError):
    """The transport ran (or tried to run) the command and failed.

    The original transport exception is available as ``__cause__``.
    """

    command: str
    message: str

    def __str__(self) -> str:
        return f"Transport failed for {self.command!r}: {self.message}"


@dataclass(slots=True, eq=False)
class ExecutionTimeoutError(ExecutionError):
    """The command was abandoned after ``timeout_s`` without a result.

    Abandoning is client-side only: the transport call is cancelled locally,
    the remote operation may still be running.
    """

    command: str
    timeout_s: float

    def __str__(self) -> str:
        return f"Command execution timeout after {self.timeout_s:g}s: {self.command!r}"


@dataclass(slots=True, eq=False)
class ConnectionClosedError(ExecutionError):
    """The owning connection was disposed before the command settled."""

    connection_id: str
    command: str | None = None

    def __str__(self) -> str:
        if self.command is None:
            return f"Connection {self.connection_id!r} is closed"
        return f"Connection {self.connection_id!r} closed before {self.command!r} settled"


@dataclass(slots=True, eq=False)
class QueueFullError(ExecutionError):
    connection_id: str
    max_depth: int

    def __str__(self) -> str:
        return f"Execution queue for {self.connection_id!r} is full ({self.max_depth} pending)"


@dataclass(slots=True, eq=False)
class CommandRejectedError(ShellwardError):
    """The confirmation callback declined a risky command."""

    command: str
    risk_level: str

    def __str__(self) -> str:
        return f"Command rejected ({self.risk_level}): {self.command!r}"
