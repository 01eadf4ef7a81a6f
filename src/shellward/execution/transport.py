"""Contract for the collaborator that actually runs commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol


@dataclass(slots=True)
class ExecResult:
    command: str
    output: str
    exit_code: int
    duration: float

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @classmethod
    def from_payload(cls, command: str, payload: Mapping[str, Any]) -> "ExecResult":
        """Accept ``{output, exitCode|exit_code, duration}`` as sent by bridge transports."""

        exit_code = payload.get("exitCode", payload.get("exit_code", -1))
        return cls(
            command=command,
            output=str(payload.get("output", "")),
            exit_code=int(exit_code),
            duration=float(payload.get("duration", 0.0)),
        )


class Transport(Protocol):
    """Runs one opaque command string against a shell session.

    Implementations (SSH, WebSocket, local bridges) live outside this package.
    ``timeout_s`` is advisory: the execution queue enforces its own timeout by
    abandoning the call, so a transport that can kill the remote command on
    timeout or on cancellation should do so.
    """

    async def execute(self, command: str, *, timeout_s: float | None = None) -> ExecResult | Mapping[str, Any]: ...
