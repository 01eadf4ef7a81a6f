"""Serialized command execution against an injected transport."""

from shellward.execution.queue import ExecutionQueue, QueueEntry, QueueState
from shellward.execution.transport import ExecResult, Transport

__all__ = ["ExecResult", "ExecutionQueue", "QueueEntry", "QueueState", "Transport"]
