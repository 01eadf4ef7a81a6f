"""Command risk analysis and safe, serialized execution for shell sessions.

The pipeline predicts what a command will touch, classifies it as ``safe``,
``moderate`` or ``dangerous``, renders confirmation text and safer
alternatives, and runs approved commands one at a time per connection.

It only classifies and advises. Nothing here refuses to execute a dangerous
command: callers must ask for confirmation before enqueueing one (see
``ConnectionSession.run_confirmed``).
"""

from shellward.errors import (
    CommandRejectedError,
    ConnectionClosedError,
    ExecutionError,
    ExecutionTimeoutError,
    PreviewSealedError,
    QueueFullError,
    ShellwardError,
    TransportError,
)
from shellward.execution import ExecResult, ExecutionQueue, Transport
from shellward.preview import (
    ClassifiedPreview,
    CommandAnalyzer,
    CommandPreview,
    CommandPreviewService,
    RiskClassifier,
    get_confirmation_prompt,
    get_safer_alternatives,
    should_preview,
)
from shellward.sessions import ConnectionSession, SessionManager
from shellward.version import __version__

__all__ = [
    "ClassifiedPreview",
    "CommandAnalyzer",
    "CommandPreview",
    "CommandPreviewService",
    "CommandRejectedError",
    "ConnectionClosedError",
    "ConnectionSession",
    "ExecResult",
    "ExecutionError",
    "ExecutionQueue",
    "ExecutionTimeoutError",
    "PreviewSealedError",
    "QueueFullError",
    "RiskClassifier",
    "SessionManager",
    "ShellwardError",
    "Transport",
    "TransportError",
    "__version__",
    "get_confirmation_prompt",
    "get_safer_alternatives",
    "should_preview",
]
