"""Per-connection ownership of the preview and execution pipeline."""

from shellward.sessions.manager import ConfirmCallback, ConnectionSession, SessionManager

__all__ = ["ConfirmCallback", "ConnectionSession", "SessionManager"]
