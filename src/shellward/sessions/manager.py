"""Connection sessions: one preview service and one execution queue per connection."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from shellward.config.models import AppSettings
from shellward.errors import CommandRejectedError
from shellward.execution.queue import ExecutionQueue
from shellward.execution.transport import ExecResult, Transport
from shellward.persistence.history import ExecutionHistory
from shellward.preview.advisor import get_confirmation_prompt, get_safer_alternatives, should_preview
from shellward.preview.models import ClassifiedPreview, CommandPreview
from shellward.preview.service import CommandPreviewService
from shellward.runtime_logging import get_runtime_logger

ConfirmCallback = Callable[[CommandPreview, str], Awaitable[bool]]


class ConnectionSession:
    """Library surface for one connection.

    ``preview_command``, ``should_preview``, ``get_confirmation_prompt`` and
    ``get_safer_alternatives`` only advise. ``enqueue_command`` runs whatever
    it is given; enforcing "confirm before running dangerous commands" is up to
    the caller, either by hand or through :meth:`run_confirmed`.
    """

    def __init__(
        self,
        connection_id: str,
        *,
        cwd: str,
        preview_service: CommandPreviewService,
        queue: ExecutionQueue,
    ) -> None:
        self.connection_id = connection_id
        self.cwd = cwd
        self.preview_service = preview_service
        self.queue = queue

    @property
    def closed(self) -> bool:
        return self.queue.closed

    async def preview_command(self, command: str, cwd: str | None = None) -> ClassifiedPreview:
        return await self.preview_service.preview_command(command, cwd or self.cwd)

    def should_preview(self, command: str) -> bool:
        return should_preview(command)

    def get_confirmation_prompt(self, preview: CommandPreview) -> str | None:
        return get_confirmation_prompt(preview)

    def get_safer_alternatives(self, command: str) -> list[str]:
        return get_safer_alternatives(command)

    def enqueue_command(self, command: str, timeout_s: float | None = None) -> asyncio.Future[ExecResult]:
        return self.queue.enqueue(command, timeout_s)

    async def run_confirmed(
        self,
        command: str,
        confirm: ConfirmCallback,
        *,
        cwd: str | None = None,
        timeout_s: float | None = None,
    ) -> ExecResult:
        """Preview, ask ``confirm`` for anything not safe, then execute.

        Every command is classified here, not just those ``should_preview``
        flags. Raises :class:`CommandRejectedError` if ``confirm`` returns
        False.
        """

        preview = await self.preview_command(command, cwd)
        prompt = get_confirmation_prompt(preview)
        if prompt is not None and not await confirm(preview, prompt):
            raise CommandRejectedError(command, preview.risk_level)
        return await self.enqueue_command(command, timeout_s)

    async def close(self) -> None:
        await self.queue.close()
        await self.preview_service.aclose()


class SessionManager:
    """Owns every open :class:`ConnectionSession`, keyed by connection id."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        preview_service: CommandPreviewService | None = None,
    ) -> None:
        self.settings = settings or AppSettings()
        self._shared_preview_service = preview_service
        self._sessions: dict[str, ConnectionSession] = {}
        self.logger = get_runtime_logger()

    def open(
        self,
        connection_id: str,
        transport: Transport,
        *,
        cwd: str,
        history: ExecutionHistory | None = None,
    ) -> ConnectionSession:
        existing = self._sessions.get(connection_id)
        if existing is not None and not existing.closed:
            raise ValueError(f"Connection already open: {connection_id}")

        execution = self.settings.execution
        if history is None and execution.record_history:
            history = ExecutionHistory.for_connection(connection_id)

        session = ConnectionSession(
            connection_id,
            cwd=cwd,
            preview_service=self._shared_preview_service or CommandPreviewService.from_settings(self.settings),
            queue=ExecutionQueue(
                transport,
                connection_id=connection_id,
                default_timeout_s=execution.default_timeout_s,
                max_depth=execution.max_queue_depth,
                history=history,
            ),
        )
        self._sessions[connection_id] = session
        self.logger.info("session.open", connection_id=connection_id, cwd=cwd)
        return session

    def get(self, connection_id: str) -> ConnectionSession | None:
        return self._sessions.get(connection_id)

    def all(self) -> list[ConnectionSession]:
        return list(self._sessions.values())

    async def close(self, connection_id: str) -> None:
        session = self._sessions.pop(connection_id, None)
        if session is None:
            return
        await self._close_session(session)

    async def close_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        await asyncio.gather(*(self._close_session(session) for session in sessions))

    async def _close_session(self, session: ConnectionSession) -> None:
        if self._shared_preview_service is not None:
            await session.queue.close()
        else:
            await session.close()
        self.logger.info("session.close", connection_id=session.connection_id)
