"""Per-connection FIFO, single-flight command executor."""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from dataclasses import dataclass
from typing import Literal

from shellward.errors import (
    ConnectionClosedError,
    ExecutionError,
    ExecutionTimeoutError,
    QueueFullError,
    TransportError,
)
from shellward.execution.transport import ExecResult, Transport
from shellward.persistence.history import ExecutionHistory, ExecutionRecord, ExecutionStatus
from shellward.runtime_logging import get_runtime_logger

QueueState = Literal["idle", "draining"]

DEFAULT_TIMEOUT_S = 30.0


@dataclass(slots=True)
class QueueEntry:
    command: str
    timeout_s: float
    future: asyncio.Future[ExecResult]
    enqueued_at: float


class ExecutionQueue:
    """Runs commands for one connection strictly one at a time, in arrival order.

    A single consumer task drains the queue. It is started synchronously by
    :meth:`enqueue` when none is running and exits when the queue is empty, so
    there is never more than one transport call in flight per queue. Queues of
    different connections are independent and drain concurrently.

    Timeouts abandon rather than kill: the pending transport coroutine is
    cancelled locally and the entry is rejected with
    :class:`ExecutionTimeoutError`, but nothing guarantees the command stops
    on the remote side. The next entry starts right away.

    The queue executes whatever it is given. Previewing and confirming risky
    commands must happen before :meth:`enqueue`.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        connection_id: str = "default",
        default_timeout_s: float = DEFAULT_TIMEOUT_S,
        max_depth: int | None = None,
        history: ExecutionHistory | None = None,
    ) -> None:
        self.transport = transport
        self.connection_id = connection_id
        self.default_timeout_s = default_timeout_s
        self.max_depth = max_depth
        self.history = history
        self._pending: deque[QueueEntry] = deque()
        self._in_flight: QueueEntry | None = None
        self._worker: asyncio.Task[None] | None = None
        self._closed = False
        self.logger = get_runtime_logger().bind(connection_id=connection_id)

    @property
    def state(self) -> QueueState:
        if self._worker is not None and not self._worker.done():
            return "draining"
        return "idle"

    @property
    def depth(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> str | None:
        return self._in_flight.command if self._in_flight is not None else None

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, command: str, timeout_s: float | None = None) -> asyncio.Future[ExecResult]:
        """Append ``command`` and return a future that settles exactly once.

        Raises :class:`ConnectionClosedError` after :meth:`close` and
        :class:`QueueFullError` when ``max_depth`` entries are already waiting.
        """

        if self._closed:
            raise ConnectionClosedError(self.connection_id, command)
        if self.max_depth is not None and len(self._pending) >= self.max_depth:
            raise QueueFullError(self.connection_id, self.max_depth)

        effective_timeout = self.default_timeout_s if timeout_s is None else timeout_s
        if effective_timeout <= 0:
            raise ValueError("timeout_s must be positive")

        loop = asyncio.get_running_loop()
        entry = QueueEntry(
            command=command,
            timeout_s=effective_timeout,
            future=loop.create_future(),
            enqueued_at=loop.time(),
        )
        self._pending.append(entry)
        self.logger.debug("queue.enqueue", command=command, depth=len(self._pending), state=self.state)

        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain(), name=f"shellward-queue-{self.connection_id}")
        return entry.future

    async def run(self, command: str, timeout_s: float | None = None) -> ExecResult:
        return await self.enqueue(command, timeout_s)

    async def wait_idle(self) -> None:
        worker = self._worker
        if worker is not None and not worker.done():
            await asyncio.wait({worker})

    async def close(self) -> None:
        """Reject every pending and in-flight entry and stop the consumer."""

        if self._closed:
            return
        self._closed = True

        entries = list(self._pending)
        self._pending.clear()
        if self._in_flight is not None:
            entries.insert(0, self._in_flight)

        rejected = 0
        for entry in entries:
            if self._fail(entry, ConnectionClosedError(self.connection_id, entry.command), "closed"):
                rejected += 1

        worker = self._worker
        self._worker = None
        if worker is not None and not worker.done() and worker is not asyncio.current_task():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker

        self.logger.info("queue.closed", rejected=rejected)

    async def __aenter__(self) -> "ExecutionQueue":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()

    async def _drain(self) -> None:
        self.logger.debug("queue.drain.start", depth=len(self._pending))
        while self._pending:
            entry = self._pending.popleft()
            if entry.future.done():
                self.logger.debug("queue.entry.skipped", command=entry.command)
                continue
            await self._execute(entry)
        self.logger.debug("queue.drain.idle")

    async def _execute(self, entry: QueueEntry) -> None:
        loop = asyncio.get_running_loop()
        self._in_flight = entry
        started = loop.time()
        self.logger.debug(
            "queue.execute.start",
            command=entry.command,
            waited_s=round(started - entry.enqueued_at, 4),
            timeout_s=entry.timeout_s,
        )

        call = asyncio.ensure_future(self._call_transport(entry))
        try:
            done, _ = await asyncio.wait({call}, timeout=entry.timeout_s)
            if call not in done:
                self._abandon(entry, call)
                self._fail(entry, ExecutionTimeoutError(entry.command, entry.timeout_s), "timeout")
            elif call.cancelled():
                self._fail(entry, TransportError(entry.command, "transport call was cancelled"), "transport_error")
            elif call.exception() is not None:
                cause = call.exception()
                error = TransportError(entry.command, str(cause) or type(cause).__name__)
                error.__cause__ = cause
                self._fail(entry, error, "transport_error")
            else:
                self._succeed(entry, call.result(), loop.time() - started)
        except asyncio.CancelledError:
            self._abandon(entry, call)
            raise
        finally:
            self._in_flight = None

    async def _call_transport(self, entry: QueueEntry) -> ExecResult:
        result = await self.transport.execute(entry.command, timeout_s=entry.timeout_s)
        if isinstance(result, ExecResult):
            return result
        return ExecResult.from_payload(entry.command, result)

    def _abandon(self, entry: QueueEntry, call: asyncio.Future[ExecResult]) -> None:
        if call.done():
            return
        self.logger.debug("queue.execute.abandon", command=entry.command)
        call.cancel()

        def _reap(finished: asyncio.Future[ExecResult]) -> None:
            # Retrieve the outcome so a late transport failure is not reported as unhandled.
            if not finished.cancelled() and finished.exception() is not None:
                self.logger.debug(
                    "queue.abandoned.failed",
                    command=entry.command,
                    error=str(finished.exception()),
                )

        call.add_done_callback(_reap)

    def _succeed(self, entry: QueueEntry, result: ExecResult, elapsed: float) -> None:
        if entry.future.done():
            return
        entry.future.set_result(result)
        self.logger.info(
            "queue.execute.ok",
            command=entry.command,
            exit_code=result.exit_code,
            elapsed_s=round(elapsed, 4),
        )
        self._record(ExecutionRecord(command=entry.command, status="ok", exit_code=result.exit_code, duration=result.duration))

    def _fail(self, entry: QueueEntry, error: ExecutionError, status: ExecutionStatus) -> bool:
        if entry.future.done():
            return False
        entry.future.set_exception(error)
        self.logger.warning(f"queue.execute.{status}", command=entry.command, error=str(error))
        self._record(ExecutionRecord(command=entry.command, status=status, error=str(error)))
        return True

    def _record(self, record: ExecutionRecord) -> None:
        if self.history is None:
            return
        try:
            self.history.record(record)
        except OSError as exc:
            self.logger.error("queue.history.error", path=str(self.history.path), error=str(exc))
