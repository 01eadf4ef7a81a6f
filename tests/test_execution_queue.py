from __future__ import annotations

import asyncio
import tempfile
import unittest
from pathlib import Path
from typing import Any

from shellward.errors import ConnectionClosedError, ExecutionTimeoutError, QueueFullError, TransportError
from shellward.execution.queue import ExecutionQueue
from shellward.execution.transport import ExecResult
from shellward.persistence.history import ExecutionHistory
from shellward.runtime_logging import configure_runtime_logging


class RecordingTransport:
    """Fake transport that records call order and overlap."""

    def __init__(
        self,
        *,
        delays: dict[str, float] | None = None,
        hang: set[str] | None = None,
        fail: dict[str, Exception] | None = None,
        payloads: dict[str, Any] | None = None,
        shared: dict[str, int] | None = None,
    ) -> None:
        self.delays = delays or {}
        self.hang = hang or set()
        self.fail = fail or {}
        self.payloads = payloads or {}
        self.calls: list[str] = []
        self.spans: list[tuple[str, float, float]] = []
        self.cancelled: list[str] = []
        self.active = 0
        self.max_active = 0
        self.shared = shared

    def _enter(self) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        if self.shared is not None:
            self.shared["active"] += 1
            self.shared["max_active"] = max(self.shared["max_active"], self.shared["active"])

    def _leave(self) -> None:
        self.active -= 1
        if self.shared is not None:
            self.shared["active"] -= 1

    async def execute(self, command: str, *, timeout_s: float | None = None) -> Any:
        loop = asyncio.get_running_loop()
        started = loop.time()
        self.calls.append(command)
        self._enter()
        try:
            if command in self.hang:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delays.get(command, 0))
            if command in self.fail:
                raise self.fail[command]
            if command in self.payloads:
                return self.payloads[command]
            return ExecResult(command=command, output=f"ran {command}", exit_code=0, duration=0.0)
        except asyncio.CancelledError:
            self.cancelled.append(command)
            raise
        finally:
            self._leave()
            self.spans.append((command, started, loop.time()))


class ExecutionQueueOrderingTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        configure_runtime_logging(level="off")

    async def test_runs_in_arrival_order_without_overlap(self) -> None:
        transport = RecordingTransport(delays={"a": 0.03, "b": 0.01, "c": 0.0})
        queue = ExecutionQueue(transport, connection_id="conn-1")

        futures = [queue.enqueue(command) for command in ("a", "b", "c")]
        results = await asyncio.gather(*futures)

        self.assertEqual([r.command for r in results], ["a", "b", "c"])
        self.assertEqual(transport.calls, ["a", "b", "c"])
        self.assertEqual(transport.max_active, 1)
        for (_, _, previous_end), (_, next_start, _) in zip(transport.spans, transport.spans[1:]):
            self.assertLessEqual(previous_end, next_start)

    async def test_single_command_result(self) -> None:
        queue = ExecutionQueue(RecordingTransport())

        result = await queue.run("echo hi")

        self.assertEqual(result.output, "ran echo hi")
        self.assertTrue(result.ok)

    async def test_state_moves_between_draining_and_idle(self) -> None:
        transport = RecordingTransport(delays={"slow": 0.02})
        queue = ExecutionQueue(transport)
        self.assertEqual(queue.state, "idle")

        future = queue.enqueue("slow")
        self.assertEqual(queue.state, "draining")

        await future
        await queue.wait_idle()
        self.assertEqual(queue.state, "idle")
        self.assertEqual(queue.depth, 0)
        self.assertIsNone(queue.in_flight)

    async def test_enqueue_while_draining_appends_to_tail(self) -> None:
        transport = RecordingTransport(delays={"first": 0.02})
        queue = ExecutionQueue(transport)

        async def chain() -> None:
            await queue.enqueue("first")
            await queue.enqueue("third")

        chained = asyncio.ensure_future(chain())
        await asyncio.sleep(0)
        second = queue.enqueue("second")
        await second
        await chained

        self.assertEqual(transport.calls, ["first", "second", "third"])
        self.assertEqual(transport.max_active, 1)

    async def test_restarts_after_going_idle(self) -> None:
        transport = RecordingTransport()
        queue = ExecutionQueue(transport)

        await queue.run("one")
        await queue.wait_idle()
        await queue.run("two")

        self.assertEqual(transport.calls, ["one", "two"])

    async def test_connections_drain_independently(self) -> None:
        shared = {"active": 0, "max_active": 0}
        first = ExecutionQueue(RecordingTransport(delays={"x": 0.05}, shared=shared), connection_id="a")
        second = ExecutionQueue(RecordingTransport(delays={"y": 0.05}, shared=shared), connection_id="b")

        await asyncio.gather(first.enqueue("x"), second.enqueue("y"))

        self.assertEqual(shared["max_active"], 2)


class ExecutionQueueFailureTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        configure_runtime_logging(level="off")

    async def test_timeout_rejects_and_next_command_starts(self) -> None:
        transport = RecordingTransport(hang={"stuck"})
        queue = ExecutionQueue(transport)
        loop = asyncio.get_running_loop()

        started = loop.time()
        stuck = queue.enqueue("stuck", timeout_s=0.05)
        after = queue.enqueue("after")

        with self.assertRaises(ExecutionTimeoutError) as ctx:
            await stuck
        elapsed = loop.time() - started
        self.assertGreaterEqual(elapsed, 0.04)
        self.assertLess(elapsed, 1.0)
        self.assertEqual(ctx.exception.timeout_s, 0.05)
        self.assertIn("timeout after 0.05s", str(ctx.exception))

        result = await after
        self.assertEqual(result.command, "after")
        self.assertLess(loop.time() - started, 1.0)
        self.assertEqual(transport.calls, ["stuck", "after"])

        await asyncio.sleep(0)
        self.assertIn("stuck", transport.cancelled)

    async def test_transport_failure_rejects_only_that_entry(self) -> None:
        cause = ConnectionResetError("socket closed")
        transport = RecordingTransport(fail={"boom": cause})
        queue = ExecutionQueue(transport)

        failing = queue.enqueue("boom")
        following = queue.enqueue("next")

        with self.assertRaises(TransportError) as ctx:
            await failing
        self.assertIs(ctx.exception.__cause__, cause)
        self.assertEqual(ctx.exception.command, "boom")
        self.assertIn("socket closed", str(ctx.exception))

        self.assertEqual((await following).command, "next")

    async def test_mapping_results_are_coerced(self) -> None:
        transport = RecordingTransport(payloads={"ls": {"output": "a\nb", "exitCode": 2, "duration": 0.4}})
        queue = ExecutionQueue(transport)

        result = await queue.run("ls")

        self.assertEqual(result, ExecResult(command="ls", output="a\nb", exit_code=2, duration=0.4))
        self.assertFalse(result.ok)

    async def test_non_positive_timeout_is_rejected(self) -> None:
        queue = ExecutionQueue(RecordingTransport())

        for timeout in (0, -1.0):
            with self.subTest(timeout=timeout):
                with self.assertRaises(ValueError):
                    queue.enqueue("ls", timeout_s=timeout)
        self.assertEqual(queue.depth, 0)

    async def test_default_timeout_is_applied(self) -> None:
        transport = RecordingTransport(hang={"stuck"})
        queue = ExecutionQueue(transport, default_timeout_s=0.02)

        with self.assertRaises(ExecutionTimeoutError) as ctx:
            await queue.run("stuck")
        self.assertEqual(ctx.exception.timeout_s, 0.02)

    async def test_cancelled_future_is_skipped(self) -> None:
        transport = RecordingTransport(delays={"first": 0.02})
        queue = ExecutionQueue(transport)

        first = queue.enqueue("first")
        dropped = queue.enqueue("dropped")
        last = queue.enqueue("last")
        dropped.cancel()

        await first
        await last
        self.assertEqual(transport.calls, ["first", "last"])

    async def test_max_depth(self) -> None:
        transport = RecordingTransport(delays={"a": 0.02})
        queue = ExecutionQueue(transport, max_depth=2)

        futures = [queue.enqueue("a"), queue.enqueue("b")]
        with self.assertRaises(QueueFullError):
            queue.enqueue("c")

        await asyncio.gather(*futures)
        self.assertEqual(transport.calls, ["a", "b"])


class ExecutionQueueCloseTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        configure_runtime_logging(level="off")

    async def test_close_rejects_in_flight_and_pending(self) -> None:
        transport = RecordingTransport(hang={"stuck"})
        queue = ExecutionQueue(transport, connection_id="conn-9")

        futures = [queue.enqueue(command) for command in ("stuck", "a", "b")]
        await asyncio.sleep(0.01)
        self.assertEqual(queue.in_flight, "stuck")

        await queue.close()

        for future in futures:
            with self.assertRaises(ConnectionClosedError) as ctx:
                await future
            self.assertEqual(ctx.exception.connection_id, "conn-9")
        self.assertEqual(transport.calls, ["stuck"])
        self.assertTrue(queue.closed)
        self.assertEqual(queue.state, "idle")
        self.assertEqual(queue.depth, 0)

    async def test_enqueue_after_close_raises(self) -> None:
        queue = ExecutionQueue(RecordingTransport())
        await queue.close()

        with self.assertRaises(ConnectionClosedError):
            queue.enqueue("ls")

    async def test_close_is_idempotent(self) -> None:
        queue = ExecutionQueue(RecordingTransport())
        await queue.run("ls")

        await queue.close()
        await queue.close()
        self.assertTrue(queue.closed)

    async def test_async_context_manager_closes(self) -> None:
        transport = RecordingTransport(hang={"stuck"})
        async with ExecutionQueue(transport) as queue:
            pending = queue.enqueue("stuck")
            await asyncio.sleep(0)

        with self.assertRaises(ConnectionClosedError):
            await pending
        self.assertTrue(queue.closed)


class ExecutionQueueHistoryTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        configure_runtime_logging(level="off")
        self._tmp = tempfile.TemporaryDirectory()
        self.history = ExecutionHistory(Path(self._tmp.name) / "executions.jsonl")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def test_settled_entries_are_recorded(self) -> None:
        transport = RecordingTransport(
            hang={"stuck"},
            fail={"boom": RuntimeError("bad")},
            payloads={"false": {"output": "", "exitCode": 1}},
        )
        queue = ExecutionQueue(transport, history=self.history)

        outcomes = await asyncio.gather(
            queue.enqueue("true"),
            queue.enqueue("false"),
            queue.enqueue("boom"),
            queue.enqueue("stuck", timeout_s=0.02),
            return_exceptions=True,
        )
        self.assertIsInstance(outcomes[2], TransportError)
        self.assertIsInstance(outcomes[3], ExecutionTimeoutError)

        pending = queue.enqueue("stuck")
        await asyncio.sleep(0.01)
        await queue.close()
        with self.assertRaises(ConnectionClosedError):
            await pending

        records = self.history.read()
        self.assertEqual(
            [(r.command, r.status) for r in records],
            [("true", "ok"), ("false", "ok"), ("boom", "transport_error"), ("stuck", "timeout"), ("stuck", "closed")],
        )
        self.assertEqual(records[1].exit_code, 1)
        self.assertIn("bad", records[2].error or "")


if __name__ == "__main__":
    unittest.main()
