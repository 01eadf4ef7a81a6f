"""Connection-scoped JSONL history of settled executions."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from shellward.paths import connection_data_dir

ExecutionStatus = Literal["ok", "timeout", "transport_error", "closed"]


def _ts() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(slots=True)
class ExecutionRecord:
    command: str
    status: ExecutionStatus
    exit_code: int | None = None
    duration: float | None = None
    error: str | None = None
    created_at: str = field(default_factory=_ts)


class ExecutionHistory:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def for_connection(cls, connection_id: str) -> "ExecutionHistory":
        return cls(connection_data_dir(connection_id) / "executions.jsonl")

    def record(self, record: ExecutionRecord) -> None:
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(record), ensure_ascii=True) + "\n")

    def read(self, limit: int = 200) -> list[ExecutionRecord]:
        if not self.path.exists():
            return []

        items: list[ExecutionRecord] = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(payload, dict):
                    continue
                items.append(
                    ExecutionRecord(
                        command=str(payload.get("command", "")),
                        status=payload.get("status", "ok"),
                        exit_code=payload.get("exit_code"),
                        duration=payload.get("duration"),
                        error=payload.get("error"),
                        created_at=str(payload.get("created_at", "")),
                    )
                )

        if len(items) <= limit:
            return items
        return items[-limit:]
