"""Command preview value object shared by the analyzer, classifier and advisor."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

from shellward.errors import PreviewSealedError

RiskLevel = Literal["safe", "moderate", "dangerous"]

RISK_ORDER: dict[str, int] = {
    "safe": 0,
    "moderate": 1,
    "dangerous": 2,
}

PATTERN_MATCH_SUFFIX = " (pattern match)"


class CommandPreview(BaseModel):
    """Predicted side effects of a command plus its risk tier.

    ``affected_files`` is an estimate, not a count. ``risk_level`` only ever
    moves upward through :meth:`escalate`. This is the working draft the
    analyzer and classifier fill in; :meth:`seal` turns it into a read-only
    :class:`ClassifiedPreview` and makes the draft refuse further escalation
    or warnings.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    command: str
    cwd: str = ""
    will_create: list[str] = Field(default_factory=list)
    will_modify: list[str] = Field(default_factory=list)
    will_delete: list[str] = Field(default_factory=list)
    risk_level: RiskLevel = "safe"
    warnings: list[str] = Field(default_factory=list)
    affected_files: int = Field(default=0, ge=0)
    estimated_time: str | None = None
    total_size: str | None = None

    _sealed: bool = PrivateAttr(default=False)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> "ClassifiedPreview":
        self._sealed = True
        return ClassifiedPreview.model_validate(self.model_dump())

    def escalate(self, level: RiskLevel) -> bool:
        """Raise ``risk_level`` to ``level``; lower levels are ignored.

        Returns True when the level actually changed.
        """

        self._check_open()
        if RISK_ORDER[level] <= RISK_ORDER[self.risk_level]:
            return False
        self.risk_level = level
        return True

    def warn(self, message: str) -> None:
        self._check_open()
        self.warnings.append(message)

    def is_at_least(self, level: RiskLevel) -> bool:
        return RISK_ORDER[self.risk_level] >= RISK_ORDER[level]

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def _check_open(self) -> None:
        if self._sealed:
            raise PreviewSealedError(f"Preview for {self.command!r} is already classified")


class ClassifiedPreview(CommandPreview):
    """Read-only preview handed out after classification.

    Field assignment raises ``ValidationError`` and the path and warning
    sequences are tuples, so neither the risk level nor the warnings can be
    rewritten after the fact.
    """

    model_config = ConfigDict(frozen=True)

    will_create: tuple[str, ...] = ()  # type: ignore[assignment]
    will_modify: tuple[str, ...] = ()  # type: ignore[assignment]
    will_delete: tuple[str, ...] = ()  # type: ignore[assignment]
    warnings: tuple[str, ...] = ()  # type: ignore[assignment]

    _sealed: bool = PrivateAttr(default=True)
