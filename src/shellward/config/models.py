"""Settings schema for shellward."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from shellward.runtime_logging import LogLevel


class PreviewSettings(BaseModel):
    backend_url: str | None = Field(default=None, description="Base URL of a remote preview analyzer")
    backend_timeout_s: float = Field(default=2.5, gt=0, le=60)

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None


class RiskSettings(BaseModel):
    moderate_affected_files: int = Field(default=10, ge=0)
    dangerous_affected_files: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def check_threshold_order(self) -> "RiskSettings":
        if self.dangerous_affected_files <= self.moderate_affected_files:
            raise ValueError("dangerous_affected_files must be greater than moderate_affected_files")
        return self


class ExecutionSettings(BaseModel):
    default_timeout_s: float = Field(default=30.0, gt=0)
    max_queue_depth: int = Field(default=256, ge=1, le=100000)
    record_history: bool = Field(default=True)


class LoggingSettings(BaseModel):
    level: LogLevel = Field(default="warning")
    file: str | None = Field(default=None)


class AppSettings(BaseModel):
    schema_version: int = Field(default=1)
    preview: PreviewSettings = Field(default_factory=PreviewSettings)
    risk: RiskSettings = Field(default_factory=RiskSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def setting_items(self) -> list[tuple[str, str]]:
        """Flatten key/value pairs, e.g. ``("risk.moderate_affected_files", "10")``."""

        result: list[tuple[str, str]] = []

        def walk(prefix: str, value: object) -> None:
            if isinstance(value, dict):
                for key, nested in value.items():
                    walk(f"{prefix}.{key}" if prefix else key, nested)
            else:
                result.append((prefix, str(value)))

        walk("", self.model_dump())
        return result
