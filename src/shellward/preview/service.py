"""Preview pipeline: remote analyzer, local fallback, risk classification."""

from __future__ import annotations

from shellward.config.models import AppSettings
from shellward.preview.analyzer import CommandAnalyzer
from shellward.preview.backend import HttpPreviewBackend, PreviewBackend
from shellward.preview.models import ClassifiedPreview, CommandPreview
from shellward.preview.risk import RiskClassifier
from shellward.runtime_logging import get_runtime_logger


class CommandPreviewService:
    """Produces classified, read-only previews (:class:`ClassifiedPreview`).

    If a backend is configured its preview replaces the local analysis
    wholesale; any backend failure falls back to :class:`CommandAnalyzer`
    without surfacing an error. Either way the result then goes through the
    :class:`RiskClassifier`.

    The service only classifies. Callers decide whether to ask for
    confirmation (see ``get_confirmation_prompt``) before executing.
    """

    def __init__(
        self,
        *,
        analyzer: CommandAnalyzer | None = None,
        classifier: RiskClassifier | None = None,
        backend: PreviewBackend | None = None,
    ) -> None:
        self.analyzer = analyzer or CommandAnalyzer()
        self.classifier = classifier or RiskClassifier()
        self.backend = backend
        self.logger = get_runtime_logger()

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "CommandPreviewService":
        backend: PreviewBackend | None = None
        if settings.preview.backend_url:
            backend = HttpPreviewBackend(
                settings.preview.backend_url,
                timeout_s=settings.preview.backend_timeout_s,
            )
        return cls(classifier=RiskClassifier.from_settings(settings.risk), backend=backend)

    async def preview_command(self, command: str, cwd: str) -> ClassifiedPreview:
        preview: CommandPreview | None = None
        source = "local"

        if self.backend is not None:
            try:
                preview = await self.backend.preview(command, cwd)
                source = "backend"
            except Exception as exc:
                self.logger.warning(
                    "preview.backend.fallback",
                    command=command,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

        if preview is None:
            preview = self.analyzer.analyze(command, cwd)

        return self._finish(command, preview, source)

    def preview_local(self, command: str, cwd: str) -> ClassifiedPreview:
        """Synchronous variant that never consults the backend."""

        return self._finish(command, self.analyzer.analyze(command, cwd), "local")

    def _finish(self, command: str, draft: CommandPreview, source: str) -> ClassifiedPreview:
        self.classifier.classify(command, draft)
        preview = draft.seal()
        self.logger.debug(
            "preview.classified",
            command=command,
            source=source,
            risk_level=preview.risk_level,
            affected_files=preview.affected_files,
            warning_count=len(preview.warnings),
        )
        return preview

    async def aclose(self) -> None:
        closer = getattr(self.backend, "aclose", None)
        if closer is not None:
            await closer()
