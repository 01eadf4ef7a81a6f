"""Static command analysis, risk classification and confirmation advice."""

from shellward.preview.advisor import get_confirmation_prompt, get_safer_alternatives, should_preview
from shellward.preview.analyzer import CommandAnalyzer, analyzes
from shellward.preview.models import ClassifiedPreview, CommandPreview, RiskLevel
from shellward.preview.risk import RiskClassifier
from shellward.preview.service import CommandPreviewService

__all__ = [
    "ClassifiedPreview",
    "CommandAnalyzer",
    "CommandPreview",
    "CommandPreviewService",
    "RiskClassifier",
    "RiskLevel",
    "analyzes",
    "get_confirmation_prompt",
    "get_safer_alternatives",
    "should_preview",
]
