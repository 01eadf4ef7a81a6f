"""Risk tier assignment for analysed commands."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass

from shellward.config.models import RiskSettings
from shellward.preview.analyzer import WILDCARD_CHARS
from shellward.preview.models import PATTERN_MATCH_SUFFIX, CommandPreview, RiskLevel

# Anchored at the start of the stripped command unless noted.
DANGEROUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^rm\s+(?:.*\s)?(?:-[A-Za-z]*[rRf]|--recursive\b|--force\b)"),
    re.compile(r"^sudo\s+(?:-\S+\s+)*rm\b"),
    re.compile(r"^dd\s+"),
    re.compile(r"^mkfs"),
    re.compile(r"^fdisk\b"),
    re.compile(r"^format\b"),
    re.compile(r"^del\s+.*/s\b", re.IGNORECASE),
    re.compile(r"^rmdir\s+.*/s\b", re.IGNORECASE),
    # Anywhere: truncating a source file with a single ">".
    re.compile(r"(?<!>)>(?!>)\s*\S*\.(?:sh|py|js|ts|rs|go)(?=$|[\s;&|])"),
)

MODERATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^mv\s+"),
    re.compile(r"^cp\s+(?:.*\s)?(?:-[A-Za-z]*[rR]|--recursive\b)"),
    re.compile(r"^chmod\s+"),
    re.compile(r"^chown\s+"),
    re.compile(r"^git\s+reset\s+(?:.*\s)?--hard\b"),
    re.compile(r"^git\s+clean\s+(?:.*\s)?-[A-Za-z]*f"),
    re.compile(r"^npm\s+install\s+.*--save"),
)

CRITICAL_ROOTS: tuple[str, ...] = ("/", "/usr", "/etc", "/sys", "/proc", "/boot")

SYSTEM_WARNING = "SYSTEM WARNING: Command affects critical system directories"


def static_path(entry: str) -> str:
    """Strip the pattern annotation and everything from the first wildcard on."""

    if entry.endswith(PATTERN_MATCH_SUFFIX):
        entry = entry[: -len(PATTERN_MATCH_SUFFIX)]
    cut = min((entry.index(char) for char in WILDCARD_CHARS if char in entry), default=len(entry))
    return entry[:cut]


def is_critical_path(entry: str, roots: tuple[str, ...] = CRITICAL_ROOTS) -> bool:
    """True if ``entry`` is a critical root or nested under one.

    ``/`` only matches itself: every absolute path lives under it, so treating
    it as a prefix would make every absolute target critical.
    """

    path = static_path(entry)
    if not path.startswith("/"):
        return False
    normalized = "/" + posixpath.normpath(path).lstrip("/")
    for root in roots:
        if root == "/":
            if normalized == "/":
                return True
        elif normalized == root or normalized.startswith(root + "/"):
            return True
    return False


@dataclass(slots=True)
class RiskClassifier:
    """Assigns ``safe | moderate | dangerous`` to a preview.

    Steps, first match wins for 1-3:

    1. dangerous pattern table
    2. moderate pattern table
    3. affected-file volume (larger threshold checked first)

    Step 4, the critical-path override, always runs. Levels are only ever
    escalated, so a backend preview that already says ``dangerous`` stays that
    way. The classifier advises; it never blocks execution.
    """

    moderate_affected_files: int = 10
    dangerous_affected_files: int = 100
    dangerous_patterns: tuple[re.Pattern[str], ...] = DANGEROUS_PATTERNS
    moderate_patterns: tuple[re.Pattern[str], ...] = MODERATE_PATTERNS
    critical_roots: tuple[str, ...] = CRITICAL_ROOTS

    @classmethod
    def from_settings(cls, settings: RiskSettings) -> "RiskClassifier":
        return cls(
            moderate_affected_files=settings.moderate_affected_files,
            dangerous_affected_files=settings.dangerous_affected_files,
        )

    def match_patterns(self, command: str) -> RiskLevel | None:
        stripped = command.strip()
        if any(pattern.search(stripped) for pattern in self.dangerous_patterns):
            return "dangerous"
        if any(pattern.search(stripped) for pattern in self.moderate_patterns):
            return "moderate"
        return None

    def match_volume(self, affected_files: int) -> RiskLevel | None:
        if affected_files > self.dangerous_affected_files:
            return "dangerous"
        if affected_files > self.moderate_affected_files:
            return "moderate"
        return None

    def critical_entries(self, preview: CommandPreview) -> list[str]:
        return [
            entry
            for entry in (*preview.will_delete, *preview.will_modify)
            if is_critical_path(entry, self.critical_roots)
        ]

    def classify(self, command: str, preview: CommandPreview) -> CommandPreview:
        tier = self.match_patterns(command)
        if tier is not None:
            preview.escalate(tier)
        else:
            volume_tier = self.match_volume(preview.affected_files)
            if volume_tier is not None:
                preview.escalate(volume_tier)
                preview.warn(f"Large operation: an estimated {preview.affected_files} files affected")

        if self.critical_entries(preview):
            preview.escalate("dangerous")
            if SYSTEM_WARNING not in preview.warnings:
                preview.warn(SYSTEM_WARNING)

        return preview
