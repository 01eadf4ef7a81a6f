"""UI-facing helpers: preview gate, confirmation text and safer alternatives.

Everything here is read-only. Nothing in this module (or anywhere in the
pipeline) refuses to run a command: asking the user before executing a risky
command is the caller's job.
"""

from __future__ import annotations

import re
from typing import Sequence

from shellward.preview.analyzer import tokenize
from shellward.preview.models import CommandPreview

PREVIEW_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^rm\s+"),
    re.compile(r"^mv\s+"),
    re.compile(r"^cp\s+(?:.*\s)?(?:-[A-Za-z]*[rR]|--recursive\b)"),
    re.compile(r"^chmod\s+"),
    re.compile(r"^chown\s+"),
    re.compile(r"^git\s+(?:reset|clean|rebase)\b"),
    re.compile(r"^docker\s+(?:rm|rmi)\b"),
    re.compile(r"^sudo\s+"),
    re.compile(r">"),
)

_GIT_HARD_RESET_RE = re.compile(r"\bgit\s+reset\s+(?:.*\s)?--hard\b")
_CHMOD_777_RE = re.compile(r"\bchmod\s+(?:-\S+\s+)*0?777\b")


def should_preview(command: str) -> bool:
    """Cheap gate run before the full pipeline; False means skip preview and confirmation."""

    stripped = command.strip()
    return any(pattern.search(stripped) for pattern in PREVIEW_PATTERNS)


def _section(title: str, entries: Sequence[str]) -> str:
    lines = "\n".join(f"  - {entry}" for entry in entries)
    return f"\n{title}:\n{lines}\n"


def get_confirmation_prompt(preview: CommandPreview) -> str | None:
    if preview.risk_level == "safe":
        return None

    prompt = "This command will:\n"
    if preview.will_delete:
        prompt += _section("DELETE", preview.will_delete)
    if preview.will_modify:
        prompt += _section("MODIFY", preview.will_modify)
    if preview.will_create:
        prompt += _section("CREATE", preview.will_create)
    if preview.warnings:
        prompt += _section("WARNINGS", preview.warnings)

    prompt += f"\nRisk Level: {preview.risk_level.upper()}\n"
    prompt += f"Affected Files: {preview.affected_files}\n"
    if preview.estimated_time:
        prompt += f"Estimated Time: {preview.estimated_time}\n"
    if preview.total_size:
        prompt += f"Total Size: {preview.total_size}\n"

    prompt += "\nDo you want to proceed? (y/N)"
    return prompt


def _is_forced_recursive_rm(tokens: list[str]) -> bool:
    if not tokens or tokens[0] != "rm":
        return False
    letters = "".join(token[1:] for token in tokens[1:] if token.startswith("-") and not token.startswith("--"))
    recursive = "r" in letters or "R" in letters or "--recursive" in tokens
    force = "f" in letters or "--force" in tokens
    return recursive and force


def get_safer_alternatives(command: str) -> list[str]:
    alternatives: list[str] = []
    stripped = command.strip()
    tokens = tokenize(stripped)

    targets = [token for token in tokens[1:] if not token.startswith("-")]
    if _is_forced_recursive_rm(tokens) and targets:
        target = targets[-1]
        alternatives.append(f"Use trash command instead: trash {target}")
        alternatives.append(f"Move to temp directory first: mv {target} ./temp/backup_$(date +%s)")
        alternatives.append(f"List files first: ls -la {target}")

    if _GIT_HARD_RESET_RE.search(stripped):
        alternatives.append("Create backup branch first: git branch backup-$(date +%s)")
        alternatives.append('Use git stash instead: git stash push -m "backup before reset"')

    if _CHMOD_777_RE.search(stripped):
        alternatives.append("Use more restrictive permissions: chmod 755 or chmod 644")
        alternatives.append("Set specific permissions: chmod u+rwx,g+rx,o+rx")

    return alternatives
