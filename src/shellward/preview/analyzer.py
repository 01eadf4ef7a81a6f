"""Best-effort static prediction of a command's filesystem side effects.

The analyzer splits on whitespace only and has no notion of shell quoting,
globbing, variables or command substitution. It is a safety heuristic that
catches the common idioms, not a shell parser, and its output must never be
treated as an exhaustive list of what a command can touch.

Per-verb logic lives in a registry (``verb -> handler``). New command families
are added with :func:`analyzes` or :meth:`CommandAnalyzer.register`; verbs
without a handler fall through to :func:`analyze_generic`.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Callable

from shellward.preview.models import PATTERN_MATCH_SUFFIX, CommandPreview

Handler = Callable[["AnalysisRequest"], None]

WILDCARD_CHARS = ("*", "?")
HOME_OR_ROOT_TARGETS = {"/", "/*", "~", "~/*"}

_REDIRECT_RE = re.compile(r"(>>?)\s*([^\s<>|&;]+)")
_PIPE_RE = re.compile(r"(?<!\|)\|(?!\|)")

_DEFAULT_HANDLERS: dict[str, Handler] = {}


def analyzes(*verbs: str) -> Callable[[Handler], Handler]:
    """Register ``fn`` as the default handler for each of ``verbs``."""

    def decorator(fn: Handler) -> Handler:
        for verb in verbs:
            _DEFAULT_HANDLERS[verb] = fn
        return fn

    return decorator


def tokenize(command: str) -> list[str]:
    return command.split()


def has_wildcard(token: str) -> bool:
    return any(char in token for char in WILDCARD_CHARS)


def resolve_path(cwd: str, target: str) -> str:
    """Join ``target`` to ``cwd`` unless it is already absolute or home-relative."""

    if target.startswith("/") or target.startswith("~"):
        return target
    if not cwd:
        return target
    return posixpath.join(cwd, target)


@dataclass(slots=True)
class AnalysisRequest:
    command: str
    tokens: list[str]
    cwd: str
    preview: CommandPreview
    analyzer: "CommandAnalyzer"

    @property
    def verb(self) -> str:
        return self.tokens[0]

    @property
    def args(self) -> list[str]:
        return self.tokens[1:]

    @property
    def subcommand(self) -> str | None:
        return self.tokens[1] if len(self.tokens) > 1 else None

    def operands(self, start: int = 1) -> list[str]:
        """Non-flag arguments from ``tokens[start:]``; everything after ``--`` counts."""

        result: list[str] = []
        literal = False
        for token in self.tokens[start:]:
            if literal:
                result.append(token)
            elif token == "--":
                literal = True
            elif not token.startswith("-") or token == "-":
                result.append(token)
        return result

    def has_flag(self, short: str = "", long: str | None = None) -> bool:
        """True if any short flag cluster contains one of ``short`` or ``long`` is present.

        ``has_flag("rR", "--recursive")`` matches ``-r``, ``-Rf``, ``-fr`` and
        ``--recursive``.
        """

        for token in self.args:
            if token == "--":
                break
            if token.startswith("--"):
                if long is not None and (token == long or token.startswith(long + "=")):
                    return True
                continue
            if token.startswith("-") and any(letter in token[1:] for letter in short):
                return True
        return False

    def resolve(self, target: str) -> str:
        return resolve_path(self.cwd, target)


class CommandAnalyzer:
    """Dispatches a command to the handler registered for its first token."""

    def __init__(self, handlers: dict[str, Handler] | None = None) -> None:
        self._handlers: dict[str, Handler] = dict(_DEFAULT_HANDLERS if handlers is None else handlers)

    @property
    def verbs(self) -> list[str]:
        return sorted(self._handlers)

    def register(self, verb: str, handler: Handler) -> None:
        self._handlers[verb] = handler

    def analyze(self, command: str, cwd: str) -> CommandPreview:
        preview = CommandPreview(command=command, cwd=cwd)
        self.dispatch(command, cwd, preview)
        return preview

    def dispatch(self, command: str, cwd: str, preview: CommandPreview) -> None:
        tokens = tokenize(command)
        if not tokens:
            return
        request = AnalysisRequest(
            command=command.strip(),
            tokens=tokens,
            cwd=cwd,
            preview=preview,
            analyzer=self,
        )
        handler = self._handlers.get(tokens[0], analyze_generic)
        handler(request)


@analyzes("rm")
def analyze_rm(request: AnalysisRequest) -> None:
    preview = request.preview
    recursive = request.has_flag("rR", "--recursive")
    force = request.has_flag("f", "--force")
    targets = request.operands()

    for target in targets:
        if has_wildcard(target):
            preview.warnings.append(f'Wildcard pattern "{target}" may match unexpected files')
            preview.will_delete.append(request.resolve(target) + PATTERN_MATCH_SUFFIX)
        else:
            preview.will_delete.append(request.resolve(target))

    if recursive:
        preview.warnings.append("Recursive deletion - will remove directories and all contents")
    if force:
        preview.warnings.append("Force flag (-f) - will not prompt for confirmation")
    if any(target in HOME_OR_ROOT_TARGETS for target in targets):
        preview.warnings.append("EXTREMELY DANGEROUS: This could delete system or home files!")

    preview.affected_files = len(targets) * (10 if recursive else 1)


@analyzes("mv")
def analyze_mv(request: AnalysisRequest) -> None:
    preview = request.preview
    operands = request.operands()
    if len(operands) < 2:
        return

    sources, destination = operands[:-1], operands[-1]
    preview.will_modify.extend(request.resolve(source) for source in sources)
    if "/" in destination:
        preview.will_create.append(request.resolve(destination))
    else:
        preview.will_modify.append(request.resolve(destination))

    preview.affected_files = len(sources)
    if any(has_wildcard(source) for source in sources):
        preview.warnings.append("Moving multiple files with wildcard pattern")


@analyzes("cp")
def analyze_cp(request: AnalysisRequest) -> None:
    preview = request.preview
    recursive = request.has_flag("rR", "--recursive")
    operands = request.operands()
    if len(operands) < 2:
        return

    sources, destination = operands[:-1], operands[-1]
    target_dir = request.resolve(destination)
    for source in sources:
        name = posixpath.basename(source.rstrip("/")) or source
        preview.will_create.append(posixpath.join(target_dir, name))

    preview.affected_files = len(sources) * (5 if recursive else 1)
    if recursive:
        preview.warnings.append("Recursive copy - will copy directories and all contents")


@analyzes("mkdir")
def analyze_mkdir(request: AnalysisRequest) -> None:
    preview = request.preview
    parents = request.has_flag("p", "--parents")
    directories = request.operands()

    for directory in directories:
        preview.will_create.append(request.resolve(directory))
        if parents and "/" in directory.strip("/"):
            preview.warnings.append(f"Will create parent directories for {directory}")

    preview.affected_files = len(directories)


@analyzes("touch")
def analyze_touch(request: AnalysisRequest) -> None:
    files = request.operands()
    request.preview.will_create.extend(request.resolve(name) for name in files)
    request.preview.affected_files = len(files)


@analyzes("git")
def analyze_git(request: AnalysisRequest) -> None:
    preview = request.preview
    subcommand = request.subcommand

    if subcommand == "reset":
        if "--hard" in request.args:
            preview.warnings.append("Hard reset will discard all uncommitted changes")
            preview.will_modify.append("Working directory (uncommitted changes will be lost)")
    elif subcommand == "clean":
        if request.has_flag("f", "--force"):
            preview.warnings.append("Will remove untracked files")
            preview.will_delete.append("Untracked files in repository")
        if request.has_flag("d"):
            preview.warnings.append("Will remove untracked directories")
            preview.will_delete.append("Untracked directories in repository")
    elif subcommand == "checkout":
        if request.has_flag("f", "--force"):
            preview.warnings.append("Force checkout will discard local changes")
            preview.will_modify.append("Working directory files")
    elif subcommand == "rebase":
        preview.warnings.append("Rebase will modify git history - use with caution")
        preview.will_modify.append("Git commit history")


@analyzes("npm", "yarn")
def analyze_package_manager(request: AnalysisRequest) -> None:
    preview = request.preview
    subcommand = request.subcommand
    lockfile = request.resolve("yarn.lock" if request.verb == "yarn" else "package-lock.json")

    if subcommand in {"install", "i", "add"}:
        preview.will_modify.append(request.resolve("node_modules"))
        preview.will_modify.append(lockfile)
        preview.warnings.append("Will download and install packages")
        preview.estimated_time = "Variable (depends on package size)"
    elif subcommand in {"uninstall", "remove"}:
        packages = request.operands(start=2)
        preview.will_modify.append(request.resolve("node_modules"))
        preview.warnings.append(f"Will remove packages: {', '.join(packages)}")
    elif subcommand == "audit":
        if "fix" in request.tokens[2:]:
            preview.warnings.append("Will automatically fix security vulnerabilities")
            preview.will_modify.append(lockfile)


def _volume_specs(tokens: list[str]) -> list[str]:
    specs: list[str] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token in {"-v", "--volume"}:
            if index + 1 < len(tokens):
                specs.append(tokens[index + 1])
            index += 2
            continue
        if token.startswith("--volume="):
            specs.append(token.split("=", 1)[1])
        elif token.startswith("-v") and not token.startswith("--"):
            specs.append(token[2:])
        index += 1
    return specs


@analyzes("docker")
def analyze_docker(request: AnalysisRequest) -> None:
    preview = request.preview
    subcommand = request.subcommand

    if subcommand == "run":
        for spec in _volume_specs(request.tokens[2:]):
            host = spec.split(":", 1)[0]
            if host and not host.startswith("-"):
                preview.warnings.append(f"Will mount host directory: {host}")
    elif subcommand == "rm":
        containers = request.operands(start=2)
        preview.warnings.append(f"Will remove containers: {', '.join(containers)}")
    elif subcommand == "rmi":
        images = request.operands(start=2)
        preview.warnings.append(f"Will remove images: {', '.join(images)}")


_SUDO_VALUE_FLAGS = {"-u", "-g", "-U", "-C", "-h", "-p", "-r", "-t"}


@analyzes("sudo")
def analyze_sudo(request: AnalysisRequest) -> None:
    request.preview.warnings.append("Command will run with elevated privileges (sudo)")

    index = 1
    while index < len(request.tokens) and request.tokens[index].startswith("-"):
        if request.tokens[index] == "--":
            index += 1
            break
        index += 2 if request.tokens[index] in _SUDO_VALUE_FLAGS else 1
    inner = request.tokens[index:]
    if inner:
        request.analyzer.dispatch(" ".join(inner), request.cwd, request.preview)


def analyze_generic(request: AnalysisRequest) -> None:
    preview = request.preview
    command = request.command

    for operator, target in _REDIRECT_RE.findall(command):
        if target.startswith("/dev/"):
            continue
        preview.will_create.append(request.resolve(target))
        if operator == ">>":
            preview.warnings.append(f"Will append to file: {target}")
        else:
            preview.warnings.append(f"Will overwrite file: {target}")

    if _PIPE_RE.search(command):
        preview.warnings.append("Pipeline command - output will be processed by multiple commands")
