"""WorkspaceGuard — validates paths and commands against a workspace policy.

Pure logic, no I/O.  Path checks run in a fixed order:

1. containment: the resolved path must stay inside the workspace root;
2. ``forbidden_paths``: any match denies (deny overrides allow);
3. ``allowed_paths``: if non-empty, at least one must match.
"""

from __future__ import annotations

import functools
import logging
import os
import re
from pathlib import Path, PurePath

from agentctl.runtime.workspace.models import FileOperation, ValidationResult, WorkspacePolicy

logger = logging.getLogger(__name__)

_OUTSIDE_ROOT = "Path is outside workspace root"
_FORBIDDEN_PATH = "Path matches forbidden pattern"
_NOT_ALLOWED_PATH = "Path does not match allowed patterns"
_NOT_ALLOWED_COMMAND = "Command does not match allowed patterns"


class WorkspaceGuard:
    """Enforce a :class:`WorkspacePolicy` for one workspace root."""

    def __init__(self, root: str | os.PathLike[str], policy: WorkspacePolicy) -> None:
        self._root = os.path.normpath(os.path.abspath(root))
        self._policy = policy
        self._allowed_commands = [re.compile(p) for p in policy.allowed_commands]
        self._forbidden_commands = [re.compile(p) for p in policy.forbidden_commands]

        logger.debug(
            "WorkspaceGuard initialized for %s (%d allowed, %d forbidden path patterns)",
            self._root,
            len(policy.allowed_paths),
            len(policy.forbidden_paths),
        )

    @property
    def root(self) -> Path:
        return Path(self._root)

    @property
    def policy(self) -> WorkspacePolicy:
        return self._policy

    def validate_path(
        self,
        path: str | os.PathLike[str],
        operation: FileOperation = FileOperation.READ,
    ) -> ValidationResult:
        """Check a single path against the root and the path patterns."""
        relative = self._relative_or_none(path)
        if relative is None:
            logger.warning("Path outside workspace root: %s (root %s)", path, self._root)
            return ValidationResult.deny(_OUTSIDE_ROOT)

        if _matches_any(relative, self._policy.forbidden_paths):
            logger.warning("Path matches forbidden pattern: %s", relative)
            return ValidationResult.deny(_FORBIDDEN_PATH)

        if self._policy.allowed_paths and not _matches_any(relative, self._policy.allowed_paths):
            logger.warning("Path does not match allowed patterns: %s", relative)
            return ValidationResult.deny(_NOT_ALLOWED_PATH)

        logger.debug("Path validation passed: %s (%s)", relative, operation.value)
        return ValidationResult.ok()

    def validate_paths(
        self,
        paths: list[str] | list[Path],
        operation: FileOperation = FileOperation.READ,
    ) -> ValidationResult:
        """Check a batch of paths; the first violation wins."""
        limit = self._policy.max_files_per_op
        if limit is not None and len(paths) > limit:
            logger.warning("Too many files in single operation: %d > %d", len(paths), limit)
            return ValidationResult.deny(f"Operation exceeds maximum file count ({limit})")

        for path in paths:
            result = self.validate_path(path, operation)
            if not result.allowed:
                return result
        return ValidationResult.ok()

    def validate_command(self, command: str) -> ValidationResult:
        """Check a shell command string against the command regexes."""
        for regex in self._forbidden_commands:
            if regex.search(command):
                logger.warning("Command matches forbidden pattern %r: %s", regex.pattern, command)
                return ValidationResult.deny(f"Command matches forbidden pattern: {regex.pattern}")

        if self._allowed_commands and not any(r.search(command) for r in self._allowed_commands):
            logger.warning("Command does not match allowed patterns: %s", command)
            return ValidationResult.deny(_NOT_ALLOWED_COMMAND)

        logger.debug("Command validation passed: %s", command)
        return ValidationResult.ok()

    def validate_file_size(self, size_bytes: int) -> ValidationResult:
        limit = self._policy.max_file_size_bytes
        if limit is not None and size_bytes > limit:
            logger.warning("File size exceeds limit: %d > %d", size_bytes, limit)
            return ValidationResult.deny(f"File size exceeds maximum ({limit} bytes)")
        return ValidationResult.ok()

    def absolute_path(self, path: str | os.PathLike[str]) -> Path:
        """Resolve *path* against the root without touching the filesystem."""
        return Path(os.path.normpath(os.path.join(self._root, os.fspath(path))))

    def relative_path(self, path: str | os.PathLike[str]) -> str:
        """Return *path* relative to the root, in POSIX form."""
        return PurePath(os.path.relpath(self.absolute_path(path), self._root)).as_posix()

    def _relative_or_none(self, path: str | os.PathLike[str]) -> str | None:
        absolute = self.absolute_path(path)
        try:
            relative = os.path.relpath(absolute, self._root)
        except ValueError:
            # Different drive on Windows.
            return None
        if relative == os.pardir or relative.startswith(os.pardir + os.sep) or os.path.isabs(relative):
            return None
        return PurePath(relative).as_posix()


def _matches_any(relative: str, patterns: list[str]) -> bool:
    return any(_glob_match(relative, pattern) for pattern in patterns)


def _glob_match(relative: str, pattern: str) -> bool:
    """Match a root-relative POSIX path against a glob.

    ``*`` and ``?`` stay within one path segment; only ``**`` crosses
    directories.  A leading or inner ``**/`` may match zero directories and
    a trailing ``/**`` also matches the directory itself.
    """
    return _glob_regex(pattern).fullmatch(relative) is not None


@functools.lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("/**", i) and i + 3 == n:
            parts.append("(?:/.*)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        elif pattern[i] == "[":
            j = i + 1
            if j < n and pattern[j] == "!":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            j = pattern.find("]", j)
            if j < 0:
                parts.append(re.escape("["))
                i += 1
                continue
            body = pattern[i + 1 : j].replace("\\", "\\\\")
            if body.startswith("!"):
                body = "^" + body[1:]
            elif body.startswith("^"):
                body = "\\" + body
            parts.append(f"(?!/)[{body}]")
            i = j + 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts), re.DOTALL)
