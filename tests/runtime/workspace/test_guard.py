"""Tests for WorkspaceGuard."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from agentctl.runtime.workspace.guard import WorkspaceGuard, _glob_match
from agentctl.runtime.workspace.models import FileOperation, WorkspacePolicy

if TYPE_CHECKING:
    from pathlib import Path


def _guard(root: Path, **kwargs) -> WorkspaceGuard:
    return WorkspaceGuard(root, WorkspacePolicy(**kwargs))


class TestValidatePath:
    def test_empty_policy_allows_inside_root(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path)
        assert guard.validate_path("src/main.py").allowed
        assert guard.validate_path(tmp_path / "README.md").allowed

    @pytest.mark.parametrize("path", ["../outside.txt", "/etc/passwd", "src/../../escape"])
    def test_escape_denied_regardless_of_patterns(self, tmp_path: Path, path: str) -> None:
        guard = _guard(tmp_path, allowed_paths=["**"])
        result = guard.validate_path(path)
        assert not result.allowed
        assert result.reason == "Path is outside workspace root"

    def test_dotdot_inside_root_allowed(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path)
        assert guard.validate_path("src/../docs/index.md").allowed

    def test_root_itself_is_inside(self, tmp_path: Path) -> None:
        assert _guard(tmp_path).validate_path(".").allowed

    def test_forbidden_pattern(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, forbidden_paths=["secrets/**"])
        result = guard.validate_path("secrets/api.key", FileOperation.READ)
        assert not result.allowed
        assert result.reason == "Path matches forbidden pattern"

    def test_deny_overrides_allow(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, allowed_paths=["src/**"], forbidden_paths=["src/generated/**"])
        assert guard.validate_path("src/app.py").allowed
        result = guard.validate_path("src/generated/schema.py")
        assert not result.allowed
        assert result.reason == "Path matches forbidden pattern"

    def test_allow_list_restricts(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, allowed_paths=["src/**", "*.md"])
        assert guard.validate_path("src/pkg/mod.py").allowed
        assert guard.validate_path("README.md").allowed
        result = guard.validate_path("setup.cfg")
        assert not result.allowed
        assert result.reason == "Path does not match allowed patterns"

    def test_double_star_prefix_matches_root_file(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, allowed_paths=["**/*.py"])
        assert guard.validate_path("main.py").allowed
        assert guard.validate_path("a/b/c.py").allowed
        assert not guard.validate_path("notes.txt").allowed

    def test_single_star_stays_in_one_directory(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, allowed_paths=["src/*.py"])
        assert guard.validate_path("src/main.py").allowed
        result = guard.validate_path("src/secrets/keys.py")
        assert not result.allowed
        assert result.reason == "Path does not match allowed patterns"

    def test_vcs_directory_and_contents(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, forbidden_paths=[".git/**"])
        assert not guard.validate_path(".git").allowed
        assert not guard.validate_path(".git/config").allowed
        assert not guard.validate_path(".git/objects/ab/cdef").allowed
        assert guard.validate_path(".gitignore").allowed

    def test_absolute_path_inside_root(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, forbidden_paths=["build/**"])
        assert not guard.validate_path(tmp_path / "build" / "out.o").allowed


class TestValidatePaths:
    def test_batch_limit_checked_first(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, max_files_per_op=2)
        result = guard.validate_paths(["a.py", "b.py", "c.py"], FileOperation.WRITE)
        assert not result.allowed
        assert result.reason == "Operation exceeds maximum file count (2)"

    def test_first_violation_wins(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, forbidden_paths=["*.key"])
        result = guard.validate_paths(["ok.py", "../x", "id.key"])
        assert result.reason == "Path is outside workspace root"

    def test_all_allowed(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, max_files_per_op=3)
        assert guard.validate_paths(["a.py", "b.py", "c.py"]).allowed


class TestValidateCommand:
    def test_forbidden_command(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, forbidden_commands=[r"rm\s+-rf"])
        result = guard.validate_command("rm -rf /")
        assert not result.allowed
        assert result.reason == r"Command matches forbidden pattern: rm\s+-rf"

    def test_forbidden_matches_anywhere(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, forbidden_commands=["sudo"])
        assert not guard.validate_command("cd /tmp && sudo make install").allowed

    def test_allow_list(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, allowed_commands=[r"^npm ", r"^pytest\b"])
        assert guard.validate_command("npm test").allowed
        assert guard.validate_command("pytest -q").allowed
        result = guard.validate_command("curl example.com")
        assert not result.allowed
        assert result.reason == "Command does not match allowed patterns"

    def test_deny_overrides_allow(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, allowed_commands=["^git "], forbidden_commands=[r"push\s+--force"])
        assert guard.validate_command("git status").allowed
        assert not guard.validate_command("git push --force").allowed

    def test_empty_policy_allows(self, tmp_path: Path) -> None:
        assert _guard(tmp_path).validate_command("anything at all").allowed


class TestValidateFileSize:
    def test_no_limit(self, tmp_path: Path) -> None:
        assert _guard(tmp_path).validate_file_size(10**12).allowed

    def test_threshold(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path, max_file_size_bytes=1024)
        assert guard.validate_file_size(1024).allowed
        result = guard.validate_file_size(1025)
        assert not result.allowed
        assert result.reason == "File size exceeds maximum (1024 bytes)"


class TestPathHelpers:
    def test_absolute_and_relative(self, tmp_path: Path) -> None:
        guard = _guard(tmp_path)
        assert guard.absolute_path("src/a.py") == tmp_path / "src" / "a.py"
        assert guard.relative_path(tmp_path / "src" / "a.py") == "src/a.py"
        assert guard.root == tmp_path


class TestGlobMatch:
    @pytest.mark.parametrize(
        ("path", "pattern", "expected"),
        [
            ("node_modules", "node_modules/**", True),
            ("node_modules/x/index.js", "node_modules/**", True),
            ("src/node_modules/x", "node_modules/**", False),
            ("src/node_modules/x", "**/node_modules/**", True),
            ("a.py", "*.py", True),
            ("pkg/a.py", "*.py", False),
            ("a.pyc", "*.py", False),
            ("src/a.py", "src/*.py", True),
            ("src/secrets/keys.py", "src/*.py", False),
            ("src/a.py", "src/?.py", True),
            ("src/x/y.py", "src?x/y.py", False),
            ("src/a.py", "src/**/*.py", True),
            ("src/x/y/a.py", "src/**/*.py", True),
            ("lib/a.py", "src/**/*.py", False),
            ("a/b/c", "**", True),
            ("a/b.key", "**/*.key", True),
            ("b.key", "[ab].key", True),
            ("c.key", "[!ab].key", True),
            ("a/b", "a[/]b", False),
            ("a+b.txt", "a+b.txt", True),
            ("[x", "[x", True),
        ],
    )
    def test_patterns(self, path: str, pattern: str, expected: bool) -> None:
        assert _glob_match(path, pattern) is expected
