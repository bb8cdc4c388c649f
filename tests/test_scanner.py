"""Tests for local working copy discovery."""

import os
import sys
from pathlib import Path

import pytest

from conftest import run_git
from glsync.core.scanner import DETACHED_HEAD, LocalTreeScanner, ScanError


class TestLocalTreeScanner:
    """Test suite for LocalTreeScanner."""

    def test_empty_root(self, local_root: Path):
        assert LocalTreeScanner(local_root).scan() == []

    def test_finds_nested_working_copies(self, local_root: Path, make_working_copy):
        make_working_copy("teamA/svc1")
        make_working_copy("teamA/sub/deep/tool")
        make_working_copy("web")

        projects = LocalTreeScanner(local_root).scan()

        assert sorted(p.path for p in projects) == ["teamA/sub/deep/tool", "teamA/svc1", "web"]

    def test_reports_short_branch_name(self, local_root: Path, make_working_copy):
        make_working_copy("svc", branch="hotfix/login")

        projects = LocalTreeScanner(local_root).scan()

        assert len(projects) == 1
        assert projects[0].branch == "hotfix/login"

    def test_does_not_descend_into_working_copy(self, local_root: Path, make_working_copy):
        make_working_copy("outer")
        make_working_copy("outer/vendor/inner")

        projects = LocalTreeScanner(local_root).scan()

        assert [p.path for p in projects] == ["outer"]

    def test_plain_directories_are_transparent(self, local_root: Path, make_working_copy):
        (local_root / "empty" / "nested").mkdir(parents=True)
        (local_root / "notes").mkdir()
        (local_root / "notes" / "todo.txt").write_text("nothing")
        make_working_copy("group/app")

        projects = LocalTreeScanner(local_root).scan()

        assert [p.path for p in projects] == ["group/app"]

    def test_broken_git_directory_is_ordinary_directory(self, local_root: Path, make_working_copy):
        broken = local_root / "broken"
        (broken / ".git").mkdir(parents=True)
        make_working_copy("broken/inside")

        projects = LocalTreeScanner(local_root).scan()

        assert [p.path for p in projects] == ["broken/inside"]

    def test_detached_head(self, local_root: Path, make_working_copy):
        repo = make_working_copy("detached")
        head = run_git(["rev-parse", "HEAD"], repo).stdout.strip()
        run_git(["checkout", "--detach", head], repo)

        projects = LocalTreeScanner(local_root).scan()

        assert projects[0].branch == DETACHED_HEAD

    def test_missing_root_raises(self, temp_directory: Path):
        with pytest.raises(ScanError, match="not a directory"):
            LocalTreeScanner(temp_directory / "does-not-exist").scan()

    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permission bits are not enforced",
    )
    def test_unreadable_directory_raises(self, local_root: Path):
        locked = local_root / "locked"
        locked.mkdir()
        locked.chmod(0o000)
        try:
            with pytest.raises(ScanError):
                LocalTreeScanner(local_root).scan()
        finally:
            locked.chmod(0o755)
