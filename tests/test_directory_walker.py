"""
Tests for directory scanning and task construction.
"""
import os
from pathlib import Path

import pytest

from pathcrypt.directory_walker import build_tasks, scan, scan_file
from pathcrypt.errors import InvalidParameters, PathNotFound


class TestScan:
    def test_counts(self, sample_tree: Path):
        result = scan(sample_tree)
        assert result.file_count == 3
        assert result.folder_count == 1
        assert result.total_size == 10 + 0 + 1024 * 1024
        assert [p.name for p in result.file_list] == ["a.txt", "empty.bin", "big.bin"]
        assert result.errors == []

    def test_sizes_are_recorded_per_file(self, sample_tree: Path):
        result = scan(sample_tree)
        assert result.sizes[sample_tree / "a.txt"] == 10

    def test_deep_nesting(self, tmp_path: Path):
        deep = tmp_path / "root" / "a" / "b" / "c"
        deep.mkdir(parents=True)
        (deep / "leaf.txt").write_text("leaf")
        (tmp_path / "root" / "a" / "side").mkdir()
        result = scan(tmp_path / "root")
        assert result.folder_count == 4
        assert result.file_count == 1

    def test_is_repeatable_and_read_only(self, sample_tree: Path):
        before = sorted(p.name for p in sample_tree.rglob("*"))
        assert scan(sample_tree) == scan(sample_tree)
        assert sorted(p.name for p in sample_tree.rglob("*")) == before

    def test_missing_root(self, tmp_path: Path):
        with pytest.raises(PathNotFound):
            scan(tmp_path / "nope")

    def test_file_as_root(self, sample_tree: Path):
        with pytest.raises(PathNotFound):
            scan(sample_tree / "a.txt")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_symlinks_are_never_followed(self, sample_tree: Path, tmp_path: Path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("do not touch")
        try:
            (sample_tree / "link_dir").symlink_to(outside, target_is_directory=True)
            (sample_tree / "link_file").symlink_to(sample_tree / "a.txt")
            (sample_tree / "nested" / "loop").symlink_to(sample_tree, target_is_directory=True)
        except OSError:
            pytest.skip("cannot create symlinks here")
        result = scan(sample_tree)
        assert result.file_count == 3
        assert result.folder_count == 1

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_unreadable_subdirectory_is_reported_not_fatal(self, sample_tree: Path):
        locked = sample_tree / "locked"
        locked.mkdir()
        (locked / "hidden.txt").write_text("x")
        locked.chmod(0)
        try:
            if os.access(locked, os.R_OK):
                pytest.skip("running with privileges that ignore permissions")
            result = scan(sample_tree)
        finally:
            locked.chmod(0o755)
        assert result.file_count == 3
        assert [p for p, _ in result.errors] == [locked]


class TestScanFile:
    def test_single_file(self, sample_tree: Path):
        result = scan_file(sample_tree / "a.txt")
        assert (result.file_count, result.folder_count, result.total_size) == (1, 0, 10)

    def test_missing(self, tmp_path: Path):
        with pytest.raises(PathNotFound):
            scan_file(tmp_path / "missing.txt")

    def test_directory(self, sample_tree: Path):
        with pytest.raises(InvalidParameters):
            scan_file(sample_tree)

    def test_symlink_is_refused(self, sample_tree: Path, tmp_path: Path):
        link = tmp_path / "link.txt"
        try:
            link.symlink_to(sample_tree / "a.txt")
        except (OSError, NotImplementedError):
            pytest.skip("cannot create symlinks here")
        with pytest.raises(InvalidParameters):
            scan_file(link)

    def test_symlinked_root_is_refused(self, sample_tree: Path, tmp_path: Path):
        link = tmp_path / "link_dir"
        try:
            link.symlink_to(sample_tree, target_is_directory=True)
        except (OSError, NotImplementedError):
            pytest.skip("cannot create symlinks here")
        with pytest.raises(InvalidParameters):
            scan(link)


class TestBuildTasks:
    def test_mirrors_tree_under_target(self, sample_tree: Path, tmp_path: Path):
        target = tmp_path / "out"
        tasks = build_tasks(scan(sample_tree), sample_tree, target, "encrypt")
        by_name = {t.source.name: t for t in tasks}
        assert by_name["a.txt"].target_dir == target
        assert by_name["big.bin"].target_dir == target / "nested"
        assert by_name["big.bin"].size == 1024 * 1024

    def test_defaults_to_source_tree(self, sample_tree: Path):
        tasks = build_tasks(scan(sample_tree), sample_tree, None, "encrypt")
        assert {t.target_dir for t in tasks} == {sample_tree, sample_tree / "nested"}

    def test_decrypt_only_picks_encrypted_files(self, sample_tree: Path):
        (sample_tree / "a.txt.enom").write_bytes(b"envelope")
        tasks = build_tasks(scan(sample_tree), sample_tree, None, "decrypt")
        assert [t.source.name for t in tasks] == ["a.txt.enom"]

    def test_include_all_for_named_file(self, sample_tree: Path):
        file_path = sample_tree / "a.txt"
        tasks = build_tasks(scan_file(file_path), sample_tree, None, "decrypt", include_all=True)
        assert [t.source for t in tasks] == [file_path]
