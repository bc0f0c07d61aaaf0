"""Tests for the createrepo-backed yum repository."""

import bz2
import gzip
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from src.common.errors import IndexBuildError, IndexParseError
from src.repos.createrepo import CreaterepoRepository

REPOMD = """<?xml version="1.0" encoding="UTF-8"?>
<repomd xmlns="http://linux.duke.edu/metadata/repo">
  <data type="other"><location href="repodata/other.xml.gz"/></data>
  <data type="primary"><location href="repodata/abc123-primary.xml{suffix}"/></data>
</repomd>
"""

PRIMARY = """<?xml version="1.0" encoding="UTF-8"?>
<metadata xmlns="http://linux.duke.edu/metadata/common" xmlns:rpm="http://linux.duke.edu/metadata/rpm" packages="2">
  <package type="rpm"><name>a</name><location href="x86_64/a-1.0-1.x86_64.rpm"/></package>
  <package type="rpm"><name>b</name><location href="noarch/b-2.0-SNAPSHOT.noarch.rpm"/></package>
</metadata>
"""


def _write_repodata(root, suffix=".gz", primary=PRIMARY):
    repodata = root / "repodata"
    repodata.mkdir(parents=True, exist_ok=True)
    (repodata / "repomd.xml").write_text(REPOMD.format(suffix=suffix))
    target = repodata / f"abc123-primary.xml{suffix}"
    data = primary.encode("utf-8")
    if suffix == ".gz":
        data = gzip.compress(data)
    elif suffix == ".bz2":
        data = bz2.compress(data)
    target.write_bytes(data)


class TestIndexReading:
    """Tests for index detection and parsing."""

    def test_index_exists(self, tmp_path):
        repo = CreaterepoRepository(tmp_path)
        assert not repo.index_exists()

        _write_repodata(tmp_path)
        assert repo.index_exists()

    @pytest.mark.parametrize("suffix", [".gz", ".bz2", ""])
    def test_list_declared_files(self, tmp_path, suffix):
        _write_repodata(tmp_path, suffix=suffix)

        files = CreaterepoRepository(tmp_path).list_declared_files()

        assert files == ["x86_64/a-1.0-1.x86_64.rpm", "noarch/b-2.0-SNAPSHOT.noarch.rpm"]

    def test_missing_repomd(self, tmp_path):
        with pytest.raises(IndexParseError):
            CreaterepoRepository(tmp_path).list_declared_files()

    def test_malformed_repomd(self, tmp_path):
        (tmp_path / "repodata").mkdir()
        (tmp_path / "repodata" / "repomd.xml").write_text("<repomd><data")

        with pytest.raises(IndexParseError):
            CreaterepoRepository(tmp_path).list_declared_files()

    def test_repomd_without_primary(self, tmp_path):
        (tmp_path / "repodata").mkdir()
        (tmp_path / "repodata" / "repomd.xml").write_text(
            '<repomd xmlns="http://linux.duke.edu/metadata/repo"></repomd>'
        )

        with pytest.raises(IndexParseError, match="no primary metadata entry"):
            CreaterepoRepository(tmp_path).list_declared_files()

    def test_missing_primary_file(self, tmp_path):
        _write_repodata(tmp_path)
        (tmp_path / "repodata" / "abc123-primary.xml.gz").unlink()

        with pytest.raises(IndexParseError):
            CreaterepoRepository(tmp_path).list_declared_files()

    def test_corrupt_primary_file(self, tmp_path):
        _write_repodata(tmp_path)
        (tmp_path / "repodata" / "abc123-primary.xml.gz").write_bytes(b"not gzip")

        with pytest.raises(IndexParseError):
            CreaterepoRepository(tmp_path).list_declared_files()


class TestStagedFiles:
    """Tests for file queries and deletion."""

    def test_file_exists(self, tmp_path):
        (tmp_path / "x86_64").mkdir()
        (tmp_path / "x86_64" / "a.rpm").write_bytes(b"a")
        repo = CreaterepoRepository(tmp_path)

        assert repo.file_exists("x86_64/a.rpm")
        assert not repo.file_exists("x86_64/missing.rpm")
        assert not repo.file_exists("x86_64")
        assert not repo.file_exists("../outside.rpm")

    def test_delete_file(self, tmp_path):
        (tmp_path / "a.rpm").write_bytes(b"a")
        repo = CreaterepoRepository(tmp_path)

        repo.delete_file("a.rpm")

        assert not (tmp_path / "a.rpm").exists()

    def test_delete_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CreaterepoRepository(tmp_path).delete_file("a.rpm")

    def test_delete_outside_root_rejected(self, tmp_path):
        root = tmp_path / "repo"
        root.mkdir()
        (tmp_path / "keep.rpm").write_bytes(b"k")

        with pytest.raises(ValueError):
            CreaterepoRepository(root).delete_file("../keep.rpm")

        assert (tmp_path / "keep.rpm").exists()


class TestRebuildIndex:
    """Tests for running createrepo."""

    @patch("src.repos.createrepo.subprocess.run")
    def test_rebuild_success(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=0, stdout=b"Workers Finished\n", stderr=b"")
        repo = CreaterepoRepository(tmp_path / "repo", createrepo="createrepo_c", extra_args=["--update"])

        repo.rebuild_index()

        cmd = mock_run.call_args[0][0]
        assert cmd == ["createrepo_c", "--update", str(tmp_path / "repo")]
        assert mock_run.call_args.kwargs["timeout"] == 600
        assert (tmp_path / "repo").is_dir()

    @patch("src.repos.createrepo.subprocess.run")
    def test_rebuild_failure_surfaces_diagnostics(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(
            returncode=1, stdout=b"", stderr=b"Critical: cannot read package\n"
        )

        with pytest.raises(IndexBuildError) as exc_info:
            CreaterepoRepository(tmp_path).rebuild_index()

        assert exc_info.value.returncode == 1
        assert "cannot read package" in exc_info.value.stderr
        assert "cannot read package" in str(exc_info.value)

    @patch("src.repos.createrepo.subprocess.run")
    def test_rebuild_missing_executable(self, mock_run, tmp_path):
        mock_run.side_effect = FileNotFoundError("createrepo")

        with pytest.raises(IndexBuildError, match="createrepo not found"):
            CreaterepoRepository(tmp_path).rebuild_index()

    def test_rebuild_non_executable_builder(self, tmp_path):
        builder = tmp_path / "createrepo"
        builder.write_text("#!/bin/sh\nexit 0\n")
        builder.chmod(0o644)

        with pytest.raises(IndexBuildError) as exc_info:
            CreaterepoRepository(tmp_path / "repo", createrepo=str(builder)).rebuild_index()

        assert isinstance(exc_info.value.__cause__, OSError)
        assert str(builder) in exc_info.value.command

    @patch("src.repos.createrepo.subprocess.run")
    def test_rebuild_os_error(self, mock_run, tmp_path):
        mock_run.side_effect = PermissionError(13, "Permission denied")

        with pytest.raises(IndexBuildError, match="Permission denied"):
            CreaterepoRepository(tmp_path).rebuild_index()

    @patch("src.repos.createrepo.subprocess.run")
    def test_rebuild_timeout(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="createrepo", timeout=5)

        with pytest.raises(IndexBuildError, match="timed out after 5s"):
            CreaterepoRepository(tmp_path, timeout=5).rebuild_index()
