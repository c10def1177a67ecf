"""Tests for the local and remote tree walkers."""

import os
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from pydbx.api import DbxClient
from pydbx.exceptions import DbxNotADirectoryError
from pydbx.models import FolderListing, RemoteEntry
from pydbx.sync.identity import InodeIdentity, PathIdentity
from pydbx.sync.report import SyncReport
from pydbx.sync.scanner import LocalFileState, LocalTreeWalker, RemoteTreeWalker
from pydbx.utils import TEMP_SUFFIX


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestLocalFileState:
    """Tests for LocalFileState."""

    def test_from_path(self, temp_dir):
        test_file = temp_dir / "sub" / "test.txt"
        test_file.parent.mkdir()
        test_file.write_text("hello")
        os.utime(test_file, (1300000000, 1300000000))

        state = LocalFileState.from_path(test_file, temp_dir)

        assert state.relative_path == "sub/test.txt"
        assert state.size == 5
        assert state.mtime == 1300000000
        assert not state.is_dir

    def test_inode_identity_survives_rename(self, temp_dir):
        """Test that a renamed file keeps its identity key."""
        old = temp_dir / "old.txt"
        old.write_text("x")
        before = LocalFileState.from_path(old, temp_dir, InodeIdentity())
        new = temp_dir / "new.txt"
        old.rename(new)
        after = LocalFileState.from_path(new, temp_dir, InodeIdentity())

        assert before.identity_key == after.identity_key

    def test_path_identity(self, temp_dir):
        test_file = temp_dir / "a.txt"
        test_file.write_text("x")
        state = LocalFileState.from_path(test_file, temp_dir, PathIdentity())
        assert state.identity_key == str(test_file)


class TestLocalTreeWalker:
    """Tests for LocalTreeWalker."""

    def test_post_order(self, temp_dir):
        """Test that every child is produced before its parent."""
        (temp_dir / "a" / "b").mkdir(parents=True)
        (temp_dir / "a" / "b" / "c.txt").write_text("c")
        (temp_dir / "a" / "x.txt").write_text("x")
        (temp_dir / "top.txt").write_text("t")

        order = [s.relative_path for s in LocalTreeWalker().walk(temp_dir)]

        assert order == ["a/b/c.txt", "a/b", "a/x.txt", "a", "top.txt"]

    def test_root_not_produced(self, temp_dir):
        assert list(LocalTreeWalker().walk(temp_dir)) == []

    def test_temp_files_skipped(self, temp_dir):
        (temp_dir / "a.txt").write_text("a")
        (temp_dir / ("a.txt" + TEMP_SUFFIX)).write_text("partial")

        order = [s.relative_path for s in LocalTreeWalker().walk(temp_dir)]
        assert order == ["a.txt"]

    def test_symlinked_directory_not_followed(self, temp_dir):
        target = temp_dir / "real"
        target.mkdir()
        (target / "f.txt").write_text("f")
        (temp_dir / "link").symlink_to(target, target_is_directory=True)

        order = [s.relative_path for s in LocalTreeWalker().walk(temp_dir)]
        assert order == ["real/f.txt", "real"]


def listing(path, children=(), is_deleted=False, is_dir=True):
    return FolderListing(
        entry=RemoteEntry(path=path, is_dir=is_dir, is_deleted=is_deleted),
        children=list(children),
    )


class TestRemoteTreeWalker:
    """Tests for RemoteTreeWalker."""

    @pytest.fixture
    def mock_client(self):
        return Mock(spec=DbxClient)

    def test_children_before_descending(self, mock_client):
        """Test that all children of a directory precede any grandchild."""
        tree = {
            "/R": listing(
                "/R",
                [
                    RemoteEntry(path="/R/d1", is_dir=True),
                    RemoteEntry(path="/R/a.txt"),
                    RemoteEntry(path="/R/d2", is_dir=True),
                ],
            ),
            "/R/d1": listing("/R/d1", [RemoteEntry(path="/R/d1/x.txt")]),
            "/R/d2": listing("/R/d2", [RemoteEntry(path="/R/d2/y.txt")]),
        }
        mock_client.list.side_effect = lambda path: tree[path]

        paths = [e.path for e in RemoteTreeWalker(mock_client).walk("/R")]

        assert paths == ["/R/d1", "/R/a.txt", "/R/d2", "/R/d1/x.txt", "/R/d2/y.txt"]

    def test_deleted_children_filtered(self, mock_client):
        mock_client.list.return_value = listing(
            "/R",
            [
                RemoteEntry(path="/R/gone.txt", is_deleted=True),
                RemoteEntry(path="/R/here.txt"),
            ],
        )

        paths = [e.path for e in RemoteTreeWalker(mock_client).walk("/R")]
        assert paths == ["/R/here.txt"]

    def test_deleted_directory_degrades_report(self, mock_client):
        """Test that a soft-deleted subtree is reported and not walked."""
        mock_client.list.return_value = listing("/R", is_deleted=True)
        report = SyncReport()

        assert list(RemoteTreeWalker(mock_client).walk("/R", report)) == []
        assert report.degraded
        assert report.exit_status == 3

    def test_file_raises_not_a_directory(self, mock_client):
        mock_client.list.return_value = listing("/R/a.txt", is_dir=False)

        with pytest.raises(DbxNotADirectoryError, match="Not a directory"):
            list(RemoteTreeWalker(mock_client).walk("/R/a.txt"))
