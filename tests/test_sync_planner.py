"""Tests for the DeletionPlanner class."""

from pathlib import Path

from pydbx.models import RemoteEntry
from pydbx.sync.comparator import SyncAction
from pydbx.sync.planner import DeletionPlanner
from pydbx.sync.scanner import LocalFileState


def state(relative_path, is_dir=False, key=None):
    return LocalFileState(
        path=Path("/local") / relative_path,
        relative_path=relative_path,
        is_dir=is_dir,
        size=0,
        mtime=0.0,
        identity_key=key or ("inode", relative_path),
    )


class TestPlanLocal:
    """Tests for local deletion planning after a download pass."""

    def test_orphans_deleted_children_first(self):
        """Test that a/b/c.txt is removed before a/b, and a/b before a."""
        states = [
            state("a/b/c.txt"),
            state("a/b", is_dir=True),
            state("a", is_dir=True),
        ]

        decisions = DeletionPlanner().plan_local(states, set(), {})

        assert [d.relative_path for d in decisions] == ["a/b/c.txt", "a/b", "a"]
        assert all(d.action == SyncAction.DELETE for d in decisions)
        assert decisions[1].is_dir

    def test_present_on_remote_kept(self):
        states = [state("a.txt"), state("b.txt")]

        decisions = DeletionPlanner().plan_local(states, {"a.txt"}, {})

        assert [d.relative_path for d in decisions] == ["b.txt"]

    def test_case_insensitive_match(self):
        decisions = DeletionPlanner().plan_local(
            [state("Photos/A.JPG")], {"photos/a.jpg"}, {}
        )
        assert decisions == []

    def test_moved_object_kept(self):
        """Test that a local node sharing identity K with a synced entry stays."""
        remote = RemoteEntry(path="/R/new.txt")
        states = [state("old.txt", key="K"), state("new.txt", key="K")]

        decisions = DeletionPlanner().plan_local(states, {"new.txt"}, {"K": remote})

        assert len(decisions) == 1
        assert decisions[0].action == SyncAction.SKIP
        assert decisions[0].relative_path == "old.txt"
        assert decisions[0].reason == "Same object as /R/new.txt"

    def test_directory_holding_kept_content_not_deleted(self):
        """Test that a directory with a surviving child is left in place."""
        states = [
            state("d/keep.txt"),
            state("d/orphan.txt"),
            state("d", is_dir=True),
        ]

        decisions = DeletionPlanner().plan_local(states, {"d/keep.txt"}, {})

        assert [(d.relative_path, d.action) for d in decisions] == [
            ("d/orphan.txt", SyncAction.DELETE)
        ]

    def test_directory_holding_moved_object_not_deleted(self):
        remote = RemoteEntry(path="/R/x.txt")
        states = [state("d/x.txt", key="K"), state("d", is_dir=True)]

        decisions = DeletionPlanner().plan_local(states, set(), {"K": remote})

        assert [d.action for d in decisions] == [SyncAction.SKIP]


class TestPlanRemote:
    """Tests for remote deletion planning after an upload pass."""

    def test_orphan_directory_deleted_once(self):
        """Test that descendants of a deleted folder are not deleted again."""
        entries = [
            RemoteEntry(path="/R/old", is_dir=True),
            RemoteEntry(path="/R/keep.txt"),
            RemoteEntry(path="/R/old/a.txt"),
            RemoteEntry(path="/R/old/sub", is_dir=True),
            RemoteEntry(path="/R/old/sub/b.txt"),
        ]

        decisions = DeletionPlanner().plan_remote(entries, {"keep.txt"}, "/R")

        assert [d.remote_path for d in decisions] == ["/R/old"]
        assert decisions[0].action == SyncAction.DELETE
        assert decisions[0].reason == "Missing locally"

    def test_prefix_sibling_not_treated_as_descendant(self):
        """Test that /Public/foobar is still deleted after /Public/foo."""
        entries = [
            RemoteEntry(path="/Public/foo", is_dir=True),
            RemoteEntry(path="/Public/foobar"),
        ]

        decisions = DeletionPlanner().plan_remote(entries, set(), "/Public")

        assert [d.remote_path for d in decisions] == ["/Public/foo", "/Public/foobar"]

    def test_matched_entries_kept(self):
        entries = [RemoteEntry(path="/R/A.txt"), RemoteEntry(path="/R/b.txt")]

        decisions = DeletionPlanner().plan_remote(entries, {"a.txt", "b.txt"}, "/R")

        assert decisions == []
