"""Tests for user-facing repository operations."""

import itertools

import pytest

from treegit import init_repository, open_repository
from treegit.errors import (
    AlreadyOnBranch,
    BranchExists,
    BranchNotFound,
    CannotRemoveCurrentBranch,
    EmptyCommit,
    EmptyMessage,
    FileNotFound,
    FileNotInCommit,
    InvalidBranchName,
    NoMatchingCommit,
    NothingToRemove,
    ObjectNotFound,
    UntrackedObstruction,
)
from treegit.objects import INITIAL_MESSAGE, Commit
from treegit.staging import StageOutcome


def _repo():
    ticks = itertools.count(1000, 1000)
    return init_repository(storage="memory", clock=lambda: next(ticks))


def _commit(repo, message, **files):
    for path, data in files.items():
        repo.worktree.write(path, data)
        repo.add(path)
    return repo.commit(message)


class TestInit:
    def test_root_commit(self):
        repo = _repo()
        head = repo.head_commit()
        assert head == Commit.root()
        assert head.message == INITIAL_MESSAGE
        assert repo.current_branch == "master"
        assert repo.refs.branches() == ["master"]

    def test_roots_match_across_repositories(self):
        assert _repo().refs.head() == _repo().refs.head()


class TestAddCommit:
    def test_add_and_commit(self):
        repo = _repo()
        repo.worktree.write("f.txt", b"hello")
        assert repo.add("f.txt") is StageOutcome.CHANGED
        commit = repo.commit("add f")
        assert commit.parent == Commit.root().digest
        assert commit.timestamp == 1000
        assert repo.objects.blob(commit.tracked["f.txt"]).data == b"hello"
        assert repo.refs.head() == commit.digest
        assert not repo.staging().has_pending_changes()

    def test_add_twice_unchanged(self):
        repo = _repo()
        repo.worktree.write("f.txt", b"hello")
        repo.add("f.txt")
        assert repo.add("f.txt") is StageOutcome.UNCHANGED

    def test_add_committed_content_unstages(self):
        repo = _repo()
        _commit(repo, "add f", **{"f.txt": b"hello"})
        repo.worktree.write("f.txt", b"changed")
        repo.add("f.txt")
        repo.worktree.write("f.txt", b"hello")
        repo.add("f.txt")
        assert not repo.staging().has_pending_changes()

    def test_add_missing_file(self):
        repo = _repo()
        with pytest.raises(FileNotFound):
            repo.add("nope.txt")

    def test_add_deleted_tracked_file_stages_removal(self):
        repo = _repo()
        _commit(repo, "add f", **{"f.txt": b"hello"})
        repo.worktree.delete("f.txt")
        repo.add("f.txt")
        assert repo.status().removed == ("f.txt",)

    def test_empty_commit(self):
        repo = _repo()
        with pytest.raises(EmptyCommit):
            repo.commit("nothing")

    def test_blank_message_with_staged_changes(self):
        repo = _repo()
        repo.worktree.write("f.txt", b"hello")
        repo.add("f.txt")
        with pytest.raises(EmptyMessage):
            repo.commit("")
        assert repo.staging().has_pending_changes()

    def test_staging_persists_across_open(self):
        repo = _repo()
        repo.worktree.write("f.txt", b"hello")
        repo.add("f.txt")
        reopened = type(repo).open(repo.store, repo.worktree)
        assert set(reopened.staging().added) == {"f.txt"}


class TestRm:
    def test_rm_staged_only(self):
        repo = _repo()
        repo.worktree.write("f.txt", b"hello")
        repo.add("f.txt")
        repo.rm("f.txt")
        assert not repo.staging().has_pending_changes()
        assert repo.worktree.exists("f.txt")

    def test_rm_tracked_deletes_file(self):
        repo = _repo()
        _commit(repo, "add f", **{"f.txt": b"hello"})
        repo.rm("f.txt")
        assert not repo.worktree.exists("f.txt")
        commit = repo.commit("drop f")
        assert "f.txt" not in commit.tracked

    def test_rm_untracked(self):
        repo = _repo()
        repo.worktree.write("f.txt", b"hello")
        with pytest.raises(NothingToRemove):
            repo.rm("f.txt")

    def test_add_after_rm_restores(self):
        repo = _repo()
        _commit(repo, "add f", **{"f.txt": b"hello"})
        repo.rm("f.txt")
        repo.add("f.txt")
        assert repo.worktree.read("f.txt") == b"hello"
        assert not repo.staging().has_pending_changes()


class TestHistory:
    def test_log_newest_first(self):
        repo = _repo()
        a = _commit(repo, "a", x=b"1")
        b = _commit(repo, "b", x=b"2")
        assert [c.digest for c in repo.log()] == [b.digest, a.digest, Commit.root().digest]

    def test_global_log_includes_other_branches(self):
        repo = _repo()
        repo.branch("dev")
        repo.checkout_branch("dev")
        dev = _commit(repo, "on dev", x=b"1")
        repo.checkout_branch("master")
        master = _commit(repo, "on master", y=b"1")
        commits = {e.commit for e in repo.global_log()}
        assert {dev.digest, master.digest} <= commits

    def test_find(self):
        repo = _repo()
        a = _commit(repo, "same", x=b"1")
        b = _commit(repo, "same", x=b"2")
        assert set(repo.find("same")) == {a.digest, b.digest}
        with pytest.raises(NoMatchingCommit):
            repo.find("other")


class TestBranches:
    def test_branch_and_switch(self):
        repo = _repo()
        base = _commit(repo, "add f", **{"f.txt": b"hello"})
        repo.branch("feature")
        repo.checkout_branch("feature")
        feature = _commit(repo, "edit f", **{"f.txt": b"world"})
        repo.checkout_branch("master")

        assert repo.refs.head() == base.digest
        assert repo.worktree.read("f.txt") == b"hello"
        assert repo.graph.common_ancestor(base.digest, feature.digest) == base.digest

    def test_branch_exists(self):
        repo = _repo()
        repo.branch("dev")
        with pytest.raises(BranchExists):
            repo.branch("dev")

    def test_rm_branch(self):
        repo = _repo()
        repo.branch("dev")
        repo.rm_branch("dev")
        assert repo.refs.branches() == ["master"]
        with pytest.raises(BranchNotFound):
            repo.rm_branch("dev")

    def test_rm_current_branch(self):
        repo = _repo()
        with pytest.raises(CannotRemoveCurrentBranch):
            repo.rm_branch("master")

    def test_checkout_current_branch(self):
        repo = _repo()
        with pytest.raises(AlreadyOnBranch):
            repo.checkout_branch("master")

    def test_checkout_missing_branch(self):
        repo = _repo()
        with pytest.raises(BranchNotFound, match="No such branch exists."):
            repo.checkout_branch("nope")

    def test_checkout_discards_staging(self):
        repo = _repo()
        repo.branch("dev")
        repo.worktree.write("f.txt", b"hello")
        repo.add("f.txt")
        repo.checkout_branch("dev")
        assert not repo.staging().has_pending_changes()

    def test_checkout_blocked_by_untracked_file(self):
        repo = _repo()
        repo.branch("dev")
        repo.checkout_branch("dev")
        _commit(repo, "on dev", **{"f.txt": b"dev"})
        repo.checkout_branch("master")
        repo.worktree.write("f.txt", b"mine")

        with pytest.raises(UntrackedObstruction):
            repo.checkout_branch("dev")
        assert repo.current_branch == "master"
        assert repo.worktree.read("f.txt") == b"mine"


class TestCheckoutFile:
    def test_from_head(self):
        repo = _repo()
        _commit(repo, "add f", **{"f.txt": b"hello"})
        repo.worktree.write("f.txt", b"scribble")
        repo.checkout_file("f.txt")
        assert repo.worktree.read("f.txt") == b"hello"

    def test_from_abbreviated_commit(self):
        repo = _repo()
        old = _commit(repo, "v1", **{"f.txt": b"v1"})
        _commit(repo, "v2", **{"f.txt": b"v2"})
        repo.checkout_file("f.txt", old.digest[:8])
        assert repo.worktree.read("f.txt") == b"v1"

    def test_not_in_commit(self):
        repo = _repo()
        with pytest.raises(FileNotInCommit):
            repo.checkout_file("f.txt")

    def test_unknown_commit(self):
        repo = _repo()
        with pytest.raises(ObjectNotFound, match="No commit with that id exists."):
            repo.checkout_file("f.txt", "deadbeef")

    def test_blob_id_is_not_a_commit(self):
        repo = _repo()
        commit = _commit(repo, "add f", **{"f.txt": b"hello"})
        with pytest.raises(ObjectNotFound):
            repo.checkout_file("f.txt", commit.tracked["f.txt"])


class TestReset:
    def test_reset(self):
        repo = _repo()
        old = _commit(repo, "v1", **{"f.txt": b"v1"})
        _commit(repo, "v2", **{"f.txt": b"v2", "g.txt": b"g"})
        repo.reset(old.digest)
        assert repo.refs.head() == old.digest
        assert repo.worktree.snapshot() == {"f.txt": b"v1"}
        assert repo.status().clean

    def test_reset_rolls_back_on_obstruction(self):
        repo = _repo()
        old = _commit(repo, "v1", **{"f.txt": b"v1"})
        tip = _commit(repo, "v2", **{"f.txt": b"v2"})
        repo.worktree.write("f.txt", b"unsaved")
        with pytest.raises(UntrackedObstruction):
            repo.reset(old.digest)
        assert repo.refs.head() == tip.digest
        assert repo.worktree.read("f.txt") == b"unsaved"


class TestStatus:
    def test_sections(self):
        repo = _repo()
        _commit(repo, "base", a=b"a", b=b"b", c=b"c")
        repo.branch("dev")
        repo.worktree.write("new", b"n")
        repo.add("new")
        repo.rm("b")
        repo.worktree.write("a", b"edited")
        repo.worktree.delete("c")
        repo.worktree.write("junk", b"j")

        status = repo.status()
        assert status.current_branch == "master"
        assert status.branches == ("dev", "master")
        assert status.staged == ("new",)
        assert status.removed == ("b",)
        assert status.modified == (("a", "modified"), ("c", "deleted"))
        assert status.untracked == ("junk",)
        assert not status.clean

    def test_staged_then_edited(self):
        repo = _repo()
        repo.worktree.write("a", b"1")
        repo.add("a")
        repo.worktree.write("a", b"2")
        assert repo.status().modified == (("a", "modified"),)


class TestDiskRepository:
    def test_full_cycle(self, tmp_path):
        repo = init_repository(str(tmp_path))
        (tmp_path / "f.txt").write_bytes(b"hello")
        repo.add("f.txt")
        commit = repo.commit("add f")
        assert (tmp_path / ".treegit" / "HEAD").exists()
        blob = commit.tracked["f.txt"]
        assert (tmp_path / ".treegit" / "objects" / blob[:2] / blob[2:]).exists()
        assert repo.status().clean

    def test_nested_paths(self, tmp_path):
        repo = init_repository(str(tmp_path))
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "main.py").write_bytes(b"print()")
        repo.add("src/main.py")
        repo.commit("add main")
        repo.rm("src/main.py")
        assert not (tmp_path / "src").exists()


class TestBranchNames:
    def test_slash_in_branch_name(self):
        repo = _repo()
        repo.branch("feature/x")
        repo.checkout_branch("feature/x")
        assert repo.current_branch == "feature/x"
        commit = _commit(repo, "on feature", **{"f.txt": b"x"})
        assert repo.refs.read("feature/x") == commit.digest
        assert repo.log()[0] == commit
        assert repo.status().current_branch == "feature/x"

    @pytest.mark.parametrize("name", ["", "a//b", "../x", ".", "a/..", "x/", " x"])
    def test_invalid_names(self, name):
        repo = _repo()
        with pytest.raises(InvalidBranchName):
            repo.branch(name)
        assert repo.refs.branches() == ["master"]

    def test_nested_inside_existing_branch(self):
        repo = _repo()
        repo.branch("a")
        with pytest.raises(InvalidBranchName):
            repo.branch("a/b")
        repo.branch("c/d")
        with pytest.raises(InvalidBranchName):
            repo.branch("c")

    def test_slash_branch_on_disk(self, tmp_path):
        repo = init_repository(str(tmp_path))
        repo.branch("feature/x")
        repo.checkout_branch("feature/x")
        (tmp_path / "f.txt").write_bytes(b"x")
        repo.add("f.txt")
        repo.commit("on feature")
        assert open_repository(str(tmp_path)).current_branch == "feature/x"


class TestMultilineMessages:
    def test_global_log_and_find(self):
        repo = _repo()
        repo.worktree.write("f.txt", b"x")
        repo.add("f.txt")
        commit = repo.commit("line one\nline two \\n not a newline")
        messages = [e.message for e in repo.global_log()]
        assert messages == ["line one\nline two \\n not a newline", INITIAL_MESSAGE]
        assert repo.find("line one\nline two \\n not a newline") == [commit.digest]


class TestStagedFilesSurviveSwitch:
    def test_checkout_keeps_staged_only_file(self):
        repo = _repo()
        repo.branch("dev")
        repo.worktree.write("new.txt", b"precious")
        repo.add("new.txt")
        repo.checkout_branch("dev")
        assert repo.worktree.read("new.txt") == b"precious"
        assert repo.status().untracked == ("new.txt",)

    def test_reset_keeps_staged_only_file(self):
        repo = _repo()
        old = _commit(repo, "v1", **{"f.txt": b"v1"})
        _commit(repo, "v2", **{"f.txt": b"v2"})
        repo.worktree.write("new.txt", b"precious")
        repo.add("new.txt")
        repo.reset(old.digest)
        assert repo.worktree.read("new.txt") == b"precious"
        assert repo.worktree.read("f.txt") == b"v1"

    def test_staged_edit_blocks_checkout(self):
        repo = _repo()
        _commit(repo, "base", **{"f.txt": b"base"})
        repo.branch("dev")
        repo.checkout_branch("dev")
        _commit(repo, "dev", **{"f.txt": b"dev"})
        repo.checkout_branch("master")
        repo.worktree.write("f.txt", b"staged edit")
        repo.add("f.txt")

        with pytest.raises(UntrackedObstruction):
            repo.checkout_branch("dev")
        assert repo.current_branch == "master"
        assert repo.worktree.read("f.txt") == b"staged edit"
        assert set(repo.staging().added) == {"f.txt"}
