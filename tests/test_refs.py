"""Tests for branch refs and ref logs."""

import pytest

from treegit.errors import AssertionViolation, BranchNotFound, ObjectNotFound
from treegit.kv.memory import Memory
from treegit.object_store import ObjectStore
from treegit.objects import ZERO_DIGEST, Commit
from treegit.refs import LogEntry, RefStore, valid_branch_name


def _refs():
    store = Memory()
    objects = ObjectStore(store)
    root = Commit.root()
    objects.put(root)
    return RefStore(store, objects), objects, root


class TestHead:
    def test_missing_head(self):
        refs, _, _ = _refs()
        with pytest.raises(AssertionViolation):
            refs.current_branch()

    def test_set_current(self):
        refs, _, root = _refs()
        refs.write("master", root.digest)
        refs.set_current("master")
        assert refs.current_branch() == "master"
        assert refs.head() == root.digest

    def test_set_current_unknown_branch(self):
        refs, _, _ = _refs()
        with pytest.raises(BranchNotFound):
            refs.set_current("nope")


class TestBranches:
    def test_write_requires_persisted_commit(self):
        refs, _, _ = _refs()
        with pytest.raises(ObjectNotFound):
            refs.write("master", "f" * 40)

    def test_branches_sorted(self):
        refs, _, root = _refs()
        for name in ("master", "dev", "alpha"):
            refs.write(name, root.digest)
        assert refs.branches() == ["alpha", "dev", "master"]

    def test_read_missing(self):
        refs, _, _ = _refs()
        with pytest.raises(BranchNotFound):
            refs.read("nope")

    def test_delete_moves_log(self):
        refs, objects, root = _refs()
        refs.write("dev", root.digest)
        c = Commit({}, root.digest, "on dev", 5)
        objects.put(c)
        refs.append_log("dev", c)
        refs.delete("dev")
        assert not refs.exists("dev")
        assert [e.commit for e in refs.log_entries()] == [c.digest]


class TestLogs:
    def test_entry_line(self):
        entry = LogEntry(ZERO_DIGEST, "a" * 40, 12, "with spaces in it")
        assert LogEntry.from_line(entry.to_line().rstrip("\n")) == entry

    def test_branch_log_newest_first(self):
        refs, objects, root = _refs()
        refs.write("master", root.digest)
        refs.append_log("master", root)
        child = Commit({}, root.digest, "child", 5)
        objects.put(child)
        refs.append_log("master", child)
        log = refs.branch_log("master")
        assert [e.message for e in log] == ["child", "initial commit"]
        assert log[1].parent == ZERO_DIGEST
        assert log[0].parent == root.digest


class TestBranchNamesWithSlashes:
    def test_current_branch_keeps_full_name(self):
        refs, _, root = _refs()
        refs.write("feature/x", root.digest)
        refs.set_current("feature/x")
        assert refs.current_branch() == "feature/x"
        assert refs.head() == root.digest

    @pytest.mark.parametrize("name", ["master", "feature/x", "a.b/c-d"])
    def test_valid(self, name):
        assert valid_branch_name(name)

    @pytest.mark.parametrize("name", ["", "/x", "x/", "a//b", "..", "a/./b", " x"])
    def test_invalid(self, name):
        assert not valid_branch_name(name)


class TestLogEscaping:
    @pytest.mark.parametrize(
        "message",
        ["two\nlines", "back\\slash", "literal \\n", "trailing\\", "\n"],
    )
    def test_entry_stays_on_one_line(self, message):
        line = LogEntry(ZERO_DIGEST, "a" * 40, 12, message).to_line()
        assert line.count("\n") == 1
        assert LogEntry.from_line(line.rstrip("\n")).message == message

    def test_multiline_message_in_branch_log(self):
        refs, objects, root = _refs()
        refs.write("master", root.digest)
        refs.append_log("master", root)
        child = Commit({}, root.digest, "first\nsecond", 5)
        objects.put(child)
        refs.append_log("master", child)
        assert [e.message for e in refs.log_entries()] == ["first\nsecond", "initial commit"]
