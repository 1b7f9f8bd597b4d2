"""
Test the merge engine.

Covers split point discovery, short-circuits, the per-path rule table
and conflict rendering.
"""

import stat

import pytest

from gitlet import ErrorKind, MergeAction, MergeEngine, MergeOutcome, OperationError, Repository
from gitlet.merge import conflict_contents, decide


def write(root, name, content):
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def commit_file(repo, name, content, message):
    write(repo.layout.worktree, name, content)
    repo.add(name)
    return repo.commit(message)


H, C, G = "h" * 64, "c" * 64, "g" * 64


class TestRuleTable:
    """decide() against every row of the merge table."""

    @pytest.mark.parametrize("split, current, given, expected", [
        # unmodified in current, absent in given
        (H, H, None, MergeAction.REMOVE),
        # unmodified in current, modified in given
        (H, H, G, MergeAction.TAKE_GIVEN),
        # modified in both, same content
        (H, C, C, MergeAction.KEEP),
        # modified in both, different content
        (H, C, G, MergeAction.CONFLICT),
        # current deleted, given modified
        (H, None, G, MergeAction.CONFLICT),
        # current modified, given deleted
        (H, C, None, MergeAction.CONFLICT),
        # absent in split, only in given
        (None, None, G, MergeAction.TAKE_GIVEN),
        # absent in split, only in current
        (None, C, None, MergeAction.KEEP),
        # absent in split, added differently on both sides
        (None, C, G, MergeAction.CONFLICT),
        # present in split, deleted on both sides
        (H, None, None, MergeAction.KEEP),
        # only current modified
        (H, C, H, MergeAction.KEEP),
        # current deleted, given unmodified
        (H, None, H, MergeAction.KEEP),
    ])
    def test_decide(self, split, current, given, expected):
        assert decide(split, current, given) is expected

    def test_conflict_layout(self):
        assert conflict_contents(b"mine", b"theirs") == (
            b"<<<<<<< HEAD\nmine\n=======\ntheirs\n>>>>>>>"
        )


class TestMergePreconditions:

    @pytest.fixture
    def repo(self, tmp_path):
        repo = Repository.init(tmp_path)
        commit_file(repo, "a.txt", "1", "c1")
        repo.branch("feat")
        return repo

    def test_self_merge(self, repo):
        with pytest.raises(OperationError) as excinfo:
            repo.merge("master")
        assert excinfo.value.kind is ErrorKind.SELF_MERGE

    def test_unknown_branch(self, repo):
        with pytest.raises(OperationError) as excinfo:
            repo.merge("ghost")
        assert excinfo.value.kind is ErrorKind.NO_SUCH_BRANCH

    def test_uncommitted_changes(self, repo, tmp_path):
        write(tmp_path, "b.txt", "b")
        repo.add("b.txt")

        with pytest.raises(OperationError) as excinfo:
            repo.merge("feat")
        assert excinfo.value.kind is ErrorKind.UNCOMMITTED_CHANGES

    def test_pending_removal_counts_as_uncommitted(self, repo):
        repo.rm("a.txt")

        with pytest.raises(OperationError) as excinfo:
            repo.merge("feat")
        assert excinfo.value.kind is ErrorKind.UNCOMMITTED_CHANGES


class TestShortCircuits:

    @pytest.fixture
    def repo(self, tmp_path):
        repo = Repository.init(tmp_path)
        commit_file(repo, "a.txt", "1", "c1")
        return repo

    def test_given_is_ancestor(self, repo):
        repo.branch("old")
        commit_file(repo, "a.txt", "2", "c2")
        head_before = repo.state.head_commit_id
        commits_before = repo.store.list_commits()

        result = repo.merge("old")

        assert result.outcome is MergeOutcome.ANCESTOR
        assert repo.state.head_commit_id == head_before
        assert repo.store.list_commits() == commits_before

    def test_fast_forward(self, repo, tmp_path):
        repo.branch("ahead")
        repo.checkout_branch("ahead")
        target = commit_file(repo, "b.txt", "b", "c2")
        repo.checkout_branch("master")
        commits_before = repo.store.list_commits()

        result = repo.merge("ahead")

        assert result.outcome is MergeOutcome.FAST_FORWARD
        assert repo.state.branches["master"] == target.id
        assert repo.store.list_commits() == commits_before
        assert (tmp_path / "b.txt").read_text() == "b"


class TestSplitPoint:

    def test_split_point_of_diverged_branches(self, tmp_path):
        repo = Repository.init(tmp_path)
        c1 = commit_file(repo, "a.txt", "1", "c1")
        repo.branch("feat")
        commit_file(repo, "a.txt", "3", "c3")
        repo.checkout_branch("feat")
        commit_file(repo, "a.txt", "2", "c2")

        engine = MergeEngine(repo)
        assert engine.split_point("feat", "master") == c1.id
        assert engine.split_point("master", "feat") == c1.id

    def test_split_point_ignores_second_parents(self, tmp_path):
        repo = Repository.init(tmp_path)
        c1 = commit_file(repo, "a.txt", "1", "c1")
        repo.branch("feat")
        commit_file(repo, "m.txt", "m", "on master")
        repo.checkout_branch("feat")
        f1 = commit_file(repo, "f.txt", "f", "on feat")
        repo.checkout_branch("master")
        repo.merge("feat")

        # feat's head is now only reachable from master through a second
        # parent, so the first-parent walk still finds c1.
        assert MergeEngine(repo).split_point("feat", "master") == c1.id
        assert repo.head_commit.parents[1] == f1.id


class TestThreeWayMerge:

    @pytest.fixture
    def repo(self, tmp_path):
        repo = Repository.init(tmp_path)
        write(tmp_path, "keep.txt", "keep")
        write(tmp_path, "drop.txt", "drop")
        write(tmp_path, "change.txt", "base")
        for name in ("keep.txt", "drop.txt", "change.txt"):
            repo.add(name)
        repo.commit("base")
        repo.branch("feat")
        return repo

    def test_clean_merge(self, repo, tmp_path):
        repo.checkout_branch("feat")
        repo.rm("drop.txt")
        write(tmp_path, "change.txt", "feat change")
        repo.add("change.txt")
        write(tmp_path, "new.txt", "from feat")
        repo.add("new.txt")
        feat_head = repo.commit("feat work")

        repo.checkout_branch("master")
        master_head = commit_file(repo, "mine.txt", "mine", "master work")

        result = repo.merge("feat")

        assert result.outcome is MergeOutcome.MERGED
        assert result.conflicts == ()
        merged = repo.head_commit
        assert merged.id == result.commit_id
        assert merged.parents == (master_head.id, feat_head.id)
        assert merged.message == "Merged feat into master."
        assert set(merged.files) == {"keep.txt", "change.txt", "new.txt", "mine.txt"}
        assert (tmp_path / "change.txt").read_text() == "feat change"
        assert (tmp_path / "new.txt").read_text() == "from feat"
        assert not (tmp_path / "drop.txt").exists()
        assert repo.state.staging == {}
        assert repo.state.removed == set()

    def test_current_only_changes_are_kept(self, repo, tmp_path):
        repo.checkout_branch("feat")
        commit_file(repo, "other.txt", "o", "feat work")
        repo.checkout_branch("master")
        commit_file(repo, "change.txt", "master change", "master work")

        repo.merge("feat")

        assert (tmp_path / "change.txt").read_text() == "master change"
        assert repo.head_commit.tracks("other.txt")

    def test_conflict_with_deleted_side(self, repo, tmp_path):
        repo.checkout_branch("feat")
        repo.rm("change.txt")
        repo.commit("feat deletes")
        repo.checkout_branch("master")
        commit_file(repo, "change.txt", "edited", "master edits")

        result = repo.merge("feat")

        assert result.conflicts == ("change.txt",)
        assert (tmp_path / "change.txt").read_bytes() == (
            b"<<<<<<< HEAD\nedited\n=======\n\n>>>>>>>"
        )

    def test_conflict_file_keeps_mode(self, repo, tmp_path):
        repo.checkout_branch("feat")
        commit_file(repo, "change.txt", "feat change", "feat work")
        repo.checkout_branch("master")
        (tmp_path / "change.txt").chmod(0o755)
        commit_file(repo, "change.txt", "master change", "master work")

        result = repo.merge("feat")

        assert result.conflicts == ("change.txt",)
        assert stat.S_IMODE((tmp_path / "change.txt").stat().st_mode) == 0o755

    def test_untracked_file_blocks_merge(self, repo, tmp_path):
        repo.checkout_branch("feat")
        commit_file(repo, "change.txt", "feat change", "feat work")
        repo.checkout_branch("master")
        commit_file(repo, "keep.txt", "master keep", "master work")
        write(tmp_path, "stray.txt", "s")
        head_before = repo.state.head_commit_id

        with pytest.raises(OperationError) as excinfo:
            repo.merge("feat")
        assert excinfo.value.kind is ErrorKind.UNTRACKED_FILE_CONFLICT
        assert repo.state.head_commit_id == head_before
        assert (tmp_path / "change.txt").read_text() == "base"


class TestExampleScenario:
    """Root, c1 on master, c2 on feat, c3 on master, merge feat."""

    def test_conflicting_edits(self, tmp_path):
        repo = Repository.init(tmp_path)
        root_id = repo.state.head_commit_id

        c1 = commit_file(repo, "a.txt", "1", "c1")
        assert c1.parents == (root_id,)
        assert c1.blob_for("a.txt") == repo.store.put(b"1")

        repo.branch("feat")
        repo.checkout_branch("feat")
        c2 = commit_file(repo, "a.txt", "2", "c2")
        repo.checkout_branch("master")
        c3 = commit_file(repo, "a.txt", "3", "c3")

        assert MergeEngine(repo).split_point("feat", "master") == c1.id

        result = repo.merge("feat")

        assert result.outcome is MergeOutcome.MERGED
        assert result.conflicts == ("a.txt",)
        assert (tmp_path / "a.txt").read_bytes() == b"<<<<<<< HEAD\n3\n=======\n2\n>>>>>>>"
        merged = repo.get_commit(result.commit_id)
        assert merged.parents == (c3.id, c2.id)
        assert merged.is_merge()
        assert repo.state.branches["master"] == merged.id
