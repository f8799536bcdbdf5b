"""Tests for prstack.git.plumbing and prstack.git.conflict modules."""

import subprocess

import pytest

from prstack.git.conflict import get_commit_files, parse_conflict_output, predict_reorder_overlaps
from prstack.git.exceptions import GitError
from prstack.git.plumbing import (
    MERGE_BASE_MIN_VERSION,
    finalize_rewrite,
    get_author_and_committer_env,
    get_git_version,
    get_parents,
    get_tree,
    merge_tree,
    replay_commits,
    rewrite_commit_chain,
)
from prstack.git.queries import get_commit_message

NUMBERED = "".join(f"{n}\n" for n in range(1, 9))


@pytest.fixture
def old_git(mocker):
    """Pretend git predates merge-tree --merge-base."""
    return mocker.patch("prstack.git.plumbing.get_git_version", return_value=(2, 39, 0))


@pytest.fixture
def delete_commit(temp_repo, git):
    """Commit the removal of a file and return the new hash."""

    def create(subject: str, filename: str) -> str:
        git("rm", "-q", filename)
        git("commit", "-q", "-m", subject)
        return git("rev-parse", "HEAD")

    return create


@pytest.fixture
def diverged(temp_repo, git, make_commit):
    """Two commits that change different lines of one file on top of a shared base.

    Returns (base, ours, theirs).
    """
    base = make_commit("Setup", filename="f.txt", content=NUMBERED)
    ours = make_commit("Top", filename="f.txt", content=NUMBERED.replace("1\n", "one\n", 1))
    git("checkout", "-q", base)
    theirs = make_commit("Bottom", filename="f.txt", content=NUMBERED.replace("8\n", "eight\n"))
    git("checkout", "-q", "feature")
    return base, ours, theirs


class TestCommitLookups:
    """Tests for tree, parent and identity lookups."""

    def test_parents_and_tree(self, temp_repo, git, make_commit):
        """Test reading a commit's parent and tree."""
        base = git("rev-parse", "HEAD")
        sha = make_commit("One")

        assert get_parents(sha, cwd=temp_repo) == [base]
        assert get_tree(sha, cwd=temp_repo) == git("rev-parse", f"{sha}^{{tree}}")

    def test_author_env(self, temp_repo, make_commit):
        """Test that the original identity is captured."""
        sha = make_commit("One")

        env = get_author_and_committer_env(sha, cwd=temp_repo)

        assert env["GIT_AUTHOR_NAME"] == "Test User"
        assert env["GIT_AUTHOR_EMAIL"] == "test@example.com"
        assert env["GIT_COMMITTER_NAME"] == "Test User"
        assert env["GIT_AUTHOR_DATE"]


class TestRewriteCommitChain:
    """Tests for rewrite_commit_chain function."""

    def test_rewrites_messages_and_keeps_trees(self, temp_repo, git, make_commit):
        """Test a message-only rewrite."""
        first = make_commit("First")
        second = make_commit("Second")
        third = make_commit("Third")

        result = rewrite_commit_chain([first, second, third], {second: "Second, reworded"}, cwd=temp_repo)

        assert result.ok is True
        assert set(result.mapping) == {first, second, third}
        assert get_commit_message(result.mapping[second], cwd=temp_repo) == "Second, reworded"
        assert get_commit_message(result.mapping[third], cwd=temp_repo) == "Third"
        for old, new in result.mapping.items():
            assert get_tree(old, cwd=temp_repo) == get_tree(new, cwd=temp_repo)
        # Nothing moved yet
        assert git("rev-parse", "HEAD") == third

    def test_unchanged_prefix_keeps_hashes(self, temp_repo, make_commit):
        """Test that commits before the first rewrite are recreated identically."""
        first = make_commit("First")
        second = make_commit("Second")

        result = rewrite_commit_chain([first, second], {second: "Changed"}, cwd=temp_repo)

        assert result.mapping[first] == first
        assert result.mapping[second] != second

    def test_preserves_author(self, temp_repo, git, make_commit):
        """Test that the rewritten commit keeps its author."""
        sha = make_commit("First")

        result = rewrite_commit_chain([sha], {sha: "Changed"}, cwd=temp_repo)

        assert git("log", "-1", "--format=%an <%ae> %ad", result.new_tip) == git(
            "log", "-1", "--format=%an <%ae> %ad", sha
        )


class TestReplayCommits:
    """Tests for replay_commits and merge_tree functions."""

    def test_reorder_independent_commits(self, temp_repo, git, make_commit):
        """Test swapping two commits that touch different files."""
        base = git("rev-parse", "HEAD")
        first = make_commit("First")
        second = make_commit("Second")

        result = replay_commits(base, [second, first], cwd=temp_repo)

        assert result.ok is True
        assert get_parents(result.mapping[second], cwd=temp_repo) == [base]
        assert get_parents(result.mapping[first], cwd=temp_repo) == [result.mapping[second]]
        assert get_tree(result.new_tip, cwd=temp_repo) == get_tree(second, cwd=temp_repo)
        assert git("rev-parse", "HEAD") == second

    def test_same_order_keeps_commits(self, temp_repo, git, make_commit):
        """Test that replaying in place reproduces the same commits."""
        base = git("rev-parse", "HEAD")
        first = make_commit("First")
        second = make_commit("Second")

        result = replay_commits(base, [first, second], cwd=temp_repo)

        assert result.new_tip == second

    def test_message_override(self, temp_repo, git, make_commit):
        """Test replacing a message while replaying."""
        base = git("rev-parse", "HEAD")
        first = make_commit("First")

        result = replay_commits(base, [first], {first: "Renamed"}, cwd=temp_repo)

        assert get_commit_message(result.new_tip, cwd=temp_repo) == "Renamed"

    def test_conflict_is_reported(self, temp_repo, git, make_commit):
        """Test that a conflicting reorder stops without moving anything."""
        base = make_commit("Setup", filename="shared.txt", content="zero\n")
        first = make_commit("First", filename="shared.txt", content="one\n")
        second = make_commit("Second", filename="shared.txt", content="two\n")

        result = replay_commits(base, [second, first], cwd=temp_repo)

        assert result.ok is False
        assert result.conflict_commit == second
        assert result.conflict_files == ["shared.txt"]
        assert "shared.txt" in parse_conflict_output(result.conflict_info)
        assert git("rev-parse", "HEAD") == second

    def test_modify_delete_conflict_names_file(self, temp_repo, git, make_commit, delete_commit):
        """Test that a deleted file modified by a reordered commit is reported."""
        base = make_commit("Setup", filename="f.txt", content="one\n")
        change = make_commit("Change", filename="f.txt", content="two\n")
        drop = delete_commit("Drop", "f.txt")

        result = replay_commits(base, [drop, change], cwd=temp_repo)

        assert result.ok is False
        assert result.conflict_commit == drop
        assert result.conflict_files == ["f.txt"]
        assert git("rev-parse", "HEAD") == drop

    def test_merge_tree_clean(self, temp_repo, git, make_commit):
        """Test a clean three-way merge."""
        base = git("rev-parse", "HEAD")
        first = make_commit("First")

        result = merge_tree(base, base, first, cwd=temp_repo)

        assert result.ok is True
        assert result.tree == get_tree(first, cwd=temp_repo)


class TestFinalizeRewrite:
    """Tests for finalize_rewrite function."""

    def test_moves_branch(self, temp_repo, git, make_commit):
        """Test that the branch points at the new tip."""
        sha = make_commit("First")
        result = rewrite_commit_chain([sha], {sha: "Changed"}, cwd=temp_repo)

        finalize_rewrite("feature", sha, result.new_tip, cwd=temp_repo)

        assert git("rev-parse", "feature") == result.new_tip
        assert git("status", "--porcelain") == ""

    def test_resets_when_tree_changes(self, temp_repo, git, make_commit):
        """Test that the working tree follows a changed final tree."""
        base = git("rev-parse", "HEAD")
        make_commit("First")
        second = make_commit("Second")
        result = replay_commits(base, [second], cwd=temp_repo)

        finalize_rewrite("feature", second, result.new_tip, cwd=temp_repo)

        assert not (temp_repo / "first.txt").exists()
        assert (temp_repo / "second.txt").exists()
        assert git("status", "--porcelain") == ""


class TestGitVersion:
    """Tests for get_git_version function."""

    @pytest.fixture(autouse=True)
    def clear_cache(self):
        get_git_version.cache_clear()
        yield
        get_git_version.cache_clear()

    @pytest.mark.parametrize(
        "output,expected",
        [
            ("git version 2.39.5", (2, 39, 5)),
            ("git version 2.50.1 (Apple Git-155)", (2, 50, 1)),
            ("git version 2.45.2.windows.1", (2, 45, 2)),
            ("git version 2.40", (2, 40, 0)),
        ],
    )
    def test_parses_version(self, mocker, output, expected):
        """Test the version strings git prints on different platforms."""
        mocker.patch("prstack.git.plumbing.run_git", return_value=output)

        assert get_git_version() == expected

    def test_installed_git(self):
        """Test reading the real git version."""
        assert get_git_version() >= (2, 0, 0)


class TestMergeTreeModern:
    """Tests for merge_tree on git with merge-tree --merge-base."""

    def test_parses_name_only_output(self, mocker):
        """Test that conflicted paths come from the name-only section."""
        mocker.patch("prstack.git.plumbing.get_git_version", return_value=(2, 45, 0))
        stdout = (
            "4b825dc642cb6eb9a060e54bf8d69288fbee4904\n"
            "f.txt\n"
            "f.txt\n"
            "docs/a.md\n"
            "\n"
            "Auto-merging f.txt\n"
            "CONFLICT (content): Merge conflict in f.txt\n"
        )
        try_git = mocker.patch(
            "prstack.git.plumbing.try_git",
            return_value=subprocess.CompletedProcess([], 1, stdout=stdout, stderr=""),
        )

        result = merge_tree("base", "ours", "theirs")

        assert result.ok is False
        assert result.conflict_files == ["f.txt", "docs/a.md"]
        assert "--merge-base=base" in try_git.call_args[0][0]

    def test_unexpected_failure_raises(self, mocker):
        """Test that an exit code other than 0 or 1 is an error."""
        mocker.patch("prstack.git.plumbing.get_git_version", return_value=(2, 45, 0))
        mocker.patch(
            "prstack.git.plumbing.try_git",
            return_value=subprocess.CompletedProcess([], 128, stdout="", stderr="fatal: bad object"),
        )

        with pytest.raises(GitError, match="bad object"):
            merge_tree("base", "ours", "theirs")

    def test_real_merge(self, temp_repo, git, diverged):
        """Test a clean merge with the installed git when it is new enough."""
        if get_git_version() < MERGE_BASE_MIN_VERSION:
            pytest.skip("installed git has no merge-tree --merge-base")
        base, ours, theirs = diverged

        result = merge_tree(base, ours, theirs, cwd=temp_repo)

        assert result.ok is True
        assert git("show", f"{result.tree}:f.txt") == NUMBERED.replace("1\n", "one\n", 1).replace(
            "8\n", "eight\n"
        ).strip()


class TestMergeTreeTempIndex:
    """Tests for the temporary-index merge used on older git."""

    def test_clean_content_merge(self, temp_repo, git, old_git, diverged):
        """Test that changes to different lines of one file are combined."""
        base, ours, theirs = diverged

        result = merge_tree(base, ours, theirs, cwd=temp_repo)

        assert result.ok is True
        assert git("show", f"{result.tree}:f.txt") == NUMBERED.replace("1\n", "one\n", 1).replace(
            "8\n", "eight\n"
        ).strip()
        assert git("status", "--porcelain") == ""

    def test_independent_files(self, temp_repo, git, old_git, make_commit):
        """Test a reorder of commits touching different files."""
        base = git("rev-parse", "HEAD")
        first = make_commit("First")
        second = make_commit("Second")

        result = replay_commits(base, [second, first], cwd=temp_repo)

        assert result.ok is True
        assert get_tree(result.new_tip, cwd=temp_repo) == get_tree(second, cwd=temp_repo)

    def test_content_conflict(self, temp_repo, git, old_git, make_commit):
        """Test that overlapping edits are reported with their path."""
        base = make_commit("Setup", filename="shared.txt", content="zero\n")
        first = make_commit("First", filename="shared.txt", content="one\n")
        second = make_commit("Second", filename="shared.txt", content="two\n")

        result = replay_commits(base, [second, first], cwd=temp_repo)

        assert result.ok is False
        assert result.conflict_files == ["shared.txt"]
        assert parse_conflict_output(result.conflict_info) == ["shared.txt"]
        assert git("rev-parse", "HEAD") == second
        assert git("status", "--porcelain") == ""

    def test_modify_delete_conflict(self, temp_repo, git, old_git, make_commit, delete_commit):
        """Test that a delete against a modification is a conflict."""
        base = make_commit("Setup", filename="f.txt", content="one\n")
        make_commit("Change", filename="f.txt", content="two\n")
        drop = delete_commit("Drop", "f.txt")

        result = merge_tree(git("rev-parse", f"{drop}~1"), base, drop, cwd=temp_repo)

        assert result.ok is False
        assert result.conflict_files == ["f.txt"]


class TestConflictHelpers:
    """Tests for conflict output parsing and reorder overlap prediction."""

    def test_parses_conflict_kinds(self):
        """Test the conflict line formats git emits."""
        output = (
            "Auto-merging src/app.py\n"
            "CONFLICT (content): Merge conflict in src/app.py\n"
            "CONFLICT (add/add): Add/add docs/readme.md\n"
            "CONFLICT (modify/delete): lib/util.py deleted in 1234abc (Drop) and modified in HEAD."
            "  Version HEAD of lib/util.py left in tree.\n"
            "CONFLICT (rename/rename): Rename/rename old.txt\n"
            "CONFLICT (file/directory): directory in the way of data from HEAD; "
            "moving it to data~HEAD instead.\n"
            "CONFLICT (content): Merge conflict in src/app.py\n"
        )

        assert parse_conflict_output(output) == [
            "src/app.py",
            "docs/readme.md",
            "lib/util.py",
            "old.txt",
            "data",
        ]

    def test_no_conflicts(self):
        """Test output without conflict lines."""
        assert parse_conflict_output("Auto-merging a.txt\n") == []

    def test_commit_files(self, temp_repo, make_commit):
        """Test listing the files a commit touches."""
        sha = make_commit("First", filename="shared.txt", content="one\n")

        assert get_commit_files(sha, cwd=temp_repo) == ["shared.txt"]

    def test_predict_reorder_overlaps(self, temp_repo, make_commit):
        """Test that only swapped pairs sharing files are reported."""
        first = make_commit("First", filename="shared.txt", content="one\n")
        second = make_commit("Second", filename="shared.txt", content="two\n")
        third = make_commit("Third")
        current = [first, second, third]

        assert predict_reorder_overlaps(current, [second, first, third], cwd=temp_repo) == {
            (second, first): ["shared.txt"]
        }
        assert predict_reorder_overlaps(current, [third, first, second], cwd=temp_repo) == {}
        assert predict_reorder_overlaps(current, current, cwd=temp_repo) == {}
