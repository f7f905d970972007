"""Tests for the Repository facade."""

from unittest.mock import patch

import pytest

from gitmodel.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotAGitRepositoryError,
    NotFoundError,
    ParseError,
    ProcessExecutionError,
    ProcessTimeoutError,
)
from gitmodel.git import Branch, Commit, DetachedHead, NodeType, Repository, Tag
from gitmodel.git.executor import ProcessResult

SHA_A = "0123456789abcdef0123456789abcdef01234567"
SHA_B = "89abcdef0123456789abcdef0123456789abcdef"
SHA_C = "fedcba9876543210fedcba9876543210fedcba98"


def _result(stdout="", args=("git",)):
    return ProcessResult(args=tuple(args), exit_code=0, stdout=stdout, stderr="")


class TestRepositoryInit:
    """Tests for Repository construction."""

    def test_path_is_resolved(self, temp_dir, test_settings):
        """Test path is resolved."""
        repo = Repository(str(temp_dir), settings=test_settings)

        assert repo.path == temp_dir.resolve()
        assert repo.timeout == 20
        assert repo.sha_length == 40

    def test_missing_directory(self, temp_dir, test_settings):
        """Test missing directory."""
        with pytest.raises(InvalidArgumentError):
            Repository(temp_dir / "missing", settings=test_settings)

    def test_timeout_override(self, temp_dir, test_settings):
        """Test timeout override."""
        repo = Repository(temp_dir, settings=test_settings, timeout=2.5)

        assert repo.timeout == 2.5

    def test_repr(self, mock_repo):
        """Test repr."""
        assert repr(mock_repo) == f"Repository({str(mock_repo.path)!r})"


class TestRepositoryRun:
    """Tests for Repository.run with a mocked executor."""

    @patch("gitmodel.git.repository.execute")
    def test_run_passes_settings(self, mock_execute, mock_repo):
        """Test run passes settings."""
        mock_execute.return_value = _result("")

        mock_repo.get_status()

        args, kwargs = mock_execute.call_args
        assert args[0] == ["git", "status", "--porcelain=v1", "--branch", "-z"]
        assert kwargs["cwd"] == mock_repo.path
        assert kwargs["timeout"] == 20
        assert kwargs["env"]["LC_ALL"] == "C"

    @patch("gitmodel.git.repository.execute")
    def test_not_a_repository(self, mock_execute, mock_repo):
        """Test not a repository."""
        mock_execute.side_effect = ProcessExecutionError(
            "fatal: not a git repository",
            args=["git", "branch"],
            returncode=128,
            stderr="fatal: not a git repository (or any of the parent directories): .git\n",
        )

        with pytest.raises(NotAGitRepositoryError):
            mock_repo.get_branches()

    @patch("gitmodel.git.repository.execute")
    def test_timeout_is_not_classified(self, mock_execute, mock_repo):
        """Test timeout is not classified."""
        mock_execute.side_effect = ProcessTimeoutError(["git", "log"], 20)

        with pytest.raises(ProcessTimeoutError):
            mock_repo.get_log()

    @patch("gitmodel.git.repository.execute")
    def test_is_repository(self, mock_execute, mock_repo):
        """Test is repository."""
        mock_execute.return_value = _result("## main\0")
        assert mock_repo.is_repository() is True

        mock_execute.side_effect = ProcessExecutionError(
            "fatal", args=["git"], returncode=128, stderr="fatal: not a git repository\n"
        )
        assert mock_repo.is_repository() is False


class TestRepositoryRefsMocked:
    """Branch and tag listing with canned git output."""

    BRANCH_OUTPUT = (
        f"* (HEAD detached at 0123456) {SHA_A} Detached work\n"
        f"  feature                     {SHA_B} Add feature\n"
        f"  main                        {SHA_C} Initial commit\n"
    )

    @patch("gitmodel.git.repository.execute")
    def test_get_branches(self, mock_execute, mock_repo):
        """Test get branches."""
        mock_execute.return_value = _result(self.BRANCH_OUTPUT)

        branches = mock_repo.get_branches()

        assert [b.name for b in branches] == ["feature", "main"]
        assert all(isinstance(b, Branch) for b in branches)

    @patch("gitmodel.git.repository.execute")
    def test_get_branches_with_detached(self, mock_execute, mock_repo):
        """Test get branches with detached."""
        mock_execute.return_value = _result(self.BRANCH_OUTPUT)

        branches = mock_repo.get_branches(include_detached=True)

        assert isinstance(branches[0], DetachedHead)
        assert branches[0].current is True

    @patch("gitmodel.git.repository.execute")
    def test_current_branch_is_detached_head(self, mock_execute, mock_repo):
        """Test current branch is detached head."""
        mock_execute.return_value = _result(self.BRANCH_OUTPUT)

        current = mock_repo.get_current_branch()

        assert isinstance(current, DetachedHead)
        assert current.sha == SHA_A

    @patch("gitmodel.git.repository.execute")
    def test_get_branch(self, mock_execute, mock_repo):
        """Test get branch."""
        mock_execute.return_value = _result(self.BRANCH_OUTPUT)

        branch = mock_repo.get_branch("main")

        assert branch.sha == SHA_C
        assert branch.comment == "Initial commit"

    @patch("gitmodel.git.repository.execute")
    def test_get_missing_branch(self, mock_execute, mock_repo):
        """A missing name after a full scan is NotFound, never a parse failure."""
        mock_execute.return_value = _result(self.BRANCH_OUTPUT)

        with pytest.raises(NotFoundError):
            mock_repo.get_branch("ghost")

    @patch("gitmodel.git.repository.execute")
    def test_malformed_listing(self, mock_execute, mock_repo):
        """Test malformed listing."""
        mock_execute.return_value = _result(f"  main {SHA_A[:39]} Initial commit\n")

        with pytest.raises(ParseError):
            mock_repo.get_branches()

    @patch("gitmodel.git.repository.execute")
    def test_get_tags(self, mock_execute, mock_repo):
        """Test get tags."""
        mock_execute.return_value = _result(f"v1.0 {SHA_A} Release 1.0\nv1.1 {SHA_B} \n")

        tags = mock_repo.get_tags()

        assert tags == [Tag(mock_repo, "v1.0", SHA_A, "Release 1.0"), Tag(mock_repo, "v1.1", SHA_B, "")]


class TestRepositoryHistoryMocked:
    """Log, resolve, diff and tree reads with canned git output."""

    @patch("gitmodel.git.repository.execute")
    def test_get_log(self, mock_execute, mock_repo):
        """Test get log."""
        fields_1 = [SHA_A, SHA_B, SHA_C, "A <a@x>", "2024-01-02", "A <a@x>", "2024-01-02", "Second\n"]
        fields_2 = [SHA_C, SHA_B, "", "A <a@x>", "2024-01-01", "A <a@x>", "2024-01-01", "First\n"]
        stdout = "\x1f".join(fields_1) + "\0" + "\x1f".join(fields_2) + "\0"
        mock_execute.return_value = _result(stdout)

        commits = mock_repo.get_log(limit=2)

        assert [c.sha for c in commits] == [SHA_A, SHA_C]
        assert commits[0].parents == (SHA_C,)
        assert commits[1].is_root is True
        assert "-n2" in mock_execute.call_args[0][0]

    @patch("gitmodel.git.repository.execute")
    def test_resolve(self, mock_execute, mock_repo):
        """Test resolve."""
        mock_execute.return_value = _result(f"{SHA_A}\n")

        assert mock_repo.resolve("main") == SHA_A

    @patch("gitmodel.git.repository.execute")
    def test_resolve_garbage(self, mock_execute, mock_repo):
        """Test resolve garbage."""
        mock_execute.return_value = _result("not-a-sha\n")

        with pytest.raises(ParseError):
            mock_repo.resolve("main")

    @patch("gitmodel.git.repository.execute")
    def test_get_diff(self, mock_execute, mock_repo):
        """Test get diff."""
        mock_execute.return_value = _result("M\0a.py\0R087\0old.py\0new.py\0")

        entries = mock_repo.get_diff("main", "feature")

        assert [(e.status, e.path, e.old_path) for e in entries] == [
            ("M", "a.py", None),
            ("R", "new.py", "old.py"),
        ]

    @patch("gitmodel.git.repository.execute")
    def test_get_tree(self, mock_execute, mock_repo):
        """Test get tree."""
        records = [f"100644 blob {SHA_A}\ttest", f"040000 tree {SHA_B}\ttest-folder"]
        mock_execute.return_value = _result("\x00".join(records) + "\x00")

        tree = mock_repo.get_tree()

        assert tree.treeish == "HEAD"
        assert [(n.type, n.path) for n in tree] == [
            (NodeType.BLOB, "test"),
            (NodeType.TREE, "test-folder"),
        ]

    @patch("gitmodel.git.repository.execute")
    def test_get_tree_of_blob_node(self, mock_execute, mock_repo):
        """Test get tree of blob node."""
        mock_execute.return_value = _result(f"100644 blob {SHA_A}\ttest\0")
        blob = mock_repo.get_tree()[0]

        with pytest.raises(InvalidArgumentError):
            mock_repo.get_tree(blob)


@pytest.mark.integration
class TestRepositoryIntegration:
    """End-to-end tests against a real git executable."""

    def _commit_file(self, repo, add_file, name, message, folder=None):
        add_file(repo, name, folder=folder)
        repo.stage()
        return repo.commit(message)

    def test_new_repository(self, repo):
        """Test new repository."""
        status = repo.get_status()

        assert repo.is_repository() is True
        assert status.branch == "main"
        assert status.has_commits is False
        assert repo.get_branches() == []
        assert repo.get_current_branch() is None
        assert repo.get_log() == []
        assert len(repo.get_tree()) == 0

    def test_stage_and_commit(self, repo, add_file):
        """Test stage and commit."""
        add_file(repo, "test")
        assert repo.get_status().untracked == ["test"]

        repo.stage(["test"])
        assert repo.get_status().staged == [("added", "test")]

        commit = repo.commit("first commit")

        assert isinstance(commit, Commit)
        assert commit.is_root is True
        assert commit.subject == "first commit"
        assert commit.author == "Test Author <author@example.com>"
        assert commit.committer == "Test Committer <committer@example.com>"
        assert repo.get_status().is_clean is True

    def test_commit_with_nothing_staged(self, repo, add_file):
        """Test commit with nothing staged."""
        self._commit_file(repo, add_file, "test", "first commit")

        with pytest.raises(ProcessExecutionError):
            repo.commit("empty")

    def test_stage_missing_path(self, repo):
        """Test stage missing path."""
        with pytest.raises(NotFoundError) as exc_info:
            repo.stage(["missing.txt"])

        assert exc_info.value.kind == "path"

    def test_create_branch_from_main(self, repo, add_file):
        """Test create branch from main."""
        self._commit_file(repo, add_file, "test", "first commit")
        main = repo.get_branch("main")

        feature = Branch.create(repo, "feature", main)

        assert feature.name == "feature"
        assert feature.sha == main.sha
        assert feature.current is False
        assert {b.name for b in repo.get_branches()} == {"main", "feature"}

    def test_branch_already_exists(self, repo, add_file):
        """Test branch already exists."""
        self._commit_file(repo, add_file, "test", "first commit")
        repo.create_branch("feature")

        with pytest.raises(AlreadyExistsError):
            repo.create_branch("feature")

    def test_missing_branch(self, repo, add_file):
        """Test missing branch."""
        self._commit_file(repo, add_file, "test", "first commit")

        with pytest.raises(NotFoundError):
            Branch.get(repo, "ghost")

    def test_delete_branch(self, repo, add_file):
        """Test delete branch."""
        self._commit_file(repo, add_file, "test", "first commit")
        feature = repo.create_branch("feature")

        feature.delete()

        with pytest.raises(NotFoundError):
            feature.refresh()
        with pytest.raises(NotFoundError):
            repo.delete_branch("feature")

    def test_get_tree(self, repo, add_file):
        """Test get tree."""
        add_file(repo, "test")
        add_file(repo, "test2", folder="test-folder")
        repo.stage()
        repo.commit("first commit")

        tree = repo.get_tree()

        assert len(tree) == 2
        assert tree[0].is_blob
        assert tree[0].path == "test"
        assert tree[1].is_tree
        assert tree[1].path == "test-folder"

        subtree = repo.get_tree(tree[1])
        assert len(subtree) == 1
        assert subtree[0].is_blob
        assert subtree[0].path == "test2"

        assert repo.get_branch("main").get_tree().nodes == tree.nodes
        assert repo.get_commit().get_tree().nodes == tree.nodes

    def test_tree_of_missing_revision(self, repo, add_file):
        """Test tree of missing revision."""
        self._commit_file(repo, add_file, "test", "first commit")

        with pytest.raises(NotFoundError):
            repo.get_tree("ghost")

    def test_not_a_repository(self, work_dir, test_settings, git_env):
        """Test not a repository."""
        plain = Repository(work_dir, settings=test_settings)

        with pytest.raises(NotAGitRepositoryError):
            plain.get_branches()
        assert plain.is_repository() is False
        assert Repository.find(work_dir, settings=test_settings) is None

    def test_find_from_subdirectory(self, repo, add_file):
        """Test find from subdirectory."""
        add_file(repo, "inner", folder="a/b")

        found = Repository.find(repo.path / "a" / "b", settings=repo.settings)

        assert found is not None
        assert found.path == repo.path

    def test_tags(self, repo, add_file):
        """Test tags."""
        first = self._commit_file(repo, add_file, "test", "first commit")

        light = repo.create_tag("v1.0")
        annotated = Tag.create(repo, "v1.1", first, message="Release 1.1")

        assert light.sha == first.sha
        assert annotated.sha == first.sha
        assert annotated.comment == "Release 1.1"
        assert [t.name for t in repo.get_tags()] == ["v1.0", "v1.1"]
        assert annotated.get_commit() == first

        with pytest.raises(AlreadyExistsError):
            repo.create_tag("v1.0")

        light.delete()
        with pytest.raises(NotFoundError):
            repo.get_tag("v1.0")

    def test_log_and_commits(self, repo, add_file):
        """Test log and commits."""
        first = self._commit_file(repo, add_file, "test", "first commit")
        second = self._commit_file(repo, add_file, "other", "second commit\n\nWith a body")

        log = repo.get_log()

        assert [c.sha for c in log] == [second.sha, first.sha]
        assert second.parents == (first.sha,)
        assert second.parent_commits() == (first,)
        assert second.message == "second commit\n\nWith a body"
        assert repo.get_log(limit=1) == [second]
        assert repo.get_commit("HEAD~1") == first
        assert repo.resolve("main") == second.sha
        assert [(d.status, d.path) for d in repo.get_diff(first, second)] == [("A", "other")]

    def test_unknown_revision(self, repo, add_file):
        """Test unknown revision."""
        self._commit_file(repo, add_file, "test", "first commit")

        with pytest.raises(NotFoundError):
            repo.get_log("ghost")
        with pytest.raises(NotFoundError):
            repo.resolve("ghost")
        with pytest.raises(NotFoundError):
            repo.get_commit("ghost")

    def test_unknown_object_hash(self, repo, add_file):
        """Test well-formed hashes naming no object raise NotFoundError."""
        self._commit_file(repo, add_file, "test", "first commit")
        missing = "0" * 40

        with pytest.raises(NotFoundError):
            repo.get_commit(missing)
        with pytest.raises(NotFoundError):
            Commit.get(repo, missing)
        with pytest.raises(NotFoundError):
            Branch.create(repo, "feature", missing)

    def test_checkout(self, repo, add_file):
        """Test checkout."""
        self._commit_file(repo, add_file, "test", "first commit")

        feature = Branch.checkout(repo, "feature", create=True)

        assert feature.current is True
        assert repo.get_current_branch().name == "feature"
        assert repo.get_status().branch == "feature"

        repo.checkout("main")
        assert repo.get_branch("main").current is True

        with pytest.raises(NotFoundError):
            repo.checkout("ghost")

    def test_detached_head(self, repo, add_file):
        """Test detached head."""
        first = self._commit_file(repo, add_file, "test", "first commit")
        self._commit_file(repo, add_file, "other", "second commit")

        repo.checkout(first)

        current = repo.get_current_branch()
        assert isinstance(current, DetachedHead)
        assert current.sha == first.sha
        assert repo.get_status().is_detached is True
        assert [b.name for b in repo.get_branches()] == ["main"]
        with pytest.raises(NotFoundError):
            repo.get_branch("(HEAD")
