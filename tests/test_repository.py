import os

import pytest
from git import Repo

from gitbridge.core.models import DiffLineType
from gitbridge.core.repository import RepositoryInspector

from .conftest import commit_files, init_repo, requires_git


pytestmark = requires_git


@pytest.fixture
def inspector():
    return RepositoryInspector()


class TestIsRepository:
    def test_missing_path(self, inspector, tmp_path):
        assert inspector.is_repository(str(tmp_path / "nope")) is False
        assert inspector.is_repository("") is False

    def test_plain_directory(self, inspector, tmp_path):
        assert inspector.is_repository(str(tmp_path)) is False

    def test_work_tree_root(self, inspector, source_repo):
        assert inspector.is_repository(str(source_repo.path)) is True

    def test_subdirectory_is_not_a_root(self, inspector, source_repo):
        assert inspector.is_repository(str(source_repo.path / "src")) is False

    def test_bare_repository(self, inspector, tmp_path):
        Repo.init(tmp_path / "bare.git", bare=True).close()
        assert inspector.is_repository(str(tmp_path / "bare.git")) is True


class TestHistory:
    def test_file_history_newest_first(self, inspector, source_repo):
        history = inspector.get_file_history(str(source_repo.path), "README.md")

        assert [c.hash for c in history] == [source_repo.commits[2], source_repo.commits[0]]
        assert history[0].message == "Update readme"
        assert history[0].short_hash == source_repo.commits[2][:7]
        assert history[0].author_name == "Test Author"
        assert history[0].author_email == "author@example.com"

    def test_file_history_limit(self, inspector, source_repo):
        history = inspector.get_file_history(str(source_repo.path), "README.md", max_count=1)
        assert [c.hash for c in history] == [source_repo.commits[2]]

    def test_untouched_file_has_no_history(self, inspector, source_repo):
        assert inspector.get_file_history(str(source_repo.path), "missing.txt") == []

    def test_all_commits(self, inspector, source_repo):
        commits = inspector.get_all_commits(str(source_repo.path))

        assert [c.hash for c in commits] == list(reversed(source_repo.commits))
        assert commits[0].parent_hashes == (source_repo.commits[1],)
        assert commits[-1].parent_hashes == ()
        assert inspector.get_all_commits(str(source_repo.path), max_count=2)[-1].hash == source_repo.commits[1]

    def test_not_a_repository(self, inspector, tmp_path):
        assert inspector.get_all_commits(str(tmp_path)) == []
        assert inspector.get_file_history(str(tmp_path), "README.md") == []

    def test_repository_without_commits(self, inspector, tmp_path):
        init_repo(tmp_path / "empty").close()
        assert inspector.get_all_commits(str(tmp_path / "empty")) == []


class TestContent:
    def test_content_at_commit(self, inspector, source_repo):
        path = str(source_repo.path)

        assert inspector.get_file_content_at_commit(path, "README.md", source_repo.commits[0]) == "hello\nworld\n"
        assert inspector.get_file_content_at_commit(path, "src/app.py", source_repo.commits[2]) == "print('hi')\n"

    def test_absent_path_or_unknown_commit(self, inspector, source_repo):
        path = str(source_repo.path)

        assert inspector.get_file_content_at_commit(path, "src/app.py", source_repo.commits[0]) == ""
        assert inspector.get_file_content_at_commit(path, "README.md", "0" * 40) == ""
        assert inspector.get_file_content_at_commit(path, "README.md", "not-a-ref") == ""

    def test_directory_is_not_a_file(self, inspector, source_repo):
        assert inspector.get_file_content_at_commit(str(source_repo.path), "src", source_repo.commits[2]) == ""

    def test_file_diff_between_commits(self, inspector, source_repo):
        result = inspector.get_file_diff(
            str(source_repo.path), "README.md", source_repo.commits[0], source_repo.commits[2]
        )

        assert [line.type for line in result.lines] == [
            DiffLineType.UNCHANGED, DiffLineType.ADDED, DiffLineType.UNCHANGED,
        ]
        assert result.added_lines == 1
        assert result.deleted_lines == 0


class TestStatus:
    def test_clean_tree(self, inspector, source_repo):
        assert inspector.get_status(str(source_repo.path)).is_clean

    def test_partitions(self, inspector, source_repo):
        root = source_repo.path
        repo = source_repo.repo

        (root / "README.md").write_text("changed\n")
        (root / "new.txt").write_text("new\n")
        (root / "added.txt").write_text("added\n")
        repo.index.add(["added.txt"])
        os.remove(root / "src" / "app.py")

        status = inspector.get_status(str(root))

        assert status.modified == {"README.md"}
        assert status.untracked == {"new.txt", "added.txt"}
        assert status.deleted == {"src/app.py"}
        assert status.staged == {"added.txt"}

    def test_staged_and_worktree_changes(self, inspector, source_repo):
        root = source_repo.path
        (root / "README.md").write_text("staged\n")
        source_repo.repo.index.add(["README.md"])
        (root / "README.md").write_text("staged then edited\n")

        status = inspector.get_status(str(root))

        assert status.modified == {"README.md"}
        assert status.staged == {"README.md"}
        assert status.to_dict()["modified"] == ["README.md"]

    def test_not_a_repository(self, inspector, tmp_path):
        assert inspector.get_status(str(tmp_path)).is_clean


class TestCurrentBranch:
    def test_branch_name(self, inspector, source_repo):
        assert inspector.get_current_branch(str(source_repo.path)) == "main"

        source_repo.repo.heads.feature.checkout()
        assert inspector.get_current_branch(str(source_repo.path)) == "feature"

    def test_detached_head(self, inspector, source_repo):
        source_repo.repo.git.checkout(source_repo.commits[1])
        assert inspector.get_current_branch(str(source_repo.path)) is None

    def test_not_a_repository(self, inspector, tmp_path):
        assert inspector.get_current_branch(str(tmp_path)) is None
