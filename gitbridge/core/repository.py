"""
Read-only repository inspection with GitPython

Probe, commit history, blob content at a commit, working-tree status and
current branch. Nothing here raises past the boundary: failures are logged
and an empty result is returned.
"""

import logging
import stat
from typing import List, Optional, Set

from git import Commit, Repo
from git.exc import BadName, BadObject, InvalidGitRepositoryError, NoSuchPathError

from .diff import DiffEngine
from .models import CommitRecord, DiffResult, WorkspaceStatus


def _normalize_path(file_path: str) -> str:
    return file_path.replace("\\", "/").lstrip("/")


def _is_unmerged(index_code: str, worktree_code: str) -> bool:
    return "U" in (index_code, worktree_code) or (index_code == worktree_code and index_code in ("A", "D"))


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value or ""


def commit_record(commit: Commit) -> CommitRecord:
    """Snapshot a GitPython commit"""
    return CommitRecord(
        hash=commit.hexsha,
        short_hash=commit.hexsha[:7],
        author_name=commit.author.name or "",
        author_email=commit.author.email or "",
        timestamp=commit.authored_datetime,
        message=_text(commit.summary),
        parent_hashes=tuple(parent.hexsha for parent in commit.parents),
    )


class RepositoryInspector:
    """Repository probe plus history, content and status readers"""

    def __init__(self, diff_engine: Optional[DiffEngine] = None):
        self.logger = logging.getLogger(__name__)
        self.diff_engine = diff_engine or DiffEngine()

    def is_repository(self, path: str) -> bool:
        """True only for a work tree root or bare repository with valid metadata"""
        if not path:
            return False
        try:
            with Repo(path):
                return True
        except (InvalidGitRepositoryError, NoSuchPathError):
            return False
        except Exception as e:
            self.logger.debug(f"Repository check failed for {path}: {e}")
            return False

    def get_file_history(self, path: str, file_path: str, max_count: int = 50) -> List[CommitRecord]:
        """Commits touching file_path, newest first"""
        if max_count <= 0 or not self.is_repository(path):
            return []
        try:
            with Repo(path) as repo:
                return [
                    commit_record(commit)
                    for commit in repo.iter_commits(paths=_normalize_path(file_path), max_count=max_count)
                ]
        except Exception as e:
            self.logger.error(f"Failed to read history of {file_path} in {path}: {e}")
            return []

    def get_all_commits(self, path: str, max_count: int = 100) -> List[CommitRecord]:
        """Commits reachable from HEAD, newest first"""
        if max_count <= 0 or not self.is_repository(path):
            return []
        try:
            with Repo(path) as repo:
                return [commit_record(commit) for commit in repo.iter_commits(max_count=max_count)]
        except Exception as e:
            self.logger.error(f"Failed to read commits in {path}: {e}")
            return []

    def get_file_content_at_commit(self, path: str, file_path: str, commit_hash: str) -> str:
        """Text of file_path at commit_hash, or empty string"""
        if not commit_hash or not self.is_repository(path):
            return ""
        try:
            with Repo(path) as repo:
                commit = repo.commit(commit_hash)
                entry = commit.tree / _normalize_path(file_path)
                if entry.type != "blob" or stat.S_ISLNK(entry.mode):
                    return ""
                return entry.data_stream.read().decode("utf-8", errors="replace")
        except (BadName, BadObject, KeyError, ValueError) as e:
            self.logger.debug(f"No blob for {file_path} at {commit_hash}: {e}")
            return ""
        except Exception as e:
            self.logger.error(f"Failed to read {file_path} at {commit_hash}: {e}")
            return ""

    def get_file_diff(self, path: str, file_path: str, from_commit: str, to_commit: str) -> DiffResult:
        """Diff of file_path between two commits"""
        old_content = self.get_file_content_at_commit(path, file_path, from_commit)
        new_content = self.get_file_content_at_commit(path, file_path, to_commit)
        return self.diff_engine.compute_diff(old_content, new_content)

    def get_status(self, path: str) -> WorkspaceStatus:
        """Working tree status in one pass over porcelain output"""
        if not self.is_repository(path):
            return WorkspaceStatus()

        modified: Set[str] = set()
        untracked: Set[str] = set()
        deleted: Set[str] = set()
        staged: Set[str] = set()

        try:
            with Repo(path) as repo:
                output = repo.git.status("--porcelain=v1", "-z", "--no-renames", "--untracked-files=all")
        except Exception as e:
            self.logger.error(f"Failed to read status of {path}: {e}")
            return WorkspaceStatus()

        for entry in output.split("\0"):
            if len(entry) < 4:
                continue
            index_code, worktree_code, file_path = entry[0], entry[1], entry[3:]

            if index_code == "?" and worktree_code == "?":
                untracked.add(file_path)
                continue
            if index_code == "!" or _is_unmerged(index_code, worktree_code):
                continue

            if "M" in (index_code, worktree_code):
                modified.add(file_path)
            if index_code == "A":
                untracked.add(file_path)
            if "D" in (index_code, worktree_code):
                deleted.add(file_path)
            if index_code in ("A", "M", "D"):
                staged.add(file_path)

        return WorkspaceStatus(
            modified=frozenset(modified),
            untracked=frozenset(untracked),
            deleted=frozenset(deleted),
            staged=frozenset(staged),
        )

    def get_current_branch(self, path: str) -> Optional[str]:
        """Checked-out branch name; None when detached or not a repository"""
        if not self.is_repository(path):
            return None
        try:
            with Repo(path) as repo:
                if repo.head.is_detached:
                    return None
                return repo.active_branch.name
        except (TypeError, ValueError) as e:
            self.logger.debug(f"No current branch for {path}: {e}")
            return None
        except Exception as e:
            self.logger.error(f"Failed to get current branch of {path}: {e}")
            return None
