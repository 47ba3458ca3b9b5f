"""
Async Git service

Every core call blocks, so each one runs on a worker thread. Calls that
target the same local path are not serialized here; callers coordinate.
"""

import asyncio
import logging
from typing import List, Optional

from ..config import GitBridgeConfig
from .diff import DiffEngine
from .git_operations import ProgressCallback, RemoteOperationExecutor
from .models import (
    CommitRecord, Credentials, DiffResult, OperationResult, RemoteBranchListing, WorkspaceStatus,
)
from .repository import RepositoryInspector


class GitService:
    """Async facade over inspection, diff and remote operations"""

    def __init__(self, config: Optional[GitBridgeConfig] = None,
                 executor: Optional[RemoteOperationExecutor] = None):
        self.config = config or GitBridgeConfig()
        self.diff_engine = DiffEngine()
        self.inspector = RepositoryInspector(self.diff_engine)
        self.executor = executor or RemoteOperationExecutor(self.config, inspector=self.inspector)
        self.logger = logging.getLogger(__name__)

    async def is_repository(self, path: str) -> bool:
        return await asyncio.to_thread(self.inspector.is_repository, path)

    async def get_file_history(self, path: str, file_path: str, max_count: int = 50) -> List[CommitRecord]:
        return await asyncio.to_thread(self.inspector.get_file_history, path, file_path, max_count)

    async def get_all_commits(self, path: str, max_count: int = 100) -> List[CommitRecord]:
        return await asyncio.to_thread(self.inspector.get_all_commits, path, max_count)

    async def get_file_content_at_commit(self, path: str, file_path: str, commit_hash: str) -> str:
        return await asyncio.to_thread(self.inspector.get_file_content_at_commit, path, file_path, commit_hash)

    async def get_file_diff(self, path: str, file_path: str,
                            from_commit: str, to_commit: str) -> DiffResult:
        return await asyncio.to_thread(self.inspector.get_file_diff, path, file_path, from_commit, to_commit)

    async def compute_diff(self, old_content: str, new_content: str) -> DiffResult:
        return await asyncio.to_thread(self.diff_engine.compute_diff, old_content, new_content)

    async def get_status(self, path: str) -> WorkspaceStatus:
        return await asyncio.to_thread(self.inspector.get_status, path)

    async def get_current_branch(self, path: str) -> Optional[str]:
        return await asyncio.to_thread(self.inspector.get_current_branch, path)

    async def clone(self, url: str, local_path: str, branch: Optional[str] = None,
                    credentials: Optional[Credentials] = None,
                    progress_callback: Optional[ProgressCallback] = None) -> OperationResult:
        """Clone on a worker thread; progress_callback is invoked from that thread"""
        return await asyncio.to_thread(
            self.executor.clone, url, local_path, branch, credentials, progress_callback
        )

    async def pull(self, local_path: str, credentials: Optional[Credentials] = None) -> OperationResult:
        return await asyncio.to_thread(self.executor.pull, local_path, credentials)

    async def list_remote_branches(self, url: str,
                                   credentials: Optional[Credentials] = None) -> RemoteBranchListing:
        return await asyncio.to_thread(self.executor.list_remote_branches, url, credentials)
