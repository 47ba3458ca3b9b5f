"""
gitbridge - Git integration core

Repository inspection, line-level diffs and credentialed remote operations
(clone, pull, remote branch listing) over GitPython and the system git
binary.
"""

__version__ = "1.0.0"

from .config import GitBridgeConfig
from .core.diff import DiffEngine
from .core.git_operations import RemoteOperationExecutor
from .core.models import (
    AuthType, CloneProgress, CommitRecord, Credentials, DiffLine, DiffLineType,
    DiffResult, OperationResult, RemoteBranchListing, WorkspaceStatus,
)
from .core.repository import RepositoryInspector
from .core.service import GitService

__all__ = [
    "AuthType",
    "CloneProgress",
    "CommitRecord",
    "Credentials",
    "DiffEngine",
    "DiffLine",
    "DiffLineType",
    "DiffResult",
    "GitBridgeConfig",
    "GitService",
    "OperationResult",
    "RemoteBranchListing",
    "RemoteOperationExecutor",
    "RepositoryInspector",
    "WorkspaceStatus",
]
