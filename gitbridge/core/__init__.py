"""
Core components of gitbridge
"""

from .credentials import CredentialResolver, Strategy, select_strategy
from .diff import DiffEngine
from .git_operations import RemoteOperationExecutor
from .repository import RepositoryInspector
from .security import SecretMaterialManager
from .service import GitService

__all__ = [
    "CredentialResolver",
    "DiffEngine",
    "GitService",
    "RemoteOperationExecutor",
    "RepositoryInspector",
    "SecretMaterialManager",
    "Strategy",
    "select_strategy",
]
