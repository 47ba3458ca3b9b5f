"""
Data models and error types for Git integration

Value snapshots returned by the readers, the diff engine and the remote
operation executor. Snapshots are created per call and never mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple


class AuthType(Enum):
    """Declared authentication strategy for a remote"""
    NONE = "none"
    SSH = "ssh"
    HTTPS = "https"


class DiffLineType(Enum):
    """Classification of a line in a diff"""
    UNCHANGED = "unchanged"
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"


@dataclass(frozen=True)
class CommitRecord:
    """Immutable snapshot of one commit"""
    hash: str
    short_hash: str
    author_name: str
    author_email: str
    timestamp: datetime
    message: str
    parent_hashes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "short_hash": self.short_hash,
            "author_name": self.author_name,
            "author_email": self.author_email,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "parent_hashes": list(self.parent_hashes),
        }


@dataclass(frozen=True)
class DiffLine:
    """One line of a computed diff"""
    type: DiffLineType
    content: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None
    old_content: Optional[str] = None  # replaced text, MODIFIED only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "content": self.content,
            "old_line_number": self.old_line_number,
            "new_line_number": self.new_line_number,
            "old_content": self.old_content,
        }


@dataclass(frozen=True)
class DiffResult:
    """Line-level diff between two text snapshots"""
    old_content: str = ""
    new_content: str = ""
    lines: Tuple[DiffLine, ...] = ()
    added_lines: int = 0
    deleted_lines: int = 0

    @property
    def unchanged_lines(self) -> int:
        return sum(1 for line in self.lines if line.type is DiffLineType.UNCHANGED)

    @property
    def modified_lines(self) -> int:
        return sum(1 for line in self.lines if line.type is DiffLineType.MODIFIED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_content": self.old_content,
            "new_content": self.new_content,
            "lines": [line.to_dict() for line in self.lines],
            "added_lines": self.added_lines,
            "deleted_lines": self.deleted_lines,
            "unchanged_lines": self.unchanged_lines,
            "modified_lines": self.modified_lines,
        }


@dataclass(frozen=True)
class WorkspaceStatus:
    """Working tree status partitioned into four non-exclusive sets"""
    modified: FrozenSet[str] = frozenset()
    untracked: FrozenSet[str] = frozenset()
    deleted: FrozenSet[str] = frozenset()
    staged: FrozenSet[str] = frozenset()

    @property
    def is_clean(self) -> bool:
        return not (self.modified or self.untracked or self.deleted or self.staged)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "modified": sorted(self.modified),
            "untracked": sorted(self.untracked),
            "deleted": sorted(self.deleted),
            "staged": sorted(self.staged),
        }


@dataclass
class Credentials:
    """Credentials for a remote operation

    ssh carries private key material and an optional passphrase, https
    carries a username and token. Secret fields are kept out of repr().
    """
    auth_type: AuthType = AuthType.NONE
    ssh_private_key: Optional[str] = field(default=None, repr=False)
    ssh_passphrase: Optional[str] = field(default=None, repr=False)
    https_username: Optional[str] = None
    https_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if isinstance(self.auth_type, str):
            self.auth_type = AuthType(self.auth_type.strip().lower() or "none")

    @classmethod
    def anonymous(cls) -> 'Credentials':
        return cls(AuthType.NONE)

    @classmethod
    def ssh(cls, private_key: str, passphrase: Optional[str] = None) -> 'Credentials':
        return cls(AuthType.SSH, ssh_private_key=private_key, ssh_passphrase=passphrase)

    @classmethod
    def https(cls, token: str, username: Optional[str] = None) -> 'Credentials':
        return cls(AuthType.HTTPS, https_username=username, https_token=token)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Credentials':
        """Build credentials from loosely typed input (API payloads, settings)"""
        if not data:
            return cls.anonymous()
        return cls(
            auth_type=data.get("auth_type") or "none",
            ssh_private_key=data.get("ssh_private_key"),
            ssh_passphrase=data.get("ssh_passphrase"),
            https_username=data.get("https_username"),
            https_token=data.get("https_token"),
        )

    @property
    def secrets(self) -> List[str]:
        """Secret values that must never appear in messages or logs"""
        return [s for s in (self.https_token, self.ssh_passphrase) if s]


@dataclass(frozen=True)
class CloneProgress:
    """Checkout progress reported during a clone"""
    percentage: int
    stage: str
    detail: str = ""

    def __post_init__(self):
        object.__setattr__(self, "percentage", max(0, min(100, int(self.percentage))))


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a mutating remote operation

    Unpacks as ``(success, message)``.
    """
    success: bool
    message: Optional[str] = None

    @classmethod
    def succeeded(cls, message: Optional[str] = None) -> 'OperationResult':
        return cls(True, message)

    @classmethod
    def failed(cls, message: str) -> 'OperationResult':
        return cls(False, message)

    def __iter__(self) -> Iterator[Any]:
        return iter((self.success, self.message))

    def __bool__(self) -> bool:
        return self.success


@dataclass(frozen=True)
class RemoteBranchListing:
    """Branch names advertised by a remote, in advertisement order"""
    branches: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SshMaterial:
    """Ephemeral files backing one SSH operation"""
    key_path: str
    askpass_path: Optional[str] = None


class GitBridgeError(Exception):
    """Base exception for Git integration"""
    pass


class NotARepositoryError(GitBridgeError):
    """Raised when a path does not hold a valid repository"""
    pass


class RemoteOperationError(GitBridgeError):
    """Raised when a remote operation fails (auth, network, git exit code)"""
    pass


class SecretLifecycleError(GitBridgeError):
    """Raised when ephemeral secret material cannot be created"""
    pass


class DiffComputationError(GitBridgeError):
    """Raised when diff input cannot be treated as text"""
    pass
