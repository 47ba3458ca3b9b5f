"""
Remote Git operations with GitPython and the system git binary

Clone, pull and remote branch listing. Each call resolves a credential
strategy, holds any ephemeral secret material for the whole operation and
reports a success flag with a human-readable message instead of raising.
"""

import logging
import os
import re
import shutil
import stat
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from git import Git, Repo, RemoteProgress
from git.exc import GitCommandError

from ..config import GitBridgeConfig
from .credentials import CredentialResolver, ResolvedStrategy, Strategy, redact
from .git_cli import GitCommandRunner
from .models import (
    CloneProgress, Credentials, GitBridgeError, NotARepositoryError, OperationResult,
    RemoteBranchListing, RemoteOperationError,
)
from .repository import RepositoryInspector
from .security import SecretMaterialManager


ProgressCallback = Callable[[CloneProgress], None]

HEADS_PREFIX = "refs/heads/"


class CheckoutProgress(RemoteProgress):
    """Translates GitPython checkout progress into CloneProgress events"""

    STAGE = "Checking out files"
    _UPDATING_FILES = re.compile(r"Updating files:\s+(\d+)%\s+\((\d+)/(\d+)\)")

    def __init__(self, callback: ProgressCallback):
        super().__init__()
        self.callback = callback
        self.logger = logging.getLogger(__name__)

    def update(self, op_code, cur_count, max_count=None, message=''):
        """Progress update from the clone; only checkout steps are reported"""
        if not op_code & self.CHECKING_OUT:
            return
        percentage = int(float(cur_count) / float(max_count) * 100) if max_count else 0
        self._emit(percentage, (message or "").strip(" ,"))

    def line_dropped(self, line: str):
        # newer git reports checkout as "Updating files", which GitPython drops
        match = self._UPDATING_FILES.search(line)
        if match:
            self._emit(int(match.group(1)), f"{match.group(2)}/{match.group(3)}")

    def _emit(self, percentage: int, detail: str):
        try:
            self.callback(CloneProgress(percentage=percentage, stage=self.STAGE, detail=detail))
        except Exception as e:
            self.logger.warning(f"Clone progress callback failed: {e}")


def parse_remote_heads(output: str) -> List[str]:
    """Branch names from ls-remote output, in advertisement order"""
    branches = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[-1].startswith(HEADS_PREFIX):
            branches.append(parts[-1][len(HEADS_PREFIX):])
    return branches


def _git_error_text(error: GitCommandError) -> str:
    text = (error.stderr or error.stdout or "").strip()
    if text.startswith("stderr: '"):
        text = text[len("stderr: '"):].rstrip("'").strip()
    return text or str(error)


def _failure_message(detail: str) -> str:
    """Human-readable message for git error output"""
    lowered = detail.lower()
    if "authentication failed" in lowered or "invalid username or password" in lowered:
        hint = "Authentication failed"
    elif "permission denied" in lowered:
        hint = "Permission denied"
    elif "repository not found" in lowered or "does not exist" in lowered:
        hint = "Repository not found"
    elif "could not resolve host" in lowered:
        hint = "Network error"
    else:
        hint = "Git operation failed"

    if "fatal:" in detail:
        detail = detail.split("fatal:")[-1].strip()
    return f"{hint}: {detail}"


def _make_writable_and_retry(func, path, *_):
    os.chmod(path, stat.S_IWRITE)
    func(path)


def _remove_tree(path: Path) -> None:
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_make_writable_and_retry)
    else:
        shutil.rmtree(path, onerror=_make_writable_and_retry)


class RemoteOperationExecutor:
    """Orchestrates clone, pull and remote branch listing"""

    def __init__(self, config: Optional[GitBridgeConfig] = None,
                 inspector: Optional[RepositoryInspector] = None,
                 resolver: Optional[CredentialResolver] = None,
                 secrets: Optional[SecretMaterialManager] = None,
                 runner: Optional[GitCommandRunner] = None):
        self.config = config or GitBridgeConfig()
        self.inspector = inspector or RepositoryInspector()
        self.resolver = resolver or CredentialResolver(self.config.git)
        self.secrets = secrets or SecretMaterialManager(self.config.secrets)
        self.runner = runner or GitCommandRunner(self.config.git)
        self.logger = logging.getLogger(__name__)

    def clone(self, url: str, local_path: str, branch: Optional[str] = None,
              credentials: Optional[Credentials] = None,
              progress_callback: Optional[ProgressCallback] = None) -> OperationResult:
        """Clone url into local_path

        An existing local_path is removed first. On failure the partially
        created local_path is removed as well.
        """
        if not url or not local_path:
            return OperationResult.failed("Repository URL and local path are required")

        resolved = self.resolver.resolve(credentials)
        target = Path(local_path)
        self.logger.info(
            f"Cloning repository from {redact(url)} to {target} "
            f"(branch: {branch or 'default'}, strategy: {resolved.strategy.value})"
        )

        try:
            with self._operation_environment(resolved) as env:
                self._prepare_clone_target(target)
                if resolved.uses_subprocess:
                    args = ["clone"]
                    if branch:
                        args += ["--branch", branch, "--single-branch"]
                    args += [self._remote_url(url, resolved), str(target)]
                    self._run_checked(args, cwd=str(target.parent), env=env)
                else:
                    self._clone_native(url, target, branch, env, progress_callback)
        except Exception as e:
            message = redact(self._describe_failure(e, "Clone failed"), resolved.credentials.secrets)
            self.logger.error(f"Clone of {redact(url)} failed: {message}")
            self._discard_partial_clone(target)
            return OperationResult.failed(message)

        self.logger.info(f"Repository cloned successfully to {target}")
        return OperationResult.succeeded()

    def pull(self, local_path: str, credentials: Optional[Credentials] = None) -> OperationResult:
        """Pull the tracked upstream into the repository at local_path"""
        resolved = self.resolver.resolve(credentials)

        try:
            if not self.inspector.is_repository(local_path):
                raise NotARepositoryError(f"Path is not a valid Git repository: {local_path}")
            self.logger.info(f"Pulling changes in {local_path} (strategy: {resolved.strategy.value})")
            with self._operation_environment(resolved) as env:
                env.update(self._identity_environment())
                if resolved.uses_subprocess:
                    self._run_checked(["pull"], cwd=local_path, env=env)
                else:
                    with Repo(local_path) as repo:
                        origin = repo.remote()
                        with repo.git.custom_environment(**env):
                            origin.pull()
        except Exception as e:
            message = redact(self._describe_failure(e, "Pull failed"), resolved.credentials.secrets)
            self.logger.error(f"Pull in {local_path} failed: {message}")
            return OperationResult.failed(message)

        self.logger.info(f"Changes pulled successfully in {local_path}")
        return OperationResult.succeeded()

    def list_remote_branches(self, url: str,
                             credentials: Optional[Credentials] = None) -> RemoteBranchListing:
        """Branch names advertised under refs/heads/ by the remote"""
        if not url:
            return RemoteBranchListing(error="Repository URL is required")

        resolved = self.resolver.resolve(credentials, native_token_callback=False)
        self.logger.info(f"Listing remote branches of {redact(url)} (strategy: {resolved.strategy.value})")

        try:
            with self._operation_environment(resolved) as env:
                if resolved.uses_subprocess:
                    result = self._run_checked(
                        ["ls-remote", "--heads", self._remote_url(url, resolved)], env=env
                    )
                    output = result.stdout
                else:
                    output = Git().ls_remote("--heads", url, env=env)
        except Exception as e:
            message = redact(self._describe_failure(e, "Failed to list branches"),
                             resolved.credentials.secrets)
            self.logger.error(f"Listing branches of {redact(url)} failed: {message}")
            return RemoteBranchListing(error=message)

        branches = parse_remote_heads(output)
        self.logger.info(f"Found {len(branches)} remote branches")
        return RemoteBranchListing(branches=tuple(branches))

    def get_current_branch(self, local_path: str) -> Optional[str]:
        return self.inspector.get_current_branch(local_path)

    @contextmanager
    def _operation_environment(self, resolved: ResolvedStrategy) -> Iterator[Dict[str, str]]:
        """Environment for one operation; secret files live until the scope exits"""
        if resolved.strategy is Strategy.SUBPROCESS_SSH_KEY:
            creds = resolved.credentials
            with self.secrets.ssh_material(creds.ssh_private_key, creds.ssh_passphrase) as material:
                yield self.resolver.ssh_environment(material.key_path, material.askpass_path)
        else:
            yield resolved.native_environment()

    def _remote_url(self, url: str, resolved: ResolvedStrategy) -> str:
        if resolved.strategy is Strategy.SUBPROCESS_TOKEN_URL:
            return self.resolver.embed_credentials(url, resolved.username, resolved.credentials.https_token)
        return url

    def _identity_environment(self) -> Dict[str, str]:
        identity = self.config.identity
        return {
            "GIT_AUTHOR_NAME": identity.name,
            "GIT_AUTHOR_EMAIL": identity.email,
            "GIT_COMMITTER_NAME": identity.name,
            "GIT_COMMITTER_EMAIL": identity.email,
        }

    def _run_checked(self, args: List[str], cwd: Optional[str] = None,
                     env: Optional[Dict[str, str]] = None):
        result = self.runner.run(args, cwd=cwd, env=env)
        if not result.ok:
            raise RemoteOperationError(_failure_message(result.stderr.strip() or result.output))
        return result

    def _clone_native(self, url: str, target: Path, branch: Optional[str],
                      env: Dict[str, str], progress_callback: Optional[ProgressCallback]):
        options = {"branch": branch} if branch else {}
        progress = CheckoutProgress(progress_callback) if progress_callback else None
        repo = Repo.clone_from(url, str(target), progress=progress, env=env, **options)
        repo.close()

    def _prepare_clone_target(self, target: Path):
        if target.is_dir() and not target.is_symlink():
            self.logger.warning(f"Removing existing directory before clone: {target}")
            _remove_tree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        target.parent.mkdir(parents=True, exist_ok=True)

    def _discard_partial_clone(self, target: Path):
        try:
            if target.is_dir():
                _remove_tree(target)
        except OSError as e:
            self.logger.warning(f"Failed to remove partial clone at {target}: {e}")

    def _describe_failure(self, error: Exception, prefix: str) -> str:
        if isinstance(error, GitBridgeError):
            return str(error)
        if isinstance(error, GitCommandError):
            return _failure_message(_git_error_text(error))
        if isinstance(error, (OSError, ValueError)):
            return f"{prefix}: {error}"
        self.logger.exception(f"Unexpected error: {error}")
        return f"{prefix}: {error}"
