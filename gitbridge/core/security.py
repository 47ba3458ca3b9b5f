"""
Ephemeral secret material for Git remote operations

Private keys and ask-pass helpers are written to per-user temp directories,
restricted to the current user, and deleted when the operation that created
them finishes.
"""

import base64
import getpass
import logging
import os
import stat
import subprocess
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization

from ..config import SecretsConfig
from .models import SecretLifecycleError, SshMaterial


IS_WINDOWS = os.name == "nt"


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return str(os.getuid()) if hasattr(os, "getuid") else "user"


def key_fingerprint(content: str, passphrase: Optional[str] = None) -> Optional[str]:
    """SHA256 fingerprint of a private key in OpenSSH notation, or None"""
    data = content.encode()
    passwords = [passphrase.encode(), None] if passphrase else [None]
    loader = (serialization.load_ssh_private_key
              if b"BEGIN OPENSSH PRIVATE KEY" in data
              else serialization.load_pem_private_key)

    for password in passwords:
        try:
            private_key = loader(data, password=password)
            public_blob = private_key.public_key().public_bytes(
                serialization.Encoding.OpenSSH,
                serialization.PublicFormat.OpenSSH,
            )
            digest = hashes.Hash(hashes.SHA256())
            digest.update(base64.b64decode(public_blob.split()[1]))
            return "SHA256:" + base64.b64encode(digest.finalize()).decode().rstrip("=")
        except (ValueError, TypeError, IndexError, UnsupportedAlgorithm):
            continue
    return None


class SecretMaterialManager:
    """Creates and destroys ephemeral key and ask-pass files"""

    def __init__(self, config: Optional[SecretsConfig] = None):
        self.config = config or SecretsConfig()
        self.logger = logging.getLogger(__name__)
        user = _current_user()
        self.key_dir = Path(self.config.temp_root) / f"{self.config.key_dir_prefix}-{user}"
        self.askpass_dir = Path(self.config.temp_root) / f"{self.config.askpass_dir_prefix}-{user}"

    def create_ephemeral_key(self, content: str, passphrase: Optional[str] = None) -> str:
        """Write private key material to a uniquely named, owner-only file"""
        normalized = content.replace("\r\n", "\n").replace("\r", "\n")
        if not normalized.endswith("\n"):
            normalized += "\n"

        key_path = self._ensure_dir(self.key_dir) / f"id_{uuid.uuid4().hex}"
        try:
            self._write_exclusive(key_path, normalized, 0o600)
        except OSError as e:
            self.cleanup(str(key_path))
            raise SecretLifecycleError(f"Failed to create SSH key file: {e}") from e

        self._restrict_access(key_path, 0o600)

        fingerprint = key_fingerprint(normalized, passphrase)
        if fingerprint:
            self.logger.debug(f"Created temporary SSH key {key_path.name} ({fingerprint})")
        else:
            self.logger.warning(
                f"SSH key material for {key_path.name} could not be inspected locally; "
                f"passing it to ssh unchanged"
            )
        return str(key_path)

    def create_askpass_helper(self, passphrase: Optional[str]) -> Optional[str]:
        """Write a helper that prints the passphrase when ssh asks for it"""
        if not passphrase:
            return None

        helper_dir = self._ensure_dir(self.askpass_dir)
        if IS_WINDOWS:
            helper_path = helper_dir / f"askpass_{uuid.uuid4().hex}.cmd"
            value = passphrase.replace("%", "%%")
            script = f'@echo off\r\nset "P={value}"\r\necho %P%\r\n'
        else:
            helper_path = helper_dir / f"askpass_{uuid.uuid4().hex}.sh"
            escaped = passphrase.replace("'", "'\"'\"'")
            script = f"#!/bin/sh\nprintf '%s\\n' '{escaped}'\n"

        try:
            self._write_exclusive(helper_path, script, 0o700)
        except OSError as e:
            self.cleanup(str(helper_path))
            raise SecretLifecycleError(f"Failed to create ask-pass helper: {e}") from e

        self._restrict_access(helper_path, 0o700)
        self.logger.debug(f"Created temporary ask-pass helper {helper_path.name}")
        return str(helper_path)

    def cleanup(self, path: Optional[str]) -> None:
        """Delete an ephemeral file; never raises"""
        if not path:
            return
        try:
            target = Path(path)
            if target.exists():
                target.unlink()
                self.logger.debug(f"Removed temporary secret file {target.name}")
        except OSError as e:
            self.logger.warning(f"Failed to remove temporary secret file {path}: {e}")

    @contextmanager
    def ssh_material(self, private_key: str,
                     passphrase: Optional[str] = None) -> Iterator[SshMaterial]:
        """Key and ask-pass files scoped to one operation"""
        created: List[str] = []
        try:
            key_path = self.create_ephemeral_key(private_key, passphrase)
            created.append(key_path)
            askpass_path = self.create_askpass_helper(passphrase)
            if askpass_path:
                created.append(askpass_path)
            yield SshMaterial(key_path=key_path, askpass_path=askpass_path)
        finally:
            for path in created:
                self.cleanup(path)

    def _ensure_dir(self, directory: Path) -> Path:
        try:
            directory.mkdir(parents=True, exist_ok=True, mode=0o700)
        except OSError as e:
            raise SecretLifecycleError(f"Failed to create secret directory {directory}: {e}") from e
        if not IS_WINDOWS:
            self._verify_private_dir(directory)
        return directory

    @staticmethod
    def _verify_private_dir(directory: Path) -> None:
        """Refuse a pre-existing directory another user could read or swap"""
        try:
            info = os.lstat(directory)
        except OSError as e:
            raise SecretLifecycleError(f"Cannot inspect secret directory {directory}: {e}") from e
        if not stat.S_ISDIR(info.st_mode):
            raise SecretLifecycleError(f"Secret directory {directory} is not a plain directory")
        if info.st_uid != os.getuid():
            raise SecretLifecycleError(f"Secret directory {directory} is owned by uid {info.st_uid}")
        if stat.S_IMODE(info.st_mode) & 0o077:
            raise SecretLifecycleError(
                f"Secret directory {directory} is accessible to other users "
                f"(mode {stat.S_IMODE(info.st_mode):o})"
            )

    @staticmethod
    def _write_exclusive(path: Path, content: str, mode: int) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def _restrict_access(self, path: Path, mode: int) -> None:
        """Limit access to the current user only"""
        if IS_WINDOWS:
            user = _current_user()
            domain = os.environ.get("USERDOMAIN")
            principal = f"{domain}\\{user}" if domain else user
            try:
                result = subprocess.run(
                    ["icacls", str(path), "/inheritance:r", "/grant:r", f"{principal}:F"],
                    capture_output=True,
                    text=True,
                )
            except OSError as e:
                self.logger.warning(f"Failed to restrict access to {path.name}: {e}")
                return
            if result.returncode != 0:
                self.logger.warning(
                    f"Failed to restrict access to {path.name}: {result.stderr.strip() or result.stdout.strip()}"
                )
            return

        try:
            os.chmod(path, mode)
        except OSError as e:
            self.logger.warning(f"Failed to set permissions on {path.name}: {e}")
