"""
Configuration for gitbridge

Settings for ephemeral secret storage, merge identity, the git executable
and logging. Every value can be overridden through GITBRIDGE_* environment
variables.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SecretsConfig:
    """Where ephemeral key and ask-pass files live"""
    temp_root: str = field(default_factory=tempfile.gettempdir)
    key_dir_prefix: str = "gitbridge-ssh-keys"
    askpass_dir_prefix: str = "gitbridge-ssh-askpass"

    def __post_init__(self):
        if not self.key_dir_prefix or not self.askpass_dir_prefix:
            raise ValueError("Secret directory prefixes cannot be empty")


@dataclass
class IdentityConfig:
    """Signature used for merge commits created by pull"""
    name: str = "GitBridge"
    email: str = "gitbridge@local"


@dataclass
class GitConfig:
    """Git executable and remote access settings"""
    executable: str = "git"
    default_https_username: str = "x-access-token"
    command_timeout_seconds: Optional[float] = None  # None blocks until git exits
    strict_host_key_checking: bool = False

    def __post_init__(self):
        if self.command_timeout_seconds is not None and self.command_timeout_seconds <= 0:
            raise ValueError("Command timeout must be positive")


@dataclass
class LoggingConfig:
    """Configuration for logging"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None


@dataclass
class GitBridgeConfig:
    """Main configuration"""
    secrets: SecretsConfig = field(default_factory=SecretsConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    git: GitConfig = field(default_factory=GitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> 'GitBridgeConfig':
        """Create configuration from environment variables"""
        config = cls()

        temp_root_env = os.getenv("GITBRIDGE_TEMP_ROOT")
        if temp_root_env:
            config.secrets.temp_root = temp_root_env

        identity_name_env = os.getenv("GITBRIDGE_IDENTITY_NAME")
        if identity_name_env:
            config.identity.name = identity_name_env

        identity_email_env = os.getenv("GITBRIDGE_IDENTITY_EMAIL")
        if identity_email_env:
            config.identity.email = identity_email_env

        executable_env = os.getenv("GITBRIDGE_GIT_EXECUTABLE")
        if executable_env:
            config.git.executable = executable_env

        username_env = os.getenv("GITBRIDGE_DEFAULT_HTTPS_USERNAME")
        if username_env:
            config.git.default_https_username = username_env

        timeout_env = os.getenv("GITBRIDGE_COMMAND_TIMEOUT")
        if timeout_env:
            config.git.command_timeout_seconds = float(timeout_env)

        strict_env = os.getenv("GITBRIDGE_STRICT_HOST_KEY_CHECKING")
        if strict_env:
            config.git.strict_host_key_checking = strict_env.lower() == "true"

        level_env = os.getenv("GITBRIDGE_LOG_LEVEL")
        if level_env:
            config.logging.level = level_env.upper()

        log_file_env = os.getenv("GITBRIDGE_LOG_FILE")
        if log_file_env:
            config.logging.file_path = log_file_env

        return config


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure root logging from a LoggingConfig"""
    config = config or LoggingConfig()
    handlers = [logging.StreamHandler()]
    if config.file_path:
        handlers.append(logging.FileHandler(config.file_path))

    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=config.format,
        handlers=handlers,
    )
