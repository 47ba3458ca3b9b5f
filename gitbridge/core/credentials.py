"""
Credential resolution for remote operations

Maps declared credentials to one of a closed set of execution strategies:
the native GitPython engine with an environment-scoped credential callback,
or the system git binary with a credential-embedded URL or an SSH command
pointing at an ephemeral key.
"""

import logging
import re
import urllib.parse
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

from ..config import GitConfig
from .models import AuthType, Credentials


class Strategy(Enum):
    """How a remote operation reaches the remote"""
    NATIVE_ANONYMOUS = "native_anonymous"
    NATIVE_TOKEN_CALLBACK = "native_token_callback"
    NATIVE_SSH_AGENT = "native_ssh_agent"
    SUBPROCESS_TOKEN_URL = "subprocess_token_url"
    SUBPROCESS_SSH_KEY = "subprocess_ssh_key"

    @property
    def uses_subprocess(self) -> bool:
        return self in (Strategy.SUBPROCESS_TOKEN_URL, Strategy.SUBPROCESS_SSH_KEY)


def select_strategy(auth_type: AuthType, has_secret: bool,
                    native_token_callback: bool = True) -> Strategy:
    """Pick the strategy for an auth type and the caller's native capability

    The native engine cannot consume a key file, so an ssh key always goes
    through the subprocess path.
    """
    if auth_type is AuthType.SSH:
        return Strategy.SUBPROCESS_SSH_KEY if has_secret else Strategy.NATIVE_SSH_AGENT
    if auth_type is AuthType.HTTPS and has_secret:
        if native_token_callback:
            return Strategy.NATIVE_TOKEN_CALLBACK
        return Strategy.SUBPROCESS_TOKEN_URL
    return Strategy.NATIVE_ANONYMOUS


class TokenCredentialCallback:
    """Answers git credential requests with a username and token

    The helper list is configured through GIT_CONFIG_* variables of the
    child process only. The first entry clears inherited helpers; the
    second reads the credential from the same environment.
    """

    USERNAME_VAR = "GITBRIDGE_HTTPS_USERNAME"
    TOKEN_VAR = "GITBRIDGE_HTTPS_TOKEN"
    HELPER = (
        '!f() { test "$1" = get || exit 0; '
        'echo "username=${GITBRIDGE_HTTPS_USERNAME}"; '
        'echo "password=${GITBRIDGE_HTTPS_TOKEN}"; }; f'
    )

    def __init__(self, username: str, token: str):
        self.username = username
        self.token = token

    def environment(self) -> Dict[str, str]:
        return {
            "GIT_CONFIG_COUNT": "2",
            "GIT_CONFIG_KEY_0": "credential.helper",
            "GIT_CONFIG_VALUE_0": "",
            "GIT_CONFIG_KEY_1": "credential.helper",
            "GIT_CONFIG_VALUE_1": self.HELPER,
            self.USERNAME_VAR: self.username,
            self.TOKEN_VAR: self.token,
        }

    def __repr__(self):
        return f"TokenCredentialCallback(username={self.username!r})"


@dataclass(frozen=True)
class ResolvedStrategy:
    """Strategy plus the credential data it needs"""
    strategy: Strategy
    credentials: Credentials
    username: Optional[str] = None

    @property
    def uses_subprocess(self) -> bool:
        return self.strategy.uses_subprocess

    def native_environment(self) -> Dict[str, str]:
        """Environment for the native engine"""
        env = {"GIT_TERMINAL_PROMPT": "0"}
        if self.strategy is Strategy.NATIVE_TOKEN_CALLBACK:
            env.update(TokenCredentialCallback(self.username, self.credentials.https_token).environment())
        return env


_URL_USERINFO = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")


def redact(text: Optional[str], secrets: Iterable[str] = ()) -> str:
    """Remove secrets and URL userinfo from a message"""
    if not text:
        return ""
    for secret in secrets:
        if not secret:
            continue
        text = text.replace(secret, "***")
        quoted = urllib.parse.quote(secret, safe="")
        if quoted != secret:
            text = text.replace(quoted, "***")
    return _URL_USERINFO.sub(r"\g<scheme>***@", text)


class CredentialResolver:
    """Maps credentials and execution context to a strategy"""

    def __init__(self, config: Optional[GitConfig] = None):
        self.config = config or GitConfig()
        self.logger = logging.getLogger(__name__)

    def resolve(self, credentials: Optional[Credentials] = None,
                native_token_callback: bool = True) -> ResolvedStrategy:
        credentials = credentials or Credentials.anonymous()

        if credentials.auth_type is AuthType.SSH:
            has_secret = bool(credentials.ssh_private_key and credentials.ssh_private_key.strip())
        elif credentials.auth_type is AuthType.HTTPS:
            has_secret = bool(credentials.https_token and credentials.https_token.strip())
        else:
            has_secret = False

        strategy = select_strategy(credentials.auth_type, has_secret, native_token_callback)
        username = None
        if strategy in (Strategy.NATIVE_TOKEN_CALLBACK, Strategy.SUBPROCESS_TOKEN_URL):
            username = (credentials.https_username or "").strip() or self.config.default_https_username
        if strategy is Strategy.NATIVE_SSH_AGENT:
            self.logger.info("SSH authentication relies on the system SSH agent")

        return ResolvedStrategy(strategy=strategy, credentials=credentials, username=username)

    def embed_credentials(self, url: str, username: Optional[str], token: str) -> str:
        """URL with escaped username and token as userinfo"""
        user = (username or "").strip() or self.config.default_https_username
        escaped_user = urllib.parse.quote(user, safe="")
        escaped_token = urllib.parse.quote(token, safe="")
        try:
            parts = urllib.parse.urlsplit(url)
            if not parts.scheme or not parts.hostname:
                raise ValueError(f"Not an absolute URL: {redact(url)}")
            host = parts.hostname
            if ":" in host:
                host = f"[{host}]"
            if parts.port:
                host = f"{host}:{parts.port}"
            netloc = f"{escaped_user}:{escaped_token}@{host}"
            return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
        except ValueError as e:
            self.logger.warning(f"Falling back to plain credential substitution: {e}")
            return url.replace("https://", f"https://{escaped_user}:{escaped_token}@", 1)

    def ssh_environment(self, key_path: str, askpass_path: Optional[str] = None) -> Dict[str, str]:
        """Environment that makes git use an explicit key and ask-pass helper"""
        escaped_path = key_path.replace("\\", "/").replace('"', '\\"')
        host_key_checking = "yes" if self.config.strict_host_key_checking else "no"
        ssh_command = f'ssh -i "{escaped_path}" -o IdentitiesOnly=yes -o StrictHostKeyChecking={host_key_checking}'
        if not self.config.strict_host_key_checking:
            ssh_command += " -o UserKnownHostsFile=/dev/null"

        env = {
            "GIT_SSH_COMMAND": ssh_command,
            "GIT_TERMINAL_PROMPT": "0",
            "GIT_SSH_VARIANT": "ssh",
        }
        if askpass_path:
            env.update({
                "SSH_ASKPASS": askpass_path,
                "SSH_ASKPASS_REQUIRE": "force",
                "DISPLAY": "1",
            })
        return env
