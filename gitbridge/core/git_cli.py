"""
Subprocess boundary to the system git binary
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..config import GitConfig


@dataclass(frozen=True)
class CommandResult:
    """Exit code and drained output of one git invocation"""
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class GitCommandRunner:
    """Runs git with an explicit argument vector and environment"""

    def __init__(self, config: Optional[GitConfig] = None):
        self.config = config or GitConfig()
        self.logger = logging.getLogger(__name__)

    def run(self, args: List[str], cwd: Optional[str] = None,
            env: Optional[Dict[str, str]] = None) -> CommandResult:
        """Run git synchronously; output is fully drained before returning"""
        process_env = dict(os.environ)
        process_env["GIT_TERMINAL_PROMPT"] = "0"
        if env:
            process_env.update(env)

        try:
            completed = subprocess.run(
                [self.config.executable, *args],
                cwd=cwd,
                env=process_env,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.config.command_timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(-1, "", f"git {args[0]} timed out after "
                                         f"{self.config.command_timeout_seconds}s")
        except OSError as e:
            return CommandResult(-1, "", f"Unable to start git: {e}")

        self.logger.debug(f"git {args[0]} exited with {completed.returncode}")
        return CommandResult(completed.returncode, completed.stdout or "", completed.stderr or "")
