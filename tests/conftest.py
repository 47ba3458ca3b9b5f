import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import pytest
from git import Actor, Repo

from gitbridge.config import GitBridgeConfig
from gitbridge.core.git_cli import CommandResult


ACTOR = Actor("Test Author", "author@example.com")

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def commit_files(repo: Repo, files: Dict[str, str], message: str) -> str:
    """Write files into the work tree, stage them and commit"""
    root = Path(repo.working_tree_dir)
    for name, content in files.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    repo.index.add(list(files))
    return repo.index.commit(message, author=ACTOR, committer=ACTOR).hexsha


def init_repo(path: Path) -> Repo:
    path.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(path)
    repo.git.symbolic_ref("HEAD", "refs/heads/main")
    return repo


@dataclass
class SourceRepo:
    path: Path
    repo: Repo
    commits: List[str] = field(default_factory=list)


@pytest.fixture
def source_repo(tmp_path):
    """Repository with three commits on main and a feature branch"""
    repo = init_repo(tmp_path / "source")
    commits = [
        commit_files(repo, {"README.md": "hello\nworld\n"}, "Add readme"),
        commit_files(repo, {"src/app.py": "print('hi')\n"}, "Add app"),
        commit_files(repo, {"README.md": "hello\nthere\nworld\n"}, "Update readme\n\nLonger body"),
    ]
    repo.create_head("feature")
    yield SourceRepo(path=tmp_path / "source", repo=repo, commits=commits)
    repo.close()


@pytest.fixture
def config(tmp_path):
    config = GitBridgeConfig()
    config.secrets.temp_root = str(tmp_path / "secrets")
    return config


class FakeRunner:
    """Stands in for GitCommandRunner and records each invocation"""

    def __init__(self, result: CommandResult = None, on_run=None):
        self.result = result or CommandResult(0)
        self.on_run = on_run
        self.calls = []

    def run(self, args, cwd=None, env=None):
        self.calls.append({"args": list(args), "cwd": cwd, "env": dict(env or {})})
        if self.on_run:
            self.on_run(args, cwd, env or {})
        return self.result


@pytest.fixture
def fake_runner():
    return FakeRunner()
