"""
Repositories API Routes

Read-only inspection of local repositories: probe, history, blob content,
diffs, working-tree status and current branch.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ...core.service import GitService
from ..dependencies import get_git_service

router = APIRouter()


class DiffRequest(BaseModel):
    old_content: str = ""
    new_content: str = ""


@router.get("/probe")
async def probe_repository(path: str, service: GitService = Depends(get_git_service)):
    """Check whether path holds a valid repository"""
    return {"path": path, "is_repository": await service.is_repository(path)}


@router.get("/history")
async def file_history(
    path: str,
    file: str,
    max_count: int = Query(50, ge=1, le=1000),
    service: GitService = Depends(get_git_service)
):
    """Commits touching one file, newest first"""
    commits = await service.get_file_history(path, file, max_count)
    return {"commits": [commit.to_dict() for commit in commits]}


@router.get("/commits")
async def all_commits(
    path: str,
    max_count: int = Query(100, ge=1, le=1000),
    service: GitService = Depends(get_git_service)
):
    """Commits reachable from HEAD, newest first"""
    commits = await service.get_all_commits(path, max_count)
    return {"commits": [commit.to_dict() for commit in commits]}


@router.get("/content")
async def file_content(path: str, file: str, commit: str,
                       service: GitService = Depends(get_git_service)):
    """File content at a commit; empty when absent"""
    return {"content": await service.get_file_content_at_commit(path, file, commit)}


@router.get("/diff")
async def file_diff(path: str, file: str, from_commit: str, to_commit: str,
                    service: GitService = Depends(get_git_service)):
    """Line-level diff of one file between two commits"""
    result = await service.get_file_diff(path, file, from_commit, to_commit)
    return result.to_dict()


@router.post("/diff")
async def content_diff(request: DiffRequest, service: GitService = Depends(get_git_service)):
    """Line-level diff of two text snapshots"""
    result = await service.compute_diff(request.old_content, request.new_content)
    return result.to_dict()


@router.get("/status")
async def workspace_status(path: str, service: GitService = Depends(get_git_service)):
    """Working-tree status"""
    status = await service.get_status(path)
    return status.to_dict()


@router.get("/branch")
async def current_branch(path: str, service: GitService = Depends(get_git_service)):
    """Current branch; null when detached or not a repository"""
    branch: Optional[str] = await service.get_current_branch(path)
    return {"branch": branch}
