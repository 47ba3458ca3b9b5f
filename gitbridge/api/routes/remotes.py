"""
Remotes API Routes

Clone, pull and remote branch listing with per-request credentials.
"""

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...core.models import CloneProgress, Credentials
from ...core.service import GitService
from ..dependencies import get_git_service
from ..middleware import record_remote_operation

router = APIRouter()
logger = logging.getLogger(__name__)


class CredentialsPayload(BaseModel):
    auth_type: Literal["none", "ssh", "https"] = "none"
    ssh_private_key: Optional[str] = Field(default=None, repr=False)
    ssh_passphrase: Optional[str] = Field(default=None, repr=False)
    https_username: Optional[str] = None
    https_token: Optional[str] = Field(default=None, repr=False)

    def to_credentials(self) -> Credentials:
        return Credentials.from_dict(self.model_dump())


class CloneRequest(BaseModel):
    url: str
    local_path: str
    branch: Optional[str] = None
    credentials: CredentialsPayload = Field(default_factory=CredentialsPayload)


class PullRequest(BaseModel):
    local_path: str
    credentials: CredentialsPayload = Field(default_factory=CredentialsPayload)


class BranchListRequest(BaseModel):
    url: str
    credentials: CredentialsPayload = Field(default_factory=CredentialsPayload)


class OperationResponse(BaseModel):
    success: bool
    message: Optional[str] = None


class BranchListResponse(BaseModel):
    success: bool
    branches: List[str]
    error: Optional[str] = None


def _log_progress(progress: CloneProgress):
    logger.info(f"Clone progress: {progress.percentage}% - {progress.stage} {progress.detail}")


@router.post("/clone", response_model=OperationResponse)
async def clone_repository(request: CloneRequest, service: GitService = Depends(get_git_service)):
    """Clone a remote; an existing local_path is replaced"""
    success, message = await service.clone(
        request.url,
        request.local_path,
        request.branch,
        request.credentials.to_credentials(),
        _log_progress,
    )
    record_remote_operation("clone", success)
    return {"success": success, "message": message}


@router.post("/pull", response_model=OperationResponse)
async def pull_repository(request: PullRequest, service: GitService = Depends(get_git_service)):
    """Pull the tracked upstream of a local repository"""
    success, message = await service.pull(request.local_path, request.credentials.to_credentials())
    record_remote_operation("pull", success)
    return {"success": success, "message": message}


@router.post("/branches", response_model=BranchListResponse)
async def list_branches(request: BranchListRequest, service: GitService = Depends(get_git_service)):
    """Branches advertised by a remote, in advertisement order"""
    listing = await service.list_remote_branches(request.url, request.credentials.to_credentials())
    record_remote_operation("list_branches", listing.success)
    return {"success": listing.success, "branches": list(listing.branches), "error": listing.error}
