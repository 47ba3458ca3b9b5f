"""
Dependency injection for API routes
"""

from fastapi import Request

from ..core.service import GitService


def get_git_service(request: Request) -> GitService:
    return request.app.state.git_service
