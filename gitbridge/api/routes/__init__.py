"""
API Routes for gitbridge
"""

# Import route modules to make them available
from . import health, remotes, repositories

__all__ = ["health", "remotes", "repositories"]
