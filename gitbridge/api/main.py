"""
gitbridge API

FastAPI application exposing repository inspection, diffs and credentialed
remote operations. Every handler offloads blocking Git work to a worker
thread through GitService.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..config import GitBridgeConfig, setup_logging
from ..core.service import GitService
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, MetricsMiddleware
from .routes import health, remotes, repositories


logger = logging.getLogger(__name__)


def create_app(config: GitBridgeConfig = None) -> FastAPI:
    """Build the application around one GitService"""
    config = config or GitBridgeConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting gitbridge API...")
        app.state.git_service = GitService(config)
        logger.info("API started successfully")

        yield

        logger.info("Shutting down gitbridge API...")

    app = FastAPI(
        title="gitbridge API",
        description="Repository inspection, diffs and credentialed remote operations",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(repositories.router, prefix="/api/v1/repositories", tags=["repositories"])
    app.include_router(remotes.router, prefix="/api/v1/remotes", tags=["remotes"])

    @app.get("/metrics")
    async def metrics():
        """Prometheus exposition"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


def main():
    """Console entry point"""
    import uvicorn

    config = GitBridgeConfig.from_env()
    setup_logging(config.logging)
    uvicorn.run(create_app(config), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
