"""
FastAPI application entry point.
"""

from fastapi import FastAPI
from pr_resolver.config import settings
from pr_resolver.api import webhooks
from pr_resolver.utils.logging import setup_logging, get_logger

# Configure structured logging
setup_logging(settings.log_level)

logger = get_logger(__name__)

app = FastAPI(
    title="Pull Request Resolver",
    description="Resolves change sets from pull request webhook events",
    version="0.1.0"
)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "version": "0.1.0"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Pull Request Resolver API",
        "version": "0.1.0",
        "docs": "/docs"
    }


app.include_router(webhooks.router)


@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup."""
    logger.info("Starting Pull Request Resolver API")

    from pr_resolver.services.redis_client import get_redis_client
    redis_client = get_redis_client()
    await redis_client.initialize()
    logger.info("Redis client initialized")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup services on application shutdown."""
    logger.info("Shutting down Pull Request Resolver API")

    from pr_resolver.services.redis_client import get_redis_client
    redis_client = get_redis_client()
    await redis_client.close()
    logger.info("Redis client closed")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
