from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from workorbit.core.config import settings
from workorbit.core.logging_config import init_logging
from workorbit.core.database import engine, Base
from workorbit.core.redis_service import redis_service
from workorbit.core.error_handlers import register_error_handlers
from workorbit.core.middleware import add_middleware
from workorbit.auth.routes import router as auth_router
from workorbit.hierarchy.routes import router as hierarchy_router
from workorbit.notifications.routes import router as notifications_router
import workorbit.models  # noqa: F401

init_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Organization hierarchy and join-request approval service for WorkOrbit",
    version="1.0.0",
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

add_middleware(app)

app.include_router(auth_router, prefix="/api/v1")
app.include_router(hierarchy_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    """Create database tables on startup."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")

        if settings.enable_redis and not redis_service.is_available():
            logger.warning("Redis not available, notifications will not be queued")
    except Exception as e:
        logger.error(f"Error during startup: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutting down...")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "WorkOrbit Hierarchy Service API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "auth": "/api/v1/auth",
            "hierarchy": "/api/v1/hierarchy",
            "notifications": "/api/v1/notifications"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "message": "API is running",
        "redis": redis_service.health_check(),
        "notification_queue_length": redis_service.queue_length(settings.notification_queue_key)
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "workorbit.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
