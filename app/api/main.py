"""
Main FastAPI application for the summons drafting API.

Section-by-section generation, review and assembly of court summonses.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.core.config import settings
from app.core.database import init_database
from app.core.logging import configure_logging

# Import routers
from app.api.routers import health
from app.api.routers.summons import router as summons_router

# Import middleware
from app.api.middleware import (
    error_handling,
    request_id,
    body_size,
    logging as log_middleware
)

configure_logging(level=settings.LOG_LEVEL, format_type=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Summons Drafting Engine",
    description="Section-by-section generation and assembly of court summonses",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# ============================================================================
# STARTUP
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    logger.info("Starting summons drafting API")

    try:
        await init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    logger.info(f"API Documentation: http://{settings.API_HOST}:{settings.API_PORT}/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down summons drafting API...")


# ============================================================================
# MIDDLEWARE
# ============================================================================

# Add middleware (order matters - last added = first executed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(log_middleware.LoggingMiddleware)
app.add_middleware(body_size.BodySizeMiddleware)
app.add_middleware(request_id.RequestIDMiddleware)

error_handling.add_exception_handlers(app)


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(health.router, tags=["health"])
app.include_router(summons_router)


# ============================================================================
# ROOT ENDPOINT
# ============================================================================

@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Summons Drafting Engine",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
    )
