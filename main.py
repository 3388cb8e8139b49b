from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
import uvicorn
from contextlib import asynccontextmanager
import datetime

# Import core modules
from core.config import settings
from utils.logger import logger

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""

    logger.info(f"Starting {settings.APP_NAME}...")

    from connect_db import SessionLocal, init_db
    from core.dependencies import build_services, set_services

    logger.info("Creating database tables...")
    init_db()

    logger.info("Initializing services...")
    services = build_services(SessionLocal)
    set_services(
        services["users"],
        services["auth"],
        services["friends"],
        services["notifications"],
        services["recommendations"],
    )
    logger.info("All services initialized successfully!")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    from connect_db import engine
    engine.dispose()

# Create FastAPI app
app = FastAPI(
    title="FriendGraph - Social Graph Backend",
    description="Friend requests, notifications and friend recommendations",
    version=settings.VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.ALLOWED_HOSTS
)

# Import routers after app creation to avoid circular imports
from api import auth, friends

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(friends.router, prefix="/api/v1/friends", tags=["Friends"])

@app.get("/")
async def root():
    """Root endpoint for health check."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.VERSION,
        "status": "running",
    }

@app.get("/health")
async def health_check_endpoint():
    """Health check that also verifies the database is reachable."""
    from sqlalchemy import text
    from connect_db import engine

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        raise HTTPException(status_code=503, detail="Service temporarily unavailable")

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        server_header=False,
        proxy_headers=True
    )
