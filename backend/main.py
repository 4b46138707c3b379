"""
FastAPI Backend - Admin API Entry Point

Exposes the maintenance tooling over HTTP:
- Health checks (including database connectivity)
- Phone number column inspection and repair

Run with: uvicorn backend.main:app --port 8000
"""

from fastapi import Depends, FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from sqlalchemy.engine import Engine
import logging
import time
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file (optional for deployment)
# Path: backend/main.py -> backend/ -> project root -> .env
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

from shared.config import LOG_FORMAT, get_settings
from backend.api import maintenance
from backend.api.maintenance import get_maintenance_engine
from backend.db.config import check_db_health

# Setup logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ===== Middleware for Request Logging =====

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        logger.info(f"📨 Incoming request: {request.method} {request.url.path}")

        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.info(f"✅ Response: {response.status_code} (took {process_time:.3f}s)")
            return response
        except Exception as e:
            logger.error(f"❌ Error processing request: {str(e)}", exc_info=True)
            raise


# Create FastAPI app
app = FastAPI(
    title="MedHome Maintenance API",
    description="Administrative API for MedHome database maintenance",
    version="1.0.0"
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)


# Health check endpoint
@app.get("/")
async def root():
    """Root endpoint - simple health check"""
    return {
        "status": "healthy",
        "service": "MedHome Maintenance API",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Liveness check - must respond quickly"""
    return {"status": "healthy"}


@app.get("/health/detailed")
def health_check_detailed(engine: Engine = Depends(get_maintenance_engine)):
    """Detailed health check with database connectivity"""
    logger.info("💊 Detailed health check endpoint accessed")

    db_status = "connected" if check_db_health(engine) else "unreachable"
    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status
    }


# Include API routers
app.include_router(
    maintenance.router,
    prefix="/api/maintenance",
    tags=["Maintenance"]
)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logger.info("🏃 Running development server directly...")
    uvicorn.run(
        "backend.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level="info"
    )
