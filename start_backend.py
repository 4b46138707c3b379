"""
Backend Launcher - Maintenance API
==================================
Starts the FastAPI admin API for MedHome database maintenance
"""

import uvicorn
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from shared.config import get_settings


def main():
    """Launch FastAPI maintenance server"""
    settings = get_settings()

    print("🚀 Starting MedHome Maintenance API")
    print("=" * 60)
    print(f"📡 API will be available at: http://localhost:{settings.backend_port}")
    print(f"📚 API docs will be available at: http://localhost:{settings.backend_port}/docs")
    print("=" * 60)

    uvicorn.run(
        "backend.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level="info"
    )

if __name__ == "__main__":
    main()
