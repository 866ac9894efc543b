"""
Entry point for the practice engine service.

Run with:
    uvicorn practice_engine.api.main:create_app --factory --reload --port 8100
    python main.py
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

import uvicorn

from config import get_settings
from practice_engine.core.logging import configure_logging

settings = get_settings()

if __name__ == "__main__":
    configure_logging(settings)
    uvicorn.run(
        "practice_engine.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
