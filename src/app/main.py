from fastapi import FastAPI
from app.core.config import settings
from app.db.session import lifespan
from app.api.api import api_router
import logging


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
# Every pooled query is otherwise logged at INFO when LOG_LEVEL is lowered.
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Outbreak Detection API",
    description="Sliding-window outbreak detection over case records and historical disease statistics",
    version="0.1.0",
    lifespan=lifespan
)


app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def read_root():
    return {
        "message": "Outbreak Detection API is up. See /docs for the documentation.",
        "detect": "/api/v1/outbreaks/detect",
        "thresholds": "/api/v1/outbreaks/thresholds",
        "health": "/api/v1/health",
    }
