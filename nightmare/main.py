import os
import time
import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from . import gemini
from . import metrics
from .pipeline import workflow_router
from .pipeline import storage

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Nightmare studio starting up...")
    metrics.set_gauge("start_time", time.time())
    logger.info(f"Serving media from {storage.media_dir()}")
    yield
    logger.info("Nightmare studio shutting down...")


app = FastAPI(title="Nightmare Studio", lifespan=lifespan)
app.include_router(workflow_router)
# Directory is created by the lifespan hook
app.mount(
    storage.MEDIA_URL_PREFIX,
    StaticFiles(directory=storage.MEDIA_DIR, check_dir=False),
    name="media",
)


@app.get("/health")
def health_check():
    """Verify the service is running and the Gemini key is configured."""
    key = gemini.GEMINI_API_KEY
    return {
        "status": "ok",
        "gemini_api_key_set": bool(key),
        "gemini_key_prefix": key[:8] + "..." if key else "MISSING",
        "image_model": gemini.GEMINI_IMAGE_MODEL,
        "video_model": gemini.VEO_MODEL,
    }


@app.get("/metrics")
def metrics_endpoint():
    """Return a snapshot of all studio metrics."""
    return metrics.get_snapshot()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run("nightmare.main:app", host="0.0.0.0", port=port, reload=True)
