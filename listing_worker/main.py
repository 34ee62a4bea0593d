import os
import time
import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from dotenv import load_dotenv

load_dotenv()

from .auth_middleware import SessionAuthMiddleware
from .pipeline import project_router
from .pipeline import encoder
from .provider_factory import ProviderFactory
from . import fal
from . import kling
from . import metrics
from . import render_guard

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Listing worker starting up...")
    metrics.set_gauge("start_time", time.time())
    yield
    logger.info("Listing worker shutting down...")


app = FastAPI(lifespan=lifespan)
app.add_middleware(SessionAuthMiddleware)
app.include_router(project_router)


@app.get("/health")
def health_check():
    """Verify the worker is running and env vars are configured."""
    sb_url = os.environ.get("SUPABASE_URL") or os.environ.get("NEXT_PUBLIC_SUPABASE_URL", "")
    return {
        "status": "ok",
        "environment": os.environ.get("ENVIRONMENT", "development"),
        "supabase_url_set": bool(sb_url),
        "service_role_key_set": bool(os.environ.get("SUPABASE_SERVICE_ROLE_KEY")),
        "fal_api_key_set": fal.is_configured(),
        "kling_keys_set": kling.is_configured(),
        "video_provider": ProviderFactory.provider_name(),
        "ffmpeg_available": encoder.resolve_encoder_path() is not None,
    }


@app.get("/metrics")
def metrics_endpoint():
    """Return a snapshot of all worker metrics."""
    metrics.set_gauge("active_renders", render_guard.get_active_count())
    return metrics.get_snapshot()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("listing_worker.main:app", host="0.0.0.0", port=port, reload=True)
