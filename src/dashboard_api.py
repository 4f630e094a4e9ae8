"""
Analytics Dashboard API

FastAPI backend serving trend-annotated tables, position buckets and
normalized overlay charts to the dashboard front-end.
"""

import logging
import sys
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from pythonjsonlogger import jsonlogger
from starlette.middleware.base import BaseHTTPMiddleware

from .analytics.api import router as analytics_router
from .analytics.config import load_config

# --- Configuration & Logging ---

# Configure JSON Logging
logger = logging.getLogger()
logHandler = logging.StreamHandler(sys.stdout)
formatter = jsonlogger.JsonFormatter(
    "%(asctime)s %(levelname)s %(name)s %(message)s",
    rename_fields={"asctime": "timestamp", "levelname": "severity"}
)
logHandler.setFormatter(formatter)
logger.addHandler(logHandler)
logger.setLevel(logging.INFO)

# --- Middleware ---

class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000

        log_data = {
            "event": "access_log",
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "processing_time_ms": round(process_time, 2),
            "user_agent": request.headers.get("user-agent"),
            "client_ip": request.client.host if request.client else None,
        }

        logger.info("request_processed", extra=log_data)
        return response


# --- Pydantic Models ---

class HealthResponse(BaseModel):
    status: str
    tracked_metrics: list[str]
    band_presets: list[str]
    checked_at: str


# --- FastAPI App ---

app = FastAPI(
    title="Analytics Dashboard API",
    description="Trend, classification and chart normalization engine for search analytics",
    version="1.0.0",
)

# Middleware (Applied in reverse order: Last added is first executed)

# 2. Logging (Outermost - measures total time)
app.add_middleware(LoggingMiddleware)

# 1. CORS (Innermost - handles preflight)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analytics_router)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@app.get("/api/health", response_model=HealthResponse)
def get_health():
    """Report that the engine is up and which configuration it loaded."""
    config = load_config()
    return HealthResponse(
        status="ok",
        tracked_metrics=list(config.tracked_metrics),
        band_presets=sorted(config.band_presets),
        checked_at=_utc_now_iso(),
    )


# --- Main entry point ---

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
