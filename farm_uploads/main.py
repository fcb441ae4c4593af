import logging
import os
import sys
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from farm_uploads.api.v1.endpoints import uploads as upload_endpoints
from farm_uploads.core.config import settings
from farm_uploads.core.dependencies import get_policy_table

# Send package logs to the terminal; uvicorn often doesn't show them otherwise
_app_log = logging.getLogger("farm_uploads")
_app_log.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
if not _app_log.handlers:
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    _app_log.addHandler(_handler)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    policies = app.dependency_overrides.get(get_policy_table, get_policy_table)()
    for policy in policies.values():
        policy.destination_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directories ready under %s", settings.UPLOAD_ROOT.resolve())
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

if settings.CORS_ORIGINS.strip():
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(
    upload_endpoints.router,
    prefix="/api/v1/uploads",
    tags=["uploads"],
)


@app.get("/")
def root():
    return {
        "app_name": settings.APP_NAME,
        "app_version": settings.APP_VERSION,
        "debug": settings.DEBUG,
    }


@app.get("/health")
async def health():
    """
    Health check for load balancers and containers.
    Returns 200 when the upload root is writable; 503 otherwise.
    """
    root = settings.UPLOAD_ROOT
    if root.is_dir() and os.access(root, os.W_OK):
        return {"status": "ok", "storage": "ok"}
    logger.warning("Health check failed: %s is missing or not writable", root)
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "storage": "error"},
    )


def start():
    uvicorn.run("farm_uploads.main:app", host="0.0.0.0", port=8000, reload=True)
