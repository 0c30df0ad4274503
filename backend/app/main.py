from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import logging
import os
from datetime import datetime
from pathlib import Path

from app.core.config import settings
from app.core.errors import ReferentialIntegrityError
from app.routers import admin, books, recommenders
from app.database import init_db
from app.services.storage import get_storage
from app.utils.timing import now_ms
from app.utils.uploads import UPLOAD_URL_PREFIX

# ----------------------------
# Logging
# ----------------------------
logger = logging.getLogger("hondana")
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Server fingerprint for debugging
SERVER_BOOT_ID = f"hondana-backend::{os.getpid()}::{datetime.utcnow().isoformat()}"

app = FastAPI(title="Hondana", debug=settings.DEBUG)


# ----------------------------
# CORS
# ----------------------------
cors_origins = settings.cors_origins_list
logger.info("[CORS] allow_origins=%s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    start = now_ms()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        logger.info(
            "%s %s %s in %.0fms",
            request.method,
            request.url.path,
            response.status_code,
            now_ms() - start,
        )
    return response


def _error_response(request: Request) -> JSONResponse:
    response = JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"}
    )

    # Ensure CORS headers are present in error responses
    origin = request.headers.get("origin")
    if origin and origin in cors_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "*"

    return response


@app.exception_handler(ReferentialIntegrityError)
async def referential_integrity_handler(request: Request, exc: ReferentialIntegrityError):
    logger.critical(
        "[INTEGRITY] %s %s: recommendation=%s book_id=%s recommender_id=%s",
        request.method,
        request.url.path,
        exc.recommendation_id,
        exc.book_id,
        exc.recommender_id,
        exc_info=exc,
    )
    return _error_response(request)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[UNHANDLED] %s %s", request.method, request.url.path)
    return _error_response(request)


# ----------------------------
# Routers
# ----------------------------
app.include_router(books.router, prefix="/api")
app.include_router(recommenders.router, prefix="/api")
app.include_router(admin.router, prefix="/api")

app.mount(
    UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)


@app.on_event("startup")
def on_startup() -> None:
    logger.info("[BOOT] %s storage=%s", SERVER_BOOT_ID, settings.STORAGE_BACKEND)
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

    if settings.STORAGE_BACKEND == "database":
        init_db()

    if settings.SEED_CSV_PATH:
        from app.scripts.seed_catalog import seed_from_csv
        try:
            seed_from_csv(get_storage(), Path(settings.SEED_CSV_PATH))
        except (OSError, ValueError):
            # A broken seed file should not keep the API from starting
            logger.exception("Error loading initial data from %s", settings.SEED_CSV_PATH)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/api/health")
def api_health_check():
    return {"status": "ok"}
