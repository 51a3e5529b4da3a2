"""
main.py — PWD Registry Entry Point
===================================
This is the file you run to start the registry.
It does 4 things in order:
    1. Creates the FastAPI app
    2. Connects the database
    3. Prepares the document storage backend
    4. Registers all API route modules

Run with:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000

Or simply:
    python main.py
"""

import logging
import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from config import settings

# ── Database ──────────────────────────────────────────────────────────────────
from db.session import AsyncSessionLocal, init_db

# ── Core systems ──────────────────────────────────────────────────────────────
from core.storage import storage

# ── API Routers (one per module) ──────────────────────────────────────────────
from api.errors import install_error_handlers
from api.routes_beneficiaries import router as beneficiaries_router
from api.routes_assistance import router as assistance_router
from api.routes_documents import router as documents_router
from api.routes_reference import router as reference_router
from api.routes_statistics import router as statistics_router
from api.routes_activity import router as activity_router


# ── Logging setup ─────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(settings.LOG_FILE),
    ],
)
logger = logging.getLogger("pwdregistry.main")


# ── Lifespan: runs on startup and shutdown ────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    logger.info("Connecting to database...")
    await init_db()
    logger.info("✓ Database ready")

    logger.info(f"Preparing document storage ({settings.STORAGE_BACKEND})...")
    await storage.connect()
    logger.info("✓ Storage ready")

    logger.info("=" * 50)
    logger.info(f"  {settings.APP_NAME} is LIVE on port {settings.PORT}")
    logger.info("=" * 50)

    yield

    logger.info("✓ Shutdown complete")


# ── Create the FastAPI app ────────────────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Registry of persons with disabilities, their support needs and assistance",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# ── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)


# ── Register all routers ──────────────────────────────────────────────────────
app.include_router(beneficiaries_router, prefix="/beneficiaries", tags=["PWD Records"])
app.include_router(assistance_router,    prefix="/assistance",    tags=["Assistance"])
app.include_router(documents_router,     prefix="/documents",     tags=["Documents"])
app.include_router(reference_router,     prefix="/reference",     tags=["Reference Data"])
app.include_router(statistics_router,    prefix="/statistics",    tags=["Statistics"])
app.include_router(activity_router,      prefix="/activity-logs", tags=["Activity Log"])


# ── Root endpoint ─────────────────────────────────────────────────────────────
@app.get("/", tags=["Status"])
async def root():
    return {
        "system": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "operational",
        "storage": settings.STORAGE_BACKEND,
        "docs": "/docs",
    }


@app.get("/health-check", tags=["Status"])
async def health_check():
    """Deep health check: runs a trivial query against the database."""
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))
    return {"api": "ok", "database": "ok", "storage": settings.STORAGE_BACKEND}


# ── Run directly ──────────────────────────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
