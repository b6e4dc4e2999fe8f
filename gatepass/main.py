# gatepass/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from gatepass.routers import passes, approvals, dashboard, vehicles, alerts, health
from gatepass.database import create_tables
from gatepass.config import settings
from gatepass.utils.errors import GatePassError
from gatepass.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Gate Pass API",
    description="Gate pass lifecycle and multi-level approval engine for yard gates.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (allow the gate console on the same LAN to call the API) ──────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to console origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handlers ────────────────────────────────────────────────
@app.exception_handler(GatePassError)
@app.exception_handler(SQLAlchemyError)
async def store_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"Store error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Unavailable"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(passes.router,    prefix="/api/v1", tags=["🎫 Gate Passes"])
app.include_router(approvals.router, prefix="/api/v1", tags=["✅ Approvals"])
app.include_router(dashboard.router, prefix="/api/v1", tags=["📊 Dashboard"])
app.include_router(vehicles.router,  prefix="/api/v1", tags=["🚗 Vehicles"])
app.include_router(alerts.router,    prefix="/api/v1", tags=["🔔 Alerts"])
app.include_router(health.router,    prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Gate Pass backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"⏱  Default validity (hours): {settings.VALIDITY_HOURS}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Gate Pass backend shutting down...")
