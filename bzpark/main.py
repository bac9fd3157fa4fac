# bzpark/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

import asyncio
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from bzpark.routers import (
    arduino, esp8266, health, hold_payment, parking_activity, parking_payment,
    parking_slot, sensor, service, user,
)
from bzpark.database import check_connection, create_tables
from bzpark.config import settings
from bzpark.services.sensor_poller import start_sensor_polling
from bzpark.utils.logger import get_logger
from bzpark.utils.responses import error_envelope, timestamp

logger = get_logger(__name__)

app = FastAPI(
    title="BZpark Parking API",
    description="Parking slots driven by Arduino distance sensors, sessions and payments.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard and user app) ────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional shared-key auth. Set API_KEY in .env; leave empty to disable.
    Sensor bridges push readings with the same key in X-API-Key.
    """
    open_paths = {"/", "/api/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return error_envelope(status.HTTP_401_UNAUTHORIZED, "Invalid or missing API key")
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


# ── Error Handlers ───────────────────────────────────────────────────────────
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return error_envelope(status.HTTP_400_BAD_REQUEST, "Validation failed", ", ".join(problems))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return error_envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(arduino.router,          prefix="/api", tags=["🔌 Arduino"])
app.include_router(sensor.router,           prefix="/api", tags=["📏 Sensors"])
app.include_router(parking_slot.router,     prefix="/api", tags=["🅿️  Parking Slots"])
app.include_router(user.router,             prefix="/api", tags=["🚗 Users"])
app.include_router(service.router,          prefix="/api", tags=["🏷  Services"])
app.include_router(parking_activity.router, prefix="/api", tags=["⏱  Parking Activity"])
app.include_router(hold_payment.router,     prefix="/api", tags=["💳 Hold Payments"])
app.include_router(parking_payment.router,  prefix="/api", tags=["💰 Parking Payments"])
app.include_router(esp8266.router,          prefix="/api", tags=["📡 ESP8266"])
app.include_router(health.router,           prefix="/api", tags=["💚 Health"])


@app.get("/", include_in_schema=False)
async def root():
    return JSONResponse(content={
        "success": True,
        "message": "BZpark Parking API",
        "data": {
            "version": app.version,
            "resources": [
                "/api/arduino", "/api/sensor", "/api/parking-slot", "/api/user",
                "/api/service", "/api/parking-activity", "/api/hold-payment",
                "/api/parking-payment", "/api/esp8266", "/api/health",
            ],
        },
        "timestamp": timestamp(),
    })


# ── Startup ───────────────────────────────────────────────────────────────────
_background_tasks: set[asyncio.Task] = set()


@app.on_event("startup")
async def startup():
    logger.info("🚀 BZpark Backend starting up...")
    try:
        check_connection()
    except Exception as e:
        logger.critical(f"❌ Database unreachable at startup: {e}")
        raise SystemExit(1)
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")

    if settings.ESP8266_POLLING_ENABLED:
        task = start_sensor_polling()
        if task:
            _background_tasks.add(task)
            task.add_done_callback(_background_tasks.discard)
            logger.info("📡 ESP8266 polling started (pull mode)")


@app.on_event("shutdown")
async def shutdown():
    for task in list(_background_tasks):
        task.cancel()
    logger.info("🛑 BZpark Backend shutting down...")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("bzpark.main:app", host=settings.BACKEND_IP, port=settings.BACKEND_PORT)
