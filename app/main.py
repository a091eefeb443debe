import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401  (registers tables on Base)
from .config import ALLOWED_ORIGINS
from .database import Base, SessionLocal, engine
from .domain.chats.router import messages_router
from .domain.chats.router import router as chats_router
from .domain.notifications.router import router as notifications_router
from .rate_limiter import EventRateLimiter
from .realtime import RealtimeHub
from .realtime.router import router as realtime_router
from .services.notification_service import dispatcher

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    rate_limiter = EventRateLimiter()
    if rate_limiter.use_redis:
        try:
            from .rate_limiter import get_redis_client

            get_redis_client().ping()  # Connection test
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(
                f"Redis connection failed - Rate limiting will operate in fail-open mode: {e}"
            )

    if getattr(app.state, "realtime", None) is None:
        app.state.realtime = RealtimeHub(session_factory=SessionLocal, rate_limiter=rate_limiter)
        logger.info("Realtime hub started")

    yield
    logger.info("Application shutting down...")
    await dispatcher.drain()


app = FastAPI(title="Panikkaran API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last-resort handler so internals never leak to clients"""
    logger.error(f"{request.method} {request.url.path} - Unhandled error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# CORS Configuration
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(chats_router)
app.include_router(messages_router)
app.include_router(notifications_router)
app.include_router(realtime_router)


@app.get("/")
def root():
    return {"message": "Panikkaran API is running"}


@app.get("/health")
def health(request: Request):
    hub = getattr(request.app.state, "realtime", None)
    if hub is None:
        return {"status": "starting"}
    return {
        "status": "healthy",
        "connections": hub.registry.connection_count,
        "onlineUsers": len(hub.registry.online_user_ids()),
    }


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000  # Convert to milliseconds

        return {
            "status": "healthy",
            "redis": {"connected": True, "response_time_ms": round(response_time, 2)},
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
