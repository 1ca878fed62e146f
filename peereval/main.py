import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import text
import time
from typing import Callable
from redis.asyncio import Redis

from peereval.core.config.logging_config import setup_logging
from peereval.core.config.settings import get_settings
from peereval.core.exceptions import PeerEvalError
from peereval.db.init_db import init_db
from peereval.db.session import engine, SessionLocal
from peereval.routers import auth, invites, projects, surveys, teams

# Setup logging
logger = setup_logging()
access_logger = logging.getLogger("peereval.access")

# Initialize FastAPI app
app = FastAPI(
    title=get_settings().PROJECT_NAME,
    openapi_url=f"{get_settings().API_PREFIX}/openapi.json",
    docs_url=f"{get_settings().API_PREFIX}/docs",
    redoc_url=f"{get_settings().API_PREFIX}/redoc",
)

# Redis connection instance
redis = None

@app.on_event("startup")
async def startup_event():
    global redis
    # Initialize Redis if URL is configured
    if get_settings().REDIS_URL:
        try:
            redis = Redis.from_url(
                get_settings().REDIS_URL,
                encoding="utf-8",
                decode_responses=True
            )
            await redis.ping()
            logger.info("Redis connection established")
        except Exception as e:
            redis = None
            logger.error(f"Failed to connect to Redis, rate limiting disabled: {str(e)}")

    # Initialize database and resolve optional schema features once
    app.state.capabilities = init_db(engine)
    logger.info(f"Database initialized with {app.state.capabilities}")

@app.on_event("shutdown")
async def shutdown_event():
    global redis
    if redis:
        await redis.close()
        logger.info("Redis connection closed")

# Rate limiting middleware
@app.middleware("http")
async def rate_limit(request: Request, call_next: Callable):
    if redis:
        client_ip = request.client.host if request.client else "unknown"
        key = f"rate_limit:{client_ip}"
        requests = await redis.incr(key)

        if requests == 1:
            await redis.expire(key, 60)  # Reset after 60 seconds

        if requests > get_settings().RATE_LIMIT_PER_MINUTE:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests"}
            )

    return await call_next(request)

# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next: Callable):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    access_logger.info(
        f"Method: {request.method} Path: {request.url.path} "
        f"Status: {response.status_code} Duration: {duration:.2f}s"
    )
    return response

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with prefix
api_prefix = get_settings().API_PREFIX
app.include_router(auth.router, prefix=api_prefix)
app.include_router(invites.router, prefix=api_prefix)
app.include_router(projects.router, prefix=api_prefix)
app.include_router(teams.router, prefix=api_prefix)
app.include_router(surveys.router, prefix=api_prefix)

# Exception handlers
@app.exception_handler(PeerEvalError)
async def domain_exception_handler(request: Request, exc: PeerEvalError):
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.error(f"HTTP Exception: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path"))
        if name and name not in fields:
            fields.append(name)
    message = "Missing or invalid fields"
    if fields:
        message = f"{message}: {', '.join(fields)}"
    logger.warning(f"Validation error on {request.url.path}: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message},
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled Exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )

# Health check endpoint with additional status info
@app.get("/health")
async def health_check():
    status_info = {
        "status": "healthy",
        "timestamp": time.time(),
        "database": "connected",
        "redis": "connected" if redis else "not configured"
    }

    # Check database connection
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception as e:
        status_info["database"] = "disconnected"
        status_info["status"] = "unhealthy"
        logger.error(f"Database health check failed: {str(e)}")

    # Check Redis connection if configured
    if redis:
        try:
            await redis.ping()
        except Exception as e:
            status_info["redis"] = "disconnected"
            status_info["status"] = "unhealthy"
            logger.error(f"Redis health check failed: {str(e)}")

    return status_info
