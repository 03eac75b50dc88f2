"""Main FastAPI application for the email OTP auth service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from app import db
from app.config import APP_NAME, APP_VERSION, CORS_ORIGINS, ENVIRONMENT, smtp_enabled
from app.rate_limit import limiter, rate_limit_exceeded_handler
from app.routers import auth, health
from app.services.otp import otp_sweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and start the OTP sweeper for the app's lifetime."""
    await db.init_db()
    await otp_sweeper.start()
    logger.info(
        "%s auth service started (env=%s, email=%s)",
        APP_NAME,
        ENVIRONMENT,
        "smtp" if smtp_enabled() else "console",
    )
    try:
        yield
    finally:
        await otp_sweeper.stop()
        await db.close_db()


app = FastAPI(
    title=f"{APP_NAME} Auth API",
    description="Name/password and email one-time-passcode authentication",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s -> %d", request.method, request.url.path, response.status_code)
    return response
