"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
APP_NAME: str = os.getenv("APP_NAME", "KovaPage")
APP_VERSION: str = "1.0.0"

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "auth.db"))

# ── JWT ───────────────────────────────────────────────────────────────────

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRY_DAYS: int = int(os.getenv("JWT_EXPIRY_DAYS", "30"))

# ── CORS ──────────────────────────────────────────────────────────────────

# Comma-separated browser origins allowed to call the API ("*" for any).
CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# ── OTP ───────────────────────────────────────────────────────────────────

# Lifetime of an issued code.
OTP_TTL_SECONDS: int = int(os.getenv("OTP_TTL_SECONDS", "600"))

# Failed verifications allowed before a code is burned.
OTP_MAX_ATTEMPTS: int = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))

# How often expired, never-verified codes are purged (seconds).
OTP_SWEEP_INTERVAL: float = float(os.getenv("OTP_SWEEP_INTERVAL", "60"))

# ── SMTP ──────────────────────────────────────────────────────────────────

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", "noreply@kovapage.local")
SMTP_FROM_NAME: str = os.getenv("SMTP_FROM_NAME", APP_NAME)
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Set to "false" to force console-only mode even when SMTP credentials are present.
# Handy for local development to avoid burning real SMTP quota.
_SMTP_ENABLED_OVERRIDE: str = os.getenv("SMTP_ENABLED", "auto")


def smtp_enabled() -> bool:
    """True when SMTP should actually send emails.

    Controlled by SMTP_ENABLED env var:
      • "auto" (default): send if credentials are configured
      • "true": always send (will fail if credentials are missing)
      • "false": never send, print to console instead
    """
    if _SMTP_ENABLED_OVERRIDE.lower() == "false":
        return False
    if _SMTP_ENABLED_OVERRIDE.lower() == "true":
        return True
    # "auto": send only when credentials are fully configured
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)
