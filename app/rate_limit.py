"""
Rate limiting configuration using slowapi.

Two tiers:
  • strict  – 5/min  (endpoints that issue a code and send mail)
  • auth    – 10/min (code verification and password login)

The limiter keys on client IP. It throttles at the network edge only;
per-code attempt limits are enforced by the OTP manager itself.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Named rate strings for use in @limiter.limit() decorators
STRICT = "5/minute"     # OTP issuance (email sending)
AUTH = "10/minute"      # OTP verification, password login


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )
