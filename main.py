#!/usr/bin/env python3
"""
Entry point for the auth service.
"""

import logging
import os

import uvicorn

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

if __name__ == "__main__":
    log_level = os.getenv("LOG_LEVEL", "info").lower()
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)

    uvicorn.run(
        "app.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=os.getenv("API_RELOAD", "false").lower() == "true",
        log_level=log_level,
    )
