"""
RAC Dashboard Configuration

All runtime settings are read from the environment once, at import time.
Defaults are chosen for local development against SQLite.

Settings:
    RACDASH_SESSION_TTL_MINUTES   — lifetime of one session data generation
    RACDASH_XERO_API_BASE         — base URL of the Xero accounting API
    RACDASH_XERO_TIMEOUT_SECONDS  — per-request timeout for report fetches
    RACDASH_LOG_LEVEL             — root log level configured on startup
    RACDASH_CORS_ORIGINS          — comma-separated list of allowed origins

The database URL lives in database.py next to the engine it configures.
"""

import os

# 30 minutes matches the lifetime of a Xero connection
SESSION_TTL_MINUTES = int(os.environ.get("RACDASH_SESSION_TTL_MINUTES", "30"))

XERO_API_BASE = os.environ.get(
    "RACDASH_XERO_API_BASE", "https://api.xero.com/api.xro/2.0"
).rstrip("/")
XERO_TIMEOUT_SECONDS = float(os.environ.get("RACDASH_XERO_TIMEOUT_SECONDS", "30"))

LOG_LEVEL = os.environ.get("RACDASH_LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "RACDASH_CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8501",
    ).split(",")
    if origin.strip()
]

DEFAULT_VIEW = "overview"
VALID_VIEWS = ["overview", "balance_sheet", "cash", "profit_loss"]
