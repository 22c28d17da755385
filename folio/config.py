"""Centralized configuration for the Folio backend.

Re-exports ``Settings`` from folio.infrastructure.settings, then adds typed
constants for the task queue, tokens, LLM, rate limiting and API settings.
Only the constants below that read the environment can be overridden without
a code change.
"""

from __future__ import annotations

import os
from datetime import timedelta

from folio.infrastructure.settings import DATA_DIR, FOLIO_ROOT, Settings  # noqa: F401 - re-export

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("FOLIO_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("FOLIO_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("FOLIO_DB_CONNECT_TIMEOUT", "30.0"))
DB_RETRY_MAX: int = int(os.getenv("FOLIO_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("FOLIO_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("FOLIO_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("FOLIO_DB_RETRY_JITTER", "0.1"))

# --- Access levels ---
BLOCKED_LEVEL: int = -1
PUBLIC_LEVEL: int = 0
VIP_LEVEL: int = 5
ADMIN_LEVEL_CHOICES: tuple[int, ...] = (-1, 0, 1, 2, 3, 4, 5)

# --- Content filter ---
FILTER_MAX_DEPTH: int = 64
FILTER_MAX_NODES: int = 100_000
UNGROUPED_TYPE: str = "project"
ACCESS_METADATA_TYPE: str = "access"

# --- Task queue ---
QUEUE_MAX_RETRIES: int = 5
QUEUE_BASE_DELAY_SECONDS: float = 60.0

# --- LLM ---
LLM_MAX_ATTEMPTS: int = 3
LLM_BACKOFF_BASE_SECONDS: float = 2.0
LLM_BACKOFF_MAX_SECONDS: float = 16.0
LLM_TEMPERATURE: float = 1.2
LLM_TOP_P: float = 0.95
DEFAULT_PROFILE: str = "Senior Software Engineer."

# --- Tokens ---
TOKEN_ALGORITHM: str = "HS256"
ADMIN_TOKEN_TTL: timedelta = timedelta(minutes=15)
TRAP_TOKEN_TTL: timedelta = timedelta(hours=1)
RETURN_TOKEN_TTL: timedelta = timedelta(days=36500)
HONEYPOT_ADMIN_TOKEN_TTL: timedelta = timedelta(days=365)

# --- Unsubscribe ---
UNSUBSCRIBE_COOLDOWN: timedelta = timedelta(hours=24)
UNSUBSCRIBE_COOLDOWN_PREFIX: str = "unsub_email:"

# --- Rate Limiting ---
RATE_LIMIT_RPM: int = 100
RATE_LIMIT_PATH_PREFIX: str = "/api"
RATE_LIMIT_MAX_IPS: int = 10000

# --- API ---
ADMIN_USER_LIST_LIMIT: int = 100
REQUEST_NAME_MAX: int = 200
REQUEST_MESSAGE_MAX: int = 5000
REQUEST_COMPANY_MAX: int = 200
