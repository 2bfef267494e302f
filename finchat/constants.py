"""Project-wide constants shared by settings, models and migrations."""

from __future__ import annotations

DB_SCHEMA = "finchat"

# Conversation state
PENDING_CONTEXT_TTL_SECONDS = 600
DUPLICATE_ID_LENGTH = 6

# Cascade thresholds
CORRECTION_MIN_CONFIDENCE = 0.5
LOCAL_ACCEPT_CONFIDENCE = 0.8

# Learned patterns: retired once used this often with a success rate below the floor
PATTERN_RETIRE_MIN_USES = 10
PATTERN_RETIRE_SUCCESS_RATE = 0.3

# Installment constraints
MIN_INSTALLMENTS = 1
MAX_INSTALLMENTS = 60

# Duplicate detection
DUPLICATE_WINDOW_HOURS = 24
DUPLICATE_LOOKBACK_LIMIT = 50
DUPLICATE_AMOUNT_TOLERANCE_PERCENT = 5.0
DUPLICATE_WARN_THRESHOLD = 0.7
DUPLICATE_BLOCK_THRESHOLD = 0.95

DEFAULT_LOCALE = "pt-br"
SUPPORTED_LOCALES = ("pt-br", "en")
