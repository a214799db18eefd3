"""Centralized constants for studylab.

SM-2 bounds and time units live here so the scheduler, the adapters and the
tests all agree on a single source of truth.
"""

# ---------- Time ----------
MS_PER_SECOND = 1000
MS_PER_DAY = 24 * 60 * 60 * MS_PER_SECOND

# ---------- SM-2 ease factor ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5

# ---------- SM-2 intervals (days) ----------
FIRST_INTERVAL = 1
SECOND_INTERVAL = 6
FAILED_INTERVAL = 1
MAX_INTERVAL = 365

# ---------- Quality scale ----------
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3  # quality below this is a lapse
GREAT_FEEDBACK_QUALITY = 4
GOOD_FEEDBACK_QUALITY = 2

# ---------- Sentinels ----------
NEVER_REVIEWED = 0

# ---------- Identifiers ----------
CARD_ID_PREFIX = "card_"
DECK_ID_PREFIX = "deck_"
