"""
Centralized constants for the translation queue.
All magic numbers in one place; runtime overrides live in settings.py.
"""

# ===========================================
# SCHEDULER
# ===========================================
QUEUE_MAX_CONCURRENT = 1              # one job in flight, provider is the bottleneck
QUEUE_IDLE_POLL_SECONDS = 1.0         # idle wake-up interval
AVERAGE_JOB_SECONDS = 120.0           # ETA heuristic: 2 minutes per job
RETENTION_SECONDS = 3600              # terminal records kept for 1 hour
SWEEP_INTERVAL_SECONDS = 3600         # retention sweeper period
STOP_GRACE_SECONDS = 30.0             # in-flight grace period on shutdown
SIMPLE_JOB_TOTAL = 2                  # progress total for category/course/quiz

# ===========================================
# RATE LIMITING
# ===========================================
INITIAL_BATCH_SIZE = 3                # parallel work-units per chunk
COOLDOWN_BASE_SECONDS = 10.0          # wait base while throttled
THROTTLE_CLEAR_SECONDS = 30.0         # quiet period before throttled clears
MAX_BACKOFF_MULTIPLIER = 8.0
BACKOFF_GROWTH = 1.5                  # multiplier step on throttle
BACKOFF_DECAY = 0.8                   # multiplier step on success

# ===========================================
# EXTERNAL CALLS
# ===========================================
RETRY_BASE_SECONDS = 5.0
RETRY_JITTER_SECONDS = 2.0
MAX_CALL_RETRIES = 3
CALL_TIMEOUT_SECONDS = 120.0
CALL_DELAY_SECONDS = 3.0              # between units when sequential
THROTTLED_CALL_DELAY_SECONDS = 5.0
CHUNK_DELAY_SECONDS = 3.0             # between chunks
THROTTLED_CHUNK_DELAY_SECONDS = 10.0

# ===========================================
# LLM
# ===========================================
LLM_MAX_TOKENS = 1024
LLM_TEMPERATURE = 0.0

# ===========================================
# CONTENT API
# ===========================================
CONTENT_API_URL = "https://quizefactor.cachetechs.com"
CONTENT_API_TIMEOUT = 120.0
CONTENT_API_BATCH_SIZE = 25           # questions per upload request
CONTENT_API_FALLBACK_BATCH_SIZE = 5   # retry size after a server error
CONTENT_API_OK_STATUS = "00"

# ===========================================
# LANGUAGES
# ===========================================
SUPPORTED_LANGUAGES = frozenset({
    "en", "es", "fr", "de", "it",
    "pt", "ru", "zh", "ja", "ko",
})
SOURCE_LANGUAGE = "en"

# ===========================================
# LOGGING
# ===========================================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE = 'logs/translation_queue.log'
LOG_MAX_SIZE_MB = 10
LOG_BACKUP_COUNT = 5
