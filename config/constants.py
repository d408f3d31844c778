"""
Centralized constants for the batch translation client.
All magic numbers live here.
"""

# ===========================================
# SERVER / TRANSPORT
# ===========================================
API_BASE_URL = 'http://localhost:8080/api'
API_TIMEOUT_SECONDS = 30              # per HTTP request (upload, list, delete)
TRANSLATE_TIMEOUT_SECONDS = None      # start request blocks until the server finishes

# ===========================================
# PROGRESS CHANNEL
# ===========================================
CHANNEL_TIMEOUT_SECONDS = 1800        # 30 minutes - server-side emitter lifetime
PREPARING_MESSAGE = 'Preparing translation...'
PROGRESS_MIN = 0
PROGRESS_MAX = 100

# ===========================================
# FILE HANDLING
# ===========================================
ALLOWED_EXTENSIONS = ['.asta', '.astah', '.svg']
TRANSLATED_SUFFIX = '_translated'
DOWNLOAD_DIR = 'data/translated'

# ===========================================
# LOGGING
# ===========================================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE = 'logs/batch_translate.log'
LOG_MAX_SIZE_MB = 10
LOG_BACKUP_COUNT = 5
