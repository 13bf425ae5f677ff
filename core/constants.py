# Retry Settings
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 3.0  # Seconds between attempts

# HTTP Settings
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_PARALLEL_CHECKS = 5

# Diff Settings
DEFAULT_DIFF_TIMEOUT = 10.0  # Seconds, enforced on the git subprocess
DIFF_TEMP_PREFIX = "sitewatcher_"

# Transform Settings
BODY_EXCERPT_LENGTH = 500  # Bytes of body shown in transform errors

# Notification Settings
WEBHOOK_TIMEOUT = 10.0
WEBHOOK_BODY_METHODS = ("POST", "PUT", "PATCH")
LOG_WEBHOOK_THROTTLE = 60  # Seconds between identical log alerts

# Storage
WATCHES_TABLE = "watches"

# Default Configuration Values
DEFAULT_SCRAPE_INTERVAL = 600
DEFAULT_TARGETS_PATH = "targets.json"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "sitewatcher.log"
DEFAULT_LOG_FORMAT = "text"  # text or json
DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_LOG_BACKUP_COUNT = 5

# Soft error markers emitted by reverse proxies and stock error pages.
# Mostly taken from nginx's ngx_http_special_response.c
SOFT_ERROR_PATTERNS = (
    "504 - Gateway Time-out",
    "404 - Not Found",
    "503 - Service Unavailable",
    "<h1>503 Service Unavailable</h1>",
    "<h1>403 Forbidden</h1>",
    "<h1>404 Not Found</h1>",
    "<h1>405 Not Allowed</h1>",
    "<h1>429 Too Many Requests</h1>",
    "<h1>500 Internal Server Error</h1>",
    "<h1>502 Bad Gateway</h1>",
    "<h1>503 Service Temporarily Unavailable</h1>",
    "Faithfully yours, nginx.",
    "<!-- a padding to disable MSIE and Chrome friendly error page -->",
)

# HTML diff styling per line mode
DIFF_LINE_STYLES = {
    "unchanged": "color: #24292f;",
    "added": "background-color: #e6ffec; color: #116329;",
    "deleted": "background-color: #ffebe9; color: #82071e;",
    "metadata": "background-color: #ddf4ff; color: #57606a;",
}
