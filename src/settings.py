"""Static configuration for the chat hotlink rehoster.

All user-editable settings (feature flags, limits, site bases, storage,
notifications, logging) live in a single JSON file for quick edits without
touching Python. Secrets come from the environment via .env.
"""

import json
import os

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# CONFIG_PATH may point elsewhere, e.g. one config per site.
CONFIG_PATH = os.getenv("CONFIG_PATH") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Feature flags: both must be on for any run to do work.
# - DOWNLOAD_REMOTE_IMAGES_TO_LOCAL: site-wide rehosting switch
# - CHAT_HOTLINK_IMAGES_ENABLED: chat-specific switch
_rehost = _CONFIG.get("rehost", {})
DOWNLOAD_REMOTE_IMAGES_TO_LOCAL = bool(_rehost.get("download_remote_images_to_local", True))
CHAT_HOTLINK_IMAGES_ENABLED = bool(_rehost.get("chat_hotlink_images_enabled", True))
MAX_IMAGE_SIZE_KB = int(_rehost.get("max_image_size_kb", 4096))
READ_TIMEOUT = float(_rehost.get("read_timeout", 15))
FORCE_HTTPS = bool(_rehost.get("force_https", False))
# Immediate mode runs jobs inline and skips the per-message lock.
RUN_IMMEDIATELY = bool(_rehost.get("run_immediately", False))
BLOCKED_DOMAINS = list(_rehost.get("blocked_domains", []))
DOWNLOAD_RETRIES = int(_rehost.get("retries", 3))
RETRY_DELAY = float(_rehost.get("retry_delay", 1))
LOCK_TTL_SECONDS = float(_rehost.get("lock_ttl_seconds", 120))

# Sources starting with any of these are already local and never downloaded.
_site = _CONFIG.get("site", {})
BASE_URL = str(_site.get("base_url", "")).rstrip("/")
ASSET_HOST = str(_site.get("asset_host") or "").rstrip("/")
EXTERNAL_EMOJI_URL = str(_site.get("external_emoji_url") or "").rstrip("/")

_storage = _CONFIG.get("storage", {})
DB_PATH = _project_path(_storage.get("db_path", "data/chat.db"))
UPLOADS_DIR = _project_path(_storage.get("uploads_dir", "data/uploads"))
LOCKS_DIR = _project_path(_storage.get("locks_dir", "data/locks"))
UPLOADS_URL_PREFIX = _storage.get("uploads_url_prefix", "/uploads")
AUTHORIZED_EXTENSIONS = list(
    _storage.get("authorized_extensions", ["jpg", "jpeg", "png", "gif", "webp", "avif", "bmp", "ico", "svg"])
)

# Notification method switches publisher adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("method", "log")
# Webhook URL is only required when method=webhook; its token lives in .env.
WEBHOOK_URL = _notifications.get("webhook_url")

_jobs = _CONFIG.get("jobs", {})
JOB_WORKERS = int(_jobs.get("workers", 2))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
