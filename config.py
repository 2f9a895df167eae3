"""
Configuration from environment. Call load_dotenv() before importing this module.
"""
import os
from zoneinfo import ZoneInfo

VERSION = "0.2.0"

# Sent on every outbound request unless RESOLVER_USER_AGENT overrides it
DEFAULT_USER_AGENT = f"Mozilla/5.0 line-title-bot/{VERSION}"


def _flag(key: str, default: str) -> bool:
    return (os.getenv(key, default) or "").strip().lower() in ("1", "true", "yes")


# Timestamps in history records
TZ = ZoneInfo((os.getenv("BOT_TZ", "UTC") or "UTC").strip())

# LINE
LINE_CHANNEL_SECRET = (os.getenv("LINE_CHANNEL_SECRET") or "").strip()
LINE_CHANNEL_ACCESS_TOKEN = (os.getenv("LINE_CHANNEL_ACCESS_TOKEN") or "").strip()

# "reply" uses the webhook reply token; "push" sends a new message to the chat.
REPLY_MODE = (os.getenv("REPLY_MODE", "reply") or "reply").strip().lower()

# Request parameters (one resolution)
USER_AGENT = (os.getenv("RESOLVER_USER_AGENT") or DEFAULT_USER_AGENT).strip()
ACCEPT_LANG = (os.getenv("RESOLVER_ACCEPT_LANG", "en") or "en").strip()
REQUEST_TIMEOUT = int(os.getenv("RESOLVER_TIMEOUT", "10") or "10")
REDIRECT_LIMIT = int(os.getenv("RESOLVER_REDIRECT_LIMIT", "10") or "10")

# Wall-clock cap on one whole resolution (redirects + chunk reads), seconds
RESOLVE_TIMEOUT = float(os.getenv("RESOLVE_TIMEOUT", "30") or "30")

# Fallbacks when a page has no title
REPORT_METADATA = _flag("REPORT_METADATA", "true")
REPORT_MIME = _flag("REPORT_MIME", "true")

# History: pre-post detection and failure records. Empty file = disabled.
HISTORY = _flag("HISTORY", "true")
HISTORY_FILE = (os.getenv("HISTORY_FILE", "data/history.json") or "").strip()

# Chat replies
MASK_HIGHLIGHTS = _flag("MASK_HIGHLIGHTS", "true")
URL_LIMIT = int(os.getenv("URL_LIMIT", "5") or "5")
REPLY_MAX_BYTES = int(os.getenv("REPLY_MAX_BYTES", "510") or "510")

# Keys we consider required for the webhook to work
REQUIRED_ENV_KEYS = ("LINE_CHANNEL_SECRET", "LINE_CHANNEL_ACCESS_TOKEN")


def get_missing_config() -> list[str]:
    """Return required keys that are unset (for /health)."""
    return [k for k in REQUIRED_ENV_KEYS if not (os.getenv(k) or "").strip()]
