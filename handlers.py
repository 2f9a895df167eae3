"""
LINE webhook text handler: find URLs in a message, resolve their titles, reply.
"""
import logging
import re
import unicodedata
from urllib.parse import urlparse

from linebot.models import MessageEvent, TextMessage, TextSendMessage

import config
import history
import resolver

log = logging.getLogger(__name__)

# Set by register(); handlers use this
line_bot_api = None

# Skip duplicate webhook delivery (LINE may retry)
_processed_message_ids: set[str] = set()
_MAX_PROCESSED_IDS = 10000

# Unsafe characters, from RFC 1738
_UNSAFE = re.compile(r"[{}|\\^~\[\]`]")

_ZWNJ = "\u200c"


def is_candidate_url(token: str) -> bool:
    """Absolute http(s) URL with a host and no unsafe characters."""
    if _UNSAFE.search(token):
        return False
    try:
        u = urlparse(token)
    except ValueError:
        return False
    return u.scheme in ("http", "https") and bool(u.netloc)


def extract_urls(text: str) -> list[str]:
    """Whitespace-separated tokens that are candidate URLs, in order."""
    return [token for token in (text or "").split() if is_candidate_url(token)]


def create_non_highlighting_name(name: str) -> str:
    """Insert a zero-width non-joiner after the first character (and its combining marks)."""
    i = 1 if name else 0
    while i < len(name) and unicodedata.combining(name[i]):
        i += 1
    return name[:i] + _ZWNJ + name[i:]


def utf8_truncate(s: str, n: int) -> str:
    """Longest prefix of s that fits in n UTF-8 bytes."""
    out = []
    used = 0
    for c in s:
        used += len(c.encode("utf-8"))
        if used > n:
            break
        out.append(c)
    return "".join(out)


def format_reply(title: str, previous: dict | None) -> str:
    if not previous:
        return utf8_truncate(f"⤷ {title}", config.REPLY_MAX_BYTES)
    user = previous.get("user") or ""
    if config.MASK_HIGHLIGHTS:
        user = create_non_highlighting_name(user)
    msg = f"⤷ {title} → {previous.get('time_created', '')} {user} ({previous.get('channel', '')})"
    return utf8_truncate(msg, config.REPLY_MAX_BYTES)


def _source_ids(source) -> tuple[str | None, str]:
    """(user_id, channel) for an event source; channel is the group/room id or 'direct'."""
    user_id = getattr(source, "user_id", None)
    channel = getattr(source, "group_id", None) or getattr(source, "room_id", None) or "direct"
    return user_id, channel


def _display_name(user_id: str | None) -> str:
    if not user_id:
        return "unknown"
    if line_bot_api:
        try:
            return line_bot_api.get_profile(user_id).display_name or user_id
        except Exception as e:
            log.debug("Profile lookup for %s failed: %s", user_id, e)
    return user_id


def process_text(text: str, user: str, channel: str) -> list[str]:
    """
    Resolve URLs in text; return reply lines, at most config.URL_LIMIT.
    Failed URLs are logged and skipped and do not count toward the limit.
    """
    lines = []
    for url in extract_urls(text):
        if len(lines) >= config.URL_LIMIT:
            break
        try:
            title = resolver.resolve_url(url)
        except Exception as e:
            log.warning("Resolve %s failed: %s", url[:80], e)
            continue
        try:
            previous = history.check_prepost(url)
            if previous is None:
                history.add_log(title, url, user, channel)
        except Exception:
            log.exception("History lookup failed for %s", url[:80])
            continue
        lines.append(format_reply(title, previous))
    return lines


def _send(event, target: str | None, lines: list[str]) -> None:
    if not lines or not line_bot_api:
        return
    message = TextSendMessage(text="\n".join(lines))
    if config.REPLY_MODE == "push" and target:
        line_bot_api.push_message(target, message)
    else:
        line_bot_api.reply_message(event.reply_token, message)


def _handle_text(event):
    text = (event.message.text or "").strip()
    if not text:
        return
    message_id = getattr(event.message, "id", None)
    if message_id:
        if message_id in _processed_message_ids:
            log.info("Skip duplicate message_id: %s", message_id)
            return
        if len(_processed_message_ids) >= _MAX_PROCESSED_IDS:
            _processed_message_ids.clear()
        _processed_message_ids.add(message_id)

    user_id, channel = _source_ids(getattr(event, "source", None))
    if not extract_urls(text):
        return
    lines = process_text(text, _display_name(user_id), channel)
    target = user_id if channel == "direct" else channel
    try:
        _send(event, target, lines)
    except Exception:
        log.exception("Reply failed")


def register(handler, api):
    """Register LINE event handlers. Call once after creating WebhookHandler and LineBotApi."""
    global line_bot_api
    line_bot_api = api
    handler.add(MessageEvent, message=TextMessage)(_handle_text)
