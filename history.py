"""
URL history persisted to JSON: first post of each URL (for "already posted" replies)
and resolution failure records. Writes are serialized so handler threads can share it.
"""
import json
import logging
import threading
from datetime import datetime
from pathlib import Path

import config

log = logging.getLogger(__name__)

_MAX_POSTS = 50000
_MAX_ERRORS = 1000

_posts: dict[str, dict] = {}
_errors: list[dict] = []
_loaded = False
_lock = threading.Lock()


def enabled() -> bool:
    return bool(config.HISTORY and config.HISTORY_FILE)


def _path() -> Path | None:
    if not enabled():
        return None
    return Path(config.HISTORY_FILE)


def _now() -> str:
    return datetime.now(config.TZ).strftime("%Y-%m-%d %H:%M:%S")


def _load() -> None:
    global _loaded, _posts, _errors
    if _loaded:
        return
    _loaded = True
    p = _path()
    if not p or not p.exists():
        return
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            if isinstance(data.get("posts"), dict):
                _posts = dict(list(data["posts"].items())[-_MAX_POSTS:])
            if isinstance(data.get("errors"), list):
                _errors = data["errors"][-_MAX_ERRORS:]
        log.info("Loaded history from %s (%d posts, %d errors)", p, len(_posts), len(_errors))
    except Exception as e:
        log.warning("Could not load history from %s: %s", p, e)


def _save() -> None:
    """Write the whole store. Raises OSError on failure."""
    p = _path()
    if not p:
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps({"posts": _posts, "errors": _errors}, ensure_ascii=False), encoding="utf-8")


def check_prepost(url: str) -> dict | None:
    """Previous post of url: {title, user, channel, time_created}, or None."""
    if not enabled() or not url:
        return None
    with _lock:
        _load()
        entry = _posts.get(url)
        return dict(entry) if entry else None


def add_log(title: str, url: str, user: str, channel: str) -> None:
    """Record the first post of url."""
    global _posts
    if not enabled():
        return
    with _lock:
        _load()
        if url in _posts:
            return
        _posts[url] = {"title": title, "user": user, "channel": channel, "time_created": _now()}
        if len(_posts) > _MAX_POSTS:
            _posts = dict(list(_posts.items())[-_MAX_POSTS:])
        _save()


def log_error(url: str, error_info: str) -> None:
    """Record a failed resolution with its serialized diagnostics."""
    global _errors
    if not enabled():
        return
    with _lock:
        _load()
        _errors.append({"url": url, "error_info": error_info, "time_created": _now()})
        if len(_errors) > _MAX_ERRORS:
            _errors = _errors[-_MAX_ERRORS:]
        _save()


def recent_errors(n: int = 20) -> list[dict]:
    """The last n failure records, newest last."""
    if not enabled():
        return []
    with _lock:
        _load()
        return [dict(e) for e in _errors[-n:]]
