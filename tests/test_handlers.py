"""Tests for handlers module (URL extraction, reply formatting, text events)."""
from unittest.mock import MagicMock

import pytest

import handlers
from errors import TitleParseFailed


@pytest.fixture(autouse=True)
def reply_settings(monkeypatch):
    monkeypatch.setattr("handlers.config.URL_LIMIT", 5)
    monkeypatch.setattr("handlers.config.REPLY_MAX_BYTES", 510)
    monkeypatch.setattr("handlers.config.MASK_HIGHLIGHTS", True)
    monkeypatch.setattr("handlers.config.REPLY_MODE", "reply")
    monkeypatch.setattr("handlers._processed_message_ids", set())


@pytest.fixture
def fake_history(monkeypatch):
    posts = {}
    monkeypatch.setattr("handlers.history.check_prepost", lambda url: posts.get(url))

    def add_log(title, url, user, channel):
        posts[url] = {"title": title, "user": user, "channel": channel, "time_created": "2024-01-02 03:04:05"}

    monkeypatch.setattr("handlers.history.add_log", add_log)
    return posts


def test_utf8_truncate():
    assert handlers.utf8_truncate("", 10) == ""
    assert handlers.utf8_truncate("  ", 1) == " "
    assert handlers.utf8_truncate("♥", 3) == "♥"
    assert handlers.utf8_truncate("♥", 2) == ""
    assert handlers.utf8_truncate("\u0306\u0306", 2) == "\u0306"
    assert handlers.utf8_truncate("hello \U0001F603 world!", 9) == "hello "


def test_create_non_highlighting_name():
    assert handlers.create_non_highlighting_name("") == "\u200c"
    assert handlers.create_non_highlighting_name("foo") == "f\u200coo"
    assert handlers.create_non_highlighting_name("e\u0301ve") == "e\u0301\u200cve"


def test_is_candidate_url():
    assert handlers.is_candidate_url("http://z.zzz/")
    assert handlers.is_candidate_url("https://example.com/a?b=c")
    for ch in "{}|\\^~[]`":
        assert not handlers.is_candidate_url(f"http://z.zzz/{ch}")
    assert not handlers.is_candidate_url("ftp://example.com/")
    assert not handlers.is_candidate_url("example.com")
    assert not handlers.is_candidate_url("https://")


def test_extract_urls():
    text = "see http://a.test/ and https://b.test/x ftp://c.test/ http://d.test/"
    assert handlers.extract_urls(text) == ["http://a.test/", "https://b.test/x", "http://d.test/"]
    assert handlers.extract_urls("") == []


def test_format_reply():
    assert handlers.format_reply("Title", None) == "⤷ Title"
    prev = {"user": "bob", "channel": "C1", "time_created": "2024-01-02 03:04:05"}
    assert handlers.format_reply("Title", prev) == "⤷ Title → 2024-01-02 03:04:05 b\u200cob (C1)"


def test_format_reply_unmasked_and_truncated(monkeypatch):
    monkeypatch.setattr("handlers.config.MASK_HIGHLIGHTS", False)
    monkeypatch.setattr("handlers.config.REPLY_MAX_BYTES", 12)
    prev = {"user": "bob", "channel": "C1", "time_created": "t"}
    # "→" is 3 bytes and would end at byte 13
    assert handlers.format_reply("Title", prev) == "⤷ Title "
    assert len(handlers.format_reply("x" * 100, None).encode("utf-8")) <= 12


def test_process_text_prepost(monkeypatch, fake_history):
    monkeypatch.setattr("handlers.resolver.resolve_url", lambda url: f"T{url[-2]}")
    lines = handlers.process_text("http://a.test/1/ http://b.test/2/", "alice", "G1")
    assert lines == ["⤷ T1", "⤷ T2"]
    lines = handlers.process_text("again http://a.test/1/", "bob", "G1")
    assert lines == ["⤷ T1 → 2024-01-02 03:04:05 a\u200clice (G1)"]


def test_process_text_skips_failures(monkeypatch, fake_history):
    def resolve(url):
        if "bad" in url:
            raise TitleParseFailed()
        return "good"

    monkeypatch.setattr("handlers.resolver.resolve_url", resolve)
    assert handlers.process_text("http://bad.test/ http://ok.test/", "alice", "direct") == ["⤷ good"]


def test_url_limit_counts_replies(monkeypatch, fake_history):
    tried = []

    def resolve(url):
        tried.append(url)
        if "bad" in url:
            raise TitleParseFailed()
        return url.split("/")[2]

    monkeypatch.setattr("handlers.resolver.resolve_url", resolve)
    monkeypatch.setattr("handlers.config.URL_LIMIT", 1)
    text = "http://bad.test/ http://ok.test/ http://more.test/"
    assert handlers.process_text(text, "alice", "direct") == ["⤷ ok.test"]
    # a failure does not use up the limit; nothing past the limit is fetched
    assert tried == ["http://bad.test/", "http://ok.test/"]

    monkeypatch.setattr("handlers.config.URL_LIMIT", 2)
    tried.clear()
    lines = handlers.process_text("http://a.test/ http://b.test/ http://c.test/", "alice", "direct")
    assert lines == ["⤷ a.test", "⤷ b.test"]
    assert tried == ["http://a.test/", "http://b.test/"]


def _event(text: str, message_id: str = "m1", group_id: str | None = None):
    event = MagicMock()
    event.message.text = text
    event.message.id = message_id
    event.reply_token = "token"
    event.source = MagicMock(spec=["user_id", "group_id"] if group_id else ["user_id"])
    event.source.user_id = "U1"
    if group_id:
        event.source.group_id = group_id
    return event


def test_handle_text_replies_once(monkeypatch, fake_history):
    api = MagicMock()
    api.get_profile.return_value = MagicMock(display_name="Alice")
    monkeypatch.setattr("handlers.line_bot_api", api)
    monkeypatch.setattr("handlers.resolver.resolve_url", lambda url: "Example")

    handlers._handle_text(_event("look http://example.com/", group_id="G9"))
    handlers._handle_text(_event("look http://example.com/"))  # duplicate delivery

    assert api.reply_message.call_count == 1
    token, message = api.reply_message.call_args[0]
    assert token == "token"
    assert message.text == "⤷ Example"
    assert fake_history["http://example.com/"]["user"] == "Alice"
    assert fake_history["http://example.com/"]["channel"] == "G9"


def test_handle_text_push_mode(monkeypatch, fake_history):
    api = MagicMock()
    api.get_profile.side_effect = RuntimeError("no profile")
    monkeypatch.setattr("handlers.line_bot_api", api)
    monkeypatch.setattr("handlers.config.REPLY_MODE", "push")
    monkeypatch.setattr("handlers.resolver.resolve_url", lambda url: "Example")

    handlers._handle_text(_event("http://example.com/", message_id="m2"))

    api.push_message.assert_called_once()
    target, message = api.push_message.call_args[0]
    assert target == "U1"
    assert message.text == "⤷ Example"
    assert fake_history["http://example.com/"]["user"] == "U1"


def test_handle_text_without_urls(monkeypatch):
    api = MagicMock()
    monkeypatch.setattr("handlers.line_bot_api", api)
    handlers._handle_text(_event("just chatting", message_id="m3"))
    api.reply_message.assert_not_called()
    api.get_profile.assert_not_called()
