"""
One resolution's HTTP state: cookies, current URL, redirect count.
Redirects are followed by hand (transport redirects are off) so cookies are captured on every hop
and the hop limit is enforced in one place. Loosely follows RFC 6265; no domain/path/expiry handling.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse

import aiohttp

import config
from errors import ConnectionFailed, RedirectionTargetMissing, TooManyRedirects, UnhandledStatus

log = logging.getLogger(__name__)

# New cookies accepted from a single response; the rest are dropped
MAX_NEW_COOKIES = 32


@dataclass(frozen=True)
class RequestParams:
    user_agent: str = config.DEFAULT_USER_AGENT
    timeout_s: int = 10
    redirect_limit: int = 10
    accept_lang: str = "en"

    @classmethod
    def from_config(cls) -> "RequestParams":
        return cls(
            user_agent=config.USER_AGENT,
            timeout_s=config.REQUEST_TIMEOUT,
            redirect_limit=config.REDIRECT_LIMIT,
            accept_lang=config.ACCEPT_LANG,
        )


def parse_set_cookie(header: str) -> list[str]:
    """
    The cookie of one Set-Cookie header value as ['name=value'], or [] when unusable.
    Only the first pair counts; everything after the first ';' is an attribute (RFC 6265 5.2).
    """
    pair = header.split(";", 1)[0]
    name, sep, value = pair.partition("=")
    name = name.strip()
    if not sep or not name:
        return []
    return [f"{name}={value.strip()}"]


@dataclass
class Session:
    """
    Use as `async with Session(params) as s: resp = await s.request(url)`.
    The returned response is open; the caller reads and releases it before the session closes.
    """

    params: RequestParams = field(default_factory=RequestParams)
    url: str = ""
    cookies: list[str] = field(default_factory=list)
    request_count: int = 0
    _client: aiohttp.ClientSession | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> "Session":
        timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=self.params.timeout_s, sock_read=self.params.timeout_s
        )
        self._client = aiohttp.ClientSession(
            timeout=timeout,
            cookie_jar=aiohttp.DummyCookieJar(),
            auto_decompress=False,
            skip_auto_headers=("Accept",),
        )
        return self

    async def __aexit__(self, *_):
        if self._client:
            await self._client.close()
            self._client = None

    def cookie_header(self) -> str:
        return "; ".join(self.cookies)

    def add_cookies(self, set_cookie_headers: list[str]) -> int:
        """Add unseen cookies from one response, at most MAX_NEW_COOKIES. Returns number added."""
        added = 0
        for header in set_cookie_headers:
            for cookie in parse_set_cookie(header):
                if added == MAX_NEW_COOKIES:
                    return added
                if cookie in self.cookies:
                    continue
                self.cookies.append(cookie)
                added += 1
        return added

    def _headers(self) -> dict[str, str]:
        return {
            "Cookie": self.cookie_header(),
            "User-Agent": self.params.user_agent,
            "Accept-Language": self.params.accept_lang,
            "Accept-Encoding": "identity",
        }

    async def _get(self, url: str) -> aiohttp.ClientResponse:
        if self._client is None:
            raise RuntimeError("Session used outside 'async with'")
        try:
            return await self._client.get(url, headers=self._headers(), allow_redirects=False)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ConnectionFailed(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__) from e

    async def request(self, url: str) -> aiohttp.ClientResponse:
        """GET url, following redirects by hand. Returns the first 2xx response with its body unread."""
        self.url = url
        self.request_count = 0

        while True:
            resp = await self._get(self.url)
            log.debug("[%d] <%s> -> [%s]", self.request_count, self.url, resp.status)

            if 300 <= resp.status < 400:
                added = self.add_cookies(resp.headers.getall("Set-Cookie", []))
                if added:
                    log.debug("added %d cookies", added)
                location = resp.headers.get("Location")
                resp.release()
                target = _redirect_target(self.url, location)
                if target is None:
                    raise RedirectionTargetMissing(resp.status)
                self.url = target
                self.request_count += 1
                if self.request_count > self.params.redirect_limit:
                    raise TooManyRedirects(self.params.redirect_limit)
            elif 200 <= resp.status < 300:
                log.debug("total redirections: %d, total cookies: %d", self.request_count, len(self.cookies))
                return resp
            else:
                resp.release()
                raise UnhandledStatus(resp.status)


def _redirect_target(current: str, location: str | None) -> str | None:
    """Absolute http(s) URL for a Location header, or None if missing/unusable."""
    if not location or not location.strip():
        return None
    try:
        target = urljoin(current, location.strip())
        parsed = urlparse(target)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return target
