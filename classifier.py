"""
Read a response body in fixed chunks and describe it as soon as possible.
After every chunk the whole prefix read so far is re-examined; reading stops at the first
result or after CHUNKS_MAX chunks, whatever the server still has to send.
"""
import asyncio
import logging
import sys

import aiohttp

import title
from errors import ConnectionFailed, TitleParseFailed

log = logging.getLogger(__name__)

CHUNK_BYTES = 100 * 1024  # 100 KB
CHUNKS_MAX = 10  # 1000 KB


def media_type(content_type: str | None) -> tuple[str, str] | None:
    """('type', 'subtype') in lower case, or None if missing/unparsable. Parameters are ignored."""
    if not content_type:
        return None
    essence = content_type.split(";", 1)[0].strip().lower()
    main, sep, sub = essence.partition("/")
    if not sep or not main or not sub or " " in essence:
        return None
    return main, sub


class _BodyBrokenOff(Exception):
    """Body ended before its declared length; partial holds what arrived of the current chunk."""

    def __init__(self, partial: bytes):
        super().__init__(f"body ended early after {len(partial)} B")
        self.partial = partial


async def read_chunk(resp, size: int = CHUNK_BYTES) -> bytes:
    """Read up to size bytes; fewer only when the body ends."""
    buf = b""
    while len(buf) < size:
        try:
            data = await resp.content.read(size - len(buf))
        except aiohttp.ClientPayloadError as e:
            raise _BodyBrokenOff(buf) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ConnectionFailed(f"body read failed: {e!r}") from e
        if not data:
            break
        buf += data
    return buf


def describe(content_type: str | None, body: bytes, size: str) -> str | None:
    """Title or fallback metadata for the bytes read so far."""
    contents = body.decode("utf-8", errors="replace")
    mtype = media_type(content_type)
    if mtype is None or mtype == ("text", "html"):
        return title.parse_title(contents)
    if mtype[0] == "image":
        return (
            title.parse_title(contents)
            or title.get_image_metadata(body)
            or title.get_mime(content_type.strip(), size)
        )
    return title.parse_title(contents) or title.get_mime(content_type.strip(), size)


async def get_title(resp, dump: bool = False) -> str:
    """Title or metadata for an open response. Raises TitleParseFailed."""
    content_type = resp.headers.get("Content-Type")
    declared = resp.content_length

    if log.isEnabledFor(logging.DEBUG):
        for k, v in resp.headers.items():
            log.debug("[%s] %s", k, v)

    body = b""
    for i in range(1, CHUNKS_MAX + 1):
        try:
            chunk = await read_chunk(resp)
        except _BodyBrokenOff as e:
            # What arrived is classified once; nothing more is read
            body += e.partial
            size = title.human_size(declared if declared is not None else len(body))
            result = describe(content_type, body, size) if e.partial else None
            if result:
                log.debug("title found in truncated body (%d B)", len(body))
                return result
            raise ConnectionFailed(f"body read failed: {e.__cause__!r}") from e.__cause__
        if dump:
            sys.stdout.write(chunk.decode("utf-8", errors="replace"))
        body += chunk

        size = title.human_size(declared if declared is not None else len(body))
        result = describe(content_type, body, size)
        if result:
            log.debug("title found in %d chunks (%d B)", i, len(body))
            return result
        if len(chunk) < CHUNK_BYTES:
            break

    raise TitleParseFailed()
