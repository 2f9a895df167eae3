"""
Resolve a URL to a title: Session (cookies, redirects) then chunked classification.
Classification failures are recorded in history with a snapshot of the response.
"""
import asyncio
import json
import logging
from dataclasses import asdict, dataclass, field
from http import HTTPStatus

import classifier
import config
import history
from errors import ResolveError, ResolveTimeout
from http_session import RequestParams, Session

log = logging.getLogger(__name__)


@dataclass
class ErrorInfo:
    error: str = ""
    status: int = 0
    reason: str = "UNKNOWN"
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_response(cls, err: Exception, resp) -> "ErrorInfo":
        try:
            reason = HTTPStatus(resp.status).phrase
        except ValueError:
            reason = "UNKNOWN"
        headers: dict[str, str] = {}
        for k, v in resp.headers.items():
            headers[k] = v
        return cls(error=repr(err), status=resp.status, reason=reason, headers=headers)

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False, sort_keys=True)


def log_error(url: str, err: Exception, resp) -> None:
    """Send an ErrorInfo for a failed response to history. Never raises."""
    if not history.enabled():
        return
    info = ErrorInfo.from_response(err, resp)
    try:
        history.log_error(url, info.to_json())
    except Exception as e:
        log.error("history error: %s", e)
        return
    log.info("added error record to history")


async def resolve_url_async(url: str, params: RequestParams | None = None, dump: bool = False) -> str:
    """Title or metadata for url. Raises ResolveError subclasses."""
    params = params or RequestParams.from_config()
    async with Session(params) as session:
        resp = await session.request(url)
        try:
            return await classifier.get_title(resp, dump=dump)
        except ResolveError as err:
            log_error(url, err, resp)
            raise
        finally:
            resp.release()


def resolve_url(url: str, params: RequestParams | None = None, dump: bool = False) -> str:
    """Sync wrapper with an overall deadline (for handler threads and the CLI)."""
    timeout = config.RESOLVE_TIMEOUT

    async def _run() -> str:
        try:
            return await asyncio.wait_for(resolve_url_async(url, params, dump=dump), timeout)
        except asyncio.TimeoutError:
            raise ResolveTimeout(timeout) from None

    return asyncio.run(_run())
