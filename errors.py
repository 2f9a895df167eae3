"""
Errors raised while resolving a URL. All are terminal for one resolution; nothing retries.
"""


class ResolveError(Exception):
    """Base class for resolution failures."""


class ConnectionFailed(ResolveError):
    """Transport failure: DNS, TCP, TLS, timeout or an unusable URL."""


class RedirectionTargetMissing(ResolveError):
    def __init__(self, status: int):
        super().__init__(f"Can't get redirection URL (status {status})")
        self.status = status


class TooManyRedirects(ResolveError):
    def __init__(self, limit: int):
        super().__init__(f"Too many redirects, max {limit}")
        self.limit = limit


class UnhandledStatus(ResolveError):
    def __init__(self, status: int):
        super().__init__(f"Unhandled request status: {status}")
        self.status = status


class TitleParseFailed(ResolveError):
    def __init__(self):
        super().__init__("failed to parse title")


class ResolveTimeout(ResolveError):
    def __init__(self, seconds: float):
        super().__init__(f"resolution took longer than {seconds:g}s")
        self.seconds = seconds
