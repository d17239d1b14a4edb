"""HTTP session and retry helpers shared by adapters and verifiers."""

import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests
import structlog
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

log = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = "pkgmeta/0.1 (package metadata aggregator)"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0


def get_session(user_agent: str = DEFAULT_USER_AGENT) -> requests.Session:
    """Create a requests session for registry calls.

    The mounted urllib3 ``Retry`` is disabled: every request goes out once and
    any HTTP status comes back as a response for the caller to interpret.
    Connection and read failures are retried by :func:`fetch_with_retry`.
    """
    session = requests.Session()
    session.headers.update({"Accept": "application/json", "User-Agent": user_agent})
    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


@dataclass
class FetchResult:
    """Outcome of :func:`fetch_with_retry`: a response, or the last transport error."""

    response: Optional[requests.Response] = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.response is not None


def fetch_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    *,
    retries: int = DEFAULT_RETRIES,
    delay: float = DEFAULT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
) -> FetchResult:
    """Issue a request, retrying transport failures with linear backoff.

    Attempt ``i`` (1-based) that fails is followed by a ``i * delay`` pause.
    Any HTTP status, including 4xx/5xx, ends the loop: the caller decides what
    a status means. After ``retries`` failed attempts the result carries the
    last error and no response.
    """
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    last_error: Optional[str] = None
    for attempt in range(1, retries + 1):
        try:
            response = session.request(method, url, **kwargs)
            return FetchResult(response=response, attempts=attempt)
        except requests.RequestException as e:
            last_error = str(e) or e.__class__.__name__
            log.debug("http_attempt_failed", url=url, attempt=attempt, error=last_error)
            if attempt < retries:
                sleep(attempt * delay)

    log.warning("http_retries_exhausted", url=url, attempts=retries, error=last_error)
    return FetchResult(error=last_error, attempts=retries)
