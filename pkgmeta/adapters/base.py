"""Base adapter class and utilities."""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import requests
import structlog

from pkgmeta.cache import TTLCache, cache_key
from pkgmeta.errors import InputRequiredError, RegistryError
from pkgmeta.http import (
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    fetch_with_retry,
    get_session,
)
from pkgmeta.models import PackageMetadata, PackageSearchResult

log = structlog.get_logger(__name__)


def require_input(value: Optional[str], what: str) -> str:
    """Return ``value`` if it is non-blank, else raise ``InputRequiredError``."""
    if value is None or not value.strip():
        raise InputRequiredError(what)
    return value


def join_values(values: Optional[list[str]]) -> Optional[str]:
    return ", ".join(values) if values else None


def first_value(values: Optional[list[str]]) -> Optional[str]:
    return values[0] if values else None


class BaseAdapter(ABC):
    """Abstract base class for registry adapters.

    Subclasses implement ``_search`` and ``_fetch_metadata``; this class owns
    input checks, caching and the availability contract.
    """

    source_name: str = "unknown"
    source: str = "unknown"
    base_url: str = ""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        search_ttl: float = 15,
        metadata_ttl: float = 15,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session or get_session()
        self.search_cache: TTLCache[list[PackageSearchResult]] = TTLCache(search_ttl, clock=clock)
        self.metadata_cache: TTLCache[PackageMetadata] = TTLCache(metadata_ttl, clock=clock)
        self.metadata_ttl = metadata_ttl
        self.retries = retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def search(self, query: str) -> list[PackageSearchResult]:
        """Search the registry. Results are cached per lower-cased query."""
        query = require_input(query, "Search query")
        key = cache_key(self.source_name, "search", query)
        cached = self.search_cache.get(key)
        if cached is not None:
            return cached

        results = self._search(query)
        self.search_cache.set(key, results)
        log.debug("registry_search", source=self.source, query=query, results=len(results))
        return results

    def get_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        """Look up one package. ``None`` means the registry does not have it."""
        identifier = require_input(identifier, "Identifier")
        key = cache_key(self.source_name, "identifier", identifier)
        cached = self.metadata_cache.get(key)
        if cached is not None:
            return cached

        metadata = self._fetch_metadata(identifier)
        if metadata is not None:
            self.metadata_cache.set(key, metadata)
        return metadata

    def check_availability(self, identifier: str) -> bool:
        """Best-effort existence check; never raises."""
        try:
            return self.get_metadata(identifier) is not None
        except Exception as e:
            log.warning(
                "availability_check_failed", source=self.source, identifier=identifier, error=str(e)
            )
            return False

    def clear_cache(self) -> None:
        self.search_cache.clear()
        self.metadata_cache.clear()

    # ------------------------------------------------------------------
    # Registry specifics
    # ------------------------------------------------------------------

    @abstractmethod
    def _search(self, query: str) -> list[PackageSearchResult]:
        """Fetch and normalize search results for ``query``."""

    @abstractmethod
    def _fetch_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        """Fetch and normalize metadata; return ``None`` when not found."""

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _request(
        self,
        url: str,
        params: Any = None,
        headers: Optional[dict] = None,
    ) -> requests.Response:
        """GET ``url`` with transport retries; raise ``RegistryError`` if unreachable."""
        result = fetch_with_retry(
            self.session,
            "GET",
            url,
            params=params,
            headers=headers,
            timeout=self.timeout,
            retries=self.retries,
            delay=self.retry_delay,
            sleep=self._sleep,
        )
        if result.response is None:
            log.warning("registry_unreachable", source=self.source, url=url, error=result.error)
            raise RegistryError(self.source_name, result.error or "request failed")
        return result.response

    def _get_json(
        self,
        url: str,
        params: Any = None,
        headers: Optional[dict] = None,
        allow_not_found: bool = False,
    ) -> Any:
        """GET and decode JSON.

        Returns ``None`` for a 404 when ``allow_not_found`` is set; any other
        non-2xx status raises ``RegistryError``.
        """
        response = self._request(url, params=params, headers=headers)
        if response.status_code == 404 and allow_not_found:
            return None
        self._raise_for_status(response)
        return self._decode(response)

    def _raise_for_status(self, response: requests.Response) -> None:
        if not response.ok:
            log.warning(
                "registry_error_status",
                source=self.source,
                url=response.url,
                status=response.status_code,
            )
            raise RegistryError(
                self.source_name, response.reason or "", status=response.status_code
            )

    def _decode(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RegistryError(self.source_name, f"invalid JSON response: {e}") from e
