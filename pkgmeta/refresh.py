"""Package refresh orchestration.

Re-checks every stored package of every API-backed source against its
registry, persisting version/availability changes and one log row per source.
Sources and packages are processed sequentially; one failing package or
source never aborts the run.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

import structlog

from pkgmeta.config import Settings
from pkgmeta.errors import PkgMetaError
from pkgmeta.models import PackageMetadata, PackageRecord, RefreshLog, RefreshResult, SourceRecord
from pkgmeta.store import PackageStore
from pkgmeta.strategies import RefreshStrategy, get_refresh_strategy

log = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _error_text(error: Exception) -> str:
    return str(error) or "Unknown error"


class PackageRefresher:
    """Refresh stored packages through the strategy registry.

    Args:
        store: Persistence backend.
        strategies: Slug -> strategy mapping; the process-wide default
            registry when omitted.
        package_delay: Pause in seconds between consecutive packages of a source.
        max_logged_errors: How many errors go into a log row's message.
        sleep: Injectable for tests.
    """

    def __init__(
        self,
        store: PackageStore,
        strategies: Optional[Mapping[str, RefreshStrategy]] = None,
        package_delay: float = 0.1,
        max_logged_errors: int = 5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.strategies = strategies
        self.package_delay = package_delay
        self.max_logged_errors = max_logged_errors
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        store: PackageStore,
        settings: Settings,
        strategies: Optional[Mapping[str, RefreshStrategy]] = None,
    ) -> "PackageRefresher":
        return cls(
            store,
            strategies=strategies,
            package_delay=settings.refresh.package_delay,
            max_logged_errors=settings.refresh.max_logged_errors,
        )

    def strategy_for(self, slug: str) -> Optional[RefreshStrategy]:
        return get_refresh_strategy(slug, self.strategies)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def run(self, source_id: Optional[str] = None, dry_run: bool = False) -> list[RefreshResult]:
        """Refresh one source (``source_id``) or every source with an API endpoint.

        Sources without an endpoint are left out of the results entirely.
        Failing to list the sources at all propagates.
        """
        sources = [s for s in self.store.list_sources(source_id) if s.has_api]
        log.info("refresh_started", sources=len(sources), dry_run=dry_run)

        results = []
        for source in sources:
            result = self.refresh_source(source, dry_run=dry_run)
            results.append(result)
            if not dry_run:
                self.store.add_refresh_log(self.build_log(result))
        return results

    def refresh_source(self, source: SourceRecord, dry_run: bool = False) -> RefreshResult:
        started = time.monotonic()
        result = RefreshResult(source_id=source.id, source_name=source.name)

        try:
            packages = self.store.list_packages(source.id)
            result.packages_checked = len(packages)

            for index, pkg in enumerate(packages):
                if index:
                    self._sleep(self.package_delay)
                try:
                    if self.refresh_package(pkg, source, dry_run=dry_run):
                        result.packages_updated += 1
                except Exception as e:
                    result.errors.append(f"{pkg.identifier}: {_error_text(e)}")
                    log.warning(
                        "refresh_package_failed",
                        source=source.slug,
                        identifier=pkg.identifier,
                        error=_error_text(e),
                    )
        except Exception as e:
            result.errors.append(_error_text(e))
            log.error("refresh_source_failed", source=source.slug, error=_error_text(e))

        result.duration = time.monotonic() - started
        log.info(
            "refresh_source_complete",
            source=source.slug,
            checked=result.packages_checked,
            updated=result.packages_updated,
            errors=len(result.errors),
            status=result.status,
        )
        return result

    def refresh_package(
        self, pkg: PackageRecord, source: SourceRecord, dry_run: bool = False
    ) -> bool:
        """Re-check one package. Returns True when version or availability changed."""
        strategy = self.strategy_for(source.slug)
        if strategy is None:
            return False

        metadata = strategy.get_metadata(pkg.identifier)
        available = metadata is not None
        changed = _has_changes(pkg, metadata)
        log.debug(
            "refresh_package",
            source=source.slug,
            identifier=pkg.identifier,
            available=available,
            changed=changed,
        )

        if dry_run:
            return changed

        now = _utcnow()
        if not changed:
            self.store.update_package(pkg.id, {"last_checked": now})
        elif metadata is None:
            self.store.update_package(pkg.id, {"is_available": False, "last_checked": now})
        else:
            self.store.update_package(pkg.id, _package_changes(pkg, metadata, now))
        return changed

    def build_log(self, result: RefreshResult) -> RefreshLog:
        completed = _utcnow()
        error_message = None
        if result.errors:
            error_message = "; ".join(result.errors[: self.max_logged_errors])
        return RefreshLog(
            source_id=result.source_id,
            status=result.status,
            packages_updated=result.packages_updated,
            error_message=error_message,
            started_at=completed - timedelta(seconds=result.duration),
            completed_at=completed,
        )

    # ------------------------------------------------------------------
    # Single-package queries
    # ------------------------------------------------------------------

    def check_package_availability(self, package_id: str) -> tuple[bool, Optional[str]]:
        """Live ``(available, version)`` for one stored package.

        Packages whose source has no strategy are assumed available at their
        stored version.
        """
        found = self.store.get_package(package_id)
        if found is None:
            raise PkgMetaError(f"Package not found: {package_id}")
        pkg, source = found

        strategy = self.strategy_for(source.slug)
        if strategy is None:
            return True, pkg.version

        available = strategy.check_availability(pkg.identifier)
        version = None
        if available:
            metadata = strategy.get_metadata(pkg.identifier)
            version = metadata.version if metadata else None
        return available, version

    def get_refresh_logs(self, limit: int = 50) -> list[RefreshLog]:
        return self.store.list_refresh_logs(limit)


def _has_changes(pkg: PackageRecord, metadata: Optional[PackageMetadata]) -> bool:
    available = metadata is not None
    if bool(pkg.is_available) != available:
        return True
    return metadata is not None and metadata.version is not None and pkg.version != metadata.version


def _package_changes(
    pkg: PackageRecord, metadata: PackageMetadata, now: datetime
) -> dict[str, Any]:
    return {
        "is_available": True,
        "version": metadata.version or pkg.version,
        "size": metadata.download_size or pkg.size,
        "maintainer": metadata.maintainer or pkg.maintainer,
        "metadata": metadata.stored_metadata(),
        "last_checked": now,
    }


def refresh_packages(
    store: PackageStore,
    source_id: Optional[str] = None,
    dry_run: bool = False,
    strategies: Optional[Mapping[str, RefreshStrategy]] = None,
    **kwargs: Any,
) -> list[RefreshResult]:
    """Convenience wrapper around :meth:`PackageRefresher.run`."""
    return PackageRefresher(store, strategies=strategies, **kwargs).run(source_id, dry_run=dry_run)
