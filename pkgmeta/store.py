"""Storage interface the refresher works against.

Persistence lives outside this package; any object with these methods can
back a refresh run.
"""

from typing import Any, Optional, Protocol

from pkgmeta.models import PackageRecord, RefreshLog, SourceRecord


class PackageStore(Protocol):
    def list_sources(self, source_id: Optional[str] = None) -> list[SourceRecord]:
        """One source by id, or every source when ``source_id`` is None."""
        ...

    def list_packages(self, source_id: str) -> list[PackageRecord]:
        ...

    def update_package(self, package_id: str, changes: dict[str, Any]) -> None:
        """Apply a partial update; keys are ``PackageRecord`` field names."""
        ...

    def add_refresh_log(self, log: RefreshLog) -> None:
        ...

    def get_package(self, package_id: str) -> Optional[tuple[PackageRecord, SourceRecord]]:
        ...

    def list_refresh_logs(self, limit: int = 50) -> list[RefreshLog]:
        """Most recent first."""
        ...
