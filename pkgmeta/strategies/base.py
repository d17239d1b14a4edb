"""Refresh strategy interface and the generic implementations."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from pkgmeta.adapters.base import BaseAdapter
from pkgmeta.models import PackageMetadata


class RefreshStrategy(ABC):
    """Capability used by the refresher to re-check one stored package."""

    @abstractmethod
    def get_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        """Current metadata, or ``None`` if the registry no longer has it."""

    @abstractmethod
    def check_availability(self, identifier: str) -> bool:
        """Best-effort existence check; never raises."""


class AdapterRefreshStrategy(RefreshStrategy):
    """Delegates straight to a registry adapter."""

    def __init__(self, adapter: BaseAdapter):
        self.adapter = adapter

    def get_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        return self.adapter.get_metadata(identifier)

    def check_availability(self, identifier: str) -> bool:
        return self.adapter.check_availability(identifier)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.adapter.source!r})"


class FunctionRefreshStrategy(RefreshStrategy):
    def __init__(
        self,
        get_metadata: Callable[[str], Optional[PackageMetadata]],
        check_availability: Callable[[str], bool],
    ):
        self._get_metadata = get_metadata
        self._check_availability = check_availability

    def get_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        return self._get_metadata(identifier)

    def check_availability(self, identifier: str) -> bool:
        return self._check_availability(identifier)


def create_refresh_strategy(
    get_metadata: Callable[[str], Optional[PackageMetadata]],
    check_availability: Callable[[str], bool],
) -> RefreshStrategy:
    """Wrap a pair of plain functions as a strategy."""
    return FunctionRefreshStrategy(get_metadata, check_availability)
