"""Refresh strategy registry.

Maps a source slug (``flatpak``, ``apt``...) to the strategy that re-checks
stored packages of that source. Lookup is exact and case-sensitive; sources
with no strategy are skipped by the refresher.
"""

from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

from pkgmeta.adapters import BaseAdapter, RepologyAdapter, build_adapters
from pkgmeta.strategies.base import (
    AdapterRefreshStrategy,
    FunctionRefreshStrategy,
    RefreshStrategy,
    create_refresh_strategy,
)
from pkgmeta.strategies.repology import NATIVE_REPO_PATTERNS, RepologyRefreshStrategy

ADAPTER_BACKED_SOURCES = ("flatpak", "snap", "aur", "homebrew", "winget", "nixhub")


def build_refresh_strategies(
    adapters: Optional[dict[str, BaseAdapter]] = None,
) -> Mapping[str, RefreshStrategy]:
    """Build the read-only slug -> strategy mapping from a set of adapters."""
    adapters = adapters if adapters is not None else build_adapters()

    strategies: dict[str, RefreshStrategy] = {}
    for slug in ADAPTER_BACKED_SOURCES:
        if slug in adapters:
            strategies[slug] = AdapterRefreshStrategy(adapters[slug])

    repology = adapters.get("repology")
    if isinstance(repology, RepologyAdapter):
        for slug, pattern in NATIVE_REPO_PATTERNS.items():
            strategies[slug] = RepologyRefreshStrategy(repology, slug, pattern)

    return MappingProxyType(strategies)


@lru_cache(maxsize=1)
def default_strategies() -> Mapping[str, RefreshStrategy]:
    return build_refresh_strategies()


def get_refresh_strategy(
    slug: str, strategies: Optional[Mapping[str, RefreshStrategy]] = None
) -> Optional[RefreshStrategy]:
    """Strategy for ``slug``, or ``None`` if the source has none."""
    if strategies is None:
        strategies = default_strategies()
    return strategies.get(slug)


__all__ = [
    "ADAPTER_BACKED_SOURCES",
    "AdapterRefreshStrategy",
    "FunctionRefreshStrategy",
    "NATIVE_REPO_PATTERNS",
    "RefreshStrategy",
    "RepologyRefreshStrategy",
    "build_refresh_strategies",
    "create_refresh_strategy",
    "default_strategies",
    "get_refresh_strategy",
]
