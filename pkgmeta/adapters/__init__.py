"""Registry adapters normalizing external package indexes."""

from typing import Optional

import requests

from pkgmeta.adapters.aur import AURAdapter
from pkgmeta.adapters.base import BaseAdapter
from pkgmeta.adapters.flathub import FlathubAdapter
from pkgmeta.adapters.homebrew import HomebrewAdapter
from pkgmeta.adapters.nixhub import NixHubAdapter
from pkgmeta.adapters.repology import RepologyAdapter
from pkgmeta.adapters.snapcraft import SnapcraftAdapter
from pkgmeta.adapters.winget import WingetAdapter
from pkgmeta.config import Settings
from pkgmeta.http import get_session

ADAPTER_CLASSES: tuple[type[BaseAdapter], ...] = (
    FlathubAdapter,
    SnapcraftAdapter,
    AURAdapter,
    RepologyAdapter,
    HomebrewAdapter,
    WingetAdapter,
    NixHubAdapter,
)


def build_adapters(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
) -> dict[str, BaseAdapter]:
    """Construct one adapter per registry, keyed by source tag.

    All adapters share ``session``; each gets its own cache instances.
    """
    settings = settings or Settings()
    session = session or get_session(settings.http.user_agent)
    common = dict(
        session=session,
        search_ttl=settings.cache.search_ttl_minutes,
        metadata_ttl=settings.cache.metadata_ttl_minutes,
        retries=settings.http.retries,
        retry_delay=settings.http.retry_delay,
        timeout=settings.http.timeout,
    )

    adapters: dict[str, BaseAdapter] = {}
    for cls in ADAPTER_CLASSES:
        if cls is HomebrewAdapter:
            adapters[cls.source] = cls(catalog_ttl=settings.cache.catalog_ttl_minutes, **common)
        else:
            adapters[cls.source] = cls(**common)
    return adapters


__all__ = [
    "ADAPTER_CLASSES",
    "AURAdapter",
    "BaseAdapter",
    "FlathubAdapter",
    "HomebrewAdapter",
    "NixHubAdapter",
    "RepologyAdapter",
    "SnapcraftAdapter",
    "WingetAdapter",
    "build_adapters",
]
