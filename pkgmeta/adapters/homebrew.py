"""Homebrew adapter.

Homebrew has no search API: the full formula and cask catalogs are fetched,
cached for longer than regular lookups, and filtered locally.
"""

from typing import Optional

from requests.utils import quote

from pkgmeta.adapters.base import BaseAdapter
from pkgmeta.cache import TTLCache
from pkgmeta.models import PackageMetadata, PackageSearchResult


class HomebrewAdapter(BaseAdapter):
    """Search and look up Homebrew formulae and casks."""

    source_name = "Homebrew"
    source = "homebrew"
    base_url = "https://formulae.brew.sh/api"

    SEARCH_LIMIT = 50

    def __init__(self, *args, catalog_ttl: float = 60, **kwargs):
        super().__init__(*args, **kwargs)
        self.catalog_cache: TTLCache[list[dict]] = TTLCache(catalog_ttl, clock=self._clock)

    def clear_cache(self) -> None:
        super().clear_cache()
        self.catalog_cache.clear()

    def fetch_catalog(self, kind: str) -> list[dict]:
        """Full ``formula`` or ``cask`` catalog."""
        key = f"homebrew:all-{kind}"
        cached = self.catalog_cache.get(key)
        if cached is not None:
            return cached
        catalog = self._get_json(f"{self.base_url}/{kind}.json") or []
        self.catalog_cache.set(key, catalog)
        return catalog

    def _search(self, query: str) -> list[PackageSearchResult]:
        term = query.lower()
        matches = []
        for pkg in self.fetch_catalog("formula") + self.fetch_catalog("cask"):
            if _matches(pkg, term):
                matches.append(pkg)
                if len(matches) >= self.SEARCH_LIMIT:
                    break

        return [
            PackageSearchResult(
                identifier=_name(pkg),
                name=pkg.get("full_name") or _name(pkg),
                summary=pkg.get("desc"),
                version=_version(pkg),
                homepage=pkg.get("homepage"),
                license=pkg.get("license"),
                source="homebrew",
            )
            for pkg in matches
        ]

    def _fetch_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        name = quote(identifier, safe="")
        pkg = self._get_json(f"{self.base_url}/formula/{name}.json", allow_not_found=True)
        kind = "formula"
        if pkg is None:
            pkg = self._get_json(f"{self.base_url}/cask/{name}.json", allow_not_found=True)
            kind = "cask"
        if pkg is None:
            return None

        urls = pkg.get("urls") or {}
        return PackageMetadata(
            identifier=_name(pkg) or identifier,
            name=pkg.get("full_name") or _name(pkg) or identifier,
            summary=pkg.get("desc"),
            description=pkg.get("desc"),
            version=_version(pkg),
            homepage=pkg.get("homepage"),
            license=pkg.get("license"),
            source="homebrew",
            metadata={
                "kind": kind,
                "tap": pkg.get("tap"),
                "revision": pkg.get("revision"),
                "downloadUrl": (urls.get("stable") or {}).get("url") or pkg.get("url"),
            },
        )


def _name(pkg: dict) -> str:
    # Casks carry a "token" and a list of display names instead of a single name
    name = pkg.get("name")
    if isinstance(name, list):
        return pkg.get("token") or (name[0] if name else "")
    return name or pkg.get("token") or ""


def _version(pkg: dict) -> Optional[str]:
    versions = pkg.get("versions")
    if isinstance(versions, dict) and versions.get("stable"):
        return versions["stable"]
    return pkg.get("version")


def _matches(pkg: dict, term: str) -> bool:
    name = _name(pkg)
    if not name:
        return False
    haystacks = (name, pkg.get("full_name") or "", pkg.get("desc") or "")
    return any(term in text.lower() for text in haystacks)
