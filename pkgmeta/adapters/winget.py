"""Winget adapter via the winget.run API."""

from typing import Optional

from requests.utils import quote

from pkgmeta.adapters.base import BaseAdapter
from pkgmeta.models import PackageMetadata, PackageSearchResult


class WingetAdapter(BaseAdapter):
    """Search and look up Windows Package Manager manifests."""

    source_name = "Winget"
    source = "winget"
    base_url = "https://api.winget.run"

    SEARCH_TAKE = 50

    def _search(self, query: str) -> list[PackageSearchResult]:
        data = self._get_json(
            f"{self.base_url}/v2/packages", params={"query": query, "take": self.SEARCH_TAKE}
        )
        return [
            PackageSearchResult(
                identifier=pkg["Id"],
                name=pkg.get("Name") or pkg["Id"],
                summary=pkg.get("Description"),
                version=_latest_version(pkg),
                homepage=pkg.get("Homepage"),
                license=pkg.get("License"),
                maintainer=pkg.get("Publisher"),
                source="winget",
            )
            for pkg in (data or {}).get("Packages") or []
        ]

    def _fetch_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        pkg = self._get_json(
            f"{self.base_url}/v2/packages/{quote(identifier, safe='')}", allow_not_found=True
        )
        if not pkg:
            return None

        versions = pkg.get("Versions") or []
        return PackageMetadata(
            identifier=pkg.get("Id") or identifier,
            name=pkg.get("Name") or identifier,
            summary=pkg.get("Description"),
            description=pkg.get("Description"),
            version=_latest_version(pkg),
            homepage=pkg.get("Homepage"),
            license=pkg.get("License"),
            maintainer=pkg.get("Publisher"),
            source="winget",
            metadata={
                "licenseUrl": pkg.get("LicenseUrl"),
                "tags": pkg.get("Tags"),
                "installers": versions[0].get("Installers") if versions else None,
            },
        )


def _latest_version(pkg: dict) -> Optional[str]:
    latest = pkg.get("LatestVersion") or {}
    if latest.get("Version"):
        return latest["Version"]
    versions = pkg.get("Versions") or []
    return versions[0].get("Version") if versions else None
