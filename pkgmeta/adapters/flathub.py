"""Flathub adapter (Flatpak applications)."""

from datetime import datetime, timezone
from typing import Any, Optional

from requests.utils import quote

from pkgmeta.adapters.base import BaseAdapter
from pkgmeta.models import PackageMetadata, PackageSearchResult


class FlathubAdapter(BaseAdapter):
    """Search and look up Flatpak apps on Flathub."""

    source_name = "Flathub"
    source = "flatpak"
    base_url = "https://flathub.org/api/v2"

    def _search(self, query: str) -> list[PackageSearchResult]:
        data = self._get_json(f"{self.base_url}/search/{quote(query, safe='')}")
        hits = (data or {}).get("hits") or (data or {}).get("results") or []
        return [self._transform_hit(hit) for hit in hits]

    def _fetch_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        data = self._get_json(
            f"{self.base_url}/appstream/{quote(identifier, safe='')}", allow_not_found=True
        )
        if not data:
            return None
        return self._transform_appstream(identifier, data)

    def _transform_hit(self, hit: dict) -> PackageSearchResult:
        return PackageSearchResult(
            identifier=hit["app_id"],
            name=hit.get("name") or hit["app_id"],
            summary=hit.get("summary"),
            icon_url=hit.get("icon"),
            source="flatpak",
        )

    def _transform_appstream(self, identifier: str, app: dict) -> PackageMetadata:
        releases = app.get("releases") or []
        latest = releases[0] if releases else {}
        urls = app.get("urls") or {}

        return PackageMetadata(
            identifier=app.get("id") or identifier,
            name=app.get("name") or identifier,
            summary=app.get("summary"),
            description=app.get("description"),
            version=latest.get("version"),
            homepage=urls.get("homepage"),
            icon_url=app.get("icon"),
            license=app.get("project_license"),
            maintainer=app.get("developer_name"),
            categories=app.get("categories"),
            screenshots=_screenshot_urls(app.get("screenshots") or []),
            release_date=_release_date(latest.get("timestamp")),
            source="flatpak",
            metadata={
                "urls": urls,
                "keywords": app.get("keywords"),
                "isFreeLicense": app.get("is_free_license"),
            },
        )


def _screenshot_urls(screenshots: list[Any]) -> list[str]:
    """Pick one URL per screenshot; Flathub has shipped both dict and list ``sizes``."""
    urls = []
    for shot in screenshots:
        sizes = shot.get("sizes") if isinstance(shot, dict) else None
        if isinstance(sizes, dict) and sizes:
            urls.append(next(iter(sizes.values())))
        elif isinstance(sizes, list) and sizes:
            src = sizes[0].get("src")
            if src:
                urls.append(src)
    return urls


def _release_date(timestamp: Any) -> Optional[str]:
    if timestamp in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).isoformat()
    except (TypeError, ValueError):
        return str(timestamp)
