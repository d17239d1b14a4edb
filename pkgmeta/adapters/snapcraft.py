"""Snapcraft adapter (Snap packages).

The v2 ``find`` endpoint returns minimal hits, so search fetches full details
for the top results one at a time.
"""

from typing import Optional

import structlog
from requests.utils import quote

from pkgmeta.adapters.base import BaseAdapter
from pkgmeta.models import PackageMetadata, PackageSearchResult

log = structlog.get_logger(__name__)

SNAP_HEADERS = {"Snap-Device-Series": "16"}


class SnapcraftAdapter(BaseAdapter):
    """Search and look up snaps on the Snap Store."""

    source_name = "Snapcraft"
    source = "snap"
    base_url = "https://api.snapcraft.io/v2"

    # Detail requests per search, to keep a search to a bounded number of calls
    DETAIL_LIMIT = 10

    def _search(self, query: str) -> list[PackageSearchResult]:
        data = self._get_json(
            f"{self.base_url}/snaps/find", params={"q": query}, headers=SNAP_HEADERS
        )
        hits = (data or {}).get("results") or []

        results = []
        for hit in hits[: self.DETAIL_LIMIT]:
            name = hit.get("name")
            if not name:
                continue
            try:
                metadata = self.get_metadata(name)
            except Exception as e:
                log.warning("snap_detail_failed", snap=name, error=str(e))
                results.append(PackageSearchResult(identifier=name, name=name, source="snap"))
                continue
            if metadata is not None:
                results.append(metadata.to_search_result())
        return results

    def _fetch_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        data = self._get_json(
            f"{self.base_url}/snaps/info/{quote(identifier, safe='')}",
            headers=SNAP_HEADERS,
            allow_not_found=True,
        )
        if not data:
            return None

        snap = data.get("snap") or {}
        channel_map = data.get("channel-map") or []
        media = snap.get("media") or []
        publisher = snap.get("publisher") or {}

        stable = next(
            (c for c in channel_map if (c.get("channel") or {}).get("risk") == "stable"),
            None,
        )
        icon = next((m.get("url") for m in media if m.get("type") == "icon"), None)

        return PackageMetadata(
            identifier=snap.get("name") or identifier,
            name=snap.get("title") or snap.get("name") or identifier,
            summary=snap.get("summary"),
            description=snap.get("description"),
            version=stable.get("version") if stable else None,
            homepage=snap.get("website"),
            icon_url=icon,
            license=snap.get("license"),
            maintainer=publisher.get("display-name") or publisher.get("username"),
            download_size=snap.get("download-size"),
            categories=[c["name"] for c in snap.get("categories") or [] if c.get("name")],
            screenshots=[m["url"] for m in media if m.get("type") == "screenshot" and m.get("url")],
            release_date=stable.get("released-at") if stable else None,
            source="snap",
            metadata={"channels": channel_map},
        )
