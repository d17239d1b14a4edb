"""AUR (Arch User Repository) adapter.

Uses the AUR RPC v5 interface: https://aur.archlinux.org/rpc/
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pkgmeta.adapters.base import BaseAdapter, join_values
from pkgmeta.errors import RegistryError
from pkgmeta.models import PackageMetadata, PackageSearchResult

AUR_WEB_BASE = "https://aur.archlinux.org"


class AURAdapter(BaseAdapter):
    """Search and look up packages in the Arch User Repository."""

    source_name = "AUR"
    source = "aur"
    base_url = f"{AUR_WEB_BASE}/rpc"

    def _search(self, query: str) -> list[PackageSearchResult]:
        data = self._rpc([("v", "5"), ("type", "search"), ("arg", query), ("by", "name-desc")])
        return [
            PackageSearchResult(
                identifier=pkg["Name"],
                name=pkg["Name"],
                summary=pkg.get("Description"),
                version=pkg.get("Version"),
                homepage=pkg.get("URL"),
                license=join_values(pkg.get("License")),
                maintainer=pkg.get("Maintainer"),
                source="aur",
            )
            for pkg in data.get("results") or []
        ]

    def _fetch_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        data = self._rpc([("v", "5"), ("type", "info"), ("arg[]", identifier)])
        # A single-name info query is unambiguous only with exactly one hit
        if data.get("resultcount") != 1:
            return None
        return self._transform(data["results"][0], detailed=True)

    def get_packages_metadata(self, names: list[str]) -> dict[str, PackageMetadata]:
        """Fetch info for several packages in one batched request.

        Packages the AUR does not know are simply absent from the result.
        """
        if not names:
            return {}
        params = [("v", "5"), ("type", "info")] + [("arg[]", name) for name in names]
        data = self._rpc(params)
        return {
            pkg["Name"]: self._transform(pkg, detailed=False) for pkg in data.get("results") or []
        }

    def _rpc(self, params: list[tuple[str, str]]) -> dict:
        data = self._get_json(self.base_url, params=params) or {}
        if data.get("type") == "error":
            raise RegistryError(self.source_name, data.get("error") or "unknown error")
        return data

    def _transform(self, pkg: dict, detailed: bool) -> PackageMetadata:
        extras: dict[str, Any] = {
            "packageBase": pkg.get("PackageBase"),
            "votes": pkg.get("NumVotes"),
            "popularity": pkg.get("Popularity"),
            "outOfDate": _iso(pkg.get("OutOfDate")),
            "urlPath": f"{AUR_WEB_BASE}{pkg['URLPath']}" if pkg.get("URLPath") else None,
        }
        if detailed:
            extras.update(
                {
                    "firstSubmitted": _iso(pkg.get("FirstSubmitted")),
                    "depends": pkg.get("Depends"),
                    "makeDepends": pkg.get("MakeDepends"),
                    "optDepends": pkg.get("OptDepends"),
                }
            )

        return PackageMetadata(
            identifier=pkg["Name"],
            name=pkg["Name"],
            summary=pkg.get("Description"),
            description=pkg.get("Description"),
            version=pkg.get("Version"),
            homepage=pkg.get("URL"),
            license=join_values(pkg.get("License")),
            maintainer=pkg.get("Maintainer"),
            release_date=_iso(pkg.get("LastModified")),
            source="aur",
            metadata=extras,
        )


def _iso(epoch: Optional[int]) -> Optional[str]:
    if not epoch:
        return None
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()
