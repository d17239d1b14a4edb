"""NixHub adapter (nixpkgs).

Documentation: https://www.jetify.com/docs/nixhub/
"""

from typing import Optional

import requests

from pkgmeta.adapters.base import BaseAdapter
from pkgmeta.errors import RegistryError
from pkgmeta.models import PackageMetadata, PackageSearchResult


class NixHubAdapter(BaseAdapter):
    """Search and look up nixpkgs packages on NixHub."""

    source_name = "NixHub"
    source = "nixhub"
    base_url = "https://www.nixhub.io/v2"

    def _search(self, query: str) -> list[PackageSearchResult]:
        data = self._get_json(f"{self.base_url}/search", params={"q": query})
        return [
            PackageSearchResult(
                identifier=item["name"],
                name=item["name"],
                summary=item.get("summary"),
                source="nixhub",
            )
            for item in (data or {}).get("results") or []
        ]

    def _fetch_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        data = self._get_json(
            f"{self.base_url}/pkg", params={"name": identifier}, allow_not_found=True
        )
        if not data:
            return None

        releases = data.get("releases") or []
        latest = releases[0] if releases else {}
        return PackageMetadata(
            identifier=data.get("name") or identifier,
            name=data.get("name") or identifier,
            summary=data.get("summary"),
            description=data.get("description"),
            version=latest.get("version"),
            homepage=data.get("homepage_url"),
            license=data.get("license"),
            release_date=latest.get("last_updated"),
            source="nixhub",
            metadata={
                "platforms": latest.get("platforms"),
                "outputs": latest.get("outputs"),
            },
        )

    def _raise_for_status(self, response: requests.Response) -> None:
        if response.status_code == 429:
            raise RegistryError(
                self.source_name,
                "rate limit exceeded, try again later",
                status=429,
            )
        super()._raise_for_status(response)
