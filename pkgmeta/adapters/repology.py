"""Repology adapter.

Repology has no search endpoint: "search" is a project lookup. Only
repositories listed in ``REPO_SOURCE_PATTERNS`` are reported; other repos are
dropped silently.
"""

import re
from typing import Optional

from requests.utils import quote

from pkgmeta.adapters.base import BaseAdapter, first_value, join_values
from pkgmeta.cache import TTLCache, cache_key
from pkgmeta.models import PackageMetadata, PackageSearchResult

# Repology repo name -> source slug. Anchored: a repo counts only on a full match.
REPO_SOURCE_PATTERNS: tuple[tuple[re.Pattern, str], ...] = (
    # Debian-based
    (re.compile(r"^debian_(stable|unstable)$"), "apt"),
    (re.compile(r"^ubuntu_(24_04|23_10|23_04)$"), "apt"),
    (re.compile(r"^linuxmint_21$"), "apt"),
    # Red Hat-based
    (re.compile(r"^fedora_(39|40|rawhide)$"), "dnf"),
    # Arch-based
    (re.compile(r"^arch$"), "pacman"),
    (re.compile(r"^aur$"), "aur"),
    # openSUSE
    (re.compile(r"^opensuse_(tumbleweed|leap_15_5)$"), "zypper"),
    # Universal
    (re.compile(r"^flathub$"), "flatpak"),
    (re.compile(r"^snapcraft$"), "snap"),
)

DISTRO_FAMILY_PATTERNS: dict[str, re.Pattern] = {
    "debian": re.compile(r"^(debian|ubuntu|linuxmint|pop)", re.IGNORECASE),
    "rhel": re.compile(r"^(fedora|centos|rhel)", re.IGNORECASE),
    "arch": re.compile(r"^(arch|aur|manjaro)", re.IGNORECASE),
    "suse": re.compile(r"^opensuse", re.IGNORECASE),
}


def source_for_repo(repo: str) -> Optional[str]:
    """Map a Repology repo name to a source slug, or ``None`` if unsupported."""
    for pattern, slug in REPO_SOURCE_PATTERNS:
        if pattern.match(repo):
            return slug
    return None


def pick_newest(entries: list[dict]) -> dict:
    """Prefer the first ``status == "newest"`` entry, else the first entry."""
    return next((e for e in entries if e.get("status") == "newest"), entries[0])


class RepologyAdapter(BaseAdapter):
    """Look up cross-distribution projects on Repology."""

    source_name = "Repology"
    source = "repology"
    base_url = "https://repology.org/api/v1"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.project_cache: TTLCache[list[dict]] = TTLCache(self.metadata_ttl, clock=self._clock)

    def get_project_packages(self, name: str) -> Optional[list[dict]]:
        """Raw per-repo entries for a project; ``None`` if Repology has no such project."""
        key = cache_key(self.source_name, "project", name)
        cached = self.project_cache.get(key)
        if cached is not None:
            return cached

        data = self._get_json(
            f"{self.base_url}/project/{quote(name, safe='')}", allow_not_found=True
        )
        if data is None:
            return None
        self.project_cache.set(key, data)
        return data

    def packages_for_distro(self, name: str, family: str) -> list[dict]:
        """Entries of a project that belong to one distro family."""
        pattern = DISTRO_FAMILY_PATTERNS.get(family)
        if pattern is None:
            return []
        entries = self.get_project_packages(name) or []
        return [e for e in entries if pattern.match(e.get("repo", ""))]

    def clear_cache(self) -> None:
        super().clear_cache()
        self.project_cache.clear()

    def _search(self, query: str) -> list[PackageSearchResult]:
        entries = self.get_project_packages(query)
        if not entries:
            return []

        by_repo: dict[str, dict] = {}
        for entry in entries:
            repo = entry.get("repo", "")
            if entry.get("status") == "newest" or repo not in by_repo:
                by_repo[repo] = entry

        results = []
        for repo, entry in by_repo.items():
            if source_for_repo(repo) is None:
                continue
            results.append(
                PackageSearchResult(
                    identifier=entry.get("name") or query,
                    name=entry.get("name") or query,
                    summary=entry.get("summary"),
                    version=entry.get("version"),
                    homepage=first_value(entry.get("www")),
                    license=join_values(entry.get("licenses")),
                    maintainer=first_value(entry.get("maintainers")),
                    source="repology",
                )
            )
        return results

    def _fetch_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        entries = self.get_project_packages(identifier)
        if not entries:
            return None

        newest = pick_newest(entries)
        return PackageMetadata(
            identifier=newest.get("name") or identifier,
            name=newest.get("name") or identifier,
            summary=newest.get("summary"),
            version=newest.get("version"),
            homepage=first_value(newest.get("www")),
            license=join_values(newest.get("licenses")),
            maintainer=first_value(newest.get("maintainers")),
            categories=newest.get("categories"),
            source="repology",
            metadata={"availableRepos": repo_summary(entries)},
        )


def repo_summary(entries: list[dict]) -> list[dict]:
    return [
        {"repo": e.get("repo"), "version": e.get("version"), "status": e.get("status")}
        for e in entries
    ]
