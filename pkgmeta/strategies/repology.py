"""Repology-backed strategy shared by the native package managers.

apt, dnf, pacman and zypper have no API of their own; each is served by the
same Repology project lookup, narrowed to the repos matching its pattern.
"""

import re
from typing import Optional, Union

import structlog

from pkgmeta.adapters.base import first_value, join_values
from pkgmeta.adapters.repology import RepologyAdapter, pick_newest, repo_summary
from pkgmeta.models import PackageMetadata
from pkgmeta.strategies.base import RefreshStrategy

log = structlog.get_logger(__name__)

NATIVE_REPO_PATTERNS: dict[str, re.Pattern] = {
    "apt": re.compile(r"^(debian|ubuntu|linuxmint|pop|raspbian)", re.IGNORECASE),
    "dnf": re.compile(r"^(fedora|centos|rhel|rocky|alma)", re.IGNORECASE),
    "pacman": re.compile(r"^(arch)$", re.IGNORECASE),
    "zypper": re.compile(r"^opensuse", re.IGNORECASE),
}


class RepologyRefreshStrategy(RefreshStrategy):
    """Metadata from the Repology entries whose repo matches ``pattern``.

    A project that exists only in other repositories counts as not found.
    """

    def __init__(self, adapter: RepologyAdapter, slug: str, pattern: Union[str, re.Pattern]):
        self.adapter = adapter
        self.slug = slug
        self.pattern = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern

    def get_metadata(self, identifier: str) -> Optional[PackageMetadata]:
        entries = self.adapter.get_project_packages(identifier)
        if not entries:
            return None

        matching = [e for e in entries if self.pattern.search(e.get("repo", ""))]
        if not matching:
            return None

        entry = pick_newest(matching)
        return PackageMetadata(
            identifier=identifier,
            name=identifier,
            summary=entry.get("summary"),
            version=entry.get("version"),
            homepage=first_value(entry.get("www")),
            license=join_values(entry.get("licenses")),
            maintainer=first_value(entry.get("maintainers")),
            categories=entry.get("categories"),
            source="repology",
            metadata={
                "repo": entry.get("repo"),
                "status": entry.get("status"),
                "origversion": entry.get("origversion"),
                "allLicenses": entry.get("licenses"),
                "allMaintainers": entry.get("maintainers"),
                "availableRepos": repo_summary(matching),
            },
        )

    def check_availability(self, identifier: str) -> bool:
        try:
            return self.get_metadata(identifier) is not None
        except Exception as e:
            log.warning(
                "availability_check_failed", source=self.slug, identifier=identifier, error=str(e)
            )
            return False

    def __repr__(self) -> str:
        return f"RepologyRefreshStrategy({self.slug!r}, {self.pattern.pattern!r})"
