"""Verify package identifiers against their registries.

These checks are independent of the refresh adapters: they answer a single
yes/no question per identifier, as cheaply as the registry allows, and never
raise. Each verifier keeps its own result cache for the lifetime of a run.
"""

import os
import re
import time
from typing import Callable, Optional

import requests
import structlog
from requests.utils import quote

from pkgmeta.http import (
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    fetch_with_retry,
    get_session,
)

log = structlog.get_logger(__name__)

CARGO_USER_AGENT = "pkgmeta-validator (https://crates.io/policies#crawlers)"

# Repology repo patterns per native package manager
REPOLOGY_REPO_PATTERNS: dict[str, tuple[re.Pattern, ...]] = {
    "apt": tuple(re.compile(p) for p in (r"^debian_", r"^ubuntu_", r"^linuxmint_", r"^raspbian_")),
    "dnf": tuple(
        re.compile(p) for p in (r"^fedora_", r"^centos_", r"^rhel_", r"^almalinux_", r"^rocky_")
    ),
}
REPOLOGY_VALID_STATUSES = {"newest", "unique", "devel"}

SCOOP_BUCKETS = (
    "ScoopInstaller/Main",
    "ScoopInstaller/Extras",
    "ScoopInstaller/Java",
    "ScoopInstaller/Nerd-Fonts",
)


class BaseVerifier:
    """Check whether an identifier exists in one registry.

    Subclasses set ``API_URL`` (formatted with the quoted identifier) or
    override ``_check``.
    """

    API_URL = ""
    HEADERS: dict[str, str] = {}

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or get_session()
        self.retries = retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep
        self._cache: dict[str, bool] = {}

    def verify(self, identifier: str) -> bool:
        """Return True if the registry has ``identifier``."""
        if identifier in self._cache:
            return self._cache[identifier]

        try:
            found = self._check(identifier)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            log.debug(
                "verify_unexpected_payload",
                verifier=type(self).__name__,
                identifier=identifier,
                error=str(e),
            )
            found = False

        self._cache[identifier] = found
        return found

    def _check(self, identifier: str) -> bool:
        response = self._fetch(self.API_URL.format(name=quote(identifier, safe="")))
        return response is not None and response.ok

    def _fetch(self, url: str, headers: Optional[dict] = None) -> Optional[requests.Response]:
        result = fetch_with_retry(
            self.session,
            "GET",
            url,
            headers={**self.HEADERS, **(headers or {})},
            timeout=self.timeout,
            retries=self.retries,
            delay=self.retry_delay,
            sleep=self._sleep,
        )
        return result.response


class NpmVerifier(BaseVerifier):
    API_URL = "https://registry.npmjs.org/{name}"


class PipVerifier(BaseVerifier):
    API_URL = "https://pypi.org/pypi/{name}/json"


class CargoVerifier(BaseVerifier):
    # crates.io rejects requests without a descriptive User-Agent
    API_URL = "https://crates.io/api/v1/crates/{name}"
    HEADERS = {"User-Agent": CARGO_USER_AGENT}


class GoVerifier(BaseVerifier):
    API_URL = "https://proxy.golang.org/{name}/@latest"

    def _check(self, identifier: str) -> bool:
        module = identifier.replace("@latest", "")
        response = self._fetch(self.API_URL.format(name=quote(module, safe="/")))
        return response is not None and response.ok


class FlatpakVerifier(BaseVerifier):
    API_URL = "https://flathub.org/api/v2/appstream/{name}"


class SnapVerifier(BaseVerifier):
    API_URL = "https://api.snapcraft.io/v2/snaps/info/{name}"
    HEADERS = {"Snap-Device-Series": "16"}


class AURVerifier(BaseVerifier):
    API_URL = "https://aur.archlinux.org/rpc/v5/info?arg[]={name}"

    def _check(self, identifier: str) -> bool:
        response = self._fetch(self.API_URL.format(name=quote(identifier, safe="")))
        if response is None or not response.ok:
            return False
        return response.json().get("resultcount") == 1


class PacmanVerifier(BaseVerifier):
    """Official Arch repos; only an exact ``pkgname`` match counts."""

    API_URL = "https://archlinux.org/packages/search/json/?name={name}"

    def _check(self, identifier: str) -> bool:
        response = self._fetch(self.API_URL.format(name=quote(identifier, safe="")))
        if response is None or not response.ok:
            return False
        data = response.json()
        return bool(data.get("valid")) and any(
            pkg.get("pkgname") == identifier for pkg in data.get("results") or []
        )


class RepologyVerifier(BaseVerifier):
    """Check a native package manager through Repology's project listing."""

    API_URL = "https://repology.org/api/v1/project/{name}"

    def __init__(self, source: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.source = source
        self.patterns = REPOLOGY_REPO_PATTERNS[source]

    def _check(self, identifier: str) -> bool:
        response = self._fetch(self.API_URL.format(name=quote(identifier, safe="")))
        if response is None or not response.ok:
            return False
        return any(
            any(p.search(entry.get("repo", "")) for p in self.patterns)
            and entry.get("status") in REPOLOGY_VALID_STATUSES
            for entry in response.json()
        )


class AptVerifier(RepologyVerifier):
    """Any Debian or Ubuntu repo listing the project counts."""

    def __init__(self, *args, **kwargs):
        super().__init__("apt", *args, **kwargs)

    def _check(self, identifier: str) -> bool:
        response = self._fetch(self.API_URL.format(name=quote(identifier, safe="")))
        if response is None or not response.ok:
            return False
        return any(
            "debian" in entry.get("repo", "") or "ubuntu" in entry.get("repo", "")
            for entry in response.json()
        )


class DnfVerifier(RepologyVerifier):
    def __init__(self, *args, **kwargs):
        super().__init__("dnf", *args, **kwargs)


class ZypperVerifier(BaseVerifier):
    API_URL = "https://api.opensuse.org/public/source/openSUSE:Factory/{name}"

    def _check(self, identifier: str) -> bool:
        response = self._fetch(self.API_URL.format(name=quote(identifier, safe="")))
        return response is not None and response.status_code == 200


class ChocolateyVerifier(BaseVerifier):
    """OData feed; a match shows up as an ``<entry>`` element."""

    API_URL = "https://community.chocolatey.org/api/v2/Packages()?$filter={name}"

    def _check(self, identifier: str) -> bool:
        odata_filter = f"tolower(Id) eq '{identifier.lower()}'"
        response = self._fetch(self.API_URL.format(name=quote(odata_filter, safe="")))
        return response is not None and response.ok and "<entry>" in response.text


class WingetVerifier(BaseVerifier):
    API_URL = "https://api.winget.run/v2/packages/{name}"


class HomebrewVerifier(BaseVerifier):
    """Formula first, then cask."""

    API_URL = "https://formulae.brew.sh/api/formula/{name}.json"
    CASK_URL = "https://formulae.brew.sh/api/cask/{name}.json"

    def _check(self, identifier: str) -> bool:
        name = quote(identifier, safe="")
        for url in (self.API_URL, self.CASK_URL):
            response = self._fetch(url.format(name=name))
            if response is not None and response.ok:
                return True
        return False


class ScoopVerifier(BaseVerifier):
    """Look for a manifest in each of the well-known buckets."""

    BUCKET_URL = "https://raw.githubusercontent.com/{bucket}/master/bucket/{name}.json"
    BUCKET_DELAY = 0.05

    def _check(self, identifier: str) -> bool:
        headers = {}
        token = os.environ.get("GITHUB_TOKEN")
        if token:
            headers["Authorization"] = f"token {token}"

        for bucket in SCOOP_BUCKETS:
            response = self._fetch(self.BUCKET_URL.format(bucket=bucket, name=identifier), headers)
            if response is not None and response.ok:
                return True
            self._sleep(self.BUCKET_DELAY)
        return False


VERIFIER_CLASSES: dict[str, type[BaseVerifier]] = {
    "npm": NpmVerifier,
    "pip": PipVerifier,
    "cargo": CargoVerifier,
    "go": GoVerifier,
    "flatpak": FlatpakVerifier,
    "snap": SnapVerifier,
    "aur": AURVerifier,
    "pacman": PacmanVerifier,
    "apt": AptVerifier,
    "dnf": DnfVerifier,
    "zypper": ZypperVerifier,
    "chocolatey": ChocolateyVerifier,
    "winget": WingetVerifier,
    "homebrew": HomebrewVerifier,
    "scoop": ScoopVerifier,
}


def build_verifiers(
    session: Optional[requests.Session] = None,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    timeout: float = DEFAULT_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, BaseVerifier]:
    """One verifier per supported source, all sharing ``session``."""
    session = session or get_session()
    return {
        source: cls(
            session=session,
            retries=retries,
            retry_delay=retry_delay,
            timeout=timeout,
            sleep=sleep,
        )
        for source, cls in VERIFIER_CLASSES.items()
    }
