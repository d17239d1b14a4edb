"""Seed catalog validation.

Walks a directory of ``<source>.json`` catalog files, checks every entry
against its registry (or, for ``script`` entries, checks that the download
URLs respond) and produces a categorized ``ValidationReport``.
"""

import json
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Union
from urllib.parse import urlparse

import requests
import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as ModelValidationError

from pkgmeta.config import Settings
from pkgmeta.errors import CatalogLoadError
from pkgmeta.http import (
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    fetch_with_retry,
    get_session,
)
from pkgmeta.models import (
    ERROR_CATEGORIES,
    CatalogPackage,
    PackageValidationError,
    ValidationReport,
)
from pkgmeta.validation.classify import categorize_error
from pkgmeta.validation.verifiers import BaseVerifier, build_verifiers

log = structlog.get_logger(__name__)

SCRIPT_SOURCE = "script"
SKIP_REASONS = {"nix": "manual verification required"}
DEFAULT_REPORT_PATH = "validation-errors-detailed.json"

_catalog_adapter = TypeAdapter(list[CatalogPackage])


def load_catalog_file(path: Path) -> list[CatalogPackage]:
    try:
        return _catalog_adapter.validate_json(path.read_bytes())
    except OSError as e:
        raise CatalogLoadError(f"Cannot read {path}: {e}") from e
    except ModelValidationError as e:
        raise CatalogLoadError(f"Invalid catalog file {path}: {e}") from e


class SeedValidator:
    """Validate a seed catalog directory.

    Args:
        verifiers: Source -> verifier. Built over ``session`` when omitted.
        api_delay: Pause after each registry check.
        script_delay: Pause after each script entry.
        url_delay: Pause after each URL of a script entry.
        url_retries: Transport attempts per HEAD/GET of a script URL.
        retries: Transport attempts per registry check.
        timeout: Per-request timeout in seconds.
        report_path: Where :meth:`write_report` puts the detailed report.
    """

    def __init__(
        self,
        verifiers: Optional[dict[str, BaseVerifier]] = None,
        session: Optional[requests.Session] = None,
        api_delay: float = 0.05,
        script_delay: float = 0.2,
        url_delay: float = 0.1,
        url_retries: int = 2,
        report_path: Union[str, Path] = DEFAULT_REPORT_PATH,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or get_session()
        self.verifiers = (
            verifiers
            if verifiers is not None
            else build_verifiers(
                self.session,
                retries=retries,
                retry_delay=retry_delay,
                timeout=timeout,
                sleep=sleep,
            )
        )
        self.api_delay = api_delay
        self.script_delay = script_delay
        self.url_delay = url_delay
        self.url_retries = url_retries
        self.report_path = Path(report_path)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "SeedValidator":
        """Build from ``settings``; keyword arguments override individual values."""
        v = settings.validation
        options = {
            "api_delay": v.api_delay,
            "script_delay": v.script_delay,
            "url_delay": v.url_delay,
            "url_retries": v.url_retries,
            "report_path": v.report_path,
            "retries": settings.http.retries,
            "retry_delay": settings.http.retry_delay,
            "timeout": settings.http.timeout,
            **kwargs,
        }
        if options.get("session") is None:
            options["session"] = get_session(settings.http.user_agent)
        return cls(**options)

    @property
    def supported_sources(self) -> list[str]:
        return sorted(self.verifiers) + [SCRIPT_SOURCE]

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def validate(
        self, packages_dir: Union[str, Path], source: Optional[str] = None
    ) -> ValidationReport:
        """Validate every catalog file in ``packages_dir`` (or only ``<source>.json``).

        Raises:
            CatalogLoadError: The directory or a catalog file cannot be read
                or parsed, or ``source`` has no catalog file.
        """
        started = time.monotonic()
        files = self.catalog_files(Path(packages_dir), source)

        total = checked = skipped = 0
        errors: list[PackageValidationError] = []
        for path in files:
            packages = load_catalog_file(path)
            current = path.stem
            total += len(packages)

            if current not in self.verifiers and current != SCRIPT_SOURCE:
                reason = SKIP_REASONS.get(current, "no validation method available")
                log.info(
                    "validation_source_skipped",
                    source=current,
                    reason=reason,
                    packages=len(packages),
                )
                skipped += len(packages)
                continue

            file_errors = self.validate_packages(packages, current, path.name)
            errors.extend(file_errors)
            checked += len(packages)
            log.info(
                "validation_source_complete",
                source=current,
                packages=len(packages),
                invalid=len(file_errors),
            )

        report = ValidationReport(
            timestamp=datetime.now(timezone.utc),
            total_packages=total,
            checked_packages=checked,
            skipped_packages=skipped,
            invalid_packages=len(errors),
            errors=[categorize_error(e) for e in errors],
            duration=time.monotonic() - started,
            validation_method="api",
        )
        log.info(
            "validation_complete",
            total=report.total_packages,
            checked=report.checked_packages,
            invalid=report.invalid_packages,
            success_rate=report.success_rate,
        )
        return report

    def write_report(
        self, report: ValidationReport, path: Union[str, Path, None] = None
    ) -> Path:
        return write_detailed_report(report, path or self.report_path)

    def catalog_files(self, packages_dir: Path, source: Optional[str] = None) -> list[Path]:
        try:
            files = sorted(p for p in packages_dir.iterdir() if p.suffix == ".json")
        except OSError as e:
            raise CatalogLoadError(f"Cannot list catalog directory {packages_dir}: {e}") from e

        if source:
            files = [p for p in files if p.name == f"{source}.json"]
            if not files:
                raise CatalogLoadError(
                    f'Package manager "{source}" not found. '
                    f"Available: {', '.join(self.supported_sources)}"
                )
        return files

    def validate_packages(
        self, packages: list[CatalogPackage], source: str, file: str
    ) -> list[PackageValidationError]:
        """Uncategorized failures for one catalog file."""
        errors = []
        if source == SCRIPT_SOURCE:
            for index, pkg in enumerate(packages):
                message = self.validate_script_package(pkg)
                if message:
                    errors.append(
                        PackageValidationError(
                            file=file, package_index=index, package=pkg, error=message
                        )
                    )
                self._sleep(self.script_delay)
            return errors

        verifier = self.verifiers[source]
        for index, pkg in enumerate(packages):
            if not verifier.verify(pkg.identifier):
                errors.append(
                    PackageValidationError(
                        file=file,
                        package_index=index,
                        package=pkg,
                        error=f'Package "{pkg.identifier}" not found in {source} repository',
                    )
                )
            self._sleep(self.api_delay)
        return errors

    # ------------------------------------------------------------------
    # Script entries
    # ------------------------------------------------------------------

    def validate_script_package(self, pkg: CatalogPackage) -> Optional[str]:
        """Error message for the first bad script URL, or None if all respond."""
        script_url = pkg.metadata.script_url if pkg.metadata else None
        if script_url is None:
            return "Missing scriptUrl in metadata"

        candidates = (("linux", script_url.linux), ("windows", script_url.windows))
        urls = [(platform, url) for platform, url in candidates if url]
        if not urls:
            return "No script URLs found in metadata"

        for platform, url in urls:
            error = self.check_script_url(platform, url)
            if error:
                return error
            self._sleep(self.url_delay)
        return None

    def check_script_url(self, platform: str, url: str) -> Optional[str]:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return f"Invalid URL format for {platform}: {url}"

        response = self._fetch_url("HEAD", url)
        # Some servers reject or mishandle HEAD
        if response is None or response.status_code >= 400:
            response = self._fetch_url("GET", url)

        if response is None:
            return f"Failed to fetch {platform} script URL: {url}"
        if not 200 <= response.status_code < 400:
            return f"Invalid response status {response.status_code} for {platform} URL: {url}"

        content_type = response.headers.get("content-type", "")
        if "text/html" in content_type and ".html" not in url:
            log.warning("script_url_returns_html", platform=platform, url=url)
        return None

    def _fetch_url(self, method: str, url: str) -> Optional[requests.Response]:
        result = fetch_with_retry(
            self.session,
            method,
            url,
            allow_redirects=True,
            timeout=self.timeout,
            retries=self.url_retries,
            delay=self.retry_delay,
            sleep=self._sleep,
        )
        return result.response


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def build_detailed_report(report: ValidationReport) -> dict[str, Any]:
    """Error breakdown by category and by package manager, JSON-ready."""
    errors = [e if e.category else categorize_error(e) for e in report.errors]
    by_category: dict[str, list[PackageValidationError]] = {c: [] for c in ERROR_CATEGORIES}
    for error in errors:
        by_category[error.category or "unknown"].append(error)

    return {
        "timestamp": report.timestamp.isoformat(),
        "summary": {
            "total": report.invalid_packages,
            "successRate": report.success_rate,
            "byPackageManager": dict(Counter(e.package.source for e in errors)),
            "categorized": {c: len(items) for c, items in by_category.items()},
        },
        "errors": [
            {
                "package": e.package.app,
                "source": e.package.source,
                "identifier": e.package.identifier,
                "category": e.category,
                "suggestion": e.suggestion,
                "notes": e.notes,
            }
            for e in errors
        ],
        "errorsByCategory": {
            category: [
                {
                    "app": e.package.app,
                    "source": e.package.source,
                    "identifier": e.package.identifier,
                    "suggestion": e.suggestion,
                }
                for e in items
            ]
            for category, items in by_category.items()
        },
    }


def write_detailed_report(report: ValidationReport, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(build_detailed_report(report), f, indent=2)
    log.info("detailed_report_written", path=str(path), errors=len(report.errors))
    return path


def exit_code_for(report: ValidationReport) -> int:
    """0 when every checked package was found, 1 otherwise."""
    return 1 if report.errors else 0
