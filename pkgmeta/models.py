"""Unified data models for package metadata, refresh runs and validation."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SourceTag = Literal[
    "flatpak", "snap", "aur", "repology", "homebrew", "winget", "nixhub"
]

ErrorCategory = Literal[
    "third_party_repo", "api_false_positive", "package_moved", "data_quality", "unknown"
]

ERROR_CATEGORIES: tuple[str, ...] = (
    "third_party_repo",
    "api_false_positive",
    "package_moved",
    "data_quality",
    "unknown",
)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for external consumers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PackageSearchResult(CamelModel):
    """Normalized search hit from any registry."""

    identifier: str = Field(description="Package ID in the registry (e.g. org.mozilla.firefox)")
    name: str = Field(description="Display name")
    summary: Optional[str] = Field(default=None, description="Short description")
    description: Optional[str] = Field(default=None, description="Full description")
    version: Optional[str] = None
    homepage: Optional[str] = None
    icon_url: Optional[str] = None
    license: Optional[str] = None
    maintainer: Optional[str] = None
    download_size: Optional[int] = Field(default=None, description="Size in bytes")
    source: SourceTag = Field(description="Registry that produced this result")


class PackageMetadata(PackageSearchResult):
    """Full metadata returned by an identifier lookup."""

    categories: Optional[list[str]] = None
    screenshots: Optional[list[str]] = None
    release_date: Optional[str] = None
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Source-specific extras (votes, channels, repos...)"
    )

    def to_search_result(self) -> PackageSearchResult:
        return PackageSearchResult.model_validate(
            self.model_dump(include=set(PackageSearchResult.model_fields))
        )

    def stored_metadata(self) -> dict[str, Any]:
        """Flatten into the metadata bag persisted alongside a package row."""
        stored = {
            "license": self.license,
            "screenshots": self.screenshots,
            "categories": self.categories,
            "releaseDate": self.release_date,
            "description": self.description,
            "summary": self.summary,
            "homepage": self.homepage,
            "iconUrl": self.icon_url,
        }
        stored.update(self.metadata)
        return stored


# ---------------------------------------------------------------------------
# Stored records (owned by the storage layer)
# ---------------------------------------------------------------------------


class SourceRecord(BaseModel):
    """A package source as stored by the catalog (e.g. Flatpak, APT)."""

    id: str
    name: str
    slug: str
    api_endpoint: Optional[str] = None

    @property
    def has_api(self) -> bool:
        return bool(self.api_endpoint and self.api_endpoint.strip())


class PackageRecord(BaseModel):
    """A stored package row for one app in one source."""

    id: str
    source_id: str
    identifier: str
    version: Optional[str] = None
    size: Optional[int] = None
    maintainer: Optional[str] = None
    is_available: Optional[bool] = True
    last_checked: Optional[datetime] = None
    metadata: Any = None


# ---------------------------------------------------------------------------
# Refresh results
# ---------------------------------------------------------------------------


class RefreshResult(CamelModel):
    """Outcome of refreshing every package of one source."""

    source_id: str
    source_name: str
    packages_checked: int = 0
    packages_updated: int = 0
    errors: list[str] = Field(default_factory=list)
    duration: float = Field(default=0.0, description="Wall time in seconds")

    @property
    def status(self) -> Literal["success", "partial"]:
        return "success" if not self.errors else "partial"


class RefreshLog(CamelModel):
    """Persisted record of one source refresh."""

    source_id: str
    status: Literal["success", "partial"]
    packages_updated: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: datetime


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ScriptUrls(BaseModel):
    linux: Optional[str] = None
    windows: Optional[str] = None


class CatalogPackageMetadata(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    script_url: Optional[ScriptUrls] = None
    note: Optional[str] = None


class CatalogPackage(CamelModel):
    """One entry of the static seed catalog."""

    app: str
    source: str
    identifier: str
    is_available: bool = True
    metadata: Optional[CatalogPackageMetadata] = None


class PackageValidationError(CamelModel):
    """A catalog entry that could not be confirmed in its registry."""

    file: str
    package_index: int
    package: CatalogPackage
    error: str
    category: Optional[ErrorCategory] = None
    suggestion: Optional[str] = None
    notes: Optional[str] = None


class ValidationReport(CamelModel):
    """Summary of one validation run."""

    timestamp: datetime
    total_packages: int = 0
    checked_packages: int = 0
    skipped_packages: int = 0
    invalid_packages: int = 0
    errors: list[PackageValidationError] = Field(default_factory=list)
    duration: float = Field(default=0.0, description="Wall time in seconds")
    validation_method: Literal["api", "docker", "hybrid"] = "api"

    @property
    def success_rate(self) -> Optional[float]:
        if self.checked_packages == 0:
            return None
        valid = self.checked_packages - self.invalid_packages
        return round(valid / self.checked_packages * 100, 1)
