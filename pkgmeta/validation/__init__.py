"""Seed catalog validation and failure triage."""

from pkgmeta.validation.classify import KNOWN_COMMON, KNOWN_THIRD_PARTY, categorize_error, classify
from pkgmeta.validation.engine import (
    SeedValidator,
    build_detailed_report,
    exit_code_for,
    load_catalog_file,
    write_detailed_report,
)
from pkgmeta.validation.verifiers import VERIFIER_CLASSES, BaseVerifier, build_verifiers

__all__ = [
    "KNOWN_COMMON",
    "KNOWN_THIRD_PARTY",
    "VERIFIER_CLASSES",
    "BaseVerifier",
    "SeedValidator",
    "build_detailed_report",
    "build_verifiers",
    "categorize_error",
    "classify",
    "exit_code_for",
    "load_catalog_file",
    "write_detailed_report",
]
