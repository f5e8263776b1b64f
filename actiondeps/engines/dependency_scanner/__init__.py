"""Dependency scanner engine — find the actions a repository's workflows use."""

from actiondeps.engines.dependency_scanner.extractor import extract_references, parse_uses
from actiondeps.engines.dependency_scanner.models import (
    Dependency,
    Original,
    Reference,
    ReferenceKind,
    ResolvedDependency,
)
from actiondeps.engines.dependency_scanner.scanner import DependencyScanner, scan_dependencies

__all__ = [
    "Dependency",
    "DependencyScanner",
    "Original",
    "Reference",
    "ReferenceKind",
    "ResolvedDependency",
    "extract_references",
    "parse_uses",
    "scan_dependencies",
]
