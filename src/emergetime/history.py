"""Queries over the completed compile history."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, Field

from emergetime.errors import PackageNotFoundError
from emergetime.models import CompletedCompile


class PackageHistory(BaseModel):
    """All completed compiles of a single package."""

    package: str
    compiles: list[CompletedCompile] = Field(default_factory=list)


def package_matches(package: str, pattern: str) -> bool:
    """Match ``category/name`` against a full name or a bare ``name``."""
    if package == pattern:
        return True
    components = package.split("/")
    if len(components) != 2:
        return False
    return components[1] == pattern


def find_package_history(
    compiles: Iterable[CompletedCompile],
    pattern: str,
) -> PackageHistory:
    """Collect the compiles of the first package matching ``pattern``.

    The first match fixes the full package name, so ``bash`` selects
    ``app-shells/bash`` and later entries are compared literally against
    that name.

    Raises:
        PackageNotFoundError: If no completed compile matches.
    """
    package: str | None = None
    matched: list[CompletedCompile] = []
    for compile_ in compiles:
        if package is None:
            if package_matches(compile_.package, pattern):
                package = compile_.package
                matched.append(compile_)
        elif compile_.package == package:
            matched.append(compile_)

    if package is None:
        raise PackageNotFoundError(pattern)
    return PackageHistory(package=package, compiles=matched)


def compiles_since(
    compiles: Iterable[CompletedCompile],
    start: datetime | None = None,
) -> list[CompletedCompile]:
    """Compiles that started at or after ``start`` (all when ``None``)."""
    if start is None:
        return list(compiles)
    return [c for c in compiles if c.start >= start]
