"""
API version registry.

Routes declare the versions they serve when they are registered. The registry
keeps the union of those declarations, orders them newest first for the
documentation UI, and resolves which version a request selects.

Selection reads the `api-version` query parameter. A request without one is
served by the default version instead of being rejected.
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import total_ordering

from catalog.errors import UnsupportedApiVersionError

API_VERSION_QUERY_PARAM = "api-version"

_VERSION_PATTERN = re.compile(r"^(\d+)(?:\.(\d+))?$")


@total_ordering
@dataclass(frozen=True)
class ApiVersion:
    major: int
    minor: int = 0

    @classmethod
    def parse(cls, text: str) -> "ApiVersion":
        match = _VERSION_PATTERN.match(text.strip())
        if match is None:
            raise ValueError(f"Invalid API version: {text!r}")
        major, minor = match.groups()
        return cls(int(major), int(minor or 0))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ApiVersion):
            return NotImplemented
        return (self.major, self.minor) < (other.major, other.minor)

    @property
    def group_name(self) -> str:
        """Documentation group, formatted 'v' + major[.minor] with a zero minor dropped."""
        if self.minor == 0:
            return f"v{self.major}"
        return f"v{self.major}.{self.minor}"


@dataclass(frozen=True)
class ApiVersionDescriptor:
    version: ApiVersion
    deprecated: bool = False

    @property
    def group_name(self) -> str:
        return self.version.group_name


class ApiVersionRegistry:
    """Accumulates declared API versions and resolves request versions."""

    def __init__(
        self,
        default_version: ApiVersion = ApiVersion(1, 0),
        deprecated: Iterable[ApiVersion] = (),
    ) -> None:
        self.default_version = default_version
        self._deprecated = frozenset(deprecated)
        self._versions: set[ApiVersion] = set()

    def declare(self, versions: Iterable[str | ApiVersion]) -> None:
        for version in versions:
            if isinstance(version, str):
                version = ApiVersion.parse(version)
            self._versions.add(version)

    @property
    def descriptors(self) -> list[ApiVersionDescriptor]:
        """Declared versions, newest first."""
        return [
            ApiVersionDescriptor(version=v, deprecated=v in self._deprecated)
            for v in sorted(self._versions, reverse=True)
        ]

    def supported_versions(self) -> list[ApiVersion]:
        return sorted(v for v in self._versions if v not in self._deprecated)

    def deprecated_versions(self) -> list[ApiVersion]:
        return sorted(v for v in self._versions if v in self._deprecated)

    def descriptor_for_group(self, group_name: str) -> ApiVersionDescriptor | None:
        for descriptor in self.descriptors:
            if descriptor.group_name == group_name:
                return descriptor
        return None

    def resolve(self, requested: str | None) -> ApiVersion:
        """
        Return the version a request selects.

        Missing or blank values fall back to the default version. Values that
        do not parse, or name a version no route declared, raise
        UnsupportedApiVersionError.
        """
        if requested is None or not requested.strip():
            return self.default_version
        supported = [str(v) for v in sorted(self._versions)]
        try:
            version = ApiVersion.parse(requested)
        except ValueError:
            raise UnsupportedApiVersionError(requested, supported) from None
        if version not in self._versions:
            raise UnsupportedApiVersionError(requested, supported)
        return version

    def report_headers(self) -> dict[str, str]:
        headers = {
            "api-supported-versions": ", ".join(str(v) for v in self.supported_versions())
        }
        deprecated = self.deprecated_versions()
        if deprecated:
            headers["api-deprecated-versions"] = ", ".join(str(v) for v in deprecated)
        return headers
