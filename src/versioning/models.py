"""Data models for package specs, registry records and version resolution."""

from dataclasses import dataclass, field
from typing import List, Optional

import semantic_version


class PackageName(str):
    """A crate name: ASCII letters, digits, ``-`` and ``_`` only.

    Construct through ``versioning.parser.parse_package_name``; the type itself
    only marks a string as already validated.
    """

    __slots__ = ()


class VersionConstraint:
    """A Cargo-style version requirement.

    ``raw`` keeps the text exactly as the user wrote it so the spec can be
    formatted back unchanged; ``spec`` is the compiled matcher.
    """

    __slots__ = ("raw", "spec")

    def __init__(self, raw: str, spec: semantic_version.NpmSpec):
        self.raw = raw
        self.spec = spec

    def matches(self, version: semantic_version.Version) -> bool:
        """Return True if ``version`` satisfies this requirement."""
        return self.spec.match(version)

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"VersionConstraint({self.raw!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionConstraint):
            return NotImplemented
        return self.raw == other.raw

    def __hash__(self) -> int:
        return hash(self.raw)


@dataclass(frozen=True)
class PackageSpec:
    """A requested crate: name plus optional version constraint."""
    name: PackageName
    version_constraint: Optional[VersionConstraint] = None

    def __str__(self) -> str:
        if self.version_constraint is None:
            return str(self.name)
        return f"{self.name}@{self.version_constraint}"


@dataclass(frozen=True)
class VersionRecord:
    """One version entry of a crate as recorded in the registry snapshot."""
    name: str
    version: str
    checksum: bytes  # 32-byte SHA-256 digest of the .crate file
    yanked: bool
    download_url_template: str

    @property
    def base_name(self) -> str:
        """``<name>-<version>``: archive top-level directory and file stem."""
        return f"{self.name}-{self.version}"

    @property
    def crate_filename(self) -> str:
        return f"{self.base_name}.crate"


@dataclass
class ResolutionResult:
    """Outcome of selecting a version for one spec.

    ``record`` is None when nothing matched; ``yanked_hint`` then names the
    best yanked version that would have matched, for an advisory message only.
    ``found`` is False when the crate is absent from the snapshot altogether.
    """
    spec: PackageSpec
    record: Optional[VersionRecord] = None
    version: Optional[semantic_version.Version] = None
    yanked_hint: Optional[VersionRecord] = None
    candidate_count: int = 0
    found: bool = True
    skipped_versions: List[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.record is not None

    def describe_failure(self) -> str:
        """Human-readable reason for a failed resolution."""
        if not self.found:
            return "could not find crate in the index"
        msg = "no matching version found"
        if self.yanked_hint is not None:
            msg += (
                f"; the yanked version {self.yanked_hint.name} {self.yanked_hint.version} matched,"
                " use --allow-yanked to download it"
            )
        return msg
