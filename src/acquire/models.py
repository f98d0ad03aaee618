"""Options and per-spec outcomes of the acquisition pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from versioning.models import VersionRecord


class OutcomeKind(Enum):
    WRITTEN = "written"
    EXTRACTED = "extracted"
    FAILED = "failed"


class FailureKind(Enum):
    """Classification of a failed acquisition."""
    NOT_FOUND = "not_found"
    NO_MATCH = "no_match"
    INTEGRITY = "integrity"
    UNSAFE_ARCHIVE = "unsafe_archive"
    TRANSPORT = "transport"
    FILESYSTEM = "filesystem"


@dataclass
class AcquireOptions:
    """Settings shared by every pipeline run of one invocation."""
    extract: bool = False
    output: Optional[str] = None
    allow_yanked: bool = False
    use_cache: bool = True
    update_index: bool = True
    cache_dirs: List[str] = field(default_factory=list)
    size_limit: Optional[int] = None
    max_workers: Optional[int] = None


@dataclass
class AcquisitionOutcome:
    """Terminal result for one requested spec."""
    spec: str
    kind: OutcomeKind
    path: Optional[str] = None
    record: Optional[VersionRecord] = None
    failure: Optional[FailureKind] = None
    reason: Optional[str] = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.kind != OutcomeKind.FAILED

    @classmethod
    def failed(cls, spec: str, failure: FailureKind, reason: str,
               record: Optional[VersionRecord] = None) -> "AcquisitionOutcome":
        return cls(spec=spec, kind=OutcomeKind.FAILED, failure=failure, reason=reason, record=record)
